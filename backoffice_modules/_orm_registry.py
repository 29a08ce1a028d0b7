"""
Module ORM Registry (``backoffice_modules._orm_registry``).

Responsibility
--------------
Ensure every module-level SQLAlchemy model is imported so that
``Base.metadata`` holds its table before ``create_tables()`` runs.

Usage
-----
``backoffice_kernel.db.engine.create_tables()`` and ``tests/conftest.py``
call ``import_all_orm_models()``.
"""


def import_all_orm_models() -> None:
    """Import kernel models, then every ``backoffice_modules.*.orm`` module.

    Kernel tables come first because module tables reference them
    (``bank_accounts.ledger_account_id`` -> ``accounts.id``).  Idempotent.
    """
    import backoffice_kernel.models  # noqa: F401
    import backoffice_modules.banking.orm  # noqa: F401
