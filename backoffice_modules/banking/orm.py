"""
Banking ORM Models (``backoffice_modules.banking.orm``).

Responsibility
--------------
SQLAlchemy persistence models for bank reconciliation -- bank accounts,
payments, bank statements, reconciliations and reconciliation items.
Maps the frozen domain dataclasses from ``models.py`` to database tables.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``backoffice_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``backoffice_kernel``.

Invariants enforced
-------------------
* At most one ``in_progress`` reconciliation per bank account.
* At most one ``completed`` reconciliation per bank account and ending date.

Both are partial unique indexes (PostgreSQL and SQLite honour the WHERE
clause); a violation surfaces as ``IntegrityError``.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import TrackedBase


# ---------------------------------------------------------------------------
# BankAccountModel
# ---------------------------------------------------------------------------

class BankAccountModel(TrackedBase):
    """
    ORM model for ``BankAccount``.

    Table: ``bank_accounts``
    """

    __tablename__ = "bank_accounts"

    company_id: Mapped[UUID]
    account_name: Mapped[str] = mapped_column(String(200))
    bank_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    account_number_masked: Mapped[str | None] = mapped_column(String(20), nullable=True)
    ledger_account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True,
    )
    current_balance: Mapped[Decimal | None] = mapped_column(nullable=True)
    balance_date: Mapped[date | None] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True)

    reconciliations: Mapped[list["ReconciliationModel"]] = relationship(
        back_populates="bank_account", cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_bank_accounts_company_id", "company_id"),
        Index("idx_bank_accounts_ledger_account_id", "ledger_account_id"),
    )

    def to_dto(self):
        from backoffice_modules.banking.models import BankAccount
        return BankAccount(
            id=self.id,
            company_id=self.company_id,
            account_name=self.account_name,
            bank_name=self.bank_name,
            account_number_masked=self.account_number_masked,
            ledger_account_id=self.ledger_account_id,
            current_balance=self.current_balance,
            balance_date=self.balance_date,
            is_active=self.is_active,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "BankAccountModel":
        return cls(
            id=dto.id,
            company_id=dto.company_id,
            account_name=dto.account_name,
            bank_name=dto.bank_name,
            account_number_masked=dto.account_number_masked,
            ledger_account_id=dto.ledger_account_id,
            current_balance=dto.current_balance,
            balance_date=dto.balance_date,
            is_active=dto.is_active,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<BankAccountModel(id={self.id!r}, "
            f"account_name={self.account_name!r})>"
        )


# ---------------------------------------------------------------------------
# PaymentModel
# ---------------------------------------------------------------------------

class PaymentModel(TrackedBase):
    """
    ORM model for ``Payment`` -- money leaving a bank account.

    Table: ``payments``
    """

    __tablename__ = "payments"

    company_id: Mapped[UUID]
    bank_account_id: Mapped[UUID] = mapped_column(ForeignKey("bank_accounts.id"))
    payment_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_date: Mapped[date]
    amount: Mapped[Decimal]
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="issued")
    memo: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        Index("idx_payments_bank_account_date", "bank_account_id", "payment_date"),
    )

    def to_dto(self):
        from backoffice_modules.banking.models import Payment, PaymentStatus
        return Payment(
            id=self.id,
            company_id=self.company_id,
            bank_account_id=self.bank_account_id,
            payment_number=self.payment_number,
            payment_date=self.payment_date,
            amount=self.amount,
            payment_method=self.payment_method,
            status=PaymentStatus(self.status),
            memo=self.memo,
        )

    def __repr__(self) -> str:
        return (
            f"<PaymentModel(id={self.id!r}, number={self.payment_number!r}, "
            f"amount={self.amount!r})>"
        )


# ---------------------------------------------------------------------------
# BankStatementModel
# ---------------------------------------------------------------------------

class BankStatementModel(TrackedBase):
    """
    ORM model for ``BankStatement`` -- an uploaded statement file.  The
    statement period is stamped when the reconciliation it is attached to
    completes.

    Table: ``bank_statements``
    """

    __tablename__ = "bank_statements"

    company_id: Mapped[UUID]
    bank_account_id: Mapped[UUID] = mapped_column(ForeignKey("bank_accounts.id"))
    file_name: Mapped[str] = mapped_column(String(255))
    storage_key: Mapped[str] = mapped_column(String(500))
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    statement_date: Mapped[date | None] = mapped_column(nullable=True)
    statement_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    statement_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    uploaded_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    uploaded_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        Index("idx_bank_statements_bank_account_id", "bank_account_id"),
    )

    def to_dto(self):
        from backoffice_modules.banking.models import BankStatement
        return BankStatement(
            id=self.id,
            company_id=self.company_id,
            bank_account_id=self.bank_account_id,
            file_name=self.file_name,
            storage_key=self.storage_key,
            display_name=self.display_name,
            statement_date=self.statement_date,
            statement_month=self.statement_month,
            statement_year=self.statement_year,
            uploaded_by_id=self.uploaded_by_id,
            uploaded_at=self.uploaded_at,
        )

    def __repr__(self) -> str:
        return f"<BankStatementModel(id={self.id!r}, file_name={self.file_name!r})>"


# ---------------------------------------------------------------------------
# ReconciliationModel
# ---------------------------------------------------------------------------

class ReconciliationModel(TrackedBase):
    """
    ORM model for ``Reconciliation`` -- one bank account, one statement
    period.

    Table: ``bank_reconciliations``
    """

    __tablename__ = "bank_reconciliations"

    company_id: Mapped[UUID]
    bank_account_id: Mapped[UUID] = mapped_column(ForeignKey("bank_accounts.id"))
    status: Mapped[str] = mapped_column(String(20), default="in_progress")
    beginning_balance: Mapped[Decimal]
    beginning_date: Mapped[date | None] = mapped_column(nullable=True)
    ending_balance: Mapped[Decimal | None] = mapped_column(nullable=True)
    ending_date: Mapped[date]
    cleared_balance: Mapped[Decimal]
    adjusted_balance: Mapped[Decimal]
    bank_statement_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("bank_statements.id"), nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reconciled_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    reconciled_at: Mapped[datetime | None] = mapped_column(nullable=True)

    bank_account: Mapped["BankAccountModel"] = relationship(
        back_populates="reconciliations",
    )
    items: Mapped[list["ReconciliationItemModel"]] = relationship(
        back_populates="reconciliation", cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_bank_reconciliations_bank_account_id", "bank_account_id"),
        Index(
            "uq_bank_reconciliations_one_in_progress",
            "bank_account_id",
            unique=True,
            postgresql_where=text("status = 'in_progress'"),
            sqlite_where=text("status = 'in_progress'"),
        ),
        Index(
            "uq_bank_reconciliations_completed_period",
            "bank_account_id",
            "ending_date",
            unique=True,
            postgresql_where=text("status = 'completed'"),
            sqlite_where=text("status = 'completed'"),
        ),
    )

    def to_dto(self):
        from backoffice_modules.banking.models import (
            Reconciliation,
            ReconciliationStatus,
        )
        return Reconciliation(
            id=self.id,
            company_id=self.company_id,
            bank_account_id=self.bank_account_id,
            status=ReconciliationStatus(self.status),
            beginning_balance=self.beginning_balance,
            beginning_date=self.beginning_date,
            ending_balance=self.ending_balance,
            ending_date=self.ending_date,
            cleared_balance=self.cleared_balance,
            adjusted_balance=self.adjusted_balance,
            bank_statement_id=self.bank_statement_id,
            notes=self.notes,
            created_by_id=self.created_by_id,
            reconciled_by_id=self.reconciled_by_id,
            reconciled_at=self.reconciled_at,
        )

    def __repr__(self) -> str:
        return (
            f"<ReconciliationModel(id={self.id!r}, status={self.status!r}, "
            f"ending_date={self.ending_date!r})>"
        )


# ---------------------------------------------------------------------------
# ReconciliationItemModel
# ---------------------------------------------------------------------------

class ReconciliationItemModel(TrackedBase):
    """
    ORM model for ``ReconciliationItem``.  Rows are replaced wholesale on
    every save and finalize.

    Table: ``bank_reconciliation_items``
    """

    __tablename__ = "bank_reconciliation_items"

    reconciliation_id: Mapped[UUID] = mapped_column(
        ForeignKey("bank_reconciliations.id"),
    )
    transaction_type: Mapped[str] = mapped_column(String(20))
    transaction_id: Mapped[UUID]
    source: Mapped[str] = mapped_column(String(20))
    amount: Mapped[Decimal]
    is_cleared: Mapped[bool] = mapped_column(default=False)
    cleared_at: Mapped[datetime | None] = mapped_column(nullable=True)

    reconciliation: Mapped["ReconciliationModel"] = relationship(
        back_populates="items",
    )

    __table_args__ = (
        Index("idx_bank_reconciliation_items_reconciliation_id", "reconciliation_id"),
        Index(
            "idx_bank_reconciliation_items_transaction",
            "transaction_id",
            "transaction_type",
        ),
    )

    def to_dto(self):
        from backoffice_engines.reconciliation import TransactionType
        from backoffice_modules.banking.models import ReconciliationItem
        return ReconciliationItem(
            id=self.id,
            reconciliation_id=self.reconciliation_id,
            transaction_type=TransactionType(self.transaction_type),
            transaction_id=self.transaction_id,
            source=self.source,
            amount=self.amount,
            is_cleared=self.is_cleared,
            cleared_at=self.cleared_at,
        )

    def __repr__(self) -> str:
        return (
            f"<ReconciliationItemModel(transaction_id={self.transaction_id!r}, "
            f"type={self.transaction_type!r}, cleared={self.is_cleared!r})>"
        )
