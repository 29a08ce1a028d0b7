"""
Module: backoffice_engines
Responsibility:
    Pure calculation engines for the back office.  Canonical import surface
    for the banking module.

Architecture position:
    Engines -- zero I/O.  May import ``backoffice_kernel.db.types``,
    ``backoffice_kernel.exceptions`` and ``backoffice_kernel.logging_config``.
    MUST NOT import ``backoffice_modules``.

Invariants enforced:
    - Engines never read the clock; dates are passed in.
    - Decimal-only arithmetic.
    - Identical inputs produce identical outputs.

Usage:
    from backoffice_engines.reconciliation import compute_balances
"""

from backoffice_engines.reconciliation import (
    CandidateSource,
    ReconciliationBalances,
    TransactionCandidate,
    TransactionType,
    compute_balances,
    set_cleared,
)

__all__ = [
    "CandidateSource",
    "ReconciliationBalances",
    "TransactionCandidate",
    "TransactionType",
    "compute_balances",
    "set_cleared",
]
