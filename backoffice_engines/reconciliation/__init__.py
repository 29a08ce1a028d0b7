"""Bank reconciliation engine: candidates, balance formulas, balanced checks."""

from backoffice_engines.reconciliation.balances import (
    DEFAULT_TOLERANCE,
    apply_cleared_keys,
    compute_balances,
    is_within_tolerance,
    set_cleared,
)
from backoffice_engines.reconciliation.types import (
    CandidateSource,
    ReconciliationBalances,
    TransactionCandidate,
    TransactionType,
)

__all__ = [
    "DEFAULT_TOLERANCE",
    "CandidateSource",
    "ReconciliationBalances",
    "TransactionCandidate",
    "TransactionType",
    "apply_cleared_keys",
    "compute_balances",
    "is_within_tolerance",
    "set_cleared",
]
