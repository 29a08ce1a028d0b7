"""
Balance arithmetic for bank reconciliation.

Responsibility:
    Compute cleared, total-cash and adjusted balances over a candidate set
    and decide whether the reconciliation balances.

Architecture position:
    Engines -- pure functions.  Called by the banking service on every
    load and toggle, and again as the finalize precondition.

Invariants enforced:
    - cleared = beginning + cleared deposits - cleared payments.
    - total cash = beginning + all deposits - all payments.
    - adjusted = total cash - uncleared deposits + uncleared payments,
      which equals cleared for every partition of the candidates.
    - Balanced means the absolute difference is strictly below tolerance.
    - An unset ending balance never balances.

Failure modes:
    - CandidateNotFoundError from set_cleared() for an id/type pair that is
      not in the candidate set.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal
from uuid import UUID

from backoffice_engines.reconciliation.types import (
    ReconciliationBalances,
    TransactionCandidate,
    TransactionType,
)
from backoffice_engines.tracer import traced_engine
from backoffice_kernel.db.types import ONE_CENT, ZERO
from backoffice_kernel.exceptions import CandidateNotFoundError

DEFAULT_TOLERANCE = ONE_CENT


def is_within_tolerance(
    a: Decimal,
    b: Decimal,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> bool:
    """True when |a - b| < tolerance."""
    return abs(a - b) < tolerance


def _sum(candidates: Iterable[TransactionCandidate]) -> Decimal:
    return sum((c.amount for c in candidates), ZERO)


@traced_engine(
    "bank_reconciliation",
    "1.0",
    fingerprint_fields=("beginning_balance", "ending_balance", "candidates", "tolerance"),
)
def compute_balances(
    *,
    beginning_balance: Decimal,
    ending_balance: Decimal | None,
    candidates: Sequence[TransactionCandidate],
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> ReconciliationBalances:
    """
    Compute reconciliation balances.

    Args:
        beginning_balance: Prior reconciled balance of the account.
        ending_balance: Statement ending balance, or None if not entered.
        candidates: Deposits and payments with their cleared flags.
        tolerance: Exclusive bound for the balanced checks.

    Returns:
        ReconciliationBalances with per-type totals and both checks.
    """
    deposits = [c for c in candidates if c.transaction_type == TransactionType.DEPOSIT]
    payments = [c for c in candidates if c.transaction_type == TransactionType.PAYMENT]

    cleared_deposits = _sum(c for c in deposits if c.cleared)
    cleared_payments = _sum(c for c in payments if c.cleared)
    uncleared_deposits = _sum(c for c in deposits if not c.cleared)
    uncleared_payments = _sum(c for c in payments if not c.cleared)

    cleared_balance = beginning_balance + cleared_deposits - cleared_payments
    total_cash_balance = (
        beginning_balance
        + cleared_deposits
        + uncleared_deposits
        - cleared_payments
        - uncleared_payments
    )
    adjusted_balance = total_cash_balance - uncleared_deposits + uncleared_payments

    if ending_balance is None:
        difference = None
        is_cleared_balanced = False
    else:
        difference = cleared_balance - ending_balance
        is_cleared_balanced = is_within_tolerance(
            cleared_balance, ending_balance, tolerance
        )

    return ReconciliationBalances(
        beginning_balance=beginning_balance,
        ending_balance=ending_balance,
        cleared_deposits=cleared_deposits,
        cleared_payments=cleared_payments,
        uncleared_deposits=uncleared_deposits,
        uncleared_payments=uncleared_payments,
        cleared_balance=cleared_balance,
        total_cash_balance=total_cash_balance,
        adjusted_balance=adjusted_balance,
        difference=difference,
        is_cleared_balanced=is_cleared_balanced,
        is_adjusted_balanced=is_within_tolerance(
            adjusted_balance, cleared_balance, tolerance
        ),
    )


def set_cleared(
    candidates: Sequence[TransactionCandidate],
    transaction_id: UUID,
    transaction_type: TransactionType,
    cleared: bool,
) -> tuple[TransactionCandidate, ...]:
    """Return a new candidate tuple with one candidate's cleared flag set."""
    key = (transaction_id, TransactionType(transaction_type))
    found = False
    updated = []
    for candidate in candidates:
        if candidate.key == key:
            found = True
            candidate = candidate.with_cleared(cleared)
        updated.append(candidate)
    if not found:
        raise CandidateNotFoundError(str(transaction_id), key[1].value)
    return tuple(updated)


def apply_cleared_keys(
    candidates: Sequence[TransactionCandidate],
    cleared_keys: set[tuple[UUID, TransactionType]],
) -> tuple[TransactionCandidate, ...]:
    """Set cleared on exactly the candidates whose key is in ``cleared_keys``."""
    return tuple(c.with_cleared(c.key in cleared_keys) for c in candidates)
