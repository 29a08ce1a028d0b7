"""
Value objects for the bank reconciliation engine.

Responsibility:
    Immutable description of a reconciliation candidate (a deposit or a
    payment that may appear on the bank statement) and of the balances
    computed over a candidate set.

Architecture position:
    Engines -- pure data.  No ORM, no session, no clock.

Invariants enforced:
    - ``amount`` is a positive Decimal; the transaction type carries the sign.
    - Candidates are frozen; toggling a cleared flag yields a new object.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class TransactionType(str, Enum):
    """Direction of a candidate relative to the bank account."""

    DEPOSIT = "deposit"
    PAYMENT = "payment"


class CandidateSource(str, Enum):
    """Where a candidate was loaded from."""

    PAYMENT = "payment"
    LEDGER_LINE = "ledger_line"


@dataclass(frozen=True)
class TransactionCandidate:
    """
    One transaction that may be cleared against a bank statement.

    ``transaction_id`` is the payment id for ``CandidateSource.PAYMENT``
    and the journal line id for ``CandidateSource.LEDGER_LINE``; in the
    latter case ``journal_entry_id`` is the parent entry.
    """

    transaction_id: UUID
    transaction_type: TransactionType
    source: CandidateSource
    transaction_date: date
    amount: Decimal
    description: str = ""
    reference: str | None = None
    journal_entry_id: UUID | None = None
    cleared: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise TypeError(
                f"amount must be Decimal, got {type(self.amount).__name__}"
            )
        if self.amount < 0:
            raise ValueError(f"amount must be non-negative, got {self.amount}")
        if self.source == CandidateSource.LEDGER_LINE and self.journal_entry_id is None:
            raise ValueError("ledger line candidates require journal_entry_id")

    @property
    def key(self) -> tuple[UUID, TransactionType]:
        return (self.transaction_id, self.transaction_type)

    @property
    def is_deposit(self) -> bool:
        return self.transaction_type == TransactionType.DEPOSIT

    @property
    def is_ledger_line(self) -> bool:
        return self.source == CandidateSource.LEDGER_LINE

    def with_cleared(self, cleared: bool) -> TransactionCandidate:
        return replace(self, cleared=cleared)


@dataclass(frozen=True)
class ReconciliationBalances:
    """
    Balances derived from a beginning balance and a candidate set.

    ``difference`` is cleared minus ending, or None while the statement
    ending balance has not been entered.
    """

    beginning_balance: Decimal
    ending_balance: Decimal | None
    cleared_deposits: Decimal
    cleared_payments: Decimal
    uncleared_deposits: Decimal
    uncleared_payments: Decimal
    cleared_balance: Decimal
    total_cash_balance: Decimal
    adjusted_balance: Decimal
    difference: Decimal | None
    is_cleared_balanced: bool
    is_adjusted_balanced: bool

    @property
    def total_deposits(self) -> Decimal:
        return self.cleared_deposits + self.uncleared_deposits

    @property
    def total_payments(self) -> Decimal:
        return self.cleared_payments + self.uncleared_payments
