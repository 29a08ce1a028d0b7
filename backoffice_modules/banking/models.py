"""
backoffice_modules.banking.models
=================================

Responsibility:
    Frozen dataclass value objects for bank reconciliation: bank accounts,
    payments, statements, reconciliation headers and items, the caller
    context, and the in-memory worksheet a reconciliation is edited on.

Architecture:
    Module layer.  In-memory DTOs, NOT SQLAlchemy ORM models.  ORM rows
    convert to these through ``to_dto()`` in ``orm.py``.

Invariants enforced:
    - All monetary fields use ``Decimal``.
    - All DTOs are frozen; worksheet edits return a new worksheet.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from backoffice_engines.reconciliation import (
    ReconciliationBalances,
    TransactionCandidate,
    TransactionType,
)


class ReconciliationStatus(str, Enum):
    """Reconciliation states.  See ``workflows.RECONCILIATION_WORKFLOW``."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    DRAFT = "draft"
    ISSUED = "issued"
    CLEARED = "cleared"
    VOID = "void"


@dataclass(frozen=True)
class ReconciliationContext:
    """Company and user on whose behalf an operation runs."""

    company_id: UUID
    actor_id: UUID


@dataclass(frozen=True)
class BankAccount:
    """A company bank account, optionally linked to a ledger cash account."""

    id: UUID
    company_id: UUID
    account_name: str
    bank_name: str | None = None
    account_number_masked: str | None = None
    ledger_account_id: UUID | None = None
    current_balance: Decimal | None = None
    balance_date: date | None = None
    is_active: bool = True


@dataclass(frozen=True)
class Payment:
    """A payment drawn on a bank account (check, ACH, wire)."""

    id: UUID
    company_id: UUID
    bank_account_id: UUID
    payment_number: str | None
    payment_date: date
    amount: Decimal
    payment_method: str | None = None
    status: PaymentStatus = PaymentStatus.ISSUED
    memo: str | None = None


@dataclass(frozen=True)
class BankStatement:
    """An uploaded bank statement file."""

    id: UUID
    company_id: UUID
    bank_account_id: UUID
    file_name: str
    storage_key: str
    display_name: str | None = None
    statement_date: date | None = None
    statement_month: int | None = None
    statement_year: int | None = None
    uploaded_by_id: UUID | None = None
    uploaded_at: datetime | None = None


@dataclass(frozen=True)
class Reconciliation:
    """A reconciliation header for one bank account and statement period."""

    id: UUID
    company_id: UUID
    bank_account_id: UUID
    status: ReconciliationStatus
    beginning_balance: Decimal
    beginning_date: date | None
    ending_balance: Decimal | None
    ending_date: date
    cleared_balance: Decimal
    adjusted_balance: Decimal
    bank_statement_id: UUID | None = None
    notes: str | None = None
    created_by_id: UUID | None = None
    reconciled_by_id: UUID | None = None
    reconciled_at: datetime | None = None


@dataclass(frozen=True)
class ReconciliationItem:
    """Persisted cleared/uncleared state of one candidate."""

    id: UUID
    reconciliation_id: UUID
    transaction_type: TransactionType
    transaction_id: UUID
    source: str
    amount: Decimal
    is_cleared: bool
    cleared_at: datetime | None = None


@dataclass(frozen=True)
class PaymentClearance:
    """Which completed reconciliation cleared a payment, when and by whom."""

    payment_id: UUID
    reconciliation_id: UUID
    ending_date: date
    cleared_at: datetime | None
    reconciled_at: datetime | None
    reconciled_by_id: UUID | None


@dataclass(frozen=True)
class ReconciliationWorksheet:
    """
    The reconciliation being edited: header values, candidates with their
    cleared flags, and the balances computed over them.

    ``reconciliation_id`` is None until progress is saved.  ``warnings``
    carries non-fatal problems from the last operation (for example a
    failed ledger cascade on toggle).
    """

    bank_account: BankAccount
    beginning_balance: Decimal
    beginning_date: date | None
    ending_date: date
    ending_balance: Decimal | None
    candidates: tuple[TransactionCandidate, ...]
    balances: ReconciliationBalances
    reconciliation_id: UUID | None = None
    bank_statement_id: UUID | None = None
    notes: str | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def bank_account_id(self) -> UUID:
        return self.bank_account.id

    @property
    def deposits(self) -> tuple[TransactionCandidate, ...]:
        return tuple(c for c in self.candidates if c.is_deposit)

    @property
    def payments(self) -> tuple[TransactionCandidate, ...]:
        return tuple(c for c in self.candidates if not c.is_deposit)

    @property
    def cleared_candidates(self) -> tuple[TransactionCandidate, ...]:
        return tuple(c for c in self.candidates if c.cleared)

    @property
    def can_finalize(self) -> bool:
        return self.balances.is_cleared_balanced

    def evolve(self, **changes) -> ReconciliationWorksheet:
        return replace(self, **changes)
