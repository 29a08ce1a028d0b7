"""
Module: backoffice_modules.banking.selectors
Responsibility: Read-only queries for bank reconciliation -- bank accounts,
    reconciliation headers and items, statements, and the candidate
    transactions offered for clearing.
Architecture position: Modules > Selectors.  No writes, no commits.

Candidate sourcing:
    deposits  = posted debit lines on the linked ledger account
    payments  = payment records of the bank account
                + posted credit lines on the linked ledger account
    Both are limited to amount > 0 and date <= ending date, and both exclude
    transactions already cleared by a completed reconciliation of the same
    bank account.  Without a linked ledger account only payment records
    are offered.

Failure modes:
    - Lookups return None or an empty list when nothing matches.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice_engines.reconciliation import (
    CandidateSource,
    TransactionCandidate,
    TransactionType,
)
from backoffice_kernel.models.journal import (
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    LineSide,
)
from backoffice_kernel.selectors.base import BaseSelector
from backoffice_modules.banking.models import (
    BankAccount,
    BankStatement,
    PaymentClearance,
    Reconciliation,
    ReconciliationItem,
    ReconciliationStatus,
)
from backoffice_modules.banking.orm import (
    BankAccountModel,
    BankStatementModel,
    PaymentModel,
    ReconciliationItemModel,
    ReconciliationModel,
)


def payment_description(method: str | None, number: str | None) -> str:
    return f"{method or 'Payment'} Ref {number or 'No reference'}"


def ledger_payment_description(memo: str | None) -> str:
    return f"Journal Entry - {memo or 'Bank withdrawal'}"


def ledger_deposit_description(memo: str | None) -> str:
    return f"Deposit #{memo or 'Bank deposit'}"


def candidate_sort_key(candidate: TransactionCandidate) -> tuple:
    return (candidate.transaction_date, candidate.reference or "")


class ReconciliationSelector(BaseSelector[ReconciliationModel]):
    """Bank accounts, reconciliations, items and statements."""

    def __init__(self, session: Session):
        super().__init__(session)

    # Bank accounts

    def get_bank_account(
        self, company_id: UUID, bank_account_id: UUID,
    ) -> BankAccount | None:
        return self._one_dto(
            select(BankAccountModel).where(
                BankAccountModel.id == bank_account_id,
                BankAccountModel.company_id == company_id,
            )
        )

    def list_active_bank_accounts(self, company_id: UUID) -> list[BankAccount]:
        return self._all_dtos(
            select(BankAccountModel)
            .where(
                BankAccountModel.company_id == company_id,
                BankAccountModel.is_active.is_(True),
            )
            .order_by(BankAccountModel.account_name)
        )

    # Reconciliations

    def get(self, company_id: UUID, reconciliation_id: UUID) -> Reconciliation | None:
        return self._one_dto(
            select(ReconciliationModel).where(
                ReconciliationModel.id == reconciliation_id,
                ReconciliationModel.company_id == company_id,
            )
        )

    def get_in_progress(self, bank_account_id: UUID) -> Reconciliation | None:
        return self._one_dto(
            select(ReconciliationModel).where(
                ReconciliationModel.bank_account_id == bank_account_id,
                ReconciliationModel.status == ReconciliationStatus.IN_PROGRESS.value,
            )
        )

    def get_latest_completed(self, bank_account_id: UUID) -> Reconciliation | None:
        """Most recent completed reconciliation by ending date."""
        return self._one_dto(
            select(ReconciliationModel)
            .where(
                ReconciliationModel.bank_account_id == bank_account_id,
                ReconciliationModel.status == ReconciliationStatus.COMPLETED.value,
            )
            .order_by(ReconciliationModel.ending_date.desc())
            .limit(1)
        )

    def get_completed_for_period(
        self, bank_account_id: UUID, ending_date: date,
    ) -> Reconciliation | None:
        return self._one_dto(
            select(ReconciliationModel).where(
                ReconciliationModel.bank_account_id == bank_account_id,
                ReconciliationModel.ending_date == ending_date,
                ReconciliationModel.status == ReconciliationStatus.COMPLETED.value,
            )
        )

    def list_for_account(
        self, company_id: UUID, bank_account_id: UUID,
    ) -> list[Reconciliation]:
        """Reconciliation history, newest ending date first."""
        return self._all_dtos(
            select(ReconciliationModel)
            .where(
                ReconciliationModel.company_id == company_id,
                ReconciliationModel.bank_account_id == bank_account_id,
            )
            .order_by(
                ReconciliationModel.ending_date.desc(),
                ReconciliationModel.created_at.desc(),
            )
        )

    def get_items(self, reconciliation_id: UUID) -> list[ReconciliationItem]:
        return self._all_dtos(
            select(ReconciliationItemModel).where(
                ReconciliationItemModel.reconciliation_id == reconciliation_id,
            )
        )

    def cleared_transaction_ids(
        self,
        bank_account_id: UUID,
        exclude_reconciliation_id: UUID | None = None,
        ending_before: date | None = None,
        ending_after: date | None = None,
    ) -> set[UUID]:
        """
        Transaction ids cleared by completed reconciliations of the account,
        optionally only those ending strictly before or after a date.
        """
        stmt = (
            select(ReconciliationItemModel.transaction_id)
            .join(
                ReconciliationModel,
                ReconciliationItemModel.reconciliation_id == ReconciliationModel.id,
            )
            .where(
                ReconciliationModel.bank_account_id == bank_account_id,
                ReconciliationModel.status == ReconciliationStatus.COMPLETED.value,
                ReconciliationItemModel.is_cleared.is_(True),
            )
        )
        if exclude_reconciliation_id is not None:
            stmt = stmt.where(ReconciliationModel.id != exclude_reconciliation_id)
        if ending_before is not None:
            stmt = stmt.where(ReconciliationModel.ending_date < ending_before)
        if ending_after is not None:
            stmt = stmt.where(ReconciliationModel.ending_date > ending_after)
        return set(self.session.execute(stmt).scalars())

    # Statements and payments

    def get_statement(
        self, company_id: UUID, statement_id: UUID,
    ) -> BankStatement | None:
        return self._one_dto(
            select(BankStatementModel).where(
                BankStatementModel.id == statement_id,
                BankStatementModel.company_id == company_id,
            )
        )

    def payment_clearance(
        self, company_id: UUID, payment_id: UUID,
    ) -> PaymentClearance | None:
        """The completed reconciliation that cleared a payment, if any."""
        row = self.session.execute(
            select(ReconciliationItemModel, ReconciliationModel)
            .join(
                ReconciliationModel,
                ReconciliationItemModel.reconciliation_id == ReconciliationModel.id,
            )
            .where(
                ReconciliationModel.company_id == company_id,
                ReconciliationModel.status == ReconciliationStatus.COMPLETED.value,
                ReconciliationItemModel.transaction_id == payment_id,
                ReconciliationItemModel.transaction_type == TransactionType.PAYMENT.value,
                ReconciliationItemModel.is_cleared.is_(True),
            )
            .order_by(ReconciliationModel.ending_date.desc())
            .limit(1)
        ).first()
        if row is None:
            return None
        item, recon = row
        return PaymentClearance(
            payment_id=payment_id,
            reconciliation_id=recon.id,
            ending_date=recon.ending_date,
            cleared_at=item.cleared_at,
            reconciled_at=recon.reconciled_at,
            reconciled_by_id=recon.reconciled_by_id,
        )


class ReconciliationCandidateSelector(BaseSelector[JournalLine]):
    """Loads the deposits and payments offered for clearing."""

    def __init__(self, session: Session):
        super().__init__(session)

    def payment_candidates(
        self, bank_account_id: UUID, ending_date: date,
    ) -> list[TransactionCandidate]:
        rows = self.session.execute(
            select(PaymentModel).where(
                PaymentModel.bank_account_id == bank_account_id,
                PaymentModel.payment_date <= ending_date,
                PaymentModel.amount > 0,
            )
        ).scalars()
        return [
            TransactionCandidate(
                transaction_id=p.id,
                transaction_type=TransactionType.PAYMENT,
                source=CandidateSource.PAYMENT,
                transaction_date=p.payment_date,
                amount=p.amount,
                description=payment_description(p.payment_method, p.payment_number),
                reference=p.payment_number,
            )
            for p in rows
        ]

    def ledger_candidates(
        self,
        ledger_account_id: UUID,
        ending_date: date,
        transaction_type: TransactionType,
    ) -> list[TransactionCandidate]:
        """Posted lines on the cash account: debits are deposits, credits payments."""
        side = (
            LineSide.DEBIT
            if transaction_type == TransactionType.DEPOSIT
            else LineSide.CREDIT
        )
        describe = (
            ledger_deposit_description
            if transaction_type == TransactionType.DEPOSIT
            else ledger_payment_description
        )
        rows = self.session.execute(
            select(JournalLine, JournalEntry)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalLine.account_id == ledger_account_id,
                JournalLine.side == side.value,
                JournalLine.amount > 0,
                JournalEntry.status == JournalEntryStatus.POSTED.value,
                JournalEntry.effective_date <= ending_date,
            )
        ).all()
        return [
            TransactionCandidate(
                transaction_id=line.id,
                transaction_type=transaction_type,
                source=CandidateSource.LEDGER_LINE,
                transaction_date=entry.effective_date,
                amount=line.amount,
                description=describe(line.line_memo),
                reference=entry.reference,
                journal_entry_id=entry.id,
            )
            for line, entry in rows
        ]

    def load_candidates(
        self,
        bank_account: BankAccount,
        ending_date: date,
        excluded_ids: set[UUID] | None = None,
    ) -> list[TransactionCandidate]:
        """
        All candidates for a bank account up to ``ending_date``, minus
        ``excluded_ids``, ordered by date then reference.
        """
        candidates = self.payment_candidates(bank_account.id, ending_date)
        if bank_account.ledger_account_id is not None:
            candidates += self.ledger_candidates(
                bank_account.ledger_account_id, ending_date, TransactionType.DEPOSIT,
            )
            candidates += self.ledger_candidates(
                bank_account.ledger_account_id, ending_date, TransactionType.PAYMENT,
            )
        excluded = excluded_ids or set()
        return sorted(
            (c for c in candidates if c.transaction_id not in excluded),
            key=candidate_sort_key,
        )
