"""
backoffice_modules.banking.report
=================================

Responsibility:
    Builds the reconciliation report for one reconciliation: account
    header, balances, and four date-sorted sections (cleared deposits,
    cleared payments, uncleared deposits, uncleared payments) with totals.

Classification of a transaction dated on or before the ending date:
    1. cleared    -- a cleared item of this reconciliation;
    2. omitted    -- cleared by a completed reconciliation of an earlier
                     period;
    3. cleared    -- a ledger line already flagged ``is_reconciled``, unless
                     its entry was cleared by a later period;
    4. uncleared  -- everything else, including transactions a later
                     period cleared, so a report does not change once the
                     next period is finalized.

Architecture:
    Module layer, read-only.  Reuses the candidate queries of
    ``selectors.py`` so report lines and worksheet candidates agree.

Failure modes:
    - ``ReconciliationNotFoundError`` for an unknown or foreign id.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from backoffice_engines.reconciliation import TransactionCandidate, TransactionType
from backoffice_kernel.db.types import ZERO, round_money
from backoffice_kernel.exceptions import ReconciliationNotFoundError
from backoffice_kernel.selectors.journal_selector import JournalSelector
from backoffice_modules.banking.models import Reconciliation
from backoffice_modules.banking.orm import BankAccountModel
from backoffice_modules.banking.selectors import (
    ReconciliationCandidateSelector,
    ReconciliationSelector,
    candidate_sort_key,
)


@dataclass(frozen=True)
class ReportLine:
    transaction_id: UUID
    transaction_date: date
    description: str
    reference: str | None
    amount: Decimal


@dataclass(frozen=True)
class ReportSection:
    title: str
    lines: tuple[ReportLine, ...]

    @property
    def total(self) -> Decimal:
        return sum((line.amount for line in self.lines), ZERO)


@dataclass(frozen=True)
class ReconciliationReport:
    """Everything a printed reconciliation report shows."""

    reconciliation: Reconciliation
    account_name: str
    bank_name: str | None
    account_number_masked: str | None
    cleared_deposits: ReportSection
    cleared_payments: ReportSection
    uncleared_deposits: ReportSection
    uncleared_payments: ReportSection

    @property
    def beginning_date(self) -> date | None:
        return self.reconciliation.beginning_date

    @property
    def beginning_balance(self) -> Decimal:
        return self.reconciliation.beginning_balance

    @property
    def ending_date(self) -> date:
        return self.reconciliation.ending_date

    @property
    def ending_balance(self) -> Decimal | None:
        return self.reconciliation.ending_balance

    @property
    def cleared_balance(self) -> Decimal:
        return self.reconciliation.cleared_balance

    @property
    def register_balance(self) -> Decimal:
        """Cleared balance carried forward by everything still outstanding."""
        return (
            self.cleared_balance
            + self.uncleared_deposits.total
            - self.uncleared_payments.total
        )


def _line(candidate: TransactionCandidate) -> ReportLine:
    return ReportLine(
        transaction_id=candidate.transaction_id,
        transaction_date=candidate.transaction_date,
        description=candidate.description,
        reference=candidate.reference,
        amount=round_money(candidate.amount),
    )


def _section(title: str, candidates: list[TransactionCandidate]) -> ReportSection:
    ordered = sorted(candidates, key=candidate_sort_key)
    return ReportSection(title=title, lines=tuple(_line(c) for c in ordered))


class ReconciliationReportBuilder:
    """Assembles a ``ReconciliationReport`` from the database."""

    def __init__(self, session: Session):
        self._session = session
        self._selector = ReconciliationSelector(session)
        self._candidates = ReconciliationCandidateSelector(session)
        self._journal = JournalSelector(session)

    def build(self, company_id: UUID, reconciliation_id: UUID) -> ReconciliationReport:
        recon = self._selector.get(company_id, reconciliation_id)
        if recon is None:
            raise ReconciliationNotFoundError(str(reconciliation_id))
        account = self._session.get(BankAccountModel, recon.bank_account_id).to_dto()

        cleared_here = {
            (item.transaction_id, item.transaction_type)
            for item in self._selector.get_items(recon.id)
            if item.is_cleared
        }
        cleared_earlier = self._selector.cleared_transaction_ids(
            account.id, ending_before=recon.ending_date,
        )
        cleared_later = self._selector.cleared_transaction_ids(
            account.id, ending_after=recon.ending_date,
        )
        candidates = self._candidates.load_candidates(account, recon.ending_date)
        # Entries whose lines were stamped by a later period's finalize.
        entries_cleared_later = {
            c.journal_entry_id
            for c in candidates
            if c.is_ledger_line and c.transaction_id in cleared_later
        }
        reconciled_lines = {
            line.id
            for line in self._journal.get_lines(
                [c.transaction_id for c in candidates if c.is_ledger_line]
            )
            if line.is_reconciled
        }

        sections: dict[tuple[TransactionType, bool], list[TransactionCandidate]] = {
            (TransactionType.DEPOSIT, True): [],
            (TransactionType.PAYMENT, True): [],
            (TransactionType.DEPOSIT, False): [],
            (TransactionType.PAYMENT, False): [],
        }
        for candidate in candidates:
            if candidate.key in cleared_here:
                is_cleared = True
            elif candidate.transaction_id in cleared_earlier:
                continue
            else:
                is_cleared = (
                    candidate.transaction_id in reconciled_lines
                    and candidate.journal_entry_id not in entries_cleared_later
                )
            sections[(candidate.transaction_type, is_cleared)].append(candidate)

        return ReconciliationReport(
            reconciliation=recon,
            account_name=account.account_name,
            bank_name=account.bank_name,
            account_number_masked=account.account_number_masked,
            cleared_deposits=_section(
                "Cleared Deposits and Credits",
                sections[(TransactionType.DEPOSIT, True)],
            ),
            cleared_payments=_section(
                "Cleared Checks and Payments",
                sections[(TransactionType.PAYMENT, True)],
            ),
            uncleared_deposits=_section(
                "Uncleared Deposits and Credits",
                sections[(TransactionType.DEPOSIT, False)],
            ),
            uncleared_payments=_section(
                "Uncleared Checks and Payments",
                sections[(TransactionType.PAYMENT, False)],
            ),
        )
