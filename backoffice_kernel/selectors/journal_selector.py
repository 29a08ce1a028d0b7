"""
Module: backoffice_kernel.selectors.journal_selector
Responsibility: Journal entries and lines as read by reconciliation,
    reconciliation stamp included.
Architecture position: Kernel > Selectors.

Failure modes:
    - Missing rows yield None or are left out of the result list.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice_kernel.models.journal import (
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    LineSide,
)
from backoffice_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class JournalLineDTO:
    id: UUID
    journal_entry_id: UUID
    account_id: UUID
    side: LineSide
    amount: Decimal
    line_memo: str | None
    is_reconciled: bool
    reconciled_at: datetime | None
    reconciled_by_id: UUID | None

    @classmethod
    def from_row(cls, row: JournalLine) -> JournalLineDTO:
        return cls(
            id=row.id,
            journal_entry_id=row.journal_entry_id,
            account_id=row.account_id,
            side=LineSide(row.side),
            amount=row.amount,
            line_memo=row.line_memo,
            is_reconciled=row.is_reconciled,
            reconciled_at=row.reconciled_at,
            reconciled_by_id=row.reconciled_by_id,
        )


@dataclass(frozen=True)
class JournalEntryDTO:
    id: UUID
    effective_date: date
    status: JournalEntryStatus
    reference: str | None
    lines: tuple[JournalLineDTO, ...]

    @property
    def is_fully_reconciled(self) -> bool:
        return bool(self.lines) and all(line.is_reconciled for line in self.lines)


class JournalSelector(BaseSelector[JournalEntry]):

    def __init__(self, session: Session):
        super().__init__(session)

    def get_entry(self, journal_entry_id: UUID) -> JournalEntryDTO | None:
        """The entry with its lines in ``line_seq`` order."""
        entry = self.session.get(JournalEntry, journal_entry_id)
        if entry is None:
            return None
        return JournalEntryDTO(
            id=entry.id,
            effective_date=entry.effective_date,
            status=JournalEntryStatus(entry.status),
            reference=entry.reference,
            lines=tuple(JournalLineDTO.from_row(line) for line in entry.lines),
        )

    def get_lines(self, line_ids: list[UUID]) -> list[JournalLineDTO]:
        if not line_ids:
            return []
        rows = self.session.execute(
            select(JournalLine).where(JournalLine.id.in_(line_ids))
        ).scalars()
        return [JournalLineDTO.from_row(row) for row in rows]
