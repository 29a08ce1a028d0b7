"""
Module: backoffice_kernel.models.journal
Responsibility: Journal entries and their lines, including the line-level
    reconciliation stamp written by bank reconciliation.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Line amounts are positive; ``side`` says whether a line debits or
      credits its account.
    - ``is_reconciled`` / ``reconciled_at`` / ``reconciled_by_id`` are stored
      per line but written for a whole entry at a time by
      ``backoffice_kernel.services.line_reconciliation_service``.

Failure modes:
    - IntegrityError on a line whose entry or account does not exist.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import TrackedBase, UUIDString


class JournalEntryStatus(str, Enum):
    DRAFT = "draft"
    POSTED = "posted"
    REVERSED = "reversed"


class LineSide(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class JournalEntry(TrackedBase):
    """
    Entry header.  The entry, not the line, is what a reconciliation
    checkbox reconciles; only POSTED entries are offered as candidates.
    """

    __tablename__ = "journal_entries"
    __table_args__ = (
        Index("ix_journal_entries_company_date", "company_id", "effective_date"),
        Index("ix_journal_entries_status", "status"),
    )

    company_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[JournalEntryStatus] = mapped_column(
        String(10), nullable=False, default=JournalEntryStatus.DRAFT,
    )
    posted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    # Check number, deposit slip number
    reference: Mapped[str | None] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(String(500))

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_seq",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.id} {self.effective_date} {self.status}>"


class JournalLine(TrackedBase):
    """One debit or credit against one account."""

    __tablename__ = "journal_lines"
    __table_args__ = (
        Index("ix_journal_lines_entry", "journal_entry_id"),
        Index("ix_journal_lines_account_side", "account_id", "side"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=False,
    )
    account_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("accounts.id"), nullable=False,
    )
    side: Mapped[LineSide] = mapped_column(String(10), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    line_memo: Mapped[str | None] = mapped_column(String(500))
    line_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_reconciled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reconciled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reconciled_by_id: Mapped[UUID | None] = mapped_column(UUIDString())

    entry: Mapped[JournalEntry] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return f"<JournalLine {self.side} {self.amount} {self.currency}>"
