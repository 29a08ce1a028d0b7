"""
LineReconciliationService -- entry-level reconciled flags on journal lines.

Responsibility:
    Given journal line ids, resolve their distinct parent entries and set
    ``is_reconciled`` / ``reconciled_at`` / ``reconciled_by_id`` on every
    line of those entries in one bulk UPDATE.  A journal entry, not a line,
    is the unit of bank reconciliation: when the cash line of a deposit
    clears, the revenue line of the same entry is reconciled with it.

Architecture position:
    Kernel > Services.  Called from the banking module when a candidate is
    toggled and when a reconciliation is finalized, so both call sites share
    one fan-out rule.

Invariants enforced:
    - All lines of an affected entry end in the same reconciled state.
    - reconciled_at / reconciled_by_id are set when reconciling and nulled
      when un-reconciling.
    - Flush only; the caller commits or rolls back.

Failure modes:
    - SQLAlchemyError from the UPDATE propagates to the caller.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.journal import JournalLine

logger = get_logger("services.line_reconciliation")


class LineReconciliationService:
    """
    Sets reconciled flags at journal-entry granularity.

    Contract:
        ``set_entries_reconciled`` returns the set of parent entry ids it
        touched.  Unknown line ids are ignored.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()

    def resolve_entry_ids(self, line_ids: Iterable[UUID]) -> set[UUID]:
        """Distinct parent entry ids for the given line ids."""
        ids = list(set(line_ids))
        if not ids:
            return set()
        rows = self.session.execute(
            select(JournalLine.journal_entry_id)
            .where(JournalLine.id.in_(ids))
            .distinct()
        ).scalars()
        return set(rows)

    def set_entries_reconciled(
        self,
        line_ids: Iterable[UUID],
        reconciled: bool,
        actor_id: UUID,
    ) -> set[UUID]:
        """
        Set the reconciled state on every line of the lines' parent entries.

        Args:
            line_ids: Journal line ids that were cleared or uncleared.
            reconciled: Target state.
            actor_id: User performing the reconciliation.

        Returns:
            Parent journal entry ids that were updated.
        """
        entry_ids = self.resolve_entry_ids(line_ids)
        if not entry_ids:
            return entry_ids

        if reconciled:
            values = {
                "is_reconciled": True,
                "reconciled_at": self._clock.now(),
                "reconciled_by_id": actor_id,
            }
        else:
            values = {
                "is_reconciled": False,
                "reconciled_at": None,
                "reconciled_by_id": None,
            }

        result = self.session.execute(
            update(JournalLine)
            .where(JournalLine.journal_entry_id.in_(entry_ids))
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        self.session.flush()

        logger.info(
            "journal_entries_reconciled" if reconciled else "journal_entries_unreconciled",
            extra={
                "entry_count": len(entry_ids),
                "line_count": result.rowcount,
                "actor_id": str(actor_id),
            },
        )
        return entry_ids
