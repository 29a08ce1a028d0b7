"""
Tests for LineReconciliationService.

Reconciled flags are written per journal entry: touching any line of an
entry sets the same state on all of its lines.
"""

from datetime import date
from uuid import uuid4

from backoffice_kernel.models.journal import LineSide
from backoffice_kernel.selectors.journal_selector import JournalSelector
from backoffice_kernel.services.line_reconciliation_service import (
    LineReconciliationService,
)


class TestSetEntriesReconciled:

    def test_reconciles_every_line_of_entry(
        self, session, deterministic_clock, test_actor_id, deposit_entry, cash_line,
    ):
        entry = deposit_entry("500.00", date(2025, 1, 10))
        svc = LineReconciliationService(session, deterministic_clock)

        touched = svc.set_entries_reconciled([cash_line(entry).id], True, test_actor_id)

        assert touched == {entry.id}
        dto = JournalSelector(session).get_entry(entry.id)
        assert dto.is_fully_reconciled
        for line in dto.lines:
            assert line.reconciled_at is not None
            assert line.reconciled_by_id == test_actor_id

    def test_unreconcile_clears_stamps(
        self, session, deterministic_clock, test_actor_id, deposit_entry, cash_line,
    ):
        entry = deposit_entry("500.00", date(2025, 1, 10))
        svc = LineReconciliationService(session, deterministic_clock)
        svc.set_entries_reconciled([cash_line(entry).id], True, test_actor_id)

        svc.set_entries_reconciled([cash_line(entry).id], False, test_actor_id)

        dto = JournalSelector(session).get_entry(entry.id)
        assert not any(line.is_reconciled for line in dto.lines)
        assert all(line.reconciled_at is None for line in dto.lines)
        assert all(line.reconciled_by_id is None for line in dto.lines)

    def test_other_entries_untouched(
        self, session, test_actor_id, deposit_entry, withdrawal_entry, cash_line,
    ):
        deposit = deposit_entry("500.00", date(2025, 1, 10))
        withdrawal = withdrawal_entry("60.00", date(2025, 1, 12))
        svc = LineReconciliationService(session)

        svc.set_entries_reconciled([cash_line(deposit).id], True, test_actor_id)

        dto = JournalSelector(session).get_entry(withdrawal.id)
        assert not any(line.is_reconciled for line in dto.lines)

    def test_several_lines_of_one_entry_resolve_once(
        self, session, test_actor_id, post_entry, cash_account, revenue_account,
    ):
        entry = post_entry(date(2025, 1, 10), [
            (cash_account, LineSide.DEBIT, "300.00", "Draw 1"),
            (cash_account, LineSide.DEBIT, "200.00", "Draw 2"),
            (revenue_account, LineSide.CREDIT, "500.00", None),
        ])
        svc = LineReconciliationService(session)
        cash_ids = [line.id for line in entry.lines if line.account_id == cash_account.id]

        assert svc.resolve_entry_ids(cash_ids) == {entry.id}
        assert svc.set_entries_reconciled(cash_ids, True, test_actor_id) == {entry.id}
        assert JournalSelector(session).get_entry(entry.id).is_fully_reconciled

    def test_unknown_and_empty_ids(self, session, test_actor_id):
        svc = LineReconciliationService(session)

        assert svc.set_entries_reconciled([], True, test_actor_id) == set()
        assert svc.set_entries_reconciled([uuid4()], True, test_actor_id) == set()

    def test_logs_entry_count(
        self, session, test_actor_id, deposit_entry, cash_line, captured_logs,
    ):
        entry = deposit_entry("500.00", date(2025, 1, 10))

        LineReconciliationService(session).set_entries_reconciled(
            [cash_line(entry).id], True, test_actor_id,
        )

        (record,) = [
            r for r in captured_logs() if r["message"] == "journal_entries_reconciled"
        ]
        assert record["entry_count"] == 1
        assert record["line_count"] == 2
