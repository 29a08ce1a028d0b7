"""Reconciliation workflow graph and worksheet value semantics."""

from dataclasses import FrozenInstanceError
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from backoffice_engines.reconciliation import (
    CandidateSource,
    TransactionCandidate,
    TransactionType,
    compute_balances,
)
from backoffice_modules.banking import (
    CLEARED_BALANCE_MATCHES_ENDING,
    RECONCILIATION_WORKFLOW,
    BankAccount,
    ReconciliationStatus,
    ReconciliationWorksheet,
)


class TestReconciliationWorkflow:

    def test_states_match_status_enum(self):
        assert set(RECONCILIATION_WORKFLOW.states) == {s.value for s in ReconciliationStatus}
        assert RECONCILIATION_WORKFLOW.initial_state == ReconciliationStatus.IN_PROGRESS.value

    def test_transition_endpoints_are_states(self):
        states = set(RECONCILIATION_WORKFLOW.states)
        for t in RECONCILIATION_WORKFLOW.transitions:
            assert t.from_state in states
            assert t.to_state in states

    def test_reconcile_is_guarded(self):
        for state in ("in_progress", "completed"):
            transition = RECONCILIATION_WORKFLOW.transition_for(state, "reconcile")
            assert transition.to_state == "completed"
            assert transition.guard is CLEARED_BALANCE_MATCHES_ENDING

    def test_completed_cannot_be_saved(self):
        assert RECONCILIATION_WORKFLOW.transition_for("completed", "save") is None


def _worksheet(cleared: bool, ending_balance: Decimal | None) -> ReconciliationWorksheet:
    candidates = (
        TransactionCandidate(
            transaction_id=uuid4(),
            transaction_type=TransactionType.DEPOSIT,
            source=CandidateSource.LEDGER_LINE,
            transaction_date=date(2025, 1, 10),
            amount=Decimal("500.00"),
            journal_entry_id=uuid4(),
            cleared=cleared,
        ),
        TransactionCandidate(
            transaction_id=uuid4(),
            transaction_type=TransactionType.PAYMENT,
            source=CandidateSource.PAYMENT,
            transaction_date=date(2025, 1, 15),
            amount=Decimal("200.00"),
            cleared=cleared,
        ),
    )
    return ReconciliationWorksheet(
        bank_account=BankAccount(id=uuid4(), company_id=uuid4(), account_name="Operating"),
        beginning_balance=Decimal("1000.00"),
        beginning_date=date(2024, 12, 31),
        ending_date=date(2025, 1, 31),
        ending_balance=ending_balance,
        candidates=candidates,
        balances=compute_balances(
            beginning_balance=Decimal("1000.00"),
            ending_balance=ending_balance,
            candidates=candidates,
        ),
    )


class TestReconciliationWorksheet:

    def test_partitions(self):
        ws = _worksheet(cleared=True, ending_balance=Decimal("1300.00"))

        assert [c.transaction_type for c in ws.deposits] == [TransactionType.DEPOSIT]
        assert [c.transaction_type for c in ws.payments] == [TransactionType.PAYMENT]
        assert len(ws.cleared_candidates) == 2
        assert ws.can_finalize

    def test_cannot_finalize_without_ending_balance(self):
        assert not _worksheet(cleared=True, ending_balance=None).can_finalize

    def test_cannot_finalize_when_unbalanced(self):
        assert not _worksheet(cleared=False, ending_balance=Decimal("1300.00")).can_finalize

    def test_immutable_and_evolve(self):
        ws = _worksheet(cleared=False, ending_balance=None)

        with pytest.raises(FrozenInstanceError):
            ws.notes = "x"
        evolved = ws.evolve(notes="x")
        assert evolved.notes == "x"
        assert ws.notes is None
        assert evolved.candidates == ws.candidates
