"""Tests for the reconciliation report."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from backoffice_engines.reconciliation import TransactionType
from backoffice_kernel.exceptions import ReconciliationNotFoundError
from backoffice_kernel.services.line_reconciliation_service import (
    LineReconciliationService,
)
from backoffice_modules.banking import ReconciliationContext

JAN_31 = date(2025, 1, 31)
FEB_28 = date(2025, 2, 28)


@pytest.fixture
def january(service, context, bank_account, deposit_entry, make_payment, cash_line):
    """January finalized with the deposit and check 1001 cleared; 1002 outstanding."""
    entry = deposit_entry("500.00", date(2025, 1, 10), memo="Draw 3", reference="DEP-1")
    cleared_check = make_payment("200.00", date(2025, 1, 15), payment_number="1001")
    outstanding = make_payment("10.00", date(2025, 1, 20), payment_number="1002")

    ws = service.start(context, bank_account.id, JAN_31, Decimal("1300.00"))
    ws = service.set_cleared(context, ws, cleared_check.id, TransactionType.PAYMENT, True)
    ws = service.set_cleared(context, ws, cash_line(entry).id, TransactionType.DEPOSIT, True)
    recon = service.finalize(context, ws)
    return {
        "recon": recon,
        "deposit_line": cash_line(entry),
        "cleared_check": cleared_check,
        "outstanding": outstanding,
    }


class TestReconciliationReport:

    def test_header_and_balances(self, service, context, january):
        report = service.build_report(context, january["recon"].id)

        assert report.account_name == "Operating"
        assert report.bank_name == "First Builders Bank"
        assert report.account_number_masked == "****4321"
        assert report.beginning_balance == Decimal("1000.00")
        assert report.beginning_date == date(2024, 12, 31)
        assert report.ending_balance == Decimal("1300.00")
        assert report.ending_date == JAN_31
        assert report.cleared_balance == Decimal("1300.00")

    def test_sections(self, service, context, january):
        report = service.build_report(context, january["recon"].id)

        assert report.cleared_deposits.title == "Cleared Deposits and Credits"
        assert [line.transaction_id for line in report.cleared_deposits.lines] == [
            january["deposit_line"].id,
        ]
        assert report.cleared_deposits.lines[0].description == "Deposit #Draw 3"
        assert [line.transaction_id for line in report.cleared_payments.lines] == [
            january["cleared_check"].id,
        ]
        assert report.uncleared_deposits.lines == ()
        assert [line.reference for line in report.uncleared_payments.lines] == ["1002"]

        assert report.cleared_deposits.total == Decimal("500.00")
        assert report.cleared_payments.total == Decimal("200.00")
        assert report.uncleared_payments.total == Decimal("10.00")
        assert report.register_balance == Decimal("1290.00")

    def test_later_transactions_excluded(self, service, context, january, make_payment):
        make_payment("99.00", date(2025, 2, 5), payment_number="1003")

        report = service.build_report(context, january["recon"].id)

        assert [line.reference for line in report.uncleared_payments.lines] == ["1002"]

    def test_later_period_does_not_change_report(
        self, service, context, january, bank_account,
    ):
        before = service.build_report(context, january["recon"].id)

        ws = service.start(context, bank_account.id, FEB_28, Decimal("1290.00"))
        ws = service.set_cleared(
            context, ws, january["outstanding"].id, TransactionType.PAYMENT, True,
        )
        february = service.finalize(context, ws)

        jan_report = service.build_report(context, january["recon"].id)
        feb_report = service.build_report(context, february.id)

        assert jan_report == before
        assert [line.reference for line in jan_report.uncleared_payments.lines] == ["1002"]
        assert jan_report.register_balance == Decimal("1290.00")
        assert [line.transaction_id for line in feb_report.cleared_payments.lines] == [
            january["outstanding"].id,
        ]
        # Cleared in January, so left out of February entirely.
        assert feb_report.cleared_deposits.lines == ()
        assert feb_report.uncleared_payments.lines == ()

    def test_ledger_line_cleared_next_period_stays_outstanding(
        self, service, context, january, bank_account, withdrawal_entry, cash_line,
    ):
        fee = withdrawal_entry("25.00", date(2025, 1, 28), memo="Bank fee")
        ws = service.start(context, bank_account.id, FEB_28, Decimal("1265.00"))
        for candidate in ws.candidates:
            ws = service.set_cleared(
                context, ws, candidate.transaction_id, candidate.transaction_type, True,
            )
        service.finalize(context, ws)

        report = service.build_report(context, january["recon"].id)

        assert [line.transaction_id for line in report.uncleared_payments.lines] == [
            january["outstanding"].id,
            cash_line(fee).id,
        ]
        assert report.register_balance == Decimal("1265.00")

    def test_reconciled_ledger_line_counts_as_cleared(
        self, session, service, context, january, withdrawal_entry, cash_line,
    ):
        entry = withdrawal_entry("25.00", date(2025, 1, 25), memo="Bank fee")
        LineReconciliationService(session).set_entries_reconciled(
            [cash_line(entry).id], True, context.actor_id,
        )
        session.commit()

        report = service.build_report(context, january["recon"].id)

        descriptions = [line.description for line in report.cleared_payments.lines]
        assert "Journal Entry - Bank fee" in descriptions

    def test_logs_section_counts(self, service, context, january, captured_logs):
        service.build_report(context, january["recon"].id)

        (record,) = [
            r for r in captured_logs() if r["message"] == "reconciliation_report_built"
        ]
        assert record["cleared_deposit_count"] == 1
        assert record["uncleared_payment_count"] == 1
        assert record["reconciliation_id"] == str(january["recon"].id)

    def test_unknown_reconciliation(self, service, context):
        with pytest.raises(ReconciliationNotFoundError):
            service.build_report(context, uuid4())

    def test_other_company_cannot_read(
        self, service, january, other_company_id, test_actor_id,
    ):
        foreign = ReconciliationContext(company_id=other_company_id, actor_id=test_actor_id)
        with pytest.raises(ReconciliationNotFoundError):
            service.build_report(foreign, january["recon"].id)


class TestGetReconciliation:

    def test_returns_dto(self, service, context, january):
        recon = service.get_reconciliation(context, january["recon"].id)
        assert recon.id == january["recon"].id
        assert recon.ending_date == JAN_31

    def test_unknown(self, service, context):
        with pytest.raises(ReconciliationNotFoundError) as exc_info:
            service.get_reconciliation(context, uuid4())
        assert exc_info.value.code == "RECONCILIATION_NOT_FOUND"
