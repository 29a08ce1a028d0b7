"""Structured JSON logging: formatter output, LogContext, configure_logging."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from backoffice_kernel.exceptions import BalanceMismatchError
from backoffice_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)

log = get_logger("logging_test")


@pytest.fixture(autouse=True)
def _isolated_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    # Back to the suite-wide configuration from conftest.
    configure_logging(level=logging.DEBUG)


def _json_handler() -> tuple[logging.Handler, StringIO]:
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setFormatter(StructuredFormatter())
    return handler, buffer


@pytest.fixture
def emitted():
    """Configure logging into a buffer; calling the fixture returns parsed records."""

    def _install(level=logging.INFO):
        handler, buffer = _json_handler()
        configure_logging(handler=handler, level=level)
        return lambda: [
            json.loads(line) for line in buffer.getvalue().splitlines() if line
        ]

    return _install


class TestRecordShape:

    def test_envelope(self, emitted):
        records = emitted()
        log.info("reconciliation_started")

        (record,) = records()
        assert record["level"] == "INFO"
        assert record["message"] == "reconciliation_started"
        assert record["logger"] == "backoffice.logging_test"
        assert record["ts"].endswith("+00:00")

    def test_extra_mapping_is_flattened(self, emitted):
        records = emitted()
        log.info("saved", extra={"candidate_count": 3, "status": "in_progress"})

        (record,) = records()
        assert (record["candidate_count"], record["status"]) == (3, "in_progress")

    def test_non_json_values_rendered_as_text(self, emitted):
        records = emitted()
        entry_id = uuid4()
        log.info("typed", extra={
            "entry_id": entry_id,
            "ending_date": date(2025, 1, 31),
            "amount": Decimal("1.10"),
        })

        (record,) = records()
        assert record["entry_id"] == str(entry_id)
        assert record["ending_date"] == "2025-01-31"
        assert record["amount"] == "1.10"

    def test_context_fields_appear_only_when_set(self, emitted):
        records = emitted()
        log.info("before")
        with LogContext.bind(company_id="co-1", bank_account_id="ba-1"):
            log.info("inside")

        before, inside = records()
        assert "company_id" not in before
        assert (inside["company_id"], inside["bank_account_id"]) == ("co-1", "ba-1")
        assert "reconciliation_id" not in inside

    def test_plain_exception(self, emitted):
        records = emitted()
        try:
            raise ValueError("boom")
        except ValueError:
            log.error("failed", exc_info=True)

        (record,) = records()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_backoffice_error_code_and_attributes(self, emitted):
        records = emitted()
        try:
            raise BalanceMismatchError(Decimal("1500.00"), Decimal("1300.00"), Decimal("200.00"))
        except BalanceMismatchError:
            log.warning("finalize_rejected", exc_info=True)

        (record,) = records()
        assert record["exc_code"] == "BALANCE_MISMATCH"
        assert record["exc_cleared_balance"] == "1500.00"
        assert record["exc_difference"] == "200.00"


class TestLevels:

    def test_info_default_drops_debug(self, emitted):
        records = emitted()
        log.debug("hidden")
        log.info("shown")
        log.warning("also_shown")

        assert [r["message"] for r in records()] == ["shown", "also_shown"]

    @pytest.mark.parametrize("level", [logging.DEBUG, "DEBUG"])
    def test_level_by_number_or_name(self, emitted, level):
        records = emitted(level=level)
        get_logger("modules.banking.service").debug("nested_debug")

        (record,) = records()
        assert record["logger"] == "backoffice.modules.banking.service"

    def test_second_configure_is_ignored(self):
        first, _ = _json_handler()
        second, _ = _json_handler()
        configure_logging(handler=first)
        configure_logging(handler=second)

        assert logging.getLogger("backoffice").handlers == [first]

    def test_reset_allows_reconfiguration(self):
        first, _ = _json_handler()
        second, _ = _json_handler()
        configure_logging(handler=first)
        reset_logging()
        configure_logging(handler=second)

        assert logging.getLogger("backoffice").handlers == [second]


class TestLogContext:

    def test_set_stringifies_and_ignores_none(self):
        company_id = uuid4()
        LogContext.set(company_id=company_id, actor_id=None)

        assert LogContext.get_all() == {"company_id": str(company_id)}

    def test_every_field_settable(self):
        fields = ["correlation_id", "company_id", "actor_id", "bank_account_id", "reconciliation_id"]
        LogContext.set(**{name: name.upper() for name in fields})

        assert sorted(LogContext.get_all()) == sorted(fields)
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_nested_bind_restores_outer_value(self):
        LogContext.set(reconciliation_id="outer")
        with LogContext.bind(reconciliation_id="inner", bank_account_id="ba"):
            assert LogContext.get_all()["reconciliation_id"] == "inner"

        assert LogContext.get_all() == {"reconciliation_id": "outer"}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="payment_id"):
            LogContext.set(payment_id="p-1")
