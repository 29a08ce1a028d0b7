"""
Pytest fixtures for the back-office test suite.

Provides:
- One engine and schema per test session
- A per-test session whose commits release savepoints inside an outer
  transaction that is rolled back at teardown
- Deterministic ids, clock, and ledger/bank data builders
- Captured structured logs

Data fixtures commit (release their savepoint) so that a service rolling
back a failed operation never discards them.

Environment Variables:
- DATABASE_URL: SQLAlchemy URL of the test database.  Defaults to an
  in-memory SQLite database; point it at PostgreSQL to run the suite
  against the production dialect.
"""

import json
import logging
import os
from collections.abc import Generator
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import UUID

import pytest
from sqlalchemy.orm import Session

from backoffice_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from backoffice_kernel.domain.clock import DeterministicClock
from backoffice_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from backoffice_kernel.models.account import Account, AccountType, NormalBalance
from backoffice_kernel.models.journal import (
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    LineSide,
)
from backoffice_modules.banking import ReconciliationContext, ReconciliationService
from backoffice_modules.banking.orm import BankAccountModel, PaymentModel

DEFAULT_DATABASE_URL = "sqlite://"

# Deterministic ids shared by fixtures and tests
TEST_ACTOR_ID = UUID("00000000-0000-4000-a000-000000000001")
TEST_COMPANY_ID = UUID("00000000-0000-4000-a000-000000000100")
OTHER_COMPANY_ID = UUID("00000000-0000-4000-a000-000000000200")
TEST_BANK_ACCOUNT_ID = UUID("00000000-0000-4000-a000-000000000010")


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """JSON logging at DEBUG for the whole run, so engine traces are emitted."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture backoffice logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            ...
            assert any(r["message"] == "reconciliation_save_completed"
                       for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("backoffice")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end."""
    create_tables()
    yield
    drop_tables()


@pytest.fixture
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """
    Database session joined to an outer transaction.

    ``session.commit()`` inside a test releases a savepoint; the outer
    transaction is rolled back at teardown, undoing everything.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(
        bind=conn,
        join_transaction_mode="create_savepoint",
        expire_on_commit=False,
    )
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


# =============================================================================
# Identity, clock and service fixtures
# =============================================================================


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


@pytest.fixture
def test_company_id() -> UUID:
    return TEST_COMPANY_ID


@pytest.fixture
def other_company_id() -> UUID:
    return OTHER_COMPANY_ID


@pytest.fixture
def context() -> ReconciliationContext:
    return ReconciliationContext(company_id=TEST_COMPANY_ID, actor_id=TEST_ACTOR_ID)


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


@pytest.fixture
def service(session, deterministic_clock) -> ReconciliationService:
    return ReconciliationService(session, clock=deterministic_clock)


# =============================================================================
# Ledger and bank data
# =============================================================================


def _account(session, code, name, account_type, normal_balance) -> Account:
    account = Account(
        company_id=TEST_COMPANY_ID,
        code=code,
        name=name,
        account_type=account_type.value,
        normal_balance=normal_balance.value,
        created_by_id=TEST_ACTOR_ID,
    )
    session.add(account)
    session.commit()
    return account


@pytest.fixture
def cash_account(session) -> Account:
    return _account(session, "1000", "Operating Cash", AccountType.ASSET, NormalBalance.DEBIT)


@pytest.fixture
def revenue_account(session) -> Account:
    return _account(session, "4000", "Contract Revenue", AccountType.REVENUE, NormalBalance.CREDIT)


@pytest.fixture
def expense_account(session) -> Account:
    return _account(session, "6000", "Job Materials", AccountType.EXPENSE, NormalBalance.DEBIT)


@pytest.fixture
def bank_account(session, cash_account) -> BankAccountModel:
    """Operating account linked to the cash ledger account, 1000.00 as of 2024-12-31."""
    account = BankAccountModel(
        id=TEST_BANK_ACCOUNT_ID,
        company_id=TEST_COMPANY_ID,
        account_name="Operating",
        bank_name="First Builders Bank",
        account_number_masked="****4321",
        ledger_account_id=cash_account.id,
        current_balance=Decimal("1000.00"),
        balance_date=date(2024, 12, 31),
        is_active=True,
        created_by_id=TEST_ACTOR_ID,
    )
    session.add(account)
    session.commit()
    return account


@pytest.fixture
def post_entry(session):
    """
    Factory for journal entries.

    Usage::

        entry = post_entry(date(2025, 1, 5), [
            (cash_account, LineSide.DEBIT, "500.00", "Draw 3"),
            (revenue_account, LineSide.CREDIT, "500.00", None),
        ], reference="DEP-1")
    """

    def _post(
        effective_date: date,
        lines,
        reference: str | None = None,
        status: JournalEntryStatus = JournalEntryStatus.POSTED,
    ) -> JournalEntry:
        entry = JournalEntry(
            company_id=TEST_COMPANY_ID,
            effective_date=effective_date,
            status=status.value,
            actor_id=TEST_ACTOR_ID,
            reference=reference,
            created_by_id=TEST_ACTOR_ID,
        )
        for seq, (account, side, amount, memo) in enumerate(lines):
            entry.lines.append(
                JournalLine(
                    account_id=account.id,
                    side=side.value,
                    amount=Decimal(amount),
                    line_memo=memo,
                    line_seq=seq,
                    created_by_id=TEST_ACTOR_ID,
                )
            )
        session.add(entry)
        session.commit()
        return entry

    return _post


@pytest.fixture
def deposit_entry(post_entry, cash_account, revenue_account):
    """Factory for a two-line deposit: Dr cash / Cr revenue."""

    def _deposit(amount: str, effective_date: date, memo: str | None = None,
                 reference: str | None = None) -> JournalEntry:
        return post_entry(effective_date, [
            (cash_account, LineSide.DEBIT, amount, memo),
            (revenue_account, LineSide.CREDIT, amount, memo),
        ], reference=reference)

    return _deposit


@pytest.fixture
def withdrawal_entry(post_entry, cash_account, expense_account):
    """Factory for a two-line withdrawal: Dr expense / Cr cash."""

    def _withdrawal(amount: str, effective_date: date, memo: str | None = None,
                    reference: str | None = None) -> JournalEntry:
        return post_entry(effective_date, [
            (expense_account, LineSide.DEBIT, amount, memo),
            (cash_account, LineSide.CREDIT, amount, memo),
        ], reference=reference)

    return _withdrawal


@pytest.fixture
def make_payment(session, bank_account):
    """Factory for payment records drawn on ``bank_account``."""

    def _payment(
        amount: str,
        payment_date: date,
        payment_number: str | None = None,
        payment_method: str | None = "Check",
    ) -> PaymentModel:
        payment = PaymentModel(
            company_id=TEST_COMPANY_ID,
            bank_account_id=bank_account.id,
            payment_number=payment_number,
            payment_date=payment_date,
            amount=Decimal(amount),
            payment_method=payment_method,
            status="issued",
            created_by_id=TEST_ACTOR_ID,
        )
        session.add(payment)
        session.commit()
        return payment

    return _payment


@pytest.fixture
def cash_line(cash_account):
    """Returns the line of an entry that hits the cash account."""

    def _cash_line(entry: JournalEntry) -> JournalLine:
        return next(line for line in entry.lines if line.account_id == cash_account.id)

    return _cash_line
