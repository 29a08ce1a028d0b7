"""
Module: backoffice_kernel.models.account
Responsibility: Chart of accounts.  Journal lines post to an account, and a
    bank account names the cash account whose lines become its candidates.
Architecture position: Kernel > Models.  May import from db/base.py only.

Failure modes:
    - IntegrityError on a duplicate code within a company.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice_kernel.db.base import TrackedBase, UUIDString


class AccountType(str, Enum):
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class Account(TrackedBase):
    """
    A ledger account.  For the cash account behind a bank account, debits
    are deposits and credits are withdrawals.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_accounts_company_code"),
    )

    company_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)
    normal_balance: Mapped[NormalBalance] = mapped_column(String(10), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Account {self.code} {self.name}>"
