"""
Banking module: bank accounts, payments, statements and bank reconciliation.

Usage::

    from backoffice_modules.banking import ReconciliationContext, ReconciliationService
"""

from backoffice_modules.banking.config import ReconciliationConfig
from backoffice_modules.banking.models import (
    BankAccount,
    BankStatement,
    Payment,
    PaymentClearance,
    PaymentStatus,
    Reconciliation,
    ReconciliationContext,
    ReconciliationItem,
    ReconciliationStatus,
    ReconciliationWorksheet,
)
from backoffice_modules.banking.report import (
    ReconciliationReport,
    ReconciliationReportBuilder,
    ReportLine,
    ReportSection,
)
from backoffice_modules.banking.service import ReconciliationService
from backoffice_modules.banking.storage import LocalObjectStorage, ObjectStorage
from backoffice_modules.banking.workflows import (
    CLEARED_BALANCE_MATCHES_ENDING,
    ENDING_BALANCE_ENTERED,
    RECONCILIATION_WORKFLOW,
)

__all__ = [
    "CLEARED_BALANCE_MATCHES_ENDING",
    "ENDING_BALANCE_ENTERED",
    "RECONCILIATION_WORKFLOW",
    "BankAccount",
    "BankStatement",
    "LocalObjectStorage",
    "ObjectStorage",
    "Payment",
    "PaymentClearance",
    "PaymentStatus",
    "Reconciliation",
    "ReconciliationConfig",
    "ReconciliationContext",
    "ReconciliationItem",
    "ReconciliationReport",
    "ReconciliationReportBuilder",
    "ReconciliationService",
    "ReconciliationStatus",
    "ReconciliationWorksheet",
    "ReportLine",
    "ReportSection",
]
