"""Services for the back-office kernel (write side)."""

from backoffice_kernel.services.line_reconciliation_service import (
    LineReconciliationService,
)

__all__ = ["LineReconciliationService"]
