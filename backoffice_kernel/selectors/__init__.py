"""Read-only query selectors for the back-office kernel."""

from backoffice_kernel.selectors.base import BaseSelector
from backoffice_kernel.selectors.journal_selector import (
    JournalEntryDTO,
    JournalLineDTO,
    JournalSelector,
)

__all__ = ["BaseSelector", "JournalEntryDTO", "JournalLineDTO", "JournalSelector"]
