"""
Back-office Kernel

Persistence, logging, error and ledger primitives shared by the banking
module:
- Chart of accounts and double-entry journal
- Entry-level reconciliation flags on journal lines
- Structured JSON logging with request-scoped context
- Typed, code-carrying exceptions
"""

__version__ = "0.1.0"
