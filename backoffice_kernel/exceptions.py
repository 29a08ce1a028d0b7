"""
Typed exception hierarchy for the back office.

Every error is a class with a machine-readable ``code`` class attribute and
carries its context as attributes, so callers catch by type and APIs report
by code instead of parsing messages:

    try:
        service.finalize(context, worksheet)
    except BalanceMismatchError as e:
        notify(code=e.code, difference=e.difference)

Hierarchy:

    BackofficeError
    |
    +-- ReconciliationError
    |   +-- BankAccountNotFoundError
    |   +-- ReconciliationNotFoundError
    |   +-- MissingEndingBalanceError
    |   +-- BalanceMismatchError
    |   +-- CandidateNotFoundError
    |   +-- ReconciliationPersistenceError
    |
    +-- StorageError
    |   +-- StatementNotFoundError
    |   +-- InvalidSignatureError
    |
    +-- ConfigurationError

Error codes:

Category        | Code                        | When raised
----------------|-----------------------------|------------------------------------
Reconciliation  | BANK_ACCOUNT_NOT_FOUND      | Account missing or other company's
                | RECONCILIATION_NOT_FOUND    | Reconciliation id unknown
                | MISSING_ENDING_BALANCE      | Finalize without ending balance
                | BALANCE_MISMATCH            | Cleared != ending (beyond tolerance)
                | CANDIDATE_NOT_FOUND         | Toggle of a transaction not loaded
                | RECONCILIATION_PERSISTENCE  | Save/finalize write failed
----------------|-----------------------------|------------------------------------
Storage         | STATEMENT_NOT_FOUND         | Statement id or object key unknown
                | INVALID_SIGNATURE           | Signed URL tampered or expired
----------------|-----------------------------|------------------------------------
Configuration   | CONFIGURATION_ERROR         | Invalid configuration value
"""

from decimal import Decimal


class BackofficeError(Exception):
    """Base exception for all back-office errors."""

    code: str = "BACKOFFICE_ERROR"


# Reconciliation


class ReconciliationError(BackofficeError):
    """Base exception for bank reconciliation errors."""

    code: str = "RECONCILIATION_ERROR"


class BankAccountNotFoundError(ReconciliationError):
    """Bank account does not exist for the requesting company."""

    code: str = "BANK_ACCOUNT_NOT_FOUND"

    def __init__(self, bank_account_id: str, company_id: str):
        self.bank_account_id = bank_account_id
        self.company_id = company_id
        super().__init__(
            f"Bank account {bank_account_id} not found for company {company_id}"
        )


class ReconciliationNotFoundError(ReconciliationError):
    """Reconciliation with given ID was not found."""

    code: str = "RECONCILIATION_NOT_FOUND"

    def __init__(self, reconciliation_id: str):
        self.reconciliation_id = reconciliation_id
        super().__init__(f"Reconciliation not found: {reconciliation_id}")


class MissingEndingBalanceError(ReconciliationError):
    """Finalize attempted before an ending balance was entered."""

    code: str = "MISSING_ENDING_BALANCE"

    def __init__(self, bank_account_id: str):
        self.bank_account_id = bank_account_id
        super().__init__("Please enter an ending balance before reconciling")


class BalanceMismatchError(ReconciliationError):
    """Cleared balance does not match the statement ending balance."""

    code: str = "BALANCE_MISMATCH"

    def __init__(
        self,
        cleared_balance: Decimal,
        ending_balance: Decimal,
        difference: Decimal,
    ):
        self.cleared_balance = str(cleared_balance)
        self.ending_balance = str(ending_balance)
        self.difference = str(difference)
        super().__init__(
            f"Cleared balance {cleared_balance} does not match ending balance "
            f"{ending_balance} (difference {difference})"
        )


class CandidateNotFoundError(ReconciliationError):
    """Transaction is not among the loaded reconciliation candidates."""

    code: str = "CANDIDATE_NOT_FOUND"

    def __init__(self, transaction_id: str, transaction_type: str):
        self.transaction_id = transaction_id
        self.transaction_type = transaction_type
        super().__init__(
            f"No {transaction_type} candidate with id {transaction_id}"
        )


class ReconciliationPersistenceError(ReconciliationError):
    """A save or finalize write failed and was rolled back."""

    code: str = "RECONCILIATION_PERSISTENCE"

    def __init__(self, operation: str, bank_account_id: str, reason: str):
        self.operation = operation
        self.bank_account_id = bank_account_id
        self.reason = reason
        super().__init__(
            f"Failed to {operation} reconciliation for bank account "
            f"{bank_account_id}: {reason}"
        )


# Storage


class StorageError(BackofficeError):
    """Base exception for statement storage errors."""

    code: str = "STORAGE_ERROR"


class StatementNotFoundError(StorageError):
    """Bank statement row or stored object does not exist."""

    code: str = "STATEMENT_NOT_FOUND"

    def __init__(self, statement_ref: str):
        self.statement_ref = statement_ref
        super().__init__(f"Bank statement not found: {statement_ref}")


class InvalidSignatureError(StorageError):
    """A signed URL failed verification or has expired."""

    code: str = "INVALID_SIGNATURE"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid signed URL for {key}: {reason}")


# Configuration


class ConfigurationError(BackofficeError):
    """A configuration value failed validation."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid configuration for '{field}': {reason}")
