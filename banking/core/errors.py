"""
Error taxonomy for the banking core.

Every failure a service can report is a subclass of BankingError carrying a
stable ``code`` so adapters can map it without inspecting messages.
"""

from typing import Any, Dict, Optional


class BankingError(Exception):
    """Base class for all domain errors."""

    code = "INTERNAL_ERROR"
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context: Dict[str, Any] = context
        super().__init__(self.message)


class InvalidRequest(BankingError):
    code = "INVALID_REQUEST"
    default_message = "Invalid request"


class InvalidAmount(InvalidRequest):
    code = "INVALID_AMOUNT"
    default_message = "Amount must be greater than zero with at most 2 decimal places"


class InvalidCredentials(BankingError):
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid username or password"


class DuplicateIdentity(BankingError):
    code = "DUPLICATE_IDENTITY"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field.capitalize()} already exists", field=field)


class NotFound(BankingError):
    code = "NOT_FOUND"
    default_message = "Resource not found"


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"
    default_message = "User not found"


class AccountNotFound(NotFound):
    code = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_number: Optional[str] = None):
        if account_number:
            super().__init__(f"Account {account_number} not found", account_number=account_number)
        else:
            super().__init__("Account not found")


class TransactionNotFound(NotFound):
    code = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: int):
        super().__init__(f"Transaction {transaction_id} not found", transaction_id=transaction_id)


class Forbidden(BankingError):
    code = "FORBIDDEN"
    default_message = "Access denied"


class AccountNotActive(BankingError):
    code = "ACCOUNT_NOT_ACTIVE"

    def __init__(self, account_number: str, status: str):
        super().__init__(
            f"Account {account_number} is {status}",
            account_number=account_number,
            status=status,
        )


class InsufficientFunds(BankingError):
    code = "INSUFFICIENT_FUNDS"

    def __init__(self, balance, required):
        super().__init__(
            f"Insufficient funds. Balance: {balance}, Required: {required}",
            balance=str(balance),
            required=str(required),
        )


class SameAccount(BankingError):
    code = "SAME_ACCOUNT"
    default_message = "Cannot transfer to the same account"


class CurrencyMismatch(BankingError):
    code = "CURRENCY_MISMATCH"

    def __init__(self, source: str, destination: str):
        super().__init__(
            f"Cannot transfer between {source} and {destination} accounts",
            source=source,
            destination=destination,
        )


class IllegalTransition(BankingError):
    code = "ILLEGAL_TRANSITION"

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot change account status from {current} to {requested}",
            current=current,
            requested=requested,
        )


class OperationTimeout(BankingError):
    code = "TIMEOUT"
    default_message = "Deadline exceeded before commit"


class InternalError(BankingError):
    code = "INTERNAL_ERROR"
    default_message = "Internal error"
