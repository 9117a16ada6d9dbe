"""
Database models package.
"""

from banking.models.user import User
from banking.models.account import Account, AccountStatus, AccountType, STATUS_TRANSITIONS
from banking.models.transaction import Transaction, TransactionStatus, TransactionType

__all__ = [
    "User",
    "Account",
    "AccountStatus",
    "AccountType",
    "STATUS_TRANSITIONS",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
]
