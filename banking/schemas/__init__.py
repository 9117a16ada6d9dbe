"""
Pydantic schemas package.
"""

from banking.schemas.account import AccountCreate, AccountResponse, AccountBalance
from banking.schemas.transaction import (
    MoneyRequest, TransferRequest, TransactionResponse, TransferResponse, TransactionPage,
)
from banking.schemas.user import (
    UserCreate, LoginRequest, PasswordChange, ProfileUpdate, UserResponse, TokenResponse,
)

__all__ = [
    "AccountCreate",
    "AccountResponse",
    "AccountBalance",
    "MoneyRequest",
    "TransferRequest",
    "TransactionResponse",
    "TransferResponse",
    "TransactionPage",
    "UserCreate",
    "LoginRequest",
    "PasswordChange",
    "ProfileUpdate",
    "UserResponse",
    "TokenResponse",
]
