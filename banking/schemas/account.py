"""
Pydantic schemas for Account API requests and responses.
"""

from pydantic import BaseModel, Field, ConfigDict
from decimal import Decimal
from datetime import datetime

from banking.models.account import AccountStatus, AccountType


class AccountCreate(BaseModel):
    """Schema for opening a new account for the caller."""
    account_type: str = Field(default=AccountType.SAVINGS.value, min_length=1, max_length=50, description="SAVINGS, CHECKING, MONEY_MARKET, ...")
    initial_balance: Decimal = Field(default=Decimal("0.00"), ge=0, description="Initial account balance")
    currency: str = Field(default="USD", min_length=3, max_length=3, description="ISO 4217 currency code")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "account_type": "SAVINGS",
                "initial_balance": 1000.00,
                "currency": "USD"
            }
        }
    )


class AccountResponse(BaseModel):
    """Schema for account response."""
    id: int
    user_id: int
    account_number: str
    account_type: str
    balance: Decimal
    currency: str
    status: AccountStatus
    created_date: datetime
    updated_date: datetime

    model_config = ConfigDict(from_attributes=True)


class AccountBalance(BaseModel):
    """Schema for account balance response."""
    account_number: str
    balance: Decimal
    currency: str

    model_config = ConfigDict(from_attributes=True)
