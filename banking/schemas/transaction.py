"""
Pydantic schemas for Transaction API requests and responses.
"""

from pydantic import BaseModel, Field, ConfigDict
from decimal import Decimal
from datetime import datetime
from typing import List, Optional

from banking.models.transaction import Transaction, TransactionStatus, TransactionType


class MoneyRequest(BaseModel):
    """Schema for a deposit or withdrawal."""
    account_number: str = Field(..., min_length=1, max_length=20, description="Target account number")
    amount: Decimal = Field(..., gt=0, description="Amount (must be positive, at most 2 decimal places)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "account_number": "ACC1234567890",
                "amount": 100.00
            }
        }
    )


class TransferRequest(BaseModel):
    """Schema for initiating a transfer."""
    from_account_number: str = Field(..., min_length=1, max_length=20, description="Source account number")
    to_account_number: str = Field(..., min_length=1, max_length=20, description="Destination account number")
    amount: Decimal = Field(..., gt=0, description="Transfer amount (must be positive)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "from_account_number": "ACC1234567890",
                "to_account_number": "ACC9876543210",
                "amount": 250.00
            }
        }
    )


class TransactionResponse(BaseModel):
    """Schema for one ledger entry."""
    id: int
    account_id: int
    account_number: str
    kind: TransactionType
    amount: Decimal
    balance_after: Decimal
    description: Optional[str]
    timestamp: datetime
    status: TransactionStatus

    @classmethod
    def from_row(cls, row: Transaction, account_number: str) -> "TransactionResponse":
        return cls(
            id=row.id,
            account_id=row.account_id,
            account_number=account_number,
            kind=row.kind,
            amount=row.amount,
            balance_after=row.balance_after,
            description=row.description,
            timestamp=row.timestamp,
            status=row.status,
        )


class TransferResponse(BaseModel):
    """Both legs of a transfer, source first."""
    source: TransactionResponse
    destination: TransactionResponse


class TransactionPage(BaseModel):
    """One page of an account's history, newest first."""
    items: List[TransactionResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
