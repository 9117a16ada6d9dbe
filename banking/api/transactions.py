"""
Transaction API endpoints.
Handles deposits, withdrawals, transfers and account history.
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from banking.api.deps import get_current_caller, get_services, request_deadline
from banking.core.security import Caller
from banking.schemas.transaction import (
    MoneyRequest, TransactionPage, TransactionResponse, TransferRequest, TransferResponse,
)
from banking.services import BankingServices

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post("/deposit", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def deposit(
    request: MoneyRequest,
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Deposit money into one of the caller's accounts.
    """
    return services.ledger.deposit(request.account_number, request.amount, caller, deadline=deadline)


@router.post("/withdraw", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def withdraw(
    request: MoneyRequest,
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Withdraw money from one of the caller's accounts.
    """
    return services.ledger.withdraw(request.account_number, request.amount, caller, deadline=deadline)


@router.post("/transfer", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
def transfer(
    request: TransferRequest,
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Transfer money from one of the caller's accounts to any account in the same currency.

    Implements:
    - Atomicity: both legs commit together or not at all
    - Concurrency: row-level locks taken in ascending account id order

    - **from_account_number**: Source account (must belong to the caller)
    - **to_account_number**: Destination account
    - **amount**: Transfer amount (must be positive)
    """
    source, destination = services.ledger.transfer(
        request.from_account_number,
        request.to_account_number,
        request.amount,
        caller,
        deadline=deadline,
    )
    return TransferResponse(source=source, destination=destination)


@router.get("/history/{account_number}", response_model=TransactionPage)
def get_history(
    account_number: str,
    page: int = Query(0, ge=0, description="Zero-indexed page number"),
    size: Optional[int] = Query(None, description="Page size, clamped to the configured maximum"),
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Get an account's transactions, newest first.

    - **page**: Page number, starting at 0
    - **size**: Page size (default 10, at most 100)
    """
    return services.history.history_by_number(account_number, caller, page, size, deadline=deadline)


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Get a single transaction on one of the caller's accounts.
    """
    return services.history.get_transaction(transaction_id, caller, deadline=deadline)
