"""
Account API endpoints.
Handles account creation, retrieval, balance queries and lifecycle changes.
"""

from fastapi import APIRouter, Depends, status
from typing import List

from banking.api.deps import get_current_caller, get_services, request_deadline
from banking.core.security import Caller
from banking.models.account import AccountStatus
from banking.schemas.account import AccountBalance, AccountCreate, AccountResponse
from banking.services import BankingServices

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.post("/", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    account_data: AccountCreate,
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Open a new account for the caller.

    - **account_type**: SAVINGS, CHECKING, MONEY_MARKET, ...
    - **initial_balance**: Starting balance (default: 0.00)
    - **currency**: ISO currency code (default: USD)
    """
    return services.accounts.create_account(
        caller.user_id,
        account_data.account_type,
        account_data.initial_balance,
        account_data.currency,
        deadline=deadline,
    )


@router.get("/", response_model=List[AccountResponse])
def list_accounts(
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    List the caller's active accounts, oldest first.
    """
    return services.accounts.list_active_by_owner(caller.user_id, deadline=deadline)


@router.get("/{account_number}", response_model=AccountResponse)
def get_account(
    account_number: str,
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Get account details by account number.
    """
    return services.accounts.get_owned(account_number, caller, deadline=deadline)


@router.get("/{account_number}/balance", response_model=AccountBalance)
def get_account_balance(
    account_number: str,
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Get account balance.
    """
    account = services.accounts.get_owned(account_number, caller, deadline=deadline)
    return AccountBalance(
        account_number=account.account_number,
        balance=account.balance,
        currency=account.currency
    )


@router.delete("/{account_number}", status_code=status.HTTP_204_NO_CONTENT)
def close_account(
    account_number: str,
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Close an account. The row is kept for audit and accepts no further money movement.
    """
    services.accounts.change_status(account_number, AccountStatus.CLOSED, caller, deadline=deadline)
    return None


@router.post("/{account_number}/freeze", response_model=AccountResponse)
def freeze_account(
    account_number: str,
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Freeze an active account.
    """
    return services.accounts.change_status(account_number, AccountStatus.FROZEN, caller, deadline=deadline)


@router.post("/{account_number}/unfreeze", response_model=AccountResponse)
def unfreeze_account(
    account_number: str,
    caller: Caller = Depends(get_current_caller),
    services: BankingServices = Depends(get_services),
    deadline: float = Depends(request_deadline),
):
    """
    Return a frozen account to active.
    """
    return services.accounts.change_status(account_number, AccountStatus.ACTIVE, caller, deadline=deadline)
