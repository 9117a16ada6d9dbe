"""
Ownership checks for account-scoped operations.
"""

from banking.core.errors import AccountNotFound, Forbidden
from banking.core.security import Caller
from banking.models.account import Account


def authorize_account(caller: Caller, account: Account, reveal: bool = False) -> None:
    """
    Allow the call only when ``caller`` owns ``account``.

    Non-owners get AccountNotFound so account numbers cannot be probed;
    deployments that prefer an explicit denial pass ``reveal=True``.
    """
    if account.user_id == caller.user_id:
        return
    if reveal:
        raise Forbidden(f"Account {account.account_number} does not belong to the caller")
    raise AccountNotFound(account.account_number)
