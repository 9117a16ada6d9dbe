"""
Account registry: opening accounts, lookups and lifecycle status.
"""

import logging
import secrets
from typing import Callable, List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from banking.core.errors import (
    AccountNotFound, IllegalTransition, InternalError, InvalidRequest, UserNotFound,
)
from banking.core.money import AmountLike, normalize_currency, opening_balance
from banking.core.retry import RetryPolicy, run_in_transaction
from banking.core.security import Caller
from banking.models.account import Account, AccountStatus, STATUS_TRANSITIONS
from banking.models.user import User
from banking.schemas.account import AccountResponse
from banking.services.authorization import authorize_account

logger = logging.getLogger(__name__)

ACCOUNT_NUMBER_PREFIX = "ACC"
ACCOUNT_NUMBER_LOW = 10 ** 9
ACCOUNT_NUMBER_HIGH = 10 ** 10
ACCOUNT_TYPE_MAX_LENGTH = 50


def generate_account_number() -> str:
    """``ACC`` followed by 10 digits drawn uniformly from [10^9, 10^10)."""
    return f"{ACCOUNT_NUMBER_PREFIX}{ACCOUNT_NUMBER_LOW + secrets.randbelow(ACCOUNT_NUMBER_HIGH - ACCOUNT_NUMBER_LOW)}"


def _parse_status(status: Union[AccountStatus, str]) -> AccountStatus:
    try:
        return AccountStatus(status.upper() if isinstance(status, str) else status)
    except ValueError:
        raise InvalidRequest(f"Unknown account status: {status!r}")


class AccountRegistry:
    def __init__(
        self,
        session_factory: sessionmaker,
        retry_policy: RetryPolicy,
        number_retry_limit: int = 8,
        number_generator: Callable[[], str] = generate_account_number,
        reveal_forbidden: bool = False,
    ):
        self._session_factory = session_factory
        self._retry_policy = retry_policy
        self.number_retry_limit = number_retry_limit
        self._generate_number = number_generator
        self.reveal_forbidden = reveal_forbidden

    def create_account(
        self,
        owner_user_id: int,
        account_type: str,
        initial_balance: AmountLike = 0,
        currency: str = "USD",
        deadline: Optional[float] = None,
    ) -> AccountResponse:
        """
        Open an ACTIVE account for ``owner_user_id``.

        The account number is only checked by the unique constraint: a
        collision rolls back to a savepoint and a fresh number is drawn, up
        to ``number_retry_limit`` draws.
        """
        account_type = (account_type or "").strip().upper()
        if not account_type:
            raise InvalidRequest("Account type is required")
        if len(account_type) > ACCOUNT_TYPE_MAX_LENGTH:
            raise InvalidRequest(f"Account type must be at most {ACCOUNT_TYPE_MAX_LENGTH} characters")
        balance = opening_balance(initial_balance)
        currency = normalize_currency(currency)

        def work(db: Session) -> AccountResponse:
            if db.get(User, owner_user_id) is None:
                raise UserNotFound()

            for _ in range(self.number_retry_limit):
                account = Account(
                    user_id=owner_user_id,
                    account_number=self._generate_number(),
                    account_type=account_type,
                    balance=balance,
                    currency=currency,
                    status=AccountStatus.ACTIVE,
                )
                try:
                    with db.begin_nested():
                        db.add(account)
                        db.flush()
                except IntegrityError as exc:
                    if "account_number" not in str(exc.orig):
                        raise
                    logger.warning(
                        "Account number collision, drawing again",
                        extra={"account_number": account.account_number, "action": "create_account"},
                    )
                    continue
                return AccountResponse.model_validate(account)

            raise InternalError(
                f"Could not allocate a unique account number after {self.number_retry_limit} attempts"
            )

        account = run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "create_account")
        logger.info(
            "Account opened",
            extra={"user_id": owner_user_id, "account_number": account.account_number, "action": "create_account"},
        )
        return account

    def get_by_number(self, account_number: str, deadline: Optional[float] = None) -> AccountResponse:
        def work(db: Session) -> AccountResponse:
            account = db.query(Account).filter(Account.account_number == account_number).first()
            if account is None:
                raise AccountNotFound(account_number)
            return AccountResponse.model_validate(account)

        return run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "get_by_number")

    def get_owned(self, account_number: str, caller: Caller, deadline: Optional[float] = None) -> AccountResponse:
        """Look up an account the caller owns; other accounts read as missing."""
        def work(db: Session) -> AccountResponse:
            account = db.query(Account).filter(Account.account_number == account_number).first()
            if account is None:
                raise AccountNotFound(account_number)
            authorize_account(caller, account, self.reveal_forbidden)
            return AccountResponse.model_validate(account)

        return run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "get_owned")

    def list_active_by_owner(self, user_id: int, deadline: Optional[float] = None) -> List[AccountResponse]:
        def work(db: Session) -> List[AccountResponse]:
            accounts = db.query(Account).filter(
                Account.user_id == user_id,
                Account.status == AccountStatus.ACTIVE,
            ).order_by(Account.created_date.asc(), Account.id.asc()).all()
            return [AccountResponse.model_validate(account) for account in accounts]

        return run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "list_active_by_owner")

    def _transition(self, db: Session, account: Account, new_status: AccountStatus) -> AccountResponse:
        current = AccountStatus(account.status)
        if new_status not in STATUS_TRANSITIONS[current]:
            raise IllegalTransition(current.value, new_status.value)
        account.status = new_status
        db.flush()
        logger.info(
            f"Account status {current.value} -> {new_status.value}",
            extra={"account_number": account.account_number, "action": "set_status"},
        )
        return AccountResponse.model_validate(account)

    def set_status(
        self,
        account_id: int,
        new_status: Union[AccountStatus, str],
        deadline: Optional[float] = None,
    ) -> AccountResponse:
        """
        Move an account through its lifecycle.

        Allowed: ACTIVE -> CLOSED, ACTIVE -> FROZEN, FROZEN -> ACTIVE. The row
        is locked so a concurrent money movement sees either the old or the
        new status, never both.
        """
        target = _parse_status(new_status)

        def work(db: Session) -> AccountResponse:
            account = db.query(Account).filter(
                Account.id == account_id
            ).with_for_update().populate_existing().first()
            if account is None:
                raise AccountNotFound()
            return self._transition(db, account, target)

        return run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "set_status")

    def change_status(
        self,
        account_number: str,
        new_status: Union[AccountStatus, str],
        caller: Caller,
        deadline: Optional[float] = None,
    ) -> AccountResponse:
        """Owner-initiated close, freeze or unfreeze by account number."""
        target = _parse_status(new_status)

        def work(db: Session) -> AccountResponse:
            account = db.query(Account).filter(
                Account.account_number == account_number
            ).with_for_update().populate_existing().first()
            if account is None:
                raise AccountNotFound(account_number)
            authorize_account(caller, account, self.reveal_forbidden)
            return self._transition(db, account, target)

        return run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "change_status")
