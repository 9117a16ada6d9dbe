"""
Money-movement engine.

Deposits, withdrawals and transfers each run as one database transaction:
the touched account rows are read with SELECT ... FOR UPDATE (lowest id
first), validated against the locked balance, updated, and the matching
ledger rows are appended before a single commit. Any failure rolls the whole
unit of work back.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, sessionmaker

from banking.core.errors import (
    AccountNotActive, AccountNotFound, CurrencyMismatch, InsufficientFunds, InvalidAmount, SameAccount,
)
from banking.core.money import MAX_AMOUNT, AmountLike, positive_amount
from banking.core.retry import RetryPolicy, run_in_transaction
from banking.core.security import Caller
from banking.models.account import Account, AccountStatus
from banking.models.transaction import Transaction, TransactionStatus, TransactionType
from banking.schemas.transaction import TransactionResponse
from banking.services.authorization import authorize_account

logger = logging.getLogger(__name__)


def _lock_accounts(db: Session, account_numbers: List[str]) -> Dict[str, Account]:
    """
    Lock the accounts behind ``account_numbers`` and return them by number.

    Ids are resolved first without locking, then rows are locked one at a
    time in ascending id order, so two transfers over the same pair of
    accounts always queue on the same row first and cannot deadlock.
    Missing accounts are simply absent from the result.
    """
    ids = [
        account_id for (account_id,) in db.query(Account.id).filter(
            Account.account_number.in_(account_numbers)
        ).all()
    ]

    locked = {}
    for account_id in sorted(ids):
        account = db.query(Account).filter(
            Account.id == account_id
        ).with_for_update().populate_existing().first()
        if account is not None:
            locked[account.account_number] = account
    return locked


def _require_active(account: Account) -> None:
    if account.status != AccountStatus.ACTIVE:
        raise AccountNotActive(account.account_number, AccountStatus(account.status).value)


def _check_credit(account: Account, amount: Decimal) -> None:
    if account.balance + amount > MAX_AMOUNT:
        raise InvalidAmount(
            f"Balance of account {account.account_number} would exceed the maximum of {MAX_AMOUNT}"
        )


def _append(
    db: Session,
    account: Account,
    kind: TransactionType,
    amount: Decimal,
    description: str,
    timestamp: datetime,
) -> Transaction:
    entry = Transaction(
        account_id=account.id,
        kind=kind,
        amount=amount,
        balance_after=account.balance,
        description=description,
        timestamp=timestamp,
        status=TransactionStatus.SUCCESS,
    )
    db.add(entry)
    return entry


class LedgerService:
    def __init__(
        self,
        session_factory: sessionmaker,
        retry_policy: RetryPolicy,
        reveal_forbidden: bool = False,
    ):
        self._session_factory = session_factory
        self._retry_policy = retry_policy
        self.reveal_forbidden = reveal_forbidden

    def _lock_owned(self, db: Session, account_number: str, caller: Caller) -> Account:
        account = _lock_accounts(db, [account_number]).get(account_number)
        if account is None:
            raise AccountNotFound(account_number)
        # Ownership before status so non-owners learn nothing about the account
        authorize_account(caller, account, self.reveal_forbidden)
        _require_active(account)
        return account

    def deposit(
        self,
        account_number: str,
        amount: AmountLike,
        caller: Caller,
        deadline: Optional[float] = None,
    ) -> TransactionResponse:
        amount = positive_amount(amount)

        def work(db: Session) -> TransactionResponse:
            account = self._lock_owned(db, account_number, caller)
            _check_credit(account, amount)
            account.balance = account.balance + amount
            entry = _append(db, account, TransactionType.DEPOSIT, amount, "Deposit", datetime.now(timezone.utc))
            db.flush()
            return TransactionResponse.from_row(entry, account.account_number)

        result = run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "deposit")
        logger.info(
            f"Deposited {amount}",
            extra={"user_id": caller.user_id, "account_number": account_number, "action": "deposit"},
        )
        return result

    def withdraw(
        self,
        account_number: str,
        amount: AmountLike,
        caller: Caller,
        deadline: Optional[float] = None,
    ) -> TransactionResponse:
        amount = positive_amount(amount)

        def work(db: Session) -> TransactionResponse:
            account = self._lock_owned(db, account_number, caller)
            if account.balance < amount:
                raise InsufficientFunds(account.balance, amount)
            account.balance = account.balance - amount
            entry = _append(db, account, TransactionType.WITHDRAWAL, amount, "Withdrawal", datetime.now(timezone.utc))
            db.flush()
            return TransactionResponse.from_row(entry, account.account_number)

        result = run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "withdraw")
        logger.info(
            f"Withdrew {amount}",
            extra={"user_id": caller.user_id, "account_number": account_number, "action": "withdraw"},
        )
        return result

    def transfer(
        self,
        from_number: str,
        to_number: str,
        amount: AmountLike,
        caller: Caller,
        deadline: Optional[float] = None,
    ) -> Tuple[TransactionResponse, TransactionResponse]:
        """
        Move ``amount`` from ``from_number`` (owned by the caller) to
        ``to_number`` (any owner, same currency).

        Writes one TRANSFER row per account, sharing a timestamp, and returns
        them as (source, destination).
        """
        amount = positive_amount(amount)
        if from_number == to_number:
            raise SameAccount()

        def work(db: Session) -> Tuple[TransactionResponse, TransactionResponse]:
            locked = _lock_accounts(db, [from_number, to_number])
            source = locked.get(from_number)
            if source is None:
                raise AccountNotFound(from_number)
            authorize_account(caller, source, self.reveal_forbidden)
            destination = locked.get(to_number)
            if destination is None:
                raise AccountNotFound(to_number)

            _require_active(source)
            _require_active(destination)
            if source.currency != destination.currency:
                raise CurrencyMismatch(source.currency, destination.currency)
            if source.balance < amount:
                raise InsufficientFunds(source.balance, amount)
            _check_credit(destination, amount)

            source.balance = source.balance - amount
            destination.balance = destination.balance + amount

            committed_at = datetime.now(timezone.utc)
            outbound = _append(db, source, TransactionType.TRANSFER, amount, f"Transfer to {to_number}", committed_at)
            inbound = _append(db, destination, TransactionType.TRANSFER, amount, f"Transfer from {from_number}", committed_at)
            db.flush()
            return (
                TransactionResponse.from_row(outbound, source.account_number),
                TransactionResponse.from_row(inbound, destination.account_number),
            )

        result = run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "transfer")
        logger.info(
            f"Transferred {amount} to {to_number}",
            extra={"user_id": caller.user_id, "account_number": from_number, "action": "transfer"},
        )
        return result
