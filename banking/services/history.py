"""
Read side of the ledger: paginated account history and single entries.
"""

import math
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from banking.core.errors import AccountNotFound, InvalidRequest, TransactionNotFound
from banking.core.retry import RetryPolicy, run_in_transaction
from banking.core.security import Caller
from banking.models.account import Account
from banking.models.transaction import Transaction
from banking.schemas.transaction import TransactionPage, TransactionResponse
from banking.services.authorization import authorize_account


class HistoryService:
    def __init__(
        self,
        session_factory: sessionmaker,
        retry_policy: RetryPolicy,
        default_page_size: int = 10,
        max_page_size: int = 100,
        reveal_forbidden: bool = False,
    ):
        self._session_factory = session_factory
        self._retry_policy = retry_policy
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.reveal_forbidden = reveal_forbidden

    def clamp_page_size(self, page_size: Optional[int]) -> int:
        if page_size is None:
            page_size = self.default_page_size
        return max(1, min(page_size, self.max_page_size))

    def history_by_number(
        self,
        account_number: str,
        caller: Caller,
        page: int = 0,
        page_size: Optional[int] = None,
        deadline: Optional[float] = None,
    ) -> TransactionPage:
        """
        Return one page of the account's transactions, newest first.

        Ties on timestamp (both legs of a transfer, for instance) are ordered
        by id descending. ``page`` is zero-indexed; ``page_size`` is clamped
        to [1, max_page_size].
        """
        if page < 0:
            raise InvalidRequest("Page must be zero or greater")
        size = self.clamp_page_size(page_size)

        def work(db: Session) -> TransactionPage:
            account = db.query(Account).filter(Account.account_number == account_number).first()
            if account is None:
                raise AccountNotFound(account_number)
            authorize_account(caller, account, self.reveal_forbidden)

            query = db.query(Transaction).filter(Transaction.account_id == account.id)
            total = query.count()
            offset = page * size
            # Pages past the end are empty; the offset may not even fit the driver's integer type
            if offset >= total:
                rows = []
            else:
                rows = query.order_by(
                    Transaction.timestamp.desc(), Transaction.id.desc()
                ).offset(offset).limit(size).all()

            return TransactionPage(
                items=[TransactionResponse.from_row(row, account.account_number) for row in rows],
                total=total,
                page=page,
                page_size=size,
                total_pages=math.ceil(total / size),
            )

        return run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "history_by_number")

    def get_transaction(
        self,
        transaction_id: int,
        caller: Caller,
        deadline: Optional[float] = None,
    ) -> TransactionResponse:
        def work(db: Session) -> TransactionResponse:
            row = db.get(Transaction, transaction_id)
            if row is None:
                raise TransactionNotFound(transaction_id)
            account = db.get(Account, row.account_id)
            try:
                authorize_account(caller, account, self.reveal_forbidden)
            except AccountNotFound:
                raise TransactionNotFound(transaction_id)
            return TransactionResponse.from_row(row, account.account_number)

        return run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "get_transaction")
