"""
Banking services package.

BankingServices wires the identity store, account registry, ledger engine
and history queries to one session factory and one set of settings.
"""

from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from banking.core.config import Settings
from banking.core.retry import RetryPolicy
from banking.core.security import (
    BcryptPasswordHasher, JwtSessionAuthenticator, PasswordHasher, SessionAuthenticator,
)
from banking.services.accounts import AccountRegistry, generate_account_number
from banking.services.authorization import authorize_account
from banking.services.history import HistoryService
from banking.services.identity import IdentityService
from banking.services.ledger import LedgerService


class BankingServices:
    def __init__(
        self,
        session_factory: sessionmaker,
        settings: Settings,
        hasher: Optional[PasswordHasher] = None,
        sessions: Optional[SessionAuthenticator] = None,
        number_generator: Callable[[], str] = generate_account_number,
    ):
        retry_policy = RetryPolicy(
            max_attempts=settings.TRANSACTION_RETRY_LIMIT,
            base_delay=settings.RETRY_BASE_DELAY,
            max_delay=settings.RETRY_MAX_DELAY,
        )
        self.identity = IdentityService(
            session_factory,
            hasher or BcryptPasswordHasher(rounds=settings.BCRYPT_ROUNDS),
            retry_policy,
            password_min_length=settings.PASSWORD_MIN_LENGTH,
        )
        self.accounts = AccountRegistry(
            session_factory,
            retry_policy,
            number_retry_limit=settings.ACCOUNT_NUMBER_RETRY_LIMIT,
            number_generator=number_generator,
            reveal_forbidden=settings.REVEAL_FORBIDDEN,
        )
        self.ledger = LedgerService(
            session_factory,
            retry_policy,
            reveal_forbidden=settings.REVEAL_FORBIDDEN,
        )
        self.history = HistoryService(
            session_factory,
            retry_policy,
            default_page_size=settings.HISTORY_PAGE_SIZE_DEFAULT,
            max_page_size=settings.HISTORY_PAGE_SIZE_MAX,
            reveal_forbidden=settings.REVEAL_FORBIDDEN,
        )
        self.sessions = sessions or JwtSessionAuthenticator(
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        )


__all__ = [
    "BankingServices",
    "AccountRegistry",
    "HistoryService",
    "IdentityService",
    "LedgerService",
    "authorize_account",
    "generate_account_number",
]
