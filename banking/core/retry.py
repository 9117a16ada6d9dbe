"""
Transaction runner with retry on transient contention and deadline support.
"""

import logging
import random
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from banking.core.errors import BankingError, InternalError, OperationTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE codes: serialization_failure, deadlock_detected, lock_not_available
POSTGRES_TRANSIENT_CODES = {"40001", "40P01", "55P03"}
POSTGRES_QUERY_CANCELED = "57014"
# ER_LOCK_DEADLOCK, ER_LOCK_WAIT_TIMEOUT
MYSQL_TRANSIENT_CODES = {1213, 1205}
SQLITE_TRANSIENT_MESSAGES = ("database is locked", "database table is locked")


class RetryPolicy:
    """Configuration for retry behavior"""

    def __init__(
        self,
        max_attempts: int = 5,
        base_delay: float = 0.05,
        max_delay: float = 1.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    def delay(self, attempt: int) -> float:
        """Calculate delay for exponential backoff with jitter"""
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        delay = min(delay, self.max_delay)

        if self.jitter:
            delay *= (0.5 + random.random() * 0.5)

        return delay


def deadline_after(seconds: float) -> float:
    """Build a deadline ``seconds`` from now on the monotonic clock."""
    return time.monotonic() + seconds


def remaining(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    return deadline - time.monotonic()


def check_deadline(deadline: Optional[float]) -> None:
    left = remaining(deadline)
    if left is not None and left <= 0:
        raise OperationTimeout()


def _error_code(exc: DBAPIError):
    orig = exc.orig
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is None and orig is not None and getattr(orig, "args", None):
        code = orig.args[0]
    return code


def is_transient(exc: SQLAlchemyError) -> bool:
    """True when the database aborted the transaction because of contention."""
    if not isinstance(exc, DBAPIError):
        return False
    if exc.connection_invalidated:
        return True
    code = _error_code(exc)
    if code in POSTGRES_TRANSIENT_CODES or code in MYSQL_TRANSIENT_CODES:
        return True
    message = str(exc.orig).lower()
    return any(fragment in message for fragment in SQLITE_TRANSIENT_MESSAGES)


def is_statement_timeout(exc: SQLAlchemyError) -> bool:
    return isinstance(exc, DBAPIError) and _error_code(exc) == POSTGRES_QUERY_CANCELED


def _apply_statement_timeout(db: Session, deadline: Optional[float]) -> None:
    left = remaining(deadline)
    if left is None or db.get_bind().dialect.name != "postgresql":
        return
    millis = max(int(left * 1000), 1)
    db.execute(text(f"SET LOCAL statement_timeout = {millis}"))


def run_in_transaction(
    session_factory: sessionmaker,
    work: Callable[[Session], T],
    policy: RetryPolicy,
    deadline: Optional[float] = None,
    operation: str = "transaction",
) -> T:
    """
    Run ``work`` inside one database transaction and commit it.

    The whole unit of work is re-run on transient contention errors with
    exponential backoff. Domain errors raised by ``work`` roll the
    transaction back and propagate unchanged. Any other database failure is
    reported as InternalError, and an expired deadline as OperationTimeout.
    ``work`` must build its return value before returning, since the session
    is closed afterwards.
    """
    attempt = 0
    while True:
        attempt += 1
        check_deadline(deadline)
        try:
            with session_factory() as db:
                with db.begin():
                    _apply_statement_timeout(db, deadline)
                    result = work(db)
                    # Last chance to abandon the writes before they become visible
                    check_deadline(deadline)
                return result
        except BankingError:
            raise
        except SQLAlchemyError as exc:
            if is_statement_timeout(exc):
                raise OperationTimeout() from exc
            if not is_transient(exc):
                logger.error(
                    f"{operation} failed with a non-retryable database error: {exc}",
                    extra={"action": operation, "attempt": attempt},
                )
                raise InternalError(f"{operation} failed") from exc
            if attempt >= policy.max_attempts:
                logger.error(
                    f"Max retry attempts ({policy.max_attempts}) reached for {operation}",
                    extra={"action": operation, "attempt": attempt},
                )
                raise InternalError(f"{operation} failed after {attempt} attempts") from exc

            delay = policy.delay(attempt)
            left = remaining(deadline)
            if left is not None and delay >= left:
                raise OperationTimeout() from exc
            logger.warning(
                f"Attempt {attempt}/{policy.max_attempts} failed for {operation}: {exc}. "
                f"Retrying in {delay:.2f}s",
                extra={"action": operation, "attempt": attempt},
            )
            time.sleep(delay)
