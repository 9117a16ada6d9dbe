"""
Identity store: registration, authentication and profile maintenance.
"""

import logging
import re
import secrets
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from banking.core.errors import DuplicateIdentity, InvalidCredentials, InvalidRequest, UserNotFound
from banking.core.retry import RetryPolicy, run_in_transaction
from banking.core.security import BCRYPT_MAX_PASSWORD_BYTES, PasswordHasher
from banking.models.user import User
from banking.schemas.user import UserResponse

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,50}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _duplicate_field(exc: IntegrityError) -> str:
    message = str(exc.orig).lower()
    return "email" if "email" in message else "username"


class IdentityService:
    def __init__(
        self,
        session_factory: sessionmaker,
        hasher: PasswordHasher,
        retry_policy: RetryPolicy,
        password_min_length: int = 8,
    ):
        self._session_factory = session_factory
        self._hasher = hasher
        self._retry_policy = retry_policy
        self.password_min_length = password_min_length
        # Verified against when the username is unknown so both failures cost the same
        self._dummy_hash = hasher.hash(secrets.token_urlsafe(16))

    def _check_password_policy(self, password: str) -> None:
        if len(password) < self.password_min_length:
            raise InvalidRequest(f"Password must be at least {self.password_min_length} characters")
        if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise InvalidRequest(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")

    @staticmethod
    def _normalize_email(email: str) -> str:
        # Stored and compared lower-cased
        email = (email or "").strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise InvalidRequest(f"Invalid email address: {email!r}")
        return email

    @staticmethod
    def _load(db: Session, user_id: int) -> User:
        user = db.get(User, user_id)
        if user is None:
            raise UserNotFound()
        return user

    def register(
        self,
        username: str,
        password: str,
        email: str,
        phone: Optional[str] = None,
        address: Optional[str] = None,
        deadline: Optional[float] = None,
    ) -> UserResponse:
        """
        Create a user. The password is stored only as its salted hash.

        Raises InvalidRequest for malformed input and DuplicateIdentity when
        the username or email is taken.
        """
        username = (username or "").strip()
        if not USERNAME_PATTERN.match(username):
            raise InvalidRequest("Username must be 3-50 characters of letters, digits, '.', '_' or '-'")
        email = self._normalize_email(email)
        self._check_password_policy(password)
        password_hash = self._hasher.hash(password)

        def work(db: Session) -> UserResponse:
            if db.query(User.id).filter(User.username == username).first():
                raise DuplicateIdentity("username")
            if db.query(User.id).filter(User.email == email).first():
                raise DuplicateIdentity("email")

            user = User(
                username=username,
                email=email,
                password_hash=password_hash,
                phone=phone,
                address=address,
            )
            db.add(user)
            try:
                db.flush()
            except IntegrityError as exc:
                # Lost a race with a concurrent registration
                raise DuplicateIdentity(_duplicate_field(exc)) from exc
            return UserResponse.model_validate(user)

        user = run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "register")
        logger.info("User registered", extra={"user_id": user.id, "action": "register"})
        return user

    def authenticate(self, username: str, password: str, deadline: Optional[float] = None) -> UserResponse:
        """
        Check credentials. Unknown usernames and wrong passwords raise the
        same InvalidCredentials error after the same amount of hashing work.
        """
        def work(db: Session) -> Optional[User]:
            return db.query(User).filter(User.username == (username or "").strip()).first()

        user = run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "authenticate")

        if user is None:
            self._hasher.verify(password, self._dummy_hash)
            raise InvalidCredentials()
        if not self._hasher.verify(password, user.password_hash):
            logger.warning("Failed login", extra={"user_id": user.id, "action": "authenticate"})
            raise InvalidCredentials()

        return UserResponse.model_validate(user)

    def get_user(self, user_id: int, deadline: Optional[float] = None) -> UserResponse:
        def work(db: Session) -> UserResponse:
            return UserResponse.model_validate(self._load(db, user_id))

        return run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "get_user")

    def change_password(
        self,
        user_id: int,
        old_password: str,
        new_password: str,
        deadline: Optional[float] = None,
    ) -> None:
        self._check_password_policy(new_password)
        new_hash = self._hasher.hash(new_password)

        def work(db: Session) -> None:
            user = self._load(db, user_id)
            if not self._hasher.verify(old_password, user.password_hash):
                raise InvalidCredentials("Old password is incorrect")
            user.password_hash = new_hash

        run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "change_password")
        logger.info("Password changed", extra={"user_id": user_id, "action": "change_password"})

    def update_profile(
        self,
        user_id: int,
        email: str,
        phone: Optional[str] = None,
        address: Optional[str] = None,
        deadline: Optional[float] = None,
    ) -> UserResponse:
        email = self._normalize_email(email)

        def work(db: Session) -> UserResponse:
            user = self._load(db, user_id)
            if email != user.email:
                taken = db.query(User.id).filter(User.email == email, User.id != user_id).first()
                if taken:
                    raise DuplicateIdentity("email")
                user.email = email
            user.phone = phone
            user.address = address
            try:
                db.flush()
            except IntegrityError as exc:
                raise DuplicateIdentity(_duplicate_field(exc)) from exc
            return UserResponse.model_validate(user)

        return run_in_transaction(self._session_factory, work, self._retry_policy, deadline, "update_profile")
