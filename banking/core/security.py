"""
Credential and session primitives.

The services depend only on the PasswordHasher and SessionAuthenticator
protocols; bcrypt and JWT are the default implementations.
"""

import time
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

import bcrypt
import jwt

from banking.core.errors import InvalidCredentials

# bcrypt ignores (or, in recent releases, rejects) input beyond 72 bytes
BCRYPT_MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class Caller:
    """An already-authenticated user identity passed into every operation."""
    user_id: int
    username: Optional[str] = None


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, password_hash: str) -> bool:
        ...


class SessionAuthenticator(Protocol):
    def issue(self, user_id: int, username: str) -> str:
        ...

    def validate(self, token: str) -> Caller:
        ...


class BcryptPasswordHasher:
    """Salted, deliberately slow one-way hashing via bcrypt."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("ascii")

    def verify(self, password: str, password_hash: str) -> bool:
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("ascii"))
        except ValueError:
            # Malformed stored hash
            return False


class JwtSessionAuthenticator:
    """HS256 bearer tokens whose subject is the user id."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 30):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(self, user_id: int, username: str) -> str:
        now = int(time.time())
        payload: Dict = {
            "sub": str(user_id),
            "username": username,
            "iat": now,
            "exp": now + self.expire_minutes * 60,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def validate(self, token: str) -> Caller:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
            return Caller(user_id=int(payload["sub"]), username=payload.get("username"))
        except (jwt.PyJWTError, ValueError) as exc:
            raise InvalidCredentials("Invalid or expired session token") from exc
