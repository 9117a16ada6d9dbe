"""
Shared FastAPI dependencies: services, the authenticated caller, deadlines.
"""

from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import sessionmaker

from banking.core.config import settings
from banking.core.errors import InvalidCredentials
from banking.core.retry import deadline_after
from banking.core.security import Caller
from banking.database import get_session_factory
from banking.services import BankingServices

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache(maxsize=None)
def _services_for(session_factory: sessionmaker) -> BankingServices:
    return BankingServices(session_factory, settings)


def get_services(session_factory: sessionmaker = Depends(get_session_factory)) -> BankingServices:
    """
    Dependency returning the service container bound to the session factory.
    """
    return _services_for(session_factory)


def get_current_caller(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    services: BankingServices = Depends(get_services),
) -> Caller:
    """
    Resolve the bearer token into the caller identity.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return services.sessions.validate(credentials.credentials)
    except InvalidCredentials as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


def request_deadline() -> float:
    """Deadline for the unit of work behind the current request."""
    return deadline_after(settings.REQUEST_TIMEOUT_SECONDS)
