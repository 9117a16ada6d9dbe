"""
Shared fixtures: a fresh SQLite database per test, services bound to it,
two registered customers and an API client wired to the same services.
"""

import os
import tempfile

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(tempfile.gettempdir(), 'banking_app_test.db')}")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-bytes!")

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

import banking.models  # noqa: F401  (registers tables on Base.metadata)
from banking.api.deps import get_services
from banking.core.config import settings
from banking.core.security import Caller
from banking.database import Base, create_db_engine, create_session_factory
from banking.main import app
from banking.services import BankingServices

PASSWORD = "s3cure-passw0rd"


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so worker threads share one database."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'bank.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def test_settings():
    """Cheap bcrypt cost and short backoff keep the suite fast."""
    return settings.model_copy(update={"BCRYPT_ROUNDS": 4, "RETRY_BASE_DELAY": 0.01})


@pytest.fixture
def services(session_factory, test_settings):
    return BankingServices(session_factory, test_settings)


def make_customer(services, username):
    user = services.identity.register(username, PASSWORD, f"{username}@example.com")
    return Caller(user_id=user.id, username=user.username)


def open_account(services, caller, balance="0.00", account_type="SAVINGS", currency="USD"):
    return services.accounts.create_account(caller.user_id, account_type, Decimal(balance), currency)


def balance_of(services, account_number):
    return services.accounts.get_by_number(account_number).balance


@pytest.fixture
def alice(services):
    return make_customer(services, "alice")


@pytest.fixture
def bob(services):
    return make_customer(services, "bob")


@pytest.fixture
def client(services):
    app.dependency_overrides[get_services] = lambda: services
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
