"""
Database connection and session management.
Uses SQLAlchemy for ORM and connection pooling.
"""

from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from banking.core.config import settings

# Base class for models
Base = declarative_base()


def _enable_sqlite_locking(engine: Engine) -> None:
    """
    Make every SQLite transaction take the write lock up front.

    pysqlite defers BEGIN until the first write, so a read-then-write unit of
    work could see a stale balance. Emitting BEGIN IMMEDIATE ourselves gives
    serializable behaviour, which stands in for SELECT ... FOR UPDATE.
    """

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(
    url: str,
    user: Optional[str] = None,
    password: Optional[str] = None,
    isolation_level: str = "REPEATABLE READ",
    echo: bool = False,
) -> Engine:
    """
    Create the engine for ``url``.

    Explicit credentials override any embedded in the URL. Server databases
    run at ``isolation_level``; SQLite is serialized with BEGIN IMMEDIATE.
    """
    db_url = make_url(url)
    if user:
        db_url = db_url.set(username=user)
    if password:
        db_url = db_url.set(password=password)

    if db_url.get_backend_name() == "sqlite":
        engine = create_engine(
            db_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        _enable_sqlite_locking(engine)
        return engine

    return create_engine(
        db_url,
        echo=echo,
        isolation_level=isolation_level,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,  # Connection pool size
        max_overflow=20  # Max connections beyond pool_size
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    # expire_on_commit=False keeps loaded values readable once the unit of work has committed
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine
    )


engine = create_db_engine(
    settings.DATABASE_URL,
    user=settings.DB_USER,
    password=settings.DB_PASSWORD,
    isolation_level=settings.DB_ISOLATION_LEVEL,
    echo=settings.DB_ECHO,
)

SessionLocal = create_session_factory(engine)


def get_session_factory() -> sessionmaker:
    """
    Dependency returning the session factory the services open units of work from.

    Tests override this to point the API at their own database.
    """
    return SessionLocal
