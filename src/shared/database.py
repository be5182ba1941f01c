"""SQLAlchemy engine, sessions and schema management.

Every bounded context declares its tables on the shared ``Base``. Callers get
a ``Database`` through ``get_database()`` (or have one injected) and open
short-lived sessions per operation:

    with database.session() as session:       # read, or manual commit
        ...
    with database.transaction() as session:   # commits on exit, rolls back on error
        ...
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from uuid import uuid4

import structlog
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from shared.config import get_settings
from shared.exceptions import DataStoreError

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    pass


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


class Database:
    """Engine plus session factory for one database URL."""

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.engine = _create_engine(url, echo)
        self._sessions = sessionmaker(self.engine, expire_on_commit=False)

    @contextmanager
    def session(self) -> Iterator[Session]:
        with self._sessions() as session:
            yield session

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        with self._sessions.begin() as session:
            yield session

    def setup_db(self) -> None:
        """Create all tables registered on ``Base``."""
        _register_models()
        Base.metadata.create_all(self.engine)
        logger.info("Database schema created", tables=sorted(Base.metadata.tables))

    def drop_db(self) -> None:
        """Drop all tables registered on ``Base``."""
        _register_models()
        Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Translate data-store failures into ``DataStoreError`` carrying the driver message."""
    try:
        yield
    except SQLAlchemyError as exc:
        detail = str(getattr(exc, "orig", None) or exc)
        logger.error("Data store call failed", action=action, error=detail)
        raise DataStoreError(f"Could not {action}: {detail}") from exc


def _create_engine(url: str, echo: bool) -> Engine:
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # In-memory databases live inside one connection; share it across sessions
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(url, echo=echo, pool_pre_ping=True)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):  # noqa: ARG001
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _register_models() -> None:
    # Importing the model modules registers their tables on Base.metadata
    import catalogue.product.product  # noqa: F401
    import identity.address.address  # noqa: F401
    import ordering.cart.cart  # noqa: F401
    import ordering.order.order  # noqa: F401
    import payments.payment.record  # noqa: F401


# ---------------------------------------------------------------------------
# Process-wide database
# ---------------------------------------------------------------------------
_current_database: Database | None = None


def get_database() -> Database:
    """Return the process database. Built from settings on first use."""
    global _current_database
    if _current_database is None:
        settings = get_settings()
        _current_database = Database(settings.database_url, echo=settings.database_echo)
    return _current_database


def set_database(database: Database) -> None:
    """Override the process database (useful for tests)."""
    global _current_database
    _current_database = database


def reset_database() -> None:
    global _current_database
    if _current_database is not None:
        _current_database.dispose()
    _current_database = None
