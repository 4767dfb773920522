"""Engine and session management."""

from __future__ import annotations

import threading
from contextlib import contextmanager, nullcontext
from typing import Iterator

import structlog
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import ConflictError, PersistenceError
from .models import Base

logger = structlog.get_logger(__name__)


def _configure_sqlite(engine: Engine) -> None:
    """Hand transaction control to SQLAlchemy and take the write lock up front.

    ``BEGIN IMMEDIATE`` makes concurrent writers queue on the database lock
    (bounded by the connect timeout) instead of failing on lock upgrade.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:  # noqa: ARG001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(connection) -> None:
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def snapshot_execution_options(dialect_name: str) -> dict:
    """Connection options for a read that must see one consistent snapshot.

    SQLite already serialises transactions behind ``BEGIN IMMEDIATE``; other
    backends default to READ COMMITTED, so multi-query reads raise the level.
    """
    if dialect_name == "sqlite":
        return {}
    return {"isolation_level": "REPEATABLE READ"}


class Database:
    """Owns the SQLAlchemy engine and hands out transactional sessions."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        parsed = make_url(url)
        self._is_sqlite = parsed.get_backend_name() == "sqlite"
        self._in_memory = self._is_sqlite and parsed.database in (None, "", ":memory:")

        kwargs: dict = {"echo": echo}
        if self._is_sqlite:
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
            if self._in_memory:
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True

        self._engine = create_engine(parsed, **kwargs)
        if self._is_sqlite:
            _configure_sqlite(self._engine)

        self._session_factory = sessionmaker(
            bind=self._engine, autoflush=False, expire_on_commit=False
        )
        # In-memory SQLite shares one connection, so sessions must not interleave.
        self._lock = threading.RLock() if self._in_memory else None

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name

    def create_all(self) -> None:
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to create schema: {exc}") from exc
        logger.info("database.initialised", url=self._engine.url.render_as_string(hide_password=True))

    def drop_all(self) -> None:
        Base.metadata.drop_all(self._engine)

    def dispose(self) -> None:
        self._engine.dispose()

    @contextmanager
    def session_scope(self, *, snapshot: bool = False) -> Iterator[Session]:
        """Transactional scope: commit on success, roll back on any error.

        ``snapshot=True`` pins the connection to a repeatable-read snapshot
        so that several queries agree with each other.
        """
        guard = self._lock if self._lock is not None else nullcontext()
        with guard:
            session = self._session_factory()
            try:
                if snapshot:
                    options = snapshot_execution_options(self.dialect)
                    if options:
                        session.connection(execution_options=options)
                yield session
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                logger.warning("database.integrity_error", error=str(exc.orig))
                raise ConflictError(f"Constraint violated: {exc.orig}") from exc
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("database.error", error=str(exc))
                raise PersistenceError(str(exc)) from exc
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
