from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import InternalError
from ..observability.logging import get_logger
from .models import Base

log = get_logger("db")


def _enable_sqlite_locking(engine: Engine) -> None:
    # pysqlite's implicit BEGIN is deferred, which lets two writers both read
    # stock and then deadlock on upgrade. Take the write lock up front instead.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, *, echo: bool = False) -> Engine:
    if url.startswith("sqlite"):
        kwargs: dict[str, object] = {
            "connect_args": {"check_same_thread": False, "timeout": 30},
        }
        # In-memory databases vanish with their connection; share one.
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)
        _enable_sqlite_locking(engine)
        return engine

    return create_engine(url, echo=echo, pool_pre_ping=True)


class Database:
    """Storage capability handed to each service at construction time."""

    def __init__(self, url: str, *, echo: bool = False):
        self.url = url
        self.engine = build_engine(url, echo=echo)
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)
        log.info("schema_ready", tables=sorted(Base.metadata.tables))

    def drop_all(self) -> None:
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Unit of work: commits on success, rolls back everything on any error.

        Driver and ORM failures are re-raised as ``InternalError`` with the
        original exception chained.
        """
        s = self._sessions()
        try:
            yield s
            s.commit()
        except SQLAlchemyError as exc:
            s.rollback()
            raise InternalError(str(getattr(exc, "orig", None) or exc), title="Storage Error") from exc
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            log.exception("db_ping_failed")
            return False

    def dispose(self) -> None:
        self.engine.dispose()
