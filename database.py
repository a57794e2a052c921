from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import Settings


Base = declarative_base()


def create_store_engine(settings: Settings) -> Engine:
    """Build the engine for one application instance.

    Every connection carries the configured timeout so a stuck store call
    fails instead of hanging the request.
    """
    url = settings.database_url
    timeout = settings.store_timeout_seconds
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout}
    elif url.startswith("postgresql"):
        connect_args = {
            "connect_timeout": timeout,
            "options": f"-c statement_timeout={timeout * 1000}",
        }
    else:
        connect_args = {}
    engine_kwargs = {"connect_args": connect_args, "pool_pre_ping": True}
    if not _is_sqlite_memory(url):
        # In-memory SQLite uses a singleton pool with no checkout wait.
        engine_kwargs["pool_timeout"] = timeout
    engine = create_engine(url, **engine_kwargs)
    if url.startswith("sqlite"):
        _sqlite_immediate_transactions(engine)
    return engine


def _is_sqlite_memory(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def _sqlite_immediate_transactions(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first write, so two writers can deadlock on the
    # SHARED -> RESERVED upgrade and fail without waiting. Take the write lock up front.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    # Create tables (simple projects; for production use migrations).
    import models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind=engine)
