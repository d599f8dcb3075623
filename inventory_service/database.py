from functools import lru_cache

from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import get_settings
from .gateway import StorageGateway
from .models import Base


def build_engine(database_url: str, lock_timeout_ms: int) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # pysqlite's busy timeout is the only lock wait SQLite offers
        connect_args = {"check_same_thread": False, "timeout": lock_timeout_ms / 1000}

    engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        _begin_immediate(engine)
    return engine


def _begin_immediate(engine: Engine) -> None:
    """Take SQLite's write lock when a transaction starts, not at its first write.

    SQLite has no row locks, so a locking read must already hold the
    database write lock or two transactions could read the same stock value.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_gateway(database_url: str, lock_timeout_ms: int) -> StorageGateway:
    engine = build_engine(database_url, lock_timeout_ms)
    SessionLocal = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    return StorageGateway(SessionLocal, lock_timeout_ms=lock_timeout_ms)


@lru_cache
def get_gateway() -> StorageGateway:
    settings = get_settings()
    return build_gateway(settings.database_url, settings.lock_timeout_ms)


def init_db(gateway: StorageGateway) -> None:
    engine = gateway.engine
    logger.info("Creating tables on {} database", engine.dialect.name)
    Base.metadata.create_all(bind=engine)
