"""
Engine and session handling for the DoseKeeper store
"""

import logging
from contextlib import contextmanager
from typing import Dict, Generator

from sqlalchemy import create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from config import settings


logger = logging.getLogger(__name__)


def build_engine(url: str, echo: bool = False) -> Engine:
    """
    Engine for the configured backend.

    SQLite shares one connection across threads (needed for in-memory
    databases) and turns on foreign keys, which schedule and dose log
    cascades depend on.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_size=10, max_overflow=20, pool_pre_ping=True)

    sqlite_engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )

    @event.listens_for(sqlite_engine, "connect")
    def _foreign_keys_on(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = build_engine(settings.DATABASE_URL, settings.DATABASE_ECHO)

# Objects stay readable after commit; services hand ORM rows back to routers
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for FastAPI dependencies"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Session for service calls made without a request session.

    Commits when the block exits cleanly, rolls back and re-raises otherwise.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create any missing tables"""
    import models  # noqa: F401  registers the mappers on Base

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready at {settings.DATABASE_URL}")


def drop_db() -> None:
    """Drop every DoseKeeper table"""
    import models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    logger.warning("Dropped all DoseKeeper tables")


class DatabaseHealthCheck:
    """Connectivity and size probes used by /health and the seed script"""

    @staticmethod
    def is_connected() -> bool:
        try:
            with engine.connect() as conn:
                conn.execute(select(1))
            return True
        except Exception:
            logger.exception("Database health check failed")
            return False

    @staticmethod
    def get_table_counts() -> Dict[str, int]:
        """Row count per model table that exists in the database"""
        counts = {}
        with engine.connect() as conn:
            for name, table in Base.metadata.tables.items():
                if not engine.dialect.has_table(conn, name):
                    continue
                counts[name] = conn.execute(select(func.count()).select_from(table)).scalar()
        return counts


__all__ = [
    "engine",
    "SessionLocal",
    "Base",
    "build_engine",
    "get_db",
    "get_db_context",
    "init_db",
    "drop_db",
    "DatabaseHealthCheck"
]
