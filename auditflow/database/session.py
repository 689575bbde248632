"""
Database Engine and Sessions

PostgreSQL in production with a pooled engine; SQLite for local runs and the
test suite, where `sqlite://` keeps one shared in-memory connection.

The `Database` object is created once by the application and injected into
the services that need it; nothing here keeps module-level state.
"""

import os
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool

from .models import Base

logger = logging.getLogger(__name__)

# =============================================================================
# DATABASE URL CONFIGURATION
# =============================================================================

def get_database_url(url: Optional[str] = None) -> str:
    """
    Resolve the database URL.

    Priority:
    1. Explicit argument (settings.DATABASE_URL)
    2. DATABASE_URL / POSTGRES_URL environment variables
    3. SQLite fallback for local development
    """
    url = url or os.getenv("DATABASE_URL") or os.getenv("POSTGRES_URL")

    if url:
        # Hosted PostgreSQL URLs use postgres:// but SQLAlchemy needs postgresql://
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url

    sqlite_path = os.getenv("SQLITE_PATH", "auditflow_dev.db")
    logger.warning(f"No DATABASE_URL found, using SQLite: {sqlite_path}")
    return f"sqlite:///{sqlite_path}"


# =============================================================================
# ENGINE CONFIGURATION
# =============================================================================

def create_db_engine(url: str) -> Engine:
    """
    PostgreSQL gets a pre-pinged QueuePool. SQLite gets foreign keys (for
    cascades) and a StaticPool when in memory.
    """
    echo = os.getenv("SQL_DEBUG", "false").lower() == "true"

    if url.startswith("postgresql"):
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800,
            pool_pre_ping=True,
            echo=echo,
        )
        logger.info("PostgreSQL engine ready (pool 5+10)")
        return engine

    kwargs = {"connect_args": {"check_same_thread": False}, "echo": echo}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # In-memory databases live and die with one connection
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)

    # Enable foreign keys for SQLite (cascade deletes)
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    logger.info("Created SQLite engine")
    return engine


# =============================================================================
# SESSION MANAGEMENT
# =============================================================================

class Database:
    """
    Engine plus session factory.

    Usage:
        db = Database("sqlite://")
        db.init()
        with db.session() as session:
            session.query(Project).all()
    """

    def __init__(self, url: Optional[str] = None, engine: Optional[Engine] = None):
        self.url = get_database_url(url) if engine is None else str(engine.url)
        self.engine = engine or create_db_engine(self.url)
        self._session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,  # Rows stay readable after the session closes
        )

    def init(self) -> None:
        """Create all tables (idempotent)."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables verified")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Transactional session scope: commit on success, rollback on error.
        """
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def check_connection(self) -> bool:
        """Verify the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    def dispose(self) -> None:
        self.engine.dispose()
