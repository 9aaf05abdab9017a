"""
Database Configuration
Connection, session management, and initialization
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from bop_stack.config import settings

logger = logging.getLogger(__name__)

# ============================================================================
# DATABASE ENGINE
# ============================================================================


def enable_sqlite_foreign_keys(sqlite_engine):
    """SQLite leaves foreign keys off per connection; turn them on like the server DB."""

    @event.listens_for(sqlite_engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: str):
    """
    Create the SQLAlchemy engine for a connection string.

    SQLite (local runs, tests) can't use the server pool settings, so it
    gets a thread-shareable connection instead.
    """
    if database_url.startswith("sqlite"):
        sqlite_engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=False,
        )
        enable_sqlite_foreign_keys(sqlite_engine)
        return sqlite_engine

    # QueuePool: Connection pooling for concurrent requests
    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=30,
        pool_pre_ping=True,  # Test connections before using them
        echo=settings.ENVIRONMENT == "development",  # Log SQL queries in dev
        connect_args={
            "connect_timeout": 10,  # Connection timeout in seconds
        },
    )


engine = build_engine(settings.DATABASE_URL)

# ============================================================================
# SESSION MANAGEMENT
# ============================================================================

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session in routes.

    Usage in routes:
        @router.get("/api/stack/{stack_id}")
        async def read_stack(stack_id: int, db: Session = Depends(get_db)):
            return get_stack_with_parts(db, stack_id)

    The session is rolled back on error and closed after the route returns.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        db.rollback()
        logger.error(f"Database error: {str(e)}")
        raise
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database session (for non-route code).

    Usage in scripts:
        with get_db_context() as db:
            spec = db.query(FlangeSpec).first()
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        db.rollback()
        logger.error(f"Database error: {str(e)}")
        raise
    finally:
        db.close()


# ============================================================================
# DATABASE INITIALIZATION
# ============================================================================


def init_db(bind=None):
    """
    Initialize database - create all tables.

    Called on application startup via lifespan in main.py.
    Safe to call multiple times (idempotent).
    """
    try:
        # Importing the models package registers every table with the metadata
        from bop_stack.models import Base

        Base.metadata.create_all(bind=bind or engine)

        logger.info("[OK] Database tables created successfully")

    except Exception as e:
        logger.error(f"[ERROR] Failed to initialize database: {str(e)}")
        raise


# ============================================================================
# CONNECTION POOLING EVENTS
# ============================================================================


@event.listens_for(QueuePool, "checkout")
def receive_checkout(dbapi_conn, connection_record, connection_proxy):
    """Called when a connection is taken from the pool"""
    logger.debug("[POOL] Connection checked out from pool")


@event.listens_for(QueuePool, "checkin")
def receive_checkin(dbapi_conn, connection_record):
    """Called when a connection is returned to the pool"""
    logger.debug("[POOL] Connection returned to pool")


# ============================================================================
# HEALTH CHECK
# ============================================================================


def health_check_db() -> bool:
    """Check if database is accessible."""
    try:
        with get_db_context() as db:
            db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return False


def close_db():
    """
    Close all database connections.
    Called on application shutdown.
    """
    engine.dispose()
    logger.info("[OK] Database connections closed")
