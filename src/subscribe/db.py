"""
SQLAlchemy 2.0 Database Configuration

Synchronous engine and session setup for the membership tables.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import DateTime, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from subscribe.settings import settings

# ==========================================
# SQLAlchemy 2.0 Declarative Base
# ==========================================


class Base(DeclarativeBase):
    """Base class for all database models using SQLAlchemy 2.0 declarative mapping."""

    pass


class TimestampMixin:
    """Adds created_at and updated_at timestamps to models."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )


# ==========================================
# Engine and Session Management
# ==========================================

# Create engine lazily so tests can point settings elsewhere first
_sync_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def get_sync_engine() -> Engine:
    """Get or create the synchronous engine."""
    global _sync_engine
    if _sync_engine is None:
        _sync_engine = create_engine(
            settings.database.url,
            echo=settings.database.echo,
            pool_pre_ping=settings.database.pool_pre_ping,
        )
    return _sync_engine


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the session factory bound to the sync engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_sync_engine(),
            class_=Session,
        )
    return _session_factory


@contextmanager
def get_db() -> Iterator[Session]:
    """Get a synchronous database session.

    The session is one unit of work: committed when the block completes,
    rolled back when it raises.
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ==========================================
# Database Initialization
# ==========================================


def create_all_tables(engine: Engine | None = None) -> None:
    """Create all tables in the database."""
    import subscribe.memberships.tables  # noqa: F401

    Base.metadata.create_all(bind=engine or get_sync_engine())


def drop_all_tables(engine: Engine | None = None) -> None:
    """Drop all tables from the database. Use with caution!"""
    Base.metadata.drop_all(bind=engine or get_sync_engine())


__all__ = [
    "Base",
    "TimestampMixin",
    "get_db",
    "get_sync_engine",
    "get_session_factory",
    "create_all_tables",
    "drop_all_tables",
]
