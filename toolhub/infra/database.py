"""Database session management."""

from contextlib import contextmanager
from typing import Generator, Optional
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool

from toolhub.infra.config import config


def _build_engine(database_url: str):
    """Create the engine; SQLite (tests, local runs) shares one connection."""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=config.DEBUG,
        )
    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=10,  # Number of connections to maintain
        max_overflow=20,  # Max connections beyond pool_size
        pool_timeout=30,  # Seconds to wait for connection from pool
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_pre_ping=True,  # Verify connections before using
        echo=config.DEBUG,
    )


engine = _build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session(organization_id: Optional[str] = None) -> Generator[Session, None, None]:
    """
    Get a database session.

    On PostgreSQL, sets app.current_organization_id so row level security
    policies can scope queries to the calling organization.
    """
    session = SessionLocal()
    try:
        if organization_id and session.get_bind().dialect.name == "postgresql":
            session.execute(
                text("SELECT set_config('app.current_organization_id', :org_id, false)"),
                {"org_id": organization_id},
            )

        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI routes."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
