"""Database connection, transaction scope and session management."""
from contextlib import contextmanager
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator, Iterator, Optional
import logging

from config import DATABASE_URL
from errors import StoreUnavailable
from models import Base

logger = logging.getLogger(__name__)


def build_engine(url: str) -> Engine:
    """Create an engine; SQLite (local runs, tests) gets a single shared connection."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool
        )
    return create_engine(
        url,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_timeout=30  # Wait max 30 seconds for a connection
    )


engine = build_engine(DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session.

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Run a unit of work that either commits as a whole or not at all.

    Commits when the block exits cleanly. Any exception, including one raised
    by the commit itself, rolls the transaction back before propagating.
    """
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise


def init_db(bind: Optional[Engine] = None) -> None:
    """Create the orders and order_items tables if they do not exist."""
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database schema ready")


def healthcheck(bind: Optional[Engine] = None) -> bool:
    """
    Liveness check against the relational store.

    Raises:
        StoreUnavailable: If the store cannot run a trivial query
    """
    try:
        with (bind or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database healthcheck failed", extra={"error": str(e)})
        raise StoreUnavailable(str(e)) from e
    return True
