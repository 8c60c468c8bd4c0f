# This project was developed with assistance from AI tools.
"""Engine, session factory and the process-wide document store."""

import logging

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import db_settings
from .store import DocumentStore

logger = logging.getLogger(__name__)

Base = declarative_base()

engine = create_async_engine(
    db_settings.DATABASE_URL,
    echo=db_settings.SQL_ECHO,
    pool_pre_ping=True,
)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

_store: DocumentStore | None = None


def get_store() -> DocumentStore:
    """Return the configured document store (FastAPI dependency).

    STORE_BACKEND=memory selects the in-process store for local work
    without PostgreSQL.
    """
    global _store  # noqa: PLW0603
    if _store is None:
        if db_settings.STORE_BACKEND == "memory":
            from .memory import MemoryDocumentStore

            logger.warning("Using in-memory document store; data is not persisted")
            _store = MemoryDocumentStore(max_attempts=db_settings.TRANSACTION_MAX_ATTEMPTS)
        else:
            from .postgres import PostgresDocumentStore

            _store = PostgresDocumentStore(
                SessionLocal, max_attempts=db_settings.TRANSACTION_MAX_ATTEMPTS
            )
    return _store
