"""Persistence layer for database operations using SQLAlchemy.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes (one per table)
    - UserRepository, ListingRepository, AlertRepository,
      ThreadRepository, MessageRepository, ConfirmationRepository,
      ModerationFlagRepository

Example usage:
    >>> from lostfound.persistence import init_database, get_session, ListingRepository
    >>>
    >>> init_database("sqlite:///./data/lostfound.db")
    >>>
    >>> with get_session() as session:
    ...     listing = ListingRepository(session).get_by_id("abc123")
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import (
    AlertRepository,
    ConfirmationRepository,
    ListingRepository,
    MessageRepository,
    ModerationFlagRepository,
    ThreadRepository,
    UserRepository,
)

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "UserRepository",
    "ListingRepository",
    "AlertRepository",
    "ThreadRepository",
    "MessageRepository",
    "ConfirmationRepository",
    "ModerationFlagRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
