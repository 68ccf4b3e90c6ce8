"""Persistence layer exceptions.

Every error raised by the repositories derives from PersistenceError so the
service layer can catch them with a single clause.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when the engine cannot be created or reached."""

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when an update targets a row that does not exist.

    Plain lookups return None instead.
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations (unique thread per listing/owner, unique code)."""

    pass
