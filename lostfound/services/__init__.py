"""Business services sitting between the HTTP routers and the repositories.

Each public method opens its own transaction with ``get_session()`` and
raises ServiceError subclasses for rule violations.
"""

from .alerts import AlertService
from .confirmations import ConfirmationService
from .exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from .listings import ListingService, Page
from .moderation import ModerationService
from .threads import ThreadService
from .users import UserService

__all__ = [
    "AlertService",
    "ConfirmationService",
    "ListingService",
    "ModerationService",
    "ThreadService",
    "UserService",
    "Page",
    "ServiceError",
    "NotFoundError",
    "ValidationError",
    "AuthorizationError",
    "ConflictError",
]
