"""Domain models module for the lost-and-found marketplace."""

from .models import (
    DEFAULT_RADIUS_KM,
    Alert,
    Confirmation,
    ConfirmationState,
    FlagEntityType,
    FlagPriority,
    FlagStatus,
    Listing,
    ListingCategory,
    ListingStatus,
    Message,
    ModerationFlag,
    ModerationStats,
    NotificationChannel,
    Thread,
    ThreadStatus,
    User,
)

__all__ = [
    "DEFAULT_RADIUS_KM",
    "Alert",
    "Confirmation",
    "ConfirmationState",
    "FlagEntityType",
    "FlagPriority",
    "FlagStatus",
    "Listing",
    "ListingCategory",
    "ListingStatus",
    "Message",
    "ModerationFlag",
    "ModerationStats",
    "NotificationChannel",
    "Thread",
    "ThreadStatus",
    "User",
]
