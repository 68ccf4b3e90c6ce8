"""Core domain models for users, listings, alerts, threads and confirmations.

This module defines the data structures passed between the service layer and
the repositories:
- User: account holder (finder, owner, or both)
- Listing: a posted "found item"
- Alert: a saved search that triggers notifications on matching listings
- Thread: two-party conversation tied to one listing
- Message: a single message inside a thread
- Confirmation: one-time handover code closing a thread
- ModerationFlag: a user report against a listing, message or user
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_RADIUS_KM = 10.0


def _to_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is None:
        return None
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


class ListingCategory(str, Enum):
    """Categories a found item can be filed under."""

    ELECTRONICS = "electronics"
    KEYS = "keys"
    CLOTHING = "clothing"
    DOCUMENTS = "documents"
    BAGS = "bags"
    OTHER = "other"


class ListingStatus(str, Enum):
    """Lifecycle states of a listing."""

    ACTIVE = "active"
    RESOLVED = "resolved"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class ThreadStatus(str, Enum):
    """Lifecycle states of a conversation thread."""

    PENDING = "pending"
    APPROVED = "approved"
    ACTIVE = "active"
    CLOSED = "closed"


class NotificationChannel(str, Enum):
    """Delivery channels an alert can notify through."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"


class FlagEntityType(str, Enum):
    """Kinds of content a moderation flag can target."""

    LISTING = "listing"
    MESSAGE = "message"
    USER = "user"


class FlagStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class FlagPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ConfirmationState(str, Enum):
    """Derived handover state; only ISSUED corresponds to a live row."""

    ISSUED = "issued"
    REDEEMED = "redeemed"
    EXPIRED = "expired"


class User(BaseModel):
    """Account holder.

    Only the attributes the notification rules depend on are modelled:
    email is used when verified, SMS when a phone number is present.
    """

    id: str = Field(..., description="User identifier")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    email_verified: bool = Field(False, description="Whether the email address was verified")
    phone: Optional[str] = Field(None, description="Phone number for SMS delivery")
    active: bool = Field(True, description="Whether the account is active")
    is_moderator: bool = Field(False, description="Whether the user may review moderation flags")
    created_at: datetime = Field(..., description="Account creation time (UTC)")

    @field_validator("phone")
    @classmethod
    def blank_phone_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty phone numbers as absent."""
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Ensure datetime is timezone-aware and in UTC."""
        return _to_utc(v)


class Listing(BaseModel):
    """A found-item posting.

    ``latitude``/``longitude`` are optional; when present they are used for
    geo-radius alert matching. A listing in ``deleted`` status is immutable.
    """

    id: str = Field(..., description="Listing identifier")
    finder_user_id: str = Field(..., description="User who found the item")
    title: str = Field(..., description="Short title")
    category: ListingCategory = Field(..., description="Item category")
    location_text: str = Field(..., description="Free-text place where the item was found")
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    found_at: datetime = Field(..., description="When the item was found (UTC)")
    description: str = Field(..., description="Free-text description")
    image_url: Optional[str] = Field(None, description="Optional image URL")
    status: ListingStatus = Field(ListingStatus.ACTIVE)
    views_count: int = Field(0, ge=0)
    is_moderated: bool = Field(False)
    created_at: datetime = Field(..., description="Creation time (UTC)")
    updated_at: datetime = Field(..., description="Last update time (UTC)")

    @field_validator("found_at", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Ensure datetime is timezone-aware and in UTC."""
        return _to_utc(v)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class Alert(BaseModel):
    """A saved search owned by a user.

    Every criterion is optional; an unset criterion does not restrict
    matching. ``radius_km`` only applies when both the alert and the listing
    carry coordinates.
    """

    id: str = Field(..., description="Alert identifier")
    owner_user_id: str = Field(..., description="User who owns the alert")
    title: str = Field(..., description="Alert name shown in notifications")
    query_text: Optional[str] = Field(None, description="Keyword searched in title/description")
    category: Optional[str] = Field(None, description="Category to match (case-insensitive)")
    location_text: Optional[str] = Field(None, description="Substring of the listing location")
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    radius_km: Optional[float] = Field(DEFAULT_RADIUS_KM, gt=0)
    date_from: Optional[date] = Field(None, description="Earliest found-at day (inclusive)")
    date_to: Optional[date] = Field(None, description="Latest found-at day (inclusive)")
    channels: List[NotificationChannel] = Field(default_factory=list)
    active: bool = Field(True)
    last_triggered_at: Optional[datetime] = Field(None)
    created_at: datetime = Field(..., description="Creation time (UTC)")
    updated_at: datetime = Field(..., description="Last update time (UTC)")

    @field_validator("query_text", "category", "location_text")
    @classmethod
    def blank_is_unset(cls, v: Optional[str]) -> Optional[str]:
        """Whitespace-only criteria are treated as unset; other text is kept as entered."""
        if v is None or not v.strip():
            return None
        return v

    @field_validator("last_triggered_at", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _to_utc(v)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class Thread(BaseModel):
    """Conversation between the person who lost an item and its finder."""

    id: str = Field(..., description="Thread identifier")
    listing_id: str = Field(..., description="Listing the conversation is about")
    owner_user_id: str = Field(..., description="User claiming the item")
    finder_user_id: str = Field(..., description="User who posted the listing")
    status: ThreadStatus = Field(ThreadStatus.PENDING)
    approved_by_owner: bool = Field(False)
    approved_by_finder: bool = Field(False)
    last_message_at: Optional[datetime] = Field(None)
    created_at: datetime = Field(..., description="Creation time (UTC)")

    @field_validator("last_message_at", "created_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _to_utc(v)

    def is_party(self, user_id: str) -> bool:
        """Whether ``user_id`` is the owner or the finder of this thread."""
        return user_id in (self.owner_user_id, self.finder_user_id)


class Message(BaseModel):
    """A single message posted in a thread."""

    id: str
    thread_id: str
    sender_user_id: str
    body: str = Field(..., min_length=1, max_length=2000)
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Ensure datetime is timezone-aware and in UTC."""
        return _to_utc(v)


class Confirmation(BaseModel):
    """One-time handover code bound to a thread.

    The REDEEMED and EXPIRED states are derived from ``used_at`` and
    ``expires_at``; they are not stored.
    """

    id: str = Field(..., description="Confirmation identifier")
    thread_id: str = Field(..., description="Thread the code belongs to")
    code: str = Field(..., min_length=1, description="Handover code")
    expires_at: datetime = Field(..., description="Expiry time (UTC)")
    used_at: Optional[datetime] = Field(None, description="Redemption time (UTC)")
    used_by_user_id: Optional[str] = Field(None, description="User who redeemed the code")
    created_at: datetime = Field(..., description="Creation time (UTC)")

    @field_validator("expires_at", "used_at", "created_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _to_utc(v)

    @property
    def is_used(self) -> bool:
        return self.used_at is not None

    def is_expired(self, now: datetime) -> bool:
        """Whether the code is past its expiry at ``now``."""
        return _to_utc(now) > self.expires_at

    def state(self, now: datetime) -> ConfirmationState:
        """Derive the handover state at ``now``."""
        if self.is_used:
            return ConfirmationState.REDEEMED
        if self.is_expired(now):
            return ConfirmationState.EXPIRED
        return ConfirmationState.ISSUED


class ModerationFlag(BaseModel):
    """A report raised by a user against a listing, a message or another user.

    Flags start ``pending``; a moderator approves (the target is taken down)
    or rejects them.
    """

    id: str = Field(..., description="Flag identifier")
    entity_type: FlagEntityType = Field(..., description="Kind of the reported content")
    entity_id: str = Field(..., min_length=1, max_length=64, description="Id of the reported content")
    reason: str = Field(..., min_length=1, max_length=255, description="Short reason for the report")
    description: Optional[str] = Field(None, description="Optional details")
    status: FlagStatus = Field(FlagStatus.PENDING)
    priority: FlagPriority = Field(FlagPriority.MEDIUM)
    created_by_user_id: str = Field(..., description="User who raised the flag")
    reviewed_by_user_id: Optional[str] = Field(None, description="Moderator who reviewed the flag")
    created_at: datetime = Field(..., description="Creation time (UTC)")
    reviewed_at: Optional[datetime] = Field(None, description="Review time (UTC)")

    @field_validator("created_at", "reviewed_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _to_utc(v)


class ModerationStats(BaseModel):
    """Flag counts per review status."""

    pending: int = 0
    approved: int = 0
    rejected: int = 0
    total: int = 0
