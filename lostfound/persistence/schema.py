"""Database schema definition and ORM models.

ORM rows convert to and from the pydantic domain models through
``to_domain`` / ``from_domain``. Timestamps are stored as fixed-width ISO 8601
strings (see ``lostfound.utils.timestamps``) so that SQL string comparison
orders them chronologically.
"""

import json
import logging

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    inspect,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from lostfound.domain.models import (
    Alert,
    Confirmation,
    Listing,
    Message,
    ModerationFlag,
    Thread,
    User,
)
from lostfound.utils.timestamps import format_date, format_timestamp, parse_date, parse_timestamp

logger = logging.getLogger(__name__)

Base = declarative_base()


class UserModel(Base):
    """ORM model for the users table."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True, nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    phone = Column(String(32), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    is_moderator = Column(Boolean, nullable=False, default=False)
    created_at = Column(String(50), nullable=False)

    def to_domain(self) -> User:
        return User(
            id=self.id,
            name=self.name,
            email=self.email,
            email_verified=bool(self.email_verified),
            phone=self.phone,
            active=bool(self.active),
            is_moderator=bool(self.is_moderator),
            created_at=parse_timestamp(self.created_at),
        )

    @classmethod
    def from_domain(cls, user: User) -> "UserModel":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            email_verified=user.email_verified,
            phone=user.phone,
            active=user.active,
            is_moderator=user.is_moderator,
            created_at=format_timestamp(user.created_at),
        )


class ListingModel(Base):
    """ORM model for the listings table."""

    __tablename__ = "listings"

    id = Column(String(64), primary_key=True, nullable=False)
    finder_user_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    title = Column(String(255), nullable=False)
    category = Column(String(32), nullable=False)
    location_text = Column(String(255), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    found_at = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    image_url = Column(Text, nullable=True)
    status = Column(String(16), nullable=False)
    views_count = Column(Integer, nullable=False, default=0)
    is_moderated = Column(Boolean, nullable=False, default=False)
    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_listings_status_created", "status", "created_at"),
        Index("idx_listings_finder", "finder_user_id"),
        Index("idx_listings_category", "category"),
    )

    def to_domain(self) -> Listing:
        return Listing(
            id=self.id,
            finder_user_id=self.finder_user_id,
            title=self.title,
            category=self.category,
            location_text=self.location_text,
            latitude=self.latitude,
            longitude=self.longitude,
            found_at=parse_timestamp(self.found_at),
            description=self.description,
            image_url=self.image_url,
            status=self.status,
            views_count=self.views_count or 0,
            is_moderated=bool(self.is_moderated),
            created_at=parse_timestamp(self.created_at),
            updated_at=parse_timestamp(self.updated_at),
        )

    @classmethod
    def from_domain(cls, listing: Listing) -> "ListingModel":
        model = cls(id=listing.id)
        model.apply(listing)
        return model

    def apply(self, listing: Listing) -> None:
        """Copy every mutable column from a domain listing."""
        self.finder_user_id = listing.finder_user_id
        self.title = listing.title
        self.category = listing.category.value
        self.location_text = listing.location_text
        self.latitude = listing.latitude
        self.longitude = listing.longitude
        self.found_at = format_timestamp(listing.found_at)
        self.description = listing.description
        self.image_url = listing.image_url
        self.status = listing.status.value
        self.views_count = listing.views_count
        self.is_moderated = listing.is_moderated
        self.created_at = format_timestamp(listing.created_at)
        self.updated_at = format_timestamp(listing.updated_at)


class AlertModel(Base):
    """ORM model for the alerts table.

    ``channels`` is stored as a JSON array of channel names.
    """

    __tablename__ = "alerts"

    id = Column(String(64), primary_key=True, nullable=False)
    owner_user_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    title = Column(String(255), nullable=False)
    query_text = Column(String(255), nullable=True)
    category = Column(String(32), nullable=True)
    location_text = Column(String(255), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    radius_km = Column(Float, nullable=True)
    date_from = Column(String(10), nullable=True)
    date_to = Column(String(10), nullable=True)
    channels = Column(Text, nullable=False, default="[]")
    active = Column(Boolean, nullable=False, default=True)
    last_triggered_at = Column(String(50), nullable=True)
    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_alerts_owner", "owner_user_id"),
        Index("idx_alerts_active", "active"),
    )

    def to_domain(self) -> Alert:
        return Alert(
            id=self.id,
            owner_user_id=self.owner_user_id,
            title=self.title,
            query_text=self.query_text,
            category=self.category,
            location_text=self.location_text,
            latitude=self.latitude,
            longitude=self.longitude,
            radius_km=self.radius_km,
            date_from=parse_date(self.date_from),
            date_to=parse_date(self.date_to),
            channels=json.loads(self.channels or "[]"),
            active=bool(self.active),
            last_triggered_at=parse_timestamp(self.last_triggered_at),
            created_at=parse_timestamp(self.created_at),
            updated_at=parse_timestamp(self.updated_at),
        )

    @classmethod
    def from_domain(cls, alert: Alert) -> "AlertModel":
        model = cls(id=alert.id)
        model.apply(alert)
        return model

    def apply(self, alert: Alert) -> None:
        """Copy every mutable column from a domain alert."""
        self.owner_user_id = alert.owner_user_id
        self.title = alert.title
        self.query_text = alert.query_text
        self.category = alert.category
        self.location_text = alert.location_text
        self.latitude = alert.latitude
        self.longitude = alert.longitude
        self.radius_km = alert.radius_km
        self.date_from = format_date(alert.date_from)
        self.date_to = format_date(alert.date_to)
        self.channels = json.dumps([channel.value for channel in alert.channels])
        self.active = alert.active
        self.last_triggered_at = format_timestamp(alert.last_triggered_at)
        self.created_at = format_timestamp(alert.created_at)
        self.updated_at = format_timestamp(alert.updated_at)


class ThreadModel(Base):
    """ORM model for the threads table.

    One thread per (listing, owner) pair.
    """

    __tablename__ = "threads"

    id = Column(String(64), primary_key=True, nullable=False)
    listing_id = Column(String(64), ForeignKey("listings.id"), nullable=False)
    owner_user_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    finder_user_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    status = Column(String(16), nullable=False)
    approved_by_owner = Column(Boolean, nullable=False, default=False)
    approved_by_finder = Column(Boolean, nullable=False, default=False)
    last_message_at = Column(String(50), nullable=True)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint("listing_id", "owner_user_id", name="uq_threads_listing_owner"),
        Index("idx_threads_owner", "owner_user_id"),
        Index("idx_threads_finder", "finder_user_id"),
    )

    def to_domain(self) -> Thread:
        return Thread(
            id=self.id,
            listing_id=self.listing_id,
            owner_user_id=self.owner_user_id,
            finder_user_id=self.finder_user_id,
            status=self.status,
            approved_by_owner=bool(self.approved_by_owner),
            approved_by_finder=bool(self.approved_by_finder),
            last_message_at=parse_timestamp(self.last_message_at),
            created_at=parse_timestamp(self.created_at),
        )

    @classmethod
    def from_domain(cls, thread: Thread) -> "ThreadModel":
        return cls(
            id=thread.id,
            listing_id=thread.listing_id,
            owner_user_id=thread.owner_user_id,
            finder_user_id=thread.finder_user_id,
            status=thread.status.value,
            approved_by_owner=thread.approved_by_owner,
            approved_by_finder=thread.approved_by_finder,
            last_message_at=format_timestamp(thread.last_message_at),
            created_at=format_timestamp(thread.created_at),
        )


class MessageModel(Base):
    """ORM model for the messages table."""

    __tablename__ = "messages"

    id = Column(String(64), primary_key=True, nullable=False)
    thread_id = Column(String(64), ForeignKey("threads.id"), nullable=False)
    sender_user_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_messages_thread_created", "thread_id", "created_at"),)

    def to_domain(self) -> Message:
        return Message(
            id=self.id,
            thread_id=self.thread_id,
            sender_user_id=self.sender_user_id,
            body=self.body,
            created_at=parse_timestamp(self.created_at),
        )

    @classmethod
    def from_domain(cls, message: Message) -> "MessageModel":
        return cls(
            id=message.id,
            thread_id=message.thread_id,
            sender_user_id=message.sender_user_id,
            body=message.body,
            created_at=format_timestamp(message.created_at),
        )


class ConfirmationModel(Base):
    """ORM model for the confirmations table.

    ``thread_id`` is unique: regenerating a code replaces the previous row.
    """

    __tablename__ = "confirmations"

    id = Column(String(64), primary_key=True, nullable=False)
    thread_id = Column(String(64), ForeignKey("threads.id"), nullable=False, unique=True)
    code = Column(String(16), nullable=False, unique=True)
    expires_at = Column(String(50), nullable=False)
    used_at = Column(String(50), nullable=True)
    used_by_user_id = Column(String(64), ForeignKey("users.id"), nullable=True)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_confirmations_expires", "expires_at"),)

    def to_domain(self) -> Confirmation:
        return Confirmation(
            id=self.id,
            thread_id=self.thread_id,
            code=self.code,
            expires_at=parse_timestamp(self.expires_at),
            used_at=parse_timestamp(self.used_at),
            used_by_user_id=self.used_by_user_id,
            created_at=parse_timestamp(self.created_at),
        )

    @classmethod
    def from_domain(cls, confirmation: Confirmation) -> "ConfirmationModel":
        return cls(
            id=confirmation.id,
            thread_id=confirmation.thread_id,
            code=confirmation.code,
            expires_at=format_timestamp(confirmation.expires_at),
            used_at=format_timestamp(confirmation.used_at),
            used_by_user_id=confirmation.used_by_user_id,
            created_at=format_timestamp(confirmation.created_at),
        )



class ModerationFlagModel(Base):
    """ORM model for the moderation_flags table."""

    __tablename__ = "moderation_flags"

    id = Column(String(64), primary_key=True, nullable=False)
    entity_type = Column(String(16), nullable=False)
    entity_id = Column(String(64), nullable=False)
    reason = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(16), nullable=False)
    priority = Column(String(16), nullable=False)
    created_by_user_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    reviewed_by_user_id = Column(String(64), ForeignKey("users.id"), nullable=True)
    created_at = Column(String(50), nullable=False)
    reviewed_at = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_flags_entity", "entity_type", "entity_id"),
        Index("idx_flags_status", "status"),
        Index("idx_flags_priority", "priority"),
        Index("idx_flags_created_at", "created_at"),
    )

    def to_domain(self) -> ModerationFlag:
        return ModerationFlag(
            id=self.id,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            reason=self.reason,
            description=self.description,
            status=self.status,
            priority=self.priority,
            created_by_user_id=self.created_by_user_id,
            reviewed_by_user_id=self.reviewed_by_user_id,
            created_at=parse_timestamp(self.created_at),
            reviewed_at=parse_timestamp(self.reviewed_at),
        )

    @classmethod
    def from_domain(cls, flag: ModerationFlag) -> "ModerationFlagModel":
        model = cls(id=flag.id)
        model.apply(flag)
        return model

    def apply(self, flag: ModerationFlag) -> None:
        """Copy every mutable column from a domain flag."""
        self.entity_type = flag.entity_type.value
        self.entity_id = flag.entity_id
        self.reason = flag.reason
        self.description = flag.description
        self.status = flag.status.value
        self.priority = flag.priority.value
        self.created_by_user_id = flag.created_by_user_id
        self.reviewed_by_user_id = flag.reviewed_by_user_id
        self.created_at = format_timestamp(flag.created_at)
        self.reviewed_at = format_timestamp(flag.reviewed_at)

def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent)."""
    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
