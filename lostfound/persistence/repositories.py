"""Data access layer (repositories) for persistence operations.

Repositories wrap a SQLAlchemy session, return pydantic domain models rather
than ORM rows, and translate SQLAlchemy errors into persistence exceptions.
They flush but never commit; the caller's ``get_session()`` block owns the
transaction.
"""

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from lostfound.domain.models import (
    Alert,
    Confirmation,
    FlagEntityType,
    FlagPriority,
    FlagStatus,
    Listing,
    ListingStatus,
    Message,
    ModerationFlag,
    ModerationStats,
    Thread,
    User,
)
from lostfound.utils.timestamps import end_of_day, format_timestamp, start_of_day

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import (
    AlertModel,
    ConfirmationModel,
    ListingModel,
    MessageModel,
    ModerationFlagModel,
    ThreadModel,
    UserModel,
)

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user accounts."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, user_id: str) -> Optional[User]:
        """Retrieve a user by primary key.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(UserModel, user_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user: {e}") from e

    def get_by_email(self, email: str) -> Optional[User]:
        try:
            stmt = select(UserModel).where(func.lower(UserModel.email) == email.lower())
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user by email: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user: {e}") from e

    def upsert(self, user: User) -> User:
        """Insert a new user or overwrite the stored profile.

        Raises:
            DataIntegrityError: If the email belongs to another user
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(UserModel, user.id)
            if existing:
                existing.name = user.name
                existing.email = user.email
                existing.email_verified = user.email_verified
                existing.phone = user.phone
                existing.active = user.active
                existing.is_moderator = user.is_moderator
                self.session.flush()
                return existing.to_domain()

            model = UserModel.from_domain(user)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error upserting user {user.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to upsert user due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting user {user.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert user: {e}") from e


class ListingRepository:
    """Repository for found-item listings."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, listing: Listing) -> Listing:
        try:
            model = ListingModel.from_domain(listing)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error creating listing {listing.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to create listing due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating listing {listing.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create listing: {e}") from e

    def get_by_id(self, listing_id: str) -> Optional[Listing]:
        try:
            model = self.session.get(ListingModel, listing_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving listing {listing_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve listing: {e}") from e

    def update(self, listing: Listing) -> Listing:
        """Overwrite a stored listing with the given domain model.

        Raises:
            RecordNotFoundError: If the listing does not exist
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(ListingModel, listing.id)
            if existing is None:
                raise RecordNotFoundError(f"Listing {listing.id} not found")
            existing.apply(listing)
            self.session.flush()
            return existing.to_domain()
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating listing {listing.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update listing: {e}") from e

    def set_status(self, listing_id: str, status: ListingStatus, timestamp: datetime) -> None:
        """Change a listing's status and bump updated_at.

        Raises:
            RecordNotFoundError: If the listing does not exist
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                update(ListingModel)
                .where(ListingModel.id == listing_id)
                .values(status=status.value, updated_at=format_timestamp(timestamp))
            )
            result = self.session.execute(stmt)
            self.session.flush()
            if result.rowcount == 0:
                raise RecordNotFoundError(f"Listing {listing_id} not found")
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating status for listing {listing_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update listing status: {e}") from e

    def increment_views(self, listing_id: str) -> None:
        try:
            stmt = (
                update(ListingModel)
                .where(ListingModel.id == listing_id)
                .values(views_count=ListingModel.views_count + 1)
            )
            self.session.execute(stmt)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error incrementing views for listing {listing_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to increment views: {e}") from e

    def search(
        self,
        query: Optional[str] = None,
        category: Optional[str] = None,
        location: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Listing], int]:
        """Search active listings, newest first.

        Text filters are case-insensitive substring matches: ``query`` against
        title or description, ``location`` against the location text. The date
        range applies to ``found_at`` with whole-day boundaries.

        Returns:
            Tuple of (page of listings, total number of matching listings)

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            conditions = [ListingModel.status == ListingStatus.ACTIVE.value]

            if query:
                needle = query.strip().lower()
                conditions.append(
                    or_(
                        func.lower(ListingModel.title).contains(needle, autoescape=True),
                        func.lower(ListingModel.description).contains(needle, autoescape=True),
                    )
                )
            if category:
                conditions.append(func.lower(ListingModel.category) == category.strip().lower())
            if location:
                conditions.append(
                    func.lower(ListingModel.location_text).contains(
                        location.strip().lower(), autoescape=True
                    )
                )
            if date_from:
                conditions.append(ListingModel.found_at >= format_timestamp(start_of_day(date_from)))
            if date_to:
                conditions.append(ListingModel.found_at <= format_timestamp(end_of_day(date_to)))

            total = self.session.execute(
                select(func.count()).select_from(ListingModel).where(*conditions)
            ).scalar_one()

            stmt = (
                select(ListingModel)
                .where(*conditions)
                .order_by(ListingModel.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models], total

        except SQLAlchemyError as e:
            logger.error(f"Error searching listings: {e}", exc_info=True)
            raise PersistenceError(f"Failed to search listings: {e}") from e

    def get_by_finder(self, finder_user_id: str) -> List[Listing]:
        """All non-deleted listings posted by a user, newest first."""
        try:
            stmt = (
                select(ListingModel)
                .where(
                    ListingModel.finder_user_id == finder_user_id,
                    ListingModel.status != ListingStatus.DELETED.value,
                )
                .order_by(ListingModel.created_at.desc())
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving listings for finder {finder_user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve listings: {e}") from e


class AlertRepository:
    """Repository for saved-search alerts."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, alert: Alert) -> Alert:
        try:
            model = AlertModel.from_domain(alert)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error creating alert {alert.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to create alert due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating alert {alert.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create alert: {e}") from e

    def get_by_id(self, alert_id: str) -> Optional[Alert]:
        try:
            model = self.session.get(AlertModel, alert_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve alert: {e}") from e

    def update(self, alert: Alert) -> Alert:
        """Overwrite a stored alert.

        Raises:
            RecordNotFoundError: If the alert does not exist
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(AlertModel, alert.id)
            if existing is None:
                raise RecordNotFoundError(f"Alert {alert.id} not found")
            existing.apply(alert)
            self.session.flush()
            return existing.to_domain()
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating alert {alert.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update alert: {e}") from e

    def delete(self, alert_id: str) -> bool:
        """Delete an alert. Returns False when nothing was deleted."""
        try:
            result = self.session.execute(delete(AlertModel).where(AlertModel.id == alert_id))
            self.session.flush()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error(f"Error deleting alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete alert: {e}") from e

    def get_by_owner(self, owner_user_id: str) -> List[Alert]:
        try:
            stmt = (
                select(AlertModel)
                .where(AlertModel.owner_user_id == owner_user_id)
                .order_by(AlertModel.created_at.desc())
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving alerts for owner {owner_user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve alerts: {e}") from e

    def get_active(self) -> List[Alert]:
        """Snapshot of every active alert, oldest first.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(AlertModel)
                .where(AlertModel.active.is_(True))
                .order_by(AlertModel.created_at.asc())
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving active alerts: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve active alerts: {e}") from e

    def count_active_for_owner(self, owner_user_id: str) -> int:
        try:
            stmt = select(func.count()).select_from(AlertModel).where(
                AlertModel.owner_user_id == owner_user_id,
                AlertModel.active.is_(True),
            )
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting alerts for owner {owner_user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count alerts: {e}") from e

    def count_for_owner(self, owner_user_id: str) -> int:
        try:
            stmt = select(func.count()).select_from(AlertModel).where(
                AlertModel.owner_user_id == owner_user_id
            )
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting alerts for owner {owner_user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count alerts: {e}") from e

    def get_triggered_since(self, owner_user_id: str, since: datetime) -> List[Alert]:
        """Alerts of a user triggered at or after ``since``, most recent first."""
        try:
            stmt = (
                select(AlertModel)
                .where(
                    AlertModel.owner_user_id == owner_user_id,
                    AlertModel.last_triggered_at.is_not(None),
                    AlertModel.last_triggered_at >= format_timestamp(since),
                )
                .order_by(AlertModel.last_triggered_at.desc())
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving triggered alerts for {owner_user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve triggered alerts: {e}") from e

    def mark_triggered(self, alert_id: str, timestamp: datetime) -> None:
        """Set last_triggered_at.

        Raises:
            RecordNotFoundError: If the alert does not exist
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                update(AlertModel)
                .where(AlertModel.id == alert_id)
                .values(last_triggered_at=format_timestamp(timestamp))
            )
            result = self.session.execute(stmt)
            self.session.flush()
            if result.rowcount == 0:
                raise RecordNotFoundError(f"Alert {alert_id} not found")
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error marking alert {alert_id} triggered: {e}", exc_info=True)
            raise PersistenceError(f"Failed to mark alert triggered: {e}") from e


class ThreadRepository:
    """Repository for conversation threads."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, thread: Thread) -> Thread:
        """Insert a thread.

        Raises:
            DataIntegrityError: If a thread already exists for (listing, owner)
            PersistenceError: If database error occurs
        """
        try:
            model = ThreadModel.from_domain(thread)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            logger.warning(
                f"Integrity error creating thread for listing {thread.listing_id}: {e}"
            )
            raise DataIntegrityError(f"Failed to create thread due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating thread {thread.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create thread: {e}") from e

    def get_by_id(self, thread_id: str) -> Optional[Thread]:
        try:
            model = self.session.get(ThreadModel, thread_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving thread {thread_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve thread: {e}") from e

    def get_by_listing_and_owner(self, listing_id: str, owner_user_id: str) -> Optional[Thread]:
        try:
            stmt = select(ThreadModel).where(
                ThreadModel.listing_id == listing_id,
                ThreadModel.owner_user_id == owner_user_id,
            )
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving thread for listing {listing_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve thread: {e}") from e

    def get_for_user(self, user_id: str) -> List[Thread]:
        """Threads where the user is owner or finder, most recently active first."""
        try:
            stmt = (
                select(ThreadModel)
                .where(or_(ThreadModel.owner_user_id == user_id, ThreadModel.finder_user_id == user_id))
                .order_by(
                    func.coalesce(ThreadModel.last_message_at, ThreadModel.created_at).desc()
                )
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving threads for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve threads: {e}") from e

    def update(self, thread: Thread) -> Thread:
        """Persist status, approval flags and last_message_at.

        Raises:
            RecordNotFoundError: If the thread does not exist
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(ThreadModel, thread.id)
            if existing is None:
                raise RecordNotFoundError(f"Thread {thread.id} not found")
            existing.status = thread.status.value
            existing.approved_by_owner = thread.approved_by_owner
            existing.approved_by_finder = thread.approved_by_finder
            existing.last_message_at = format_timestamp(thread.last_message_at)
            self.session.flush()
            return existing.to_domain()
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating thread {thread.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update thread: {e}") from e


class MessageRepository:
    """Repository for thread messages."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, message: Message) -> Message:
        try:
            model = MessageModel.from_domain(message)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except SQLAlchemyError as e:
            logger.error(f"Error creating message in thread {message.thread_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create message: {e}") from e

    def get_for_thread(self, thread_id: str) -> List[Message]:
        """Messages of a thread in chronological order."""
        try:
            stmt = (
                select(MessageModel)
                .where(MessageModel.thread_id == thread_id)
                .order_by(MessageModel.created_at.asc())
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving messages for thread {thread_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve messages: {e}") from e

    def get_by_id(self, message_id: str) -> Optional[Message]:
        try:
            model = self.session.get(MessageModel, message_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving message {message_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve message: {e}") from e

    def delete(self, message_id: str) -> bool:
        """Delete a message. Returns False when nothing was deleted."""
        try:
            result = self.session.execute(delete(MessageModel).where(MessageModel.id == message_id))
            self.session.flush()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error(f"Error deleting message {message_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete message: {e}") from e


class ConfirmationRepository:
    """Repository for handover confirmation codes."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_code(self, code: str) -> Optional[Confirmation]:
        try:
            stmt = select(ConfirmationModel).where(ConfirmationModel.code == code)
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving confirmation by code: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve confirmation: {e}") from e

    def get_by_thread(self, thread_id: str) -> Optional[Confirmation]:
        try:
            stmt = select(ConfirmationModel).where(ConfirmationModel.thread_id == thread_id)
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving confirmation for thread {thread_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve confirmation: {e}") from e

    def code_exists(self, code: str) -> bool:
        try:
            stmt = select(func.count()).select_from(ConfirmationModel).where(
                ConfirmationModel.code == code
            )
            return self.session.execute(stmt).scalar_one() > 0
        except SQLAlchemyError as e:
            logger.error(f"Error checking confirmation code: {e}", exc_info=True)
            raise PersistenceError(f"Failed to check confirmation code: {e}") from e

    def delete_for_thread(self, thread_id: str) -> int:
        """Delete the confirmation of a thread, if any. Returns rows deleted."""
        try:
            result = self.session.execute(
                delete(ConfirmationModel).where(ConfirmationModel.thread_id == thread_id)
            )
            self.session.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error deleting confirmation for thread {thread_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete confirmation: {e}") from e

    def create(self, confirmation: Confirmation) -> Confirmation:
        """Insert a confirmation.

        Raises:
            DataIntegrityError: If the code or thread already has a row
            PersistenceError: If database error occurs
        """
        try:
            model = ConfirmationModel.from_domain(confirmation)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            logger.warning(
                f"Integrity error creating confirmation for thread {confirmation.thread_id}: {e}"
            )
            raise DataIntegrityError(
                f"Failed to create confirmation due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating confirmation: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create confirmation: {e}") from e

    def redeem(self, confirmation_id: str, user_id: str, timestamp: datetime) -> bool:
        """Mark a confirmation used if nobody has used it yet.

        The update is conditional on ``used_at IS NULL`` so that of two
        concurrent redeemers only one sees a row change.

        Returns:
            True if this call redeemed the code, False if it was already used
        """
        try:
            stmt = (
                update(ConfirmationModel)
                .where(
                    ConfirmationModel.id == confirmation_id,
                    ConfirmationModel.used_at.is_(None),
                )
                .values(used_at=format_timestamp(timestamp), used_by_user_id=user_id)
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount == 1
        except SQLAlchemyError as e:
            logger.error(f"Error redeeming confirmation {confirmation_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to redeem confirmation: {e}") from e

    def delete_expired_unused(self, now: datetime) -> int:
        """Delete codes past expiry that were never redeemed.

        Returns:
            Count of deleted rows
        """
        try:
            stmt = delete(ConfirmationModel).where(
                ConfirmationModel.expires_at < format_timestamp(now),
                ConfirmationModel.used_at.is_(None),
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error deleting expired confirmations: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete expired confirmations: {e}") from e


class ModerationFlagRepository:
    """Repository for moderation flags."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, flag: ModerationFlag) -> ModerationFlag:
        try:
            model = ModerationFlagModel.from_domain(flag)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error creating moderation flag {flag.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to create moderation flag due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating moderation flag {flag.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create moderation flag: {e}") from e

    def get_by_id(self, flag_id: str) -> Optional[ModerationFlag]:
        try:
            model = self.session.get(ModerationFlagModel, flag_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving moderation flag {flag_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve moderation flag: {e}") from e

    def update(self, flag: ModerationFlag) -> ModerationFlag:
        """Overwrite a stored flag with the given domain model.

        Raises:
            RecordNotFoundError: If the flag does not exist
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(ModerationFlagModel, flag.id)
            if existing is None:
                raise RecordNotFoundError(f"Moderation flag {flag.id} not found")
            existing.apply(flag)
            self.session.flush()
            return existing.to_domain()
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating moderation flag {flag.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update moderation flag: {e}") from e

    def search(
        self,
        status: Optional[FlagStatus] = None,
        priority: Optional[FlagPriority] = None,
        entity_type: Optional[FlagEntityType] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[ModerationFlag], int]:
        """Filter flags, newest first.

        Returns:
            Tuple of (page of flags, total number of matching flags)
        """
        try:
            conditions = []
            if status is not None:
                conditions.append(ModerationFlagModel.status == status.value)
            if priority is not None:
                conditions.append(ModerationFlagModel.priority == priority.value)
            if entity_type is not None:
                conditions.append(ModerationFlagModel.entity_type == entity_type.value)

            total = self.session.execute(
                select(func.count()).select_from(ModerationFlagModel).where(*conditions)
            ).scalar_one()

            stmt = (
                select(ModerationFlagModel)
                .where(*conditions)
                .order_by(ModerationFlagModel.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models], total

        except SQLAlchemyError as e:
            logger.error(f"Error searching moderation flags: {e}", exc_info=True)
            raise PersistenceError(f"Failed to search moderation flags: {e}") from e

    def get_stats(self) -> ModerationStats:
        """Count flags per status in one grouped query."""
        try:
            stmt = select(ModerationFlagModel.status, func.count()).group_by(ModerationFlagModel.status)
            counts = {status: count for status, count in self.session.execute(stmt).all()}
        except SQLAlchemyError as e:
            logger.error(f"Error counting moderation flags: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count moderation flags: {e}") from e

        return ModerationStats(
            pending=counts.get(FlagStatus.PENDING.value, 0),
            approved=counts.get(FlagStatus.APPROVED.value, 0),
            rejected=counts.get(FlagStatus.REJECTED.value, 0),
            total=sum(counts.values()),
        )
