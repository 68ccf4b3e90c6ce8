"""Content moderation.

Any active user can flag a listing, a message or another user. Moderators
review pending flags: approving one takes the target down (the listing is
suspended, the message deleted, the user deactivated), rejecting one leaves
it in place. The reporter is told the outcome by push.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Type, TypeVar

from lostfound.config.models import ApiConfig
from lostfound.domain.models import (
    FlagEntityType,
    FlagPriority,
    FlagStatus,
    ListingStatus,
    ModerationFlag,
    ModerationStats,
    User,
)
from lostfound.logging import get_logger, log_context
from lostfound.notifications import NotificationDispatcher
from lostfound.notifications.payloads import PROFILE_PATH, flag_reviewed_push
from lostfound.persistence import (
    ListingRepository,
    MessageRepository,
    ModerationFlagRepository,
    UserRepository,
    get_session,
)
from lostfound.utils.timestamps import utc_now

from .exceptions import AuthorizationError, NotFoundError, ValidationError, build_model
from .listings import Page
from .users import require_active_user

logger = get_logger(__name__, component="moderation")

E = TypeVar("E", bound=Enum)


class ModerationService:
    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        api_config: Optional[ApiConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.dispatcher = dispatcher
        self.api_config = api_config or ApiConfig()
        self.clock = clock

    def create_flag(
        self,
        user_id: str,
        entity_type: str,
        entity_id: str,
        reason: str,
        description: Optional[str] = None,
        priority: str = FlagPriority.MEDIUM.value,
    ) -> ModerationFlag:
        """Report a listing, message or user.

        Raises:
            NotFoundError: If the reporter or the reported content does not exist
            ValidationError: If the entity type, priority or reason is invalid
        """
        flag = build_model(
            ModerationFlag,
            {
                "id": str(uuid.uuid4()),
                "entity_type": entity_type,
                "entity_id": entity_id,
                "reason": (reason or "").strip(),
                "description": description,
                "priority": priority,
                "status": FlagStatus.PENDING,
                "created_by_user_id": user_id,
                "created_at": self.clock(),
            },
        )

        with get_session() as session:
            require_active_user(UserRepository(session), user_id)
            if not self._target_exists(session, flag):
                raise NotFoundError(flag.entity_type.value.capitalize(), flag.entity_id)
            flag = ModerationFlagRepository(session).create(flag)

        # Moderators find new flags through list_flags; nothing is pushed to them
        logger.info(
            f"Moderation flag created: {flag.entity_type.value} {flag.entity_id}",
            extra={
                "event": "moderation.flag.created",
                "flag_id": flag.id,
                "entity_type": flag.entity_type.value,
                "priority": flag.priority.value,
                "user_id": user_id,
            },
        )
        return flag

    def list_flags(
        self,
        moderator_id: str,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        entity_type: Optional[str] = None,
        page: int = 0,
        page_size: Optional[int] = None,
    ) -> Page[ModerationFlag]:
        """Flags matching the given filters, newest first. Moderators only."""
        if page < 0:
            raise ValidationError("page must not be negative")
        size = self._page_size(page_size)
        filters = {
            "status": _parse_enum(FlagStatus, status, "status"),
            "priority": _parse_enum(FlagPriority, priority, "priority"),
            "entity_type": _parse_enum(FlagEntityType, entity_type, "entity type"),
        }

        with get_session() as session:
            _require_moderator(UserRepository(session), moderator_id)
            items, total = ModerationFlagRepository(session).search(
                offset=page * size, limit=size, **filters
            )
        return Page(items=items, page=page, page_size=size, total_items=total)

    def approve_flag(self, flag_id: str, moderator_id: str) -> ModerationFlag:
        """Uphold a flag and take the reported content down.

        Raises:
            NotFoundError: If the flag does not exist
            AuthorizationError: If the user is not a moderator
            ValidationError: If the flag was already reviewed
        """
        return self._review(flag_id, moderator_id, approved=True)

    def reject_flag(self, flag_id: str, moderator_id: str) -> ModerationFlag:
        """Dismiss a flag, leaving the reported content in place."""
        return self._review(flag_id, moderator_id, approved=False)

    def get_stats(self, moderator_id: str) -> ModerationStats:
        with get_session() as session:
            _require_moderator(UserRepository(session), moderator_id)
            return ModerationFlagRepository(session).get_stats()

    def _review(self, flag_id: str, moderator_id: str, approved: bool) -> ModerationFlag:
        now = self.clock()
        with get_session() as session:
            users = UserRepository(session)
            _require_moderator(users, moderator_id)

            repo = ModerationFlagRepository(session)
            flag = repo.get_by_id(flag_id)
            if flag is None:
                raise NotFoundError("Moderation flag", flag_id)
            if flag.status != FlagStatus.PENDING:
                raise ValidationError("This flag has already been reviewed")

            flag = repo.update(
                flag.model_copy(
                    update={
                        "status": FlagStatus.APPROVED if approved else FlagStatus.REJECTED,
                        "reviewed_by_user_id": moderator_id,
                        "reviewed_at": now,
                    }
                )
            )
            self._apply_outcome(session, flag, approved, now)

        with log_context(user_id=moderator_id):
            logger.info(
                f"Moderation flag {flag.status.value}: {flag.id}",
                extra={
                    "event": f"moderation.flag.{flag.status.value}",
                    "flag_id": flag.id,
                    "entity_type": flag.entity_type.value,
                    "entity_id": flag.entity_id,
                },
            )

        push = flag_reviewed_push(approved)
        self.dispatcher.send_push(flag.created_by_user_id, push["title"], push["body"], PROFILE_PATH)
        return flag

    def _apply_outcome(self, session, flag: ModerationFlag, approved: bool, now: datetime) -> None:
        if flag.entity_type == FlagEntityType.LISTING:
            listings = ListingRepository(session)
            listing = listings.get_by_id(flag.entity_id)
            if listing is None or listing.status == ListingStatus.DELETED:
                return
            changes = {"is_moderated": True, "updated_at": now}
            if approved:
                changes["status"] = ListingStatus.SUSPENDED
            listings.update(listing.model_copy(update=changes))
            return

        if not approved:
            return

        if flag.entity_type == FlagEntityType.MESSAGE:
            MessageRepository(session).delete(flag.entity_id)
        elif flag.entity_type == FlagEntityType.USER:
            users = UserRepository(session)
            user = users.get_by_id(flag.entity_id)
            if user is not None:
                users.upsert(user.model_copy(update={"active": False}))

    @staticmethod
    def _target_exists(session, flag: ModerationFlag) -> bool:
        if flag.entity_type == FlagEntityType.LISTING:
            listing = ListingRepository(session).get_by_id(flag.entity_id)
            return listing is not None and listing.status != ListingStatus.DELETED
        if flag.entity_type == FlagEntityType.MESSAGE:
            return MessageRepository(session).get_by_id(flag.entity_id) is not None
        return UserRepository(session).get_by_id(flag.entity_id) is not None

    def _page_size(self, requested: Optional[int]) -> int:
        if requested is None:
            return self.api_config.default_page_size
        if requested < 1:
            raise ValidationError("page_size must be at least 1")
        return min(requested, self.api_config.max_page_size)


def _require_moderator(repo: UserRepository, user_id: str) -> User:
    user = require_active_user(repo, user_id)
    if not user.is_moderator:
        raise AuthorizationError("Moderator access required")
    return user


def _parse_enum(enum_cls: Type[E], value: Optional[str], label: str) -> Optional[E]:
    if value is None or not value.strip():
        return None
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid {label}: {value}")
