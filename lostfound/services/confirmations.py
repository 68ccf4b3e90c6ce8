"""Handover confirmation codes.

Once both parties of a thread approve the handover, a short one-time code is
issued and sent to both of them. Whoever redeems it at the handover closes
the thread and marks the listing resolved.

A code is ``issued`` until it is redeemed (``used_at`` set) or passes
``expires_at``; expired codes that were never used are purged hourly.
"""

import secrets
import uuid
from datetime import datetime
from typing import Callable, Optional

from lostfound.config.models import ConfirmationsConfig
from lostfound.domain.models import Confirmation, ListingStatus, Thread, ThreadStatus, User
from lostfound.logging import get_logger, log_context
from lostfound.notifications import NotificationDispatcher
from lostfound.notifications.payloads import (
    PROFILE_PATH,
    build_thread_path,
    confirmation_code_push,
    confirmation_code_sms,
    handover_finder_push,
    handover_finder_sms,
    handover_owner_push,
    handover_owner_sms,
)
from lostfound.persistence import (
    ConfirmationRepository,
    ListingRepository,
    ThreadRepository,
    UserRepository,
    get_session,
)
from lostfound.utils.timestamps import hours_from, utc_now

from .exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError

logger = get_logger(__name__, component="confirmations")


class ConfirmationService:
    """Issues, redeems and purges handover codes."""

    def __init__(
        self,
        config: ConfirmationsConfig,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime] = utc_now,
        choice: Callable[[str], str] = secrets.choice,
    ):
        """Initialize the service.

        Args:
            config: Code length, alphabet and expiry settings
            dispatcher: Outbound notifications
            clock: Source of the current UTC time
            choice: Picks one character from the alphabet (cryptographically secure by default)
        """
        self.config = config
        self.dispatcher = dispatcher
        self.clock = clock
        self.choice = choice

    def generate(self, thread_id: str, requesting_user_id: str) -> Confirmation:
        """Issue a fresh code for an approved thread, replacing any previous one.

        Raises:
            NotFoundError: If the thread does not exist
            AuthorizationError: If the user is not a party to the thread
            ValidationError: If the thread is not approved
            ConflictError: If no unused code could be drawn
        """
        now = self.clock()

        with log_context(thread_id=thread_id, user_id=requesting_user_id):
            with get_session() as session:
                thread = self._load_thread(ThreadRepository(session), thread_id, requesting_user_id)
                if thread.status != ThreadStatus.APPROVED:
                    raise ValidationError("The thread must be approved before generating a code")

                repo = ConfirmationRepository(session)
                replaced = repo.delete_for_thread(thread_id)
                code = self._draw_unique_code(repo)

                confirmation = repo.create(
                    Confirmation(
                        id=str(uuid.uuid4()),
                        thread_id=thread_id,
                        code=code,
                        expires_at=hours_from(now, self.config.expiry_hours),
                        created_at=now,
                    )
                )
                listing = ListingRepository(session).get_by_id(thread.listing_id)
                owner, finder = self._parties(UserRepository(session), thread)

            logger.info(
                "Handover code generated",
                extra={
                    "event": "confirmations.generated",
                    "confirmation_id": confirmation.id,
                    "replaced_previous": replaced > 0,
                    "expires_at": confirmation.expires_at,
                },
            )

            listing_title = listing.title if listing else ""
            sms = confirmation_code_sms(listing_title, code, self.config.expiry_hours)
            push = confirmation_code_push(code, self.config.expiry_hours)
            for party in (owner, finder):
                if party is None:
                    continue
                if party.phone:
                    self.dispatcher.send_sms(party.phone, sms)
                self.dispatcher.send_push(party.id, push["title"], push["body"], build_thread_path(thread_id))

        return confirmation

    def validate(self, code: str, requesting_user_id: str) -> Confirmation:
        """Redeem a code: close its thread and resolve the listing.

        Checks run in order: unknown code, expired, already used, not a party.
        The redemption itself is a conditional update, so of two concurrent
        callers exactly one succeeds and the other gets "already used".

        Raises:
            NotFoundError: If no such code exists
            ValidationError: If the code expired or was already used
            AuthorizationError: If the user is not a party to the thread
        """
        normalized = (code or "").strip().upper()
        now = self.clock()

        with get_session() as session:
            repo = ConfirmationRepository(session)
            confirmation = repo.get_by_code(normalized)
            if confirmation is None:
                raise NotFoundError("Confirmation code", message="Invalid confirmation code")
            if confirmation.is_expired(now):
                raise ValidationError("This confirmation code has expired")
            if confirmation.is_used:
                raise ValidationError("This confirmation code has already been used")

            threads = ThreadRepository(session)
            thread = self._load_thread(threads, confirmation.thread_id, requesting_user_id)

            if not repo.redeem(confirmation.id, requesting_user_id, now):
                raise ValidationError("This confirmation code has already been used")

            threads.update(thread.model_copy(update={"status": ThreadStatus.CLOSED}))
            listings = ListingRepository(session)
            listings.set_status(thread.listing_id, ListingStatus.RESOLVED, now)
            listing = listings.get_by_id(thread.listing_id)
            owner, finder = self._parties(UserRepository(session), thread)

        confirmation = confirmation.model_copy(
            update={"used_at": now, "used_by_user_id": requesting_user_id}
        )

        with log_context(thread_id=thread.id, user_id=requesting_user_id):
            logger.info(
                "Handover confirmed",
                extra={
                    "event": "confirmations.redeemed",
                    "confirmation_id": confirmation.id,
                    "listing_id": thread.listing_id,
                },
            )
            self._notify_handover(listing.title if listing else "", owner, finder)

        return confirmation

    def get_for_thread(self, thread_id: str, user_id: str) -> Confirmation:
        """Current confirmation of a thread, visible to its parties only.

        Raises:
            NotFoundError: If the thread does not exist or has no confirmation
            AuthorizationError: If the user is not a party
        """
        with get_session() as session:
            self._load_thread(ThreadRepository(session), thread_id, user_id)
            confirmation = ConfirmationRepository(session).get_by_thread(thread_id)
        if confirmation is None:
            raise NotFoundError("Confirmation", message=f"No confirmation for thread: {thread_id}")
        return confirmation

    def cleanup_expired(self) -> int:
        """Delete expired, never-used codes. Logs failures and returns 0 instead of raising."""
        now = self.clock()
        try:
            with get_session() as session:
                deleted = ConfirmationRepository(session).delete_expired_unused(now)
        except Exception as e:
            logger.error(
                f"Confirmation cleanup failed: {e}",
                exc_info=True,
                extra={"event": "confirmations.cleanup.failed"},
            )
            return 0

        logger.info(
            f"Deleted {deleted} expired confirmation codes",
            extra={"event": "confirmations.cleanup.completed", "deleted": deleted},
        )
        return deleted

    def _draw_code(self) -> str:
        return "".join(self.choice(self.config.alphabet) for _ in range(self.config.code_length))

    def _draw_unique_code(self, repo: ConfirmationRepository) -> str:
        for attempt in range(1, self.config.max_generation_attempts + 1):
            code = self._draw_code()
            if not repo.code_exists(code):
                return code
            logger.warning(
                "Drawn confirmation code already exists, drawing again",
                extra={"event": "confirmations.code.collision", "attempt": attempt},
            )
        raise ConflictError("Could not allocate a unique confirmation code")

    def _notify_handover(self, listing_title: str, owner: Optional[User], finder: Optional[User]) -> None:
        if owner is not None:
            push = handover_owner_push(listing_title)
            self.dispatcher.send_push(owner.id, push["title"], push["body"], PROFILE_PATH)
        if finder is not None:
            push = handover_finder_push(listing_title)
            self.dispatcher.send_push(finder.id, push["title"], push["body"], PROFILE_PATH)
        if owner is not None and owner.phone:
            self.dispatcher.send_sms(owner.phone, handover_owner_sms(listing_title))
        if finder is not None and finder.phone:
            self.dispatcher.send_sms(finder.phone, handover_finder_sms(listing_title))

    @staticmethod
    def _load_thread(repo: ThreadRepository, thread_id: str, user_id: str) -> Thread:
        thread = repo.get_by_id(thread_id)
        if thread is None:
            raise NotFoundError("Thread", thread_id)
        if not thread.is_party(user_id):
            raise AuthorizationError("You are not a party to this conversation")
        return thread

    @staticmethod
    def _parties(repo: UserRepository, thread: Thread):
        return repo.get_by_id(thread.owner_user_id), repo.get_by_id(thread.finder_user_id)
