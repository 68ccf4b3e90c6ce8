"""Conversation threads between an item's owner and its finder.

A thread starts ``pending``. Each party approves the handover separately;
once both have, the thread becomes ``approved`` and a handover code is
issued. Redeeming the code (see ConfirmationService) closes the thread.
"""

import uuid
from datetime import datetime
from typing import Callable, List, Optional

from lostfound.domain.models import ListingStatus, Message, Thread, ThreadStatus
from lostfound.logging import get_logger, log_context
from lostfound.notifications import NotificationDispatcher
from lostfound.notifications.payloads import build_thread_path
from lostfound.persistence import (
    DataIntegrityError,
    ListingRepository,
    MessageRepository,
    ThreadRepository,
    UserRepository,
    get_session,
)
from lostfound.utils.timestamps import utc_now

from .confirmations import ConfirmationService
from .exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ServiceError,
    ValidationError,
    build_model,
)
from .users import require_active_user

logger = get_logger(__name__, component="threads")


class ThreadService:
    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        confirmation_service: Optional[ConfirmationService] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.dispatcher = dispatcher
        self.confirmation_service = confirmation_service
        self.clock = clock

    def create_thread(self, listing_id: str, owner_user_id: str) -> Thread:
        """Open a conversation about a listing on behalf of the person who lost the item.

        Raises:
            NotFoundError: If the user or listing does not exist
            ValidationError: If the user posted the listing, or it is no longer active
            ConflictError: If the user already has a thread for this listing
        """
        with get_session() as session:
            require_active_user(UserRepository(session), owner_user_id)
            listing = ListingRepository(session).get_by_id(listing_id)
            if listing is None or listing.status == ListingStatus.DELETED:
                raise NotFoundError("Listing", listing_id)
            if listing.finder_user_id == owner_user_id:
                raise ValidationError("You cannot start a conversation with yourself")
            if listing.status != ListingStatus.ACTIVE:
                raise ValidationError("This listing is no longer available")

            repo = ThreadRepository(session)
            if repo.get_by_listing_and_owner(listing_id, owner_user_id):
                raise ConflictError("A conversation already exists for this listing")

            thread = Thread(
                id=str(uuid.uuid4()),
                listing_id=listing_id,
                owner_user_id=owner_user_id,
                finder_user_id=listing.finder_user_id,
                status=ThreadStatus.PENDING,
                created_at=self.clock(),
            )
            try:
                thread = repo.create(thread)
            except DataIntegrityError as e:
                raise ConflictError("A conversation already exists for this listing") from e

        logger.info(
            f"Thread created: {thread.id}",
            extra={"event": "threads.created", "thread_id": thread.id, "listing_id": listing_id},
        )
        self.dispatcher.send_push(
            thread.finder_user_id,
            "New contact request",
            f"Someone is interested in your listing: {listing.title}",
            build_thread_path(thread.id),
        )
        return thread

    def get_thread(self, thread_id: str, user_id: str) -> Thread:
        with get_session() as session:
            return _load_for_party(ThreadRepository(session), thread_id, user_id)

    def list_threads(self, user_id: str, status: Optional[ThreadStatus] = None) -> List[Thread]:
        """Threads the user takes part in, most recently active first."""
        with get_session() as session:
            threads = ThreadRepository(session).get_for_user(user_id)
        if status is not None:
            threads = [thread for thread in threads if thread.status == status]
        return threads

    def approve(self, thread_id: str, user_id: str) -> Thread:
        """Record one party's approval of the handover.

        When the second party approves, the thread moves to ``approved`` and a
        handover code is generated and sent to both parties. If generation
        fails the approval is kept and the failure is logged; either party can
        then request a code through ConfirmationService.generate.

        Raises:
            NotFoundError: If the thread does not exist
            AuthorizationError: If the user is not a party
            ValidationError: If the thread is closed
        """
        with get_session() as session:
            repo = ThreadRepository(session)
            thread = _load_for_party(repo, thread_id, user_id)
            if thread.status == ThreadStatus.CLOSED:
                raise ValidationError("This conversation is closed")

            changes = {}
            if user_id == thread.owner_user_id:
                changes["approved_by_owner"] = True
            if user_id == thread.finder_user_id:
                changes["approved_by_finder"] = True
            thread = thread.model_copy(update=changes)

            became_approved = (
                thread.approved_by_owner
                and thread.approved_by_finder
                and thread.status != ThreadStatus.APPROVED
            )
            if became_approved:
                thread = thread.model_copy(update={"status": ThreadStatus.APPROVED})
            thread = repo.update(thread)

        with log_context(thread_id=thread_id, user_id=user_id):
            logger.info(
                "Handover approved",
                extra={"event": "threads.approved", "both_parties": became_approved},
            )
            if became_approved and self.confirmation_service is not None:
                try:
                    self.confirmation_service.generate(thread_id, user_id)
                except ServiceError as e:
                    # The approval stands; a code can be requested again through generate
                    logger.error(
                        f"Handover code generation failed after approval: {e.message}",
                        extra={"event": "threads.approved.code_failed"},
                    )

        return thread

    def close_thread(self, thread_id: str, user_id: str) -> Thread:
        with get_session() as session:
            repo = ThreadRepository(session)
            thread = _load_for_party(repo, thread_id, user_id)
            thread = repo.update(thread.model_copy(update={"status": ThreadStatus.CLOSED}))

        logger.info(
            f"Thread closed: {thread_id}",
            extra={"event": "threads.closed", "thread_id": thread_id, "user_id": user_id},
        )
        return thread

    def post_message(self, thread_id: str, user_id: str, body: str) -> Message:
        """Append a message and bump the thread's last activity time.

        Raises:
            ValidationError: If the thread is closed or the body is empty or too long
        """
        now = self.clock()
        with get_session() as session:
            threads = ThreadRepository(session)
            thread = _load_for_party(threads, thread_id, user_id)
            if thread.status == ThreadStatus.CLOSED:
                raise ValidationError("This conversation is closed")

            message = build_model(
                Message,
                {
                    "id": str(uuid.uuid4()),
                    "thread_id": thread_id,
                    "sender_user_id": user_id,
                    "body": (body or "").strip(),
                    "created_at": now,
                },
            )
            message = MessageRepository(session).create(message)
            threads.update(thread.model_copy(update={"last_message_at": now}))
        return message

    def list_messages(self, thread_id: str, user_id: str) -> List[Message]:
        with get_session() as session:
            _load_for_party(ThreadRepository(session), thread_id, user_id)
            return MessageRepository(session).get_for_thread(thread_id)


def _load_for_party(repo: ThreadRepository, thread_id: str, user_id: str) -> Thread:
    thread = repo.get_by_id(thread_id)
    if thread is None:
        raise NotFoundError("Thread", thread_id)
    if not thread.is_party(user_id):
        raise AuthorizationError("You are not a party to this conversation")
    return thread
