"""User profile service.

Authentication is handled upstream; this service only keeps the contact
details that notification rules depend on (verified email, phone number).
"""

import uuid
from datetime import datetime
from typing import Callable, Optional

from lostfound.domain.models import User
from lostfound.logging import get_logger, mask_email
from lostfound.persistence import DataIntegrityError, UserRepository, get_session
from lostfound.utils.timestamps import utc_now

from .exceptions import ConflictError, NotFoundError, build_model

logger = get_logger(__name__, component="users")


class UserService:
    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock

    def register(
        self,
        name: str,
        email: str,
        phone: Optional[str] = None,
        email_verified: bool = False,
        user_id: Optional[str] = None,
    ) -> User:
        """Create a user profile.

        Raises:
            ConflictError: If the email or id is already registered
        """
        user = build_model(
            User,
            {
                "id": user_id or str(uuid.uuid4()),
                "name": name,
                "email": email,
                "email_verified": email_verified,
                "phone": phone,
                "created_at": self.clock(),
            },
        )

        with get_session() as session:
            repo = UserRepository(session)
            if repo.get_by_id(user.id) or repo.get_by_email(email):
                raise ConflictError("A user with this email or id already exists")
            try:
                user = repo.upsert(user)
            except DataIntegrityError as e:
                raise ConflictError("A user with this email or id already exists") from e

        logger.info(
            f"User registered: {user.id}",
            extra={"event": "users.registered", "user_id": user.id, "email": mask_email(user.email)},
        )
        return user

    def get_user(self, user_id: str) -> User:
        """Return an active user.

        Raises:
            NotFoundError: If the user does not exist or was deactivated
        """
        with get_session() as session:
            return require_active_user(UserRepository(session), user_id)

    def set_moderator(self, user_id: str, is_moderator: bool = True) -> User:
        """Grant or revoke the moderator role."""
        with get_session() as session:
            repo = UserRepository(session)
            user = require_active_user(repo, user_id)
            user = repo.upsert(user.model_copy(update={"is_moderator": is_moderator}))

        logger.info(
            f"Moderator role {'granted' if is_moderator else 'revoked'}: {user_id}",
            extra={"event": "users.moderator.changed", "user_id": user_id, "is_moderator": is_moderator},
        )
        return user

    def update_contact(
        self,
        user_id: str,
        phone: Optional[str] = None,
        email_verified: Optional[bool] = None,
    ) -> User:
        """Change the phone number and/or email verification flag."""
        with get_session() as session:
            repo = UserRepository(session)
            user = require_active_user(repo, user_id)

            changes = {}
            if phone is not None:
                changes["phone"] = phone
            if email_verified is not None:
                changes["email_verified"] = email_verified

            return repo.upsert(build_model(User, {**user.model_dump(), **changes}))


def require_active_user(repo: UserRepository, user_id: str) -> User:
    """Load an active user inside an open session.

    Raises:
        NotFoundError: If the user does not exist or was deactivated
    """
    user = repo.get_by_id(user_id)
    if user is None or not user.active:
        raise NotFoundError("User", user_id)
    return user
