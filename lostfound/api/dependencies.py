"""Request dependencies: bearer-token authentication and service lookup.

Tokens are issued by the upstream identity provider and signed with
``JWT_SECRET`` (HS256); the ``sub`` claim carries the user id.
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from lostfound.services import (
    AlertService,
    ConfirmationService,
    ListingService,
    ModerationService,
    ThreadService,
    UserService,
)

JWT_ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=True)


@dataclass
class ServiceContainer:
    """Services shared by every request, stored on ``app.state.services``."""

    users: UserService
    listings: ListingService
    alerts: AlertService
    threads: ThreadService
    confirmations: ConfirmationService
    moderation: ModerationService


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_current_user_id(
    request: Request,
    token: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> str:
    """Decode the bearer token and return its subject."""
    try:
        payload = jwt.decode(
            token.credentials,
            request.app.state.jwt_secret,
            algorithms=[JWT_ALGORITHM],
        )
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    return str(user_id)


def create_access_token(user_id: str, secret: str, **claims) -> str:
    """Sign a token for ``user_id``. Used by tooling and tests; production tokens come from upstream."""
    return jwt.encode({"sub": user_id, **claims}, secret, algorithm=JWT_ALGORITHM)
