"""Push notification delivery through an HTTP gateway.

The gateway receives one JSON document per notification:

    {"user_id": "...", "title": "...", "body": "...", "url": "/messages/..."}

and is responsible for fanning it out to the user's registered devices.
"""

from typing import Optional

import requests

from lostfound.config.models import PushConfig
from lostfound.logging import get_logger

from .models import PushDeliveryError

logger = get_logger(__name__, component="push")


class PushClient:
    """JSON-over-HTTP client for the push gateway."""

    def __init__(
        self,
        push_config: PushConfig,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
        user_agent: str = "LostFoundBackend/1.0",
    ):
        self.push_config = push_config
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent})

    @property
    def is_enabled(self) -> bool:
        return bool(self.push_config.enabled and self.push_config.gateway_url)

    def send(self, user_id: str, title: str, body: str, url: Optional[str] = None) -> None:
        """Deliver one notification to the gateway.

        Raises:
            PushDeliveryError: If the gateway is unreachable or rejects the payload
        """
        if not self.is_enabled:
            raise PushDeliveryError("Push gateway is not configured")

        payload = {"user_id": user_id, "title": title, "body": body, "url": url}

        try:
            response = self._session.post(
                self.push_config.gateway_url, json=payload, timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            raise PushDeliveryError(f"Push gateway timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise PushDeliveryError(f"Push gateway request failed: {e}") from e

        if response.status_code >= 400:
            raise PushDeliveryError(f"Push gateway returned HTTP {response.status_code}")

        logger.debug(
            "Push accepted by gateway",
            extra={"event": "push.send.accepted", "user_id": user_id, "status_code": response.status_code},
        )
