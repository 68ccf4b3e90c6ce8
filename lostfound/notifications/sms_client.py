"""SMS delivery through the Twilio REST API."""

import re
from typing import Optional

import requests

from lostfound.config.environment import EnvironmentConfig
from lostfound.config.models import SMSConfig
from lostfound.logging import get_logger, mask_phone

from .models import SMSDeliveryError

logger = get_logger(__name__, component="sms")

# "+" followed by country code and subscriber number, e.g. +33612345678
MIN_PHONE_LENGTH = 12

_NON_DIALABLE = re.compile(r"[^\d+]")


def normalize_phone_number(phone: Optional[str], default_country_code: str = "+33") -> Optional[str]:
    """Bring a user-entered phone number to international form.

    Separators are stripped, a national number starting with ``0`` gets the
    default country code in place of the ``0``, and a number without ``+`` is
    prefixed with the country code.

    Returns:
        Normalized number, or None if the result is too short to be dialable

    Example:
        >>> normalize_phone_number("06 12 34 56 78")
        '+33612345678'
    """
    if not phone:
        return None

    cleaned = _NON_DIALABLE.sub("", phone)
    if not cleaned:
        return None

    if cleaned.startswith("0"):
        cleaned = default_country_code + cleaned[1:]
    elif not cleaned.startswith("+"):
        cleaned = default_country_code + cleaned

    if len(cleaned) < MIN_PHONE_LENGTH:
        return None
    return cleaned


class SMSClient:
    """Posts messages to Twilio's Messages resource.

    The client refuses to send when the channel is disabled or credentials are
    missing; callers check ``is_enabled`` first and report a skip instead.
    """

    def __init__(
        self,
        sms_config: SMSConfig,
        env_config: EnvironmentConfig,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ):
        self.sms_config = sms_config
        self.env_config = env_config
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def is_enabled(self) -> bool:
        return bool(
            self.sms_config.enabled
            and self.sms_config.from_number
            and self.env_config.twilio_configured
        )

    def send(self, to_number: str, text: str) -> str:
        """Send a text message.

        Args:
            to_number: Destination in international form
            text: Message body

        Returns:
            Message SID assigned by Twilio

        Raises:
            SMSDeliveryError: If the gateway is unreachable or rejects the message
        """
        if not self.is_enabled:
            raise SMSDeliveryError("SMS channel is not configured")

        url = (
            f"{self.sms_config.api_base_url.rstrip('/')}/Accounts/"
            f"{self.env_config.twilio_account_sid}/Messages.json"
        )

        logger.debug(
            "Sending SMS",
            extra={"event": "sms.send.request", "to": mask_phone(to_number)},
        )

        try:
            response = self._session.post(
                url,
                data={"From": self.sms_config.from_number, "To": to_number, "Body": text},
                auth=(self.env_config.twilio_account_sid, self.env_config.twilio_auth_token),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise SMSDeliveryError(f"SMS gateway timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise SMSDeliveryError(f"SMS gateway request failed: {e}") from e

        if response.status_code >= 400:
            raise SMSDeliveryError(f"SMS gateway returned HTTP {response.status_code}: {response.text[:200]}")

        try:
            return response.json().get("sid", "")
        except ValueError:
            return ""
