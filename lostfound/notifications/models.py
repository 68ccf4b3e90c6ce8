"""Result types and exceptions for outbound notifications.

Dispatch errors are raised by the channel clients and caught by
NotificationDispatcher, which turns them into DispatchResult values; they
never reach the service layer.
"""

from dataclasses import dataclass
from typing import Optional

STATUS_SENT = "sent"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


class DispatchError(Exception):
    """Base exception for notification delivery errors."""

    pass


class NotificationTemplateError(DispatchError):
    """Raised when template rendering fails due to configuration or missing variables."""

    pass


class SMTPDeliveryError(DispatchError):
    """Raised when the SMTP relay rejects or cannot receive a message."""

    pass


class SMSDeliveryError(DispatchError):
    """Raised when the SMS gateway rejects a message or cannot be reached."""

    pass


class PushDeliveryError(DispatchError):
    """Raised when the push gateway rejects a payload or cannot be reached."""

    pass


@dataclass
class DispatchResult:
    """Outcome of one delivery attempt on one channel.

    Attributes:
        channel: "email", "sms" or "push"
        recipient: Address, phone number or user id the message was for
        status: "sent", "skipped" (channel disabled or recipient unusable) or "failed"
        attempts: Number of send attempts made
        error: Error message when status is "failed" or the skip reason
        provider_id: Identifier returned by the provider (e.g. an SMS message SID)
    """

    channel: str
    recipient: str
    status: str
    attempts: int = 0
    error: Optional[str] = None
    provider_id: Optional[str] = None

    def is_success(self) -> bool:
        return self.status == STATUS_SENT
