"""Outbound notifications over email, SMS and push.

This module provides:
- NotificationDispatcher: the three delivery contracts, never raising
- DispatchResult: outcome of a single delivery
- SMTPClient / SMSClient / PushClient: channel transports
- TemplateRenderer: Jinja2 rendering of the alert-match email
- payload helpers: user-facing message texts and URLs
"""

from .models import (
    DispatchError,
    DispatchResult,
    NotificationTemplateError,
    PushDeliveryError,
    SMSDeliveryError,
    SMTPDeliveryError,
)
from .push_client import PushClient
from .service import NotificationDispatcher
from .sms_client import SMSClient, normalize_phone_number
from .smtp_client import SMTPClient, build_sender_address, normalize_recipient
from .templates import TemplateRenderer

__all__ = [
    # Main service
    "NotificationDispatcher",
    # Models and results
    "DispatchResult",
    # Exceptions
    "DispatchError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
    "SMSDeliveryError",
    "PushDeliveryError",
    # Components
    "TemplateRenderer",
    "SMTPClient",
    "SMSClient",
    "PushClient",
    # Utilities
    "build_sender_address",
    "normalize_recipient",
    "normalize_phone_number",
]
