"""Structured logging helpers shared by every component."""

import logging
from typing import Optional

from .context import clear_log_context, get_log_context, log_context, pop_log_context, push_log_context


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter tagging records with a component, letting call extras win."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str, component: Optional[str] = None):
    """Get a logger, optionally tagging every record with a component field.

    Args:
        name: Logger name (typically __name__)
        component: Component identifier such as "alerts" or "confirmations"

    Example:
        >>> logger = get_logger(__name__, component="alerts")
        >>> logger.info("Alert matched", extra={"event": "alerts.match.found"})
    """
    logger = logging.getLogger(name)
    if component:
        return ComponentLoggerAdapter(logger, {"component": component})
    return logger


def mask_email(email: Optional[str]) -> Optional[str]:
    """Mask the local part of an address for logging (jane@x.org -> j***@x.org)."""
    if not email or "@" not in email:
        return email
    local, domain = email.split("@", 1)
    return f"{local[:1]}***@{domain}"


def mask_phone(phone: Optional[str]) -> Optional[str]:
    """Keep only the last two digits of a phone number."""
    if not phone:
        return phone
    if len(phone) <= 2:
        return "**"
    return "*" * (len(phone) - 2) + phone[-2:]


__all__ = [
    "ComponentLoggerAdapter",
    "get_logger",
    "mask_email",
    "mask_phone",
    "log_context",
    "get_log_context",
    "push_log_context",
    "pop_log_context",
    "clear_log_context",
]
