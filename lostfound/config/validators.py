"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for settings that are valid but probably unintended.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    notifications = config_dict.get("notifications", {})
    if isinstance(notifications, dict):
        push = notifications.get("push", {})
        if isinstance(push, dict) and push.get("enabled", True) and not push.get("gateway_url"):
            warning_messages.append(
                "Push notifications are enabled without a gateway_url; pushes will only be logged"
            )

        sms = notifications.get("sms", {})
        if isinstance(sms, dict) and not sms.get("enabled", False):
            warning_messages.append(
                "SMS channel is disabled; confirmation codes will only be sent by push"
            )

    confirmations = config_dict.get("confirmations", {})
    if isinstance(confirmations, dict):
        code_length = confirmations.get("code_length", 6)
        if isinstance(code_length, int) and code_length < 6:
            warning_messages.append(
                f"Short confirmation codes ({code_length} characters) are easier to guess"
            )

    alerts = config_dict.get("alerts", {})
    if isinstance(alerts, dict):
        max_radius = alerts.get("max_radius_km", 100.0)
        if isinstance(max_radius, (int, float)) and max_radius > 200:
            warning_messages.append(
                f"Large max_radius_km ({max_radius}) may flood users with alert notifications"
            )

    geocoding = config_dict.get("geocoding", {})
    if isinstance(geocoding, dict) and geocoding.get("enabled"):
        base_url = geocoding.get("base_url", "https://nominatim.openstreetmap.org")
        if "nominatim.openstreetmap.org" in str(base_url):
            warning_messages.append(
                "Public Nominatim is rate limited to one request per second; "
                "consider a self-hosted geocoder"
            )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
