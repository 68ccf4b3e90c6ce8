"""Notification dispatcher for email, SMS and push delivery.

NotificationDispatcher is the single outbound seam of the backend. Each send
method returns a DispatchResult and never raises: delivery errors are logged
and reported, so a failing channel cannot abort an alert sweep or a handover.
"""

import logging
import time
from email.message import EmailMessage
from typing import Callable, Optional

from lostfound.config.environment import EnvironmentConfig
from lostfound.config.models import NotificationsConfig
from lostfound.domain.models import Alert, Listing, User
from lostfound.logging import get_logger, mask_email, mask_phone

from .models import (
    STATUS_FAILED,
    STATUS_SENT,
    STATUS_SKIPPED,
    DispatchError,
    DispatchResult,
    NotificationTemplateError,
    SMTPDeliveryError,
)
from .payloads import build_alert_match_context
from .push_client import PushClient
from .sms_client import SMSClient, normalize_phone_number
from .smtp_client import SMTPClient, build_sender_address, normalize_recipient
from .templates import TemplateRenderer

logger = get_logger(__name__, component="notification")

MAX_RETRY_DELAY_SECONDS = 60.0


class NotificationDispatcher:
    """Delivers notifications on the three supported channels.

    Email delivery retries with exponential backoff per ``EmailConfig``;
    SMS and push are attempted once.
    """

    def __init__(
        self,
        notifications_config: NotificationsConfig,
        env_config: EnvironmentConfig,
        template_renderer: Optional[TemplateRenderer] = None,
        smtp_client: Optional[SMTPClient] = None,
        sms_client: Optional[SMSClient] = None,
        push_client: Optional[PushClient] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize the dispatcher.

        Args:
            notifications_config: Channel settings
            env_config: SMTP and Twilio credentials
            template_renderer: Renderer for templated emails (creates default if None)
            smtp_client: SMTP client (creates default if None)
            sms_client: SMS client (creates default if None)
            push_client: Push client (creates default if None)
            sleep: Delay function used between email retries
            logger_instance: Logger instance (uses module logger if None)
        """
        self.config = notifications_config
        self.env_config = env_config
        self.template_renderer = template_renderer or TemplateRenderer()
        self.smtp_client = smtp_client or SMTPClient()
        self.sms_client = sms_client or SMSClient(
            notifications_config.sms, env_config, timeout=notifications_config.http_timeout
        )
        self.push_client = push_client or PushClient(
            notifications_config.push, timeout=notifications_config.http_timeout
        )
        self.sleep = sleep
        self.logger = logger_instance or logger

    def send_email(
        self,
        user: User,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
    ) -> DispatchResult:
        """Send a plain-text (optionally multipart) email to a user."""
        recipient = mask_email(user.email)

        if not self.config.email.enabled or not self.env_config.smtp_configured:
            self.logger.info(
                f"Email channel disabled, not sending '{subject}'",
                extra={"event": "notification.email.skipped", "recipient": recipient},
            )
            return DispatchResult(
                channel="email", recipient=recipient, status=STATUS_SKIPPED, error="email disabled"
            )

        try:
            message = EmailMessage()
            message["Subject"] = subject
            message["From"] = build_sender_address(self.env_config)
            message["To"] = normalize_recipient(user.email)
            message.set_content(body)
            if html_body:
                message.add_alternative(html_body, subtype="html")
        except ValueError as e:
            self.logger.error(
                f"Failed to build email message: {e}",
                extra={"event": "notification.email.failed", "recipient": recipient},
            )
            return DispatchResult(channel="email", recipient=recipient, status=STATUS_FAILED, error=str(e))

        return self._deliver_email(message, recipient)

    def send_alert_email(
        self,
        user: User,
        alert: Alert,
        listing: Listing,
        listing_url: str,
        distance_km: Optional[float] = None,
    ) -> DispatchResult:
        """Render the alert-match templates and email them to the alert owner."""
        try:
            rendered = self.template_renderer.render(
                build_alert_match_context(user, alert, listing, listing_url, distance_km)
            )
        except NotificationTemplateError as e:
            self.logger.error(
                f"Alert email rendering failed for alert {alert.id}: {e}",
                extra={"event": "notification.email.failed", "alert_id": alert.id},
            )
            return DispatchResult(
                channel="email", recipient=mask_email(user.email), status=STATUS_FAILED, error=str(e)
            )

        return self.send_email(
            user, rendered["subject"], rendered["text_body"], html_body=rendered["html_body"]
        )

    def _deliver_email(self, message: EmailMessage, recipient: str) -> DispatchResult:
        email_config = self.config.email
        max_attempts = email_config.max_retries + 1
        last_error = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                delay = min(
                    email_config.retry_initial_delay
                    * (email_config.retry_backoff_multiplier ** (attempt - 2)),
                    MAX_RETRY_DELAY_SECONDS,
                )
                self.logger.warning(
                    f"Retrying email delivery (attempt {attempt}/{max_attempts}) after {delay:.1f}s",
                    extra={"event": "notification.email.retry", "attempt": attempt, "recipient": recipient},
                )
                self.sleep(delay)

            try:
                self.smtp_client.send(message, self.env_config, email_config.use_tls)
            except SMTPDeliveryError as e:
                last_error = str(e)
                self.logger.warning(
                    f"SMTP delivery failed (attempt {attempt}/{max_attempts}): {e}",
                    extra={
                        "event": "notification.email.failure",
                        "attempt": attempt,
                        "recipient": recipient,
                        "retry_remaining": attempt < max_attempts,
                    },
                )
                continue

            self.logger.info(
                f"Email sent to {recipient}",
                extra={"event": "notification.email.sent", "attempt": attempt, "recipient": recipient},
            )
            return DispatchResult(channel="email", recipient=recipient, status=STATUS_SENT, attempts=attempt)

        self.logger.error(
            f"Email delivery to {recipient} failed after {max_attempts} attempts",
            extra={"event": "notification.email.failed", "attempts": max_attempts, "recipient": recipient},
        )
        return DispatchResult(
            channel="email", recipient=recipient, status=STATUS_FAILED, attempts=max_attempts, error=last_error
        )

    def send_sms(self, phone: str, text: str) -> DispatchResult:
        """Send a text message; the number is normalized first."""
        number = normalize_phone_number(phone, self.config.sms.default_country_code)
        recipient = mask_phone(number or phone)

        if number is None:
            self.logger.warning(
                "Invalid phone number, SMS not sent",
                extra={"event": "notification.sms.invalid_number", "recipient": recipient},
            )
            return DispatchResult(
                channel="sms", recipient=recipient, status=STATUS_SKIPPED, error="invalid phone number"
            )

        if not self.sms_client.is_enabled:
            # Disabled SMS is a development mode: log the text instead of sending it
            self.logger.info(
                f"SMS channel disabled, message for {recipient}: {text}",
                extra={"event": "notification.sms.skipped", "recipient": recipient},
            )
            return DispatchResult(channel="sms", recipient=recipient, status=STATUS_SKIPPED, error="sms disabled")

        try:
            sid = self.sms_client.send(number, text)
        except DispatchError as e:
            self.logger.error(
                f"SMS delivery to {recipient} failed: {e}",
                extra={"event": "notification.sms.failed", "recipient": recipient, "error_type": type(e).__name__},
            )
            return DispatchResult(channel="sms", recipient=recipient, status=STATUS_FAILED, attempts=1, error=str(e))

        self.logger.info(
            f"SMS sent to {recipient}",
            extra={"event": "notification.sms.sent", "recipient": recipient, "provider_id": sid},
        )
        return DispatchResult(channel="sms", recipient=recipient, status=STATUS_SENT, attempts=1, provider_id=sid)

    def send_push(self, user_id: str, title: str, body: str, url: Optional[str] = None) -> DispatchResult:
        """Send a push notification to all devices of a user."""
        if not self.push_client.is_enabled:
            self.logger.info(
                f"Push channel disabled, notification for user {user_id}: {title}",
                extra={"event": "notification.push.skipped", "recipient": user_id, "url": url},
            )
            return DispatchResult(channel="push", recipient=user_id, status=STATUS_SKIPPED, error="push disabled")

        try:
            self.push_client.send(user_id, title, body, url)
        except DispatchError as e:
            self.logger.error(
                f"Push delivery to user {user_id} failed: {e}",
                extra={"event": "notification.push.failed", "recipient": user_id, "error_type": type(e).__name__},
            )
            return DispatchResult(channel="push", recipient=user_id, status=STATUS_FAILED, attempts=1, error=str(e))

        self.logger.info(
            f"Push sent to user {user_id}",
            extra={"event": "notification.push.sent", "recipient": user_id},
        )
        return DispatchResult(channel="push", recipient=user_id, status=STATUS_SENT, attempts=1)
