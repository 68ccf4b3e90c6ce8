"""Environment variable loading and validation."""

import os
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from .exceptions import ConfigurationError

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EnvironmentConfig:
    """Environment variable configuration holder (secrets and deployment settings)."""

    def __init__(
        self,
        jwt_secret: str,
        database_url: Optional[str] = None,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_pass: Optional[str] = None,
        smtp_sender_email: Optional[str] = None,
        smtp_sender_name: Optional[str] = None,
        twilio_account_sid: Optional[str] = None,
        twilio_auth_token: Optional[str] = None,
        log_level: Optional[str] = None,
    ):
        """Initialize environment configuration."""
        self.jwt_secret = jwt_secret
        self.database_url = database_url or "sqlite:///./data/lostfound.db"
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.smtp_sender_email = smtp_sender_email
        self.smtp_sender_name = smtp_sender_name or "Lost & Found"
        self.twilio_account_sid = twilio_account_sid
        self.twilio_auth_token = twilio_auth_token
        self.log_level = log_level

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_port)

    @property
    def twilio_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token)


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Required environment variables:
    - JWT_SECRET: Secret used to verify bearer tokens

    Optional environment variables:
    - DATABASE_URL: Database URL (default: sqlite:///./data/lostfound.db)
    - SMTP_HOST / SMTP_PORT: Mail relay; email is skipped when unset
    - SMTP_USER / SMTP_PASS: SMTP authentication (both or neither)
    - SMTP_SENDER_EMAIL / SMTP_SENDER_NAME: From address parts
    - TWILIO_ACCOUNT_SID / TWILIO_AUTH_TOKEN: SMS gateway credentials
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If required variables are missing or invalid
    """
    errors = []

    jwt_secret = os.getenv("JWT_SECRET")
    database_url = os.getenv("DATABASE_URL")
    smtp_host = os.getenv("SMTP_HOST")
    smtp_port_str = os.getenv("SMTP_PORT")
    smtp_user = os.getenv("SMTP_USER")
    smtp_pass = os.getenv("SMTP_PASS")
    smtp_sender_email = os.getenv("SMTP_SENDER_EMAIL")
    smtp_sender_name = os.getenv("SMTP_SENDER_NAME")
    twilio_account_sid = os.getenv("TWILIO_ACCOUNT_SID")
    twilio_auth_token = os.getenv("TWILIO_AUTH_TOKEN")
    log_level = os.getenv("LOG_LEVEL")

    if not jwt_secret:
        errors.append("Missing required environment variable: JWT_SECRET")

    smtp_port = None
    if smtp_port_str:
        try:
            smtp_port = int(smtp_port_str)
            if smtp_port < 1 or smtp_port > 65535:
                errors.append(
                    f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535."
                )
        except ValueError:
            errors.append(
                f"Invalid SMTP_PORT: '{smtp_port_str}'. Must be a valid integer."
            )

    if smtp_host and not smtp_port_str:
        errors.append("SMTP_HOST is set but SMTP_PORT is not.")

    if smtp_sender_email:
        try:
            validate_email(smtp_sender_email, check_deliverability=False)
        except EmailNotValidError:
            errors.append(
                f"Invalid email address format in SMTP_SENDER_EMAIL: '{smtp_sender_email}'"
            )

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if smtp_user and not smtp_pass:
        errors.append(
            "SMTP_USER is set but SMTP_PASS is not. Both must be set for authentication."
        )
    elif smtp_pass and not smtp_user:
        errors.append(
            "SMTP_PASS is set but SMTP_USER is not. Both must be set for authentication."
        )

    if bool(twilio_account_sid) != bool(twilio_auth_token):
        errors.append(
            "TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN must be set together."
        )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
                "Ensure JWT_SECRET is set",
                "Verify SMTP_PORT is a number between 1 and 65535",
            ],
        )

    return EnvironmentConfig(
        jwt_secret=jwt_secret,
        database_url=database_url,
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        smtp_sender_email=smtp_sender_email,
        smtp_sender_name=smtp_sender_name,
        twilio_account_sid=twilio_account_sid,
        twilio_auth_token=twilio_auth_token,
        log_level=log_level,
    )
