"""Configuration schema models using Pydantic."""

import string
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class AlertsConfig(BaseModel):
    """Saved-search alert settings."""

    default_radius_km: float = Field(
        10.0, gt=0, le=500, description="Radius applied when an alert leaves it unset"
    )
    max_radius_km: float = Field(100.0, gt=0, le=500, description="Largest accepted radius")
    max_alerts_per_user: int = Field(20, ge=1, description="Cap on alerts a user may own")
    public_base_url: str = Field(
        "http://localhost:3000",
        min_length=1,
        description="Front-end base URL used to build listing links in notifications",
    )

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Strip whitespace and trailing slashes from the base URL."""
        stripped = v.strip().rstrip("/")
        if not stripped:
            raise ValueError("public_base_url cannot be empty")
        return stripped

    @model_validator(mode="after")
    def validate_radius_bounds(self):
        """Default radius must not exceed the maximum."""
        if self.default_radius_km > self.max_radius_km:
            raise ValueError(
                f"default_radius_km ({self.default_radius_km}) exceeds "
                f"max_radius_km ({self.max_radius_km})"
            )
        return self


class ConfirmationsConfig(BaseModel):
    """Handover confirmation code settings."""

    code_length: int = Field(6, ge=4, le=12, description="Number of characters in a code")
    alphabet: str = Field(
        string.ascii_uppercase + string.digits,
        min_length=10,
        description="Characters codes are drawn from",
    )
    expiry_hours: int = Field(24, ge=1, le=168, description="Hours a code stays valid")
    cleanup_interval: str = Field("1h", description="How often expired codes are purged")
    max_generation_attempts: int = Field(
        10, ge=1, le=100, description="Retries when a drawn code collides with a stored one"
    )

    # Computed field
    cleanup_interval_seconds: Optional[int] = None

    @field_validator("alphabet")
    @classmethod
    def unique_characters(cls, v: str) -> str:
        """Reject alphabets with repeated characters."""
        if len(set(v)) != len(v):
            raise ValueError("alphabet must not contain repeated characters")
        return v

    @field_validator("cleanup_interval")
    @classmethod
    def validate_cleanup_interval(cls, v: str) -> str:
        """Validate the cleanup interval format and range."""
        try:
            seconds = parse_duration(v)
            validate_duration_range(seconds, min_seconds=60, max_seconds=86400)
            return v
        except DurationParseError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def compute_interval_seconds(self):
        """Compute the cleanup interval in seconds."""
        self.cleanup_interval_seconds = parse_duration(self.cleanup_interval)
        return self


class EmailConfig(BaseModel):
    """Email notification settings."""

    enabled: bool = Field(True, description="Send alert emails")
    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    max_retries: int = Field(
        3, ge=0, le=10, description="Number of retry attempts for failed email sends"
    )
    retry_backoff_multiplier: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier for retries"
    )
    retry_initial_delay: int = Field(
        5, ge=1, le=60, description="Initial retry delay in seconds"
    )


class SMSConfig(BaseModel):
    """SMS gateway (Twilio) settings."""

    enabled: bool = Field(False, description="Send SMS; when false messages are only logged")
    from_number: Optional[str] = Field(None, description="Sender phone number in E.164 form")
    default_country_code: str = Field("+33", description="Prefix for national numbers")
    api_base_url: str = Field("https://api.twilio.com/2010-04-01", min_length=1)

    @field_validator("default_country_code")
    @classmethod
    def validate_country_code(cls, v: str) -> str:
        """Country code must look like +<digits>."""
        stripped = v.strip()
        if not stripped.startswith("+") or not stripped[1:].isdigit():
            raise ValueError(f"default_country_code must look like '+33', got: {v}")
        return stripped

    @model_validator(mode="after")
    def require_sender_when_enabled(self):
        """An enabled SMS channel needs a sender number."""
        if self.enabled and not self.from_number:
            raise ValueError("sms.from_number is required when sms.enabled is true")
        return self


class PushConfig(BaseModel):
    """Push notification gateway settings."""

    enabled: bool = Field(True, description="Send push notifications")
    gateway_url: Optional[str] = Field(
        None, description="Endpoint receiving push payloads as JSON POST requests"
    )


class NotificationsConfig(BaseModel):
    """Outbound notification channels."""

    email: EmailConfig = Field(default_factory=EmailConfig)
    sms: SMSConfig = Field(default_factory=SMSConfig)
    push: PushConfig = Field(default_factory=PushConfig)
    http_timeout: int = Field(
        10, ge=1, le=120, description="Request timeout for SMS/push providers (seconds)"
    )


class GeocodingConfig(BaseModel):
    """Free-text location to coordinates resolution."""

    enabled: bool = Field(False, description="Resolve coordinates for listings and alerts")
    base_url: str = Field("https://nominatim.openstreetmap.org", min_length=1)
    user_agent: str = Field("LostFoundBackend/1.0", min_length=1)
    timeout: int = Field(10, ge=1, le=60)

    @field_validator("user_agent")
    @classmethod
    def strip_user_agent(cls, v: str) -> str:
        """Strip whitespace from user agent."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("user_agent cannot be empty")
        return stripped


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class ApiConfig(BaseModel):
    """HTTP API settings."""

    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed by CORS",
    )
    default_page_size: int = Field(20, ge=1, le=100)
    max_page_size: int = Field(100, ge=1, le=500)

    @model_validator(mode="after")
    def validate_page_sizes(self):
        """Default page size must fit within the maximum."""
        if self.default_page_size > self.max_page_size:
            raise ValueError("default_page_size cannot exceed max_page_size")
        return self


class AppConfig(BaseModel):
    """Root configuration object for the lost-and-found backend."""

    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    confirmations: ConfirmationsConfig = Field(default_factory=ConfirmationsConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    geocoding: GeocodingConfig = Field(default_factory=GeocodingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
