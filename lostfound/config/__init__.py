"""Configuration management module for the lost-and-found backend."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_app_config
from .models import (
    AlertsConfig,
    ApiConfig,
    AppConfig,
    ConfirmationsConfig,
    EmailConfig,
    GeocodingConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    NotificationsConfig,
    PushConfig,
    SMSConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "parse_app_config",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "AlertsConfig",
    "ApiConfig",
    "ConfirmationsConfig",
    "EmailConfig",
    "GeocodingConfig",
    "LoggingConfig",
    "NotificationsConfig",
    "PushConfig",
    "SMSConfig",
    "EnvironmentConfig",
    # Enums
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
