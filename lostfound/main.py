"""Main entry point for the lost-and-found backend."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import os
import sys
import time
from pathlib import Path
from typing import Optional, Tuple

import uvicorn

from lostfound.api import ServiceContainer, create_app
from lostfound.config import ConfigurationError, load_config
from lostfound.config.environment import EnvironmentConfig
from lostfound.config.models import AppConfig
from lostfound.geocoding import GeocodingClient
from lostfound.logging import get_logger
from lostfound.logging.config import configure_logging
from lostfound.matching import AlertMatcher
from lostfound.notifications import NotificationDispatcher, PushClient, SMSClient
from lostfound.persistence import close_database, init_database
from lostfound.scheduler import SchedulerService
from lostfound.services import (
    AlertService,
    ConfirmationService,
    ListingService,
    ModerationService,
    NotFoundError,
    ThreadService,
    UserService,
)

logger = get_logger(__name__, component="cli")

CLEANUP_JOB_ID = "confirmation-cleanup"


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif env_config.log_level:
        env_config.log_level = env_config.log_level.upper()
    else:
        env_config.log_level = app_config.logging.level

    return app_config, env_config


def build_services(
    app_config: AppConfig,
    env_config: EnvironmentConfig,
    scheduler: SchedulerService,
) -> ServiceContainer:
    """Wire notification clients and services together."""
    notifications = app_config.notifications
    dispatcher = NotificationDispatcher(
        notifications_config=notifications,
        env_config=env_config,
        sms_client=SMSClient(notifications.sms, env_config, timeout=notifications.http_timeout),
        push_client=PushClient(notifications.push, timeout=notifications.http_timeout),
    )
    geocoder = GeocodingClient(app_config.geocoding) if app_config.geocoding.enabled else None

    alert_service = AlertService(
        config=app_config.alerts,
        dispatcher=dispatcher,
        matcher=AlertMatcher(default_radius_km=app_config.alerts.default_radius_km),
        geocoder=geocoder,
    )
    confirmation_service = ConfirmationService(app_config.confirmations, dispatcher)

    return ServiceContainer(
        users=UserService(),
        listings=ListingService(
            alert_service=alert_service,
            scheduler=scheduler,
            api_config=app_config.api,
            geocoder=geocoder,
        ),
        alerts=alert_service,
        threads=ThreadService(dispatcher, confirmation_service=confirmation_service),
        confirmations=confirmation_service,
        moderation=ModerationService(dispatcher, api_config=app_config.api),
    )


def main(argv=None) -> int:
    """
    Main entry point for the lost-and-found backend.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    parser = argparse.ArgumentParser(
        description="Lost & Found backend - found-item listings, alerts and handover confirmations"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml or config/config.yaml if present)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Address to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind (default: 8000)")
    parser.add_argument(
        "--run-cleanup",
        action="store_true",
        help="Purge expired confirmation codes once and exit",
    )
    parser.add_argument(
        "--grant-moderator",
        metavar="USER_ID",
        default=None,
        help="Give an existing user the moderator role and exit",
    )

    args = parser.parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=environment,
        )

        logger.info(
            "Lost & Found backend starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "run_cleanup": args.run_cleanup,
            },
        )

        init_database(env_config.database_url)

        scheduler_service = SchedulerService()
        services = build_services(app_config, env_config, scheduler_service)

        logger.info(
            "Services initialized",
            extra={
                "event": "services.initialized",
                "sms_enabled": app_config.notifications.sms.enabled,
                "push_enabled": app_config.notifications.push.enabled,
                "geocoding_enabled": app_config.geocoding.enabled,
            },
        )

        if args.grant_moderator:
            try:
                services.users.set_moderator(args.grant_moderator)
            except NotFoundError as e:
                print(f"Error: {e}", file=sys.stderr)
                return 1
            finally:
                close_database()
            return 0

        if args.run_cleanup:
            deleted = services.confirmations.cleanup_expired()
            close_database()
            logger.info(
                f"Cleanup run completed: {deleted} codes deleted",
                extra={"event": "service.cleanup_run.completed", "deleted": deleted},
            )
            return 0

        scheduler_service.add_periodic(
            services.confirmations.cleanup_expired,
            interval_seconds=app_config.confirmations.cleanup_interval_seconds,
            job_id=CLEANUP_JOB_ID,
            name="Expired confirmation cleanup",
        )
        scheduler_service.start()

        app = create_app(services, env_config.jwt_secret, app_config.api)

        # uvicorn handles SIGINT/SIGTERM and returns once the server has stopped
        try:
            uvicorn.run(app, host=args.host, port=args.port, log_config=None)
        finally:
            scheduler_service.shutdown(wait=False)
            close_database()

        uptime_seconds = time.time() - start_time
        logger.info(
            "Lost & Found backend stopped",
            extra={"event": "service.stopping", "uptime_seconds": round(uptime_seconds, 2)},
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
