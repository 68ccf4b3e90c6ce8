"""Unit tests for the main entry point.

Tests the main() function including:
- Configuration loading with log level priority (CLI > env > config)
- Service wiring
- Cleanup-only mode vs server mode
- Granting the moderator role
- Exit code handling
"""

from unittest.mock import Mock, patch

import pytest

from lostfound.api import ServiceContainer
from lostfound.config.environment import EnvironmentConfig
from lostfound.config.exceptions import ConfigurationError
from lostfound.config.models import AppConfig
from lostfound.main import CLEANUP_JOB_ID, build_services, load_runtime_config, main
from lostfound.scheduler import SchedulerService
from lostfound.services import NotFoundError


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        """
confirmations:
  cleanup_interval: 30m
logging:
  level: WARNING
"""
    )
    return path


@pytest.fixture
def runtime_configs():
    return AppConfig(), EnvironmentConfig(jwt_secret="secret", database_url="sqlite:///:memory:", log_level="INFO")


class TestLoadRuntimeConfig:
    """Test suite for load_runtime_config helper."""

    def test_uses_config_file_level(self, config_file, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "secret")
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        app_config, env_config = load_runtime_config(config_file, None)

        assert app_config.confirmations.cleanup_interval_seconds == 1800
        assert env_config.log_level == "WARNING"

    def test_environment_overrides_config(self, config_file, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "secret")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        _, env_config = load_runtime_config(config_file, None)

        assert env_config.log_level == "DEBUG"

    def test_cli_overrides_everything(self, config_file, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "secret")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        _, env_config = load_runtime_config(config_file, "ERROR")

        assert env_config.log_level == "ERROR"

    def test_missing_jwt_secret(self, config_file, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)

        with pytest.raises(ConfigurationError):
            load_runtime_config(config_file, None)


def test_build_services_wires_container(runtime_configs):
    app_config, env_config = runtime_configs

    services = build_services(app_config, env_config, SchedulerService())

    assert isinstance(services, ServiceContainer)
    assert services.threads.confirmation_service is services.confirmations
    assert services.listings.alert_service is services.alerts
    assert services.alerts.geocoder is None
    assert services.moderation.dispatcher is services.threads.dispatcher


class TestMain:
    """Test suite for main() function."""

    @patch("lostfound.main.uvicorn")
    @patch("lostfound.main.build_services")
    @patch("lostfound.main.init_database")
    @patch("lostfound.main.close_database")
    @patch("lostfound.main.configure_logging")
    @patch("lostfound.main.load_runtime_config")
    def test_run_cleanup(
        self,
        mock_load_config,
        mock_configure_logging,
        mock_close_db,
        mock_init_db,
        mock_build_services,
        mock_uvicorn,
        runtime_configs,
    ):
        mock_load_config.return_value = runtime_configs
        services = Mock()
        services.confirmations.cleanup_expired.return_value = 3
        mock_build_services.return_value = services

        exit_code = main(["--run-cleanup"])

        assert exit_code == 0
        mock_configure_logging.assert_called_once()
        mock_init_db.assert_called_once_with("sqlite:///:memory:")
        services.confirmations.cleanup_expired.assert_called_once()
        mock_close_db.assert_called_once()
        mock_uvicorn.run.assert_not_called()

    @patch("lostfound.main.uvicorn")
    @patch("lostfound.main.SchedulerService")
    @patch("lostfound.main.build_services")
    @patch("lostfound.main.init_database")
    @patch("lostfound.main.close_database")
    @patch("lostfound.main.configure_logging")
    @patch("lostfound.main.load_runtime_config")
    def test_server_mode(
        self,
        mock_load_config,
        mock_configure_logging,
        mock_close_db,
        mock_init_db,
        mock_build_services,
        mock_scheduler_cls,
        mock_uvicorn,
        runtime_configs,
    ):
        mock_load_config.return_value = runtime_configs
        services = Mock()
        mock_build_services.return_value = services
        scheduler = mock_scheduler_cls.return_value

        exit_code = main(["--host", "0.0.0.0", "--port", "9000"])

        assert exit_code == 0
        scheduler.add_periodic.assert_called_once_with(
            services.confirmations.cleanup_expired,
            interval_seconds=3600,
            job_id=CLEANUP_JOB_ID,
            name="Expired confirmation cleanup",
        )
        scheduler.start.assert_called_once()
        _, kwargs = mock_uvicorn.run.call_args
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["port"] == 9000
        scheduler.shutdown.assert_called_once_with(wait=False)
        mock_close_db.assert_called_once()

    @patch("lostfound.main.uvicorn")
    @patch("lostfound.main.SchedulerService")
    @patch("lostfound.main.build_services")
    @patch("lostfound.main.init_database")
    @patch("lostfound.main.close_database")
    @patch("lostfound.main.configure_logging")
    @patch("lostfound.main.load_runtime_config")
    def test_server_error_still_cleans_up(
        self,
        mock_load_config,
        mock_configure_logging,
        mock_close_db,
        mock_init_db,
        mock_build_services,
        mock_scheduler_cls,
        mock_uvicorn,
        runtime_configs,
    ):
        mock_load_config.return_value = runtime_configs
        mock_uvicorn.run.side_effect = OSError("address in use")

        assert main([]) == 1
        mock_scheduler_cls.return_value.shutdown.assert_called_once()
        mock_close_db.assert_called_once()

    @patch("lostfound.main.uvicorn")
    @patch("lostfound.main.build_services")
    @patch("lostfound.main.init_database")
    @patch("lostfound.main.close_database")
    @patch("lostfound.main.configure_logging")
    @patch("lostfound.main.load_runtime_config")
    def test_grant_moderator(
        self,
        mock_load_config,
        mock_configure_logging,
        mock_close_db,
        mock_init_db,
        mock_build_services,
        mock_uvicorn,
        runtime_configs,
    ):
        mock_load_config.return_value = runtime_configs
        services = Mock()
        mock_build_services.return_value = services

        assert main(["--grant-moderator", "mod-1"]) == 0
        services.users.set_moderator.assert_called_once_with("mod-1")
        mock_close_db.assert_called_once()
        mock_uvicorn.run.assert_not_called()

    @patch("lostfound.main.build_services")
    @patch("lostfound.main.init_database")
    @patch("lostfound.main.close_database")
    @patch("lostfound.main.configure_logging")
    @patch("lostfound.main.load_runtime_config")
    def test_grant_moderator_unknown_user(
        self,
        mock_load_config,
        mock_configure_logging,
        mock_close_db,
        mock_init_db,
        mock_build_services,
        runtime_configs,
    ):
        mock_load_config.return_value = runtime_configs
        services = Mock()
        services.users.set_moderator.side_effect = NotFoundError("User", "ghost")
        mock_build_services.return_value = services

        assert main(["--grant-moderator", "ghost"]) == 1
        mock_close_db.assert_called_once()

    @patch("lostfound.main.load_runtime_config")
    def test_configuration_error(self, mock_load_config):
        mock_load_config.side_effect = ConfigurationError("Invalid config")

        assert main([]) == 1

    @patch("lostfound.main.load_runtime_config")
    def test_keyboard_interrupt(self, mock_load_config):
        mock_load_config.side_effect = KeyboardInterrupt()

        assert main([]) == 0

    @patch("lostfound.main.init_database")
    @patch("lostfound.main.configure_logging")
    @patch("lostfound.main.load_runtime_config")
    def test_log_level_override(self, mock_load_config, mock_configure_logging, mock_init_db, runtime_configs):
        mock_load_config.return_value = runtime_configs
        mock_init_db.side_effect = RuntimeError("stop here")

        assert main(["--log-level", "DEBUG"]) == 1
        mock_load_config.assert_called_once_with(None, "DEBUG")
