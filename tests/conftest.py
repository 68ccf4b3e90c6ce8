"""Shared pytest fixtures."""

from unittest.mock import Mock

import pytest

from lostfound.logging.context import clear_log_context
from lostfound.notifications import DispatchResult, NotificationDispatcher
from lostfound.notifications.models import STATUS_SENT
from lostfound.persistence import close_database, init_database

from tests.helpers.factories import FakeClock


@pytest.fixture
def database():
    """Fresh in-memory database for one test."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def dispatcher():
    """NotificationDispatcher double whose calls all report success."""
    mock = Mock(spec=NotificationDispatcher)
    mock.send_email.return_value = DispatchResult(channel="email", recipient="x", status=STATUS_SENT)
    mock.send_alert_email.return_value = DispatchResult(
        channel="email", recipient="x", status=STATUS_SENT
    )
    mock.send_sms.return_value = DispatchResult(channel="sms", recipient="x", status=STATUS_SENT)
    mock.send_push.return_value = DispatchResult(channel="push", recipient="x", status=STATUS_SENT)
    return mock


@pytest.fixture(autouse=True)
def clean_log_context():
    clear_log_context()
    yield
    clear_log_context()
