"""Unit tests for the SMS and push channel clients."""

from unittest.mock import Mock

import pytest
import requests

from lostfound.config.environment import EnvironmentConfig
from lostfound.config.models import PushConfig, SMSConfig
from lostfound.notifications import PushClient, SMSClient, normalize_phone_number
from lostfound.notifications.models import PushDeliveryError, SMSDeliveryError


def response(status_code=200, json_data=None, text=""):
    mock = Mock()
    mock.status_code = status_code
    mock.text = text
    mock.json.return_value = json_data or {}
    return mock


@pytest.fixture
def twilio_env():
    return EnvironmentConfig(jwt_secret="s", twilio_account_sid="AC123", twilio_auth_token="token")


@pytest.fixture
def sms_config():
    return SMSConfig(enabled=True, from_number="+33700000000")


class TestNormalizePhoneNumber:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("06 12 34 56 78", "+33612345678"),
            ("06.12.34.56.78", "+33612345678"),
            ("+33 6 12 34 56 78", "+33612345678"),
            ("612345678", "+33612345678"),
            ("+447911123456", "+447911123456"),
        ],
    )
    def test_normalizes(self, raw, expected):
        assert normalize_phone_number(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "---", "0612"])
    def test_rejects_unusable(self, raw):
        assert normalize_phone_number(raw) is None

    def test_custom_country_code(self):
        assert normalize_phone_number("0791112345", "+44") == "+44791112345"


class TestSMSClient:
    def test_disabled_without_credentials(self, sms_config):
        client = SMSClient(sms_config, EnvironmentConfig(jwt_secret="s"), session=Mock())

        assert not client.is_enabled
        with pytest.raises(SMSDeliveryError, match="not configured"):
            client.send("+33612345678", "hi")

    def test_disabled_by_config(self, twilio_env):
        assert not SMSClient(SMSConfig(), twilio_env, session=Mock()).is_enabled

    def test_send_posts_to_twilio(self, sms_config, twilio_env):
        session = Mock()
        session.post.return_value = response(201, {"sid": "SM1"})
        client = SMSClient(sms_config, twilio_env, timeout=5, session=session)

        assert client.send("+33612345678", "hello") == "SM1"

        session.post.assert_called_once_with(
            "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json",
            data={"From": "+33700000000", "To": "+33612345678", "Body": "hello"},
            auth=("AC123", "token"),
            timeout=5,
        )

    def test_gateway_error(self, sms_config, twilio_env):
        session = Mock()
        session.post.return_value = response(400, text="bad number")
        client = SMSClient(sms_config, twilio_env, session=session)

        with pytest.raises(SMSDeliveryError, match="HTTP 400"):
            client.send("+33612345678", "hello")

    def test_timeout(self, sms_config, twilio_env):
        session = Mock()
        session.post.side_effect = requests.exceptions.Timeout()
        client = SMSClient(sms_config, twilio_env, timeout=3, session=session)

        with pytest.raises(SMSDeliveryError, match="timed out after 3s"):
            client.send("+33612345678", "hello")


class TestPushClient:
    def test_disabled_without_gateway(self):
        client = PushClient(PushConfig(), session=Mock())

        assert not client.is_enabled
        with pytest.raises(PushDeliveryError):
            client.send("u1", "t", "b")

    def test_send_posts_json(self):
        session = Mock()
        session.headers = {}
        session.post.return_value = response(202)
        client = PushClient(PushConfig(gateway_url="https://push.example/send"), timeout=4, session=session)

        client.send("u1", "Title", "Body", "/messages/t1")

        session.post.assert_called_once_with(
            "https://push.example/send",
            json={"user_id": "u1", "title": "Title", "body": "Body", "url": "/messages/t1"},
            timeout=4,
        )
        assert session.headers["User-Agent"] == "LostFoundBackend/1.0"

    def test_gateway_error(self):
        session = Mock()
        session.headers = {}
        session.post.return_value = response(500)
        client = PushClient(PushConfig(gateway_url="https://push.example/send"), session=session)

        with pytest.raises(PushDeliveryError, match="HTTP 500"):
            client.send("u1", "t", "b")

    def test_connection_error(self):
        session = Mock()
        session.headers = {}
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        client = PushClient(PushConfig(gateway_url="https://push.example/send"), session=session)

        with pytest.raises(PushDeliveryError, match="request failed"):
            client.send("u1", "t", "b")
