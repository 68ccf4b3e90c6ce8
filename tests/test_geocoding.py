"""Unit tests for the geocoding client."""

from unittest.mock import Mock

import pytest
import requests

from lostfound.config.models import GeocodingConfig
from lostfound.geocoding import GeocodingClient, GeocodingResult


@pytest.fixture
def session():
    mock = Mock()
    mock.headers = {}
    return mock


@pytest.fixture
def client(session):
    return GeocodingClient(GeocodingConfig(enabled=True, timeout=5), session=session)


def ok(payload):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = payload
    return response


def test_geocode_returns_first_result(client, session):
    session.get.return_value = ok(
        [{"lat": "48.8584", "lon": "2.3470", "display_name": "Châtelet, Paris"}, {"lat": "0", "lon": "0"}]
    )

    result = client.geocode("  Châtelet  ")

    assert result == GeocodingResult(48.8584, 2.3470, "Châtelet, Paris")
    session.get.assert_called_once_with(
        "https://nominatim.openstreetmap.org/search",
        params={"q": "Châtelet", "format": "json", "limit": 1},
        timeout=5,
    )
    assert session.headers["User-Agent"] == "LostFoundBackend/1.0"


def test_disabled_client_does_not_call_out(session):
    client = GeocodingClient(GeocodingConfig(enabled=False), session=session)

    assert client.geocode("Paris") is None
    session.get.assert_not_called()


@pytest.mark.parametrize("address", [None, "", "   "])
def test_blank_address(client, session, address):
    assert client.geocode(address) is None
    session.get.assert_not_called()


def test_no_result(client, session):
    session.get.return_value = ok([])

    assert client.geocode("Nowhere") is None


def test_request_failure(client, session):
    session.get.side_effect = requests.exceptions.ConnectionError("refused")

    assert client.geocode("Paris") is None


def test_http_error(client, session):
    response = Mock()
    response.raise_for_status.side_effect = requests.exceptions.HTTPError("503")
    session.get.return_value = response

    assert client.geocode("Paris") is None


def test_invalid_json(client, session):
    response = ok(None)
    response.json.side_effect = ValueError("no json")
    session.get.return_value = response

    assert client.geocode("Paris") is None


def test_malformed_payload(client, session):
    session.get.return_value = ok([{"lat": "not-a-number", "lon": "2.3"}])

    assert client.geocode("Paris") is None
