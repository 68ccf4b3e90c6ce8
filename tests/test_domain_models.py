"""Unit tests for domain models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from lostfound.domain.models import (
    DEFAULT_RADIUS_KM,
    Confirmation,
    ConfirmationState,
    ListingCategory,
    Message,
    NotificationChannel,
)

from tests.helpers.factories import NOW, make_alert, make_listing, make_thread, make_user


def make_confirmation(**overrides):
    data = {
        "id": "c-1",
        "thread_id": "thread-1",
        "code": "AB12CD",
        "expires_at": NOW + timedelta(hours=24),
        "created_at": NOW,
    }
    data.update(overrides)
    return Confirmation(**data)


class TestUser:
    def test_blank_phone_is_none(self):
        assert make_user(phone="   ").phone is None

    def test_phone_is_stripped(self):
        assert make_user(phone=" +33612345678 ").phone == "+33612345678"

    def test_naive_created_at_is_utc(self):
        user = make_user(created_at=datetime(2024, 1, 1, 12, 0, 0))
        assert user.created_at.tzinfo == timezone.utc


class TestListing:
    def test_category_enum(self):
        listing = make_listing(category="keys")
        assert listing.category == ListingCategory.KEYS

    def test_unknown_category_rejected(self):
        with pytest.raises(ValidationError):
            make_listing(category="spaceships")

    def test_latitude_bounds(self):
        with pytest.raises(ValidationError):
            make_listing(latitude=91, longitude=0)

    def test_has_coordinates(self):
        assert not make_listing().has_coordinates
        assert make_listing(latitude=48.8, longitude=2.3).has_coordinates

    def test_found_at_is_converted_to_utc(self):
        paris = timezone(timedelta(hours=2))
        listing = make_listing(found_at=datetime(2024, 6, 1, 10, 0, 0, tzinfo=paris))
        assert listing.found_at == datetime(2024, 6, 1, 8, 0, 0, tzinfo=timezone.utc)


class TestAlert:
    def test_defaults(self):
        alert = make_alert(radius_km=DEFAULT_RADIUS_KM, channels=[])
        assert alert.active
        assert alert.last_triggered_at is None
        assert alert.radius_km == DEFAULT_RADIUS_KM

    def test_blank_criteria_are_unset(self):
        alert = make_alert(query_text=" ", category="", location_text="\t")
        assert alert.query_text is None
        assert alert.category is None
        assert alert.location_text is None

    def test_radius_must_be_positive(self):
        with pytest.raises(ValidationError):
            make_alert(radius_km=0)

    def test_criteria_text_is_kept_as_entered(self):
        alert = make_alert(query_text=" iPhone ", location_text="Gare du Nord ")
        assert alert.query_text == " iPhone "
        assert alert.location_text == "Gare du Nord "

    def test_channels_parsed(self):
        alert = make_alert(channels=["email", "sms"])
        assert alert.channels == [NotificationChannel.EMAIL, NotificationChannel.SMS]

    def test_unknown_channel_rejected(self):
        with pytest.raises(ValidationError):
            make_alert(channels=["pigeon"])


class TestThread:
    def test_is_party(self):
        thread = make_thread(owner_user_id="owner", finder_user_id="finder")
        assert thread.is_party("owner")
        assert thread.is_party("finder")
        assert not thread.is_party("stranger")


class TestMessage:
    def test_body_length(self):
        with pytest.raises(ValidationError):
            Message(id="m", thread_id="t", sender_user_id="u", body="", created_at=NOW)
        with pytest.raises(ValidationError):
            Message(id="m", thread_id="t", sender_user_id="u", body="x" * 2001, created_at=NOW)


class TestConfirmation:
    """Tests for derived confirmation state."""

    def test_issued(self):
        confirmation = make_confirmation()
        assert confirmation.state(NOW) == ConfirmationState.ISSUED
        assert not confirmation.is_used

    def test_expired_strictly_after_expiry(self):
        confirmation = make_confirmation()
        assert not confirmation.is_expired(confirmation.expires_at)
        assert confirmation.is_expired(confirmation.expires_at + timedelta(seconds=1))
        assert confirmation.state(NOW + timedelta(hours=25)) == ConfirmationState.EXPIRED

    def test_redeemed_wins_over_expired(self):
        confirmation = make_confirmation(used_at=NOW, used_by_user_id="finder")
        assert confirmation.is_used
        assert confirmation.state(NOW + timedelta(days=7)) == ConfirmationState.REDEEMED

    def test_naive_now_is_treated_as_utc(self):
        confirmation = make_confirmation()
        assert confirmation.is_expired(datetime(2024, 6, 3, 0, 0, 0))
