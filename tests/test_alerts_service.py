"""Unit tests for AlertService: CRUD, authorization and the match sweep."""

from datetime import date, timedelta
from unittest.mock import Mock, patch

import pytest

from lostfound.config.models import AlertsConfig
from lostfound.domain.models import ListingStatus, NotificationChannel
from lostfound.geocoding import GeocodingResult
from lostfound.persistence import AlertRepository, get_session
from lostfound.services import (
    AlertService,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)

from tests.helpers.factories import (
    PARIS_CHATELET,
    PARIS_LOUVRE,
    make_alert,
    make_listing,
    make_user,
    save_alert,
    save_listing,
    save_user,
)


@pytest.fixture
def users(database):
    save_user(make_user("owner", phone="+33611111111", email_verified=True))
    save_user(make_user("other"))
    save_user(make_user("finder"))


@pytest.fixture
def service(users, dispatcher, clock):
    return AlertService(AlertsConfig(max_alerts_per_user=3), dispatcher, clock=clock)


class TestAlertCrud:
    """Tests for alert create/read/update/delete."""

    def test_create_applies_default_radius(self, service, clock):
        alert = service.create_alert("owner", "Lost keys", category="keys")

        assert alert.radius_km == 10.0
        assert alert.active
        assert alert.created_at == clock.now
        assert service.get_alert(alert.id, "owner").category == "keys"

    def test_create_for_unknown_user(self, service):
        with pytest.raises(NotFoundError):
            service.create_alert("ghost", "Lost keys")

    def test_create_rejects_unknown_field(self, service):
        with pytest.raises(ValidationError, match="Unknown alert fields"):
            service.create_alert("owner", "Lost keys", colour="red")

    def test_create_rejects_radius_above_max(self, service):
        with pytest.raises(ValidationError, match="radius_km"):
            service.create_alert("owner", "Lost keys", radius_km=500)

    def test_create_rejects_inverted_dates(self, service):
        with pytest.raises(ValidationError, match="date_from"):
            service.create_alert("owner", "x", date_from=date(2024, 2, 1), date_to=date(2024, 1, 1))

    def test_create_rejects_half_coordinates(self, service):
        with pytest.raises(ValidationError, match="together"):
            service.create_alert("owner", "x", latitude=48.85)

    def test_create_rejects_empty_title(self, service):
        with pytest.raises(ValidationError):
            service.create_alert("owner", None)

    def test_alert_limit(self, service):
        for i in range(3):
            service.create_alert("owner", f"Alert {i}")

        with pytest.raises(ValidationError, match="limit"):
            service.create_alert("owner", "One too many")

    def test_geocodes_location_text(self, users, dispatcher, clock):
        geocoder = Mock()
        geocoder.geocode.return_value = GeocodingResult(48.8584, 2.3470, "Châtelet")
        service = AlertService(AlertsConfig(), dispatcher, geocoder=geocoder, clock=clock)

        alert = service.create_alert("owner", "Wallet", location_text="Châtelet")

        geocoder.geocode.assert_called_once_with("Châtelet")
        assert (alert.latitude, alert.longitude) == (48.8584, 2.3470)

    def test_list_alerts_with_active_filter(self, service):
        first = service.create_alert("owner", "First")
        service.create_alert("owner", "Second")
        service.toggle_alert(first.id, "owner")

        assert len(service.list_alerts("owner")) == 2
        assert [a.title for a in service.list_alerts("owner", active=True)] == ["Second"]
        assert [a.title for a in service.list_alerts("owner", active=False)] == ["First"]
        assert service.count_active("owner") == 1

    def test_update_alert(self, service, clock):
        alert = service.create_alert("owner", "Keys", radius_km=5)
        clock.advance(timedelta(minutes=5))

        updated = service.update_alert(alert.id, "owner", query_text="car keys", radius_km=None)

        assert updated.query_text == "car keys"
        assert updated.radius_km == 10.0
        assert updated.updated_at == clock.now

    def test_toggle_twice_restores(self, service):
        alert = service.create_alert("owner", "Keys")

        assert service.toggle_alert(alert.id, "owner").active is False
        assert service.toggle_alert(alert.id, "owner").active is True

    def test_delete_alert(self, service):
        alert = service.create_alert("owner", "Keys")
        service.delete_alert(alert.id, "owner")

        with pytest.raises(NotFoundError):
            service.get_alert(alert.id, "owner")

    @pytest.mark.parametrize("operation", ["get", "update", "delete", "toggle"])
    def test_only_owner_may_access(self, service, operation):
        alert = service.create_alert("owner", "Keys")
        calls = {
            "get": lambda: service.get_alert(alert.id, "other"),
            "update": lambda: service.update_alert(alert.id, "other", title="Mine"),
            "delete": lambda: service.delete_alert(alert.id, "other"),
            "toggle": lambda: service.toggle_alert(alert.id, "other"),
        }

        with pytest.raises(AuthorizationError):
            calls[operation]()

    def test_missing_alert(self, service):
        with pytest.raises(NotFoundError):
            service.get_alert("missing", "owner")

    def test_recently_triggered(self, service, clock):
        old = service.create_alert("owner", "Old")
        recent = service.create_alert("owner", "Recent")
        with get_session() as session:
            repo = AlertRepository(session)
            repo.mark_triggered(old.id, clock.now - timedelta(days=10))
            repo.mark_triggered(recent.id, clock.now - timedelta(days=1))

        assert [a.id for a in service.recently_triggered("owner")] == [recent.id]


class TestProcessMatch:
    """Tests for process_match channel rules."""

    def test_marks_triggered_and_pushes(self, service, dispatcher, clock):
        alert = save_alert(make_alert("a1", owner_user_id="owner", channels=[NotificationChannel.PUSH]))
        listing = make_listing("l1", finder_user_id="finder")

        results = service.process_match(alert, listing)

        assert len(results) == 1
        dispatcher.send_push.assert_called_once()
        user_id, title, body, url = dispatcher.send_push.call_args.args
        assert user_id == "owner"
        assert url == "http://localhost:3000/listings/l1"
        with get_session() as session:
            assert AlertRepository(session).get_by_id("a1").last_triggered_at == clock.now

    def test_all_channels(self, service, dispatcher):
        alert = save_alert(make_alert("a1", owner_user_id="owner", channels=["email", "sms", "push"]))

        service.process_match(alert, make_listing("l1"))

        dispatcher.send_alert_email.assert_called_once()
        dispatcher.send_sms.assert_called_once()
        assert dispatcher.send_sms.call_args.args[0] == "+33611111111"
        dispatcher.send_push.assert_called_once()

    def test_email_requires_verified_address(self, service, dispatcher):
        save_user(make_user("unverified", email_verified=False))
        alert = save_alert(make_alert("a1", owner_user_id="unverified", channels=["email"]))

        assert service.process_match(alert, make_listing("l1")) == []
        dispatcher.send_alert_email.assert_not_called()

    def test_sms_requires_phone(self, service, dispatcher):
        alert = save_alert(make_alert("a1", owner_user_id="other", channels=["sms"]))

        service.process_match(alert, make_listing("l1"))

        dispatcher.send_sms.assert_not_called()

    def test_unselected_channels_are_not_used(self, service, dispatcher):
        alert = save_alert(make_alert("a1", owner_user_id="owner", channels=[]))

        assert service.process_match(alert, make_listing("l1")) == []
        dispatcher.send_push.assert_not_called()


class TestProcessNewListing:
    """Tests for the per-listing alert sweep."""

    def test_matches_and_notifies(self, service, dispatcher):
        save_alert(make_alert("near", owner_user_id="owner",
                              latitude=PARIS_CHATELET[0], longitude=PARIS_CHATELET[1], radius_km=1))
        save_alert(make_alert("wrong-category", owner_user_id="other", category="electronics"))
        save_alert(make_alert("inactive", owner_user_id="other", active=False))
        save_listing(make_listing("l1", latitude=PARIS_LOUVRE[0], longitude=PARIS_LOUVRE[1]))

        result = service.process_new_listing("l1")

        assert result.alerts_evaluated == 2
        assert result.alerts_matched == 1
        assert result.alerts_notified == 1
        assert not result.has_errors
        assert dispatcher.send_push.call_args.args[0] == "owner"

    def test_skips_inactive_listing(self, service, dispatcher):
        save_alert(make_alert("a1", owner_user_id="owner"))
        save_listing(make_listing("l1", status=ListingStatus.RESOLVED))

        result = service.process_new_listing("l1")

        assert result.alerts_evaluated == 0
        dispatcher.send_push.assert_not_called()

    def test_missing_listing(self, service):
        assert service.process_new_listing("missing").alerts_evaluated == 0

    def test_one_failing_alert_does_not_stop_others(self, service, dispatcher):
        save_alert(make_alert("a1", owner_user_id="owner"))
        save_alert(make_alert("a2", owner_user_id="other"))
        save_listing(make_listing("l1"))
        original = service.process_match

        def flaky(alert, listing):
            if alert.id == "a1":
                raise RuntimeError("boom")
            return original(alert, listing)

        with patch.object(service, "process_match", side_effect=flaky):
            result = service.process_new_listing("l1")

        assert result.alerts_matched == 2
        assert result.alerts_notified == 1
        assert result.errors == ["a1: boom"]

    def test_alert_failing_evaluation_does_not_stop_others(self, service, dispatcher):
        save_alert(make_alert("a1", owner_user_id="owner"))
        save_alert(make_alert("a2", owner_user_id="other"))
        save_listing(make_listing("l1"))
        original = service.matcher.evaluate

        def broken_row(listing, alert):
            if alert.id == "a1":
                raise RuntimeError("bad alert row")
            return original(listing, alert)

        with patch.object(service.matcher, "evaluate", side_effect=broken_row):
            result = service.process_new_listing("l1")

        assert result.alerts_evaluated == 2
        assert result.alerts_matched == 1
        assert result.alerts_notified == 1
        assert result.errors == ["a1: bad alert row"]
        assert dispatcher.send_push.call_args.args[0] == "other"
