"""Saved-search alerts and their notification sweep.

When a listing is created, ``process_new_listing`` runs in the background:
it matches the listing against a snapshot of every active alert and notifies
each matching alert's owner on the channels the alert selects. A failure on
one alert is logged and does not stop the others.
"""

import time
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from lostfound.config.models import AlertsConfig
from lostfound.domain.models import (
    Alert,
    Listing,
    ListingStatus,
    NotificationChannel,
    User,
)
from lostfound.geocoding import GeocodingClient
from lostfound.logging import get_logger, log_context
from lostfound.matching import AlertMatcher, MatchSweepResult
from lostfound.notifications import DispatchResult, NotificationDispatcher
from lostfound.notifications.payloads import alert_match_push, alert_match_sms, build_listing_url
from lostfound.persistence import (
    AlertRepository,
    ListingRepository,
    UserRepository,
    get_session,
)
from lostfound.utils.timestamps import utc_now

from .exceptions import AuthorizationError, NotFoundError, ValidationError, build_model
from .users import require_active_user

logger = get_logger(__name__, component="alerts")

# Fields a client may set on create/update
ALERT_CRITERIA_FIELDS = (
    "title",
    "query_text",
    "category",
    "location_text",
    "latitude",
    "longitude",
    "radius_km",
    "date_from",
    "date_to",
    "channels",
)


class AlertService:
    """Alert CRUD restricted to the owner, plus listing matching and notification."""

    def __init__(
        self,
        config: AlertsConfig,
        dispatcher: NotificationDispatcher,
        matcher: Optional[AlertMatcher] = None,
        geocoder: Optional[GeocodingClient] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.dispatcher = dispatcher
        self.matcher = matcher or AlertMatcher(default_radius_km=config.default_radius_km)
        self.geocoder = geocoder
        self.clock = clock

    # CRUD

    def create_alert(self, owner_user_id: str, title: str, **criteria) -> Alert:
        """Create an active alert for ``owner_user_id``.

        Keyword arguments are the optional criteria in ``ALERT_CRITERIA_FIELDS``.

        Raises:
            NotFoundError: If the owner does not exist
            ValidationError: If criteria are inconsistent or the owner has too many alerts
        """
        now = self.clock()
        data = {
            "id": str(uuid.uuid4()),
            "owner_user_id": owner_user_id,
            "title": title,
            "radius_km": self.config.default_radius_km,
            "created_at": now,
            "updated_at": now,
            **_criteria_only(criteria),
        }
        alert = self._prepare(build_model(Alert, data))

        with get_session() as session:
            require_active_user(UserRepository(session), owner_user_id)
            repo = AlertRepository(session)
            if repo.count_for_owner(owner_user_id) >= self.config.max_alerts_per_user:
                raise ValidationError(
                    f"Alert limit reached ({self.config.max_alerts_per_user} per user)"
                )
            alert = repo.create(alert)

        logger.info(
            f"Alert created: {alert.id}",
            extra={"event": "alerts.created", "alert_id": alert.id, "user_id": owner_user_id},
        )
        return alert

    def list_alerts(self, owner_user_id: str, active: Optional[bool] = None) -> List[Alert]:
        """Alerts of a user, newest first, optionally filtered on the active flag."""
        with get_session() as session:
            alerts = AlertRepository(session).get_by_owner(owner_user_id)
        if active is not None:
            alerts = [alert for alert in alerts if alert.active == active]
        return alerts

    def get_alert(self, alert_id: str, user_id: str) -> Alert:
        with get_session() as session:
            return self._load_owned(AlertRepository(session), alert_id, user_id)

    def update_alert(self, alert_id: str, user_id: str, **changes) -> Alert:
        """Replace the criteria of an alert.

        Raises:
            NotFoundError: If the alert does not exist
            AuthorizationError: If ``user_id`` does not own it
            ValidationError: If the new criteria are inconsistent
        """
        with get_session() as session:
            repo = AlertRepository(session)
            alert = self._load_owned(repo, alert_id, user_id)

            data = {**alert.model_dump(), **_criteria_only(changes), "updated_at": self.clock()}
            if "radius_km" in changes and changes["radius_km"] is None:
                data["radius_km"] = self.config.default_radius_km
            updated = self._prepare(build_model(Alert, data))
            return repo.update(updated)

    def delete_alert(self, alert_id: str, user_id: str) -> None:
        with get_session() as session:
            repo = AlertRepository(session)
            self._load_owned(repo, alert_id, user_id)
            repo.delete(alert_id)

        logger.info(
            f"Alert deleted: {alert_id}",
            extra={"event": "alerts.deleted", "alert_id": alert_id, "user_id": user_id},
        )

    def toggle_alert(self, alert_id: str, user_id: str) -> Alert:
        """Flip the active flag of an alert."""
        with get_session() as session:
            repo = AlertRepository(session)
            alert = self._load_owned(repo, alert_id, user_id)
            toggled = alert.model_copy(update={"active": not alert.active, "updated_at": self.clock()})
            return repo.update(toggled)

    def count_active(self, user_id: str) -> int:
        with get_session() as session:
            return AlertRepository(session).count_active_for_owner(user_id)

    def recently_triggered(self, user_id: str, days: int = 7) -> List[Alert]:
        """Alerts of a user that fired within the last ``days`` days."""
        since = self.clock() - timedelta(days=days)
        with get_session() as session:
            return AlertRepository(session).get_triggered_since(user_id, since)

    # Matching

    def process_new_listing(self, listing_id: str) -> MatchSweepResult:
        """Match a freshly created listing against all active alerts.

        Never raises for a single alert: per-alert errors are logged and
        counted in the result.
        """
        started = time.monotonic()
        result = MatchSweepResult(listing_id=listing_id)

        with log_context(listing_id=listing_id):
            with get_session() as session:
                listing = ListingRepository(session).get_by_id(listing_id)
                if listing is None or listing.status != ListingStatus.ACTIVE:
                    logger.info(
                        "Listing not active, skipping alert sweep",
                        extra={"event": "alerts.sweep.skipped"},
                    )
                    return result
                snapshot = AlertRepository(session).get_active()

            result.alerts_evaluated = len(snapshot)

            for alert in snapshot:
                try:
                    if not self.matcher.find_matches(listing, [alert]):
                        continue
                    result.alerts_matched += 1
                    self.process_match(alert, listing)
                    result.alerts_notified += 1
                except Exception as e:
                    result.errors.append(f"{alert.id}: {e}")
                    logger.error(
                        f"Failed to process alert {alert.id}: {e}",
                        exc_info=True,
                        extra={"event": "alerts.match.failed", "alert_id": alert.id},
                    )

            result.duration_seconds = time.monotonic() - started
            logger.info(
                f"Alert sweep completed: {result.alerts_matched}/{result.alerts_evaluated} matched",
                extra={
                    "event": "alerts.sweep.completed",
                    "alerts_evaluated": result.alerts_evaluated,
                    "alerts_matched": result.alerts_matched,
                    "alerts_notified": result.alerts_notified,
                    "errors": len(result.errors),
                    "duration_seconds": round(result.duration_seconds, 3),
                },
            )

        return result

    def process_match(self, alert: Alert, listing: Listing) -> List[DispatchResult]:
        """Record that ``alert`` fired and notify its owner.

        ``last_triggered_at`` is committed before any notification goes out.
        Channel rules: email only to a verified address, SMS only when the
        owner has a phone number, push always.

        Raises:
            NotFoundError: If the alert owner no longer exists
        """
        now = self.clock()
        with get_session() as session:
            owner = UserRepository(session).get_by_id(alert.owner_user_id)
            if owner is None:
                raise NotFoundError("User", alert.owner_user_id)
            AlertRepository(session).mark_triggered(alert.id, now)

        with log_context(alert_id=alert.id, user_id=owner.id):
            logger.info(
                f"Alert {alert.id} matched listing {listing.id}",
                extra={"event": "alerts.match.found", "channels": [c.value for c in alert.channels]},
            )
            return self._notify(owner, alert, listing)

    def _notify(self, owner: User, alert: Alert, listing: Listing) -> List[DispatchResult]:
        listing_url = build_listing_url(self.config.public_base_url, listing.id)
        results = []

        if NotificationChannel.EMAIL in alert.channels and owner.email_verified:
            distance_km = self.matcher.evaluate(listing, alert).distance_km
            results.append(
                self.dispatcher.send_alert_email(owner, alert, listing, listing_url, distance_km)
            )

        if NotificationChannel.SMS in alert.channels and owner.phone:
            results.append(self.dispatcher.send_sms(owner.phone, alert_match_sms(alert, listing, listing_url)))

        if NotificationChannel.PUSH in alert.channels:
            push = alert_match_push(alert, listing)
            results.append(self.dispatcher.send_push(owner.id, push["title"], push["body"], listing_url))

        return results

    # Helpers

    def _prepare(self, alert: Alert) -> Alert:
        """Check cross-field rules and fill coordinates from the location text."""
        if alert.radius_km is not None and alert.radius_km > self.config.max_radius_km:
            raise ValidationError(f"radius_km cannot exceed {self.config.max_radius_km:g} km")
        if alert.date_from and alert.date_to and alert.date_from > alert.date_to:
            raise ValidationError("date_from must not be after date_to")
        if (alert.latitude is None) != (alert.longitude is None):
            raise ValidationError("latitude and longitude must be given together")

        if not alert.has_coordinates and alert.location_text and self.geocoder is not None:
            found = self.geocoder.geocode(alert.location_text)
            if found is not None:
                alert = alert.model_copy(update={"latitude": found.latitude, "longitude": found.longitude})
        return alert

    @staticmethod
    def _load_owned(repo: AlertRepository, alert_id: str, user_id: str) -> Alert:
        alert = repo.get_by_id(alert_id)
        if alert is None:
            raise NotFoundError("Alert", alert_id)
        if alert.owner_user_id != user_id:
            raise AuthorizationError("You are not allowed to access this alert")
        return alert


def _criteria_only(values: dict) -> dict:
    unknown = set(values) - set(ALERT_CRITERIA_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown alert fields: {', '.join(sorted(unknown))}")
    return dict(values)
