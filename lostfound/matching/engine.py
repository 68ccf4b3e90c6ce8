"""Alert matching engine.

Evaluates a listing against saved-search alerts. Every criterion left unset
on an alert is skipped; a listing matches when all the set ones hold:

1. category equals the listing category (case-insensitive)
2. query text appears in the title or description (case-insensitive)
3. alert location text appears in the listing location text (case-insensitive)
4. when both sides have coordinates, distance is within the alert radius
5. found_at lies between date_from 00:00:00 and date_to 23:59:59
"""

import logging
from typing import Iterable, List, Optional

from lostfound.domain.models import DEFAULT_RADIUS_KM, Alert, Listing
from lostfound.utils.timestamps import end_of_day, ensure_utc, start_of_day

from .geo import haversine_km
from .models import MatchResult, Predicate

logger = logging.getLogger(__name__)


class AlertMatcher:
    """Pure matcher between listings and alerts; it performs no I/O."""

    def __init__(
        self,
        default_radius_km: float = DEFAULT_RADIUS_KM,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize AlertMatcher.

        Args:
            default_radius_km: Radius used when an alert carries coordinates but no radius
            logger_instance: Optional logger instance (defaults to module logger)
        """
        self.default_radius_km = default_radius_km
        self.logger = logger_instance or logger

    def find_matches(self, listing: Listing, active_alerts: Iterable[Alert]) -> List[Alert]:
        """Return the alerts whose criteria all hold for ``listing``, in input order."""
        matches = []
        for alert in active_alerts:
            result = self.evaluate(listing, alert)
            if result.is_match:
                matches.append(alert)
            else:
                self.logger.debug(
                    f"Alert {alert.id} rejected listing {listing.id}",
                    extra={
                        "event": "alerts.match.rejected",
                        "alert_id": alert.id,
                        "listing_id": listing.id,
                        "predicate": result.failed_predicate.value,
                    },
                )
        return matches

    def evaluate(self, listing: Listing, alert: Alert) -> MatchResult:
        """Evaluate one alert and report the first criterion that failed."""
        if alert.category and alert.category.lower() != _category_value(listing).lower():
            return MatchResult(alert_id=alert.id, is_match=False, failed_predicate=Predicate.CATEGORY)

        if alert.query_text:
            needle = alert.query_text.lower()
            if needle not in listing.title.lower() and needle not in (listing.description or "").lower():
                return MatchResult(alert_id=alert.id, is_match=False, failed_predicate=Predicate.KEYWORD)

        if alert.location_text and alert.location_text.lower() not in (listing.location_text or "").lower():
            return MatchResult(alert_id=alert.id, is_match=False, failed_predicate=Predicate.LOCATION)

        distance_km = None
        if alert.has_coordinates and listing.has_coordinates:
            distance_km = haversine_km(
                alert.latitude, alert.longitude, listing.latitude, listing.longitude
            )
            radius = alert.radius_km if alert.radius_km is not None else self.default_radius_km
            if distance_km > radius:
                return MatchResult(
                    alert_id=alert.id,
                    is_match=False,
                    failed_predicate=Predicate.RADIUS,
                    distance_km=distance_km,
                )

        found_at = ensure_utc(listing.found_at)
        if alert.date_from and found_at < start_of_day(alert.date_from):
            return MatchResult(
                alert_id=alert.id, is_match=False, failed_predicate=Predicate.DATE_RANGE,
                distance_km=distance_km,
            )
        if alert.date_to and found_at > end_of_day(alert.date_to):
            return MatchResult(
                alert_id=alert.id, is_match=False, failed_predicate=Predicate.DATE_RANGE,
                distance_km=distance_km,
            )

        return MatchResult(alert_id=alert.id, is_match=True, distance_km=distance_km)


def _category_value(listing: Listing) -> str:
    category = listing.category
    return category.value if hasattr(category, "value") else str(category)
