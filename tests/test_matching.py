"""Unit tests for the alert matching engine.

Covers each criterion in isolation, the order in which criteria are
reported, and the geo-radius and whole-day date boundaries.
"""

import logging
from datetime import date, datetime, timezone
from unittest.mock import Mock

import pytest

from lostfound.domain.models import ListingCategory
from lostfound.matching import AlertMatcher, MatchResult, MatchSweepResult, Predicate, haversine_km
from lostfound.utils.timestamps import utc_now

from tests.helpers.factories import PARIS_CHATELET, PARIS_LOUVRE, make_alert, make_listing


@pytest.fixture
def matcher():
    return AlertMatcher(default_radius_km=10.0)


class TestHaversine:
    """Tests for great-circle distance."""

    def test_zero_distance(self):
        assert haversine_km(48.85, 2.35, 48.85, 2.35) == 0

    def test_paris_to_london(self):
        """Test a known distance within a kilometre."""
        distance = haversine_km(48.8566, 2.3522, 51.5074, -0.1278)
        assert 343 < distance < 345

    def test_symmetry(self):
        a = haversine_km(*PARIS_CHATELET, *PARIS_LOUVRE)
        b = haversine_km(*PARIS_LOUVRE, *PARIS_CHATELET)
        assert a == pytest.approx(b)


class TestCategoryPredicate:
    """Tests for the category criterion."""

    def test_different_category_is_excluded(self, matcher):
        """Test an alert on 'electronics' rejects a 'keys' listing."""
        listing = make_listing(category=ListingCategory.KEYS)
        alert = make_alert(category="electronics")

        result = matcher.evaluate(listing, alert)

        assert not result.is_match
        assert result.failed_predicate == Predicate.CATEGORY

    def test_category_is_case_insensitive(self, matcher):
        listing = make_listing(category=ListingCategory.KEYS)
        alert = make_alert(category="KEYS")

        assert matcher.evaluate(listing, alert).is_match

    def test_unset_category_matches_anything(self, matcher):
        assert matcher.evaluate(make_listing(), make_alert(category=None)).is_match


class TestKeywordPredicate:
    """Tests for the query text criterion."""

    def test_matches_title(self, matcher):
        assert matcher.evaluate(make_listing(), make_alert(query_text="WALLET")).is_match

    def test_matches_description(self, matcher):
        assert matcher.evaluate(make_listing(), make_alert(query_text="library card")).is_match

    def test_missing_keyword_is_excluded(self, matcher):
        result = matcher.evaluate(make_listing(), make_alert(query_text="umbrella"))

        assert result.failed_predicate == Predicate.KEYWORD

    def test_blank_keyword_is_unset(self, matcher):
        """Test whitespace-only query text does not restrict matching."""
        alert = make_alert(query_text="   ")
        assert alert.query_text is None
        assert matcher.evaluate(make_listing(), alert).is_match


    def test_keyword_is_not_trimmed(self, matcher):
        """Test surrounding spaces in the query are part of the searched text."""
        alert = make_alert(query_text="wallet ")

        result = matcher.evaluate(make_listing(), alert)

        assert result.failed_predicate == Predicate.KEYWORD


class TestLocationPredicate:
    """Tests for the location text criterion."""

    def test_substring_match(self, matcher):
        assert matcher.evaluate(make_listing(), make_alert(location_text="paris")).is_match

    def test_non_matching_location(self, matcher):
        result = matcher.evaluate(make_listing(), make_alert(location_text="Lyon"))

        assert result.failed_predicate == Predicate.LOCATION


class TestRadiusPredicate:
    """Tests for the geo-radius criterion."""

    def _listing_and_distance(self):
        listing = make_listing(latitude=PARIS_LOUVRE[0], longitude=PARIS_LOUVRE[1])
        distance = haversine_km(*PARIS_CHATELET, *PARIS_LOUVRE)
        return listing, distance

    def test_listing_beyond_radius_is_excluded(self, matcher):
        """Test a listing at radius + epsilon is excluded."""
        listing, distance = self._listing_and_distance()
        alert = make_alert(
            latitude=PARIS_CHATELET[0], longitude=PARIS_CHATELET[1], radius_km=distance - 0.001
        )

        result = matcher.evaluate(listing, alert)

        assert not result.is_match
        assert result.failed_predicate == Predicate.RADIUS
        assert result.distance_km == pytest.approx(distance)

    def test_listing_within_radius_is_included(self, matcher):
        """Test a listing at radius - epsilon is included."""
        listing, distance = self._listing_and_distance()
        alert = make_alert(
            latitude=PARIS_CHATELET[0], longitude=PARIS_CHATELET[1], radius_km=distance + 0.001
        )

        result = matcher.evaluate(listing, alert)

        assert result.is_match
        assert result.distance_km == pytest.approx(distance)

    def test_skipped_when_listing_has_no_coordinates(self, matcher):
        """Test radius is ignored when only the alert has coordinates."""
        alert = make_alert(latitude=45.0, longitude=5.0, radius_km=1.0)

        result = matcher.evaluate(make_listing(), alert)

        assert result.is_match
        assert result.distance_km is None

    def test_skipped_when_alert_has_no_coordinates(self, matcher):
        listing = make_listing(latitude=45.0, longitude=5.0)

        assert matcher.evaluate(listing, make_alert(radius_km=1.0)).is_match

    def test_default_radius_applies_when_unset(self):
        """Test the matcher's default radius is used for alerts without one."""
        matcher = AlertMatcher(default_radius_km=0.1)
        listing, _ = self._listing_and_distance()
        alert = make_alert(latitude=PARIS_CHATELET[0], longitude=PARIS_CHATELET[1], radius_km=None)

        assert matcher.evaluate(listing, alert).failed_predicate == Predicate.RADIUS


class TestDatePredicate:
    """Tests for the found-at date range criterion."""

    def test_first_second_of_day_is_included(self, matcher):
        """Test 2024-01-01T00:00:00 matches [2024-01-01, 2024-01-01]."""
        listing = make_listing(found_at=datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc))
        alert = make_alert(date_from=date(2024, 1, 1), date_to=date(2024, 1, 1))

        assert matcher.evaluate(listing, alert).is_match

    def test_last_second_of_previous_day_is_excluded(self, matcher):
        """Test 2023-12-31T23:59:59 does not match [2024-01-01, 2024-01-01]."""
        listing = make_listing(found_at=datetime(2023, 12, 31, 23, 59, 59, tzinfo=timezone.utc))
        alert = make_alert(date_from=date(2024, 1, 1), date_to=date(2024, 1, 1))

        result = matcher.evaluate(listing, alert)

        assert not result.is_match
        assert result.failed_predicate == Predicate.DATE_RANGE

    def test_last_second_of_day_is_included(self, matcher):
        listing = make_listing(found_at=datetime(2024, 1, 1, 23, 59, 59, tzinfo=timezone.utc))
        alert = make_alert(date_to=date(2024, 1, 1))

        assert matcher.evaluate(listing, alert).is_match

    def test_next_day_is_excluded(self, matcher):
        listing = make_listing(found_at=datetime(2024, 1, 2, 0, 0, 0, tzinfo=timezone.utc))
        alert = make_alert(date_to=date(2024, 1, 1))

        assert matcher.evaluate(listing, alert).failed_predicate == Predicate.DATE_RANGE


class TestFindMatches:
    """Tests for find_matches."""

    def test_returns_matching_alerts_in_order(self, matcher):
        listing = make_listing(category=ListingCategory.KEYS)
        alerts = [
            make_alert("a1", category="keys"),
            make_alert("a2", category="electronics"),
            make_alert("a3"),
        ]

        matches = matcher.find_matches(listing, alerts)

        assert [alert.id for alert in matches] == ["a1", "a3"]

    def test_nearby_electronics_listing_found_today(self, matcher):
        """Test an iPhone found 0.3 km away today triggers a 5 km electronics alert."""
        listing = make_listing(
            title="iPhone found",
            category=ListingCategory.ELECTRONICS,
            latitude=48.852,
            longitude=2.352,
            found_at=utc_now(),
        )
        alert = make_alert(
            "nearby", category="electronics", latitude=48.85, longitude=2.35, radius_km=5
        )

        assert matcher.find_matches(listing, [alert]) == [alert]

    def test_empty_alerts(self, matcher):
        assert matcher.find_matches(make_listing(), []) == []

    def test_rejections_are_logged_at_debug(self):
        logger = Mock(spec=logging.Logger)
        matcher = AlertMatcher(logger_instance=logger)

        matcher.find_matches(make_listing(), [make_alert(query_text="umbrella")])

        logger.debug.assert_called_once()
        assert logger.debug.call_args.kwargs["extra"]["predicate"] == "keyword"

    def test_first_failing_predicate_is_reported(self, matcher):
        """Test category is reported before keyword when both fail."""
        alert = make_alert(category="electronics", query_text="umbrella")

        assert matcher.evaluate(make_listing(), alert).failed_predicate == Predicate.CATEGORY


class TestResultModels:
    def test_reason(self):
        assert MatchResult(alert_id="a", is_match=True).reason == "matched"
        rejected = MatchResult(alert_id="a", is_match=False, failed_predicate=Predicate.RADIUS)
        assert rejected.reason == "rejected_by_radius"

    def test_sweep_result_errors(self):
        result = MatchSweepResult(listing_id="l")
        assert not result.has_errors
        result.errors.append("a1: boom")
        assert result.has_errors
