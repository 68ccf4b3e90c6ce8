"""Alert matching for newly posted listings.

This module provides:
- AlertMatcher: pure evaluation of listings against saved-search alerts
- MatchResult / MatchSweepResult: per-alert outcome and per-listing counters
- haversine_km: great-circle distance used by the radius criterion
"""

from .engine import AlertMatcher
from .geo import EARTH_RADIUS_KM, haversine_km
from .models import MatchResult, MatchSweepResult, Predicate

__all__ = [
    "AlertMatcher",
    "MatchResult",
    "MatchSweepResult",
    "Predicate",
    "haversine_km",
    "EARTH_RADIUS_KM",
]
