"""Data models for the alert matching engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Predicate(str, Enum):
    """Alert criteria, in evaluation order."""

    CATEGORY = "category"
    KEYWORD = "keyword"
    LOCATION = "location"
    RADIUS = "radius"
    DATE_RANGE = "date_range"


@dataclass
class MatchResult:
    """Outcome of evaluating one listing against one alert.

    Attributes:
        alert_id: Alert that was evaluated
        is_match: True if every criterion set on the alert held
        failed_predicate: First criterion that rejected the listing, if any
        distance_km: Listing distance from the alert centre when both have coordinates
    """

    alert_id: str
    is_match: bool
    failed_predicate: Optional[Predicate] = None
    distance_km: Optional[float] = None

    @property
    def reason(self) -> str:
        if self.is_match:
            return "matched"
        return f"rejected_by_{self.failed_predicate.value}" if self.failed_predicate else "rejected"


@dataclass
class MatchSweepResult:
    """Counters for one listing's pass over the active alerts.

    Attributes:
        listing_id: Listing that was matched
        alerts_evaluated: Active alerts in the snapshot
        alerts_matched: Alerts whose criteria all held
        alerts_notified: Matched alerts processed without error
        errors: Per-alert error messages (processing continued past each)
        duration_seconds: Wall-clock duration of the sweep
    """

    listing_id: str
    alerts_evaluated: int = 0
    alerts_matched: int = 0
    alerts_notified: int = 0
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
