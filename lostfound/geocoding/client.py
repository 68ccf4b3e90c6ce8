"""Free-text location to coordinates lookup against a Nominatim-style API."""

from dataclasses import dataclass
from typing import Optional

import requests

from lostfound.config.models import GeocodingConfig
from lostfound.logging import get_logger

logger = get_logger(__name__, component="geocoding")


@dataclass
class GeocodingResult:
    latitude: float
    longitude: float
    display_name: Optional[str] = None


class GeocodingClient:
    """Resolves addresses through ``GET {base_url}/search``.

    Lookups are best effort: every failure is logged and reported as None so
    that listing and alert creation never depend on the geocoder.
    """

    def __init__(self, config: GeocodingConfig, session: Optional[requests.Session] = None):
        self.config = config
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": config.user_agent})

    @property
    def is_enabled(self) -> bool:
        return self.config.enabled

    def geocode(self, address: Optional[str]) -> Optional[GeocodingResult]:
        """Return the best match for ``address``, or None."""
        if not self.config.enabled or not address or not address.strip():
            return None

        url = f"{self.config.base_url.rstrip('/')}/search"
        params = {"q": address.strip(), "format": "json", "limit": 1}

        try:
            response = self._session.get(url, params=params, timeout=self.config.timeout)
            response.raise_for_status()
            results = response.json()
        except requests.exceptions.RequestException as e:
            logger.warning(
                f"Geocoding request failed: {e}",
                extra={"event": "geocoding.request.failed", "error_type": type(e).__name__},
            )
            return None
        except ValueError as e:
            logger.warning(
                f"Geocoding response was not JSON: {e}",
                extra={"event": "geocoding.response.invalid"},
            )
            return None

        if not results:
            logger.info("No geocoding result", extra={"event": "geocoding.no_result", "address": address})
            return None

        try:
            first = results[0]
            return GeocodingResult(
                latitude=float(first["lat"]),
                longitude=float(first["lon"]),
                display_name=first.get("display_name"),
            )
        except (KeyError, TypeError, ValueError, IndexError) as e:
            logger.warning(
                f"Unexpected geocoding payload: {e}",
                extra={"event": "geocoding.response.invalid"},
            )
            return None
