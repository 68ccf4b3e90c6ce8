"""Optional address geocoding for listings and alerts."""

from .client import GeocodingClient, GeocodingResult

__all__ = ["GeocodingClient", "GeocodingResult"]
