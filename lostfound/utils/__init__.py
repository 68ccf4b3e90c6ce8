"""Utility functions for time handling."""

from .timestamps import (
    end_of_day,
    ensure_utc,
    format_date,
    format_timestamp,
    hours_from,
    parse_date,
    parse_iso_datetime,
    parse_timestamp,
    start_of_day,
    utc_now,
)

__all__ = [
    "utc_now",
    "ensure_utc",
    "start_of_day",
    "end_of_day",
    "hours_from",
    "parse_iso_datetime",
    "format_timestamp",
    "parse_timestamp",
    "format_date",
    "parse_date",
]
