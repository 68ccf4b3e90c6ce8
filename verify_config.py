#!/usr/bin/env python3
"""Verify that config.example.yaml parses and validates against the config models."""

import sys
from pathlib import Path

import yaml

from lostfound.config import ConfigurationError, parse_app_config


def verify_config_structure(config_file: Path = Path("config.example.yaml")) -> bool:
    """Load the example config and print a short summary of it."""
    if not config_file.exists():
        print(f"✗ {config_file} not found")
        return False

    try:
        with open(config_file, "r") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        print(f"✗ Failed to parse {config_file}: {e}")
        return False

    try:
        config = parse_app_config(raw)
    except ConfigurationError as e:
        print(f"✗ {config_file} validation failed:")
        print(f"  {e}")
        return False

    print(f"✓ {config_file} is valid")
    print(f"  - Default alert radius: {config.alerts.default_radius_km:g} km "
          f"(max {config.alerts.max_radius_km:g} km)")
    print(f"  - Confirmation codes: {config.confirmations.code_length} characters, "
          f"valid {config.confirmations.expiry_hours}h, "
          f"purged every {config.confirmations.cleanup_interval}")
    print(f"  - SMS enabled: {config.notifications.sms.enabled}")
    print(f"  - Push enabled: {config.notifications.push.enabled}")
    print(f"  - Geocoding enabled: {config.geocoding.enabled}")
    return True


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("config.example.yaml")
    sys.exit(0 if verify_config_structure(path) else 1)
