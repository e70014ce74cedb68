"""Per-location configuration.

Twin detection rules, colors, category ordering and task types are stored
per location in a JSON document::

    {"locations": {"12": {"enabled": true, "custom_field": "Bed Type", ...}}}

The file is read each time a grid is requested so edits take effect without
a restart. A missing file simply means no location is configured.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import ValidationError

from .models import LocationConfig

logger = logging.getLogger(__name__)


class LocationConfigError(ValueError):
    """Raised when the location configuration file cannot be used."""


def load_locations(path: Union[str, Path]) -> Dict[str, LocationConfig]:
    """Load every configured location, keyed by location id."""
    path = Path(path)
    if not path.exists():
        logger.info("Location configuration %s not found; no locations configured", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as fh:
            document = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise LocationConfigError(f"Cannot read {path}: {exc}") from exc

    entries = document.get("locations", {}) if isinstance(document, dict) else None
    if not isinstance(entries, dict):
        raise LocationConfigError(f"{path}: expected a 'locations' object")

    locations: Dict[str, LocationConfig] = {}
    for location_id, entry in entries.items():
        try:
            locations[str(location_id)] = LocationConfig.model_validate(entry)
        except ValidationError as exc:
            raise LocationConfigError(f"{path}: invalid settings for location {location_id}: {exc}") from exc
    return locations


def get_location(path: Union[str, Path], location_id: str) -> Optional[LocationConfig]:
    """Return the configuration of one location, or ``None`` if it has none."""
    return load_locations(path).get(str(location_id))
