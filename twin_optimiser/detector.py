"""Twin bed detection.

A booking is classified by three layers, tried in order, first match wins:

1. the configured custom fields (``booking_custom_fields``) contain one of
   the configured values -> ``twin``;
2. the legacy bed type field reads like a twin ("twin", "2 x single") ->
   ``twin``;
3. a booking note mentions one of the configured search terms ->
   ``potential_twin``.

Anything else is ``normal``. A layer with nothing configured never matches.
All comparisons are case-insensitive substring matches.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from .models import NORMAL, POTENTIAL_TWIN, TWIN, Booking, BookingType, LocationTwinSettings

logger = logging.getLogger(__name__)

LEGACY_TWIN_PATTERN = re.compile(r"2\s*x?\s*single", re.IGNORECASE)


def split_terms(raw: str) -> List[str]:
    """Split a comma separated setting into trimmed, non-empty entries."""
    if not raw:
        return []
    return [term.strip() for term in raw.split(",") if term.strip()]


def get_bed_type(booking: Booking, field_label: str) -> str:
    """Return the value of the legacy custom field labelled ``field_label``."""
    for field in booking.custom_fields:
        if field.label == field_label:
            return field.value
    return ""


class TwinDetector:
    """Classifies bookings for one location."""

    def __init__(self, settings: LocationTwinSettings) -> None:
        self.field_label = settings.custom_field
        self.field_names = split_terms(settings.custom_field_names)
        self.field_values = [value.lower() for value in split_terms(settings.custom_field_values)]
        self.note_terms = [term.lower() for term in split_terms(settings.notes_search_terms)]

    def bed_type(self, booking: Booking) -> str:
        return get_bed_type(booking, self.field_label)

    def classify(self, booking: Booking, bed_type: Optional[str] = None) -> BookingType:
        if bed_type is None:
            bed_type = self.bed_type(booking)
        if self._custom_field_match(booking):
            return TWIN
        if self._legacy_match(bed_type):
            return TWIN
        if self._notes_match(booking):
            return POTENTIAL_TWIN
        return NORMAL

    def _custom_field_match(self, booking: Booking) -> bool:
        if not self.field_names or not self.field_values:
            return False
        for field_name in self.field_names:
            value = next((f.value for f in booking.booking_custom_fields if f.name == field_name), "")
            if not value:
                continue
            value = value.lower()
            for search in self.field_values:
                if search in value:
                    logger.debug("Booking %s: field %r matches %r", booking.booking_id, field_name, search)
                    return True
        return False

    @staticmethod
    def _legacy_match(bed_type: str) -> bool:
        if not bed_type:
            return False
        return "twin" in bed_type.lower() or LEGACY_TWIN_PATTERN.search(bed_type) is not None

    def _notes_match(self, booking: Booking) -> bool:
        if not self.note_terms:
            return False
        for note in booking.notes:
            if not note.content:
                continue
            content = note.content.lower()
            if any(term in content for term in self.note_terms):
                return True
        return False
