"""Record factories shared by the grid tests."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from twin_optimiser.models import Booking, LocationConfig, Task

START = date(2024, 1, 1)


def booking_row(
    booking_id: str = "1",
    site_id: str = "101",
    site_name: str = "Room 101",
    arrival: str = "2024-01-01 16:00:00",
    departure: str = "2024-01-04 10:00:00",
    **extra: Any,
) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "booking_id": booking_id,
        "booking_reference_id": f"REF{booking_id}",
        "site_id": site_id,
        "site_name": site_name,
        "booking_arrival": arrival,
        "booking_departure": departure,
        "booking_locked": "0",
    }
    row.update(extra)
    return row


def booking(**kwargs: Any) -> Booking:
    return Booking.model_validate(booking_row(**kwargs))


def task_row(
    task_id: str = "t1",
    site_id: str = "101",
    site_name: str = "Room 101",
    when: Optional[str] = None,
    period: Optional[Tuple[str, str]] = None,
    type_id: str = "5",
    occupy: Any = 1,
    **extra: Any,
) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "task_id": task_id,
        "task_type_id": type_id,
        "task_description": f"Task {task_id}",
        "task_location_occupy": occupy,
        "task_location_id": site_id,
        "task_location_name": site_name,
    }
    if when is not None:
        row["task_when_date"] = when
    if period is not None:
        row["task_period_from"], row["task_period_to"] = period
    row.update(extra)
    return row


def task(**kwargs: Any) -> Task:
    return Task.model_validate(task_row(**kwargs))


def categories(*entries: Tuple[str, Sequence[str]], excluded: Sequence[str] = ()) -> List[Dict[str, Any]]:
    """Build a ``categories_sort`` list from ``(category_id, [site ids])`` pairs."""
    return [
        {
            "id": category_id,
            "name": f"Category {category_id}",
            "excluded": category_id in excluded,
            "sites": [{"site_id": site_id} for site_id in site_ids],
        }
        for category_id, site_ids in entries
    ]


def location(**overrides: Any) -> LocationConfig:
    values: Dict[str, Any] = {
        "enabled": True,
        "task_types": [{"id": "5", "name": "Deep Clean", "color": "#8e24aa", "icon": "cleaning_services"}],
    }
    values.update(overrides)
    return LocationConfig.model_validate(values)
