"""Pydantic data models for the booking grid.

Input records mirror the NewBook API payloads (field names are kept as the
API sends them) so raw JSON can be validated directly. Configuration models
describe what is stored per location. Output models describe the grid handed
to the rendering layer; a grid cell is either a ``BookingCell`` or a
``TaskCell``, and a vacant date simply has no entry.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator

from .dates import parse_date, parse_timestamp

logger = logging.getLogger(__name__)

TWIN = "twin"
POTENTIAL_TWIN = "potential_twin"
NORMAL = "normal"
BookingType = Literal["twin", "potential_twin", "normal"]

UNCATEGORIZED = "Uncategorized"

DEFAULT_LEGACY_FIELD = "Bed Type"
DEFAULT_NORMAL_COLOR = "#4caf50"
DEFAULT_TWIN_COLOR = "#2196f3"
DEFAULT_POTENTIAL_TWIN_COLOR = "#ff9800"
DEFAULT_TASK_COLOR = "#9e9e9e"
DEFAULT_TASK_ICON = "task"
DEFAULT_TASK_NAME = "Task"


def _as_flag(value: Any) -> bool:
    if value is None:
        return False
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _as_text(value: Any) -> Any:
    return "" if value is None else value


def _only_mappings(value: Any) -> List[Any]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, (dict, BaseModel))]


def _task_type_entries(value: Any) -> List[Any]:
    entries = []
    for item in _only_mappings(value):
        type_id = item.get("id") if isinstance(item, dict) else getattr(item, "id", None)
        if type_id is None or str(type_id).strip() == "":
            logger.warning("Ignoring task type without an id: %r", item)
            continue
        entries.append(item)
    return entries


Text = Annotated[str, BeforeValidator(_as_text)]
Flag = Annotated[bool, BeforeValidator(_as_flag)]


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


# ---------------------------------------------------------------------------
# Upstream records


class CustomField(_Record):
    """A ``{name, value}`` pair from ``booking_custom_fields``."""

    name: Text = ""
    value: Text = ""


class LegacyField(_Record):
    """A ``{label, value}`` pair from the legacy ``custom_fields`` list."""

    label: Text = ""
    value: Text = ""


class Note(_Record):
    content: Text = ""


class Booking(_Record):
    """A staying booking as returned by ``bookings_list``."""

    booking_id: Text = ""
    booking_reference_id: Text = ""
    site_id: Text = ""
    site_name: Text = ""
    booking_arrival: datetime
    booking_departure: datetime
    booking_eta: Optional[str] = None
    booking_locked: Flag = False
    booking_custom_fields: Annotated[List[CustomField], BeforeValidator(_only_mappings)] = []
    custom_fields: Annotated[List[LegacyField], BeforeValidator(_only_mappings)] = []
    notes: Annotated[List[Note], BeforeValidator(_only_mappings)] = []

    @field_validator("booking_arrival", "booking_departure", mode="before")
    @classmethod
    def require_timestamp(cls, value: Any) -> datetime:
        stamp = parse_timestamp(value)
        if stamp is None:
            raise ValueError("timestamp is required")
        return stamp

    @field_validator("booking_eta", mode="before")
    @classmethod
    def blank_eta(cls, value: Any) -> Optional[str]:
        if value is None or str(value).strip() == "":
            return None
        return str(value)

    @property
    def checkin(self) -> date:
        return self.booking_arrival.date()

    @property
    def checkout(self) -> date:
        return self.booking_departure.date()


class Task(_Record):
    """A housekeeping task as returned by ``tasks_list``."""

    task_id: Text = ""
    task_type_id: Text = ""
    task_description: Text = ""
    task_location_occupy: Flag = False
    task_location_id: Text = ""
    task_location_name: Text = ""
    booking_site_id: Text = ""
    booking_site_name: Text = ""
    task_when_date: Optional[date] = None
    task_period_from: Optional[date] = None
    task_period_to: Optional[date] = None

    @field_validator("task_when_date", "task_period_from", "task_period_to", mode="before")
    @classmethod
    def calendar_day(cls, value: Any) -> Optional[date]:
        return parse_date(value)


# ---------------------------------------------------------------------------
# Configuration


class TaskTypeConfig(_Record):
    """Display settings for one task type."""

    id: str
    name: Text = ""
    color: str = DEFAULT_TASK_COLOR
    icon: str = DEFAULT_TASK_ICON


class CategorySite(_Record):
    site_id: Text = ""
    site_name: Text = ""
    excluded: Flag = False


class CategorySortEntry(_Record):
    """One category of the ordered category/site sort configuration."""

    id: Optional[str] = None
    name: Text = ""
    excluded: Flag = False
    sites: Annotated[List[CategorySite], BeforeValidator(_only_mappings)] = []


class LocationTwinSettings(_Record):
    """Twin detection rules and colors for one physical location.

    The three rule strings are comma separated lists; blank entries are
    ignored and an empty string disables that detection layer.
    """

    enabled: Flag = False
    custom_field: str = DEFAULT_LEGACY_FIELD
    custom_field_names: str = ""
    custom_field_values: str = ""
    notes_search_terms: str = ""
    normal_color: str = DEFAULT_NORMAL_COLOR
    twin_color: str = DEFAULT_TWIN_COLOR
    potential_twin_color: str = DEFAULT_POTENTIAL_TWIN_COLOR


class LocationConfig(LocationTwinSettings):
    """Everything the grid needs to know about a location."""

    categories_sort: Annotated[List[CategorySortEntry], BeforeValidator(_only_mappings)] = []
    task_types: Annotated[List[TaskTypeConfig], BeforeValidator(_task_type_entries)] = []


# ---------------------------------------------------------------------------
# Grid output


class TaskInfo(BaseModel):
    """Task metadata shown in a cell or attached to a booking cell."""

    task_id: str
    task_type_id: str = ""
    description: str = ""
    task_date: date
    color: str = DEFAULT_TASK_COLOR
    icon: str = DEFAULT_TASK_ICON
    task_type_name: str = DEFAULT_TASK_NAME


class TaskCell(TaskInfo):
    kind: Literal["task"] = "task"


class BookingCell(BaseModel):
    kind: Literal["booking"] = "booking"
    booking_id: str
    booking_ref: str = ""
    bed_type: str = ""
    booking_type: BookingType = NORMAL
    checkin: date
    checkout: date
    is_locked: bool = False
    is_early_checkin: bool = False
    tasks: List[TaskInfo] = []


Cell = Annotated[Union[BookingCell, TaskCell], Field(discriminator="kind")]


class Room(BaseModel):
    """One row of the grid, keyed in ``GridResult.grid`` by site id."""

    category: str = UNCATEGORIZED
    site_id: str
    site_name: str = ""
    cells: Dict[date, Cell] = {}


class GridResult(BaseModel):
    grid: Dict[str, Room] = {}
    rooms: List[str] = []
    dates: List[date] = []


def _parse_records(model, raw_items: Iterable[Any], what: str) -> List[Any]:
    records = []
    for index, raw in enumerate(raw_items or ()):
        try:
            records.append(model.model_validate(raw))
        except ValidationError as exc:
            logger.warning("Skipping malformed %s #%s: %s", what, index, exc.errors()[0].get("msg", exc))
    return records


def parse_bookings(raw_items: Iterable[Any]) -> List[Booking]:
    """Validate raw booking payloads, dropping the ones that cannot be read."""
    return _parse_records(Booking, raw_items, "booking")


def parse_tasks(raw_items: Iterable[Any]) -> List[Task]:
    """Validate raw task payloads, dropping the ones that cannot be read."""
    return _parse_records(Task, raw_items, "task")
