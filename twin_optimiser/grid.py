"""Booking grid assembly.

``GridAssembler`` turns the flat booking and task lists fetched for a date
window into a ``GridResult``: one ``Room`` per site id, each mapping dates to
a booking or task cell. Rules, in the order they apply:

* bookings are placed first; on any room/date the first booking wins and
  later overlapping bookings are ignored for that date;
* a task landing on a booked date is attached to the booking cell, otherwise
  it becomes the cell itself;
* records without a site, or for an excluded site, are skipped;
* a room exists only once a booking or task has touched it.

Rooms are then ordered by ``sort_rooms``.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from .classifier import SiteClassifier
from .dates import build_date_range, iter_days, minutes_since_midnight
from .detector import TwinDetector
from .models import (
    DEFAULT_TASK_NAME,
    Booking,
    BookingCell,
    GridResult,
    LocationConfig,
    Room,
    Task,
    TaskCell,
    TaskInfo,
    TaskTypeConfig,
)

logger = logging.getLogger(__name__)

EARLY_CHECKIN_MINUTES = 15 * 60


def is_early_checkin(booking: Booking, threshold: int = EARLY_CHECKIN_MINUTES) -> bool:
    """Return True if the arrival, or failing that the ETA, is before ``threshold``."""
    arrival = booking.booking_arrival
    if arrival.hour * 60 + arrival.minute < threshold:
        return True
    eta = minutes_since_midnight(booking.booking_eta)
    return eta is not None and eta < threshold


def task_dates(task: Task) -> List[date]:
    """Dates a task covers: its single date, or every day of its period."""
    if task.task_when_date is not None:
        return [task.task_when_date]
    if task.task_period_from is not None and task.task_period_to is not None:
        return list(iter_days(task.task_period_from, task.task_period_to))
    return []


def task_site(task: Task) -> Tuple[str, str]:
    """Return ``(site_id, site_name)``, preferring the task's own location."""
    if task.task_location_id:
        return task.task_location_id, task.task_location_name
    if task.booking_site_id:
        return task.booking_site_id, task.booking_site_name
    return "", ""


def sort_rooms(rooms: Iterable[str], classifier: SiteClassifier) -> List[str]:
    """Order room keys by category rank, site rank, then name.

    Sites missing from the configuration rank last. Without any configured
    ranks the order is plain case-insensitive alphabetical.
    """
    if not classifier.has_ranks:
        return sorted(rooms, key=str.lower)
    return sorted(rooms, key=classifier.sort_key)


class GridAssembler:
    """Builds the per-room, per-date grid for one location."""

    def __init__(self, location: LocationConfig, early_checkin_minutes: int = EARLY_CHECKIN_MINUTES) -> None:
        self.classifier = SiteClassifier(location.categories_sort)
        self.detector = TwinDetector(location)
        self.task_types: Dict[str, TaskTypeConfig] = {t.id: t for t in location.task_types}
        self.early_checkin_minutes = early_checkin_minutes

    def build(self, bookings: Iterable[Booking], tasks: Iterable[Task], start: date, days: int) -> GridResult:
        dates = build_date_range(start, days)
        grid: Dict[str, Room] = {}

        for booking in bookings:
            self._add_booking(grid, booking, dates)

        if self.task_types:
            window = set(dates)
            for task in tasks:
                self._add_task(grid, task, window)

        rooms = sort_rooms(grid.keys(), self.classifier)
        logger.debug("Built grid with %d rooms over %d days from %s", len(rooms), days, start)
        return GridResult(grid=grid, rooms=rooms, dates=dates)

    def _room(self, grid: Dict[str, Room], site_id: str, site_name: str) -> Room:
        room = grid.get(site_id)
        if room is None:
            room = Room(
                category=self.classifier.category_name(site_id),
                site_id=site_id,
                site_name=site_name,
            )
            grid[site_id] = room
        return room

    def _add_booking(self, grid: Dict[str, Room], booking: Booking, dates: List[date]) -> None:
        if not booking.site_name or not booking.site_id:
            logger.debug("Skipping booking %s without a room", booking.booking_id)
            return
        if self.classifier.is_excluded(booking.site_id):
            return

        room = self._room(grid, booking.site_id, booking.site_name)
        checkin, checkout = booking.checkin, booking.checkout
        bed_type = self.detector.bed_type(booking)
        cell: Optional[BookingCell] = None

        for day in dates:
            if not checkin <= day < checkout or day in room.cells:
                continue
            if cell is None:
                cell = BookingCell(
                    booking_id=booking.booking_id,
                    booking_ref=booking.booking_reference_id,
                    bed_type=bed_type,
                    booking_type=self.detector.classify(booking, bed_type),
                    checkin=checkin,
                    checkout=checkout,
                    is_locked=booking.booking_locked,
                    is_early_checkin=is_early_checkin(booking, self.early_checkin_minutes),
                )
            # One cell object per date: attached tasks are per day.
            room.cells[day] = cell.model_copy(deep=True)

    def _task_info(self, task: Task, day: date) -> TaskInfo:
        info = TaskInfo(
            task_id=task.task_id,
            task_type_id=task.task_type_id,
            description=task.task_description,
            task_date=day,
        )
        config = self.task_types.get(task.task_type_id)
        if config is not None:
            info.color = config.color
            info.icon = config.icon
            info.task_type_name = config.name or DEFAULT_TASK_NAME
        return info

    def _add_task(self, grid: Dict[str, Room], task: Task, window: set) -> None:
        if not task.task_location_occupy:
            return
        site_id, site_name = task_site(task)
        if not site_id:
            logger.debug("Skipping task %s without a location", task.task_id)
            return
        if self.classifier.is_excluded(site_id):
            return

        room = self._room(grid, site_id, site_name)
        for day in task_dates(task):
            if day not in window:
                continue
            info = self._task_info(task, day)
            current = room.cells.get(day)
            if isinstance(current, BookingCell):
                current.tasks.append(info)
            else:
                room.cells[day] = TaskCell(**info.model_dump())


def build_grid(
    bookings: Iterable[Booking],
    tasks: Iterable[Task],
    start: date,
    days: int,
    location: LocationConfig,
    early_checkin_minutes: int = EARLY_CHECKIN_MINUTES,
) -> GridResult:
    """Convenience wrapper around ``GridAssembler(...).build(...)``."""
    return GridAssembler(location, early_checkin_minutes).build(bookings, tasks, start, days)
