"""Merge a room's row of cells into display spans.

Consecutive dates carrying the same booking (or the same task) collapse into
one span whose length is the rendered cell's colspan. Vacant dates are
always spans of length one.
"""

from __future__ import annotations

from datetime import date
from typing import Iterator, Mapping, NamedTuple, Optional, Sequence, Tuple

from .models import BookingCell, Cell


class Span(NamedTuple):
    start: date
    length: int
    cell: Optional[Cell]


def cell_identity(cell: Optional[Cell]) -> Optional[Tuple[str, str]]:
    """``(kind, id)`` of a cell; ``None`` for a vacant date."""
    if cell is None:
        return None
    if isinstance(cell, BookingCell):
        return cell.kind, cell.booking_id
    return cell.kind, cell.task_id


def compress_row(cells: Mapping[date, Cell], dates: Sequence[date]) -> Iterator[Span]:
    """Yield the spans of one room's row, left to right."""
    active: Optional[Span] = None
    active_id: Optional[Tuple[str, str]] = None

    for day in dates:
        cell = cells.get(day)
        identity = cell_identity(cell)
        if active is not None and identity is not None and identity == active_id:
            active = active._replace(length=active.length + 1)
            continue
        if active is not None:
            yield active
        active = Span(day, 1, cell)
        active_id = identity

    if active is not None:
        yield active
