"""HTML fragment for the embedded booking grid.

The hosting application drops this fragment into its page and refreshes it
over AJAX when the start date changes. Cell widths come from
``spans.compress_row``; everything else is markup.
"""

from __future__ import annotations

from html import escape
from typing import List

from .dates import format_day_label, format_short_date
from .models import POTENTIAL_TWIN, TWIN, BookingCell, GridResult, LocationTwinSettings, TaskInfo
from .spans import Span, compress_row

CELL_CLASSES = {
    TWIN: "hhtm-cell-twin",
    POTENTIAL_TWIN: "hhtm-cell-potential-twin",
}


def adjust_color_brightness(hex_color: str, percent: float) -> str:
    """Lighten (positive) or darken (negative) a ``#rrggbb`` color by ``percent``."""
    raw = hex_color.lstrip("#")
    channels = []
    for offset in (0, 2, 4):
        try:
            value = int(raw[offset : offset + 2], 16)
        except ValueError:
            value = 0
        value = max(0, min(255, int(value + value * percent / 100)))
        channels.append(value)
    return "#{:02x}{:02x}{:02x}".format(*channels)


def render_message(text: str, css_class: str = "hhtm-error") -> str:
    return f'<div class="{css_class}"><p>{escape(text)}</p></div>'


def render_color_styles(settings: LocationTwinSettings) -> str:
    rules = []
    for selector, color in (
        ("hhtm-cell-booked", settings.normal_color),
        ("hhtm-cell-twin", settings.twin_color),
        ("hhtm-cell-potential-twin", settings.potential_twin_color),
    ):
        rules.append(
            f".{selector} .hhtm-booking-content {{ background: {escape(color)} !important; "
            f"border-color: {adjust_color_brightness(color, -20)} !important; }}"
        )
    return "<style>\n" + "\n".join(rules) + "\n</style>"


def booking_tooltip(cell: BookingCell) -> str:
    tooltip = f"Ref: {cell.booking_ref} | {format_short_date(cell.checkin)}-{format_short_date(cell.checkout)}"
    if cell.bed_type:
        tooltip += f" | {cell.bed_type}"
    if cell.tasks:
        tooltip += "\n\nTasks:"
        for task in cell.tasks:
            tooltip += f"\n- {task.task_type_name}"
            if task.description:
                tooltip += f": {task.description}"
    return tooltip


def _task_icons(tasks: List[TaskInfo]) -> str:
    icons = "".join(
        f'<span class="hhtm-task-indicator material-icons" style="color: {escape(t.color)};">{escape(t.icon)}</span>'
        for t in tasks
    )
    return f'<div class="hhtm-task-indicators">{icons}</div>'


def _booking_td(span: Span) -> str:
    cell = span.cell
    css = CELL_CLASSES.get(cell.booking_type, "hhtm-cell-booked")
    indicators = ""
    if cell.is_early_checkin or cell.is_locked:
        icons = ""
        if cell.is_early_checkin:
            icons += '<span class="material-icons hhtm-booking-icon hhtm-early-checkin-icon" title="Early Check-in">acute</span>'
        if cell.is_locked:
            icons += '<span class="material-icons hhtm-booking-icon hhtm-locked-icon" title="Locked to Room">lock</span>'
        indicators = f'<div class="hhtm-booking-indicators">{icons}</div>'
    bed_type = f'<span class="hhtm-bed-type">{escape(cell.bed_type)}</span>' if cell.bed_type else ""
    tasks = _task_icons(cell.tasks) if cell.tasks else ""
    return (
        f'<td class="hhtm-booking-cell {css}" colspan="{span.length}" title="{escape(booking_tooltip(cell))}">'
        f'<div class="hhtm-booking-content">{indicators}'
        f'<span class="hhtm-booking-ref">{escape(cell.booking_ref)}</span>{bed_type}{tasks}</div></td>'
    )


def _task_td(span: Span) -> str:
    task = span.cell
    color = escape(task.color)
    return (
        f'<td class="hhtm-booking-cell hhtm-cell-task" colspan="{span.length}">'
        f'<div class="hhtm-task-content" style="background-color: {color}; border-color: {color};" '
        f'data-task-type="{escape(task.task_type_name)}" data-task-description="{escape(task.description)}" '
        f'data-task-icon="{escape(task.icon)}" data-task-color="{color}">'
        f'<span class="material-icons hhtm-task-icon" style="color: #fff;">{escape(task.icon)}</span></div></td>'
    )


def render_span(span: Span) -> str:
    if span.cell is None:
        return '<td class="hhtm-booking-cell hhtm-cell-vacant" title="Vacant"></td>'
    if isinstance(span.cell, BookingCell):
        return _booking_td(span)
    return _task_td(span)


def render_grid_table(result: GridResult) -> str:
    """Render the grid as a ``<table>`` with one row per room."""
    header = "".join(
        '<th class="hhtm-date-header"><div class="hhtm-date-label">'
        f'<span class="hhtm-day">{format_day_label(day)}</span>'
        f'<span class="hhtm-date">{format_short_date(day)}</span></div></th>'
        for day in result.dates
    )
    rows = []
    current_category = None
    column_count = len(result.dates) + 1
    for key in result.rooms:
        room = result.grid[key]
        if room.category != current_category:
            current_category = room.category
            rows.append(
                f'<tr class="hhtm-category-header"><td colspan="{column_count}">'
                f"<strong>{escape(room.category)}</strong></td></tr>"
            )
        cells = "".join(render_span(span) for span in compress_row(room.cells, result.dates))
        rows.append(f'<tr><td class="hhtm-room-cell">{escape(room.site_name or key)}</td>{cells}</tr>')

    return (
        '<table class="hhtm-booking-grid"><thead><tr><th class="hhtm-room-header">Room</th>'
        f"{header}</tr></thead><tbody>{''.join(rows)}</tbody></table>"
    )
