"""Main application entry point for the twin optimiser panel.

This module defines the FastAPI application, configures logging, keeps a
short-lived in-memory cache of upstream booking lists and serves both a JSON
API and the HTML fragment the hosting application embeds.

Endpoints:
  - ``/api/grid``: the booking grid for a location as JSON.
  - ``/api/grid/table``: the same grid rendered as an HTML table fragment.
  - ``/healthz``: simple health check endpoint.
  - ``/``: a minimal standalone page around the fragment.

The service talks to a single NewBook account; every location reads the same
booking list, so cached lists are keyed by window only. Grids themselves are
never cached: every request rebuilds the grid from the fetched lists and the
location's configuration.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse

from .config import settings
from .grid import GridAssembler
from .locations import LocationConfigError, get_location
from .models import GridResult, LocationConfig, parse_bookings, parse_tasks
from .newbook_client import NewBookAPIError, NewBookClient
from .render import render_color_styles, render_grid_table, render_message
from .spans import compress_row

logger = logging.getLogger("twin_optimiser")
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(title="Twin Optimiser")

_cache_lock = threading.Lock()
_booking_cache: Dict[Tuple[date, int], Tuple[datetime, List[Dict[str, Any]]]] = {}
_client: Optional[NewBookClient] = None
_client_lock = threading.Lock()


def _utcnow() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


def get_client() -> NewBookClient:
    """Return the shared NewBook client, creating it on first use."""
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = NewBookClient(settings)
    return _client


def _fetch_bookings(client: NewBookClient, start: date, days: int) -> List[Dict[str, Any]]:
    """Fetch staying bookings, reusing a fresh cached copy when there is one."""
    key = (start, days)
    with _cache_lock:
        cached = _booking_cache.get(key)
        if cached is not None and (_utcnow() - cached[0]).total_seconds() < settings.cache_seconds:
            return cached[1]
    bookings = client.get_bookings(start, days)
    if settings.cache_seconds > 0:
        now = _utcnow()
        with _cache_lock:
            # Drop expired windows so the cache only holds fresh entries.
            expired = [k for k, (at, _) in _booking_cache.items() if (now - at).total_seconds() >= settings.cache_seconds]
            for stale in expired:
                del _booking_cache[stale]
            _booking_cache[key] = (now, bookings)
    return bookings


def _fetch_tasks(client: NewBookClient, location: LocationConfig, start: date, days: int) -> List[Dict[str, Any]]:
    """Fetch tasks of the configured types; failures degrade to no tasks."""
    type_ids = [t.id for t in location.task_types if t.id.strip()]
    if not type_ids:
        return []
    try:
        return client.get_tasks(start, days, type_ids)
    except NewBookAPIError as exc:
        logger.error("Error fetching tasks, showing bookings only: %s", exc)
        return []


def _load_location(location_id: str) -> LocationConfig:
    try:
        location = get_location(settings.locations_config, location_id)
    except LocationConfigError as exc:
        logger.exception("Error loading location configuration: %s", exc)
        raise HTTPException(status_code=500, detail="Location configuration could not be loaded.")
    if location is None:
        raise HTTPException(status_code=404, detail=f"Location {location_id} is not configured.")
    if not location.enabled:
        raise HTTPException(
            status_code=403,
            detail="Twin Optimiser is not enabled for this location. Please contact your administrator.",
        )
    return location


def _build(
    location_id: str, start_date: Optional[date], days: Optional[int], client: NewBookClient
) -> Tuple[LocationConfig, GridResult, int]:
    location = _load_location(location_id)
    start = start_date or date.today()
    days = days or settings.default_days
    if days > settings.max_days:
        raise HTTPException(status_code=422, detail=f"days must be at most {settings.max_days}")

    try:
        raw_bookings = _fetch_bookings(client, start, days)
    except NewBookAPIError as exc:
        logger.exception("Error fetching bookings: %s", exc)
        raise HTTPException(status_code=502, detail=f"Error fetching bookings: {exc}")
    raw_tasks = _fetch_tasks(client, location, start, days)
    logger.info("Location %s: %d bookings and %d tasks from %s", location_id, len(raw_bookings), len(raw_tasks), start)

    assembler = GridAssembler(location, settings.early_checkin_minutes)
    result = assembler.build(parse_bookings(raw_bookings), parse_tasks(raw_tasks), start, days)
    return location, result, len(raw_bookings) + len(raw_tasks)


@app.get("/api/grid")
def api_grid(
    location_id: str = Query(...),
    start_date: Optional[date] = Query(None),
    days: Optional[int] = Query(None, ge=1),
    client: NewBookClient = Depends(get_client),
) -> Dict[str, Any]:
    """Return the booking grid for a location."""
    location, result, _ = _build(location_id, start_date, days, client)
    spans = {
        key: [
            {
                "start": span.start.isoformat(),
                "length": span.length,
                "cell": span.cell.model_dump(mode="json") if span.cell is not None else None,
            }
            for span in compress_row(result.grid[key].cells, result.dates)
        ]
        for key in result.rooms
    }
    payload = result.model_dump(mode="json")
    payload.update(
        {
            "generatedAt": _utcnow().isoformat().replace("+00:00", "Z"),
            "locationId": location_id,
            "startDate": result.dates[0].isoformat(),
            "days": len(result.dates),
            "spans": spans,
            "colors": {
                "normal": location.normal_color,
                "twin": location.twin_color,
                "potentialTwin": location.potential_twin_color,
            },
        }
    )
    return payload


@app.get("/api/grid/table", response_class=HTMLResponse)
def api_grid_table(
    location_id: str = Query(...),
    start_date: Optional[date] = Query(None),
    days: Optional[int] = Query(None, ge=1),
    client: NewBookClient = Depends(get_client),
) -> HTMLResponse:
    """Return the grid as an HTML fragment for AJAX refreshes."""
    try:
        location, result, fetched = _build(location_id, start_date, days, client)
    except HTTPException as exc:
        if exc.status_code in (403, 404, 502):
            return HTMLResponse(render_message(str(exc.detail)), status_code=exc.status_code)
        raise
    if fetched == 0:
        return HTMLResponse(
            render_message("No bookings or tasks found for the selected date range.", "hhtm-no-results")
        )
    if not result.rooms:
        return HTMLResponse(
            render_message(
                "No rooms found in bookings. Please check that bookings have room assignments."
            )
        )
    return HTMLResponse(render_color_styles(location) + render_grid_table(result))


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    return {"ok": True, "time": _utcnow().isoformat().replace("+00:00", "Z")}


@app.get("/", response_class=HTMLResponse)
def panel_page(location_id: str = Query("")) -> HTMLResponse:
    """Serve a minimal page wrapping the grid fragment.

    Inside the hotel management application the fragment is embedded
    directly; this page exists for standalone use and local testing.
    """
    html = f"""
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Twin Optimiser</title>
  <link rel="stylesheet" href="https://fonts.googleapis.com/icon?family=Material+Icons">
  <style>
    body {{ margin: 0; font-family: system-ui, -apple-system, Segoe UI, Roboto, Arial; }}
    .hhtm-header {{ display: flex; gap: 16px; align-items: baseline; padding: 16px 20px; }}
    .hhtm-table-wrapper {{ overflow-x: auto; padding: 0 20px 20px; }}
    .hhtm-booking-grid {{ border-collapse: collapse; font-size: 12px; }}
    .hhtm-booking-grid td, .hhtm-booking-grid th {{ border: 1px solid #ddd; padding: 2px 4px; }}
    .hhtm-booking-content {{ border: 1px solid transparent; border-radius: 4px; padding: 2px 4px; }}
    .hhtm-category-header td {{ background: #f3f3f3; }}
    .hhtm-bed-type {{ display: block; opacity: 0.8; }}
  </style>
</head>
<body>
  <div class="hhtm-header">
    <h2>Twin Optimiser</h2>
    <label for="hhtm-start-date">Start Date:</label>
    <input type="date" id="hhtm-start-date" value="{date.today().isoformat()}" data-days="{settings.default_days}">
  </div>
  <div class="hhtm-table-wrapper"><div id="hhtm-table-content">Loading…</div></div>
<script>
const LOCATION_ID = {json.dumps(location_id)};
async function refreshTable() {{
  const picker = document.getElementById("hhtm-start-date");
  const params = new URLSearchParams({{location_id: LOCATION_ID, start_date: picker.value, days: picker.dataset.days}});
  const target = document.getElementById("hhtm-table-content");
  try {{
    const r = await fetch(`/api/grid/table?${{params}}`, {{cache: "no-store"}});
    target.innerHTML = await r.text();
  }} catch (e) {{
    target.textContent = `Failed to load bookings: ${{e}}`;
  }}
}}
document.getElementById("hhtm-start-date").addEventListener("change", refreshTable);
refreshTable();
</script>
</body>
</html>
"""
    return HTMLResponse(html)
