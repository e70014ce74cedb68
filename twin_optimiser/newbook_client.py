"""NewBook REST API client.

This module fetches the two lists the grid is built from: bookings staying
in a date window (``bookings_list``) and housekeeping tasks in the same
window (``tasks_list``). Requests are retried with exponential back-off on
rate limiting, server errors and transport failures. Credentials come from
the ``Settings`` object in ``twin_optimiser.config``.

The client is synchronous: one grid request makes at most two upstream calls
and nothing else can proceed without their results.
"""

from __future__ import annotations

import logging
import time
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

import httpx

from .config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)


class NewBookAPIError(RuntimeError):
    """Raised when NewBook rejects a request or cannot be reached."""


def window_bounds(start: date, days: int) -> Dict[str, str]:
    """Upstream period for a grid window: first day 00:00 to last day 23:59:59."""
    last = start + timedelta(days=days - 1)
    return {
        "period_from": f"{start.isoformat()} 00:00:00",
        "period_to": f"{last.isoformat()} 23:59:59",
    }


class NewBookClient:
    """Thin wrapper over the NewBook REST endpoints used by the grid."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        *,
        http: Optional[httpx.Client] = None,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
    ) -> None:
        self.config = config or default_settings
        self.http = http or httpx.Client(
            base_url=self.config.newbook_api_url.rstrip("/") + "/",
            auth=(self.config.newbook_username, self.config.newbook_password),
            timeout=self.config.request_timeout_seconds,
        )
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds

    def close(self) -> None:
        self.http.close()

    def _post(self, action: str, body: Dict[str, Any]) -> List[Dict[str, Any]]:
        payload = {"region": self.config.newbook_region, "api_key": self.config.newbook_api_key}
        payload.update(body)
        attempt = 0
        while True:
            try:
                response = self.http.post(action, json=payload)
                if response.status_code in RETRY_STATUSES:
                    raise httpx.HTTPStatusError(
                        f"status {response.status_code}", request=response.request, response=response
                    )
                response.raise_for_status()
                break
            except (httpx.TransportError, httpx.HTTPStatusError) as exc:
                attempt += 1
                status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
                transient = status is None or status in RETRY_STATUSES
                if transient and attempt <= self.max_retries:
                    delay = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.warning(
                        "NewBook %s transient error (status=%s), retrying in %.1fs (attempt %s/%s)",
                        action,
                        status,
                        delay,
                        attempt,
                        self.max_retries,
                    )
                    time.sleep(delay)
                    continue
                logger.error("NewBook %s failed after %s attempts: %s", action, attempt, exc)
                raise NewBookAPIError(f"{action} failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise NewBookAPIError(f"{action} returned invalid JSON") from exc
        if not isinstance(data, dict) or not data.get("success"):
            message = data.get("message") if isinstance(data, dict) else None
            raise NewBookAPIError(message or f"{action} was not successful")
        items = data.get("data") or []
        if not isinstance(items, list):
            raise NewBookAPIError(f"{action} returned an unexpected payload")
        return items

    def get_bookings(self, start: date, days: int, list_type: str = "staying") -> List[Dict[str, Any]]:
        """Return raw booking records staying in the window."""
        body = window_bounds(start, days)
        body["list_type"] = list_type
        return self._post("bookings_list", body)

    def get_tasks(self, start: date, days: int, task_type_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Return raw task records (complete and incomplete) of the given types."""
        body: Dict[str, Any] = window_bounds(start, days)
        body["task_type_id"] = list(task_type_ids)
        body["show_uncomplete"] = False
        return self._post("tasks_list", body)
