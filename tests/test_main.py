import json
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from twin_optimiser import main
from twin_optimiser.newbook_client import NewBookAPIError

from tests.utils import booking_row, categories, task_row


class FakeNewBook:
    def __init__(self, bookings=(), tasks=(), fail_bookings=False, fail_tasks=False):
        self.bookings = list(bookings)
        self.tasks = list(tasks)
        self.fail_bookings = fail_bookings
        self.fail_tasks = fail_tasks
        self.task_calls = []
        self.booking_calls = 0

    def get_bookings(self, start: date, days: int):
        self.booking_calls += 1
        if self.fail_bookings:
            raise NewBookAPIError("Invalid API key")
        return self.bookings

    def get_tasks(self, start: date, days: int, task_type_ids):
        self.task_calls.append(list(task_type_ids))
        if self.fail_tasks:
            raise NewBookAPIError("tasks unavailable")
        return self.tasks


LOCATIONS = {
    "locations": {
        "12": {
            "enabled": True,
            "notes_search_terms": "separate beds",
            "categories_sort": categories(("ground", ["102", "101"]), ("staff", ["900"]), excluded=["staff"]),
            "task_types": [{"id": "5", "name": "Deep Clean"}],
        },
        "13": {"enabled": False},
        "14": {"enabled": True, "task_types": [{"name": "Unnamed"}]},
    }
}


@pytest.fixture
def api(tmp_path, monkeypatch):
    path = tmp_path / "locations.json"
    path.write_text(json.dumps(LOCATIONS), encoding="utf-8")
    monkeypatch.setattr(main.settings, "locations_config", str(path))
    monkeypatch.setattr(main.settings, "cache_seconds", 0)
    main._booking_cache.clear()
    fake = FakeNewBook()
    main.app.dependency_overrides[main.get_client] = lambda: fake
    yield TestClient(main.app), fake
    main.app.dependency_overrides.clear()


def test_healthz(api) -> None:
    client, _ = api
    assert client.get("/healthz").json()["ok"] is True


def test_grid_json(api) -> None:
    client, fake = api
    fake.bookings = [
        booking_row(booking_id="1", site_id="101", notes=[{"content": "separate beds please"}]),
        booking_row(booking_id="2", site_id="102", site_name="Room 102", arrival="2024-01-02", departure="2024-01-03"),
        booking_row(booking_id="3", site_id="900", site_name="Staff"),
    ]
    fake.tasks = [task_row(when="2024-01-02")]

    data = client.get("/api/grid", params={"location_id": "12", "start_date": "2024-01-01", "days": 3}).json()

    assert data["rooms"] == ["102", "101"]
    assert data["dates"] == ["2024-01-01", "2024-01-02", "2024-01-03"]
    assert data["startDate"] == "2024-01-01"
    cell = data["grid"]["101"]["cells"]["2024-01-02"]
    assert cell["booking_type"] == "potential_twin"
    assert [t["task_type_name"] for t in cell["tasks"]] == ["Deep Clean"]
    assert [s["length"] for s in data["spans"]["101"]] == [3]
    assert [s["length"] for s in data["spans"]["102"]] == [1, 1, 1]
    assert data["spans"]["102"][0]["cell"] is None
    assert data["colors"]["twin"] == "#2196f3"
    assert fake.task_calls == [["5"]]


def test_unknown_and_disabled_locations(api) -> None:
    client, _ = api
    assert client.get("/api/grid", params={"location_id": "99"}).status_code == 404
    response = client.get("/api/grid", params={"location_id": "13"})
    assert response.status_code == 403
    assert "not enabled" in response.json()["detail"]


def test_upstream_failure_is_bad_gateway(api) -> None:
    client, fake = api
    fake.fail_bookings = True
    response = client.get("/api/grid", params={"location_id": "12"})

    assert response.status_code == 502
    assert "Invalid API key" in response.json()["detail"]


def test_task_failure_degrades_to_bookings_only(api) -> None:
    client, fake = api
    fake.bookings = [booking_row()]
    fake.fail_tasks = True

    data = client.get("/api/grid", params={"location_id": "12", "start_date": "2024-01-01"}).json()

    assert data["rooms"] == ["101"]
    assert data["days"] == 14


def test_days_are_bounded(api) -> None:
    client, _ = api
    assert client.get("/api/grid", params={"location_id": "12", "days": 0}).status_code == 422
    assert client.get("/api/grid", params={"location_id": "12", "days": 500}).status_code == 422


def test_table_fragment(api) -> None:
    client, fake = api
    fake.bookings = [booking_row()]

    response = client.get("/api/grid/table", params={"location_id": "12", "start_date": "2024-01-01", "days": 3})

    assert response.status_code == 200
    assert "<style>" in response.text
    assert 'colspan="3"' in response.text


def test_table_fragment_messages(api) -> None:
    client, fake = api
    params = {"location_id": "12", "start_date": "2024-01-01"}

    assert "No bookings or tasks found" in client.get("/api/grid/table", params=params).text

    fake.bookings = [booking_row(site_id="")]
    assert "No rooms found in bookings" in client.get("/api/grid/table", params=params).text

    disabled = client.get("/api/grid/table", params={"location_id": "13"})
    assert disabled.status_code == 403
    assert "not enabled" in disabled.text


def test_booking_lists_are_cached(api, monkeypatch) -> None:
    client, fake = api
    monkeypatch.setattr(main.settings, "cache_seconds", 60)
    fake.bookings = [booking_row()]
    params = {"location_id": "12", "start_date": "2024-01-01", "days": 3}

    assert client.get("/api/grid", params=params).json()["rooms"] == ["101"]
    fake.bookings = []
    assert client.get("/api/grid", params=params).json()["rooms"] == ["101"]


def test_panel_page(api) -> None:
    client, _ = api
    response = client.get("/", params={"location_id": "12"})

    assert response.status_code == 200
    assert 'const LOCATION_ID = "12";' in response.text


def test_locations_share_the_cached_booking_list(api, monkeypatch) -> None:
    client, fake = api
    monkeypatch.setattr(main.settings, "cache_seconds", 60)
    fake.bookings = [booking_row()]
    params = {"start_date": "2024-01-01", "days": 3}

    client.get("/api/grid", params={"location_id": "12", **params})
    client.get("/api/grid", params={"location_id": "14", **params})

    assert fake.booking_calls == 1
    assert list(main._booking_cache) == [(date(2024, 1, 1), 3)]


def test_expired_booking_lists_are_dropped(api, monkeypatch) -> None:
    client, fake = api
    monkeypatch.setattr(main.settings, "cache_seconds", 60)
    clock = [datetime(2024, 1, 1, 12, tzinfo=timezone.utc)]
    monkeypatch.setattr(main, "_utcnow", lambda: clock[0])

    for start in ("2024-01-01", "2024-01-02"):
        client.get("/api/grid", params={"location_id": "12", "start_date": start, "days": 3})
    assert len(main._booking_cache) == 2

    clock[0] += timedelta(seconds=120)
    client.get("/api/grid", params={"location_id": "12", "start_date": "2024-01-03", "days": 3})

    assert list(main._booking_cache) == [(date(2024, 1, 3), 3)]


def test_task_type_without_id_is_not_requested(api) -> None:
    client, fake = api
    fake.bookings = [booking_row()]

    response = client.get("/api/grid", params={"location_id": "14", "start_date": "2024-01-01"})

    assert response.status_code == 200
    assert response.json()["rooms"] == ["101"]
    assert fake.task_calls == []


def test_broken_configuration_hides_file_details(api, tmp_path, monkeypatch) -> None:
    client, _ = api
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    monkeypatch.setattr(main.settings, "locations_config", str(path))

    response = client.get("/api/grid", params={"location_id": "12"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Location configuration could not be loaded."
    assert str(tmp_path) not in response.text


def test_client_is_created_once(monkeypatch) -> None:
    created = []

    class StubClient:
        def __init__(self, config) -> None:
            created.append(config)

    monkeypatch.setattr(main, "_client", None)
    monkeypatch.setattr(main, "NewBookClient", StubClient)

    with ThreadPoolExecutor(max_workers=8) as pool:
        clients = list(pool.map(lambda _: main.get_client(), range(16)))

    assert len(created) == 1
    assert all(c is clients[0] for c in clients)
