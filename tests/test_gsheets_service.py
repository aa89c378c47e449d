import pandas as pd
import pytest

import gsheets_service
from scheduling.persistence import snapshot


@pytest.fixture
def sheets(ctx):
    ctx.place("ATL", "C001", 1, 1)
    return dict(snapshot(ctx))


@pytest.fixture
def client(monkeypatch, sheets):
    written = {}
    monkeypatch.setattr(gsheets_service, "_open_spreadsheet", lambda spreadsheet_id, cred_file: object())
    monkeypatch.setattr(gsheets_service, "_read_sheet", lambda sh, title: sheets.get(title, pd.DataFrame()))
    monkeypatch.setattr(gsheets_service, "_write_sheet", lambda sh, title, df: written.__setitem__(title, df))
    gsheets_service.app.config["TESTING"] = True
    with gsheets_service.app.test_client() as c:
        c.written = written
        yield c


def test_validate_accepts_and_reports_clamping(client):
    resp = client.post("/validate", json={
        "spreadsheet_id": "sheet", "event_id": "ATL", "course_id": "C003", "room": 2, "start_day": 5,
    })

    body = resp.get_json()
    assert resp.status_code == 200
    assert body == {"accepted": True, "start_day": 4, "days": [4, 5], "clamped": True}


def test_validate_reports_room_conflicts(client):
    resp = client.post("/validate", json={
        "spreadsheet_id": "sheet", "event_id": "ATL", "course_id": "C002", "room": 1, "start_day": 2,
    })

    body = resp.get_json()
    assert body["accepted"] is False
    assert body["reason"] == "RoomConflict"
    assert body["conflicting_course_ids"] == ["C001"]


def test_validate_needs_ids(client):
    resp = client.post("/validate", json={"spreadsheet_id": "sheet", "event_id": "ATL"})
    assert resp.status_code == 400


def test_validate_unknown_event_is_a_bad_request(client):
    resp = client.post("/validate", json={
        "spreadsheet_id": "sheet", "event_id": "XXX", "course_id": "C001", "start_day": 1,
    })
    assert resp.status_code == 400


def test_import_schedule_writes_board_and_conflicts(client, sheets):
    sheets["schedule_import"] = pd.DataFrame({
        "courseId": ["C002", "C003", "C999"],
        "eventId": ["ATL", "BOS", "ATL"],
        "roomNumber": ["2", "1", "1"],
        "startDay": ["1", "1", "1"],
    })

    resp = client.post("/import-schedule", json={"spreadsheet_id": "sheet"})

    body = resp.get_json()
    assert resp.status_code == 200
    assert body["imported_rows"] == 2
    assert len(body["errors"]) == 1 and "C999" in body["errors"][0]
    assert body["conflicts"] == 0
    assert set(client.written) == {"courses", "events", "unavailability", "schedule", "conflicts"}
    assert set(client.written["schedule"]["courseId"]) == {"C002", "C003"}


def test_import_schedule_needs_a_source_sheet(client):
    resp = client.post("/import-schedule", json={"spreadsheet_id": "sheet", "source_sheet": "missing"})
    assert resp.status_code == 400


def test_validate_rejects_non_numeric_fields(client):
    resp = client.post("/validate", json={
        "spreadsheet_id": "sheet", "event_id": "ATL", "course_id": "C001", "room": "two", "start_day": 1,
    })
    assert resp.status_code == 400
    assert "integers" in resp.get_json()["error"]
