from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import api  # noqa: E402
from database import Base, list_audit_log  # noqa: E402

SHORT_DAY = {"open_time": "09:00", "close_time": "17:00"}


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False, future=True)
    engine.dispose()


@pytest.fixture()
def client(session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    api.app.dependency_overrides[api.get_db] = _get_db
    yield TestClient(api.app)
    api.app.dependency_overrides.clear()


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_settings_round_trip(client, session_factory) -> None:
    assert client.get("/api/v1/settings").json()["closed_day"] is None

    response = client.put("/api/v1/settings", json={"closed_day": "sunday", "close_time": "18:00", "actor": "ops"})
    assert response.status_code == 200
    assert response.json()["closed_day"] == "Sun"

    current = client.get("/api/v1/settings").json()
    assert current["closed_day"] == "Sun"
    assert current["close_time"] == "18:00"
    with session_factory() as session:
        rows = list_audit_log(session, action="settings_update")
    assert [row.user_id for row in rows] == ["ops"]


def test_generate_from_records(client, session_factory) -> None:
    response = client.post(
        "/api/v1/schedule/generate",
        json={
            "records": [{"Name": "Anna", "Contract Hours": "8", "Needs/Preferences": ""}],
            "seed": 3,
            "settings": dict(SHORT_DAY, closed_day="Sun"),
        },
    )
    assert response.status_code == 200
    body = response.json()
    row = body["rows"][0]
    assert row["name"] == "Anna"
    assert row["assigned_hours"] == 8
    assert row["status"] == "met"
    assert row["shifts"]["Mon"] == "09:00 - 13:00"
    assert row["shifts"]["Sun"] == "CLOSED"
    assert body["summary"]["seed"] == 3
    assert body["validation"]["issues"] == []
    with session_factory() as session:
        assert len(list_audit_log(session, action="schedule_generate")) == 1


def test_generate_from_csv_uses_stored_settings(client) -> None:
    client.put("/api/v1/settings", json=dict(SHORT_DAY))
    response = client.post(
        "/api/v1/schedule/generate",
        json={"csv": "Name;Contract Hours;Needs/Preferences\nMarco;4;afternoon\n", "seed": "7"},
    )
    assert response.status_code == 200
    assert response.json()["rows"][0]["shifts"]["Mon"] == "13:00 - 17:00"


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"records": "not a list"},
        {"csv": "Foo\n1\n"},
        {"records": [{"Name": "Anna", "Contract Hours": "8"}], "seed": "abc"},
    ],
)
def test_generate_rejects_bad_payloads(client, payload) -> None:
    response = client.post("/api/v1/schedule/generate", json=payload)
    assert response.status_code == 400


def test_export_returns_csv(client) -> None:
    response = client.post(
        "/api/v1/schedule/export",
        json={
            "records": [{"Name": "Anna", "Contract Hours": "8", "Mon": "09:00 - 13:00", "Sun": "CLOSED"}],
            "delimiter": ",",
        },
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.splitlines()
    assert lines[0] == "Name,Contract Hours,Needs/Preferences,Mon,Tue,Wed,Thu,Fri,Sat,Sun"
    assert lines[1] == "Anna,8,,09:00 - 13:00,,,,,,CLOSED"


def test_export_rejects_unknown_delimiter(client) -> None:
    response = client.post(
        "/api/v1/schedule/export",
        json={"records": [{"Name": "Anna", "Contract Hours": "8"}], "delimiter": "|"},
    )
    assert response.status_code == 400
