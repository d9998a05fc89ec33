# tests/test_web_app.py

import pytest
from fastapi.testclient import TestClient

import gcpd.pipeline as pipeline_module
import web.app as app_module
from gcpd.api_client import FatalFetchError
from gcpd.fields import ORDERED_COLUMNS
from tests.helpers import FakeClient, load_json

PROFILE = "https://steamcommunity.com/id/gaben/gcpd/440"


@pytest.fixture
def http():
    return TestClient(app_module.app)


@pytest.fixture
def fake_client(monkeypatch):
    created = []

    def factory(base_url, tab="playermatchhistory", session_id=None, verbose=False, **kwargs):
        client = FakeClient([load_json("gcpd_page1.json"), load_json("gcpd_last_page.json")], base_url=base_url)
        client.session_id = session_id
        created.append(client)
        return client

    monkeypatch.setattr(app_module, "GCPDClient", factory)
    monkeypatch.setattr(pipeline_module.time, "sleep", lambda *_: None)
    return created


def test_columns(http):
    resp = http.get("/api/columns")
    assert resp.status_code == 200
    assert resp.json()["columns"] == list(ORDERED_COLUMNS)


def test_export_returns_csv_attachment(http, fake_client):
    resp = http.get("/api/export", params={"profile_url": PROFILE, "session_id": "s1"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert resp.headers["content-disposition"] == 'attachment; filename="gaben.csv"'
    assert resp.headers["x-gcpd-matches"] == "3"
    assert resp.headers["x-gcpd-pages"] == "2"
    assert resp.headers["x-gcpd-stop-reason"] == "no_token"
    assert resp.text.splitlines()[0].startswith("match_id,match_title,type")
    assert fake_client[0].session_id == "s1"


def test_export_bad_config(http, fake_client):
    resp = http.get("/api/export", params={"profile_url": PROFILE, "max_pages": 0})
    assert resp.status_code == 400


def test_export_relative_url(http, fake_client):
    resp = http.get("/api/export", params={"profile_url": "/id/gaben/gcpd/440"})
    assert resp.status_code == 400


def test_export_fatal_fetch_is_bad_gateway(http, monkeypatch):
    class Failing:
        base_url = PROFILE
        session_id = None

        def __init__(self, *args, **kwargs):
            pass

        def fetch_page(self, token=None):
            raise FatalFetchError(PROFILE, attempts=6, status=503)

    monkeypatch.setattr(app_module, "GCPDClient", Failing)

    resp = http.get("/api/export", params={"profile_url": PROFILE})

    assert resp.status_code == 502
    assert "GCPD fetch failed" in resp.json()["detail"]
