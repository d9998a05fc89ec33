import json
from http.client import BadStatusLine, IncompleteRead, LineTooLong
from io import BytesIO
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qs, urlsplit

import pytest

import gcpd.api_client as api_module
from gcpd.api_client import FatalFetchError, GCPDClient, PageResult
from tests.helpers import load_json

BASE = "https://steamcommunity.com/profiles/76561198000000000/gcpd/440"


@pytest.fixture
def client():
    return GCPDClient(BASE, session_id="abc123")


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr(api_module.time, "sleep", lambda seconds: recorded.append(seconds))
    return recorded


def _http_error(req, code):
    return HTTPError(req.full_url, code, "error", hdrs=None, fp=BytesIO(b""))


def _ok(payload):
    return BytesIO(json.dumps(payload).encode("utf-8"))


def test_build_page_url_first_page(client):
    parts = urlsplit(client.build_page_url())
    query = parse_qs(parts.query)

    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == BASE
    assert query == {"ajax": ["1"], "tab": ["playermatchhistory"], "sessionid": ["abc123"]}


def test_build_page_url_with_token():
    client = GCPDClient(BASE + "/", tab="matchmaking")
    query = parse_qs(urlsplit(client.build_page_url("1700_42")).query)

    assert query == {"ajax": ["1"], "tab": ["matchmaking"], "continue_token": ["1700_42"]}


def test_page_result_from_payload():
    page = PageResult.from_payload(load_json("gcpd_page1.json"))
    assert page.success is True
    assert page.continuation_token == "1700000000_4242"
    assert "generic_kv_table" in page.html

    last = PageResult.from_payload(load_json("gcpd_last_page.json"))
    assert last.continuation_token is None


def test_page_result_from_bad_payload():
    assert PageResult.from_payload(None).success is False
    assert PageResult.from_payload([1, 2]).success is False
    assert PageResult.from_payload({"html": "<table></table>"}).success is False
    assert PageResult.from_payload({"success": True, "continue_token": 17}).continuation_token == "17"


def test_fetch_page_sends_ajax_headers(client, monkeypatch, sleeps):
    seen = {}

    def fake_urlopen(req, timeout=30):
        seen["url"] = req.full_url
        seen["headers"] = {k.lower(): v for k, v in req.header_items()}
        return _ok(load_json("gcpd_page1.json"))

    monkeypatch.setattr(api_module, "urlopen", fake_urlopen)
    client.cookie_header = "sessionid=abc123; steamLoginSecure=xyz"

    page = client.fetch_page("tok")

    assert page.success is True
    assert "continue_token=tok" in seen["url"]
    assert seen["headers"]["x-requested-with"] == "XMLHttpRequest"
    assert seen["headers"]["cookie"] == "sessionid=abc123; steamLoginSecure=xyz"
    assert sleeps == []


def test_throttle_retry(client, monkeypatch, sleeps):
    calls = {"count": 0}

    def fake_urlopen(req, timeout=30):
        calls["count"] += 1
        if calls["count"] == 1:
            raise _http_error(req, 429)
        if calls["count"] == 2:
            raise _http_error(req, 503)
        return _ok({"success": True, "html": "", "continue_token": None})

    monkeypatch.setattr(api_module, "urlopen", fake_urlopen)

    page = client.fetch_page()

    assert page.success is True
    assert calls["count"] == 3
    assert sleeps == [1.0, 2.0]


def test_transport_error_and_bad_json_are_retried(client, monkeypatch, sleeps):
    responses = [URLError("connection reset"), BytesIO(b"<html>not json</html>")]

    def fake_urlopen(req, timeout=30):
        if responses:
            item = responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return _ok({"success": False})

    monkeypatch.setattr(api_module, "urlopen", fake_urlopen)

    page = client.fetch_page()

    assert page.success is False
    assert sleeps == [1.0, 2.0]


class _TruncatedBody(BytesIO):
    def read(self, *args):
        raise IncompleteRead(b'{"success": tr')


def test_http_protocol_errors_are_retried(client, monkeypatch, sleeps):
    responses = [_TruncatedBody(), BadStatusLine("x"), LineTooLong("header line")]

    def fake_urlopen(req, timeout=30):
        if responses:
            item = responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return _ok({"success": True, "html": ""})

    monkeypatch.setattr(api_module, "urlopen", fake_urlopen)

    page = client.fetch_page()

    assert page.success is True
    assert sleeps == [1.0, 2.0, 4.0]


def test_persistent_truncated_body_is_fatal(client, monkeypatch, sleeps):
    monkeypatch.setattr(api_module, "urlopen", lambda req, timeout=30: _TruncatedBody())

    with pytest.raises(FatalFetchError) as excinfo:
        client.fetch_page()

    assert len(sleeps) == 5
    assert excinfo.value.attempts == 6
    assert isinstance(excinfo.value.__cause__, api_module.TransientNetworkError)


def test_fatal_after_five_retries(client, monkeypatch, sleeps):
    calls = {"count": 0}

    def fake_urlopen(req, timeout=30):
        calls["count"] += 1
        raise _http_error(req, 500)

    monkeypatch.setattr(api_module, "urlopen", fake_urlopen)

    with pytest.raises(FatalFetchError) as excinfo:
        client.fetch_page()

    assert calls["count"] == 6
    assert [s * 1000 for s in sleeps] == [1000 * 2 ** k for k in range(5)]
    assert excinfo.value.attempts == 6
    assert excinfo.value.status == 500


def test_persistent_throttle_is_fatal(client, monkeypatch, sleeps):
    def fake_urlopen(req, timeout=30):
        raise _http_error(req, 429)

    monkeypatch.setattr(api_module, "urlopen", fake_urlopen)

    with pytest.raises(FatalFetchError) as excinfo:
        client.fetch_page()

    assert len(sleeps) == 5
    assert excinfo.value.status == 429
