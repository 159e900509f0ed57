import json

import pytest
import requests

from keel.tools import web_tools
from keel.tools.errors import ToolNetworkError, ToolValidationError


class _FakeResponse:
    def __init__(self, text="", status_code=200, content_type="text/html"):
        self.text = text
        self.status_code = status_code
        self.headers = {"Content-Type": content_type}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


def test_fetch_url_returns_json_payload(session, monkeypatch):
    captured = {}

    def fake_get(url, timeout, headers):
        captured.update(url=url, timeout=timeout, headers=headers)
        return _FakeResponse("<html>hi</html>")

    monkeypatch.setattr(web_tools.requests, "get", fake_get)

    payload = json.loads(web_tools.fetch_url({"url": " https://example.com/docs "}, session))

    assert payload == {
        "url": "https://example.com/docs",
        "status_code": 200,
        "content_type": "text/html",
        "content": "<html>hi</html>",
        "truncated": False,
    }
    assert captured["headers"]["User-Agent"].startswith("keel-agent/")


def test_fetch_url_truncates_content(session, monkeypatch):
    monkeypatch.setattr(web_tools.config, "FETCH_CONTENT_LIMIT", 4)
    monkeypatch.setattr(web_tools.requests, "get", lambda url, timeout, headers: _FakeResponse("abcdefgh"))

    payload = json.loads(web_tools.fetch_url({"url": "http://example.com"}, session))

    assert payload["content"] == "abcd"
    assert payload["truncated"] is True


def test_fetch_url_wraps_request_errors(session, monkeypatch):
    def fail(url, timeout, headers):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(web_tools.requests, "get", fail)

    with pytest.raises(ToolNetworkError, match="connection refused"):
        web_tools.fetch_url({"url": "https://example.com"}, session)


def test_fetch_url_http_error_status(session, monkeypatch):
    monkeypatch.setattr(web_tools.requests, "get", lambda url, timeout, headers: _FakeResponse(status_code=404))

    with pytest.raises(ToolNetworkError, match="404"):
        web_tools.fetch_url({"url": "https://example.com/missing"}, session)


@pytest.mark.parametrize("url", ["", "ftp://example.com", "example.com", "file:///etc/passwd", None])
def test_fetch_url_rejects_non_http_urls(session, url):
    assert web_tools.validate_fetch_url({"url": url}, session) is not None
    with pytest.raises(ToolValidationError):
        web_tools.fetch_url({"url": url}, session)
