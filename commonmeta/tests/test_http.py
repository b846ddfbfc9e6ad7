import pytest
import requests

from commonmeta.utils import http
from commonmeta.utils.http import http_request

class FakeResponse:
    def __init__(self, status_code, text="", headers=None):
        self.status_code = status_code
        self.text = text
        self.headers = headers or {}

class FakeSession:
    """Replays a fixed sequence of responses (or exceptions)."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def request(self, method, url, **kw):
        self.calls.append((method, url, kw))
        out = self.outcomes.pop(0)
        if isinstance(out, Exception):
            raise out
        return out

@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    slept = []
    monkeypatch.setattr(http.time, "sleep", slept.append)
    return slept

def test_retries_then_succeeds(no_sleep):
    sess = FakeSession(FakeResponse(503), FakeResponse(429, headers={"Retry-After": "7"}), FakeResponse(204))
    status, _, _ = http_request("PATCH", "https://example.org/x", json_body={"a": 1}, session=sess)
    assert status == 204
    assert len(sess.calls) == 3
    assert no_sleep[1] >= 7.0
    assert sess.calls[0][2]["json"] == {"a": 1}
    assert "User-Agent" in sess.calls[0][2]["headers"]

def test_client_error_is_returned_not_retried():
    sess = FakeSession(FakeResponse(401, "denied"))
    assert http_request("GET", "https://example.org/x", session=sess)[:2] == (401, "denied")
    assert len(sess.calls) == 1

def test_last_retryable_status_is_returned():
    sess = FakeSession(FakeResponse(500), FakeResponse(500))
    status, _, _ = http_request("GET", "https://example.org/x", retries=2, session=sess)
    assert status == 500

def test_transport_error_raised_after_retries():
    sess = FakeSession(requests.ConnectionError("a"), requests.ConnectionError("b"))
    with pytest.raises(requests.ConnectionError):
        http_request("GET", "https://example.org/x", retries=2, session=sess)
    assert len(sess.calls) == 2
