import json

import pytest
import requests

from commonmeta import roguescholar
from commonmeta.errors import InvalidUpdateRequest, TransportError
from commonmeta.roguescholar import LegacyRecord, update_legacy_record
from commonmeta.utils.logging import ConversionLogger

UUID = "2b3a8ad1-3c0c-4f64-8e4e-7a2f0b0e1c11"
POST = LegacyRecord(id="https://rogue-scholar.org/records/abc12-xyz34", uuid=UUID,
                    doi="https://doi.org/10.59350/abc12-xyz34")

class Recorder:
    """Stands in for http_request and remembers what it was asked to send."""

    def __init__(self, status=204, text="", exc=None):
        self.status = status
        self.text = text
        self.exc = exc
        self.calls = []

    def __call__(self, method, url, **kw):
        self.calls.append((method, url, kw))
        if self.exc is not None:
            raise self.exc
        return self.status, self.text, {}

@pytest.fixture
def recorder(monkeypatch):
    rec = Recorder()
    monkeypatch.setattr(roguescholar, "http_request", rec)
    return rec

@pytest.mark.parametrize("record,key", [
    (POST, ""),
    (LegacyRecord(id=POST.id, doi=POST.doi), "secret"),
    (LegacyRecord(uuid=UUID), "secret"),
])
def test_preconditions_send_nothing(recorder, record, key):
    """
    Tests that a missing key, uuid or update value fails before any request is made.
    """
    with pytest.raises(InvalidUpdateRequest):
        update_legacy_record(record, key, "doi")
    assert recorder.calls == []

def test_rid_falls_back_to_doi(recorder):
    """
    Tests that "rid" without a record id writes the DOI into the doi column.
    """
    update_legacy_record(LegacyRecord(uuid=UUID, doi=POST.doi), "secret", "rid")
    body = recorder.calls[0][2]["json_body"]
    assert body["doi"] == POST.doi
    assert "rid" not in body

def test_other_field_writes_doi_column(recorder):
    update_legacy_record(POST, "secret", "archive_url")
    body = recorder.calls[0][2]["json_body"]
    assert body["doi"] == POST.doi
    assert "archive_url" not in body

def test_rid_without_id_or_doi(recorder):
    with pytest.raises(InvalidUpdateRequest):
        update_legacy_record(LegacyRecord(uuid=UUID), "secret", "rid")
    assert recorder.calls == []

def test_update_doi(recorder, monkeypatch):
    monkeypatch.setattr(roguescholar, "unix_timestamp", lambda: 1700000000)
    updated = update_legacy_record(POST, "secret", "doi", host="db.example.org")
    assert updated.status == "updated_legacy"
    assert updated.uuid == UUID
    assert POST.status is None

    method, url, kw = recorder.calls[0]
    assert method == "PATCH"
    assert url == f"https://db.example.org/rest/v1/posts?id=eq.{UUID}"
    assert kw["headers"]["apikey"] == "secret"
    assert kw["headers"]["Authorization"] == "Bearer secret"
    assert kw["headers"]["Prefer"] == "return=minimal"
    assert kw["json_body"] == {"doi": POST.doi, "indexed_at": 1700000000, "indexed": "true", "archived": "true"}

def test_update_rid_sends_record_id(recorder):
    update_legacy_record(POST, "secret", "rid")
    body = recorder.calls[0][2]["json_body"]
    assert body["rid"] == POST.id
    assert isinstance(body["indexed_at"], int)

def test_rejected_update(monkeypatch):
    monkeypatch.setattr(roguescholar, "http_request", Recorder(status=401, text="invalid api key"))
    with pytest.raises(TransportError) as exc:
        update_legacy_record(POST, "wrong", "doi")
    assert exc.value.status == 401
    assert "401" in str(exc.value)

def test_network_failure_is_wrapped(monkeypatch, tmp_path):
    """
    Tests that a connection error surfaces as TransportError and is logged.
    """
    monkeypatch.setattr(roguescholar, "http_request", Recorder(exc=requests.ConnectionError("refused")))
    with pytest.raises(TransportError) as exc:
        update_legacy_record(POST, "secret", "doi", logger=ConversionLogger(tmp_path))
    assert exc.value.status is None
    assert isinstance(exc.value.__cause__, requests.ConnectionError)
    line = json.loads((tmp_path / "commonmeta.log").read_text(encoding="utf-8").splitlines()[-1])
    assert line["level"] == "ERROR"
    assert line["msg"] == "legacy_update"
    assert line["uuid"] == UUID
