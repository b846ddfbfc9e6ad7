# commonmeta/tests/test_api.py
from __future__ import annotations
import json
from pathlib import Path
from fastapi.testclient import TestClient

from commonmeta import api
from commonmeta.api import app

FIXTURES = Path(__file__).parent / "fixtures"
ELIFE = (FIXTURES / "elife-01567.xml").read_bytes()

def make_client(tmp_log: Path, monkeypatch) -> TestClient:
    # Conversion logs go to an isolated dir
    monkeypatch.setattr(api, "LOG_DIR", str(tmp_log))
    return TestClient(app)

def test_root_and_health(tmp_path, monkeypatch):
    client = make_client(tmp_path, monkeypatch)
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["service"] == "commonmeta-api"
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

def test_formats(tmp_path, monkeypatch):
    client = make_client(tmp_path, monkeypatch)
    r = client.get("/formats")
    assert r.status_code == 200
    formats = {f["format"]: f for f in r.json()}
    assert formats["datacite"]["read"] and formats["datacite"]["write"]
    assert formats["bibtex"]["media_type"] == "application/x-bibtex"

def test_schemas(tmp_path, monkeypatch):
    client = make_client(tmp_path, monkeypatch)
    r = client.get("/schemas")
    assert r.status_code == 200
    assert {"name": "commonmeta", "version": "0.12", "document": "commonmeta_v0.12.json"} in r.json()

def test_convert_crossref_to_datacite(tmp_path, monkeypatch):
    client = make_client(tmp_path, monkeypatch)
    r = client.post("/convert", params={"from": "crossref-xml", "to": "datacite"}, content=ELIFE)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/vnd.datacite.datacite+json")
    assert int(r.headers["X-Commonmeta-Diagnostics"]) >= 0
    assert r.json()["doi"] == "10.7554/elife.01567"
    # the conversion was logged
    assert (tmp_path / "commonmeta.log").exists()

def test_convert_strict_422(tmp_path, monkeypatch):
    client = make_client(tmp_path, monkeypatch)
    r = client.post("/convert", params={"from": "crossref-xml", "to": "csl", "strict": "true"}, content=ELIFE)
    assert r.status_code == 422
    body = r.json()
    assert body["ok"] is False
    assert body["diagnostics"]

def test_convert_malformed_400(tmp_path, monkeypatch):
    client = make_client(tmp_path, monkeypatch)
    r = client.post("/convert", params={"from": "csl", "to": "datacite"}, content=b"{not json")
    assert r.status_code == 400
    assert r.json()["diagnostics"][0]["kind"] == "MalformedInput"

def test_convert_unknown_format_404(tmp_path, monkeypatch):
    client = make_client(tmp_path, monkeypatch)
    r = client.post("/convert", params={"from": "marc21", "to": "csl"}, content=b"{}")
    assert r.status_code == 404

def test_validate(tmp_path, monkeypatch):
    client = make_client(tmp_path, monkeypatch)
    doc = {"id": "https://doi.org/10.5555/12345678", "type": "JournalArticle",
           "provenance": {"source": "commonmeta", "schemaVersion": "commonmeta-v0.12"}}
    r = client.post("/validate/commonmeta", content=json.dumps(doc))
    assert r.status_code == 200
    assert r.json() == {"ok": True, "errors": []}

    r = client.post("/validate/commonmeta", content=json.dumps({"type": "JournalArticle"}))
    assert r.status_code == 200
    errors = r.json()["errors"]
    assert r.json()["ok"] is False
    assert any(e["path"] == "/id" and e["keyword"] == "required" for e in errors)

def test_validate_unknown_and_malformed(tmp_path, monkeypatch):
    client = make_client(tmp_path, monkeypatch)
    assert client.post("/validate/marc21", content=b"{}").status_code == 404
    assert client.post("/validate/datacite", params={"version": "9.9"}, content=b"{}").status_code == 404
    assert client.post("/validate/datacite", content=b"{oops").status_code == 400
