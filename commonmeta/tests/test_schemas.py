import json

import pytest

from commonmeta.errors import MalformedInput, UnknownSchema
from commonmeta.models import RECORD_TYPES
from commonmeta.schemas import available_schemas, load_schema, validator

def _minimal(**kw):
    doc = {"id": "https://doi.org/10.5555/12345678", "type": "JournalArticle",
           "provenance": {"source": "commonmeta", "schemaVersion": "commonmeta-v0.12"}}
    doc.update(kw)
    return json.dumps(doc).encode()

def test_valid_minimal_record():
    result = validator("commonmeta").validate(_minimal())
    assert result.ok
    assert result.errors == ()

def test_empty_id_is_rejected():
    """
    Tests that a record with an empty id fails validation with an error pointing at /id.
    """
    result = validator("commonmeta").validate(_minimal(id=""))
    assert result.ok is False
    assert any("id" in e.path for e in result.errors)

def test_missing_id_points_at_id():
    doc = json.loads(_minimal())
    del doc["id"]
    result = validator("commonmeta").validate(json.dumps(doc))
    assert not result.ok
    assert any(e.path == "/id" and e.keyword == "required" for e in result.errors)

def test_bad_contributor_type():
    """
    Tests that errors inside nested arrays carry the full JSON Pointer.
    """
    result = validator("commonmeta").validate(_minimal(contributors=[{"type": "Robot", "name": "R2"}]))
    assert not result.ok
    assert any(e.path.startswith("/contributors/0") for e in result.errors)

def test_type_enum_matches_record_types():
    schema = load_schema("commonmeta")
    assert tuple(schema["properties"]["type"]["enum"]) == RECORD_TYPES

def test_validator_cache():
    """
    Tests that validators are built once and reused for the same name and version.
    """
    assert validator("datacite") is validator("datacite", "4.5")
    assert validator("commonmeta", "v0.12") is validator("commonmeta")

def test_unknown_schema():
    with pytest.raises(UnknownSchema):
        validator("marcxml")
    with pytest.raises(UnknownSchema):
        validator("commonmeta", "0.1")

def test_malformed_json():
    with pytest.raises(MalformedInput):
        validator("commonmeta").validate(b"{not json")

def test_registry_lists_every_schema():
    names = {s["name"] for s in available_schemas()}
    assert names == {"commonmeta", "csl-data", "datacite", "invenio-rdm", "cff", "crossref-xml"}

def test_cff_validates_yaml():
    doc = (b"cff-version: 1.2.0\nmessage: If you use this software, please cite it.\n"
           b"title: demo\nauthors:\n  - family-names: Doe\n    given-names: John\n")
    assert validator("cff").validate(doc).ok
