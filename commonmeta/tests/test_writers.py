import json
from dataclasses import replace
from pathlib import Path

import pytest
import yaml

from commonmeta.errors import UnknownSchema
from commonmeta.models import Dates, Identifier, Organization, Person, Publisher, Record, Title
from commonmeta.readers import get_reader
from commonmeta.schemas import validator
from commonmeta.writers import MEDIA_TYPES, WRITERS, get_writer

FIXTURES = Path(__file__).parent / "fixtures"

def _read(fmt: str, name: str):
    record, _ = get_reader(fmt).read((FIXTURES / name).read_bytes())
    return record

def _write(fmt: str, record: Record):
    return get_writer(fmt).write(record)

def _kinds(diags):
    return {d.kind for d in diags}

def _core(record: Record):
    """The fields every format carries: identity, type, title, first author, year."""
    first = record.contributors[0] if record.contributors else None
    family = first.family_name if isinstance(first, Person) else getattr(first, "name", None)
    return record.id, record.type, record.title, family, (record.date.published or "")[:4]

@pytest.fixture(scope="module")
def elife():
    return _read("crossref-xml", "elife-01567.xml")

@pytest.fixture(scope="module")
def software():
    return _read("cff", "CITATION.cff")

# ---- registry ----

def test_writer_registry():
    assert set(WRITERS) == {"crossref-xml", "datacite", "csl", "codemeta", "cff", "bibtex",
                            "invenio-rdm", "commonmeta"}
    assert MEDIA_TYPES["bibtex"] == "application/x-bibtex"
    for fmt, w in WRITERS.items():
        assert w.accepts(fmt)

def test_unknown_writer():
    with pytest.raises(UnknownSchema):
        get_writer("endnote")

# ---- csl ----

def test_csl_journal_article(elife):
    """
    Tests that a journal article becomes an article-journal item with container fields.
    """
    out, diags = _write("csl", elife)
    item = json.loads(out)
    assert item["id"] == "https://doi.org/10.7554/elife.01567"
    assert item["type"] == "article-journal"
    assert item["DOI"] == "10.7554/elife.01567"
    assert item["URL"] == "https://elifesciences.org/articles/01567"
    assert item["author"][0]["family"] == "Sankar"
    assert item["editor"][0]["family"] == "Bergmann"
    assert item["issued"] == {"date-parts": [[2014, 2, 11]]}
    assert item["container-title"] == "eLife"
    assert item["ISSN"] == "2050-084X"
    assert item["language"] == "en"
    # CSL has nowhere to put funding
    assert any(d.path == "/fundingReferences" for d in diags)
    result = validator("csl-data").validate(out)
    assert result.ok, result.errors

def test_csl_organization_author():
    record = Record(id="https://example.org/report", type="Report",
                    contributors=(Organization(name="World Health Organization", contributor_roles=("Author",)),))
    item = json.loads(_write("csl", record)[0])
    assert item["author"] == [{"literal": "World Health Organization"}]
    assert item["type"] == "report"

# ---- datacite ----

def test_datacite_journal_article(elife):
    out, diags = _write("datacite", elife)
    doc = json.loads(out)
    assert doc["doi"] == "10.7554/elife.01567"
    assert doc["types"]["resourceTypeGeneral"] == "JournalArticle"
    assert doc["creators"][0]["familyName"] == "Sankar"
    assert doc["creators"][0]["nameType"] == "Personal"
    assert doc["contributors"][0]["contributorType"] == "Editor"
    assert str(doc["publicationYear"]) == "2014"
    assert doc["rightsList"][0]["rightsIdentifier"] == "CC-BY-3.0"
    assert doc["fundingReferences"][0]["funderName"] == "SystemsX"
    assert {"relatedIdentifier": "10.1038/nature01707", "relatedIdentifierType": "DOI",
            "relationType": "References"} in doc["relatedIdentifiers"]
    assert doc["schemaVersion"] == "http://datacite.org/schema/kernel-4"
    result = validator("datacite").validate(out)
    assert result.ok, result.errors

def test_datacite_unavailable_fallbacks():
    """
    Tests that a bare record still yields the required DataCite properties, each with a warning.
    """
    out, diags = _write("datacite", Record(id="https://doi.org/10.5555/bare"))
    doc = json.loads(out)
    assert doc["creators"] == [{"name": "(:unav)", "nameType": "Organizational"}]
    assert doc["titles"] == [{"title": "(:unav)"}]
    assert doc["publisher"] == {"name": "(:unav)"}
    assert "publicationYear" not in doc
    assert {"MissingCreator", "MissingTitle", "MissingPublisher", "MissingDate"} <= _kinds(diags)
    assert all(d.severity == "warn" for d in diags)

def test_datacite_resource_type_keeps_canonical_type():
    """
    Tests that a type sharing a general type with another canonical type is spelled out.
    """
    record = Record(id="https://doi.org/10.5555/db", type="Database", titles=(Title("A database"),))
    doc = json.loads(_write("datacite", record)[0])
    assert doc["types"] == {"resourceTypeGeneral": "Dataset", "resourceType": "Database"}

def test_datacite_organization_creator_ror(software):
    record = replace(software, contributors=(
        Organization(name="Harvard University", id="https://ror.org/03vek6s52", contributor_roles=("Author",)),))
    doc = json.loads(_write("datacite", record)[0])
    assert doc["creators"][0]["nameIdentifiers"][0]["nameIdentifierScheme"] == "ROR"

# ---- crossref-xml ----

def test_crossref_requires_doi():
    out, diags = _write("crossref-xml", Record(id="https://example.org/post/1", type="Article"))
    assert out == b""
    assert diags[0].severity == "error"
    assert diags[0].kind == "InvalidIdentifier"

def test_crossref_journal_article(elife):
    out, diags = _write("crossref-xml", elife)
    text = out.decode("utf-8")
    assert text.startswith("<?xml")
    assert "<crossref_result" in text
    assert "10.7554/elife.01567" in text
    assert "<surname>Sankar</surname>" in text
    assert not [d for d in diags if d.severity == "error"]
    result = validator("crossref-xml").validate(out)
    assert result.ok, result.errors

# ---- cff ----

def test_cff_software(software):
    out, diags = _write("cff", software)
    doc = yaml.safe_load(out)
    assert doc["cff-version"] == "1.2.0"
    assert doc["type"] == "software"
    assert doc["doi"] == "10.5281/zenodo.1184077"
    assert doc["license"] == "Apache-2.0"
    assert doc["authors"][0]["family-names"]
    result = validator("cff").validate(out)
    assert result.ok, result.errors

def test_cff_partial_date_and_type_warn():
    record = Record(id="https://doi.org/10.5555/x", type="JournalArticle", titles=(Title("T"),),
                    date=Dates(published="2014"))
    out, diags = _write("cff", record)
    doc = yaml.safe_load(out)
    assert "date-released" not in doc
    assert {d.path for d in diags} == {"/type", "/date/published"}

# ---- bibtex ----

def test_bibtex_article(elife):
    out, diags = _write("bibtex", elife)
    text = out.decode("utf-8")
    assert "@article{10.7554_elife.01567," in text
    assert "Sankar" in text
    assert "eLife" in text
    assert not diags

def test_bibtex_organization_kept_whole():
    record = Record(id="https://example.org/who", type="Report", titles=(Title("Report"),),
                    publisher=Publisher("WHO"),
                    contributors=(Organization(name="World Health Organization", contributor_roles=("Author",)),))
    text = _write("bibtex", record)[0].decode("utf-8")
    assert "{World Health Organization}" in text
    assert "institution" in text

# ---- codemeta ----

def test_codemeta_software(software):
    out, diags = _write("codemeta", software)
    doc = json.loads(out)
    assert doc["@type"] == "SoftwareSourceCode"
    assert doc["@id"] == "https://doi.org/10.5281/zenodo.1184077"
    assert doc["license"] == "https://spdx.org/licenses/Apache-2.0"
    assert doc["author"]

def test_codemeta_drops_references(elife):
    _, diags = _write("codemeta", elife)
    assert any(d.path == "/references" for d in diags)

# ---- invenio-rdm ----

def test_invenio_journal_article(elife):
    out, diags = _write("invenio-rdm", elife)
    doc = json.loads(out)
    assert doc["pids"]["doi"]["identifier"] == "10.7554/elife.01567"
    meta = doc["metadata"]
    assert meta["resource_type"] == {"id": "publication-article"}
    assert meta["publication_date"] == "2014-02-11"
    assert meta["languages"] == [{"id": "eng"}]
    assert meta["rights"][0]["id"] == "cc-by-3.0"
    assert doc["custom_fields"]["journal:journal"]["title"] == "eLife"
    result = validator("invenio-rdm").validate(out)
    assert result.ok, result.errors

def test_invenio_fallbacks():
    doc = json.loads(_write("invenio-rdm", Record(id="https://doi.org/10.5555/bare"))[0])
    assert doc["metadata"]["title"] == "No title"
    assert doc["metadata"]["creators"][0]["person_or_org"]["name"] == "No author"

# ---- commonmeta ----

def test_commonmeta_output_is_canonical(elife):
    out, diags = _write("commonmeta", elife)
    assert out == elife.to_json()
    assert diags == []
    result = validator("commonmeta").validate(out)
    assert result.ok, result.errors

# ---- round trips ----

@pytest.mark.parametrize("fmt", ["crossref-xml", "datacite", "csl", "bibtex", "invenio-rdm", "commonmeta"])
def test_round_trip_keeps_core_fields(elife, fmt):
    """
    Tests that writing then reading back keeps identity, type, title, first author and year.
    """
    out, _ = _write(fmt, elife)
    back, diags = get_reader(fmt).read(out)
    assert _core(back) == _core(elife)
    assert not [d for d in diags if d.severity == "error"]

@pytest.mark.parametrize("fmt", ["cff", "codemeta"])
def test_software_round_trip(software, fmt):
    out, _ = _write(fmt, software)
    back, _ = get_reader(fmt).read(out)
    assert back.id == software.id
    assert back.type == "Software"
    assert back.title == software.title

def _cycle(fmt: str, record: Record) -> Record:
    back, _ = get_reader(fmt).read(_write(fmt, record)[0])
    return back

@pytest.mark.parametrize("fmt,name", [
    ("invenio-rdm", "invenio-rdm.json"),
    ("cff", "CITATION.cff"),
    ("bibtex", "article.bib"),
])
def test_native_round_trip_keeps_every_field(fmt, name):
    """
    Tests that a record read from a format is unchanged after writing it back to that format, twice.
    """
    record = _read(fmt, name)
    once = _cycle(fmt, record)
    assert once == record
    assert _cycle(fmt, once) == once

def test_invenio_repeated_round_trips_keep_identifiers():
    record = Record(id="https://example.org/records/42", type="Dataset", titles=(Title("Field data"),),
                    url="https://example.org/records/42/view",
                    identifiers=(Identifier("https://example.org/records/42", "URL"),
                                 Identifier("https://archive.example.org/42", "URL")))
    current = record
    for _ in range(3):
        current = _cycle("invenio-rdm", current)
        assert current.id == record.id
        assert current.url == record.url
        assert current.identifiers == record.identifiers

def test_invenio_landing_page_is_a_link(elife):
    doc = json.loads(_write("invenio-rdm", elife)[0])
    assert doc["links"] == {"self_html": "https://elifesciences.org/articles/01567"}
    assert all(i["identifier"] != elife.url for i in doc["metadata"].get("identifiers", []))

@pytest.mark.parametrize("fmt", ["cff", "bibtex", "invenio-rdm"])
def test_non_doi_identity_survives(fmt):
    record = Record(id="https://example.org/tools/map_maker", type="Software", titles=(Title("map maker"),))
    out, diags = _write(fmt, record)
    back, _ = get_reader(fmt).read(out)
    assert back.id == record.id
    assert not [d for d in diags if d.path == "/id"]

@pytest.mark.parametrize("fmt", ["cff", "bibtex"])
def test_non_doi_identity_without_a_field_warns(fmt):
    """
    Tests that an identity the format cannot hold next to the landing page is reported, not silently lost.
    """
    record = Record(id="https://example.org/tools/map_maker", url="https://maps.example.org",
                    type="Software", titles=(Title("map maker"),))
    out, diags = _write(fmt, record)
    assert [d.kind for d in diags if d.path == "/id"] == ["UnmappableField"]
    back, _ = get_reader(fmt).read(out)
    assert back.url == "https://maps.example.org"

def test_bibtex_literal_braces_and_unicode_survive():
    record = Record(id="https://doi.org/10.5555/braces", type="JournalArticle",
                    titles=(Title("Ü – ñ {x}"),))
    out, diags = _write("bibtex", record)
    assert "Ü – ñ \\{x\\}" in out.decode("utf-8")
    assert not diags
    back, _ = get_reader("bibtex").read(out)
    assert back.title == "Ü – ñ {x}"

def test_bibtex_unbalanced_brace_dropped_with_warning():
    record = Record(id="https://doi.org/10.5555/brace", type="JournalArticle", titles=(Title("open {set"),))
    out, diags = _write("bibtex", record)
    assert [d.path for d in diags] == ["/titles/0/title"]
    assert get_reader("bibtex").read(out)[0].title == "open set"

def test_bibtex_url_written_verbatim():
    record = Record(id="https://doi.org/10.5555/under_score", type="JournalArticle", titles=(Title("T"),),
                    url="https://example.org/a_b%20c")
    text = _write("bibtex", record)[0].decode("utf-8")
    assert "https://example.org/a_b%20c" in text
    assert "10.5555/under_score" in text
    back = get_reader("bibtex").read(text)[0]
    assert back.url == "https://example.org/a_b%20c"
    assert back.id == "https://doi.org/10.5555/under_score"
