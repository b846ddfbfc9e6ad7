import json
from pathlib import Path

import pytest

from commonmeta.errors import MalformedInput, UnknownSchema
from commonmeta.models import Organization, Person
from commonmeta.readers import READERS, get_reader
from commonmeta.schemas import validator

FIXTURES = Path(__file__).parent / "fixtures"

def _read(fmt: str, name: str):
    return get_reader(fmt).read((FIXTURES / name).read_bytes())

def _kinds(diags):
    return {d.kind for d in diags}

def _assert_valid_commonmeta(record):
    """Every record a reader produces must serialize to valid commonmeta JSON."""
    result = validator("commonmeta").validate(record.to_json())
    assert result.ok, result.errors

# ---- crossref-xml ----

def test_crossref_elife_identity():
    """
    Tests that a journal-article query result (REST spelling of the type) yields the DOI URL and landing page.
    """
    record, diags = _read("crossref-xml", "elife-01567.xml")
    assert record.id == "https://doi.org/10.7554/elife.01567"
    assert record.url == "https://elifesciences.org/articles/01567"
    assert record.type == "JournalArticle"
    assert not [d for d in diags if d.severity == "error"]
    _assert_valid_commonmeta(record)

def test_crossref_elife_metadata():
    record, _ = _read("crossref-xml", "elife-01567.xml")
    assert record.title.startswith("Automated quantitative histology")
    authors = [c for c in record.contributors if "Author" in c.contributor_roles]
    assert [a.family_name for a in authors] == ["Sankar", "Hardtke"]
    assert authors[0].affiliations[0].name == "University of Lausanne"
    assert authors[1].id == "https://orcid.org/0000-0002-0000-0001"
    editors = [c for c in record.contributors if "Editor" in c.contributor_roles]
    assert editors[0].family_name == "Bergmann"
    assert record.date.published == "2014-02-11"
    assert record.date.updated == "2022-03-26T09:21:50Z"
    assert record.publisher.name == "eLife Sciences Publications, Ltd"
    assert record.publisher.id == "https://api.crossref.org/members/4374"
    assert record.container.title == "eLife"
    assert record.container.identifier == "2050-084X"
    assert record.container.volume == "3"
    assert record.relations[0].type == "IsPartOf"
    assert record.license.id == "CC-BY-3.0"
    assert record.language == "en"
    assert record.funding_references[0].funder_name == "SystemsX"
    assert record.funding_references[0].award_number == "2010/110"
    assert [r.key for r in record.references] == ["bib1", "bib2"]
    assert record.references[0].id == "https://doi.org/10.1038/nature01707"
    assert record.provenance.source == "crossref-xml"

def test_crossref_not_a_query_result():
    with pytest.raises(MalformedInput):
        get_reader("crossref-xml").read(b"<doi_batch><head/></doi_batch>")

def test_crossref_malformed_xml():
    with pytest.raises(MalformedInput) as exc:
        get_reader("crossref-xml").read(b"<crossref_result><query>")
    assert exc.value.diagnostics[0].kind == "MalformedInput"

def test_crossref_unknown_type():
    """
    Tests that an unknown Crossref type falls back to Other with an UnknownType warning.
    """
    xml = (b'<crossref_result><query_result><body><query status="resolved">'
           b'<doi type="grant">10.5555/grant.1</doi></query></body></query_result></crossref_result>')
    record, diags = get_reader("crossref-xml").read(xml)
    assert record.type == "Other"
    assert record.id == "https://doi.org/10.5555/grant.1"
    assert "UnknownType" in _kinds(diags)

# ---- datacite ----

def test_datacite_dataset():
    record, diags = _read("datacite", "datacite-dataset.json")
    assert record.id == "https://doi.org/10.5061/dryad.8515"
    assert record.type == "Dataset"
    assert record.title == "Data from: A new malaria agent in African hominids."
    first, second, org = record.contributors[:3]
    assert isinstance(first, Person) and first.family_name == "Ollomo"
    assert second.given_name == "Patrick" and second.id == "https://orcid.org/0000-0002-7039-9911"
    assert isinstance(org, Organization) and org.id == "https://ror.org/03vek6s52"
    curator = record.contributors[3]
    assert curator.contributor_roles == ("DataCuration",)
    assert record.date.published == "2011"
    assert record.date.available == "2011-02-01T17:22:41Z"
    assert record.publisher.name == "Dryad"
    assert record.license.id == "CC0-1.0"
    assert record.references[0].id == "https://doi.org/10.1371/journal.ppat.1000446"
    assert record.relations[0].type == "HasPart"
    assert record.funding_references[0].funder_identifier_type == "ROR"
    assert record.provider == "DataCite"
    assert "UnmappableField" in _kinds(diags)  # sizes
    _assert_valid_commonmeta(record)

def test_datacite_unknown_resource_type():
    doc = {"doi": "10.5555/x", "types": {"resourceTypeGeneral": "Hologram"}, "titles": [{"title": "x"}]}
    record, diags = get_reader("datacite").read(json.dumps(doc))
    assert record.type == "Other"
    assert "UnknownType" in _kinds(diags)

# ---- csl ----

def test_csl_article():
    record, diags = _read("csl", "csl-article.json")
    assert record.id == "https://doi.org/10.1038/nature12373"
    assert record.type == "JournalArticle"
    assert record.url == "https://www.nature.com/articles/nature12373"
    assert record.date.published == "2013-07-31"
    assert record.container.title == "Nature"
    assert (record.container.first_page, record.container.last_page) == ("54", "58")
    assert isinstance(record.contributors[2], Organization)
    assert record.contributors[1].given_name == "P. C."
    assert record.publisher.name.startswith("Springer")
    assert any(d.path == "/call-number" and d.kind == "UnmappableField" for d in diags)
    _assert_valid_commonmeta(record)

def test_csl_array_warns_multiple_items():
    items = [{"id": "a", "type": "book", "DOI": "10.5555/a"}, {"id": "b", "type": "book"}]
    record, diags = get_reader("csl").read(json.dumps(items))
    assert record.id == "https://doi.org/10.5555/a"
    assert record.type == "Book"
    assert "MultipleItems" in _kinds(diags)

def test_csl_not_json():
    with pytest.raises(MalformedInput):
        get_reader("csl").read(b"not json at all")

# ---- codemeta ----

def test_codemeta_software():
    record, diags = _read("codemeta", "codemeta.json")
    assert record.id == "https://doi.org/10.5281/zenodo.1234567"
    assert record.type == "Software"
    assert record.title.startswith("rdataretriever")
    assert record.license.id == "MIT"
    assert record.version == "3.1.0"
    assert record.date.published == "2021-02-15"
    assert record.date.created == "2015-03-24"
    assert [s.subject for s in record.subjects] == ["data", "ecology", "r-package"]
    assert record.contributors[0].id == "https://orcid.org/0000-0001-7105-5808"
    assert record.contributors[1].affiliations[0].name == "University of Florida"
    assert record.contributors[-1].contributor_roles == ("Maintainer",)
    assert any(i.identifier_type == "URL" for i in record.identifiers)
    assert "UnmappableField" in _kinds(diags)  # programmingLanguage
    assert record.provenance.schema_version == "codemeta-v3.0"
    _assert_valid_commonmeta(record)

# ---- cff ----

def test_cff_software():
    record, diags = _read("cff", "CITATION.cff")
    assert record.id == "https://doi.org/10.5281/zenodo.1184077"
    assert record.type == "Software"
    assert record.url == "https://github.com/citation-file-format/ruby-cff"
    person, entity = record.contributors
    assert person.family_name == "Haines"
    assert person.id == "https://orcid.org/0000-0002-9538-7919"
    assert person.affiliations[0].name == "The University of Manchester, UK"
    assert isinstance(entity, Organization)
    assert record.date.published == "2021-08-18"
    assert record.license.id == "Apache-2.0"
    assert record.version == "0.9.0"
    assert record.references[0].id == "https://doi.org/10.5281/zenodo.1003149"
    assert any(d.path == "/commit" for d in diags)
    _assert_valid_commonmeta(record)

def test_cff_not_a_mapping():
    with pytest.raises(MalformedInput):
        get_reader("cff").read(b"- just\n- a list\n")

# ---- bibtex ----

def test_bibtex_article():
    record, diags = _read("bibtex", "article.bib")
    assert record.id == "https://doi.org/10.7554/elife.01567"
    assert record.type == "JournalArticle"
    assert record.title == ("Automated quantitative histology reveals vascular morphodynamics "
                            "during Arabidopsis hypocotyl secondary growth")
    assert [c.family_name for c in record.contributors] == ["Sankar", "Nieminen", "Ragni", "Hardtke"]
    assert record.contributors[3].given_name == "Christian S"
    assert record.date.published == "2014-02"
    assert record.container.title == "eLife"
    assert record.container.identifier == "2050-084X"
    assert record.license.id == "CC-BY-3.0"
    assert [s.subject for s in record.subjects] == ["histology", "Arabidopsis"]
    kinds = _kinds(diags)
    assert "MultipleItems" in kinds
    assert "UnmappableField" in kinds  # note
    _assert_valid_commonmeta(record)

def test_bibtex_organization_author_and_latex():
    """
    Tests that a double-braced author becomes an Organization and LaTeX escapes are decoded.
    """
    bib = (FIXTURES / "article.bib").read_text(encoding="utf-8").split("@misc", 1)[1]
    record, _ = get_reader("bibtex").read("@misc" + bib)
    assert record.type == "Other"
    assert isinstance(record.contributors[0], Organization)
    assert record.contributors[0].name == "World Health Organization"
    assert "über" in record.title
    assert "{" not in record.title

def test_bibtex_empty_input():
    with pytest.raises(MalformedInput):
        get_reader("bibtex").read(b"% nothing here\n")

# ---- invenio-rdm ----

def test_invenio_software():
    record, diags = _read("invenio-rdm", "invenio-rdm.json")
    assert record.id == "https://doi.org/10.5281/zenodo.7752775"
    assert record.url == "https://zenodo.org/records/7752775"
    assert record.type == "Software"
    author = record.contributors[0]
    assert author.id == "https://orcid.org/0000-0003-1419-2405"
    assert author.affiliations[0].id == "https://ror.org/04wxnsj81"
    host = record.contributors[1]
    assert isinstance(host, Organization)
    assert host.contributor_roles == ("HostingInstitution",)
    assert record.date.published == "2023-03-20"
    assert record.date.updated == "2023-03-20T08:54:10Z"
    assert record.license.id == "MIT"
    assert record.language == "en"
    assert record.relations[0].type == "IsSupplementTo"
    _assert_valid_commonmeta(record)

def test_invenio_requires_metadata():
    with pytest.raises(MalformedInput):
        get_reader("invenio-rdm").read(b'{"id": "abc"}')

# ---- commonmeta & registry ----

def test_commonmeta_reader_keeps_fields():
    doc = {
        "id": "https://doi.org/10.5555/12345678",
        "type": "JournalArticle",
        "titles": [{"title": "Toward a Unified Theory of High-Energy Metaphysics"}],
        "contributors": [{"type": "Person", "givenName": "Josiah", "familyName": "Carberry",
                          "contributorRoles": ["Author"]}],
        "date": {"published": "2008-08-13"},
        "provenance": {"source": "commonmeta", "schemaVersion": "commonmeta-v0.12"},
    }
    record, diags = get_reader("commonmeta").read(json.dumps(doc))
    assert diags == []
    assert record.to_dict() == doc

def test_commonmeta_bad_contributor():
    doc = {"id": "https://example.org/x", "type": "Other", "contributors": [{"type": "Robot", "name": "R2"}]}
    record, diags = get_reader("commonmeta").read(json.dumps(doc))
    assert record.contributors == ()
    assert diags[0].kind == "InvalidContributor" and diags[0].severity == "error"

def test_missing_identifier_is_an_error():
    record, diags = get_reader("csl").read(json.dumps({"type": "book", "title": "No id"}))
    assert record.id == ""
    assert any(d.kind == "MissingIdentifier" and d.severity == "error" for d in diags)

def test_reader_registry():
    assert set(READERS) == {"crossref-xml", "datacite", "csl", "codemeta", "cff", "bibtex",
                            "invenio-rdm", "commonmeta"}
    for fmt, reader in READERS.items():
        assert reader.accepts(fmt)
    with pytest.raises(UnknownSchema):
        get_reader("ris")
