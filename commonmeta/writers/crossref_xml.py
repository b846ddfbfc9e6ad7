from __future__ import annotations
from typing import Dict, List, Optional, Tuple
from xml.etree import ElementTree as ET

from ..config import CROSSREF_MEMBER_API
from ..models import Diagnostic, Person, Record
from ..readers.crossref_xml import CONTRIBUTOR_ROLES, LAYOUTS, Layout
from ..utils.dates import date_parts
from ..utils.normalise import doi_from_url, issn_from_url, normalise_doi, orcid_from_url

QUERY_RESULT_NS = "http://www.crossref.org/qrschema/3.0"
CROSSREF_NS = "http://www.crossref.org/xschema/1.1"

CM_TO_CROSSREF: Dict[str, str] = {}
for _name, _layout in LAYOUTS.items():
    CM_TO_CROSSREF.setdefault(_layout.type, _name)
"""Canonical type -> Crossref content type (the first layout for each type)."""

ROLES_TO_CROSSREF = {v: k for k, v in CONTRIBUTOR_ROLES.items()}


def _ensure(parent: ET.Element, path: str) -> ET.Element:
    """Find or create the element chain ``a/b/c`` under ``parent``."""
    el = parent
    for part in path.split("/"):
        if part == ".":
            continue
        child = el.find(part)
        if child is None:
            child = ET.SubElement(el, part)
        el = child
    return el


def _put(parent: ET.Element, path: Optional[str], value: Optional[str], **attrs) -> Optional[ET.Element]:
    if not path or not value:
        return None
    head, _, leaf = path.rpartition("/")
    el = ET.SubElement(_ensure(parent, head) if head else parent, leaf, attrs)
    el.text = value
    return el


def _date_element(parent: ET.Element, path: str, iso: Optional[str]):
    parts = date_parts(iso)
    if not parts:
        return
    head, _, leaf = path.rpartition("/")
    el = ET.SubElement(_ensure(parent, head) if head else parent, leaf, {"media_type": "online"})
    values = dict(zip(("year", "month", "day"), parts))
    # Crossref orders the parts month, day, year
    for name in ("month", "day"):
        if name in values:
            ET.SubElement(el, name).text = f"{values[name]:02d}"
    ET.SubElement(el, "year").text = str(values["year"])


class CrossrefXMLWriter:
    """
    Writes a record as a Crossref query result (unixsd), the same shape the
    Crossref XML reader consumes.
    """
    format = "crossref-xml"
    media_type = "application/vnd.crossref.unixsd+xml"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def write(self, record: Record) -> Tuple[bytes, List[Diagnostic]]:
        diags: List[Diagnostic] = []
        doi = doi_from_url(record.id)
        if not doi:
            diags.append(Diagnostic.error("/id", f"Crossref XML needs a DOI, got {record.id!r}", "InvalidIdentifier"))
            return b"", diags

        ctype = CM_TO_CROSSREF.get(record.type, "other")
        if ctype == "other" and record.type != "Other":
            diags.append(Diagnostic.warn("/type", f"type {record.type} has no Crossref equivalent, written as other",
                                         "UnmappableField"))
        layout = LAYOUTS[ctype]

        root = ET.Element("crossref_result", {"xmlns": QUERY_RESULT_NS, "version": "3.0"})
        result = ET.SubElement(root, "query_result")
        ET.SubElement(ET.SubElement(result, "head"), "doi_batch_id").text = "commonmeta"
        query = ET.SubElement(ET.SubElement(result, "body"), "query", {"status": "resolved"})
        ET.SubElement(query, "doi", {"type": ctype}).text = doi

        if record.publisher:
            ET.SubElement(query, "crm-item", {"name": "publisher-name", "type": "string"}).text = record.publisher.name
            if record.publisher.id and record.publisher.id.startswith(CROSSREF_MEMBER_API):
                ET.SubElement(query, "crm-item", {"name": "member-id", "type": "number"}).text = \
                    record.publisher.id[len(CROSSREF_MEMBER_API):]
        if record.date.created:
            ET.SubElement(query, "crm-item", {"name": "created", "type": "date"}).text = record.date.created
        if record.date.updated:
            ET.SubElement(query, "crm-item", {"name": "last-update", "type": "date"}).text = record.date.updated

        if layout.item is None:
            if record.titles or record.contributors:
                diags.append(Diagnostic.warn("/", "records of type other are written without a doi_record",
                                             "UnmappableField"))
        else:
            crossref = ET.SubElement(ET.SubElement(query, "doi_record"), "crossref", {"xmlns": CROSSREF_NS})
            self._container(crossref, layout, record)
            item = _ensure(crossref, layout.item)
            self._item(item, layout, record, doi, diags)

        ET.indent(root)
        return ET.tostring(root, encoding="utf-8", xml_declaration=True), diags

    def _container(self, crossref: ET.Element, layout: Layout, record: Record):
        c = record.container
        if c is None:
            return
        if layout.container_title and c.title:
            _put(crossref, layout.container_title, c.title)
        if c.identifier_type == "ISSN" and layout.issn:
            _put(crossref, layout.issn, issn_from_url(c.identifier) or c.identifier, media_type="electronic")
        if c.identifier_type == "ISBN" and layout.isbn:
            _put(crossref, layout.isbn, c.identifier, media_type="electronic")
        _put(crossref, layout.volume, c.volume)
        _put(crossref, layout.issue, c.issue)

    def _item(self, item: ET.Element, layout: Layout, record: Record, doi: str, diags: List[Diagnostic]):
        if record.language:
            item.set("language", record.language)

        if layout.title == "titles":
            titles = ET.SubElement(item, "titles")
            for i, t in enumerate(record.titles):
                if t.type is None:
                    ET.SubElement(titles, "title").text = t.title
                elif t.type == "Subtitle":
                    ET.SubElement(titles, "subtitle").text = t.title
                elif t.type == "TranslatedTitle":
                    attrs = {"language": t.language} if t.language else {}
                    ET.SubElement(titles, "original_language_title", attrs).text = t.title
                else:
                    diags.append(Diagnostic.warn(f"/titles/{i}", f"title type {t.type} was dropped",
                                                 "UnmappableField"))
        elif record.title:
            _put(item, layout.title, record.title)

        if record.contributors:
            parent = item if layout.contributors == "." else ET.SubElement(item, layout.contributors)
            for i, c in enumerate(record.contributors):
                role = next((ROLES_TO_CROSSREF[r] for r in c.contributor_roles if r in ROLES_TO_CROSSREF), "author")
                sequence = "first" if i == 0 else "additional"
                if isinstance(c, Person):
                    el = ET.SubElement(parent, "person_name", {"contributor_role": role, "sequence": sequence})
                    if c.given_name:
                        ET.SubElement(el, "given_name").text = c.given_name
                    ET.SubElement(el, "surname").text = c.family_name or c.given_name or ""
                    if c.affiliations:
                        affs = ET.SubElement(el, "affiliations")
                        for a in c.affiliations:
                            inst = ET.SubElement(affs, "institution")
                            if a.name:
                                ET.SubElement(inst, "institution_name").text = a.name
                            if a.id:
                                ET.SubElement(inst, "institution_id", {"type": "ror"}).text = a.id
                    if c.id and orcid_from_url(c.id):
                        ET.SubElement(el, "ORCID").text = c.id
                else:
                    el = ET.SubElement(parent, "organization", {"contributor_role": role, "sequence": sequence})
                    el.text = c.name

        for d in record.descriptions:
            if d.type in (None, "Abstract"):
                ab = ET.SubElement(item, "abstract", {"lang": d.language} if d.language else {})
                ET.SubElement(ab, "p").text = d.description

        _date_element(item, layout.date, record.date.published)

        if record.container and (record.container.first_page or record.container.last_page):
            pages = ET.SubElement(item, "pages")
            _put(pages, "first_page", record.container.first_page)
            _put(pages, "last_page", record.container.last_page)

        others = [i.identifier for i in record.identifiers if i.identifier_type == "Other"]
        if others:
            _put(item, "publisher_item/item_number", others[0])

        if record.subjects and layout.type == "Article":
            _put(item, "group_title", record.subjects[0].subject)

        if record.date.submitted or record.date.accepted:
            meta = _ensure(item, "crossmark/custom_metadata")
            for name, value in (("received", record.date.submitted), ("accepted", record.date.accepted)):
                if value:
                    ET.SubElement(meta, "assertion", {"name": name}).text = value

        if record.funding_references:
            prog = ET.SubElement(item, "program", {"name": "fundref"})
            for f in record.funding_references:
                group = ET.SubElement(prog, "assertion", {"name": "fundgroup"})
                funder = ET.SubElement(group, "assertion", {"name": "funder_name"})
                funder.text = f.funder_name or ""
                if f.funder_identifier:
                    ET.SubElement(funder, "assertion", {"name": "funder_identifier"}).text = f.funder_identifier
                if f.award_number:
                    ET.SubElement(group, "assertion", {"name": "award_number"}).text = f.award_number

        if record.license and record.license.url:
            prog = ET.SubElement(item, "program", {"name": "AccessIndicators"})
            ET.SubElement(prog, "license_ref", {"applies_to": "vor"}).text = record.license.url

        relations = [r for r in record.relations if not (r.type == "IsPartOf" and issn_from_url(r.id))]
        if relations:
            prog = ET.SubElement(item, "program", {"name": "relations"})
            for r in relations:
                rel_doi = doi_from_url(r.id)
                ET.SubElement(ET.SubElement(prog, "related_item"), "inter_work_relation", {
                    "relationship-type": r.type[:1].lower() + r.type[1:],
                    "identifier-type": "doi" if rel_doi else "uri",
                }).text = rel_doi or r.id

        if record.archive_locations:
            archives = ET.SubElement(item, "archive_locations")
            for name in record.archive_locations:
                ET.SubElement(archives, "archive", {"name": name})

        doi_data = ET.SubElement(item, "doi_data")
        ET.SubElement(doi_data, "doi").text = doi
        if record.url:
            ET.SubElement(doi_data, "resource").text = record.url
        if record.files:
            coll = ET.SubElement(doi_data, "collection", {"property": "text-mining"})
            for f in record.files:
                attrs = {"mime_type": f.mime_type} if f.mime_type else {}
                ET.SubElement(ET.SubElement(coll, "item"), "resource", attrs).text = f.url

        if record.references:
            cites = ET.SubElement(item, "citation_list")
            for r in record.references:
                cit = ET.SubElement(cites, "citation", {"key": r.key})
                ref_doi = doi_from_url(r.id) if r.id and normalise_doi(r.id) else None
                _put(cit, "doi", ref_doi)
                _put(cit, "article_title", r.title)
                _put(cit, "cYear", r.publication_year)
                _put(cit, "unstructured_citation", r.unstructured)
