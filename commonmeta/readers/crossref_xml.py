from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional
from xml.etree import ElementTree as ET

from ..config import CROSSREF_MEMBER_API
from ..errors import MalformedInput
from ..models import (
    CONTAINER_TYPES, Container, Dates, Description, Diagnostic, File,
    FundingReference, Identifier, Publisher, Reference, Relation, Subject,
    Title,
)
from ..utils.dates import iso_from_parts
from ..utils.normalise import issn_as_url, normalise_doi, normalise_id
from ..utils.xml import parse_xml, text
from ..vocabularies.ror import display_name, find_by_funder_id
from ._common import Context, affiliation, contributor, license_from


@dataclass(frozen=True)
class Layout:
    """
    Where one Crossref content type keeps its metadata.

    ``item`` and the container paths are relative to ``doi_record/crossref``;
    ``title``, ``contributors`` and ``date`` are relative to the item.
    """
    type: str
    item: Optional[str]
    title: str = "titles"
    contributors: str = "contributors"
    date: str = "publication_date"
    container_title: Optional[str] = None
    issn: Optional[str] = None
    isbn: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None


LAYOUTS: Dict[str, Layout] = {
    "journal_article": Layout(
        "JournalArticle", "journal/journal_article",
        container_title="journal/journal_metadata/full_title",
        issn="journal/journal_metadata/issn",
        volume="journal/journal_issue/journal_volume/volume",
        issue="journal/journal_issue/issue",
    ),
    "journal_issue": Layout(
        "JournalIssue", "journal/journal_issue",
        container_title="journal/journal_metadata/full_title",
        issn="journal/journal_metadata/issn",
        volume="journal/journal_issue/journal_volume/volume",
        issue="journal/journal_issue/issue",
    ),
    "journal_title": Layout("Journal", "journal/journal_metadata", title="full_title",
                            issn="journal/journal_metadata/issn"),
    "posted_content": Layout("Article", "posted_content", date="posted_date"),
    "book_title": Layout("Book", "book/book_metadata", isbn="book/book_metadata/isbn"),
    "book_content": Layout(
        "BookChapter", "book/content_item",
        container_title="book/book_metadata/titles/title",
        isbn="book/book_metadata/isbn",
    ),
    "conference_paper": Layout(
        "ProceedingsArticle", "conference/conference_paper",
        container_title="conference/proceedings_metadata/proceedings_title",
        isbn="conference/proceedings_metadata/isbn",
    ),
    "conference_title": Layout("Proceedings", "conference/proceedings_metadata", title="proceedings_title",
                               isbn="conference/proceedings_metadata/isbn"),
    "report-paper_title": Layout("Report", "report-paper/report-paper_metadata",
                                 isbn="report-paper/report-paper_metadata/isbn"),
    "standard_title": Layout("Standard", "standard/standard_metadata"),
    "dissertation": Layout("Dissertation", "dissertation", contributors=".", date="approval_date",
                           isbn="dissertation/isbn"),
    "database": Layout("Database", "database/database_metadata", date="database_date/creation_date"),
    "dataset": Layout(
        "Dataset", "database/dataset", date="database_date/creation_date",
        container_title="database/database_metadata/titles/title",
    ),
    "peer_review": Layout("PeerReview", "peer_review", date="review_date"),
    "component": Layout("Component", "sa_component/component_list/component"),
    "other": Layout("Other", None),
}
"""Crossref content type -> extraction layout."""

TYPE_ALIASES = {
    "journal-article": "journal_article",
    "posted-content": "posted_content",
    "book-chapter": "book_content",
    "book": "book_title",
    "proceedings-article": "conference_paper",
    "proceedings": "conference_title",
    "report-paper": "report-paper_title",
    "report": "report-paper_title",
    "standard": "standard_title",
    "peer-review": "peer_review",
}
"""Crossref REST API spellings of the content types."""

CONTRIBUTOR_ROLES = {
    "author": "Author",
    "editor": "Editor",
    "chair": "Chair",
    "reviewer": "Reviewer",
    "review-assistant": "ReviewAssistant",
    "stats-reviewer": "StatsReviewer",
    "reviewer-external": "ReviewerExternal",
    "reader": "Reader",
    "translator": "Translator",
}

UNMAPPED = ("component_list", "version_info", "scn_policies")


def crossref_type(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    v = value.strip().lower()
    return TYPE_ALIASES.get(v, v)


def _pick(elements: List[ET.Element], attr: str, preferred: str) -> Optional[ET.Element]:
    for el in elements:
        if el.get(attr) == preferred:
            return el
    return elements[0] if elements else None


def _date(el: Optional[ET.Element]) -> Optional[str]:
    if el is None:
        return None
    return iso_from_parts(text(el, "year"), text(el, "month"), text(el, "day"))


def _relation_type(value: str) -> str:
    return value[:1].upper() + value[1:]


class CrossrefXMLReader:
    """
    Reads Crossref query results (unixsd XML) into commonmeta records.
    """
    format = "crossref-xml"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def parse(self, data: bytes | str) -> ET.Element:
        root = parse_xml(data)
        if root.find(".//query") is None and root.tag != "query":
            msg = "not a Crossref query result: no <query> element"
            raise MalformedInput(msg, [Diagnostic.error("/", msg, "MalformedInput")])
        return root

    def read(self, data: bytes | str):
        return self.model(self.parse(data))

    def model(self, root: ET.Element):
        """
        Map a parsed query result to a record.

        Args:
            root (ET.Element): Namespace-free ``crossref_result`` (or ``query``) element.

        Returns:
            tuple[Record, list[Diagnostic]]
        """
        version = root.get("version") or "3.0"
        ctx = Context(self.format, f"crossref-xml-v{version}")
        query = root if root.tag == "query" else root.find(".//query")

        doi_el = query.find("doi")
        raw_type = doi_el.get("type") if doi_el is not None else None
        ctype = crossref_type(raw_type)
        layout = LAYOUTS.get(ctype or "")
        if layout is None:
            if raw_type:
                ctx.warn("/query/doi/@type", f"unknown type {raw_type!r}, using Other", "UnknownType")
            layout = LAYOUTS["other"]

        crm = {el.get("name"): text(el) for el in query.findall("crm-item")}
        crossref = query.find("doi_record/crossref")
        item = crossref.find(layout.item) if crossref is not None and layout.item else None
        if layout.item and item is None:
            ctx.warn("/query/doi_record", f"no <{layout.item}> element for type {ctype}", "MissingElement")

        def at(path: Optional[str]) -> Optional[ET.Element]:
            if crossref is None or not path:
                return None
            return crossref.find(path)

        # identity
        doi = text(item, "doi_data/doi") if item is not None else None
        record_id = normalise_doi(doi) or normalise_doi(text(doi_el))
        url = text(item, "doi_data/resource") if item is not None else None
        identifiers = [Identifier(record_id, "DOI")] if record_id else []
        item_number = text(item, "publisher_item/item_number") if item is not None else None
        if item_number:
            identifiers.append(Identifier(item_number, "Other"))

        titles: List[Title] = []
        contributors = []
        descriptions: List[Description] = []
        references: List[Reference] = []
        relations: List[Relation] = []
        funding: List[FundingReference] = []
        files: List[File] = []
        archive: List[str] = []
        subjects: List[Subject] = []
        license = None
        dates: Dict[str, Optional[str]] = {}
        first_page = last_page = None

        if item is not None:
            titles = self._titles(item, layout)
            contributors = self._contributors(item, layout, ctx)
            d = item.findall(layout.date)
            dates["published"] = _date(_pick(d, "media_type", "online"))
            if dates["published"] is None and layout.container_title:
                # chapters and papers may only carry the date of their container
                dates["published"] = _date(_pick(list(crossref.iter("publication_date")), "media_type", "online"))
            first_page = text(item, "pages/first_page")
            last_page = text(item, "pages/last_page")
            for ab in item.findall("abstract"):
                body = text(ab)
                if body:
                    descriptions.append(Description(body, "Abstract", ab.get("lang")))
            license, funding, relations = self._programs(item, ctx)
            for a in item.findall("crossmark/custom_metadata/assertion"):
                if a.get("name") == "received":
                    dates["submitted"] = ctx.date(text(a), "/crossmark/received")
                elif a.get("name") == "accepted":
                    dates["accepted"] = ctx.date(text(a), "/crossmark/accepted")
            archive = [a.get("name") for a in item.findall("archive_locations/archive") if a.get("name")]
            for res in item.findall("doi_data/collection/item/resource"):
                if text(res):
                    files.append(File(text(res), res.get("mime_type")))
            references = self._references(item)
            group = text(item, "group_title")
            if group:
                subjects.append(Subject(group))
            ctx.unmapped({el.tag: el for el in item}, UNMAPPED, "/item")

        dates["updated"] = ctx.date(crm.get("last-update"), "/crm-item/last-update")
        dates["created"] = ctx.date(crm.get("created"), "/crm-item/created")

        # container
        container = None
        container_title = text(at(layout.container_title))
        issn = isbn = None
        if layout.issn:
            issn = text(_pick(crossref.findall(layout.issn) if crossref is not None else [], "media_type", "electronic"))
        if layout.isbn:
            isbn = text(_pick(crossref.findall(layout.isbn) if crossref is not None else [], "media_type", "electronic"))
        volume, issue = text(at(layout.volume)), text(at(layout.issue))
        if any((container_title, issn, isbn, volume, issue, first_page)):
            ident, ident_type = (issn, "ISSN") if issn else (isbn, "ISBN") if isbn else (None, None)
            container = Container(
                type=CONTAINER_TYPES.get(layout.type), title=container_title,
                identifier=ident, identifier_type=ident_type,
                volume=volume, issue=issue, first_page=first_page, last_page=last_page,
            )
        if issn and issn_as_url(issn):
            relations.insert(0, Relation(issn_as_url(issn), "IsPartOf"))

        publisher = None
        pub_name = crm.get("publisher-name") or text(item, "publisher/publisher_name") \
            or text(at("book/book_metadata/publisher/publisher_name"))
        if pub_name:
            member = crm.get("member-id")
            publisher = Publisher(pub_name, CROSSREF_MEMBER_API + member if member else None)

        language = None
        if crossref is not None:
            for el in crossref.iter():
                if el.get("language"):
                    language = el.get("language")
                    break

        return ctx.finish(
            id=record_id or "",
            type=layout.type,
            additional_type=None,
            url=url,
            titles=titles,
            contributors=contributors,
            publisher=publisher,
            date=Dates(**{k: v for k, v in dates.items() if v}),
            container=container,
            references=references,
            subjects=subjects,
            language=language,
            license=license,
            descriptions=descriptions,
            identifiers=identifiers,
            relations=relations,
            funding_references=funding,
            files=files,
            archive_locations=archive,
            provider="Crossref",
        )

    # ---- parts ----
    def _titles(self, item: ET.Element, layout: Layout) -> List[Title]:
        el = item.find(layout.title)
        if el is None:
            return []
        if el.tag != "titles":
            t = text(el)
            return [Title(t)] if t else []
        out: List[Title] = []
        for child in el:
            t = text(child)
            if not t:
                continue
            if child.tag == "title":
                out.append(Title(t))
            elif child.tag == "subtitle":
                out.append(Title(t, "Subtitle"))
            elif child.tag == "original_language_title":
                out.append(Title(t, "TranslatedTitle", child.get("language")))
        return out

    def _contributors(self, item: ET.Element, layout: Layout, ctx: Context) -> list:
        parent = item if layout.contributors == "." else item.find(layout.contributors)
        if parent is None:
            return []
        out = []
        for i, el in enumerate(parent):
            if el.tag not in ("person_name", "organization"):
                continue
            role = CONTRIBUTOR_ROLES.get(el.get("contributor_role") or "author", "Other")
            if el.tag == "organization":
                c = contributor(name=text(el), roles=[role], kind="Organization")
            else:
                affs = [
                    affiliation(text(inst, "institution_id"), text(inst, "institution_name"))
                    for inst in el.findall("affiliations/institution")
                ]
                affs += [affiliation(None, text(a)) for a in el.findall("affiliation")]
                c = contributor(
                    given=text(el, "given_name"), family=text(el, "surname"),
                    id=text(el, "ORCID"), affiliations=affs, roles=[role], kind="Person",
                )
            if c is None:
                ctx.warn(f"/contributors/{i}", "contributor without a name was dropped", "MissingName")
            else:
                out.append(c)
        return out

    def _programs(self, item: ET.Element, ctx: Context):
        license = None
        funding: List[FundingReference] = []
        relations: List[Relation] = []
        for prog in item.iter("program"):
            name = prog.get("name")
            if name == "AccessIndicators":
                ref = _pick(prog.findall("license_ref"), "applies_to", "vor")
                if ref is not None and text(ref):
                    license = license_from(url=text(ref))
            elif name == "fundref":
                for group in prog.findall("assertion"):
                    if group.get("name") != "fundgroup":
                        continue
                    funder = first_assertion(group, "funder_name")
                    fname = (funder.text or "").strip() if funder is not None else None
                    fid = None
                    if funder is not None:
                        fid = text(first_assertion(funder, "funder_identifier"))
                    fid = fid or text(first_assertion(group, "funder_identifier"))
                    if not fname and fid:
                        org = find_by_funder_id(fid)
                        fname = display_name(org) if org else None
                    award = text(first_assertion(group, "award_number"))
                    funding.append(FundingReference(
                        funder_name=fname or None,
                        funder_identifier=normalise_doi(fid) or fid,
                        funder_identifier_type="Crossref Funder ID" if fid else None,
                        award_number=award,
                    ))
            for rel in prog.findall("related_item/*"):
                if rel.tag not in ("inter_work_relation", "intra_work_relation"):
                    continue
                rid = normalise_id(text(rel)) if rel.get("identifier-type") in ("doi", "uri", "url", None) \
                    else text(rel)
                rtype = rel.get("relationship-type")
                if rid and rtype:
                    relations.append(Relation(rid, _relation_type(rtype)))
                elif rtype:
                    ctx.warn("/program/related_item", f"relation {rtype!r} without a usable identifier",
                             "UnmappableField")
        return license, funding, relations

    def _references(self, item: ET.Element) -> List[Reference]:
        seen = set()
        out: List[Reference] = []
        for i, cit in enumerate(item.findall("citation_list/citation")):
            key = cit.get("key") or f"ref{i + 1}"
            if key in seen:
                continue
            seen.add(key)
            out.append(Reference(
                key=key,
                id=normalise_doi(text(cit, "doi")),
                title=text(cit, "article_title") or text(cit, "volume_title"),
                publication_year=text(cit, "cYear"),
                unstructured=text(cit, "unstructured_citation"),
            ))
        return out


def first_assertion(parent: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    if parent is None:
        return None
    for a in parent.iter("assertion"):
        if a is not parent and a.get("name") == name:
            return a
    return None
