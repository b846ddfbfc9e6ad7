from __future__ import annotations
import json
from typing import Any, Dict, List, Tuple

from ..models import Diagnostic, Person, Record
from ..utils.dates import date_parts
from ..utils.normalise import doi_from_url, issn_from_url

CM_TO_CSL = {
    "Article": "article",
    "Audiovisual": "motion_picture",
    "BlogPost": "post-weblog",
    "Book": "book",
    "BookChapter": "chapter",
    "Collection": "collection",
    "Database": "dataset",
    "Dataset": "dataset",
    "Dissertation": "thesis",
    "Document": "document",
    "Entry": "entry",
    "Event": "event",
    "Figure": "figure",
    "Image": "graphic",
    "Journal": "periodical",
    "JournalArticle": "article-journal",
    "LegalDocument": "legislation",
    "Manuscript": "manuscript",
    "Map": "map",
    "Patent": "patent",
    "Performance": "performance",
    "PersonalCommunication": "personal_communication",
    "Post": "post",
    "Presentation": "speech",
    "ProceedingsArticle": "paper-conference",
    "Report": "report",
    "Review": "review",
    "Software": "software",
    "Standard": "standard",
    "WebPage": "webpage",
}
"""Canonical type -> CSL type; anything missing is written as document."""


def _name(c) -> Dict[str, str]:
    if isinstance(c, Person):
        return {k: v for k, v in (("family", c.family_name), ("given", c.given_name)) if v}
    return {"literal": c.name}


def _date(iso) -> Dict[str, Any] | None:
    parts = date_parts(iso)
    return {"date-parts": [parts]} if parts else None


class CSLWriter:
    """
    Writes a single CSL-JSON item.
    """
    format = "csl"
    media_type = "application/vnd.citationstyles.csl+json"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def write(self, record: Record) -> Tuple[bytes, List[Diagnostic]]:
        diags: List[Diagnostic] = []
        item: Dict[str, Any] = {"id": record.id, "type": CM_TO_CSL.get(record.type, "document")}
        if record.type not in CM_TO_CSL and record.type != "Other":
            diags.append(Diagnostic.warn("/type", f"type {record.type} has no CSL equivalent, written as document",
                                         "UnmappableField"))

        authors = [_name(c) for c in record.contributors if "Author" in c.contributor_roles or not c.contributor_roles]
        editors = [_name(c) for c in record.contributors if "Editor" in c.contributor_roles]
        if authors:
            item["author"] = authors
        if editors:
            item["editor"] = editors
        for key, iso in (("issued", record.date.published), ("submitted", record.date.submitted),
                         ("accessed", record.date.accessed)):
            d = _date(iso)
            if d:
                item[key] = d

        if record.title:
            item["title"] = record.title
        if record.abstract:
            item["abstract"] = record.abstract
        doi = doi_from_url(record.id)
        if doi:
            item["DOI"] = doi
        if record.url:
            item["URL"] = record.url

        c = record.container
        if c is not None:
            if c.title:
                item["container-title"] = c.title
            if c.volume:
                item["volume"] = c.volume
            if c.issue:
                item["issue"] = c.issue
            if c.pages:
                item["page"] = c.pages
            if c.identifier_type == "ISSN" and c.identifier:
                item["ISSN"] = issn_from_url(c.identifier) or c.identifier
            elif c.identifier_type == "ISBN" and c.identifier:
                item["ISBN"] = c.identifier

        if record.publisher:
            item["publisher"] = record.publisher.name
        if record.subjects:
            item["keyword"] = ", ".join(s.subject for s in record.subjects)
        if record.language:
            item["language"] = record.language
        if record.license:
            item["license"] = record.license.url or record.license.id
        if record.version:
            item["version"] = record.version
        if record.funding_references:
            diags.append(Diagnostic.warn("/fundingReferences", "CSL has no funding field", "UnmappableField"))
        return json.dumps(item, ensure_ascii=False, indent=2).encode("utf-8"), diags
