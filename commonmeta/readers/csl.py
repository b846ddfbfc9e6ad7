from __future__ import annotations
from typing import Any, Dict, List

from ..errors import MalformedInput
from ..models import (
    CONTAINER_TYPES, Container, Dates, Description, Diagnostic, Identifier,
    Publisher, Relation, Subject, Title,
)
from ..schemas import load_json
from ..utils.dates import iso_from_date_parts
from ..utils.normalise import (
    issn_as_url, language_to_iso639_1, normalise_doi, normalise_id, is_url,
)
from ._common import Context, as_list, contributor, license_from

# https://docs.citationstyles.org/en/stable/specification.html#appendix-iii-types
CSL_TO_CM = {
    "article": "Article",
    "article-journal": "JournalArticle",
    "article-magazine": "Article",
    "article-newspaper": "Article",
    "bill": "LegalDocument",
    "book": "Book",
    "broadcast": "Audiovisual",
    "chapter": "BookChapter",
    "classic": "Book",
    "collection": "Collection",
    "dataset": "Dataset",
    "document": "Document",
    "entry": "Entry",
    "entry-dictionary": "Entry",
    "entry-encyclopedia": "Entry",
    "event": "Event",
    "figure": "Figure",
    "graphic": "Image",
    "hearing": "LegalDocument",
    "interview": "Document",
    "legal_case": "LegalDocument",
    "legislation": "LegalDocument",
    "manuscript": "Manuscript",
    "map": "Map",
    "motion_picture": "Audiovisual",
    "musical_score": "Document",
    "pamphlet": "Document",
    "paper-conference": "ProceedingsArticle",
    "patent": "Patent",
    "performance": "Performance",
    "periodical": "Journal",
    "personal_communication": "PersonalCommunication",
    "post": "Post",
    "post-weblog": "BlogPost",
    "regulation": "LegalDocument",
    "report": "Report",
    "review": "Review",
    "review-book": "Review",
    "software": "Software",
    "song": "Audiovisual",
    "speech": "Presentation",
    "standard": "Standard",
    "thesis": "Dissertation",
    "treaty": "LegalDocument",
    "webpage": "WebPage",
}

UNMAPPED = (
    "container-title-short", "source", "call-number", "archive",
    "archive_location", "translator", "number", "medium", "genre",
)


def _names(items: Any, role: str, path: str, ctx: Context) -> list:
    out = []
    for i, a in enumerate(as_list(items)):
        if not isinstance(a, dict):
            continue
        if a.get("literal"):
            c = contributor(name=a["literal"], roles=[role], kind="Organization")
        else:
            family = a.get("family")
            if family and a.get("non-dropping-particle"):
                family = f"{a['non-dropping-particle']} {family}"
            c = contributor(given=a.get("given"), family=family, roles=[role], kind="Person")
        if c is None:
            ctx.warn(f"{path}/{i}", "name without given, family or literal part was dropped", "MissingName")
        else:
            out.append(c)
    return out


class CSLReader:
    """
    Reads CSL-JSON (a single item, or the first item of an array).
    """
    format = "csl"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def parse(self, data: bytes | str) -> Dict[str, Any] | List[Dict[str, Any]]:
        doc = load_json(data)
        if isinstance(doc, list) and doc and all(isinstance(d, dict) for d in doc):
            return doc
        if not isinstance(doc, dict):
            msg = "CSL-JSON must be an object or a non-empty array of objects"
            raise MalformedInput(msg, [Diagnostic.error("/", msg, "MalformedInput")])
        return doc

    def read(self, data: bytes | str):
        return self.model(self.parse(data))

    def model(self, doc: Dict[str, Any] | List[Dict[str, Any]]):
        ctx = Context(self.format, "csl-data-v1.0")
        if isinstance(doc, list):
            if len(doc) > 1:
                ctx.warn("/", f"{len(doc)} items found, only the first was read", "MultipleItems")
            doc = doc[0]

        note = doc.get("note") or ""
        record_id = normalise_doi(doc.get("DOI"))
        if not record_id and note.startswith("DOI: "):
            record_id = normalise_doi(note[5:])
        if not record_id and is_url(doc.get("URL")):
            record_id = doc["URL"].strip()
        if not record_id:
            record_id = normalise_id(str(doc.get("id") or ""))
        rtype = ctx.record_type(doc.get("type"), CSL_TO_CM)

        relations: List[Relation] = []
        issn = None
        raw_issn = doc.get("ISSN")
        if isinstance(raw_issn, list):
            raw_issn = raw_issn[0] if raw_issn else None
        if isinstance(raw_issn, str) and len(raw_issn) >= 9:
            issn = raw_issn[:9]
            if issn_as_url(issn):
                relations.append(Relation(issn_as_url(issn), "IsPartOf"))

        first_page = last_page = None
        page = str(doc.get("page") or "")
        if page:
            parts = page.split("-")
            first_page = parts[0].strip() or None
            if len(parts) > 1 and parts[1].strip():
                last_page = parts[1].strip()

        container = None
        if any(doc.get(k) for k in ("container-title", "volume", "issue")) or issn or first_page:
            container = Container(
                type=CONTAINER_TYPES.get(rtype, "Periodical"),
                title=doc.get("container-title") or None,
                identifier=issn,
                identifier_type="ISSN" if issn else None,
                volume=str(doc["volume"]) if doc.get("volume") else None,
                issue=str(doc["issue"]) if doc.get("issue") else None,
                first_page=first_page,
                last_page=last_page,
            )

        contributors = _names(doc.get("author"), "Author", "/author", ctx)
        contributors += _names(doc.get("editor"), "Editor", "/editor", ctx)

        def _d(key: str):
            value = doc.get(key)
            iso = iso_from_date_parts(value)
            if iso is None and isinstance(value, dict):
                iso = ctx.date(value.get("raw") or value.get("literal"), f"/{key}")
            return iso

        date = Dates(published=_d("issued"), submitted=_d("submitted"), accessed=_d("accessed"))

        descriptions = [Description(doc["abstract"].strip(), "Abstract")] if doc.get("abstract") else []

        identifiers = []
        csl_id = str(doc.get("id") or "")
        if csl_id and not normalise_doi(csl_id) and csl_id != record_id:
            identifiers.append(Identifier(csl_id, "URL" if is_url(csl_id) else "Other"))

        publisher = None
        pub = doc.get("publisher")
        if isinstance(pub, dict) and pub.get("name"):
            publisher = Publisher(pub["name"])
        elif isinstance(pub, str) and pub.strip():
            publisher = Publisher(pub.strip())

        if doc.get("keyword"):
            subjects = [Subject(k.strip()) for k in str(doc["keyword"]).split(",") if k.strip()]
        else:
            subjects = [Subject(c) for c in as_list(doc.get("categories")) if isinstance(c, str) and c]

        titles = [Title(doc["title"].strip())] if doc.get("title") else []
        ctx.unmapped(doc, UNMAPPED)
        if note and not note.startswith("DOI: "):
            ctx.unmapped(doc, ("note",))

        return ctx.finish(
            id=record_id or "",
            type=rtype,
            url=doc.get("URL") or None,
            titles=titles,
            contributors=contributors,
            publisher=publisher,
            date=date,
            container=container,
            subjects=subjects,
            language=language_to_iso639_1(doc.get("language")),
            license=license_from(url=doc.get("license")) if is_url(doc.get("license")) else
            license_from(spdx_id=doc.get("license")),
            descriptions=descriptions,
            identifiers=identifiers,
            relations=relations,
            version=str(doc["version"]) if doc.get("version") else None,
        )
