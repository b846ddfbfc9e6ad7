from __future__ import annotations
import json
import re
from typing import Any, Dict, List, Tuple

from ..models import Diagnostic, Person, Record
from ..readers.inveniordm import DATE_TYPES, DESCRIPTION_TYPES, TITLE_TYPES
from ..utils.normalise import (
    doi_from_url, issn_from_url, language_to_iso639_3, normalise_ror, orcid_from_url,
)

CM_TO_INVENIO = {
    "Article": "publication-preprint",
    "Audiovisual": "video",
    "Book": "publication-book",
    "BookChapter": "publication-section",
    "Database": "dataset",
    "Dataset": "dataset",
    "Dissertation": "publication-thesis",
    "Document": "publication",
    "Event": "event",
    "Figure": "image-figure",
    "Image": "image",
    "InteractiveResource": "lesson",
    "Journal": "publication-journal",
    "JournalArticle": "publication-article",
    "Model": "model",
    "OutputManagementPlan": "publication-datamanagementplan",
    "Patent": "publication-patent",
    "PhysicalObject": "physicalobject",
    "Poster": "poster",
    "Presentation": "presentation",
    "Proceedings": "publication-conferenceproceeding",
    "ProceedingsArticle": "publication-conferencepaper",
    "Report": "publication-report",
    "Software": "software",
    "Workflow": "workflow",
}
"""Canonical type -> InvenioRDM resource type id; anything missing is other."""

DATES_TO_INVENIO = {v: k for k, v in DATE_TYPES.items()}
DESCRIPTIONS_TO_INVENIO = {v: k for k, v in DESCRIPTION_TYPES.items()}
TITLES_TO_INVENIO = {v: k for k, v in TITLE_TYPES.items()}
DATE_RE = re.compile(r"^\d{4}(-\d{2}(-\d{2})?)?")


def _person_or_org(c) -> Dict[str, Any]:
    if isinstance(c, Person):
        po: Dict[str, Any] = {"type": "personal", "family_name": c.family_name or c.given_name or ""}
        if c.given_name and c.family_name:
            po["given_name"] = c.given_name
        po["name"] = ", ".join(p for p in (c.family_name, c.given_name) if p)
        orcid = orcid_from_url(c.id)
        if orcid:
            po["identifiers"] = [{"scheme": "orcid", "identifier": orcid}]
    else:
        po = {"type": "organizational", "name": c.name}
        ror = normalise_ror(c.id)
        if ror:
            po["identifiers"] = [{"scheme": "ror", "identifier": ror.rsplit("/", 1)[-1]}]
    out: Dict[str, Any] = {"person_or_org": po}
    affs = []
    for a in c.affiliations:
        aff = {}
        if normalise_ror(a.id):
            aff["id"] = normalise_ror(a.id).rsplit("/", 1)[-1]
        if a.name:
            aff["name"] = a.name
        if aff:
            affs.append(aff)
    if affs:
        out["affiliations"] = affs
    return out


def _scheme(value: str) -> str:
    return "doi" if doi_from_url(value) else "url"


class InvenioRDMWriter:
    """
    Writes an InvenioRDM draft payload.
    """
    format = "invenio-rdm"
    media_type = "application/vnd.inveniordm.v1+json"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def write(self, record: Record) -> Tuple[bytes, List[Diagnostic]]:
        diags: List[Diagnostic] = []
        meta: Dict[str, Any] = {"resource_type": {"id": CM_TO_INVENIO.get(record.type, "other")}}

        authors = [c for c in record.contributors if "Author" in c.contributor_roles or not c.contributor_roles]
        others = [c for c in record.contributors if c not in authors]
        if authors:
            meta["creators"] = [_person_or_org(c) for c in authors]
        else:
            diags.append(Diagnostic.warn("/contributors", "no authors, creator written as No author",
                                         "MissingCreator"))
            meta["creators"] = [{"person_or_org": {"type": "organizational", "name": "No author"}}]
        if others:
            meta["contributors"] = [
                {**_person_or_org(c), "role": {"id": (c.contributor_roles[0] if c.contributor_roles
                                                      else "Other").lower()}}
                for c in others
            ]

        title = record.title
        if not title:
            diags.append(Diagnostic.warn("/titles", "no title, written as No title", "MissingTitle"))
        meta["title"] = title or "No title"
        extra_titles = [t for t in record.titles if t.title != title and t.type in TITLES_TO_INVENIO]
        if extra_titles:
            meta["additional_titles"] = [
                {k: v for k, v in (("title", t.title), ("type", {"id": TITLES_TO_INVENIO[t.type]}),
                                   ("lang", {"id": language_to_iso639_3(t.language)} if t.language else None)) if v}
                for t in extra_titles
            ]

        m = DATE_RE.match(record.date.published or "")
        if m:
            meta["publication_date"] = m.group(0)
        else:
            diags.append(Diagnostic.warn("/date/published", "no publication date", "MissingDate"))
        dates = []
        for name, type_id in DATES_TO_INVENIO.items():
            value = getattr(record.date, name)
            if value and name != "published":
                dates.append({"date": value, "type": {"id": type_id}})
        if dates:
            meta["dates"] = dates

        if record.publisher:
            meta["publisher"] = record.publisher.name
        descriptions = list(record.descriptions)
        if descriptions and descriptions[0].type in (None, "Abstract"):
            meta["description"] = descriptions.pop(0).description
        if descriptions:
            meta["additional_descriptions"] = [
                {"description": d.description, "type": {"id": DESCRIPTIONS_TO_INVENIO.get(d.type or "", "other")}}
                for d in descriptions
            ]

        identifiers = [{"identifier": i.identifier, "scheme": i.identifier_type.lower()}
                       for i in record.identifiers if i.identifier_type != "DOI"]
        # a non-DOI identity travels as the first url identifier
        if record.id and not doi_from_url(record.id):
            own = {"identifier": record.id, "scheme": "url"}
            if own in identifiers:
                identifiers.remove(own)
            identifiers.insert(0, own)
        if identifiers:
            meta["identifiers"] = identifiers

        related = [{"identifier": doi_from_url(r.id) or r.id, "scheme": _scheme(r.id),
                    "relation_type": {"id": "references"}}
                   for r in record.references if r.id]
        related += [{"identifier": doi_from_url(r.id) or r.id, "scheme": _scheme(r.id),
                     "relation_type": {"id": r.type.lower()}}
                    for r in record.relations if not (r.type == "IsPartOf" and issn_from_url(r.id))]
        if related:
            meta["related_identifiers"] = related

        if record.license:
            rights: Dict[str, Any] = {}
            if record.license.id:
                rights["id"] = record.license.id.lower()
            if record.license.url:
                rights["link"] = record.license.url
            meta["rights"] = [rights]
        if record.subjects:
            meta["subjects"] = [{"subject": s.subject} for s in record.subjects]
        if record.language:
            lang = language_to_iso639_3(record.language)
            if lang and re.match(r"^[a-z]{3}$", lang):
                meta["languages"] = [{"id": lang}]
            else:
                diags.append(Diagnostic.warn("/language", f"no ISO 639-3 code for {record.language}",
                                             "UnmappableField"))
        if record.version:
            meta["version"] = record.version

        funding = []
        for f in record.funding_references:
            funder: Dict[str, Any] = {}
            if f.funder_name:
                funder["name"] = f.funder_name
            if normalise_ror(f.funder_identifier):
                funder["id"] = normalise_ror(f.funder_identifier).rsplit("/", 1)[-1]
            award: Dict[str, Any] = {}
            if f.award_number:
                award["number"] = f.award_number
            if f.award_title:
                award["title"] = {"en": f.award_title}
            if f.award_uri:
                award["identifiers"] = [{"scheme": "url", "identifier": f.award_uri}]
            funding.append({"funder": funder, **({"award": award} if award else {})})
        if funding:
            meta["funding"] = funding

        doc: Dict[str, Any] = {}
        doi = doi_from_url(record.id)
        if doi:
            doc["pids"] = {"doi": {"identifier": doi, "provider": "external"}}
        if record.url:
            doc["links"] = {"self_html": record.url}
        doc["access"] = {"record": "public", "files": "public"}
        doc["files"] = {"enabled": bool(record.files)}
        doc["metadata"] = meta

        c = record.container
        if c is not None and (c.title or c.volume or c.issue or c.pages):
            journal = {k: v for k, v in (
                ("title", c.title), ("volume", c.volume), ("issue", c.issue), ("pages", c.pages),
                ("issn", issn_from_url(c.identifier) or c.identifier if c.identifier_type == "ISSN" else None),
            ) if v}
            doc["custom_fields"] = {"journal:journal": journal}
        return json.dumps(doc, ensure_ascii=False, indent=2).encode("utf-8"), diags
