from __future__ import annotations
from typing import Any, Dict, List, Optional

from ..errors import MalformedInput
from ..models import (
    CONTAINER_TYPES, CONTRIBUTOR_ROLES, Container, Dates, Description, Diagnostic, FundingReference,
    Identifier, Publisher, Reference, Relation, Subject, Title,
)
from ..schemas import load_json
from ..utils.normalise import issn_as_url, language_to_iso639_1, normalise_doi, normalise_id
from ._common import Context, affiliation, as_list, contributor, license_from
from .datacite import RELATION_TYPES

INVENIO_TO_CM = {
    "publication": "Document",
    "publication-annotationcollection": "Collection",
    "publication-article": "JournalArticle",
    "publication-book": "Book",
    "publication-section": "BookChapter",
    "publication-conferencepaper": "ProceedingsArticle",
    "publication-conferenceproceeding": "Proceedings",
    "publication-datamanagementplan": "OutputManagementPlan",
    "publication-journal": "Journal",
    "publication-patent": "Patent",
    "publication-preprint": "Article",
    "publication-deliverable": "Report",
    "publication-milestone": "Report",
    "publication-proposal": "Document",
    "publication-report": "Report",
    "publication-softwaredocumentation": "Document",
    "publication-taxonomictreatment": "Document",
    "publication-technicalnote": "Report",
    "publication-thesis": "Dissertation",
    "publication-workingpaper": "Report",
    "publication-other": "Other",
    "poster": "Poster",
    "presentation": "Presentation",
    "dataset": "Dataset",
    "image": "Image",
    "image-figure": "Figure",
    "image-plot": "Image",
    "image-drawing": "Image",
    "image-diagram": "Image",
    "image-photo": "Image",
    "image-other": "Image",
    "video": "Audiovisual",
    "software": "Software",
    "lesson": "InteractiveResource",
    "physicalobject": "PhysicalObject",
    "workflow": "Workflow",
    "event": "Event",
    "model": "Model",
    "other": "Other",
}

RELATIONS_BY_ID = {r.lower(): r for r in RELATION_TYPES}

DATE_TYPES = {
    "accepted": "accepted", "available": "available", "collected": "collected",
    "copyrighted": "copyrighted", "created": "created", "issued": "published",
    "other": "other", "submitted": "submitted", "updated": "updated",
    "valid": "valid", "withdrawn": "withdrawn",
}

DESCRIPTION_TYPES = {
    "abstract": "Abstract", "methods": "Methods", "summary": "Summary",
    "technical-info": "TechnicalInfo", "other": "Other",
}

TITLE_TYPES = {
    "alternative-title": "AlternativeTitle", "subtitle": "Subtitle",
    "translated-title": "TranslatedTitle",
}

IDENTIFIER_SCHEMES = {
    "doi": "DOI", "url": "URL", "isbn": "ISBN", "issn": "ISSN", "arxiv": "arXiv",
    "pmid": "PMID", "pmcid": "PMCID", "handle": "Handle", "ark": "ARK",
    "purl": "PURL", "urn": "URN", "uuid": "UUID",
}

UNMAPPED = ("locations", "sizes", "formats", "references")


def _creators(items: Any, path: str, ctx: Context, default_role: Optional[str] = None) -> list:
    out = []
    for i, c in enumerate(as_list(items)):
        po = c.get("person_or_org") if isinstance(c, dict) else None
        if not isinstance(po, dict):
            continue
        ident = None
        for pid in as_list(po.get("identifiers")):
            if isinstance(pid, dict) and pid.get("identifier"):
                ident = normalise_id(pid["identifier"]) or ident
        affs = [affiliation(a.get("id"), a.get("name")) for a in as_list(c.get("affiliations"))
                if isinstance(a, dict)]
        kind = {"personal": "Person", "organizational": "Organization"}.get(po.get("type") or "")
        role = default_role
        if role is None:
            role_id = ((c.get("role") or {}).get("id") or "other").replace("-", "").lower()
            role = next((r for r in CONTRIBUTOR_ROLES if r.lower() == role_id), "Other")
        person = contributor(
            name=po.get("name"), given=po.get("given_name"), family=po.get("family_name"),
            id=ident, affiliations=affs, roles=[role], kind=kind,
        )
        if person is None:
            ctx.warn(f"{path}/{i}", "creator without a name was dropped", "MissingName")
        else:
            out.append(person)
    return out


class InvenioRDMReader:
    """
    Reads an InvenioRDM record (the REST API JSON of a record or draft).
    """
    format = "invenio-rdm"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def parse(self, data: bytes | str) -> Dict[str, Any]:
        doc = load_json(data)
        if not isinstance(doc, dict) or not isinstance(doc.get("metadata"), dict):
            msg = "InvenioRDM JSON must be an object with a metadata object"
            raise MalformedInput(msg, [Diagnostic.error("/metadata", msg, "MalformedInput")])
        return doc

    def read(self, data: bytes | str):
        return self.model(self.parse(data))

    def model(self, doc: Dict[str, Any]):
        ctx = Context(self.format, "invenio-rdm-v0.1")
        meta = doc["metadata"]

        doi = ((doc.get("pids") or {}).get("doi") or {}).get("identifier")
        record_id = normalise_doi(doi)
        url = ((doc.get("links") or {}).get("self_html")) or None

        identifiers: List[Identifier] = [Identifier(record_id, "DOI")] if record_id else []
        for i in as_list(meta.get("identifiers")):
            if not isinstance(i, dict) or not i.get("identifier"):
                continue
            scheme = IDENTIFIER_SCHEMES.get((i.get("scheme") or "").lower(), "Other")
            ident = Identifier(i["identifier"], scheme)
            if ident not in identifiers:
                identifiers.append(ident)
        # without a DOI the first URL identifier is the record's identity
        if not record_id:
            record_id = next((i.identifier for i in identifiers if i.identifier_type == "URL"), None) or url

        rtype = ctx.record_type((meta.get("resource_type") or {}).get("id"), INVENIO_TO_CM,
                                "/metadata/resource_type/id")

        titles = [Title(meta["title"].strip())] if meta.get("title") else []
        for t in as_list(meta.get("additional_titles")):
            if isinstance(t, dict) and t.get("title"):
                ttype = TITLE_TYPES.get(((t.get("type") or {}).get("id")) or "")
                lang = language_to_iso639_1((t.get("lang") or {}).get("id"))
                titles.append(Title(t["title"], ttype, lang))

        contributors = _creators(meta.get("creators"), "/metadata/creators", ctx, default_role="Author")
        contributors += _creators(meta.get("contributors"), "/metadata/contributors", ctx)

        dates: Dict[str, Optional[str]] = {"published": ctx.date(meta.get("publication_date"),
                                                                 "/metadata/publication_date")}
        for i, d in enumerate(as_list(meta.get("dates"))):
            if not isinstance(d, dict):
                continue
            key = DATE_TYPES.get(((d.get("type") or {}).get("id")) or "")
            if key and not dates.get(key):
                dates[key] = ctx.date(d.get("date"), f"/metadata/dates/{i}/date")
        if doc.get("updated") and not dates.get("updated"):
            dates["updated"] = ctx.date(doc["updated"], "/updated")

        descriptions = [Description(meta["description"].strip(), "Abstract")] if meta.get("description") else []
        for d in as_list(meta.get("additional_descriptions")):
            if isinstance(d, dict) and d.get("description"):
                dtype = DESCRIPTION_TYPES.get(((d.get("type") or {}).get("id")) or "", "Other")
                descriptions.append(Description(d["description"], dtype))

        license = None
        for r in as_list(meta.get("rights")):
            if not isinstance(r, dict):
                continue
            link = r.get("link") or (r.get("props") or {}).get("url")
            license = license_from(url=link, spdx_id=r.get("id")) if link else license_from(spdx_id=r.get("id"))
            if license:
                break

        references: List[Reference] = []
        relations: List[Relation] = []
        for r in as_list(meta.get("related_identifiers")):
            if not isinstance(r, dict) or not r.get("identifier"):
                continue
            rid = normalise_id(r["identifier"]) or r["identifier"]
            rel = RELATIONS_BY_ID.get(((r.get("relation_type") or {}).get("id") or "").lower())
            if rel in ("Cites", "References"):
                references.append(Reference(key=f"ref{len(references) + 1}", id=rid))
            elif rel:
                relations.append(Relation(rid, rel))

        funding = []
        for f in as_list(meta.get("funding")):
            if not isinstance(f, dict):
                continue
            funder = f.get("funder") or {}
            award = f.get("award") or {}
            fid = affiliation(funder.get("id"), None)
            award_uri = next((a.get("identifier") for a in as_list(award.get("identifiers"))
                              if isinstance(a, dict) and a.get("scheme") == "url"), None)
            funding.append(FundingReference(
                funder_name=funder.get("name") or (fid.name if fid else None),
                funder_identifier=fid.id if fid else None,
                funder_identifier_type="ROR" if fid and fid.id and "ror.org" in fid.id else None,
                award_number=award.get("number"),
                award_title=(award.get("title") or {}).get("en"),
                award_uri=award_uri,
            ))

        container = None
        journal = (doc.get("custom_fields") or {}).get("journal:journal")
        if isinstance(journal, dict) and journal:
            first_page = last_page = None
            if journal.get("pages"):
                parts = str(journal["pages"]).split("-")
                first_page = parts[0].strip() or None
                last_page = parts[1].strip() if len(parts) > 1 and parts[1].strip() else None
            issn = journal.get("issn")
            if issn and issn_as_url(issn):
                relations.insert(0, Relation(issn_as_url(issn), "IsPartOf"))
            container = Container(
                type=CONTAINER_TYPES.get(rtype, "Journal"),
                title=journal.get("title"),
                identifier=issn,
                identifier_type="ISSN" if issn else None,
                volume=journal.get("volume"),
                issue=journal.get("issue"),
                first_page=first_page,
                last_page=last_page,
            )

        language = None
        langs = as_list(meta.get("languages"))
        if langs and isinstance(langs[0], dict):
            language = language_to_iso639_1(langs[0].get("id"))

        ctx.unmapped(meta, UNMAPPED, "/metadata")
        return ctx.finish(
            id=record_id or "",
            type=rtype,
            url=url,
            titles=titles,
            contributors=contributors,
            publisher=Publisher(meta["publisher"]) if meta.get("publisher") else None,
            date=Dates(**{k: v for k, v in dates.items() if v}),
            container=container,
            references=references,
            subjects=[Subject(s["subject"]) for s in as_list(meta.get("subjects"))
                      if isinstance(s, dict) and s.get("subject")],
            language=language,
            license=license,
            descriptions=descriptions,
            identifiers=identifiers,
            relations=relations,
            funding_references=funding,
            version=meta.get("version"),
        )
