from __future__ import annotations
import json
from typing import Any, Dict, List, Tuple

from ..config import ORCID_RESOLVER, ROR_RESOLVER
from ..models import DATE_FIELDS, Diagnostic, Person, Record
from ..readers.datacite import CONTRIBUTOR_TYPES, DATE_TYPES, DC_TO_CM, IDENTIFIER_TYPES, RELATION_TYPES
from ..utils.dates import year_of
from ..utils.normalise import doi_from_url, normalise_orcid, normalise_ror

CM_TO_DC = {
    "Article": "Preprint",
    "Audiovisual": "Audiovisual",
    "BlogPost": "Preprint",
    "Book": "Book",
    "BookChapter": "BookChapter",
    "Collection": "Collection",
    "ComputationalNotebook": "ComputationalNotebook",
    "Database": "Dataset",
    "Dataset": "Dataset",
    "Dissertation": "Dissertation",
    "Document": "Text",
    "Event": "Event",
    "Figure": "Image",
    "Image": "Image",
    "Instrument": "Instrument",
    "InteractiveResource": "InteractiveResource",
    "Journal": "Journal",
    "JournalArticle": "JournalArticle",
    "Model": "Model",
    "OutputManagementPlan": "OutputManagementPlan",
    "PeerReview": "PeerReview",
    "PhysicalObject": "PhysicalObject",
    "Presentation": "Text",
    "Proceedings": "ConferenceProceeding",
    "ProceedingsArticle": "ConferencePaper",
    "Report": "Report",
    "Service": "Service",
    "Software": "Software",
    "Sound": "Sound",
    "Standard": "Standard",
    "StudyRegistration": "StudyRegistration",
    "Workflow": "Workflow",
}
"""Canonical type -> resourceTypeGeneral; anything missing is written as Text."""

DATES_TO_DC = {v: k for k, v in DATE_TYPES.items()}
ROLES_TO_DC = {v: k for k, v in CONTRIBUTOR_TYPES.items()}
UNAVAILABLE = "(:unav)"


def _creator(c) -> Dict[str, Any]:
    if isinstance(c, Person):
        out: Dict[str, Any] = {"nameType": "Personal"}
        out["name"] = ", ".join(p for p in (c.family_name, c.given_name) if p)
        if c.given_name:
            out["givenName"] = c.given_name
        if c.family_name:
            out["familyName"] = c.family_name
        if normalise_orcid(c.id):
            out["nameIdentifiers"] = [{
                "nameIdentifier": c.id, "nameIdentifierScheme": "ORCID", "schemeUri": ORCID_RESOLVER,
            }]
    else:
        out = {"nameType": "Organizational", "name": c.name}
        if normalise_ror(c.id):
            out["nameIdentifiers"] = [{
                "nameIdentifier": c.id, "nameIdentifierScheme": "ROR", "schemeUri": ROR_RESOLVER,
            }]
    affs = []
    for a in c.affiliations:
        aff: Dict[str, Any] = {}
        if a.name:
            aff["name"] = a.name
        if a.id:
            aff["affiliationIdentifier"] = a.id
            if normalise_ror(a.id):
                aff["affiliationIdentifierScheme"] = "ROR"
        affs.append(aff)
    if affs:
        out["affiliation"] = affs
    return out


def _related_type(value: str) -> str:
    return "DOI" if doi_from_url(value) else "URL"


class DataCiteWriter:
    """
    Writes DataCite JSON (the attributes of a REST API record).
    """
    format = "datacite"
    media_type = "application/vnd.datacite.datacite+json"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def write(self, record: Record) -> Tuple[bytes, List[Diagnostic]]:
        diags: List[Diagnostic] = []
        rtg = CM_TO_DC.get(record.type, "Text")
        types: Dict[str, Any] = {"resourceTypeGeneral": rtg}
        # the general type alone would read back as a different canonical type
        if DC_TO_CM.get(rtg) != record.type:
            types["resourceType"] = record.type
        elif record.additional_type:
            types["resourceType"] = record.additional_type

        doc: Dict[str, Any] = {"id": record.id}
        doi = doi_from_url(record.id)
        if doi:
            doc["doi"] = doi
        if record.url:
            doc["url"] = record.url
        doc["types"] = types

        authors = [c for c in record.contributors if "Author" in c.contributor_roles or not c.contributor_roles]
        others = [c for c in record.contributors if c not in authors]
        if authors:
            doc["creators"] = [_creator(c) for c in authors]
        else:
            diags.append(Diagnostic.warn("/contributors", "no authors, creator written as unavailable",
                                         "MissingCreator"))
            doc["creators"] = [{"name": UNAVAILABLE, "nameType": "Organizational"}]
        if others:
            doc["contributors"] = [
                {**_creator(c), "contributorType": next(
                    (ROLES_TO_DC[r] for r in c.contributor_roles if r in ROLES_TO_DC), "Other")}
                for c in others
            ]

        doc["titles"] = [
            {k: v for k, v in (("title", t.title), ("titleType", t.type), ("lang", t.language)) if v}
            for t in record.titles
        ]
        if not doc["titles"]:
            diags.append(Diagnostic.warn("/titles", "no title, written as unavailable", "MissingTitle"))
            doc["titles"] = [{"title": UNAVAILABLE}]

        if record.publisher:
            pub: Dict[str, Any] = {"name": record.publisher.name}
            if normalise_ror(record.publisher.id):
                pub.update(publisherIdentifier=record.publisher.id, publisherIdentifierScheme="ROR",
                           schemeUri=ROR_RESOLVER)
            doc["publisher"] = pub
        else:
            diags.append(Diagnostic.warn("/publisher", "no publisher, written as unavailable", "MissingPublisher"))
            doc["publisher"] = {"name": UNAVAILABLE}

        year = year_of(record.date.published) or year_of(record.date.created) or year_of(record.date.available)
        if year:
            doc["publicationYear"] = year
        else:
            diags.append(Diagnostic.warn("/date/published", "no publication year", "MissingDate"))

        dates = []
        for name in DATE_FIELDS:
            value = getattr(record.date, name)
            if value and name in DATES_TO_DC:
                dates.append({"date": value, "dateType": DATES_TO_DC[name]})
            elif value:
                diags.append(Diagnostic.warn(f"/date/{name}", f"date {name} has no DataCite type", "UnmappableField"))
        if dates:
            doc["dates"] = dates

        if record.language:
            doc["language"] = record.language
        if record.subjects:
            doc["subjects"] = [{"subject": s.subject} for s in record.subjects]

        identifiers = [
            {"identifier": i.identifier,
             "identifierType": i.identifier_type if i.identifier_type in IDENTIFIER_TYPES else "Other"}
            for i in record.identifiers if i.identifier_type != "DOI"
        ]
        if identifiers:
            doc["identifiers"] = identifiers

        related = []
        for i, r in enumerate(record.references):
            if r.id:
                related.append({"relatedIdentifier": doi_from_url(r.id) or r.id,
                                "relatedIdentifierType": _related_type(r.id), "relationType": "References"})
            else:
                diags.append(Diagnostic.warn(f"/references/{i}", "reference without identifier was dropped",
                                             "UnmappableField"))
        for i, r in enumerate(record.relations):
            if r.type not in RELATION_TYPES:
                diags.append(Diagnostic.warn(f"/relations/{i}", f"relation type {r.type} has no DataCite counterpart",
                                             "UnmappableField"))
                continue
            related.append({"relatedIdentifier": doi_from_url(r.id) or r.id,
                            "relatedIdentifierType": _related_type(r.id), "relationType": r.type})
        if related:
            doc["relatedIdentifiers"] = related

        if record.license:
            rights: Dict[str, Any] = {}
            if record.license.id:
                rights.update(rights=record.license.id, rightsIdentifier=record.license.id,
                              rightsIdentifierScheme="SPDX", schemeUri="https://spdx.org/licenses/")
            if record.license.url:
                rights["rightsUri"] = record.license.url
            doc["rightsList"] = [rights]

        descriptions = []
        for d in record.descriptions:
            dtype = d.type if d.type in ("Abstract", "Methods", "TechnicalInfo") else (
                "Abstract" if d.type is None else "Other")
            descriptions.append({k: v for k, v in (("description", d.description), ("descriptionType", dtype),
                                                   ("lang", d.language)) if v})
        if descriptions:
            doc["descriptions"] = descriptions

        funding = []
        for i, f in enumerate(record.funding_references):
            if not f.funder_name:
                diags.append(Diagnostic.warn(f"/fundingReferences/{i}", "funding without funder name was dropped",
                                             "UnmappableField"))
                continue
            funding.append({k: v for k, v in (
                ("funderName", f.funder_name), ("funderIdentifier", f.funder_identifier),
                ("funderIdentifierType", f.funder_identifier_type), ("awardNumber", f.award_number),
                ("awardTitle", f.award_title), ("awardUri", f.award_uri)) if v})
        if funding:
            doc["fundingReferences"] = funding

        if record.geo_locations:
            doc["geoLocations"] = list(record.geo_locations)
        if record.version:
            doc["version"] = record.version
        if record.container:
            c = record.container
            doc["container"] = {k: v for k, v in (
                ("type", c.type), ("title", c.title), ("identifier", c.identifier),
                ("identifierType", c.identifier_type), ("volume", c.volume), ("issue", c.issue),
                ("firstPage", c.first_page), ("lastPage", c.last_page)) if v}
        doc["schemaVersion"] = "http://datacite.org/schema/kernel-4"
        return json.dumps(doc, ensure_ascii=False, indent=2).encode("utf-8"), diags
