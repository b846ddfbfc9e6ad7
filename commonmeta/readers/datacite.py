from __future__ import annotations
from typing import Any, Dict, List, Optional

from ..errors import MalformedInput
from ..models import (
    RECORD_TYPES, Container, Dates, Description, Diagnostic, FundingReference,
    Identifier, Publisher, Reference, Relation, Subject, Title,
)
from ..schemas import load_json
from ..utils.normalise import (
    language_to_iso639_1, normalise_doi, normalise_id, normalise_orcid,
    normalise_ror,
)
from ._common import Context, affiliation, as_list, contributor, license_from, org_id

DC_TO_CM = {
    "Audiovisual": "Audiovisual",
    "BlogPosting": "Article",
    "Book": "Book",
    "BookChapter": "BookChapter",
    "Collection": "Collection",
    "ComputationalNotebook": "ComputationalNotebook",
    "ConferencePaper": "ProceedingsArticle",
    "ConferenceProceeding": "Proceedings",
    "DataPaper": "JournalArticle",
    "Dataset": "Dataset",
    "Dissertation": "Dissertation",
    "Event": "Event",
    "Image": "Image",
    "Instrument": "Instrument",
    "InteractiveResource": "InteractiveResource",
    "Journal": "Journal",
    "JournalArticle": "JournalArticle",
    "Model": "Model",
    "OutputManagementPlan": "OutputManagementPlan",
    "PeerReview": "PeerReview",
    "PhysicalObject": "PhysicalObject",
    "Poster": "Presentation",
    "Preprint": "Article",
    "Report": "Report",
    "Service": "Service",
    "Software": "Software",
    "Sound": "Sound",
    "Standard": "Standard",
    "StudyRegistration": "StudyRegistration",
    "Text": "Document",
    "Thesis": "Dissertation",
    "Workflow": "Workflow",
    "Other": "Other",
}

DATE_TYPES = {
    "Accepted": "accepted",
    "Available": "available",
    "Copyrighted": "copyrighted",
    "Collected": "collected",
    "Created": "created",
    "Issued": "published",
    "Submitted": "submitted",
    "Updated": "updated",
    "Valid": "valid",
    "Withdrawn": "withdrawn",
    "Other": "other",
}
"""DataCite dateType -> canonical date field."""

CONTRIBUTOR_TYPES = {
    "ContactPerson": "ContactPerson",
    "DataCollector": "DataCollector",
    "DataCurator": "DataCuration",
    "DataManager": "DataManager",
    "Distributor": "Distributor",
    "Editor": "Editor",
    "HostingInstitution": "HostingInstitution",
    "Producer": "Producer",
    "ProjectLeader": "ProjectLeader",
    "ProjectManager": "ProjectManager",
    "ProjectMember": "ProjectMember",
    "RegistrationAgency": "RegistrationAgency",
    "RegistrationAuthority": "RegistrationAuthority",
    "RelatedPerson": "RelatedPerson",
    "Researcher": "Researcher",
    "ResearchGroup": "ResearchGroup",
    "RightsHolder": "RightsHolder",
    "Sponsor": "Sponsor",
    "Supervisor": "Supervision",
    "Translator": "Translator",
    "WorkPackageLeader": "WorkPackageLeader",
    "Other": "Other",
}

REFERENCE_RELATIONS = ("Cites", "References")
"""relationType values read as references instead of relations."""

RELATION_TYPES = (
    "IsCitedBy", "Cites", "IsSupplementTo", "IsSupplementedBy", "IsContinuedBy",
    "Continues", "IsDescribedBy", "Describes", "HasMetadata", "IsMetadataFor",
    "HasVersion", "IsVersionOf", "IsNewVersionOf", "IsPreviousVersionOf",
    "IsPartOf", "HasPart", "IsPublishedIn", "IsReferencedBy", "References",
    "IsDocumentedBy", "Documents", "IsCompiledBy", "Compiles", "IsVariantFormOf",
    "IsOriginalFormOf", "IsIdenticalTo", "IsReviewedBy", "Reviews",
    "IsDerivedFrom", "IsSourceOf", "IsRequiredBy", "Requires", "IsObsoletedBy",
    "Obsoletes", "IsCollectedBy", "Collects", "IsTranslationOf", "HasTranslation",
)
"""DataCite relation types; InvenioRDM spells them lowercase."""

DESCRIPTION_TYPES = {"Abstract": "Abstract", "Methods": "Methods", "TechnicalInfo": "TechnicalInfo"}

IDENTIFIER_TYPES = {
    "ARK", "arXiv", "Bibcode", "DOI", "GUID", "Handle", "ISBN", "ISSN", "PMID",
    "PMCID", "PURL", "RID", "URL", "URN", "UUID", "Other",
}

UNMAPPED = ("sizes", "formats", "contentUrl", "agency")


def _contributors(items: Any, path: str, ctx: Context, default_role: Optional[str] = None) -> list:
    out = []
    for i, c in enumerate(as_list(items)):
        if not isinstance(c, dict):
            continue
        ident = None
        for ni in as_list(c.get("nameIdentifiers")):
            if not isinstance(ni, dict):
                continue
            scheme = (ni.get("nameIdentifierScheme") or "").upper()
            value = ni.get("nameIdentifier")
            if scheme == "ORCID":
                ident = normalise_orcid(value) or ident
            elif scheme == "ROR":
                ident = normalise_ror(value) or ident
            elif not ident:
                ident = normalise_id(value)
        affs = []
        for a in as_list(c.get("affiliation")):
            if isinstance(a, str):
                affs.append(affiliation(None, a))
            elif isinstance(a, dict):
                affs.append(affiliation(a.get("affiliationIdentifier"), a.get("name")))
        name_type = c.get("nameType")
        kind = {"Personal": "Person", "Organizational": "Organization"}.get(name_type or "")
        given, family, name = c.get("givenName"), c.get("familyName"), c.get("name")
        if kind == "Person" and not (given or family) and name and ", " in name:
            family, given = name.split(", ", 1)
        role = default_role or CONTRIBUTOR_TYPES.get(c.get("contributorType") or "", "Other")
        person = contributor(
            name=name, given=given, family=family, id=ident,
            affiliations=affs, roles=[role], kind=kind,
        )
        if person is None:
            ctx.warn(f"{path}/{i}", "contributor without a name was dropped", "MissingName")
        else:
            out.append(person)
    return out


class DataCiteReader:
    """
    Reads DataCite JSON: the attributes of a REST API record, optionally
    wrapped in ``{"data": {"attributes": ...}}``.
    """
    format = "datacite"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def parse(self, data: bytes | str) -> Dict[str, Any]:
        doc = load_json(data)
        if isinstance(doc, dict) and isinstance(doc.get("data"), dict):
            doc = doc["data"].get("attributes") or doc["data"]
        if not isinstance(doc, dict):
            msg = "DataCite JSON must be an object"
            raise MalformedInput(msg, [Diagnostic.error("/", msg, "MalformedInput")])
        return doc

    def read(self, data: bytes | str):
        return self.model(self.parse(data))

    def model(self, doc: Dict[str, Any]):
        schema_version = doc.get("schemaVersion") or ""
        version = "4.5"
        if "kernel-" in schema_version:
            version = schema_version.rsplit("kernel-", 1)[-1].strip("/") or version
        ctx = Context(self.format, f"datacite-v{version}")

        record_id = normalise_doi(doc.get("doi")) or normalise_doi(doc.get("id")) or normalise_id(doc.get("id"))
        types = doc.get("types") or {}
        rtg = types.get("resourceTypeGeneral")
        resource_type = types.get("resourceType")
        if resource_type in RECORD_TYPES:
            rtype = resource_type
            additional_type = None
        else:
            rtype = ctx.record_type(rtg, DC_TO_CM, "/types/resourceTypeGeneral")
            additional_type = resource_type or None

        contributors = _contributors(doc.get("creators"), "/creators", ctx, default_role="Author")
        contributors += _contributors(doc.get("contributors"), "/contributors", ctx)

        titles: List[Title] = []
        for t in as_list(doc.get("titles")):
            if isinstance(t, dict) and t.get("title"):
                ttype = t.get("titleType")
                titles.append(Title(t["title"].strip(), ttype if ttype != "Other" else None, t.get("lang")))

        publisher = None
        pub = doc.get("publisher")
        if isinstance(pub, dict) and pub.get("name"):
            publisher = Publisher(pub["name"], org_id(pub.get("publisherIdentifier")))
        elif isinstance(pub, str) and pub.strip():
            publisher = Publisher(pub.strip())

        dates: Dict[str, Optional[str]] = {}
        for i, d in enumerate(as_list(doc.get("dates"))):
            if not isinstance(d, dict):
                continue
            key = DATE_TYPES.get(d.get("dateType") or "")
            if key and key not in dates:
                dates[key] = ctx.date(d.get("date"), f"/dates/{i}/date")
            elif not key:
                ctx.warn(f"/dates/{i}", f"date type {d.get('dateType')!r} has no canonical target",
                         "UnmappableField")
        if not dates.get("published") and doc.get("publicationYear"):
            dates["published"] = ctx.date(str(doc["publicationYear"]), "/publicationYear")

        descriptions = []
        for d in as_list(doc.get("descriptions")):
            if isinstance(d, dict) and d.get("description"):
                dtype = DESCRIPTION_TYPES.get(d.get("descriptionType") or "", "Other")
                descriptions.append(Description(str(d["description"]).strip(), dtype, d.get("lang")))

        subjects = [Subject(s["subject"]) for s in as_list(doc.get("subjects"))
                    if isinstance(s, dict) and s.get("subject")]

        identifiers = [Identifier(record_id, "DOI")] if record_id and "doi.org" in record_id else []
        for ident in as_list(doc.get("identifiers")) + as_list(doc.get("alternateIdentifiers")):
            if not isinstance(ident, dict):
                continue
            value = ident.get("identifier") or ident.get("alternateIdentifier")
            itype = ident.get("identifierType") or ident.get("alternateIdentifierType") or "Other"
            if value and itype != "DOI":
                identifiers.append(Identifier(value, itype if itype in IDENTIFIER_TYPES else "Other"))

        references: List[Reference] = []
        relations: List[Relation] = []
        for r in as_list(doc.get("relatedIdentifiers")):
            if not isinstance(r, dict) or not r.get("relatedIdentifier"):
                continue
            rid = normalise_id(r["relatedIdentifier"]) or r["relatedIdentifier"]
            if r.get("relationType") in REFERENCE_RELATIONS:
                references.append(Reference(key=f"ref{len(references) + 1}", id=rid))
            elif r.get("relationType"):
                relations.append(Relation(rid, r["relationType"]))

        license = None
        for r in as_list(doc.get("rightsList")):
            if isinstance(r, dict) and (r.get("rightsUri") or r.get("rightsIdentifier")):
                license = license_from(url=r.get("rightsUri"), spdx_id=r.get("rightsIdentifier"))
                break

        funding = []
        for f in as_list(doc.get("fundingReferences")):
            if not isinstance(f, dict):
                continue
            funding.append(FundingReference(
                funder_name=f.get("funderName"),
                funder_identifier=f.get("funderIdentifier"),
                funder_identifier_type=f.get("funderIdentifierType"),
                award_number=f.get("awardNumber"),
                award_title=f.get("awardTitle"),
                award_uri=f.get("awardUri"),
            ))

        container = None
        c = doc.get("container")
        if isinstance(c, dict) and c:
            container = Container(
                type=c.get("type"), title=c.get("title"), identifier=c.get("identifier"),
                identifier_type=c.get("identifierType"), volume=c.get("volume"), issue=c.get("issue"),
                first_page=c.get("firstPage"), last_page=c.get("lastPage"),
            )

        ctx.unmapped(doc, UNMAPPED)
        return ctx.finish(
            id=record_id or "",
            type=rtype,
            additional_type=additional_type,
            url=doc.get("url") or None,
            titles=titles,
            contributors=contributors,
            publisher=publisher,
            date=Dates(**{k: v for k, v in dates.items() if v}),
            container=container,
            references=references,
            subjects=subjects,
            language=language_to_iso639_1(doc.get("language")),
            license=license,
            descriptions=descriptions,
            identifiers=identifiers,
            relations=relations,
            funding_references=funding,
            geo_locations=[g for g in as_list(doc.get("geoLocations")) if isinstance(g, dict)],
            version=str(doc["version"]) if doc.get("version") else None,
            provider="DataCite",
        )
