# commonmeta/models.py
from __future__ import annotations
import json
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from .config import COMMONMETA_SCHEMA_VERSION
from .utils.dates import is_iso8601
from .utils.normalise import is_url

RECORD_TYPES = (
    "Article", "Audiovisual", "BlogPost", "Book", "BookChapter", "BookSeries",
    "Collection", "Component", "ComputationalNotebook", "Database", "Dataset",
    "Dissertation", "Document", "Entry", "Event", "Figure", "Image",
    "Instrument", "InteractiveResource", "Journal", "JournalArticle",
    "JournalIssue", "JournalVolume", "LegalDocument", "Manuscript", "Map",
    "Model", "OutputManagementPlan", "Patent", "PeerReview", "Performance",
    "PersonalCommunication", "PhysicalObject", "Post", "Poster", "Presentation",
    "Proceedings", "ProceedingsArticle", "ProceedingsSeries", "Report",
    "Review", "Service", "Software", "Sound", "Standard", "StudyRegistration",
    "WebPage", "Workflow", "Other",
)
"""The closed set of canonical resource types."""

CONTRIBUTOR_ROLES = (
    "Author", "Editor", "Chair", "Reviewer", "ReviewAssistant", "StatsReviewer",
    "ReviewerExternal", "Reader", "Translator", "ContactPerson", "DataCollector",
    "DataManager", "Distributor", "HostingInstitution", "Producer",
    "ProjectLeader", "ProjectManager", "ProjectMember", "RegistrationAgency",
    "RegistrationAuthority", "RelatedPerson", "ResearchGroup", "RightsHolder",
    "Researcher", "Sponsor", "WorkPackageLeader", "Conceptualization",
    "DataCuration", "FormalAnalysis", "FundingAcquisition", "Investigation",
    "Methodology", "ProjectAdministration", "Resources", "Software",
    "Supervision", "Validation", "Visualization", "WritingOriginalDraft",
    "WritingReviewEditing", "Maintainer", "Other",
)
"""The closed set of contributor roles."""

CONTAINER_TYPES = {
    "BookChapter": "Book",
    "Dataset": "Database",
    "JournalArticle": "Journal",
    "JournalIssue": "Journal",
    "Book": "BookSeries",
    "ProceedingsArticle": "Proceedings",
    "Proceedings": "ProceedingsSeries",
    "Article": "Periodical",
    "BlogPost": "Blog",
    "Software": "CodeRepository",
}
"""Container type implied by the type of the contained record."""

SEVERITIES = ("warn", "error")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


def _empty(v: Any) -> bool:
    return v is None or v == "" or (isinstance(v, (tuple, list, dict)) and len(v) == 0)


def _dump(obj: Any) -> Any:
    """Recursively convert dataclasses to camelCase dicts, dropping empty values."""
    if is_dataclass(obj):
        out: Dict[str, Any] = {}
        for f in fields(obj):
            v = _dump(getattr(obj, f.name))
            if not _empty(v):
                out[_camel(f.name)] = v
        return out
    if isinstance(obj, (list, tuple)):
        return [_dump(x) for x in obj]
    if isinstance(obj, dict):
        return {k: _dump(v) for k, v in obj.items() if not _empty(v)}
    return obj


def _s(d: Dict[str, Any], key: str) -> Optional[str]:
    v = d.get(key)
    if v is None or v == "":
        return None
    return str(v)


@dataclass(frozen=True)
class Diagnostic:
    """A warning or error found while reading, writing or validating a record."""
    severity: str
    """Either "warn" or "error"."""
    path: str
    """JSON Pointer (or XML path) of the offending value."""
    message: str
    """Human readable explanation."""
    kind: str = ""
    """Error kind, e.g. "UnmappableField", "UnknownType", "SchemaViolation"."""

    @classmethod
    def warn(cls, path: str, message: str, kind: str = "") -> "Diagnostic":
        return cls("warn", path, message, kind)

    @classmethod
    def error(cls, path: str, message: str, kind: str = "") -> "Diagnostic":
        return cls("error", path, message, kind)

    def to_dict(self) -> Dict[str, str]:
        return {"severity": self.severity, "path": self.path, "message": self.message, "kind": self.kind}


@dataclass(frozen=True)
class Title:
    title: str
    type: Optional[str] = None  # AlternativeTitle | Subtitle | TranslatedTitle
    language: Optional[str] = None


@dataclass(frozen=True)
class Affiliation:
    id: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class Person:
    """
    A personal contributor.
    """
    given_name: Optional[str] = None
    """Given (first) name."""
    family_name: Optional[str] = None
    """Family (last) name."""
    name: Optional[str] = None
    """Display form, only when the source states it explicitly."""
    id: Optional[str] = None
    """ORCID URL (or another person identifier URL)."""
    affiliations: Tuple[Affiliation, ...] = ()
    contributor_roles: Tuple[str, ...] = ()
    type: Literal["Person"] = field(default="Person", init=False)

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        return " ".join(p for p in (self.given_name, self.family_name) if p)


@dataclass(frozen=True)
class Organization:
    """
    An organizational contributor; ``name`` is the primary value.
    """
    name: str
    id: Optional[str] = None
    """ROR URL (or another organization identifier URL)."""
    affiliations: Tuple[Affiliation, ...] = ()
    contributor_roles: Tuple[str, ...] = ()
    type: Literal["Organization"] = field(default="Organization", init=False)

    @property
    def display_name(self) -> str:
        return self.name


Contributor = Union[Person, Organization]


@dataclass(frozen=True)
class Publisher:
    name: str
    id: Optional[str] = None


@dataclass(frozen=True)
class Dates:
    """ISO-8601 dates describing the lifecycle of the resource."""
    published: Optional[str] = None
    updated: Optional[str] = None
    accepted: Optional[str] = None
    submitted: Optional[str] = None
    created: Optional[str] = None
    available: Optional[str] = None
    accessed: Optional[str] = None
    collected: Optional[str] = None
    copyrighted: Optional[str] = None
    valid: Optional[str] = None
    withdrawn: Optional[str] = None
    other: Optional[str] = None


DATE_FIELDS = tuple(f.name for f in fields(Dates))


@dataclass(frozen=True)
class Container:
    """The periodical, book or repository that contains the resource."""
    type: Optional[str] = None
    title: Optional[str] = None
    identifier: Optional[str] = None
    identifier_type: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    first_page: Optional[str] = None
    last_page: Optional[str] = None

    @property
    def pages(self) -> Optional[str]:
        if self.first_page and self.last_page:
            return f"{self.first_page}-{self.last_page}"
        return self.first_page or None


@dataclass(frozen=True)
class Reference:
    key: str
    id: Optional[str] = None
    type: Optional[str] = None
    title: Optional[str] = None
    publication_year: Optional[str] = None
    unstructured: Optional[str] = None


@dataclass(frozen=True)
class Subject:
    subject: str


@dataclass(frozen=True)
class License:
    id: Optional[str] = None
    """SPDX identifier."""
    url: Optional[str] = None


@dataclass(frozen=True)
class Description:
    description: str
    type: Optional[str] = None  # Abstract | Summary | Methods | TechnicalInfo | Other
    language: Optional[str] = None


@dataclass(frozen=True)
class Identifier:
    identifier: str
    identifier_type: str


@dataclass(frozen=True)
class Relation:
    id: str
    type: str


@dataclass(frozen=True)
class FundingReference:
    funder_name: Optional[str] = None
    funder_identifier: Optional[str] = None
    funder_identifier_type: Optional[str] = None
    award_number: Optional[str] = None
    award_title: Optional[str] = None
    award_uri: Optional[str] = None


@dataclass(frozen=True)
class File:
    url: str
    mime_type: Optional[str] = None
    size: Optional[int] = None
    checksum: Optional[str] = None
    key: Optional[str] = None


@dataclass(frozen=True)
class Provenance:
    source: str
    """Format tag of the reader that produced the record."""
    schema_version: str
    """Detected or declared version of the source schema."""


def default_provenance() -> Provenance:
    return Provenance("commonmeta", f"commonmeta-v{COMMONMETA_SCHEMA_VERSION}")


@dataclass(frozen=True)
class Record:
    """
    The canonical (commonmeta) metadata record.

    Created by a reader and never mutated afterwards; use
    ``dataclasses.replace`` to derive a modified copy.
    """
    id: str
    """Primary identity, an absolute URL (usually a DOI URL)."""
    type: str = "Other"
    """One of RECORD_TYPES."""
    additional_type: Optional[str] = None
    url: Optional[str] = None
    """Landing page."""
    titles: Tuple[Title, ...] = ()
    contributors: Tuple[Contributor, ...] = ()
    publisher: Optional[Publisher] = None
    date: Dates = field(default_factory=Dates)
    container: Optional[Container] = None
    references: Tuple[Reference, ...] = ()
    subjects: Tuple[Subject, ...] = ()
    language: Optional[str] = None
    license: Optional[License] = None
    descriptions: Tuple[Description, ...] = ()
    identifiers: Tuple[Identifier, ...] = ()
    relations: Tuple[Relation, ...] = ()
    funding_references: Tuple[FundingReference, ...] = ()
    files: Tuple[File, ...] = ()
    geo_locations: Tuple[Dict[str, Any], ...] = ()
    """Free-form geolocations, preserved verbatim."""
    version: Optional[str] = None
    provider: Optional[str] = None
    archive_locations: Tuple[str, ...] = ()
    provenance: Provenance = field(default_factory=default_provenance)

    @property
    def title(self) -> Optional[str]:
        """The main title: the first title without a type, else the first title."""
        for t in self.titles:
            if not t.type:
                return t.title
        return self.titles[0].title if self.titles else None

    @property
    def abstract(self) -> Optional[str]:
        for d in self.descriptions:
            if d.type in (None, "Abstract"):
                return d.description
        return None

    def to_dict(self) -> Dict[str, Any]:
        return _dump(self)

    def to_json(self) -> bytes:
        """Canonical JSON: sorted keys, empty values dropped, UTF-8."""
        return json.dumps(self.to_dict(), sort_keys=True, ensure_ascii=False, indent=2).encode("utf-8")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Record":
        """
        Build a record from its canonical JSON form.

        Raises:
            ValueError: when a contributor is neither a Person nor an Organization.
        """
        date = d.get("date") or {}
        prov = d.get("provenance") or {}
        return cls(
            id=d.get("id") or "",
            type=d.get("type") or "Other",
            additional_type=_s(d, "additionalType"),
            url=_s(d, "url"),
            titles=tuple(Title(t["title"], _s(t, "type"), _s(t, "language"))
                         for t in d.get("titles") or [] if t.get("title")),
            contributors=tuple(contributor_from_dict(c) for c in d.get("contributors") or []),
            publisher=Publisher(d["publisher"]["name"], _s(d["publisher"], "id"))
            if (d.get("publisher") or {}).get("name") else None,
            date=Dates(**{k: _s(date, k) for k in DATE_FIELDS}),
            container=Container(**{f.name: _s(d["container"], _camel(f.name)) for f in fields(Container)})
            if d.get("container") else None,
            references=tuple(Reference(str(r.get("key") or ""), _s(r, "id"), _s(r, "type"), _s(r, "title"),
                                       _s(r, "publicationYear"), _s(r, "unstructured"))
                             for r in d.get("references") or []),
            subjects=tuple(Subject(s["subject"]) for s in d.get("subjects") or [] if s.get("subject")),
            language=_s(d, "language"),
            license=License(_s(d["license"], "id"), _s(d["license"], "url")) if d.get("license") else None,
            descriptions=tuple(Description(x["description"], _s(x, "type"), _s(x, "language"))
                               for x in d.get("descriptions") or [] if x.get("description")),
            identifiers=tuple(Identifier(i["identifier"], i.get("identifierType") or "Other")
                              for i in d.get("identifiers") or [] if i.get("identifier")),
            relations=tuple(Relation(r["id"], r["type"]) for r in d.get("relations") or []
                            if r.get("id") and r.get("type")),
            funding_references=tuple(FundingReference(**{f.name: _s(x, _camel(f.name)) for f in fields(FundingReference)})
                                     for x in d.get("fundingReferences") or []),
            files=tuple(File(x["url"], _s(x, "mimeType"), x.get("size"), _s(x, "checksum"), _s(x, "key"))
                        for x in d.get("files") or [] if x.get("url")),
            geo_locations=tuple(d.get("geoLocations") or []),
            version=_s(d, "version"),
            provider=_s(d, "provider"),
            archive_locations=tuple(d.get("archiveLocations") or []),
            provenance=Provenance(prov.get("source") or "commonmeta",
                                  prov.get("schemaVersion") or default_provenance().schema_version),
        )


def _affiliations(items: Any) -> Tuple[Affiliation, ...]:
    out: List[Affiliation] = []
    for a in items or []:
        if isinstance(a, str):
            out.append(Affiliation(name=a))
        elif isinstance(a, dict) and (a.get("id") or a.get("name")):
            out.append(Affiliation(_s(a, "id"), _s(a, "name")))
    return tuple(out)


def contributor_from_dict(d: Dict[str, Any]) -> Contributor:
    """
    Build the Person or Organization variant from its canonical JSON form.

    The ``type`` tag decides the variant; untagged entries with a given or
    family name are persons, others organizations.

    Raises:
        ValueError: for an unknown ``type`` tag or an organization without a name.
    """
    kind = d.get("type")
    if kind is None:
        kind = "Person" if (d.get("givenName") or d.get("familyName")) else "Organization"
    roles = tuple(d.get("contributorRoles") or ())
    if kind == "Person":
        return Person(
            given_name=_s(d, "givenName"),
            family_name=_s(d, "familyName"),
            name=_s(d, "name"),
            id=_s(d, "id"),
            affiliations=_affiliations(d.get("affiliations")),
            contributor_roles=roles,
        )
    if kind == "Organization":
        if not d.get("name"):
            raise ValueError("organization contributor without a name")
        return Organization(
            name=str(d["name"]),
            id=_s(d, "id"),
            affiliations=_affiliations(d.get("affiliations")),
            contributor_roles=roles,
        )
    raise ValueError(f"unknown contributor type: {kind!r}")


def check_record(record: Record) -> List[Diagnostic]:
    """
    Report violations of the canonical record invariants.

    Args:
        record (Record): The record to check.

    Returns:
        list[Diagnostic]: errors for a missing/invalid id or type, warnings for
        dates that are not ISO-8601.
    """
    out: List[Diagnostic] = []
    if not record.id:
        out.append(Diagnostic.error("/id", "record has no identifier", "MissingIdentifier"))
    elif not is_url(record.id):
        out.append(Diagnostic.error("/id", f"identifier is not an absolute URL: {record.id}", "InvalidIdentifier"))
    if record.type not in RECORD_TYPES:
        out.append(Diagnostic.error("/type", f"unsupported type: {record.type}", "UnknownType"))
    for name in DATE_FIELDS:
        v = getattr(record.date, name)
        if v and not is_iso8601(v):
            out.append(Diagnostic.warn(f"/date/{name}", f"not an ISO-8601 date: {v}", "InvalidDate"))
    for i, c in enumerate(record.contributors):
        if not isinstance(c, (Person, Organization)):
            out.append(Diagnostic.error(f"/contributors/{i}", "contributor is neither Person nor Organization"))
    return out
