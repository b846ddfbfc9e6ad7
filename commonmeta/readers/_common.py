from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..models import (
    RECORD_TYPES, Affiliation, Contributor, Diagnostic, License, Organization,
    Person, Provenance, Record, check_record,
)
from ..utils.authors import parse_name
from ..utils.dates import normalise_date
from ..utils.normalise import is_url, normalise_orcid, normalise_ror
from ..vocabularies.ror import display_name, find_organization
from ..vocabularies.spdx import find_license, license_from_url, license_url


class Context:
    """
    Collects diagnostics while one document is mapped to a record.
    """

    def __init__(self, source: str, schema_version: str):
        self.source = source
        self.schema_version = schema_version
        self.diagnostics: List[Diagnostic] = []

    def warn(self, path: str, message: str, kind: str = ""):
        self.diagnostics.append(Diagnostic.warn(path, message, kind))

    def error(self, path: str, message: str, kind: str = ""):
        self.diagnostics.append(Diagnostic.error(path, message, kind))

    def unmapped(self, doc: Mapping[str, Any], names: Iterable[str], prefix: str = ""):
        """Warn about source fields that have no canonical counterpart."""
        for name in names:
            if doc.get(name) not in (None, "", [], {}):
                self.warn(f"{prefix}/{name}", f"field {name!r} has no canonical target and was dropped",
                          "UnmappableField")

    def date(self, value: Any, path: str) -> Optional[str]:
        """ISO-8601 form of ``value``; anything unparseable is dropped with a warning."""
        if value in (None, ""):
            return None
        iso = normalise_date(value)
        if iso is None:
            self.warn(path, f"not an ISO-8601 date: {value}", "InvalidDate")
        return iso

    def record_type(self, value: Optional[str], table: Mapping[str, str], path: str = "/type") -> str:
        """Map a source type through ``table``; unknown values become Other."""
        if value and value in table:
            return table[value]
        if value:
            self.warn(path, f"unknown type {value!r}, using Other", "UnknownType")
        return "Other"

    def finish(self, **kwargs) -> tuple[Record, List[Diagnostic]]:
        """Build the record, then append invariant violations to the diagnostics."""
        kwargs.setdefault("provenance", Provenance(self.source, self.schema_version))
        for key, value in list(kwargs.items()):
            if isinstance(value, list):
                kwargs[key] = tuple(value)
        record = Record(**kwargs)
        if record.type not in RECORD_TYPES:
            self.warn("/type", f"unknown type {record.type!r}, using Other", "UnknownType")
            record = Record(**{**kwargs, "type": "Other"})
        self.diagnostics.extend(check_record(record))
        return record, self.diagnostics


def affiliation(id: Optional[str] = None, name: Optional[str] = None) -> Optional[Affiliation]:
    """An affiliation, with the name filled from ROR when only the id is known."""
    rid = normalise_ror(id) if id else None
    ident = rid or (id.strip() if is_url(id) else None)
    if not name and rid:
        org = find_organization(rid)
        if org:
            name = display_name(org)
    if not ident and not name:
        return None
    return Affiliation(ident, name.strip() if name else None)


def person_id(id: Optional[str]) -> Optional[str]:
    return normalise_orcid(id) or (id.strip() if is_url(id) else None)


def org_id(id: Optional[str]) -> Optional[str]:
    return normalise_ror(id) or (id.strip() if is_url(id) else None)


def contributor(
    name: Optional[str] = None,
    given: Optional[str] = None,
    family: Optional[str] = None,
    id: Optional[str] = None,
    affiliations: Sequence[Affiliation] = (),
    roles: Sequence[str] = ("Author",),
    kind: Optional[str] = None,
) -> Optional[Contributor]:
    """
    Build the Person or Organization variant for a source contributor.

    ``kind`` ("Person"/"Organization") wins when the source states it; then
    explicit given/family names mean a person; otherwise the display name is
    classified with ``parse_name``.
    """
    name = name.strip() if isinstance(name, str) and name.strip() else None
    given = given.strip() if isinstance(given, str) and given.strip() else None
    family = family.strip() if isinstance(family, str) and family.strip() else None
    affs = tuple(a for a in affiliations if a)
    roles = tuple(roles)
    if kind == "Organization":
        if not name:
            name = " ".join(p for p in (given, family) if p) or None
        if not name:
            return None
        return Organization(name=name, id=org_id(id), affiliations=affs, contributor_roles=roles)
    if kind == "Person" or given or family:
        if not (given or family) and name:
            g, f, _ = parse_name(name)
            given, family = (g or None), (f or name)
        if not (given or family):
            return None
        return Person(given_name=given, family_name=family, id=person_id(id),
                      affiliations=affs, contributor_roles=roles)
    if not name:
        return None
    g, f, org = parse_name(name)
    if org:
        return Organization(name=org, id=org_id(id), affiliations=affs, contributor_roles=roles)
    return Person(given_name=g or None, family_name=f or None, id=person_id(id),
                  affiliations=affs, contributor_roles=roles)


def license_from(url: Optional[str] = None, spdx_id: Optional[str] = None) -> Optional[License]:
    """License resolved against the SPDX list from a URL and/or an identifier."""
    if url:
        lid, norm = license_from_url(url)
        if lid is None and spdx_id:
            lic = find_license(spdx_id)
            lid = lic["licenseId"] if lic else spdx_id
        return License(lid, norm)
    if spdx_id:
        lic = find_license(spdx_id)
        if lic:
            return License(lic["licenseId"], license_url(lic["licenseId"]))
        return License(spdx_id, None)
    return None


def as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


