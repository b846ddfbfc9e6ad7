from __future__ import annotations
from typing import Any, Dict, List, Optional

from ..errors import MalformedInput
from ..models import Dates, Description, Diagnostic, Identifier, Reference, Subject, Title
from ..schemas import load_yaml
from ..utils.normalise import is_url, normalise_doi
from ._common import Context, affiliation, as_list, contributor, license_from

CFF_TO_CM = {"software": "Software", "dataset": "Dataset"}

IDENTIFIER_TYPES = {"doi": "DOI", "url": "URL", "swh": "Other", "other": "Other"}
"""CFF identifier type -> canonical identifierType."""

UNMAPPED = ("preferred-citation", "contact", "commit", "license-url")


def _authors(items: Any, ctx: Context) -> list:
    out = []
    for i, a in enumerate(as_list(items)):
        if not isinstance(a, dict):
            continue
        affs = [affiliation(None, a["affiliation"])] if a.get("affiliation") else []
        if a.get("name") and not (a.get("given-names") or a.get("family-names")):
            c = contributor(name=a["name"], id=a.get("orcid"),
                            affiliations=affs, kind="Organization")
        else:
            family = a.get("family-names")
            if family and a.get("name-particle"):
                family = f"{a['name-particle']} {family}"
            c = contributor(given=a.get("given-names"), family=family, id=a.get("orcid"),
                            affiliations=affs, kind="Person")
        if c is None:
            ctx.warn(f"/authors/{i}", "author without a name was dropped", "MissingName")
        else:
            out.append(c)
    return out


def _references(items: Any) -> List[Reference]:
    refs = []
    for r in as_list(items):
        if not isinstance(r, dict):
            continue
        rid = normalise_doi(r.get("doi")) or (r.get("url") if is_url(r.get("url")) else None)
        if not rid and not r.get("title"):
            continue
        refs.append(Reference(
            key=f"ref{len(refs) + 1}",
            id=rid,
            title=r.get("title"),
            publication_year=str(r["year"]) if r.get("year") else None,
        ))
    return refs


class CFFReader:
    """
    Reads CITATION.cff (Citation File Format, YAML).
    """
    format = "cff"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def parse(self, data: bytes | str) -> Dict[str, Any]:
        doc = load_yaml(data)
        if not isinstance(doc, dict):
            msg = "CITATION.cff must be a YAML mapping"
            raise MalformedInput(msg, [Diagnostic.error("/", msg, "MalformedInput")])
        return doc

    def read(self, data: bytes | str):
        return self.model(self.parse(data))

    def model(self, doc: Dict[str, Any]):
        ctx = Context(self.format, f"cff-v{doc.get('cff-version') or '1.2.0'}")

        identifiers: List[Identifier] = []
        record_id: Optional[str] = normalise_doi(doc.get("doi"))
        for ident in as_list(doc.get("identifiers")):
            if not isinstance(ident, dict) or not ident.get("value"):
                continue
            itype = IDENTIFIER_TYPES.get(ident.get("type") or "", "Other")
            value = str(ident["value"])
            if itype == "DOI":
                value = normalise_doi(value) or value
                record_id = record_id or normalise_doi(value)
            identifiers.append(Identifier(value, itype))
        url = doc.get("url") or doc.get("repository-code")
        if record_id and not any(i.identifier == record_id for i in identifiers):
            identifiers.insert(0, Identifier(record_id, "DOI"))
        if doc.get("repository-code"):
            identifiers.append(Identifier(doc["repository-code"], "URL"))
        if not record_id:
            record_id = url

        license = None
        lic = as_list(doc.get("license"))
        if lic and isinstance(lic[0], str):
            license = license_from(spdx_id=lic[0])
            if len(lic) > 1:
                ctx.warn("/license", "only the first of several licenses was kept", "UnmappableField")

        ctx.unmapped(doc, UNMAPPED)
        return ctx.finish(
            id=record_id or "",
            type=ctx.record_type(doc.get("type") or "software", CFF_TO_CM),
            url=url,
            titles=[Title(str(doc["title"]).strip())] if doc.get("title") else [],
            contributors=_authors(doc.get("authors"), ctx),
            date=Dates(published=ctx.date(doc.get("date-released"), "/date-released")),
            references=_references(doc.get("references")),
            subjects=[Subject(str(k)) for k in as_list(doc.get("keywords")) if k],
            license=license,
            descriptions=[Description(str(doc["abstract"]).strip(), "Abstract")] if doc.get("abstract") else [],
            identifiers=identifiers,
            version=str(doc["version"]) if doc.get("version") is not None else None,
        )
