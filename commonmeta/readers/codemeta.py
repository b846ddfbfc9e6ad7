from __future__ import annotations
import re
from typing import Any, Dict, List, Optional

from ..errors import MalformedInput
from ..models import Dates, Description, Diagnostic, FundingReference, Identifier, Publisher, Subject, Title
from ..schemas import load_json
from ..utils.normalise import is_url, normalise_doi
from ._common import Context, affiliation, as_list, contributor, license_from, org_id

CODEMETA_TO_CM = {
    "SoftwareSourceCode": "Software",
    "SoftwareApplication": "Software",
    "Dataset": "Dataset",
    "ScholarlyArticle": "Article",
    "CreativeWork": "Other",
}

UNMAPPED = (
    "programmingLanguage", "operatingSystem", "softwareRequirements",
    "runtimePlatform", "developmentStatus", "issueTracker", "readme",
    "buildInstructions", "continuousIntegration",
)

SPDX_URL_RE = re.compile(r"^https?://spdx\.org/licenses/([A-Za-z0-9.\-+]+?)(?:\.html|\.json)?$")


def _version(context: Any) -> str:
    for c in as_list(context):
        if isinstance(c, str) and "codemeta" in c:
            m = re.search(r"(\d+\.\d+)", c)
            if m:
                return m.group(1)
    return "2.0"


def _license(value: Any):
    for v in as_list(value):
        if isinstance(v, dict):
            v = v.get("url") or v.get("@id") or v.get("identifier")
        if not isinstance(v, str) or not v:
            continue
        m = SPDX_URL_RE.match(v.strip())
        if m:
            return license_from(spdx_id=m.group(1))
        return license_from(url=v) if is_url(v) else license_from(spdx_id=v)
    return None


def _people(items: Any, role: str, path: str, ctx: Context) -> list:
    out = []
    for i, p in enumerate(as_list(items)):
        if isinstance(p, str):
            c = contributor(name=p, roles=[role])
        elif isinstance(p, dict):
            kind = {"Person": "Person", "Organization": "Organization"}.get(p.get("@type") or "")
            affs = []
            for a in as_list(p.get("affiliation")):
                if isinstance(a, str):
                    affs.append(affiliation(None, a))
                elif isinstance(a, dict):
                    affs.append(affiliation(a.get("@id") or a.get("identifier"), a.get("name") or a.get("legalName")))
            c = contributor(
                name=p.get("name"), given=p.get("givenName"), family=p.get("familyName"),
                id=p.get("@id") or p.get("identifier"), affiliations=affs, roles=[role], kind=kind,
            )
        else:
            c = None
        if c is None:
            ctx.warn(f"{path}/{i}", "contributor without a name was dropped", "MissingName")
        else:
            out.append(c)
    return out


class CodemetaReader:
    """
    Reads codemeta.json (JSON-LD, codemeta 2.0 and 3.0 contexts).
    """
    format = "codemeta"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def parse(self, data: bytes | str) -> Dict[str, Any]:
        doc = load_json(data)
        if not isinstance(doc, dict):
            msg = "codemeta JSON must be an object"
            raise MalformedInput(msg, [Diagnostic.error("/", msg, "MalformedInput")])
        return doc

    def read(self, data: bytes | str):
        return self.model(self.parse(data))

    def model(self, doc: Dict[str, Any]):
        ctx = Context(self.format, f"codemeta-v{_version(doc.get('@context'))}")

        candidates = [doc.get("@id")] + [
            i.get("value") if isinstance(i, dict) else i for i in as_list(doc.get("identifier"))
        ]
        record_id: Optional[str] = None
        for c in candidates:
            if isinstance(c, str) and normalise_doi(c):
                record_id = normalise_doi(c)
                break
        url = doc.get("url") or doc.get("codeRepository")
        if not record_id:
            record_id = next((c for c in candidates if isinstance(c, str) and is_url(c)), None) or url

        rtype = ctx.record_type(doc.get("@type"), CODEMETA_TO_CM, "/@type")

        contributors = _people(doc.get("author"), "Author", "/author", ctx)
        contributors += _people(doc.get("contributor"), "Other", "/contributor", ctx)
        contributors += _people(doc.get("maintainer"), "Maintainer", "/maintainer", ctx)

        keywords = doc.get("keywords")
        if isinstance(keywords, str):
            keywords = keywords.split(",")
        subjects = [Subject(k.strip()) for k in as_list(keywords) if isinstance(k, str) and k.strip()]

        publisher = None
        pub = doc.get("publisher")
        if isinstance(pub, dict) and pub.get("name"):
            publisher = Publisher(pub["name"], org_id(pub.get("@id")))
        elif isinstance(pub, str) and pub:
            publisher = Publisher(pub)

        funding: List[FundingReference] = []
        for f in as_list(doc.get("funder")):
            if isinstance(f, dict) and f.get("name"):
                funding.append(FundingReference(
                    funder_name=f["name"],
                    funder_identifier=f.get("@id"),
                    funder_identifier_type="ROR" if "ror.org" in (f.get("@id") or "") else None,
                    award_number=doc.get("funding") if isinstance(doc.get("funding"), str) else None,
                ))

        identifiers = [Identifier(record_id, "DOI")] if record_id and normalise_doi(record_id) else []
        repo = doc.get("codeRepository")
        if repo and repo != record_id:
            identifiers.append(Identifier(repo, "URL"))

        ctx.unmapped(doc, UNMAPPED)
        return ctx.finish(
            id=record_id or "",
            type=rtype,
            url=url,
            titles=[Title(doc["name"].strip())] if doc.get("name") else [],
            contributors=contributors,
            publisher=publisher,
            date=Dates(
                published=ctx.date(doc.get("datePublished"), "/datePublished"),
                created=ctx.date(doc.get("dateCreated"), "/dateCreated"),
                updated=ctx.date(doc.get("dateModified"), "/dateModified"),
            ),
            subjects=subjects,
            license=_license(doc.get("license")),
            descriptions=[Description(doc["description"].strip(), "Abstract")] if doc.get("description") else [],
            identifiers=identifiers,
            funding_references=funding,
            version=str(doc.get("version") or doc.get("softwareVersion") or "") or None,
        )
