from __future__ import annotations
import json
from typing import Any, Dict, List, Tuple

from ..models import Diagnostic, Person, Record

CODEMETA_CONTEXT = "https://w3id.org/codemeta/3.0"

CM_TO_CODEMETA = {
    "Software": "SoftwareSourceCode",
    "Dataset": "Dataset",
    "Article": "ScholarlyArticle",
    "JournalArticle": "ScholarlyArticle",
}
"""Canonical type -> schema.org type; anything missing is a CreativeWork."""


def _agent(c) -> Dict[str, Any]:
    if isinstance(c, Person):
        out: Dict[str, Any] = {"@type": "Person"}
        if c.id:
            out["@id"] = c.id
        if c.given_name:
            out["givenName"] = c.given_name
        if c.family_name:
            out["familyName"] = c.family_name
    else:
        out = {"@type": "Organization", "name": c.name}
        if c.id:
            out["@id"] = c.id
    if c.affiliations:
        out["affiliation"] = [
            {k: v for k, v in (("@type", "Organization"), ("@id", a.id), ("name", a.name)) if v}
            for a in c.affiliations
        ]
    return out


class CodemetaWriter:
    """
    Writes codemeta.json (JSON-LD, codemeta 3.0 context).
    """
    format = "codemeta"
    media_type = "application/vnd.codemeta.ld+json"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def write(self, record: Record) -> Tuple[bytes, List[Diagnostic]]:
        diags: List[Diagnostic] = []
        doc: Dict[str, Any] = {
            "@context": CODEMETA_CONTEXT,
            "@type": CM_TO_CODEMETA.get(record.type, "CreativeWork"),
            "@id": record.id,
            "identifier": record.id,
        }
        if record.url:
            doc["url"] = record.url
        repo = next((i.identifier for i in record.identifiers if i.identifier_type == "URL"), None)
        if repo:
            doc["codeRepository"] = repo
        if record.title:
            doc["name"] = record.title

        for role, key in (("Author", "author"), ("Maintainer", "maintainer")):
            agents = [_agent(c) for c in record.contributors if role in c.contributor_roles]
            if role == "Author":
                agents += [_agent(c) for c in record.contributors if not c.contributor_roles]
            if agents:
                doc[key] = agents
        others = [_agent(c) for c in record.contributors
                  if c.contributor_roles and not {"Author", "Maintainer"} & set(c.contributor_roles)]
        if others:
            doc["contributor"] = others

        if record.abstract:
            doc["description"] = record.abstract
        if record.subjects:
            doc["keywords"] = [s.subject for s in record.subjects]
        if record.license:
            lic = record.license
            doc["license"] = f"https://spdx.org/licenses/{lic.id}" if lic.id else lic.url
        if record.version:
            doc["version"] = record.version
        for key, value in (("dateCreated", record.date.created), ("datePublished", record.date.published),
                           ("dateModified", record.date.updated)):
            if value:
                doc[key] = value
        if record.publisher:
            doc["publisher"] = {"@type": "Organization", "name": record.publisher.name}

        funders = [f for f in record.funding_references if f.funder_name]
        if funders:
            doc["funder"] = [
                {k: v for k, v in (("@type", "Organization"), ("@id", f.funder_identifier),
                                   ("name", f.funder_name)) if v}
                for f in funders
            ]
            awards = [f.award_number for f in funders if f.award_number]
            if awards:
                doc["funding"] = awards[0]
                if len(awards) > 1:
                    diags.append(Diagnostic.warn("/fundingReferences", "only the first award number was kept",
                                                 "UnmappableField"))
        if record.references:
            diags.append(Diagnostic.warn("/references", "codemeta has no reference list", "UnmappableField"))
        return json.dumps(doc, ensure_ascii=False, indent=2).encode("utf-8"), diags
