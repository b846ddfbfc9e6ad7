from __future__ import annotations
from typing import Any, Dict, List, Tuple

import yaml

from ..models import Diagnostic, Person, Record
from ..utils.normalise import doi_from_url, normalise_orcid
from ._common import url_or_id

DEFAULT_MESSAGE = "If you use this software, please cite it as below."


def _author(c) -> Dict[str, Any]:
    if isinstance(c, Person):
        out: Dict[str, Any] = {}
        if c.given_name:
            out["given-names"] = c.given_name
        if c.family_name:
            out["family-names"] = c.family_name
        if normalise_orcid(c.id):
            out["orcid"] = normalise_orcid(c.id)
        names = [a.name for a in c.affiliations if a.name]
        if names:
            out["affiliation"] = names[0]
        return out
    return {"name": c.name}


class CFFWriter:
    """
    Writes CITATION.cff (Citation File Format 1.2.0).
    """
    format = "cff"
    media_type = "application/vnd.citationfileformat+yaml"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def write(self, record: Record) -> Tuple[bytes, List[Diagnostic]]:
        diags: List[Diagnostic] = []
        doc: Dict[str, Any] = {
            "cff-version": "1.2.0",
            "message": DEFAULT_MESSAGE,
            "type": "dataset" if record.type == "Dataset" else "software",
        }
        if record.type not in ("Software", "Dataset"):
            diags.append(Diagnostic.warn("/type", f"type {record.type} written as software", "UnmappableField"))
        if record.title:
            doc["title"] = record.title
        authors = [_author(c) for c in record.contributors
                   if "Author" in c.contributor_roles or not c.contributor_roles]
        if authors:
            doc["authors"] = authors

        doi = doi_from_url(record.id)
        if doi:
            doc["doi"] = doi
        url = url_or_id(record, diags)
        if url:
            doc["url"] = url
        repo = next((i.identifier for i in record.identifiers if i.identifier_type == "URL"), None)
        if repo:
            doc["repository-code"] = repo
        if record.abstract:
            doc["abstract"] = record.abstract
        if record.subjects:
            doc["keywords"] = [s.subject for s in record.subjects]
        if record.license and record.license.id:
            doc["license"] = record.license.id
        if record.version:
            doc["version"] = record.version

        published = record.date.published
        if published and len(published) >= 10:
            doc["date-released"] = published[:10]
        elif published:
            diags.append(Diagnostic.warn("/date/published", f"CFF needs a full date, got {published}",
                                         "UnmappableField"))

        refs = []
        for r in record.references:
            ref: Dict[str, Any] = {"type": "generic"}
            if r.title:
                ref["title"] = r.title
            if r.id and doi_from_url(r.id):
                ref["doi"] = doi_from_url(r.id)
            elif r.id:
                ref["url"] = r.id
            if r.publication_year:
                ref["year"] = r.publication_year
            if len(ref) > 1:
                refs.append(ref)
        if refs:
            doc["references"] = refs

        text = yaml.safe_dump(doc, sort_keys=False, allow_unicode=True)
        return text.encode("utf-8"), diags
