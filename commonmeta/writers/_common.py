from __future__ import annotations
from typing import List, Optional

from ..models import Diagnostic, Record
from ..utils.normalise import doi_from_url


def url_or_id(record: Record, diags: List[Diagnostic]) -> Optional[str]:
    """
    The value for a format's single URL field.

    Formats that only name a record by DOI or URL carry a non-DOI identity in
    that field. When a different landing page already holds it, the identity is
    dropped with an ``UnmappableField`` warning.
    """
    if doi_from_url(record.id) or not record.id:
        return record.url
    if record.url and record.url != record.id:
        diags.append(Diagnostic.warn("/id", f"identifier {record.id} has no field besides the landing page",
                                     "UnmappableField"))
        return record.url
    return record.id
