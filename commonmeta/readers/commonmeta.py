from __future__ import annotations
from typing import Any, Dict

from ..config import COMMONMETA_SCHEMA_VERSION
from ..errors import MalformedInput
from ..models import RECORD_TYPES, Diagnostic, Record, contributor_from_dict
from ..schemas import load_json
from ._common import Context


class CommonmetaReader:
    """
    Reads canonical commonmeta JSON.

    Every canonical field is kept as is; only the provenance source is
    rewritten to this reader's format tag.
    """
    format = "commonmeta"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def parse(self, data: bytes | str) -> Dict[str, Any]:
        doc = load_json(data)
        if not isinstance(doc, dict):
            msg = "commonmeta JSON must be an object"
            raise MalformedInput(msg, [Diagnostic.error("/", msg, "MalformedInput")])
        return doc

    def read(self, data: bytes | str):
        return self.model(self.parse(data))

    def model(self, doc: Dict[str, Any]):
        declared = (doc.get("provenance") or {}).get("schemaVersion")
        ctx = Context(self.format, declared or f"commonmeta-v{COMMONMETA_SCHEMA_VERSION}")

        contributors = []
        for i, c in enumerate(doc.get("contributors") or []):
            try:
                contributors.append(contributor_from_dict(c))
            except (ValueError, AttributeError) as e:
                ctx.error(f"/contributors/{i}", str(e), "InvalidContributor")

        rtype = doc.get("type") or "Other"
        if rtype not in RECORD_TYPES:
            ctx.warn("/type", f"unknown type {rtype!r}, using Other", "UnknownType")
            rtype = "Other"

        try:
            base = Record.from_dict({**doc, "contributors": [], "type": rtype})
        except (AttributeError, KeyError, TypeError) as e:
            msg = f"not a commonmeta record: {e}"
            raise MalformedInput(msg, [Diagnostic.error("/", msg, "MalformedInput")]) from e

        fields = {name: getattr(base, name) for name in Record.__dataclass_fields__}
        fields.pop("provenance")
        fields["contributors"] = contributors
        return ctx.finish(**fields)
