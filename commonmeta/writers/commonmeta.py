from __future__ import annotations
from typing import List, Tuple

from ..models import Diagnostic, Record


class CommonmetaWriter:
    """
    Writes canonical commonmeta JSON (sorted keys, empty values dropped).
    """
    format = "commonmeta"
    media_type = "application/vnd.commonmeta+json"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def write(self, record: Record) -> Tuple[bytes, List[Diagnostic]]:
        return record.to_json(), []
