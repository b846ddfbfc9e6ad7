"""
Readers turn source bytes into a canonical Record plus diagnostics.

Each reader exposes ``parse(bytes) -> document``, ``model(document) ->
(Record, diagnostics)`` and the shortcut ``read(bytes)``.
"""
from __future__ import annotations
from typing import Any, Dict, List, Protocol, Tuple

from ..errors import UnknownSchema
from ..models import Diagnostic, Record
from .bibtex import BibTeXReader
from .cff import CFFReader
from .codemeta import CodemetaReader
from .commonmeta import CommonmetaReader
from .crossref_xml import CrossrefXMLReader
from .csl import CSLReader
from .datacite import DataCiteReader
from .inveniordm import InvenioRDMReader


class Reader(Protocol):
    format: str

    def accepts(self, fmt: str) -> bool: ...

    def parse(self, data: bytes | str) -> Any: ...

    def model(self, doc: Any) -> Tuple[Record, List[Diagnostic]]: ...

    def read(self, data: bytes | str) -> Tuple[Record, List[Diagnostic]]: ...


READERS: Dict[str, Reader] = {
    r.format: r
    for r in (
        CrossrefXMLReader(),
        DataCiteReader(),
        CSLReader(),
        CodemetaReader(),
        CFFReader(),
        BibTeXReader(),
        InvenioRDMReader(),
        CommonmetaReader(),
    )
}
"""Format tag -> reader."""


def get_reader(fmt: str) -> Reader:
    """
    Reader for a format tag.

    Raises:
        UnknownSchema: when no reader handles ``fmt``.
    """
    try:
        return READERS[fmt]
    except KeyError:
        raise UnknownSchema(f"no reader for format: {fmt}") from None


__all__ = ["READERS", "Reader", "get_reader"]
