"""
Writers serialize a canonical Record into one target format.

Each writer exposes ``write(record) -> (bytes, diagnostics)`` and the
``media_type`` of what it produces.
"""
from __future__ import annotations
from typing import Dict, List, Protocol, Tuple

from ..errors import UnknownSchema
from ..models import Diagnostic, Record
from .bibtex import BibTeXWriter
from .cff import CFFWriter
from .codemeta import CodemetaWriter
from .commonmeta import CommonmetaWriter
from .crossref_xml import CrossrefXMLWriter
from .csl import CSLWriter
from .datacite import DataCiteWriter
from .inveniordm import InvenioRDMWriter


class Writer(Protocol):
    format: str
    media_type: str

    def accepts(self, fmt: str) -> bool: ...

    def write(self, record: Record) -> Tuple[bytes, List[Diagnostic]]: ...


WRITERS: Dict[str, Writer] = {
    w.format: w
    for w in (
        CrossrefXMLWriter(),
        DataCiteWriter(),
        CSLWriter(),
        CodemetaWriter(),
        CFFWriter(),
        BibTeXWriter(),
        InvenioRDMWriter(),
        CommonmetaWriter(),
    )
}
"""Format tag -> writer."""

MEDIA_TYPES = {fmt: w.media_type for fmt, w in WRITERS.items()}


def get_writer(fmt: str) -> Writer:
    """
    Writer for a format tag.

    Raises:
        UnknownSchema: when no writer handles ``fmt``.
    """
    try:
        return WRITERS[fmt]
    except KeyError:
        raise UnknownSchema(f"no writer for format: {fmt}") from None


__all__ = ["MEDIA_TYPES", "WRITERS", "Writer", "get_writer"]
