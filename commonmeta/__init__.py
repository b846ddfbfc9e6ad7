"""
commonmeta

Converts scholarly metadata between Crossref XML, DataCite JSON, CSL-JSON,
Codemeta, CFF, BibTeX, InvenioRDM and the canonical commonmeta JSON model.

Every reader maps its format into one ``Record``; every writer serializes a
``Record`` back out. ``convert`` runs parse, validate, model, write and
validate again, collecting diagnostics along the way.
"""
__version__ = "0.1.0"

from .errors import (
    CommonmetaError, ConversionError, InvalidUpdateRequest, MalformedInput,
    SchemaViolation, TransportError, UnknownSchema, UnsupportedVocabulary,
)
from .models import Diagnostic, Record
from .pipeline import ConvertOptions, convert, fetch_and_convert
from .readers import get_reader
from .schemas import validator
from .writers import get_writer

__all__ = [
    "CommonmetaError", "ConversionError", "ConvertOptions", "Diagnostic",
    "InvalidUpdateRequest", "MalformedInput", "Record", "SchemaViolation",
    "TransportError", "UnknownSchema", "UnsupportedVocabulary", "convert",
    "fetch_and_convert", "get_reader", "get_writer", "validator",
]
