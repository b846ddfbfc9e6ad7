from __future__ import annotations
from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Diagnostic


class CommonmetaError(Exception):
    """Base class for every error raised by commonmeta."""


class ConversionError(CommonmetaError):
    """
    A conversion stage failed.

    Carries the full, ordered list of diagnostics collected up to the failure
    so callers can show every problem instead of only the first one.
    """

    def __init__(self, message: str, diagnostics: List["Diagnostic"] | None = None):
        super().__init__(message)
        self.diagnostics: List["Diagnostic"] = list(diagnostics or [])


class MalformedInput(ConversionError):
    """The bytes do not parse in the declared format."""


class SchemaViolation(ConversionError):
    """The document parsed, but the schema validator rejected it."""


class UnknownSchema(CommonmetaError, KeyError):
    """Unrecognized schema name/version or format tag."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown schema"


class UnsupportedVocabulary(CommonmetaError, KeyError):
    """Unrecognized vocabulary name."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unsupported vocabulary"


class InvalidUpdateRequest(CommonmetaError, ValueError):
    """Preconditions of a legacy-database update are not met."""


class TransportError(CommonmetaError):
    """Network failure while talking to an external service."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status
