# commonmeta/pipeline.py
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

from .errors import ConversionError, MalformedInput, SchemaViolation
from .models import Diagnostic
from .readers import get_reader
from .schemas import JSONSchemaValidator, validator_for_format
from .utils.logging import ConversionLogger
from .writers import get_writer


@dataclass(frozen=True)
class ConvertOptions:
    validate_input: bool = True
    """Check the source bytes against the source format's schema first."""
    validate_output: bool = True
    """Check the written bytes against the target format's schema."""
    strict: bool = False
    """Fail on warnings as well as errors."""


class Fetcher(Protocol):
    """A source that retrieves a record by identifier (DOI, URL, ...)."""

    def get(self, identifier: str) -> Tuple[bytes, str]:
        """Return the raw bytes and their format tag; raise on failure."""
        ...


def _failing(diags: List[Diagnostic], strict: bool) -> List[Diagnostic]:
    return [d for d in diags if d.severity == "error" or (strict and d.severity == "warn")]


def convert(
    data: bytes | str,
    from_format: str,
    to_format: str,
    options: Optional[ConvertOptions] = None,
    logger: Optional[ConversionLogger] = None,
) -> Tuple[bytes, List[Diagnostic]]:
    """
    Convert a metadata document from one format into another.

    Stages run in order: parse, validate input, model, write, validate
    output. Diagnostics are collected across stages and returned in order.

    Args:
        data (bytes | str): The source document.
        from_format (str): Format tag of ``data``.
        to_format (str): Format tag to produce.
        options (ConvertOptions | None): Validation and strictness switches.
        logger (ConversionLogger | None): Where stage events are logged.

    Returns:
        tuple[bytes, list[Diagnostic]]: The output document and all diagnostics.

    Raises:
        UnknownSchema: for an unknown format tag.
        MalformedInput: when ``data`` does not parse as ``from_format``.
        SchemaViolation: when a schema validator rejects the input or output.
        ConversionError: for any other error diagnostic (or warning under ``strict``).
    """
    opts = options or ConvertOptions()
    log = logger or ConversionLogger()
    reader = get_reader(from_format)
    writer = get_writer(to_format)
    diags: List[Diagnostic] = []
    log.info("convert_start", source=from_format, target=to_format, strict=opts.strict)

    def fail(exc_type, message: str):
        for d in diags:
            log.warn("diagnostic", **d.to_dict())
        log.error("convert_failed", source=from_format, target=to_format, reason=message)
        return exc_type(message, diags)

    try:
        doc = reader.parse(data)
    except MalformedInput as e:
        diags.extend(e.diagnostics)
        raise fail(MalformedInput, str(e)) from e
    log.info("parsed", source=from_format)

    if opts.validate_input:
        v = validator_for_format(from_format)
        if v is not None:
            # JSON sources are checked after unwrapping (DataCite REST envelope)
            if isinstance(v, JSONSchemaValidator):
                result = v.validate_instance(doc)
            else:
                result = v.validate(data)
            if not result.ok:
                diags.extend(result.diagnostics("input: "))
                raise fail(SchemaViolation, f"input is not valid {from_format}")
            log.info("input_validated", schema=v.name, version=v.version)

    record, model_diags = reader.model(doc)
    diags.extend(model_diags)
    if _failing(diags, opts.strict):
        raise fail(ConversionError, f"{from_format} record could not be modeled")
    log.info("modeled", id=record.id, type=record.type)

    out, write_diags = writer.write(record)
    diags.extend(write_diags)
    if _failing(diags, opts.strict):
        raise fail(ConversionError, f"record could not be written as {to_format}")
    log.info("written", target=to_format, size=len(out))

    if opts.validate_output:
        v = validator_for_format(to_format)
        if v is not None:
            result = v.validate(out)
            if not result.ok:
                diags.extend(result.diagnostics("output: "))
                raise fail(SchemaViolation, f"output is not valid {to_format}")
            log.info("output_validated", schema=v.name, version=v.version)

    for d in diags:
        log.info("diagnostic", **d.to_dict())
    log.info("convert_done", source=from_format, target=to_format, diagnostics=len(diags))
    return out, diags


def fetch_and_convert(
    fetcher: Fetcher,
    identifier: str,
    to_format: str,
    options: Optional[ConvertOptions] = None,
) -> Tuple[bytes, List[Diagnostic]]:
    """Retrieve a record through ``fetcher`` and convert it to ``to_format``."""
    data, from_format = fetcher.get(identifier)
    return convert(data, from_format, to_format, options)
