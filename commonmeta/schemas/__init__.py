"""
Schema registry.

Maps a schema name and version to a validator over an embedded schema
document. JSON Schemas are checked with ``jsonschema`` (Draft 7), the Crossref
XSD with ``xmlschema``.
"""
from __future__ import annotations
import datetime as _dt
import json
import threading
from dataclasses import dataclass, field
from importlib import resources
from typing import Any, Callable, Dict, List, Optional, Tuple

import xmlschema
import yaml
from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError, best_match

from ..errors import MalformedInput, UnknownSchema
from ..models import Diagnostic
from ..utils.xml import parse_xml

SCHEMAS: Dict[Tuple[str, str], str] = {
    ("commonmeta", "0.12"): "commonmeta_v0.12.json",
    ("csl-data", "1.0"): "csl-data.json",
    ("datacite", "4.5"): "datacite-v4.5.json",
    ("invenio-rdm", "0.1"): "invenio-rdm-v0.1.json",
    ("cff", "1.2.0"): "cff_v1.2.0.json",
    ("crossref-xml", "3.0"): "crossref-xml-v3.0.xsd",
}
"""(name, version) -> embedded schema document."""

CURRENT_VERSIONS = {name: version for name, version in SCHEMAS}
"""The version used when a caller does not ask for one."""

FORMAT_SCHEMAS = {
    "commonmeta": "commonmeta",
    "csl": "csl-data",
    "datacite": "datacite",
    "invenio-rdm": "invenio-rdm",
    "cff": "cff",
    "crossref-xml": "crossref-xml",
}
"""Format tag -> schema name. Formats missing here have no validator."""


@dataclass(frozen=True)
class SchemaError:
    path: str
    """JSON Pointer (or XPath for XML) of the offending value."""
    message: str
    keyword: str
    """The failing schema keyword, e.g. "required" or "enum"."""


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    errors: Tuple[SchemaError, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "errors": [e.__dict__ for e in self.errors]}

    def diagnostics(self, prefix: str = "") -> List[Diagnostic]:
        return [
            Diagnostic.error(e.path, f"{prefix}{e.message}", "SchemaViolation")
            for e in self.errors
        ]


def _malformed(what: str, e: Exception) -> MalformedInput:
    msg = f"malformed {what}: {e}"
    return MalformedInput(msg, [Diagnostic.error("/", msg, "MalformedInput")])


def load_json(data: bytes | str) -> Any:
    try:
        return json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise _malformed("JSON", e) from e


def _stringify_dates(obj: Any) -> Any:
    # YAML turns unquoted 2023-05-01 into a date object
    if isinstance(obj, (_dt.date, _dt.datetime)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {k: _stringify_dates(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_stringify_dates(v) for v in obj]
    return obj


def load_yaml(data: bytes | str) -> Any:
    try:
        return _stringify_dates(yaml.safe_load(data))
    except yaml.YAMLError as e:
        raise _malformed("YAML", e) from e


def _pointer(parts) -> str:
    return "".join(f"/{p}" for p in parts)


def _schema_error(err: ValidationError) -> SchemaError:
    if err.validator in ("anyOf", "oneOf") and err.context:
        err = best_match(err.context)
    path = list(err.absolute_path)
    if err.validator == "required" and isinstance(err.instance, dict):
        missing = [p for p in err.validator_value if p not in err.instance]
        # one error per missing property; the message names it
        for p in missing:
            if repr(p) in err.message:
                path.append(p)
                break
    return SchemaError(_pointer(path), err.message, str(err.validator))


class JSONSchemaValidator:
    """Validator over an embedded JSON Schema document."""

    def __init__(self, name: str, version: str, schema: Dict[str, Any],
                 loader: Callable[[bytes | str], Any] = load_json):
        Draft7Validator.check_schema(schema)
        self.name = name
        self.version = version
        self.schema = schema
        self._validator = Draft7Validator(schema)
        self._load = loader

    def validate_instance(self, instance: Any) -> ValidationResult:
        errors = tuple(_schema_error(e) for e in self._validator.iter_errors(instance))
        return ValidationResult(ok=not errors, errors=errors)

    def validate(self, data: bytes | str) -> ValidationResult:
        """
        Validate a serialized document.

        Raises:
            MalformedInput: when the bytes cannot be decoded.
        """
        return self.validate_instance(self._load(data))


class XMLSchemaValidator:
    """Validator over an embedded XSD; documents are checked namespace-free."""

    def __init__(self, name: str, version: str, xsd: str):
        self.name = name
        self.version = version
        self._schema = xmlschema.XMLSchema(xsd)

    def validate(self, data: bytes | str) -> ValidationResult:
        root = parse_xml(data)
        errors = tuple(
            SchemaError(e.path or "/", e.reason or e.message, "xsd")
            for e in self._schema.iter_errors(root)
        )
        return ValidationResult(ok=not errors, errors=errors)


Validator = JSONSchemaValidator | XMLSchemaValidator

_CACHE: Dict[Tuple[str, str], Validator] = {}
_LOCK = threading.Lock()


def _resource(fname: str) -> str:
    return resources.files(__name__).joinpath(fname).read_text(encoding="utf-8")


def _key(name: str, version: Optional[str]) -> Tuple[str, str]:
    if version is None:
        if name not in CURRENT_VERSIONS:
            raise UnknownSchema(f"unknown schema: {name}")
        return name, CURRENT_VERSIONS[name]
    version = str(version)
    if version[:1] in ("v", "V"):
        version = version[1:]
    if (name, version) not in SCHEMAS:
        raise UnknownSchema(f"unknown schema: {name} {version}")
    return name, version


def load_schema(name: str, version: Optional[str] = None) -> Dict[str, Any]:
    """Parsed JSON Schema document for a registered JSON schema."""
    key = _key(name, version)
    fname = SCHEMAS[key]
    if not fname.endswith(".json"):
        raise UnknownSchema(f"{name} is not a JSON Schema")
    return json.loads(_resource(fname))


def _build(name: str, version: str) -> Validator:
    fname = SCHEMAS[(name, version)]
    if fname.endswith(".xsd"):
        return XMLSchemaValidator(name, version, _resource(fname))
    loader = load_yaml if name == "cff" else load_json
    return JSONSchemaValidator(name, version, json.loads(_resource(fname)), loader)


def validator(name: str, version: Optional[str] = None) -> Validator:
    """
    Return the (cached) validator for a schema.

    Args:
        name (str): Schema name, e.g. "commonmeta", "datacite", "crossref-xml".
        version (str | None): Schema version; None selects the current one.

    Returns:
        Validator: object with ``validate(bytes) -> ValidationResult``.

    Raises:
        UnknownSchema: for an unregistered name/version pair.
    """
    key = _key(name, version)
    v = _CACHE.get(key)
    if v is not None:
        return v
    with _LOCK:
        v = _CACHE.get(key)
        if v is None:
            v = _build(*key)
            _CACHE[key] = v
    return v


def validator_for_format(fmt: str) -> Optional[Validator]:
    """Validator of a format tag's current schema, None for formats without one."""
    name = FORMAT_SCHEMAS.get(fmt)
    return validator(name) if name else None


def available_schemas() -> List[Dict[str, str]]:
    return [{"name": n, "version": v, "document": f} for (n, v), f in sorted(SCHEMAS.items())]
