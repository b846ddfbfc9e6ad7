from __future__ import annotations
from xml.etree import ElementTree as ET

from ..errors import MalformedInput
from ..models import Diagnostic

def local_name(tag: str) -> str:
    """``{namespace}name`` -> ``name``."""
    return tag.rsplit("}", 1)[-1] if tag.startswith("{") else tag

def strip_namespaces(root: ET.Element) -> ET.Element:
    """Drop namespaces from every element and attribute name, in place."""
    for el in root.iter():
        if isinstance(el.tag, str):
            el.tag = local_name(el.tag)
        if any(k.startswith("{") for k in el.attrib):
            el.attrib = {local_name(k): v for k, v in el.attrib.items()}
    return root

def parse_xml(data: bytes | str) -> ET.Element:
    """
    Parse XML bytes and return the namespace-free root element.

    Raises:
        MalformedInput: when the bytes are not well-formed XML.
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise MalformedInput(
            f"malformed XML: {e}", [Diagnostic.error("/", f"malformed XML: {e}", "MalformedInput")]
        ) from e
    return strip_namespaces(root)

def text(el: ET.Element | None, path: str | None = None) -> str | None:
    """Stripped text of ``el`` (or of ``el.find(path)``), None when empty."""
    if el is None:
        return None
    if path:
        el = el.find(path)
        if el is None:
            return None
    t = "".join(el.itertext()).strip()
    return " ".join(t.split()) or None
