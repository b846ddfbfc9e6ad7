from __future__ import annotations
from typing import Tuple

ORGANIZATION_KEYWORDS = (
    "University", "College", "Institute", "School", "Center", "Department",
    "Laboratory", "Library", "Museum", "Foundation", "Society", "Association",
    "Company", "Corporation", "Collaboration", "Consortium", "Incorporated",
    "Inc.", "Institut", "Research", "Science", "Team", "Ministry", "Government",
)
"""Substrings (case-sensitive) that mark a name as organizational."""
HONORIFICS = frozenset({"MD", "PhD", "BS"})
"""Suffixes after ``", "`` that mark a name as personal."""

def _honorific_head(name: str) -> str | None:
    """Text before the first ``", "`` when the token after it is an honorific."""
    parts = name.split(", ")
    if len(parts) > 1 and parts[1].strip() in HONORIFICS:
        return parts[0].strip()
    return None

def is_personal_name(name: str) -> bool:
    """
    Classify a free-form name as personal (True) or organizational (False).

    Rules are evaluated in order and the first decisive one wins:

    1. a semicolon means organizational;
    2. an organizational keyword (``University``, ``Institute``, ...) means organizational;
    3. ``", <honorific>"`` (MD, PhD, BS) means personal;
    4. a single space-separated token without a comma means organizational;
    5. otherwise personal iff there are at least two whitespace-separated tokens.

    Args:
        name (str): The name to classify.

    Returns:
        bool: True for a personal name.
    """
    if ";" in name:
        return False
    if any(k in name for k in ORGANIZATION_KEYWORDS):
        return False
    if _honorific_head(name) is not None:
        return True
    if len(name.split(" ")) == 1 and "," not in name:
        return False
    return len(name.split()) >= 2

def parse_name(name: str) -> Tuple[str, str, str]:
    """
    Split a name into ``(given, family, organization)``.

    Organizational names come back as ``("", "", name)``. Personal names lose
    everything from a ``", <honorific>"`` onwards and are split on the last
    whitespace, so ``"Jane Smith, MD, PhD"`` gives ``("Jane", "Smith", "")``.
    Inverted names (``"Doe, John"``) are split on the comma.

    Args:
        name (str): The name to parse.

    Returns:
        tuple[str, str, str]: given name, family name, organization name.
    """
    if not is_personal_name(name):
        return "", "", name
    s = name.strip()
    head = _honorific_head(s)
    if head is not None:
        s = head
    elif ", " in s:
        family, given = (p.strip() for p in s.split(", ", 1))
        if family and given:
            return given, family, ""
    parts = s.rsplit(None, 1)
    if len(parts) == 1:
        return "", parts[0], ""
    return parts[0], parts[1], ""
