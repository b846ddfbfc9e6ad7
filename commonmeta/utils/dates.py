from __future__ import annotations
import re
from datetime import datetime, timezone

ISO_DATE_RE = re.compile(
    r"^\d{4}(?:-(?:0[1-9]|1[0-2])(?:-(?:0[1-9]|[12]\d|3[01])"
    r"(?:T(?:[01]\d|2[0-3]):[0-5]\d(?::[0-5]\d(?:\.\d+)?)?(?:Z|[+-](?:[01]\d|2[0-3]):?[0-5]\d)?)?)?)?$"
)

def is_iso8601(value: str | None) -> bool:
    """True for ``YYYY``, ``YYYY-MM``, ``YYYY-MM-DD`` and date-times with optional zone."""
    return bool(value) and bool(ISO_DATE_RE.match(value.strip()))

def iso_from_parts(year, month=None, day=None) -> str | None:
    """
    Build an ISO date from year/month/day parts.

    Parts may be ints or numeric strings; missing or non-numeric trailing
    parts shorten the result (``2023``, ``2023-05``, ``2023-05-01``).

    Returns:
        str | None: The ISO date, or None when the year is missing.
    """
    try:
        y = int(year) if year not in (None, "") else None
        m = int(month) if month not in (None, "") else None
        d = int(day) if day not in (None, "") else None
    except (ValueError, TypeError):
        return None
    if y is None:
        return None
    s = f"{y:04d}"
    if m is not None and 1 <= m <= 12:
        s += f"-{m:02d}"
        if d is not None and 1 <= d <= 31:
            s += f"-{d:02d}"
    return s

def iso_from_date_parts(obj) -> str | None:
    """CSL/Crossref ``{"date-parts": [[2023, 5, 1]]}`` to ISO."""
    if not isinstance(obj, dict):
        return None
    parts = obj.get("date-parts")
    if not parts or not isinstance(parts, list) or not parts[0] or not isinstance(parts[0], list):
        return None
    dp = list(parts[0]) + [None, None]
    return iso_from_parts(dp[0], dp[1], dp[2])

def date_parts(iso: str | None) -> list[int]:
    """ISO date to ``[year, month, day]`` (as many parts as present)."""
    if not iso or not is_iso8601(iso):
        return []
    return [int(p) for p in iso[:10].split("-") if p]

def year_of(iso: str | None) -> int | None:
    if not iso or len(iso) < 4 or not iso[:4].isdigit():
        return None
    return int(iso[:4])

def normalise_date(value) -> str | None:
    """
    Coerce common date spellings to ISO-8601.

    Handles ISO strings (date-times are kept, with ``+00:00`` shortened to
    ``Z``), bare years given as int, and ``YYYY/MM/DD``.
    """
    if value is None:
        return None
    if isinstance(value, int):
        return iso_from_parts(value)
    s = str(value).strip()
    if not s:
        return None
    s = s.replace("/", "-") if re.match(r"^\d{4}/\d{2}(/\d{2})?$", s) else s
    s = s.replace("+00:00", "Z")
    return s if is_iso8601(s) else None

def unix_timestamp(now: datetime | None = None) -> int:
    return int((now or datetime.now(timezone.utc)).timestamp())
