# commonmeta/roguescholar.py
"""
Rogue Scholar legacy database updater.

Marks a blog post in the legacy Supabase ``posts`` table as indexed and
archived, recording the identifier it was registered under.
"""
from __future__ import annotations
import dataclasses
from dataclasses import dataclass
from typing import Optional, Tuple

import requests

from .config import LEGACY_HOST, LEGACY_TIMEOUT
from .errors import InvalidUpdateRequest, TransportError
from .utils.dates import unix_timestamp
from .utils.http import http_request
from .utils.logging import ConversionLogger


@dataclass(frozen=True)
class LegacyRecord:
    """The slice of a post that the legacy updater reads and writes."""
    id: Optional[str] = None
    uuid: Optional[str] = None
    doi: Optional[str] = None
    status: Optional[str] = None


def _update_pair(record: LegacyRecord, field: str) -> Optional[Tuple[str, str]]:
    """Column and value to write: the record id for "rid" when present, else the DOI."""
    if field == "rid" and record.id:
        return "rid", record.id
    if record.doi:
        return "doi", record.doi
    return None


def update_legacy_record(
    record: LegacyRecord,
    key: str,
    field: str,
    *,
    host: Optional[str] = None,
    session: Optional[requests.Session] = None,
    logger: Optional[ConversionLogger] = None,
) -> LegacyRecord:
    """
    PATCH the legacy row for ``record.uuid`` with the identifier in ``field``.

    Args:
        record (LegacyRecord): The post; ``uuid`` selects the row.
        key (str): Service API key, sent as ``apikey`` and bearer token.
        field (str): Requested column. "rid" writes ``record.id`` into ``rid`` when the
            record has one; otherwise ``record.doi`` is written into ``doi``.
        host (str | None): Database host; defaults to ``LEGACY_HOST``.
        session (requests.Session | None): Session to reuse.
        logger (ConversionLogger | None): Where the ``legacy_update`` event is logged.

    Returns:
        LegacyRecord: a copy with ``status="updated_legacy"``.

    Raises:
        InvalidUpdateRequest: when the key, uuid or update value is missing. No request is sent.
        TransportError: on a network failure or any status other than 204.
    """
    if not key:
        raise InvalidUpdateRequest("missing API key")
    if not record.uuid:
        raise InvalidUpdateRequest("record has no uuid")
    pair = _update_pair(record, field)
    if pair is None:
        raise InvalidUpdateRequest("record has no identifier to write")
    column, value = pair

    log = logger or ConversionLogger()
    url = f"https://{host or LEGACY_HOST}/rest/v1/posts?id=eq.{record.uuid}"
    headers = {
        "Content-Type": "application/json",
        "apikey": key,
        "Authorization": f"Bearer {key}",
        "Prefer": "return=minimal",
    }
    body = {column: value, "indexed_at": unix_timestamp(), "indexed": "true", "archived": "true"}

    try:
        status, text, _ = http_request("PATCH", url, json_body=body, headers=headers,
                                       timeout=LEGACY_TIMEOUT, session=session)
    except requests.RequestException as e:
        log.error("legacy_update", uuid=record.uuid, field=column, error=str(e))
        raise TransportError(f"legacy update failed: {e}") from e

    if status != 204:
        log.error("legacy_update", uuid=record.uuid, field=column, status=status)
        raise TransportError(f"legacy update returned HTTP {status}: {text[:200]}", status)

    log.info("legacy_update", uuid=record.uuid, field=column, status=status)
    return dataclasses.replace(record, status="updated_legacy")
