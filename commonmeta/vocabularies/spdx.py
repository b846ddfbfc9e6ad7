from __future__ import annotations
import json
from functools import lru_cache
from typing import Any, Dict, Optional

from ..utils.normalise import normalise_cc_url
from . import DEFAULT_STORE, VocabularyStore

@lru_cache(maxsize=4)
def _licenses(store: VocabularyStore = DEFAULT_STORE) -> Dict[str, Any]:
    data = json.loads(store.load("SPDX.Licenses"))
    by_id: Dict[str, dict] = {}
    by_url: Dict[str, dict] = {}
    for lic in data.get("licenses", []):
        by_id[lic["licenseId"].lower()] = lic
        for url in lic.get("seeAlso") or []:
            by_url[_url_key(url)] = lic
    return {"version": data.get("licenseListVersion"), "by_id": by_id, "by_url": by_url}

def _url_key(url: str) -> str:
    u = url.strip().lower().split("://", 1)[-1]
    return u.rstrip("/")

def find_license(id_or_url: str | None, store: VocabularyStore = DEFAULT_STORE) -> Optional[dict]:
    """
    Look up an SPDX license by identifier (case-insensitive) or by URL.

    URLs are compared without scheme and trailing slash against each license's
    ``seeAlso`` list; Creative Commons URLs are normalised to ``legalcode``.

    Returns:
        dict | None: The SPDX license entry, or None.
    """
    if not id_or_url:
        return None
    idx = _licenses(store)
    lic = idx["by_id"].get(id_or_url.strip().lower())
    if lic:
        return lic
    for candidate in (id_or_url, normalise_cc_url(id_or_url)):
        if candidate:
            lic = idx["by_url"].get(_url_key(candidate))
            if lic:
                return lic
    return None

def license_from_url(url: str | None, store: VocabularyStore = DEFAULT_STORE) -> tuple[str | None, str | None]:
    """Return ``(spdx_id, url)`` for a license URL; the id is None when unknown."""
    if not url:
        return None, None
    lic = find_license(url, store)
    norm = normalise_cc_url(url)
    if lic is None:
        return None, norm
    return lic["licenseId"], norm

def license_url(spdx_id: str | None, store: VocabularyStore = DEFAULT_STORE) -> str | None:
    """First ``seeAlso`` URL of an SPDX license id."""
    lic = find_license(spdx_id, store)
    if not lic or not lic.get("seeAlso"):
        return None
    return lic["seeAlso"][0]
