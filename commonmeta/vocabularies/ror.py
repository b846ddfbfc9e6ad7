from __future__ import annotations
import json
from functools import lru_cache
from typing import Any, Dict, Optional

from ..utils.normalise import normalise_ror
from . import DEFAULT_STORE, VocabularyStore

@lru_cache(maxsize=4)
def _index(store: VocabularyStore = DEFAULT_STORE) -> Dict[str, Dict[str, dict]]:
    data = json.loads(store.load("ROR.Organizations"))
    by_id: Dict[str, dict] = {}
    by_name: Dict[str, dict] = {}
    by_funder: Dict[str, dict] = {}
    for org in data.get("items", []):
        by_id[org["id"]] = org
        for n in org.get("names", []):
            by_name[n["value"].lower()] = org
        for ext in org.get("external_ids", []):
            if ext.get("type") == "fundref":
                for v in ext.get("all", []):
                    by_funder[v] = org
    return {"id": by_id, "name": by_name, "fundref": by_funder}

def display_name(org: Dict[str, Any]) -> str:
    for n in org.get("names", []):
        if "ror_display" in n.get("types", []):
            return n["value"]
    return org["names"][0]["value"]

def find_organization(ror_id: str | None, store: VocabularyStore = DEFAULT_STORE) -> Optional[dict]:
    """ROR record for an identifier in any accepted spelling, or None."""
    rid = normalise_ror(ror_id)
    if not rid:
        return None
    return _index(store)["id"].get(rid)

def find_by_name(name: str | None, store: VocabularyStore = DEFAULT_STORE) -> Optional[dict]:
    """ROR record whose name, alias or label equals ``name`` (case-insensitive)."""
    if not name:
        return None
    return _index(store)["name"].get(name.strip().lower())

def find_by_funder_id(funder_id: str | None, store: VocabularyStore = DEFAULT_STORE) -> Optional[dict]:
    """ROR record for a Crossref Funder ID (bare or as a ``doi.org/10.13039/`` URL)."""
    if not funder_id:
        return None
    key = funder_id.strip().rstrip("/").rsplit("/", 1)[-1]
    return _index(store)["fundref"].get(key)
