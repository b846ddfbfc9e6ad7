"""
Embedded reference vocabularies.

The store hands out the raw bytes of a packaged resource; parsing is left to
the caller (see ``spdx`` and ``ror`` for the parsed lookups).
"""
from __future__ import annotations
from importlib import resources
from typing import Mapping, Optional

from ..config import ROR_VERSION
from ..errors import UnsupportedVocabulary

VOCABULARIES = {
    "ROR.Organizations": f"ror_{ROR_VERSION}.json",
    "SPDX.Licenses": "licenses.json",
}
"""Vocabulary name -> embedded resource file."""

class VocabularyStore:
    """
    Read-only access to embedded vocabularies.

    Args:
        resources_map: Optional mapping of vocabulary name to bytes. When
            given it replaces the packaged files, so tests can supply fixtures.
    """

    def __init__(self, resources_map: Optional[Mapping[str, bytes]] = None):
        self._override = dict(resources_map) if resources_map is not None else None

    def names(self) -> list[str]:
        if self._override is not None:
            return sorted(self._override)
        return sorted(VOCABULARIES)

    def load(self, name: str) -> bytes:
        """
        Return the raw bytes of vocabulary ``name``.

        Raises:
            UnsupportedVocabulary: for an unknown name.
        """
        if self._override is not None:
            if name not in self._override:
                raise UnsupportedVocabulary(f"unsupported vocabulary: {name}")
            return self._override[name]
        fname = VOCABULARIES.get(name)
        if fname is None:
            raise UnsupportedVocabulary(f"unsupported vocabulary: {name}")
        return resources.files(__name__).joinpath(fname).read_bytes()

DEFAULT_STORE = VocabularyStore()

def load_vocabulary(name: str) -> bytes:
    """Raw bytes of an embedded vocabulary (``ROR.Organizations`` or ``SPDX.Licenses``)."""
    return DEFAULT_STORE.load(name)
