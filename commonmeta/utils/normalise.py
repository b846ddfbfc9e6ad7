from __future__ import annotations
import re
from urllib.parse import urlparse

from ..config import DOI_RESOLVER, ORCID_RESOLVER, ROR_RESOLVER, ISSN_RESOLVER

DOI_RE = re.compile(
    r"^(?:(?:https?):/(?:/)?(?:dx\.)?(?:doi\.org|handle\.stage\.datacite\.org|handle\.test\.datacite\.org)/)?"
    r"(?:doi:)?(10\.\d{4,5}/\S+)$",
    re.I,
)
ORCID_RE = re.compile(r"^(?:https?://(?:www\.|sandbox\.)?orcid\.org/)?(\d{4}-\d{4}-\d{4}-\d{3}[0-9X])$", re.I)
ROR_RE = re.compile(r"^(?:(?:https?://)?ror\.org/)?(0[a-hj-km-np-tv-z0-9]{6}\d{2})$", re.I)
ISSN_RE = re.compile(r"^(?:" + re.escape(ISSN_RESOLVER) + r")?(\d{4}-\d{3}[0-9X])$", re.I)

def validate_doi(doi: str | None) -> str | None:
    """Return the bare DOI (``10.x/y``) found in ``doi``, or None."""
    if not doi:
        return None
    m = DOI_RE.match(doi.strip())
    return m.group(1) if m else None

def normalise_doi(doi: str | None) -> str | None:
    """
    Normalise a DOI string to its resolver URL form.

    Accepts bare DOIs, ``doi:`` prefixes and any of the known resolver URLs.
    The DOI itself is case-insensitive, so it is lowercased.

    Args:
        doi (str | None): A DOI in any of the accepted forms.

    Returns:
        str | None: ``https://doi.org/<doi>``, or None when ``doi`` is not a DOI.
    """
    bare = validate_doi(doi)
    if not bare:
        return None
    return DOI_RESOLVER + bare.lower()

def doi_from_url(url: str | None) -> str | None:
    """Bare, lowercased DOI for a DOI URL, or None."""
    bare = validate_doi(url)
    return bare.lower() if bare else None

def normalise_orcid(orcid: str | None) -> str | None:
    if not orcid:
        return None
    m = ORCID_RE.match(orcid.strip())
    if not m:
        return None
    return ORCID_RESOLVER + m.group(1).upper()

def orcid_from_url(url: str | None) -> str | None:
    n = normalise_orcid(url)
    return n[len(ORCID_RESOLVER):] if n else None

def normalise_ror(ror: str | None) -> str | None:
    if not ror:
        return None
    m = ROR_RE.match(ror.strip())
    if not m:
        return None
    return ROR_RESOLVER + m.group(1).lower()

def normalise_id(value: str | None) -> str | None:
    """
    Normalise an identifier that may be a DOI, ORCID, ROR or plain URL.

    Returns None for values that are none of these.
    """
    if not value:
        return None
    for fn in (normalise_doi, normalise_orcid, normalise_ror):
        out = fn(value)
        if out:
            return out
    return value.strip() if is_url(value) else None

def is_url(value: str | None) -> bool:
    """True for absolute http(s) URLs."""
    if not value or any(c.isspace() for c in value.strip()):
        return False
    p = urlparse(value.strip())
    return p.scheme in ("http", "https") and bool(p.netloc)

def issn_as_url(issn: str | None) -> str | None:
    if not issn:
        return None
    m = ISSN_RE.match(issn.strip())
    return ISSN_RESOLVER + m.group(1).upper() if m else None

def issn_from_url(url: str | None) -> str | None:
    if not url:
        return None
    m = ISSN_RE.match(url.strip())
    return m.group(1).upper() if m else None

def normalise_cc_url(url: str | None) -> str | None:
    """
    Map a Creative Commons license URL to its canonical legalcode URL.

    ``http://creativecommons.org/licenses/by/4.0`` and friends become
    ``https://creativecommons.org/licenses/by/4.0/legalcode``. Other URLs are
    returned unchanged.
    """
    if not url:
        return None
    u = url.strip()
    m = re.match(r"^https?://(?:www\.)?creativecommons\.org/(licenses|publicdomain)/([a-z\-]+)/(\d\.\d)(?:/[a-z]{2})?", u, re.I)
    if not m:
        return u
    kind, code, version = m.group(1).lower(), m.group(2).lower(), m.group(3)
    return f"https://creativecommons.org/{kind}/{code}/{version}/legalcode"

# ISO 639-1 <-> ISO 639-3 for the languages seen in repository metadata
_ISO639_3 = {
    "en": "eng", "de": "deu", "fr": "fra", "es": "spa", "it": "ita", "pt": "por",
    "nl": "nld", "ja": "jpn", "zh": "zho", "ru": "rus", "sv": "swe", "da": "dan",
    "fi": "fin", "no": "nor", "pl": "pol", "ko": "kor", "tr": "tur", "ar": "ara",
}
_ISO639_1 = {v: k for k, v in _ISO639_3.items()}

def language_to_iso639_3(lang: str | None) -> str | None:
    if not lang:
        return None
    lang = lang.strip().lower()
    return _ISO639_3.get(lang[:2], lang) if len(lang) == 2 or "-" in lang else lang

def language_to_iso639_1(lang: str | None) -> str | None:
    if not lang:
        return None
    lang = lang.strip().lower()
    return _ISO639_1.get(lang, lang)
