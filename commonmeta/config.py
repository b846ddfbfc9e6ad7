from __future__ import annotations
import os

# Format tags and schema versions
FORMATS = (
    "crossref-xml",
    "datacite",
    "csl",
    "codemeta",
    "cff",
    "bibtex",
    "invenio-rdm",
    "commonmeta",
)
"""The closed set of format tags understood by readers and writers."""
COMMONMETA_SCHEMA_VERSION = "0.12"
"""The current version of the canonical commonmeta JSON Schema."""
ROR_VERSION = "v1.71"
"""The version of the embedded ROR organization snapshot."""

# Identifier resolvers
DOI_RESOLVER = "https://doi.org/"
"""The resolver prefix used for canonical DOI URLs."""
ORCID_RESOLVER = "https://orcid.org/"
"""The resolver prefix used for ORCID iDs."""
ROR_RESOLVER = "https://ror.org/"
"""The resolver prefix used for ROR identifiers."""
ISSN_RESOLVER = "https://portal.issn.org/resource/ISSN/"
"""The resolver prefix used when an ISSN is expressed as a URL."""
CROSSREF_MEMBER_API = "https://api.crossref.org/members/"
"""The base URL identifying a Crossref member (publisher)."""

# Legacy database (Rogue Scholar)
LEGACY_HOST = os.environ.get("COMMONMETA_LEGACY_HOST", "bosczcmeodcrajtcaddf.supabase.co")
"""The host of the Rogue Scholar legacy database REST endpoint."""
LEGACY_KEY = os.environ.get("COMMONMETA_LEGACY_KEY", "")
"""The API key for the legacy database, empty when not configured."""
LEGACY_TIMEOUT = 30.0
"""Seconds before a legacy-database PATCH request times out."""

USER_AGENT = "commonmeta-py/0.1 (+https://commonmeta.org)"
"""The User-Agent string sent with outgoing HTTP requests."""
LOG_DIR = os.environ.get("COMMONMETA_LOG_DIR", "")
"""Directory for the JSON-lines conversion log; empty disables the file log."""
