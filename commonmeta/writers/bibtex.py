from __future__ import annotations
from typing import List, Tuple

from pybtex.database import BibliographyData, Entry, Person as BibPerson
from pybtex.database.output.bibtex import Writer

from ..models import Diagnostic, Person, Record
from ..utils.dates import date_parts
from ..utils.normalise import doi_from_url, issn_from_url
from ..readers.bibtex import MONTHS
from ._common import url_or_id

CM_TO_BIB = {
    "Article": "article",
    "Book": "book",
    "BookChapter": "inbook",
    "Dataset": "dataset",
    "Dissertation": "phdthesis",
    "JournalArticle": "article",
    "Manuscript": "unpublished",
    "Other": "misc",
    "Proceedings": "proceedings",
    "ProceedingsArticle": "inproceedings",
    "Report": "techreport",
    "Software": "software",
    "WebPage": "online",
}
"""Canonical type -> BibTeX entry type; anything missing is misc."""

MONTH_NAMES = {i: m for m, i in MONTHS.items()}

VERBATIM_FIELDS = ("doi", "url", "copyright")
"""Fields read back as-is, so they skip LaTeX encoding."""

# private use code points stand in for literal braces until the entry is written
LITERAL_BRACES = {"{": "\ue000", "}": "\ue001"}


class _Writer(Writer):
    def __init__(self):
        super().__init__(encoding="UTF-8")

    def _write_field(self, stream, type, value):
        if type in VERBATIM_FIELDS:
            stream.write(f",\n    {type} = {self.quote(value)}")
        else:
            super()._write_field(stream, type, value)

    def to_string(self, bib_data) -> str:
        text = super().to_string(bib_data)
        for brace, mark in LITERAL_BRACES.items():
            text = text.replace(mark, "\\" + brace)
        return text


def _balanced(text: str) -> bool:
    depth = 0
    for ch in text:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def escape_braces(text: str, path: str, diags: List[Diagnostic]) -> str:
    """
    Escape literal braces so they survive as text instead of grouping.

    BibTeX counts escaped braces too, so unbalanced ones are dropped with a warning.
    """
    if "{" not in text and "}" not in text:
        return text
    if not _balanced(text):
        diags.append(Diagnostic.warn(path, "unbalanced braces were removed", "UnmappableField"))
        return text.replace("{", "").replace("}", "")
    for brace, mark in LITERAL_BRACES.items():
        text = text.replace(brace, mark)
    return text


def _person(c) -> BibPerson:
    if isinstance(c, Person):
        return BibPerson(first=c.given_name or "", last=c.family_name or "")
    # braces keep an organization name as one last name
    return BibPerson(last="{" + c.name + "}")


def entry_key(record: Record, i: int = 0) -> str:
    """Citation key from the DOI (``10.1/x`` -> ``10.1_x``) or a running number."""
    return (doi_from_url(record.id) or f"key{i}").replace("/", "_")


class BibTeXWriter:
    """
    Writes a single BibTeX entry.
    """
    format = "bibtex"
    media_type = "application/x-bibtex"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def write(self, record: Record) -> Tuple[bytes, List[Diagnostic]]:
        diags: List[Diagnostic] = []
        entry_type = CM_TO_BIB.get(record.type, "misc")
        if record.type not in CM_TO_BIB:
            diags.append(Diagnostic.warn("/type", f"type {record.type} written as misc", "UnmappableField"))

        fields = []
        if record.title:
            fields.append(("title", escape_braces(record.title, "/titles/0/title", diags)))
        parts = date_parts(record.date.published)
        if parts:
            fields.append(("year", str(parts[0])))
            if len(parts) > 1:
                fields.append(("month", MONTH_NAMES[parts[1]]))

        c = record.container
        if c is not None:
            if c.title:
                key = "booktitle" if record.type in ("BookChapter", "ProceedingsArticle") else "journal"
                fields.append((key, escape_braces(c.title, "/container/title", diags)))
            if c.volume:
                fields.append(("volume", c.volume))
            if c.issue:
                fields.append(("number", c.issue))
            if c.first_page:
                fields.append(("pages", f"{c.first_page}--{c.last_page}" if c.last_page else c.first_page))
            if c.identifier_type == "ISSN" and c.identifier:
                fields.append(("issn", issn_from_url(c.identifier) or c.identifier))
            elif c.identifier_type == "ISBN" and c.identifier:
                fields.append(("isbn", c.identifier))

        if record.publisher:
            key = {"Dissertation": "school", "Report": "institution"}.get(record.type, "publisher")
            fields.append((key, escape_braces(record.publisher.name, "/publisher/name", diags)))
        doi = doi_from_url(record.id)
        if doi:
            fields.append(("doi", doi))
        url = url_or_id(record, diags)
        if url:
            fields.append(("url", url))
        if record.abstract:
            fields.append(("abstract", escape_braces(record.abstract, "/descriptions/0/description", diags)))
        if record.subjects:
            fields.append(("keywords", ", ".join(s.subject for s in record.subjects)))
        if record.language:
            fields.append(("language", record.language))
        if record.license and record.license.url:
            fields.append(("copyright", record.license.url))
        if record.date.accessed:
            fields.append(("urldate", record.date.accessed[:10]))
        if record.version:
            fields.append(("version", record.version))

        persons = {}
        authors = [_person(x) for x in record.contributors if "Author" in x.contributor_roles or not x.contributor_roles]
        editors = [_person(x) for x in record.contributors if "Editor" in x.contributor_roles]
        if authors:
            persons["author"] = authors
        if editors:
            persons["editor"] = editors

        key = entry_key(record)
        bib = BibliographyData(entries={key: Entry(entry_type, fields=fields, persons=persons)})
        return _Writer().to_string(bib).encode("utf-8"), diags
