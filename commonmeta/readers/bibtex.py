from __future__ import annotations
import codecs
import re
from typing import Any, List, Optional

import latexcodec  # noqa: F401  registers the "ulatex" codec
from pybtex.database import Entry, Person as BibPerson, parse_string
from pybtex.exceptions import PybtexError

from ..errors import MalformedInput
from ..models import CONTAINER_TYPES, Container, Dates, Description, Diagnostic, Identifier, Publisher, Relation, Subject, Title
from ..utils.dates import iso_from_parts
from ..utils.normalise import issn_as_url, language_to_iso639_1, normalise_doi, is_url
from ._common import Context, contributor, license_from

BIB_TO_CM = {
    "article": "JournalArticle",
    "book": "Book",
    "booklet": "Book",
    "inbook": "BookChapter",
    "incollection": "BookChapter",
    "inproceedings": "ProceedingsArticle",
    "conference": "ProceedingsArticle",
    "manual": "Document",
    "mastersthesis": "Dissertation",
    "phdthesis": "Dissertation",
    "misc": "Other",
    "online": "WebPage",
    "proceedings": "Proceedings",
    "techreport": "Report",
    "unpublished": "Manuscript",
    "software": "Software",
    "dataset": "Dataset",
}

MONTHS = {m: i for i, m in enumerate(
    ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"), start=1)}

UNMAPPED = ("note", "annote", "howpublished", "series", "address", "edition", "chapter", "organization")

_MATH = re.compile(r"\$[^$]*\$")
_BRACES = re.compile(r"[{}]")
# private use code points hold escaped braces while grouping braces are removed
_LITERAL = {r"\{": "\ue000", r"\}": "\ue001"}


def latex_to_unicode(text: Optional[str]) -> Optional[str]:
    """Decode LaTeX escapes and drop grouping braces and inline math; ``\\{`` stays a brace."""
    if text is None:
        return None
    for esc, mark in _LITERAL.items():
        text = text.replace(esc, mark)
    text = codecs.decode(_MATH.sub("", text), "ulatex")
    text = _BRACES.sub("", text)
    for esc, mark in _LITERAL.items():
        text = text.replace(mark, esc[1])
    return " ".join(text.split()) or None


def _person(p: BibPerson, role: str):
    # "{World Health Organization}" parses as a single braced last name
    last = p.last_names
    if not (p.first_names or p.middle_names or p.prelast_names) and len(last) == 1 and last[0].startswith("{"):
        return contributor(name=latex_to_unicode(last[0]), roles=[role], kind="Organization")
    given = latex_to_unicode(" ".join(p.first_names + p.middle_names))
    family = latex_to_unicode(" ".join(p.prelast_names + last))
    return contributor(given=given, family=family, roles=[role], kind="Person")


def _month(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    value = value.strip().lower()
    if value.isdigit():
        return int(value)
    return MONTHS.get(value[:3])


class BibTeXReader:
    """
    Reads a BibTeX database; only the first entry becomes the record.
    """
    format = "bibtex"

    def accepts(self, fmt: str) -> bool:
        return fmt == self.format

    def parse(self, data: bytes | str) -> List[Entry]:
        try:
            text = data.decode("utf-8") if isinstance(data, bytes) else data
            bib = parse_string(text, "bibtex")
        except (PybtexError, UnicodeDecodeError) as e:
            msg = f"malformed BibTeX: {e}"
            raise MalformedInput(msg, [Diagnostic.error("/", msg, "MalformedInput")]) from e
        if not bib.entries:
            msg = "BibTeX input has no entries"
            raise MalformedInput(msg, [Diagnostic.error("/", msg, "MalformedInput")])
        return list(bib.entries.values())

    def read(self, data: bytes | str):
        return self.model(self.parse(data))

    def model(self, entries: List[Entry]):
        ctx = Context(self.format, "bibtex")
        if len(entries) > 1:
            ctx.warn("/", f"{len(entries)} entries found, only the first was read", "MultipleItems")
        entry = entries[0]
        f = {k.lower(): v for k, v in entry.fields.items()}

        def field(name: str) -> Optional[str]:
            return latex_to_unicode(f.get(name))

        record_id = normalise_doi(f.get("doi"))
        url = f.get("url") if is_url(f.get("url")) else None
        record_id = record_id or url
        rtype = ctx.record_type(entry.type.lower(), BIB_TO_CM)

        contributors = []
        for role, key in (("Author", "author"), ("Editor", "editor")):
            for i, p in enumerate(entry.persons.get(key, [])):
                c = _person(p, role)
                if c is None:
                    ctx.warn(f"/{key}/{i}", "name without parts was dropped", "MissingName")
                else:
                    contributors.append(c)

        published = None
        if f.get("date"):
            published = ctx.date(f["date"], "/date")
        elif f.get("year"):
            year = f["year"].strip()
            if year.isdigit():
                published = iso_from_parts(int(year), _month(f.get("month")))
            else:
                ctx.warn("/year", f"not a year: {year}", "InvalidDate")

        first_page = last_page = None
        if f.get("pages"):
            parts = re.split(r"-+|–", f["pages"])
            first_page = parts[0].strip() or None
            last_page = parts[1].strip() if len(parts) > 1 and parts[1].strip() else None

        issn = (f.get("issn") or "").strip()[:9] or None
        relations = [Relation(issn_as_url(issn), "IsPartOf")] if issn and issn_as_url(issn) else []
        container_title = field("journal") or field("booktitle")
        container = None
        if container_title or f.get("volume") or f.get("number") or first_page or issn:
            ident, ident_type = (issn, "ISSN") if issn else ((f["isbn"], "ISBN") if f.get("isbn") else (None, None))
            container = Container(
                type=CONTAINER_TYPES.get(rtype, "Periodical"),
                title=container_title,
                identifier=ident,
                identifier_type=ident_type,
                volume=f.get("volume"),
                issue=f.get("number"),
                first_page=first_page,
                last_page=last_page,
            )

        publisher_name = field("publisher") or field("school") or field("institution")
        keywords = field("keywords")
        identifiers = [Identifier(record_id, "DOI")] if record_id and normalise_doi(record_id) else []
        if f.get("isbn") and not (container and container.identifier_type == "ISBN"):
            identifiers.append(Identifier(f["isbn"], "ISBN"))

        ctx.unmapped(f, UNMAPPED)
        return ctx.finish(
            id=record_id or "",
            type=rtype,
            url=url,
            titles=[Title(field("title"))] if field("title") else [],
            contributors=contributors,
            publisher=Publisher(publisher_name) if publisher_name else None,
            date=Dates(published=published, accessed=ctx.date(f.get("urldate"), "/urldate")),
            container=container,
            subjects=[Subject(k.strip()) for k in (keywords or "").split(",") if k.strip()],
            language=language_to_iso639_1(f.get("language")),
            license=license_from(url=f["copyright"]) if is_url(f.get("copyright")) else None,
            descriptions=[Description(field("abstract"), "Abstract")] if field("abstract") else [],
            identifiers=identifiers,
            relations=relations,
            version=f.get("version"),
        )
