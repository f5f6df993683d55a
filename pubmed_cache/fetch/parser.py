"""
Parse NCBI esummary JSON into ArticleRecord values.

The esummary payload looks like::

    {"result": {"uids": ["40382193"], "40382193": {"title": ..., "authors": [...]}}}

Missing fields fall back to explicit "not available" placeholders so
downstream printing never has to guess whether a value was omitted.
"""

from __future__ import annotations

import re
from typing import Any

from ..core.types import (
    AUTHORS_NOT_AVAILABLE,
    DATE_NOT_AVAILABLE,
    DOI_NOT_AVAILABLE,
    JOURNAL_NOT_AVAILABLE,
    TITLE_NOT_AVAILABLE,
    ArticleRecord,
    FetchError,
    NotFoundError,
)


_YEAR_RE = re.compile(r"\b(1[89]\d{2}|2\d{3})\b")


def parse_esummary(payload: Any, pmid: str) -> ArticleRecord:
    """Build an ArticleRecord for `pmid` from an esummary payload.

    Raises:
        FetchError: The payload does not have the esummary shape
        NotFoundError: PubMed returned no usable summary for the PMID
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("result"), dict):
        raise FetchError(
            "Invalid response from PubMed API: missing result",
            identifier=pmid,
            kind="invalid_response",
        )

    result = payload["result"]
    entry = result.get(pmid)
    if entry is None:
        # NCBI sometimes normalises the id (e.g. leading zeros); trust uids
        uids = result.get("uids")
        if isinstance(uids, list) and uids:
            entry = result.get(str(uids[0]))

    if not isinstance(entry, dict):
        raise NotFoundError(f"Article not found in PubMed (PMID: {pmid})", identifier=pmid)
    if entry.get("error"):
        raise NotFoundError(
            f"Article not found in PubMed (PMID: {pmid}): {entry['error']}",
            identifier=pmid,
        )

    return ArticleRecord(
        pmid=pmid,
        title=_text(entry.get("title")) or TITLE_NOT_AVAILABLE,
        authors=extract_authors(entry.get("authors")),
        journal=_text(entry.get("source")) or _text(entry.get("fulljournalname")) or JOURNAL_NOT_AVAILABLE,
        year=extract_year(entry),
        doi=extract_doi(entry) or DOI_NOT_AVAILABLE,
        abstract=_text(entry.get("abstract")) or None,
        volume=_text(entry.get("volume")) or None,
        issue=_text(entry.get("issue")) or None,
        pages=_text(entry.get("pages")) or None,
    )


def extract_authors(authors: Any) -> tuple[str, ...]:
    """Return author display names in source order.

    Collective (group) authors keep their collective name; individuals use
    the esummary "name" field, or lastname plus forename when absent.
    """
    if not isinstance(authors, list):
        return ()
    names: list[str] = []
    for author in authors:
        if not isinstance(author, dict):
            continue
        if author.get("collectivename"):
            names.append(_text(author["collectivename"]))
            continue
        base = _text(author.get("name")) or _text(author.get("lastname"))
        forename = _text(author.get("forename"))
        name = f"{base} {forename}".strip() if forename else base
        if name:
            names.append(name)
    return tuple(names)


def extract_year(entry: dict[str, Any]) -> str:
    """Pull a four-digit year from pubdate, falling back to epubdate."""
    pubdate = _text(entry.get("pubdate")) or _text(entry.get("epubdate"))
    if not pubdate:
        return DATE_NOT_AVAILABLE
    match = _YEAR_RE.search(pubdate)
    return match.group(1) if match else pubdate


def extract_doi(entry: dict[str, Any]) -> str | None:
    """Find a DOI in the doi field, elocationid, or articleids list."""
    doi = _text(entry.get("doi"))
    if doi:
        return doi

    elocation = _text(entry.get("elocationid"))
    if elocation.lower().startswith("doi:"):
        elocation = elocation[4:].strip()
    if elocation.startswith("10."):
        return elocation

    article_ids = entry.get("articleids")
    if isinstance(article_ids, list):
        for item in article_ids:
            if isinstance(item, dict) and item.get("idtype") == "doi" and item.get("value"):
                return _text(item["value"])
    return None


def format_authors(authors: tuple[str, ...] | list[str], limit: int = 3) -> str:
    """Format authors for display: first `limit` names, then "et al."."""
    if not authors:
        return AUTHORS_NOT_AVAILABLE
    names = list(authors[:limit])
    if len(authors) > limit:
        names.append("et al.")
    return ", ".join(names)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()
