"""
Core data types for the PubMed fetch cache.

This module defines the structures shared by the fetch, parse and cache layers:
- ArticleRecord: Immutable metadata for one PubMed article
- FetchError: Failure raised when a lookup cannot produce an ArticleRecord
- NotFoundError / InvalidRequestError: FetchError kinds callers may branch on
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


DOI_NOT_AVAILABLE = "Not available"
TITLE_NOT_AVAILABLE = "Title not available"
JOURNAL_NOT_AVAILABLE = "Journal not available"
DATE_NOT_AVAILABLE = "Date not available"
AUTHORS_NOT_AVAILABLE = "Authors not available"

PUBMED_ARTICLE_URL = "https://pubmed.ncbi.nlm.nih.gov/{pmid}/"


@dataclass(frozen=True)
class ArticleRecord:
    """Parsed metadata for a single PubMed identifier.

    Records are frozen once built so a cached value can be handed out
    repeatedly without callers being able to change it.

    Attributes:
        pmid: PubMed identifier (digits only)
        title: Article title, or a "not available" placeholder
        authors: Ordered author names
        journal: Journal abbreviation or full journal name
        year: Publication year, or the raw date string when no year parses
        doi: DOI, or DOI_NOT_AVAILABLE when the source has none
        abstract: Abstract text when the source provides one
        volume: Journal volume
        issue: Journal issue
        pages: Page range
        url: Link to the PubMed article page
    """
    pmid: str
    title: str
    authors: tuple[str, ...] = field(default_factory=tuple)
    journal: str = JOURNAL_NOT_AVAILABLE
    year: str = DATE_NOT_AVAILABLE
    doi: str = DOI_NOT_AVAILABLE
    abstract: str | None = None
    volume: str | None = None
    issue: str | None = None
    pages: str | None = None
    url: str = ""

    def __post_init__(self) -> None:
        if not self.url:
            object.__setattr__(self, "url", PUBMED_ARTICLE_URL.format(pmid=self.pmid))

    @property
    def has_doi(self) -> bool:
        return self.doi != DOI_NOT_AVAILABLE

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable copy of the record."""
        data = asdict(self)
        data["authors"] = list(self.authors)
        return data


class FetchError(Exception):
    """Remote lookup failed to produce a valid ArticleRecord.

    Attributes:
        message: Human-readable description of the failure
        identifier: The PMID being fetched, when known
        kind: Failure category ("network", "timeout", "rate_limited",
              "http_error", "invalid_response", "not_found", "invalid_request")
        status_code: HTTP status code when the failure came from a response
    """

    default_kind = "fetch_error"

    def __init__(
        self,
        message: str,
        identifier: str | None = None,
        kind: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.identifier = identifier
        self.kind = kind or self.default_kind
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        """Whether another attempt could plausibly succeed."""
        if self.kind in {"timeout", "network", "rate_limited"}:
            return True
        return self.status_code is not None and self.status_code >= 500


class NotFoundError(FetchError):
    """PubMed has no summary for the requested identifier."""

    default_kind = "not_found"


class InvalidRequestError(FetchError):
    """The identifier or request was rejected before or by the remote source."""

    default_kind = "invalid_request"
