"""
PubMed Cache - cached PubMed article metadata lookups.

This package fetches article summaries from NCBI E-utilities and keeps
parsed records in an explicit cache object, so repeated lookups for the
same PMID are served without network access.

Main entry point is the CLI via `pubmed-cache fetch` command.

Example:
    $ pubmed-cache fetch 40382193 --repeat 2
"""

__all__ = [
    "__version__",
    "ArticleFetchCache",
    "ArticleRecord",
    "CacheStats",
    "FetchError",
    "InvalidRequestError",
    "NotFoundError",
    "MemoryStore",
    "TTLStore",
]
__version__ = "0.1.0"

from .client import ArticleFetchCache, CacheStats
from .core.types import ArticleRecord, FetchError, InvalidRequestError, NotFoundError
from .store import MemoryStore, TTLStore
