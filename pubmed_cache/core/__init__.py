"""
Core domain models.

This package contains the article record and error types that are
independent of how articles are fetched or stored.
"""

from .types import (
    DOI_NOT_AVAILABLE,
    ArticleRecord,
    FetchError,
    InvalidRequestError,
    NotFoundError,
)

__all__ = [
    "DOI_NOT_AVAILABLE",
    "ArticleRecord",
    "FetchError",
    "InvalidRequestError",
    "NotFoundError",
]
