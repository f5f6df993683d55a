"""
PubMed fetching and parsing.

This package handles the HTTP call to NCBI E-utilities and the
conversion of esummary payloads into ArticleRecord values.
"""

from .fetcher import build_params, fetch_esummary
from .parser import extract_authors, extract_doi, extract_year, format_authors, parse_esummary

__all__ = [
    "build_params",
    "fetch_esummary",
    "parse_esummary",
    "extract_authors",
    "extract_doi",
    "extract_year",
    "format_authors",
]
