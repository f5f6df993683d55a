"""
Cache index tracking for article lookups.

This module provides JSONL-based index logging for cache operations,
enabling debugging and analysis of cache hits/misses.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


class CacheIndex:
    """Tracks cache operations in a JSONL index file.

    Each lookup (hit, miss, error) is logged as a JSON line with
    timestamp, PMID, elapsed time and error info.

    Attributes:
        cache_dir: Directory where the index is stored
        enabled: Whether index writing is enabled
        path: Full path to the index file
    """

    def __init__(self, cache_dir: Path, enabled: bool = True, filename: str = "index.jsonl"):
        self.cache_dir = cache_dir
        self.enabled = enabled
        self.path = cache_dir / filename

    def append(self, payload: dict[str, Any]) -> None:
        """Append an entry to the cache index.

        Adds a timestamp if not present and writes the entry as a JSON line.

        Args:
            payload: Dictionary containing lookup details including
                     pmid, kind, elapsed_ms, error, etc.
        """
        if not self.enabled:
            return
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        payload = dict(payload)
        payload.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=True))
            handle.write("\n")

    def read(self) -> list[dict[str, Any]]:
        """Return all index entries, oldest first."""
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as handle:
            return [json.loads(line) for line in handle if line.strip()]
