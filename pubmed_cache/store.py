"""
Backing stores for the article cache.

The cache itself only needs get/set semantics; how long entries live is
decided by the store it is given:
- MemoryStore: unbounded dict, suited to tests and one-off scripts
- TTLStore: entries expire after a fixed lifetime and the oldest are
  evicted in batches once a size bound is exceeded
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import time
from typing import Callable, Iterator

from .config import CacheConfig
from .core.types import ArticleRecord


class ArticleStore(ABC):
    """Abstract mapping from PMID to ArticleRecord."""

    @abstractmethod
    def get(self, key: str) -> ArticleRecord | None:
        """Return the stored record, or None when absent or expired."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, record: ArticleRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove an entry. Returns True when something was removed."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def keys(self) -> Iterator[str]:
        raise NotImplementedError

    def __len__(self) -> int:
        return sum(1 for _ in self.keys())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None


class MemoryStore(ArticleStore):
    """Unbounded in-process store. Entries live until cleared."""

    def __init__(self) -> None:
        self._data: dict[str, ArticleRecord] = {}

    def get(self, key: str) -> ArticleRecord | None:
        return self._data.get(key)

    def set(self, key: str, record: ArticleRecord) -> None:
        self._data[key] = record

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)


@dataclass(frozen=True)
class _Entry:
    record: ArticleRecord
    stored_at: float


class TTLStore(ArticleStore):
    """Bounded store with per-entry expiry.

    Expired entries are dropped lazily on read. When a write pushes the
    size above max_entries, the evict_count oldest entries are removed.

    Args:
        max_entries: Size bound that triggers eviction
        ttl_seconds: Entry lifetime
        evict_count: How many of the oldest entries to drop per eviction
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        max_entries: int = 100,
        ttl_seconds: float = 24 * 60 * 60,
        evict_count: int = 20,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.evict_count = max(1, evict_count)
        self._clock = clock
        self._data: dict[str, _Entry] = {}

    def get(self, key: str) -> ArticleRecord | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if self._expired(entry):
            del self._data[key]
            return None
        return entry.record

    def set(self, key: str, record: ArticleRecord) -> None:
        self._data[key] = _Entry(record=record, stored_at=self._clock())
        if len(self._data) > self.max_entries:
            self._evict()

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> Iterator[str]:
        self._purge_expired()
        return iter(list(self._data))

    def __len__(self) -> int:
        self._purge_expired()
        return len(self._data)

    def _expired(self, entry: _Entry) -> bool:
        return self._clock() - entry.stored_at > self.ttl_seconds

    def _purge_expired(self) -> None:
        for key in [k for k, entry in self._data.items() if self._expired(entry)]:
            del self._data[key]

    def _evict(self) -> None:
        self._purge_expired()
        overflow = len(self._data) - self.max_entries
        if overflow <= 0:
            return
        count = max(overflow, min(self.evict_count, len(self._data) - 1))
        oldest = sorted(self._data.items(), key=lambda item: item[1].stored_at)[:count]
        for key, _ in oldest:
            del self._data[key]


StoreBuilder = Callable[[CacheConfig], ArticleStore]

_STORE_REGISTRY: dict[str, StoreBuilder] = {
    "memory": lambda cfg: MemoryStore(),
    "ttl": lambda cfg: TTLStore(
        max_entries=cfg.max_entries,
        ttl_seconds=cfg.ttl_seconds,
        evict_count=cfg.evict_count,
    ),
}


def available_stores() -> list[str]:
    """Return the registered store backend names."""
    return sorted(_STORE_REGISTRY.keys())


def create_store(cfg: CacheConfig) -> ArticleStore:
    """Build a backing store from cache config."""
    name = cfg.backend.lower().strip()
    builder = _STORE_REGISTRY.get(name)
    if builder is None:
        supported = ", ".join(available_stores())
        raise ValueError(f"Unsupported cache backend: {cfg.backend}. Supported: {supported}")
    return builder(cfg)
