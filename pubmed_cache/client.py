"""
Article fetch cache.

ArticleFetchCache wraps a remote PubMed lookup with an injectable
backing store. The first fetch for a PMID goes to the network and the
parsed record is stored; later fetches for the same PMID are served
from the store without any network access. Failed lookups are never
stored, so the next call for that PMID tries the network again.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from pathlib import Path
import re
import time
from typing import Awaitable, Callable, Iterable

import httpx

from .cache import CacheIndex
from .config import AppConfig, FetchConfig, get_api_key
from .core.types import ArticleRecord, FetchError, InvalidRequestError
from .fetch.fetcher import fetch_esummary
from .fetch.parser import parse_esummary
from .logging_utils import log_event
from .store import ArticleStore, create_store


logger = logging.getLogger(__name__)

_PMID_RE = re.compile(r"^\d+$")

Fetcher = Callable[[str], Awaitable[ArticleRecord]]


@dataclass
class CacheStats:
    """Counters collected by an ArticleFetchCache.

    Attributes:
        hits: Lookups served from the store
        misses: Lookups that started a remote fetch
        shared: Lookups that joined a fetch already in flight
        failures: Remote fetches that raised FetchError
        network_calls: Remote fetches started
    """
    hits: int = 0
    misses: int = 0
    shared: int = 0
    failures: int = 0
    network_calls: int = 0


def clean_identifier(identifier: object) -> str:
    """Normalise a PMID, rejecting anything that is not a digit string."""
    pmid = str(identifier).strip() if identifier is not None else ""
    if not pmid or not _PMID_RE.match(pmid):
        raise InvalidRequestError(f"Invalid PubMed ID: {identifier!r}", identifier=pmid or None)
    return pmid


def pubmed_fetcher(
    cfg: FetchConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Fetcher:
    """Build the default fetcher: esummary request followed by parsing."""
    api_key = get_api_key(cfg)

    async def fetch(pmid: str) -> ArticleRecord:
        payload = await fetch_esummary(pmid, cfg, api_key=api_key, transport=transport)
        return parse_esummary(payload, pmid)

    return fetch


class ArticleFetchCache:
    """Fetch PubMed records by PMID, caching successful lookups.

    Args:
        store: Backing store; defaults to the store named by cfg.cache.backend
        fetcher: Coroutine function PMID -> ArticleRecord; defaults to the
                 PubMed esummary fetcher built from cfg.fetch
        cfg: Application config
        index: Optional JSONL index recording hits, misses and errors
    """

    def __init__(
        self,
        store: ArticleStore | None = None,
        fetcher: Fetcher | None = None,
        cfg: AppConfig | None = None,
        index: CacheIndex | None = None,
    ):
        self.cfg = cfg or AppConfig()
        self.store = store if store is not None else create_store(self.cfg.cache)
        self._fetcher = fetcher or pubmed_fetcher(self.cfg.fetch)
        self.index = index
        self.stats = CacheStats()
        self._inflight: dict[str, asyncio.Task[ArticleRecord]] = {}

    @classmethod
    def from_config(
        cls,
        cfg: AppConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ArticleFetchCache:
        """Build a cache whose store, fetcher and index all come from config."""
        index = CacheIndex(
            Path(cfg.cache.index_dir),
            enabled=cfg.cache.write_index,
            filename=cfg.cache.index_filename,
        )
        return cls(
            store=create_store(cfg.cache),
            fetcher=pubmed_fetcher(cfg.fetch, transport=transport),
            cfg=cfg,
            index=index,
        )

    async def fetch(self, identifier: str) -> ArticleRecord:
        """Return the record for a PMID, fetching it on a cache miss.

        Raises:
            InvalidRequestError: The identifier is not a PMID
            FetchError: The remote lookup failed; nothing is cached
        """
        pmid = clean_identifier(identifier)
        started = time.perf_counter()

        cached = self.store.get(pmid)
        if cached is not None:
            self.stats.hits += 1
            log_event(logger, "PubMed cache hit", level=logging.DEBUG, event="cache_hit", pmid=pmid)
            self._index("hit", pmid, started)
            return cached

        task = self._inflight.get(pmid)
        if task is None:
            self.stats.misses += 1
            task = asyncio.ensure_future(self._load(pmid, started))
            self._inflight[pmid] = task
            task.add_done_callback(lambda done: self._finish(pmid, done))
        else:
            self.stats.shared += 1
        return await asyncio.shield(task)

    async def fetch_many(self, identifiers: Iterable[str]) -> list[ArticleRecord]:
        """Fetch several PMIDs concurrently, preserving input order."""
        return list(await asyncio.gather(*(self.fetch(identifier) for identifier in identifiers)))

    def invalidate(self, identifier: str) -> bool:
        """Drop one PMID from the store. Returns True if it was cached."""
        return self.store.delete(clean_identifier(identifier))

    def clear(self) -> None:
        self.store.clear()

    def __contains__(self, identifier: object) -> bool:
        try:
            pmid = clean_identifier(identifier)
        except InvalidRequestError:
            return False
        return pmid in self.store

    def __len__(self) -> int:
        return len(self.store)

    async def _load(self, pmid: str, started: float) -> ArticleRecord:
        self.stats.network_calls += 1
        log_event(logger, "Fetching PubMed data", event="cache_miss", pmid=pmid)
        try:
            record = await self._fetcher(pmid)
        except FetchError as exc:
            self.stats.failures += 1
            log_event(
                logger,
                f"PubMed fetch failed: {exc.message}",
                event="fetch_failed",
                pmid=pmid,
                kind=exc.kind,
                status_code=exc.status_code,
            )
            self._index("error", pmid, started, error=exc.message, error_kind=exc.kind)
            raise
        self.store.set(pmid, record)
        self._index("miss", pmid, started)
        return record

    def _index(self, kind: str, pmid: str, started: float, **extra: object) -> None:
        if self.index is None:
            return
        payload = {
            "pmid": pmid,
            "kind": kind,
            "elapsed_ms": round((time.perf_counter() - started) * 1000, 3),
        }
        payload.update(extra)
        try:
            self.index.append(payload)
        except OSError as exc:
            log_event(
                logger,
                f"Cache index write failed: {exc}",
                level=logging.WARNING,
                event="index_write_failed",
                pmid=pmid,
                path=str(self.index.path),
            )

    def _finish(self, pmid: str, task: asyncio.Task[ArticleRecord]) -> None:
        self._inflight.pop(pmid, None)
        # every waiter may have been cancelled; mark the error as retrieved
        if not task.cancelled():
            task.exception()
