"""
Command-line interface for the PubMed fetch cache.

Uses Typer to provide a small smoke-test harness: each PMID is fetched
several times through one cache so the first (network) and later
(cached) timings can be compared. Supports loading .env files for the
NCBI API key.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
import time

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .client import ArticleFetchCache
from .config import AppConfig, load_config
from .core.types import ArticleRecord, FetchError
from .fetch.parser import format_authors
from .logging_utils import setup_logging

try:
    from dotenv import load_dotenv
except Exception:  # noqa: BLE001
    load_dotenv = None

app = typer.Typer(add_completion=False)
console = Console()

ABSTRACT_PREVIEW_CHARS = 200


@app.callback()
def main() -> None:
    """Fetch PubMed article metadata through a cache."""


@app.command()
def fetch(
    pmids: list[str] = typer.Argument(..., help="PubMed identifiers to fetch."),
    repeat: int = typer.Option(2, "--repeat", "-r", min=1, help="Fetches per PMID."),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, readable=True),
    as_json: bool = typer.Option(False, "--json", help="Print records as JSON."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
    timeout: float | None = typer.Option(None, "--timeout", help="Request timeout in seconds."),
    cache_backend: str | None = typer.Option(
        None, "--cache-backend", help="Cache backend: ttl or memory."
    ),
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        envvar="NCBI_API_KEY",
        help="NCBI API key (or set NCBI_API_KEY / .env).",
    ),
):
    """Fetch each PMID `repeat` times and report timings.

    The first fetch of a PMID goes to PubMed; the following ones should be
    served from the cache in well under a millisecond.
    """
    if load_dotenv is not None:
        load_dotenv()

    cfg = load_config(str(config) if config else None)
    if log_level:
        cfg.logging.level = log_level
    if timeout is not None:
        cfg.fetch.timeout_seconds = timeout
    if cache_backend:
        cfg.cache.backend = cache_backend
    if api_key:
        cfg.fetch.api_key = api_key

    setup_logging(cfg.logging)
    failed = asyncio.run(_run(pmids, repeat, cfg, as_json))
    if failed:
        raise typer.Exit(code=1)


async def _run(pmids: list[str], repeat: int, cfg: AppConfig, as_json: bool) -> int:
    cache = ArticleFetchCache.from_config(cfg)
    timings = Table(title="Fetch timings")
    timings.add_column("PMID")
    timings.add_column("Call", justify="right")
    timings.add_column("Source")
    timings.add_column("Elapsed (ms)", justify="right")

    failed = 0
    for pmid in pmids:
        for call in range(1, repeat + 1):
            source = "cache" if pmid.strip() in cache else "network"
            started = time.perf_counter()
            try:
                record = await cache.fetch(pmid)
            except FetchError as exc:
                elapsed = (time.perf_counter() - started) * 1000
                timings.add_row(escape(pmid), str(call), f"[red]error ({exc.kind})[/red]", f"{elapsed:.2f}")
                console.print(f"[red]Error fetching {escape(pmid)}:[/red] {escape(exc.message)}")
                failed += 1
                continue
            elapsed = (time.perf_counter() - started) * 1000
            timings.add_row(escape(pmid), str(call), source, f"{elapsed:.2f}")
            if call == 1:
                _print_record(record, as_json)

    console.print(timings)
    stats = cache.stats
    console.print(
        f"hits={stats.hits} misses={stats.misses} failures={stats.failures} "
        f"network_calls={stats.network_calls} cached={len(cache)}"
    )
    return failed


def _print_record(record: ArticleRecord, as_json: bool) -> None:
    if as_json:
        console.print_json(json.dumps(record.to_dict(), sort_keys=True))
        return

    console.print(f"[bold]PMID {record.pmid}[/bold]  {record.url}")
    console.print(f"  Title:   {escape(record.title)}")
    console.print(f"  Authors: {escape(format_authors(record.authors))}")
    console.print(f"  Journal: {escape(record.journal)}")
    console.print(f"  Year:    {escape(record.year)}")
    console.print(f"  DOI:     {escape(record.doi)}")
    if record.abstract:
        preview = record.abstract[:ABSTRACT_PREVIEW_CHARS]
        if len(record.abstract) > ABSTRACT_PREVIEW_CHARS:
            preview += "..."
        console.print(f"  Abstract: {escape(preview)}")
    else:
        console.print("  Abstract: not available")


if __name__ == "__main__":
    app()
