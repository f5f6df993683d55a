"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- FetchConfig: NCBI E-utilities request settings
- CacheConfig: Backing store and cache index settings
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml


@dataclass
class FetchConfig:
    """Configuration for PubMed esummary requests.

    Attributes:
        base_url: E-utilities base URL (esummary.fcgi is appended)
        timeout_seconds: Per-request timeout
        retries: Number of retry attempts for retryable failures
        backoff_seconds: Initial delay between retries, doubled per attempt
        tool: Tool name sent to NCBI, as their usage policy asks
        email: Contact email sent to NCBI
        api_key: Optional inline NCBI API key (overrides env var)
        api_key_env: Environment variable name containing the API key
        trust_env: Whether to respect system proxy settings
    """

    base_url: str = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
    timeout_seconds: float = 10.0
    retries: int = 2
    backoff_seconds: float = 1.0
    tool: str = "pubmed-cache"
    email: str | None = None
    api_key: str | None = None
    api_key_env: str = "NCBI_API_KEY"
    trust_env: bool = True


@dataclass
class CacheConfig:
    """Configuration for the article cache.

    Attributes:
        backend: "ttl" for a bounded expiring store, "memory" for an unbounded dict
        max_entries: Size bound for the ttl backend
        ttl_seconds: Entry lifetime for the ttl backend
        evict_count: Number of oldest entries dropped when the bound is exceeded
        write_index: Whether to write the cache index JSONL file
        index_dir: Directory for the cache index file
        index_filename: Name of the cache index file
    """

    backend: str = "ttl"
    max_entries: int = 100
    ttl_seconds: float = 24 * 60 * 60
    evict_count: int = 20
    write_index: bool = False
    index_dir: str = ".pubmed_cache"
    index_filename: str = "index.jsonl"


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
        log_dir: Directory for the log file
    """

    level: str = "WARNING"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "pubmed_cache.jsonl"
    log_dir: str = ".pubmed_cache"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    fetch: FetchConfig = field(default_factory=FetchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig.

    Unknown sections and keys are ignored so older config files keep loading.
    """
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            known = {k: v for k, v in value.items() if k in data[key]}
            data[key].update(known)
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        fetch=FetchConfig(**data["fetch"]),
        cache=CacheConfig(**data["cache"]),
        logging=LoggingConfig(**data["logging"]),
    )


def get_api_key(cfg: FetchConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)
