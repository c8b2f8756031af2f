# -*- coding: utf-8 -*-
"""
Configuration Module - Configurable defaults for SoftHub.

Provides a SofthubConfig dataclass with default values for the remote
catalog endpoint, HTTP timeouts, retry policy, worker counts and query
limits. Loads from ~/.softhub/softhub_config.json if it exists,
otherwise uses sensible defaults.

Author
------
SoftHub Contributors

License
-------
MIT License
Copyright (c) 2026 SoftHub Contributors
See LICENSE file for full text.

Created
-------
2026-10-18

Modified
--------
2026-10-18
"""

# Standard library
import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_CONFIG_DIRNAME = ".softhub"
_CONFIG_FILENAME = "softhub_config.json"


def config_dir() -> Path:
    """Per-user SoftHub directory, ~/.softhub."""
    return Path.home() / _CONFIG_DIRNAME


@dataclass
class SofthubConfig:
    """Global SoftHub configuration with defaults.

    Attributes
    ----------
    api_base : str
        Base URL of the remote catalog API.
    request_timeout : float
        HTTP timeout per request in seconds.
    chunk_size : int
        Number of app ids fetched concurrently per catalog chunk.
    retry_delay : float
        Seconds to wait before retrying a collection that answered 500.
    collection_max_retries : Optional[int]
        Retries after a 500 before giving up. None retries forever.
    fetch_workers : int
        Worker threads used for a chunk's detail fetches.
    background_workers : int
        Worker threads for background syncs and icon downloads.
    homepage_limit : int
        Apps per curated collection on the homepage.
    collection_preview_limit : int
        Apps returned for a curated collection listing.
    search_limit : int
        Maximum number of search results.
    log_level : str
        Logging level used by the command-line entry point.
    cache_path : Optional[str]
        Cache database location. None means ~/.softhub/cache.db; the
        SOFTHUB_CACHE_PATH environment variable overrides either.
    """

    api_base: str = "https://flathub.org/api/v2"
    request_timeout: float = 30.0
    chunk_size: int = 250
    retry_delay: float = 2.0
    collection_max_retries: Optional[int] = 5
    fetch_workers: int = 32
    background_workers: int = 4
    homepage_limit: int = 8
    collection_preview_limit: int = 24
    search_limit: int = 100
    log_level: str = "INFO"
    cache_path: Optional[str] = None

    def save(self, path: Optional[Path] = None) -> None:
        """Save config to JSON file."""
        path = path or config_dir() / _CONFIG_FILENAME
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(asdict(self), f, indent=2)


def load_config(path: Optional[Path] = None) -> SofthubConfig:
    """Load configuration from file, or return defaults.

    Parameters
    ----------
    path : Optional[Path]
        Config file path. Defaults to ~/.softhub/softhub_config.json.

    Returns
    -------
    SofthubConfig
        Loaded or default configuration.
    """
    path = path or config_dir() / _CONFIG_FILENAME
    if path.exists():
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return SofthubConfig(**{
                k: v for k, v in data.items()
                if k in SofthubConfig.__dataclass_fields__
            })
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Failed to load config from %s: %s", path, e)

    return SofthubConfig()
