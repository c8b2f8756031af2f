# -*- coding: utf-8 -*-
"""
Cache Path Resolver - Locate the SoftHub catalog cache database.

The cache path is taken from, in order:
1. the SOFTHUB_CACHE_PATH environment variable
2. the ``cache_path`` field of the loaded SofthubConfig
3. ~/.softhub/cache.db

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
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# SoftHub internal
from softhub.core.config import SofthubConfig, config_dir

CACHE_PATH_ENV = "SOFTHUB_CACHE_PATH"
_DEFAULT_DB = "cache.db"


def resolve_cache_path(config: Optional[SofthubConfig] = None) -> Path:
    """Resolve the cache database path.

    Parameters
    ----------
    config : Optional[SofthubConfig]
        Loaded configuration. Its ``cache_path`` is used when the
        environment variable is unset.

    Returns
    -------
    Path
        Resolved path to the cache database file.
    """
    env_path = os.environ.get(CACHE_PATH_ENV)
    if env_path:
        logger.debug("Cache path from %s: %s", CACHE_PATH_ENV, env_path)
        return Path(env_path).expanduser()

    if config is not None and config.cache_path:
        return Path(config.cache_path).expanduser()

    return config_dir() / _DEFAULT_DB


def ensure_config_dir() -> Path:
    """Create ~/.softhub/ if needed and return it."""
    path = config_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path
