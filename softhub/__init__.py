# -*- coding: utf-8 -*-
"""
SoftHub - Offline-fast software catalog cache.

Mirrors a remote application catalog (apps, categories, curated
collections and icons) into a local SQLite database so a client can
browse and search it without waiting on the network.

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

__version__ = "0.1.0"
__author__ = "SoftHub Contributors"


def open_cache(db_path=None, config=None):
    """Open the catalog cache database.

    Re-exported from ``softhub.catalog.database.CatalogStore``. Without
    ``db_path`` the location comes from ``SOFTHUB_CACHE_PATH``, then
    ``config.cache_path``, then ~/.softhub/cache.db.
    """
    from softhub.catalog.database import CatalogStore
    return CatalogStore(db_path=db_path, config=config)


__all__: list = ["open_cache"]
