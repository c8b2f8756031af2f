# -*- coding: utf-8 -*-
"""
Catalog Module - Local mirror of the remote software catalog.

Provides a SQLite-backed cache of apps, categories and curated
collections, an HTTP client for the remote catalog API, an icon cache,
and the synchronizer that keeps the cache up to date.

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
