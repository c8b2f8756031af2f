# -*- coding: utf-8 -*-
"""
Catalog Synchronizer - Keep the local cache in step with the remote catalog.

Drives the two refresh workflows. Both fetch the small, order-sensitive
collections first and in the calling thread, hand the expensive
per-app work to a background pool, and finish with a ``complete``
progress event carrying the number of cached apps.

- Full refresh clears the cache and streams the whole catalog in
  fixed-size chunks, one chunk's fan-out at a time.
- Incremental refresh re-reads only the ``recently-updated`` collection
  and rewrites the apps whose content actually changed.

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
from concurrent.futures import Future
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

# SoftHub internal
from softhub.catalog.client import CatalogClient
from softhub.catalog.database import CatalogStore
from softhub.catalog.exceptions import CatalogError, ParseError, TransportError
from softhub.catalog.icons import IconCache
from softhub.catalog.models import (
    CATEGORIES,
    CURATED_COLLECTIONS,
    CachedApp,
    CachedCategory,
    CachedCategoryCollection,
    ProgressEvent,
    Stage,
    has_app_changed,
    now_timestamp,
)
from softhub.catalog.pool import ThreadExecutorPool
from softhub.core.config import SofthubConfig

#: Receives progress events. Delivery is best effort.
ProgressReporter = Callable[[ProgressEvent], None]

# Failures that skip one item or one stage; anything else ends the run.
_SKIPPABLE = (TransportError, ParseError)


class CatalogSynchronizer:
    """Synchronizes the catalog store with the remote catalog.

    Parameters
    ----------
    store : CatalogStore
        The shared cache store.
    client : CatalogClient
        Remote catalog client.
    config : Optional[SofthubConfig]
        Chunk size and worker counts. Defaults apply if omitted.
    reporter : Optional[ProgressReporter]
        Callable receiving progress events.
    icons : Optional[IconCache]
        Icon cache; built from ``store`` and ``client`` if omitted.
    background : Optional[ThreadExecutorPool]
        Pool running the bulk sync units and icon downloads.
    fetcher : Optional[ThreadExecutorPool]
        Pool running a chunk's concurrent detail fetches. Must not be
        the same pool as ``background``, since bulk units block on it.
    """

    def __init__(
        self,
        store: CatalogStore,
        client: CatalogClient,
        config: Optional[SofthubConfig] = None,
        reporter: Optional[ProgressReporter] = None,
        icons: Optional[IconCache] = None,
        background: Optional[ThreadExecutorPool] = None,
        fetcher: Optional[ThreadExecutorPool] = None,
    ) -> None:
        config = config or SofthubConfig()
        self._store = store
        self._client = client
        self._reporter = reporter
        self._chunk_size = max(1, config.chunk_size)
        self._icons = icons or IconCache(store, client)

        # Pools created here, and only those, are stopped by shutdown().
        self._owned_pools: List[ThreadExecutorPool] = []
        if background is None:
            background = ThreadExecutorPool(
                max_workers=config.background_workers, name="catalog-sync"
            )
            self._owned_pools.append(background)
        if fetcher is None:
            fetcher = ThreadExecutorPool(
                max_workers=config.fetch_workers, name="catalog-fetch"
            )
            self._owned_pools.append(fetcher)
        self._background = background
        self._fetcher = fetcher

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def start(self, clear_cache: bool) -> Future:
        """Run a sync on the background pool and return immediately.

        Returns
        -------
        Future
            Resolves once the priority stages finish, to the future of
            the bulk unit the run launched (or None if the run failed).
        """
        logger.info("Scheduling cache sync (clear_cache=%s)", clear_cache)
        return self._background.submit(self.run, clear_cache)

    def run(self, clear_cache: bool) -> Optional[Future]:
        """Run a full or incremental refresh in the calling thread.

        Errors that end the workflow are reported as an ``error``
        progress event instead of being raised.

        Returns
        -------
        Optional[Future]
            Future of the bulk unit, or None if the run failed.
        """
        label = "initialization" if clear_cache else "update"
        try:
            if clear_cache:
                return self.full_refresh()
            return self.incremental_refresh()
        except CatalogError as e:
            logger.error("Cache %s failed: %s", label, e)
            self._emit(
                Stage.ERROR, 0, 0, f"Cache {label} failed", details=str(e)
            )
            return None

    def full_refresh(self) -> Future:
        """Clear the cache and rebuild it from scratch.

        Returns
        -------
        Future
            Future of the background catalog stream.

        Raises
        ------
        StoreError
            If the store cannot be cleared or written.
        """
        logger.info("Starting full catalog refresh")
        self._store.clear()
        self.sync_curated_collections()

        job = self._background.submit(
            self._run_unit, self.sync_all_apps, "fetch all apps"
        )

        self.sync_categories()
        self.sync_all_category_collections()

        count = self._store.count_apps()
        self._emit(
            Stage.COMPLETE, count, count, f"Cache complete! Cached {count} apps"
        )
        return job

    def incremental_refresh(self) -> Future:
        """Refresh collections and rewrite recently updated apps.

        Returns
        -------
        Future
            Future of the background recently-updated sync.

        Raises
        ------
        StoreError
            If the store cannot be read or written.
        """
        logger.info("Starting incremental catalog refresh")
        self.sync_curated_collections()

        job = self._background.submit(
            self._run_unit, self.sync_recently_updated, "fetch recently updated apps"
        )

        self.sync_all_category_collections()

        count = self._store.count_apps()
        self._emit(
            Stage.COMPLETE, count, count, f"Cache updated! {count} apps cached"
        )
        return job

    # ------------------------------------------------------------------
    # Collections and categories
    # ------------------------------------------------------------------

    def sync_collection(self, name: str) -> CachedCategoryCollection:
        """Fetch one curated collection and replace its cached copy."""
        page = self._client.fetch_collection(name)
        collection = self._store.replace_collection(name, page.app_ids, page.total_hits)
        logger.info(
            "Cached collection %s: %d apps (%d hits)",
            name, len(collection.app_ids), collection.total_hits,
        )
        return collection

    def sync_category_collection(self, category_id: str) -> CachedCategoryCollection:
        """Fetch one category's collection and replace its cached copy."""
        page = self._client.fetch_category_collection(category_id)
        return self._store.replace_collection(
            category_id, page.app_ids, page.total_hits
        )

    def sync_curated_collections(self) -> List[CachedCategoryCollection]:
        """Fetch the curated collections one at a time, skipping failures."""
        synced = []
        for name in CURATED_COLLECTIONS:
            try:
                synced.append(self.sync_collection(name))
            except _SKIPPABLE as e:
                logger.warning("Failed to fetch %s collection: %s", name, e)
        return synced

    def sync_categories(self) -> List[CachedCategory]:
        """Replace the cached categories with the static category list."""
        cached_at = now_timestamp()
        categories = [
            CachedCategory(id=cat_id, name=label, cached_at=cached_at)
            for cat_id, label in CATEGORIES
        ]
        self._store.replace_category_set(categories)
        return categories

    def sync_all_category_collections(self) -> int:
        """Fetch every cached category's collection, skipping failures.

        Categories are written first if the cache has none.

        Returns
        -------
        int
            Number of collections written.
        """
        category_ids = self._store.get_category_ids()
        if not category_ids:
            category_ids = [cat.id for cat in self.sync_categories()]

        total = len(category_ids)
        written = 0
        for processed, category_id in enumerate(category_ids, start=1):
            try:
                self.sync_category_collection(category_id)
                written += 1
            except _SKIPPABLE as e:
                logger.warning(
                    "Failed to fetch collection for category %s: %s",
                    category_id, e,
                )
            self._emit(
                Stage.FETCHING_COLLECTIONS, processed, total,
                f"Fetched {processed}/{total} collections",
            )
        return written

    # ------------------------------------------------------------------
    # Bulk app units
    # ------------------------------------------------------------------

    def sync_all_apps(self) -> int:
        """Stream the entire catalog into the cache.

        Ids are fetched in chunks of ``chunk_size``. A chunk's details
        are fetched concurrently and upserted before the next chunk
        starts; icon downloads for the chunk are scheduled without
        waiting for them.

        Returns
        -------
        int
            Number of apps written.
        """
        self._emit(Stage.FETCHING_APPS, 0, 0, "Starting to fetch apps...")
        app_ids = self._client.fetch_app_id_list()
        total = len(app_ids)
        logger.info("Catalog lists %d apps", total)

        written = 0
        for start in range(0, total, self._chunk_size):
            chunk = app_ids[start:start + self._chunk_size]
            batch = self._fetch_details(chunk)
            if batch:
                self._store.upsert_apps(batch)
                written += len(batch)
                logger.info(
                    "Inserted batch of %d apps, total: %d", len(batch), written
                )
            else:
                logger.warning("Batch starting at %d produced no apps", start)

            done = start + len(chunk)
            self._emit(
                Stage.FETCHING_APPS, done, total, f"Fetched {done}/{total} apps"
            )
            self._schedule_icons(batch)
        return written

    def sync_recently_updated(self) -> int:
        """Rewrite the recently updated apps whose content changed.

        Returns
        -------
        int
            Number of apps written.
        """
        page = self._client.fetch_collection("recently-updated")
        existing = self._store.get_existing_apps(page.app_ids)
        fresh = self._fetch_details(page.app_ids)

        changed = [
            app for app in fresh
            if has_app_changed(existing.get(app.app_id), app)
        ]
        if not changed:
            logger.info("No apps needed updating")
            return 0

        self._store.upsert_apps(changed)
        logger.info(
            "Updated %d apps out of %d checked", len(changed), len(page.app_ids)
        )
        self._schedule_icons(changed)
        return len(changed)

    def _fetch_details(self, app_ids: Sequence[str]) -> List[CachedApp]:
        """Fetch details for ``app_ids`` concurrently, dropping failures."""
        apps: List[CachedApp] = []
        for app_id, app, error in self._fetcher.fan_out(
            self._client.fetch_app_detail, app_ids
        ):
            if error is not None:
                logger.warning("Failed to fetch app %s: %s", app_id, error)
            else:
                apps.append(app)
        return apps

    # ------------------------------------------------------------------
    # Icons
    # ------------------------------------------------------------------

    def _schedule_icons(self, apps: Sequence[CachedApp]) -> int:
        """Queue icon downloads for apps with an icon URL but no cached icon."""
        with_url = [app for app in apps if app.icon_url]
        if not with_url:
            return 0
        cached = self._store.get_ids_with_icons([app.app_id for app in with_url])
        scheduled = 0
        for app in with_url:
            if app.app_id not in cached:
                self._background.submit(self._cache_icon, app.app_id, app.icon_url)
                scheduled += 1
        return scheduled

    def _cache_icon(self, app_id: str, icon_url: str) -> bool:
        try:
            return self._icons.ensure_icon_cached(app_id, icon_url)
        except CatalogError as e:
            logger.warning("Failed to cache icon for %s: %s", app_id, e)
            return False

    # ------------------------------------------------------------------
    # Lifecycle and progress
    # ------------------------------------------------------------------

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for outstanding background units and icon downloads.

        Returns
        -------
        bool
            True if nothing is left pending.
        """
        return self._background.wait(timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the pools this synchronizer created.

        With ``wait=False`` queued work is cancelled.
        """
        for pool in self._owned_pools:
            pool.shutdown(wait=wait, cancel_pending=not wait)

    def _run_unit(self, unit: Callable[[], int], label: str) -> Optional[int]:
        try:
            return unit()
        except CatalogError as e:
            logger.error("Failed to %s: %s", label, e)
            return None

    def _emit(
        self,
        stage: Stage,
        progress: int,
        total: int,
        message: str,
        details: Optional[str] = None,
    ) -> None:
        if self._reporter is None:
            return
        event = ProgressEvent(
            stage=stage, progress=progress, total=total,
            message=message, details=details,
        )
        try:
            self._reporter(event)
        except Exception as e:
            logger.warning("Progress reporter raised: %s", e)
