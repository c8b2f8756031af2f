# -*- coding: utf-8 -*-
"""
Catalog Database - SQLite-backed local mirror of the software catalog.

Provides the CatalogStore class, which owns the cache schema and every
read and write against it: app upserts, category and collection
replacement, paginated collection reads, substring search and the
homepage aggregate.

One CatalogStore is created per process and handed to every component
that needs it. The underlying sqlite connection is shared between
threads and serialized by a re-entrant lock, and every multi-row write
runs in a single transaction.

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
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Set, Tuple

logger = logging.getLogger(__name__)

# SoftHub internal
from softhub.catalog.exceptions import StoreError
from softhub.catalog.models import (
    CATEGORY_IDS,
    CURATED_COLLECTIONS,
    CachedApp,
    CachedCategory,
    CachedCategoryCollection,
    HomepageCollections,
    Projection,
    SearchResult,
    now_timestamp,
)
from softhub.catalog.resolver import resolve_cache_path, ensure_config_dir
from softhub.core.config import SofthubConfig


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS apps (
    app_id TEXT PRIMARY KEY,
    name TEXT,
    description TEXT,
    summary TEXT,
    install_ref TEXT,
    icon_url TEXT,
    icon_path TEXT,
    cached_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    cached_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS category_collections (
    category_id TEXT PRIMARY KEY,
    total_hits INTEGER NOT NULL,
    cached_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS category_collection_apps (
    category_id TEXT NOT NULL
        REFERENCES category_collections(category_id) ON DELETE CASCADE,
    app_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    PRIMARY KEY (category_id, app_id)
);

CREATE INDEX IF NOT EXISTS idx_apps_cached_at ON apps(cached_at);
CREATE INDEX IF NOT EXISTS idx_category_collection_apps_category
    ON category_collection_apps(category_id);
CREATE INDEX IF NOT EXISTS idx_category_collection_apps_position
    ON category_collection_apps(category_id, position);
"""

_SCHEMA_VERSION_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);
"""

_CURRENT_SCHEMA_VERSION = 1


def _ensure_column(
    conn: sqlite3.Connection,
    table: str,
    column: str,
    decl: str,
) -> bool:
    """Add ``column`` to ``table`` unless it already exists.

    Returns
    -------
    bool
        True if the column was added.
    """
    existing = {
        row[1] for row in conn.execute(f"PRAGMA table_info({table})")
    }
    if column in existing:
        return False
    conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {decl}")
    return True


def _add_icon_data_column(conn: sqlite3.Connection) -> None:
    _ensure_column(conn, 'apps', 'icon_data', 'BLOB')


# Migration functions: (target_version, callable)
_MIGRATIONS: List[Tuple[int, Callable[[sqlite3.Connection], None]]] = [
    (2, _add_icon_data_column),
]

_UPSERT_APP_SQL = """
INSERT INTO apps (
    app_id, name, description, summary, install_ref,
    icon_url, icon_path, icon_data, cached_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(app_id) DO UPDATE SET
    name = excluded.name,
    description = excluded.description,
    summary = excluded.summary,
    install_ref = excluded.install_ref,
    icon_url = excluded.icon_url,
    icon_path = excluded.icon_path,
    icon_data = CASE
        WHEN excluded.icon_data IS NOT NULL THEN excluded.icon_data
        WHEN apps.icon_url IS excluded.icon_url THEN apps.icon_data
        ELSE NULL
    END,
    cached_at = excluded.cached_at
"""

_UPSERT_COLLECTION_SQL = """
INSERT INTO category_collections (category_id, total_hits, cached_at)
VALUES (?, ?, ?)
ON CONFLICT(category_id) DO UPDATE SET
    total_hits = excluded.total_hits,
    cached_at = excluded.cached_at
"""

_SELECT_APPS_SQL: Dict[Projection, str] = {
    projection: "SELECT {} FROM apps".format(", ".join(projection.columns))
    for projection in Projection
}

_SEARCH_SQL = """
SELECT app_id, name, summary, icon_url, icon_path FROM apps
WHERE name LIKE ? ESCAPE '\\'
   OR summary LIKE ? ESCAPE '\\'
   OR description LIKE ? ESCAPE '\\'
ORDER BY name COLLATE NOCASE, app_id
LIMIT ?
"""

# Keeps IN (...) lists under SQLite's bound-parameter limit.
_MAX_IN_PARAMS = 500


def _chunked(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _placeholders(count: int) -> str:
    return ", ".join("?" * count)


def _escape_like(text: str) -> str:
    return (
        text.replace('\\', '\\\\')
        .replace('%', '\\%')
        .replace('_', '\\_')
    )


class CatalogStore:
    """SQLite-backed cache of apps, categories and collections.

    Parameters
    ----------
    db_path : Optional[Path]
        Path to the SQLite database file. If None, resolved with
        ``resolve_cache_path(config)``.
    config : Optional[SofthubConfig]
        Configuration consulted for ``cache_path`` when ``db_path`` is
        not given.

    Raises
    ------
    StoreError
        If the database cannot be opened or its schema created.
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        config: Optional[SofthubConfig] = None,
    ) -> None:
        if db_path is None:
            ensure_config_dir()
            db_path = resolve_cache_path(config)

        self._db_path = Path(db_path)
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                str(self._db_path), check_same_thread=False
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._init_schema()
            self._run_migrations()
        except (sqlite3.Error, OSError) as e:
            if self._conn is not None:
                self._conn.close()
            raise StoreError(
                f"Failed to open cache database {self._db_path}", cause=e
            ) from e
        logger.debug("Opened catalog cache at %s", self._db_path)

    # ------------------------------------------------------------------
    # Schema and lifecycle
    # ------------------------------------------------------------------

    def _init_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        self._conn.executescript(_SCHEMA_SQL)
        self._conn.executescript(_SCHEMA_VERSION_SQL)
        self._conn.commit()

        row = self._conn.execute(
            "SELECT version FROM schema_version"
        ).fetchone()
        if row is None:
            self._conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (_CURRENT_SCHEMA_VERSION,),
            )
            self._conn.commit()

    def _run_migrations(self) -> None:
        """Run any pending schema migrations."""
        row = self._conn.execute(
            "SELECT version FROM schema_version"
        ).fetchone()
        current = row['version'] if row else 0

        for target_version, migrate_fn in _MIGRATIONS:
            if target_version > current:
                logger.info(
                    "Running migration to schema version %d", target_version
                )
                with self._conn:
                    migrate_fn(self._conn)
                    self._conn.execute(
                        "UPDATE schema_version SET version = ?",
                        (target_version,),
                    )
                current = target_version

        # apps.icon_data must exist whatever schema_version says.
        _ensure_column(self._conn, 'apps', 'icon_data', 'BLOB')
        self._conn.commit()

    @property
    def path(self) -> Path:
        return self._db_path

    @property
    def schema_version(self) -> int:
        """Current schema version."""
        row = self._fetchone(
            "SELECT version FROM schema_version", (), "read schema version"
        )
        return row['version'] if row else 0

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> 'CatalogStore':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        """Run a block of statements atomically.

        Commits on success, rolls back on any error, and converts
        ``sqlite3.Error`` into ``StoreError``.
        """
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.Error as e:
                raise StoreError(f"Failed to {action}", cause=e) from e

    def _fetchall(self, sql: str, params: Sequence, action: str) -> List[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"Failed to {action}", cause=e) from e

    def _fetchone(self, sql: str, params: Sequence, action: str) -> Optional[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchone()
            except sqlite3.Error as e:
                raise StoreError(f"Failed to {action}", cause=e) from e

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert_apps(self, apps: Sequence[CachedApp]) -> int:
        """Insert or fully replace a batch of app records.

        Every non-blob column is overwritten. A stored icon blob is kept
        only while the record's ``icon_url`` is unchanged.

        Parameters
        ----------
        apps : Sequence[CachedApp]

        Returns
        -------
        int
            Number of records written.
        """
        if not apps:
            return 0

        cached_at = now_timestamp()
        rows = [
            (
                app.app_id, app.name, app.description, app.summary,
                app.install_ref, app.icon_url, app.icon_path,
                app.icon_data, cached_at,
            )
            for app in apps
        ]
        with self._transaction("upsert apps") as conn:
            conn.executemany(_UPSERT_APP_SQL, rows)
        for app in apps:
            app.cached_at = cached_at
        return len(rows)

    def replace_category_set(self, categories: Sequence[CachedCategory]) -> None:
        """Delete every category and insert ``categories`` in its place."""
        cached_at = now_timestamp()
        with self._transaction("replace categories") as conn:
            conn.execute("DELETE FROM categories")
            conn.executemany(
                "INSERT INTO categories (id, name, cached_at) VALUES (?, ?, ?)",
                [(cat.id, cat.name, cat.cached_at or cached_at) for cat in categories],
            )

    def replace_collection(
        self,
        category_id: str,
        app_ids: Sequence[str],
        total_hits: int,
    ) -> CachedCategoryCollection:
        """Replace a collection's header and its ordered membership.

        Header upsert, membership delete and membership insert share one
        transaction. Positions follow ``app_ids`` starting at 0; repeated
        ids keep their first position.

        Parameters
        ----------
        category_id : str
            Category id or curated collection name.
        app_ids : Sequence[str]
            Members in display order.
        total_hits : int
            Remote-reported size of the collection.

        Returns
        -------
        CachedCategoryCollection
            The collection as written.
        """
        ordered: List[str] = []
        seen: Set[str] = set()
        for app_id in app_ids:
            if app_id not in seen:
                seen.add(app_id)
                ordered.append(app_id)

        cached_at = now_timestamp()
        with self._transaction(f"replace collection '{category_id}'") as conn:
            conn.execute(
                _UPSERT_COLLECTION_SQL, (category_id, int(total_hits), cached_at)
            )
            conn.execute(
                "DELETE FROM category_collection_apps WHERE category_id = ?",
                (category_id,),
            )
            conn.executemany(
                "INSERT INTO category_collection_apps "
                "(category_id, app_id, position) VALUES (?, ?, ?)",
                [
                    (category_id, app_id, position)
                    for position, app_id in enumerate(ordered)
                ],
            )

        return CachedCategoryCollection(
            category_id=category_id,
            app_ids=ordered,
            total_hits=int(total_hits),
            cached_at=cached_at,
        )

    def set_icon_data(self, app_id: str, data: bytes) -> bool:
        """Store an icon blob for an app, leaving every other column alone.

        Returns
        -------
        bool
            True if a row for ``app_id`` exists and was updated.
        """
        with self._transaction(f"store icon for '{app_id}'") as conn:
            cursor = conn.execute(
                "UPDATE apps SET icon_data = ? WHERE app_id = ?",
                (sqlite3.Binary(data), app_id),
            )
        return cursor.rowcount > 0

    def clear(self) -> None:
        """Delete every row from every cache table."""
        with self._transaction("clear cache") as conn:
            conn.execute("DELETE FROM category_collection_apps")
            conn.execute("DELETE FROM category_collections")
            conn.execute("DELETE FROM categories")
            conn.execute("DELETE FROM apps")
        logger.info("Cleared catalog cache")

    # ------------------------------------------------------------------
    # App reads
    # ------------------------------------------------------------------

    def get_app(
        self,
        app_id: str,
        projection: Projection = Projection.FULL,
    ) -> Optional[CachedApp]:
        """Get a single app by id, or None if not cached."""
        row = self._fetchone(
            _SELECT_APPS_SQL[projection] + " WHERE app_id = ?",
            (app_id,),
            f"read app '{app_id}'",
        )
        if row is None:
            return None
        return self._row_to_app(row, projection)

    def get_apps(
        self,
        app_ids: Sequence[str],
        projection: Projection = Projection.WITH_DESCRIPTION,
    ) -> List[CachedApp]:
        """Get several apps by id.

        The result follows the order of ``app_ids``; ids that are not
        cached are skipped.
        """
        found = self._fetch_app_map(app_ids, projection)
        return [found[app_id] for app_id in app_ids if app_id in found]

    def get_existing_apps(self, app_ids: Sequence[str]) -> Dict[str, CachedApp]:
        """Snapshot of the change-detection fields for ``app_ids``."""
        return self._fetch_app_map(app_ids, Projection.WITH_DESCRIPTION)

    def list_apps(self, projection: Projection = Projection.FULL) -> List[CachedApp]:
        rows = self._fetchall(
            _SELECT_APPS_SQL[projection] + " ORDER BY app_id", (), "list apps"
        )
        return [self._row_to_app(row, projection) for row in rows]

    def count_apps(self) -> int:
        row = self._fetchone("SELECT COUNT(*) AS count FROM apps", (), "count apps")
        return row['count'] if row else 0

    def is_ready(self) -> bool:
        """True once at least one app has been cached."""
        try:
            return self.count_apps() > 0
        except StoreError as e:
            logger.warning("Cache readiness check failed: %s", e)
            return False

    def _fetch_app_map(
        self,
        app_ids: Sequence[str],
        projection: Projection,
    ) -> Dict[str, CachedApp]:
        unique = list(dict.fromkeys(app_ids))
        found: Dict[str, CachedApp] = {}
        for chunk in _chunked(unique, _MAX_IN_PARAMS):
            rows = self._fetchall(
                _SELECT_APPS_SQL[projection]
                + f" WHERE app_id IN ({_placeholders(len(chunk))})",
                tuple(chunk),
                "read apps batch",
            )
            for row in rows:
                app = self._row_to_app(row, projection)
                found[app.app_id] = app
        return found

    @staticmethod
    def _row_to_app(row: sqlite3.Row, projection: Projection) -> CachedApp:
        """Convert a database row to a CachedApp instance."""
        values = {column: row[column] for column in projection.columns}
        if values.get('icon_data') is not None:
            values['icon_data'] = bytes(values['icon_data'])
        return CachedApp(**values)

    # ------------------------------------------------------------------
    # Categories and collections
    # ------------------------------------------------------------------

    def get_categories(self) -> List[CachedCategory]:
        """Cached categories from the static set, ordered by name."""
        rows = self._fetchall(
            "SELECT id, name, cached_at FROM categories "
            f"WHERE id IN ({_placeholders(len(CATEGORY_IDS))}) ORDER BY name",
            CATEGORY_IDS,
            "read categories",
        )
        return [
            CachedCategory(id=r['id'], name=r['name'], cached_at=r['cached_at'])
            for r in rows
        ]

    def get_category_ids(self) -> List[str]:
        rows = self._fetchall(
            "SELECT id FROM categories ORDER BY rowid", (), "read category ids"
        )
        return [r['id'] for r in rows]

    def get_collection(self, category_id: str) -> Optional[CachedCategoryCollection]:
        """Get a collection header with its full ordered membership.

        Header and members are read under one lock, so a concurrent
        ``replace_collection`` is seen entirely or not at all.
        """
        with self._lock:
            header = self._fetchone(
                "SELECT category_id, total_hits, cached_at FROM category_collections "
                "WHERE category_id = ?",
                (category_id,),
                f"read collection '{category_id}'",
            )
            if header is None:
                return None
            app_ids, _ = self.get_collection_members(category_id)
        return CachedCategoryCollection(
            category_id=header['category_id'],
            app_ids=app_ids,
            total_hits=header['total_hits'],
            cached_at=header['cached_at'],
        )

    def get_collection_members(
        self,
        category_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[str], int]:
        """Ordered member ids of a collection, optionally paginated.

        Parameters
        ----------
        category_id : str
        limit : Optional[int]
            Page size. None returns every member from ``offset`` on.
        offset : int
            Number of leading members to skip.

        Returns
        -------
        Tuple[List[str], int]
            The page of app ids and the total number of members.
        """
        with self._lock:
            count = self._fetchone(
                "SELECT COUNT(*) AS count FROM category_collection_apps "
                "WHERE category_id = ?",
                (category_id,),
                f"count members of '{category_id}'",
            )
            rows = self._fetchall(
                "SELECT app_id FROM category_collection_apps "
                "WHERE category_id = ? ORDER BY position LIMIT ? OFFSET ?",
                (category_id, -1 if limit is None else limit, max(offset, 0)),
                f"read members of '{category_id}'",
            )
        return [r['app_id'] for r in rows], count['count'] if count else 0

    def get_collection_page(
        self,
        category_id: str,
        limit: int,
        offset: int = 0,
    ) -> Tuple[List[CachedApp], int]:
        """A page of a collection's apps plus the collection's member count.

        Members whose app row is not cached yet are left out of the page.
        """
        app_ids, total = self.get_collection_members(category_id, limit, offset)
        return self.get_apps(app_ids, Projection.MINIMAL), total

    def get_collection_with_apps(
        self,
        category_id: str,
        limit: int,
    ) -> Optional[Tuple[CachedCategoryCollection, List[CachedApp]]]:
        """Collection header with its first ``limit`` apps, or None."""
        collection = self.get_collection(category_id)
        if collection is None:
            return None
        collection.app_ids = collection.app_ids[:limit]
        return collection, self.get_apps(collection.app_ids, Projection.MINIMAL)

    def get_collection_apps(self, collection_type: str, limit: int = 24) -> List[CachedApp]:
        """Leading apps of a curated collection.

        Raises
        ------
        ValueError
            If ``collection_type`` is not a curated collection.
        """
        if collection_type not in CURATED_COLLECTIONS:
            raise ValueError(f"Unknown collection type: {collection_type!r}")
        app_ids, _ = self.get_collection_members(collection_type, limit)
        return self.get_apps(app_ids, Projection.FULL)

    def get_homepage(self, limit: int = 8) -> HomepageCollections:
        """Top ``limit`` apps of each curated collection.

        App rows for all three collections are read in one batch, then
        split back out in each collection's own order.
        """
        members = {
            name: self.get_collection_members(name, limit)[0]
            for name in CURATED_COLLECTIONS
        }
        all_ids = [app_id for ids in members.values() for app_id in ids]
        found = self._fetch_app_map(all_ids, Projection.WITH_ICON)

        def pick(name: str) -> List[CachedApp]:
            return [found[app_id] for app_id in members[name] if app_id in found]

        return HomepageCollections(
            popular=pick("popular"),
            trending=pick("trending"),
            recently_updated=pick("recently-updated"),
        )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, query: str, limit: int = 100) -> List[SearchResult]:
        """Case-insensitive substring search over name, summary and description.

        Parameters
        ----------
        query : str
            Text to look for. Blank queries return nothing.
        limit : int
            Maximum number of results.

        Returns
        -------
        List[SearchResult]
        """
        query = query.strip()
        if not query:
            return []
        pattern = f"%{_escape_like(query)}%"
        rows = self._fetchall(
            _SEARCH_SQL, (pattern, pattern, pattern, limit), "search apps"
        )
        return [
            SearchResult(
                app_id=r['app_id'],
                name=r['name'],
                summary=r['summary'],
                icon_url=r['icon_url'],
                icon_path=r['icon_path'],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Icons
    # ------------------------------------------------------------------

    def get_icon_data(self, app_id: str) -> Optional[bytes]:
        """Stored icon blob for ``app_id``, or None if absent or empty."""
        row = self._fetchone(
            "SELECT icon_data FROM apps WHERE app_id = ? AND length(icon_data) > 0",
            (app_id,),
            f"read icon for '{app_id}'",
        )
        return bytes(row['icon_data']) if row else None

    def get_icon_blobs(self, app_ids: Sequence[str]) -> Dict[str, bytes]:
        unique = list(dict.fromkeys(app_ids))
        blobs: Dict[str, bytes] = {}
        for chunk in _chunked(unique, _MAX_IN_PARAMS):
            rows = self._fetchall(
                "SELECT app_id, icon_data FROM apps "
                f"WHERE app_id IN ({_placeholders(len(chunk))}) "
                "AND length(icon_data) > 0",
                tuple(chunk),
                "read icon batch",
            )
            blobs.update({r['app_id']: bytes(r['icon_data']) for r in rows})
        return blobs

    def get_ids_with_icons(self, app_ids: Sequence[str]) -> Set[str]:
        """Subset of ``app_ids`` that already have a non-empty icon blob."""
        unique = list(dict.fromkeys(app_ids))
        cached: Set[str] = set()
        for chunk in _chunked(unique, _MAX_IN_PARAMS):
            rows = self._fetchall(
                "SELECT app_id FROM apps "
                f"WHERE app_id IN ({_placeholders(len(chunk))}) "
                "AND length(icon_data) > 0",
                tuple(chunk),
                "check cached icons",
            )
            cached.update(r['app_id'] for r in rows)
        return cached
