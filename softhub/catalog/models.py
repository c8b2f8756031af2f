# -*- coding: utf-8 -*-
"""
Catalog Models - Data models for the local software catalog cache.

Defines the cached app, category and collection records persisted by
the catalog store, the read-only projections produced by its queries,
and the progress events emitted while a synchronization runs.

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
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


#: Static topical categories as ``(id, display label)`` pairs.
CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("AudioVideo", "Audio & Video"),
    ("Development", "Development"),
    ("Education", "Education"),
    ("Game", "Games"),
    ("Graphics", "Graphics"),
    ("Network", "Network"),
    ("Office", "Office"),
    ("Science", "Science"),
    ("System", "System"),
    ("Utility", "Utility"),
)

CATEGORY_IDS: Tuple[str, ...] = tuple(cat_id for cat_id, _ in CATEGORIES)

#: Server-ranked collections, fetched before anything else.
CURATED_COLLECTIONS: Tuple[str, ...] = ("popular", "trending", "recently-updated")


def now_timestamp() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


class Projection(Enum):
    """Column sets selectable when reading app rows.

    Reading icon blobs is comparatively expensive, so list views ask
    for ``MINIMAL`` or ``WITH_DESCRIPTION`` and only detail views ask
    for ``FULL``.
    """

    MINIMAL = "minimal"
    WITH_DESCRIPTION = "with_description"
    WITH_ICON = "with_icon"
    FULL = "full"

    @property
    def columns(self) -> Tuple[str, ...]:
        return _PROJECTION_COLUMNS[self]


_BASE_COLUMNS = ("app_id", "name", "summary", "install_ref", "icon_url", "icon_path")

_PROJECTION_COLUMNS = {
    Projection.MINIMAL: _BASE_COLUMNS,
    Projection.WITH_DESCRIPTION: _BASE_COLUMNS + ("description",),
    Projection.WITH_ICON: _BASE_COLUMNS + ("icon_data",),
    Projection.FULL: _BASE_COLUMNS + ("description", "icon_data", "cached_at"),
}


@dataclass
class CachedApp:
    """One application record mirrored from the remote catalog.

    Attributes
    ----------
    app_id : str
        Globally unique application identifier.
    name, summary, description : Optional[str]
        Display metadata.
    install_ref : Optional[str]
        Opaque reference handed to the package manager. Defaults to
        ``app_id``.
    icon_url : Optional[str]
        Remote icon location.
    icon_path : Optional[str]
        Reserved for a local icon file path.
    icon_data : Optional[bytes]
        Cached icon payload.
    cached_at : int
        Unix timestamp of the last write.
    """

    app_id: str
    name: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    install_ref: Optional[str] = None
    icon_url: Optional[str] = None
    icon_path: Optional[str] = None
    icon_data: Optional[bytes] = None
    cached_at: int = 0

    def __post_init__(self) -> None:
        if self.install_ref is None:
            self.install_ref = self.app_id

    def content_key(self) -> Tuple[Optional[str], ...]:
        """Fields compared when deciding whether a record changed."""
        return (
            self.name,
            self.summary,
            self.description,
            self.install_ref,
            self.icon_url,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'app_id': self.app_id,
            'name': self.name,
            'summary': self.summary,
            'description': self.description,
            'install_ref': self.install_ref,
            'icon_url': self.icon_url,
            'icon_path': self.icon_path,
            'has_icon': bool(self.icon_data),
            'cached_at': self.cached_at,
        }


@dataclass
class CachedCategory:
    id: str
    name: str
    cached_at: int = 0


@dataclass
class CachedCategoryCollection:
    """Ordered membership of a category or curated collection.

    ``total_hits`` is what the remote reported and may exceed
    ``len(app_ids)``.
    """

    category_id: str
    app_ids: List[str] = field(default_factory=list)
    total_hits: int = 0
    cached_at: int = 0


@dataclass
class SearchResult:
    app_id: str
    name: Optional[str] = None
    summary: Optional[str] = None
    icon_url: Optional[str] = None
    icon_path: Optional[str] = None


@dataclass
class CollectionPage:
    """Ordered app ids returned by a remote collection endpoint."""

    app_ids: List[str] = field(default_factory=list)
    total_hits: int = 0


@dataclass
class HomepageCollections:
    popular: List[CachedApp] = field(default_factory=list)
    trending: List[CachedApp] = field(default_factory=list)
    recently_updated: List[CachedApp] = field(default_factory=list)


class Stage(str, Enum):
    """Synchronization stage reported in a progress event."""

    FETCHING_APPS = "fetching_apps"
    FETCHING_COLLECTIONS = "fetching_collections"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class ProgressEvent:
    """Advisory progress notification emitted by the synchronizer.

    Attributes
    ----------
    stage : Stage
    progress : int
        Units completed so far.
    total : int
        Units expected.
    message : str
        Human-readable status line.
    details : Optional[str]
        Error detail, only set on ``Stage.ERROR``.
    """

    stage: Stage
    progress: int
    total: int
    message: str
    details: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'stage': self.stage.value,
            'progress': self.progress,
            'total': self.total,
            'message': self.message,
        }
        if self.details is not None:
            data['details'] = self.details
        return data


def has_app_changed(existing: Optional[CachedApp], fresh: CachedApp) -> bool:
    """Return True if ``fresh`` must be written over ``existing``.

    An app not cached before always counts as changed. ``cached_at``
    and the icon columns are ignored.
    """
    if existing is None:
        return True
    return existing.content_key() != fresh.content_key()
