# -*- coding: utf-8 -*-
"""
Icon Cache - Download app icons and serve them as data URLs.

Icons are stored as opaque blobs on the app row. Writes touch only the
icon column; reads sniff the payload type and return a base64 data URL
a UI can embed directly.

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
import base64
import logging
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

# SoftHub internal
from softhub.catalog.client import CatalogClient
from softhub.catalog.database import CatalogStore


_PNG_SIGNATURE = b"\x89PNG"
_JPEG_SIGNATURE = b"\xff\xd8"
_SNIFF_WINDOW = 256
_DEFAULT_MEDIA_TYPE = "image/png"


def sniff_media_type(data: bytes) -> str:
    """Guess an icon's media type from its leading bytes.

    Recognizes PNG, JPEG and SVG; anything else is reported as PNG.
    """
    if data.startswith(_PNG_SIGNATURE):
        return "image/png"
    if data.startswith(_JPEG_SIGNATURE):
        return "image/jpeg"
    head = data[:_SNIFF_WINDOW].lstrip().lower()
    if head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head):
        return "image/svg+xml"
    return _DEFAULT_MEDIA_TYPE


def to_data_url(data: bytes) -> str:
    """Encode ``data`` as a ``data:`` URL with a sniffed media type."""
    payload = base64.b64encode(data).decode('ascii')
    return f"data:{sniff_media_type(data)};base64,{payload}"


class IconCache:
    """Downloads icons into the catalog store.

    Parameters
    ----------
    store : CatalogStore
        Store that holds the icon blobs.
    client : CatalogClient
        Client used for downloads.
    """

    def __init__(self, store: CatalogStore, client: CatalogClient) -> None:
        self._store = store
        self._client = client

    def ensure_icon_cached(self, app_id: str, icon_url: str) -> bool:
        """Download and store the icon for ``app_id`` unless already cached.

        Parameters
        ----------
        app_id : str
        icon_url : str

        Returns
        -------
        bool
            True if the icon was downloaded and stored, False if a
            non-empty icon was already present.

        Raises
        ------
        TransportError
            If the download fails.
        StoreError
            If the blob cannot be written.
        """
        if self._store.get_icon_data(app_id) is not None:
            logger.debug("Icon for %s already cached", app_id)
            return False

        data = self._client.download(icon_url)
        if not self._store.set_icon_data(app_id, data):
            logger.debug("No cached row for %s, icon discarded", app_id)
            return False
        logger.debug("Cached %d byte icon for %s", len(data), app_id)
        return True

    def get_icon_data_url(self, app_id: str) -> Optional[str]:
        data = self._store.get_icon_data(app_id)
        return to_data_url(data) if data else None

    def get_icon_data_urls(self, app_ids: Sequence[str]) -> List[Optional[str]]:
        """Data URLs aligned with ``app_ids``; None where no icon is cached."""
        blobs = self._store.get_icon_blobs(app_ids)
        return [
            to_data_url(blobs[app_id]) if app_id in blobs else None
            for app_id in app_ids
        ]
