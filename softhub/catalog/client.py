# -*- coding: utf-8 -*-
"""
Catalog Client - HTTP access to the remote software catalog API.

Fetches the catalog id list, per-app metadata, curated and category
collections, and raw icon payloads, and parses responses into catalog
models. Field names vary between endpoints and API revisions, so every
logical field is read through an ordered list of candidate keys.

Dependencies
------------
requests

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
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

# Third-party
import requests
from requests.adapters import HTTPAdapter

logger = logging.getLogger(__name__)

# SoftHub internal
from softhub.catalog.exceptions import NotFound, ParseError, TransportError
from softhub.catalog.models import CachedApp, CollectionPage, now_timestamp


DEFAULT_API_BASE = "https://flathub.org/api/v2"

#: Candidate JSON keys per app field, tried in order.
APP_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    'app_id': ('app_id', 'id', 'flatpakAppId'),
    'name': ('name',),
    'summary': ('summary',),
    'description': ('description',),
    'icon_url': ('iconDesktopUrl', 'icon'),
}

#: Candidate keys for the app id inside a collection hit.
HIT_ID_ALIASES: Tuple[str, ...] = ('app_id', 'flatpakAppId')

_COLLECTION_KEYS: Tuple[str, ...] = ('hits',)
_CATEGORY_COLLECTION_KEYS: Tuple[str, ...] = ('hits', 'apps')


def _first_str(payload: Dict[str, Any], keys: Sequence[str]) -> Optional[str]:
    """Return the first non-empty string value found under ``keys``."""
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def parse_app_record(payload: Any) -> CachedApp:
    """Build a CachedApp from an appstream JSON object.

    Parameters
    ----------
    payload : Any
        Decoded JSON body of ``/appstream/{id}``.

    Returns
    -------
    CachedApp

    Raises
    ------
    ParseError
        If ``payload`` is not an object or carries no app id alias.
    """
    if not isinstance(payload, dict):
        raise ParseError(
            f"App payload must be a JSON object, got {type(payload).__name__}"
        )

    values = {
        name: _first_str(payload, keys)
        for name, keys in APP_FIELD_ALIASES.items()
    }
    if not values['app_id']:
        raise ParseError(
            "App payload missing " + ", ".join(APP_FIELD_ALIASES['app_id'])
        )

    return CachedApp(
        app_id=values['app_id'],
        name=values['name'],
        summary=values['summary'],
        description=values['description'],
        install_ref=values['app_id'],
        icon_url=values['icon_url'],
        cached_at=now_timestamp(),
    )


def parse_collection(payload: Any, array_keys: Sequence[str]) -> CollectionPage:
    """Extract ordered app ids and the hit count from a collection body.

    Hits without a usable id are skipped. ``totalHits`` falls back to
    the number of ids parsed.

    Raises
    ------
    ParseError
        If no array is found under any of ``array_keys``.
    """
    if not isinstance(payload, dict):
        raise ParseError("Collection payload must be a JSON object")

    hits = None
    for key in array_keys:
        candidate = payload.get(key)
        if isinstance(candidate, list):
            hits = candidate
            break
    if hits is None:
        raise ParseError(
            "Expected " + " or ".join(array_keys) + " array in collection"
        )

    app_ids: List[str] = []
    for hit in hits:
        if isinstance(hit, dict):
            app_id = _first_str(hit, HIT_ID_ALIASES)
            if app_id:
                app_ids.append(app_id)

    total_hits = payload.get('totalHits')
    if isinstance(total_hits, bool) or not isinstance(total_hits, int) or total_hits < 0:
        total_hits = len(app_ids)

    return CollectionPage(app_ids=app_ids, total_hits=total_hits)


class CatalogClient:
    """Client for the remote catalog REST API.

    Parameters
    ----------
    base_url : str
        API base, e.g. ``https://flathub.org/api/v2``.
    timeout : float
        HTTP request timeout in seconds. Default 30.0.
    retry_delay : float
        Seconds between retries of a collection that answered 500.
    max_retries : Optional[int]
        Retries of a 500 collection response before giving up. None
        keeps retrying until the server answers something else.
    pool_size : int
        Connection pool size; should match the fan-out width.
    session : Optional[requests.Session]
        Session to use. A new one is created if omitted.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
        retry_delay: float = 2.0,
        max_retries: Optional[int] = 5,
        pool_size: int = 32,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = base_url.rstrip('/')
        self._timeout = timeout
        self._retry_delay = retry_delay
        self._max_retries = max_retries

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=4, pool_maxsize=pool_size)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
            session.headers.update({"Accept": "application/json"})
        self._session = session

    @classmethod
    def from_config(cls, config, session: Optional[requests.Session] = None) -> 'CatalogClient':
        """Build a client from a ``SofthubConfig``."""
        return cls(
            base_url=config.api_base,
            timeout=config.request_timeout,
            retry_delay=config.retry_delay,
            max_retries=config.collection_max_retries,
            pool_size=config.fetch_workers,
            session=session,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> 'CatalogClient':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    # ------------------------------------------------------------------
    # Catalog endpoints
    # ------------------------------------------------------------------

    def fetch_app_id_list(self) -> List[str]:
        """Fetch the identifiers of every app in the catalog.

        Raises
        ------
        TransportError
            On network failure or a non-2xx response.
        ParseError
            If the body is not a JSON array of strings.
        """
        url = f"{self._base_url}/appstream"
        data = self._decode(self._get(url), url)
        if not isinstance(data, list):
            raise ParseError("App id list must be a JSON array")
        return [item for item in data if isinstance(item, str)]

    def fetch_app_detail(self, app_id: str) -> CachedApp:
        """Fetch and parse one app's metadata.

        Raises
        ------
        TransportError
            On network failure or a non-2xx response.
        ParseError
            If the body cannot be parsed into an app.
        """
        url = f"{self._base_url}/appstream/{app_id}"
        return parse_app_record(self._decode(self._get(url), url))

    def fetch_collection(self, name: str) -> CollectionPage:
        """Fetch a curated collection such as ``popular``.

        A 404 yields an empty page.
        """
        url = f"{self._base_url}/collection/{name}"
        return self._fetch_collection_page(url, _COLLECTION_KEYS)

    def fetch_category_collection(self, category_id: str) -> CollectionPage:
        """Fetch the collection of a topical category. A 404 yields an empty page."""
        url = f"{self._base_url}/collection/category/{category_id}"
        return self._fetch_collection_page(url, _CATEGORY_COLLECTION_KEYS)

    def download(self, url: str) -> bytes:
        """Download a binary resource such as an icon.

        Raises
        ------
        TransportError
            On network failure or a non-2xx response.
        """
        response = self._get(url)
        if not self._is_success(response):
            raise TransportError(
                f"Failed to download {url}: HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        return response.content

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------

    def _fetch_collection_page(
        self,
        url: str,
        array_keys: Sequence[str],
    ) -> CollectionPage:
        try:
            payload = self._get_collection_json(url)
        except NotFound:
            logger.info("Collection endpoint %s not found (404), skipping", url)
            return CollectionPage()
        return parse_collection(payload, array_keys)

    def _get_collection_json(self, url: str) -> Any:
        """GET a collection, retrying while the server answers 500."""
        attempt = 0
        while True:
            response = self._get(url)
            if response.status_code != 500:
                break
            if self._max_retries is not None and attempt >= self._max_retries:
                logger.warning(
                    "Giving up on %s after %d retries of HTTP 500", url, attempt
                )
                break
            attempt += 1
            logger.debug(
                "HTTP 500 from %s, retry %d in %.1fs", url, attempt, self._retry_delay
            )
            time.sleep(self._retry_delay)

        if response.status_code == 404:
            raise NotFound(f"Not found: {url}", url=url, status_code=404)
        return self._decode(response, url)

    def _get(self, url: str) -> requests.Response:
        try:
            return self._session.get(url, timeout=self._timeout)
        except requests.RequestException as e:
            raise TransportError(f"Request to {url} failed", url=url, cause=e) from e

    @staticmethod
    def _is_success(response: requests.Response) -> bool:
        return 200 <= response.status_code < 300

    def _decode(self, response: requests.Response, url: str) -> Any:
        if not self._is_success(response):
            raise TransportError(
                f"Request to {url} failed: HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"Invalid JSON from {url}", cause=e) from e
