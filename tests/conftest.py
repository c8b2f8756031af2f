# -*- coding: utf-8 -*-
"""
Shared fixtures for the SoftHub test suite.

Author
------
SoftHub Contributors

Created
-------
2026-10-18
"""

from concurrent.futures import Future
from unittest.mock import MagicMock

import pytest

from softhub.catalog.database import CatalogStore


API = "https://catalog.test/api/v2"


def make_response(status_code=200, payload=None, content=b""):
    """Mock requests.Response with a JSON body or raw content."""
    resp = MagicMock(status_code=status_code, content=content)
    if payload is None:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        resp.json.return_value = payload
    return resp


def routed_session(routes):
    """Mock requests.Session answering GETs from a ``{url: response}`` map.

    A route may also be a list of responses, served in turn. Unknown
    URLs answer 404.
    """
    session = MagicMock()

    def get(url, timeout=None):
        route = routes.get(url)
        if route is None:
            return make_response(404)
        if isinstance(route, list):
            return route.pop(0) if len(route) > 1 else route[0]
        return route

    session.get.side_effect = get
    return session


class InlinePool:
    """Drop-in ThreadExecutorPool that runs every job immediately."""

    def __init__(self):
        self.submitted = []

    @property
    def pending(self):
        return 0

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        self.submitted.append((fn, args))
        return future

    def fan_out(self, fn, items):
        outcomes = []
        for item in items:
            try:
                outcomes.append((item, fn(item), None))
            except Exception as e:
                outcomes.append((item, None, e))
        return outcomes

    def wait(self, timeout=None):
        return True

    def shutdown(self, wait=True, cancel_pending=False):
        pass


@pytest.fixture
def store(tmp_path):
    """Create a temporary cache database."""
    db_path = tmp_path / "test_cache.db"
    cache = CatalogStore(db_path=db_path)
    yield cache
    cache.close()
