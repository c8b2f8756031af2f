# -*- coding: utf-8 -*-
"""
Tests for softhub.catalog.sync — CatalogSynchronizer workflows.

Author
------
SoftHub Contributors

Created
-------
2026-10-18
"""

from unittest.mock import MagicMock, patch

import pytest

from conftest import API, InlinePool, make_response, routed_session
from softhub.catalog.client import CatalogClient
from softhub.catalog.exceptions import StoreError
from softhub.catalog.models import (
    CATEGORY_IDS,
    CachedApp,
    Stage,
)
from softhub.catalog.pool import ThreadExecutorPool
from softhub.catalog.sync import CatalogSynchronizer
from softhub.core.config import SofthubConfig

PNG = b"\x89PNG\r\n\x1a\nicon"


def _app_payload(app_id, **fields):
    payload = {'id': app_id, 'name': app_id.split('.')[-1], 'summary': 'An app'}
    payload.update(fields)
    return payload


def _collection(*app_ids, total=None):
    body = {'hits': [{'app_id': app_id} for app_id in app_ids]}
    if total is not None:
        body['totalHits'] = total
    return make_response(200, body)


@pytest.fixture
def events():
    return []


@pytest.fixture
def make_sync(store, events):
    """Build a synchronizer whose pools run jobs inline."""
    def build(routes, **config_overrides):
        config_overrides.setdefault('retry_delay', 0.0)
        config = SofthubConfig(api_base=API, **config_overrides)
        session = routed_session(routes)
        client = CatalogClient.from_config(config, session=session)
        sync = CatalogSynchronizer(
            store, client, config=config, reporter=events.append,
            background=InlinePool(), fetcher=InlinePool(),
        )
        sync.session = session
        return sync
    return build


def _catalog_routes():
    return {
        f"{API}/collection/popular": _collection('org.a.One', 'org.b.Two', total=500),
        f"{API}/collection/trending": _collection('org.b.Two'),
        f"{API}/collection/recently-updated": _collection('org.c.Three'),
        f"{API}/appstream": make_response(200, ['org.a.One', 'org.b.Two', 'org.c.Three']),
        f"{API}/appstream/org.a.One": make_response(200, _app_payload(
            'org.a.One', icon='https://icons.test/one.png')),
        f"{API}/appstream/org.b.Two": make_response(200, _app_payload(
            'org.b.Two', iconDesktopUrl='https://icons.test/two.png')),
        f"{API}/appstream/org.c.Three": make_response(200, _app_payload('org.c.Three')),
        "https://icons.test/one.png": make_response(200, content=PNG),
        "https://icons.test/two.png": make_response(200, content=PNG),
        f"{API}/collection/category/Graphics": _collection('org.a.One', 'org.c.Three'),
    }


def _icon_requests(session):
    return [
        call.args[0] for call in session.get.call_args_list
        if call.args[0].startswith("https://icons.test/")
    ]


# ---------------------------------------------------------------------------
# Full refresh
# ---------------------------------------------------------------------------

class TestFullRefresh:

    def test_end_to_end(self, make_sync, store, events):
        sync = make_sync(_catalog_routes())
        assert sync.run(clear_cache=True) is not None

        assert store.count_apps() == 3
        assert len(store.get_categories()) == 10
        assert store.get_icon_data('org.a.One') == PNG
        assert store.get_icon_data('org.b.Two') == PNG
        assert store.get_icon_data('org.c.Three') is None

        complete = [e for e in events if e.stage is Stage.COMPLETE]
        assert len(complete) == 1
        assert complete[0].progress == 3
        assert complete[0].total == 3
        assert events[-1] is complete[0]

    def test_collections_persisted_in_order(self, make_sync, store):
        make_sync(_catalog_routes()).run(clear_cache=True)

        popular = store.get_collection('popular')
        assert popular.app_ids == ['org.a.One', 'org.b.Two']
        assert popular.total_hits == 500
        assert store.get_collection('Graphics').app_ids == ['org.a.One', 'org.c.Three']
        # Categories without a remote collection are stored empty.
        assert store.get_collection('Science').app_ids == []

    def test_clears_existing_cache(self, make_sync, store):
        store.upsert_apps([CachedApp(app_id='stale.App')])
        store.replace_collection('Office', ['stale.App'], 1)

        make_sync(_catalog_routes()).run(clear_cache=True)

        assert store.get_app('stale.App') is None
        assert store.get_collection('Office').app_ids == []

    def test_collection_progress_events(self, make_sync, events):
        make_sync(_catalog_routes()).run(clear_cache=True)
        progress = [e for e in events if e.stage is Stage.FETCHING_COLLECTIONS]
        assert [e.progress for e in progress] == list(range(1, 11))
        assert all(e.total == len(CATEGORY_IDS) for e in progress)

    def test_failed_app_detail_is_dropped(self, make_sync, store):
        routes = _catalog_routes()
        routes[f"{API}/appstream/org.b.Two"] = make_response(500)
        routes[f"{API}/appstream/org.c.Three"] = make_response(200, {'name': 'no id'})

        make_sync(routes).run(clear_cache=True)

        assert [a.app_id for a in store.list_apps()] == ['org.a.One']

    def test_failed_curated_collection_is_skipped(self, make_sync, store, events):
        routes = _catalog_routes()
        routes[f"{API}/collection/popular"] = make_response(403)

        make_sync(routes).run(clear_cache=True)

        assert store.get_collection('popular') is None
        assert store.get_collection('trending').app_ids == ['org.b.Two']
        assert events[-1].stage is Stage.COMPLETE

    def test_chunks_processed_in_sequence(self, make_sync, store, events):
        routes = _catalog_routes()
        sync = make_sync(routes, chunk_size=2)
        sync.run(clear_cache=True)

        fetching = [
            (e.progress, e.total) for e in events
            if e.stage is Stage.FETCHING_APPS and e.total
        ]
        assert fetching == [(2, 3), (3, 3)]
        assert store.count_apps() == 3

    def test_icon_download_failure_is_swallowed(self, make_sync, store, events):
        routes = _catalog_routes()
        routes["https://icons.test/one.png"] = make_response(404)

        make_sync(routes).run(clear_cache=True)

        assert store.get_icon_data('org.a.One') is None
        assert store.get_icon_data('org.b.Two') == PNG
        assert events[-1].stage is Stage.COMPLETE

    def test_catalog_list_failure_does_not_abort(self, make_sync, store, events):
        routes = _catalog_routes()
        routes[f"{API}/appstream"] = make_response(502)

        make_sync(routes).run(clear_cache=True)

        assert store.count_apps() == 0
        assert len(store.get_categories()) == 10
        assert events[-1].stage is Stage.COMPLETE

    def test_store_failure_reported_as_error(self, make_sync, store, events):
        sync = make_sync(_catalog_routes())
        with patch.object(store, 'clear', side_effect=StoreError("disk I/O error")):
            assert sync.run(clear_cache=True) is None

        assert events[-1].stage is Stage.ERROR
        assert events[-1].message == "Cache initialization failed"
        assert "disk I/O error" in events[-1].details


# ---------------------------------------------------------------------------
# Incremental refresh
# ---------------------------------------------------------------------------

class TestIncrementalRefresh:

    def _seed(self, store, description='An app'):
        store.upsert_apps([CachedApp(
            app_id='org.c.Three', name='Three', summary='An app',
            description=description, install_ref='org.c.Three',
        )])

    def test_unchanged_app_not_rewritten(self, make_sync, store, events):
        routes = _catalog_routes()
        routes[f"{API}/appstream/org.c.Three"] = make_response(200, _app_payload(
            'org.c.Three', description='An app', icon='https://icons.test/one.png'))
        store.upsert_apps([CachedApp(
            app_id='org.c.Three', name='Three', summary='An app',
            description='An app', icon_url='https://icons.test/one.png',
        )])
        store.set_icon_data('org.c.Three', PNG)
        before = store.get_app('org.c.Three')

        sync = make_sync(routes)
        job = sync.run(clear_cache=False)

        assert job.result() == 0
        after = store.get_app('org.c.Three')
        assert after.cached_at == before.cached_at
        assert after.icon_data == PNG
        assert _icon_requests(sync.session) == []
        assert events[-1].stage is Stage.COMPLETE

    def test_changed_description_is_rewritten(self, make_sync, store):
        self._seed(store, description='Old text')
        routes = _catalog_routes()
        routes[f"{API}/appstream/org.c.Three"] = make_response(200, _app_payload(
            'org.c.Three', description='New text'))

        job = make_sync(routes).run(clear_cache=False)

        assert job.result() == 1
        assert store.get_app('org.c.Three').description == 'New text'

    def test_new_app_is_written_with_icon(self, make_sync, store):
        routes = _catalog_routes()
        routes[f"{API}/collection/recently-updated"] = _collection('org.a.One')

        sync = make_sync(routes)
        job = sync.run(clear_cache=False)

        assert job.result() == 1
        assert store.get_app('org.a.One') is not None
        assert store.get_icon_data('org.a.One') == PNG
        assert _icon_requests(sync.session) == ["https://icons.test/one.png"]

    def test_does_not_clear_or_stream_catalog(self, make_sync, store):
        store.upsert_apps([CachedApp(app_id='kept.App')])
        sync = make_sync(_catalog_routes())
        sync.run(clear_cache=False)

        assert store.get_app('kept.App') is not None
        requested = [c.args[0] for c in sync.session.get.call_args_list]
        assert f"{API}/appstream" not in requested

    def test_categories_created_when_missing(self, make_sync, store):
        make_sync(_catalog_routes()).run(clear_cache=False)
        assert len(store.get_categories()) == 10
        assert store.get_collection('Graphics').app_ids == ['org.a.One', 'org.c.Three']

    def test_complete_reports_app_count(self, make_sync, store, events):
        self._seed(store)
        make_sync(_catalog_routes()).run(clear_cache=False)
        complete = events[-1]
        assert complete.stage is Stage.COMPLETE
        assert complete.progress == complete.total == store.count_apps()
        assert complete.message.startswith("Cache updated!")


# ---------------------------------------------------------------------------
# Background execution
# ---------------------------------------------------------------------------

class TestBackgroundPools:

    def test_start_returns_immediately_and_wait_drains(self, store, events):
        config = SofthubConfig(api_base=API, retry_delay=0.0, fetch_workers=4)
        client = CatalogClient.from_config(
            config, session=routed_session(_catalog_routes())
        )
        sync = CatalogSynchronizer(store, client, config=config, reporter=events.append)
        try:
            future = sync.start(clear_cache=True)
            assert sync.wait(timeout=10) is True
            assert future.done()
        finally:
            sync.shutdown()

        assert store.count_apps() == 3
        assert store.get_icon_data('org.a.One') == PNG
        assert any(e.stage is Stage.COMPLETE for e in events)

    def test_reporter_errors_are_ignored(self, store):
        reporter = MagicMock(side_effect=RuntimeError("ui gone"))
        config = SofthubConfig(api_base=API, retry_delay=0.0)
        client = CatalogClient.from_config(
            config, session=routed_session(_catalog_routes())
        )
        sync = CatalogSynchronizer(
            store, client, config=config, reporter=reporter,
            background=InlinePool(), fetcher=InlinePool(),
        )
        assert sync.run(clear_cache=True) is not None
        assert store.count_apps() == 3
        assert reporter.called

    def test_shutdown_leaves_injected_pools(self, store):
        background = ThreadExecutorPool(max_workers=1)
        try:
            sync = CatalogSynchronizer(
                store, MagicMock(), background=background, fetcher=InlinePool(),
            )
            sync.shutdown()
            assert background.submit(lambda: 1).result(timeout=5) == 1
        finally:
            background.shutdown()

    def test_shutdown_stops_only_created_pool(self, store):
        background = InlinePool()
        with patch('softhub.catalog.sync.ThreadExecutorPool') as pool_cls:
            sync = CatalogSynchronizer(store, MagicMock(), background=background)
            sync.shutdown(wait=False)

        pool_cls.assert_called_once()
        assert pool_cls.call_args.kwargs['name'] == "catalog-fetch"
        pool_cls.return_value.shutdown.assert_called_once_with(
            wait=False, cancel_pending=True
        )
