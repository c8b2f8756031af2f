# -*- coding: utf-8 -*-
"""
Tests for the softhub command-line entry point.

Author
------
SoftHub Contributors

Created
-------
2026-10-18
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from softhub.__main__ import main
from softhub.catalog.database import CatalogStore
from softhub.catalog.models import CachedApp
from softhub.core.config import SofthubConfig


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep the CLI away from the real ~/.softhub and SOFTHUB_CACHE_PATH."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    monkeypatch.delenv("SOFTHUB_CACHE_PATH", raising=False)
    return home


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "cli_cache.db"
    with CatalogStore(db_path=path) as store:
        store.upsert_apps([
            CachedApp(app_id="org.gnome.Maps", name="Maps", summary="Find places"),
            CachedApp(app_id="org.kde.krita", name="Krita", summary="Digital painting"),
        ])
        store.replace_collection("Graphics", ["org.kde.krita", "org.gnome.Maps"], 2)
    return path


def _run(capsys, *argv):
    code = main(list(argv))
    return code, capsys.readouterr()


class TestCli:

    def test_status(self, capsys, db_path):
        code, out = _run(capsys, "--db", str(db_path), "status")
        assert code == 0
        data = json.loads(out.out)
        assert data['ready'] is True
        assert data['apps'] == 2

    def test_search(self, capsys, db_path):
        code, out = _run(capsys, "--db", str(db_path), "search", "KRI")
        assert code == 0
        assert [r['app_id'] for r in json.loads(out.out)] == ["org.kde.krita"]

    def test_show_missing_app(self, capsys, db_path):
        code, out = _run(capsys, "--db", str(db_path), "show", "missing.App")
        assert code == 1
        assert "missing.App" in out.err

    def test_collection_page(self, capsys, db_path):
        code, out = _run(
            capsys, "--db", str(db_path), "collection", "Graphics",
            "--limit", "1", "--offset", "1",
        )
        assert code == 0
        data = json.loads(out.out)
        assert data['total'] == 2
        assert [a['app_id'] for a in data['apps']] == ["org.gnome.Maps"]

    def test_sync_failure_exit_code(self, capsys, db_path):
        with patch(
            "softhub.catalog.sync.CatalogSynchronizer.run", return_value=None
        ):
            code, _ = _run(capsys, "--db", str(db_path), "sync")
        assert code == 1

    def test_collection_default_limit_from_config(self, capsys, db_path, tmp_path):
        config_path = tmp_path / "softhub.json"
        SofthubConfig(collection_preview_limit=1).save(config_path)

        code, out = _run(
            capsys, "--db", str(db_path), "--config", str(config_path),
            "collection", "Graphics",
        )
        assert code == 0
        data = json.loads(out.out)
        assert data['total'] == 2
        assert [a['app_id'] for a in data['apps']] == ["org.kde.krita"]

    def test_config_cache_path_used_without_db(self, capsys, db_path, tmp_path):
        config_path = tmp_path / "softhub.json"
        SofthubConfig(cache_path=str(db_path)).save(config_path)

        code, out = _run(capsys, "--config", str(config_path), "status")
        assert code == 0
        data = json.loads(out.out)
        assert data['path'] == str(db_path)
        assert data['apps'] == 2

    def test_log_level_is_case_insensitive(self, capsys, db_path):
        code, _ = _run(capsys, "--log-level", "debug", "--db", str(db_path), "status")
        assert code == 0

    def test_invalid_log_level_rejected(self, capsys, db_path):
        with pytest.raises(SystemExit) as info:
            main(["--log-level", "verbose", "--db", str(db_path), "status"])
        assert info.value.code == 2
        assert "VERBOSE" in capsys.readouterr().err.upper()

    def test_invalid_config_log_level_falls_back(self, capsys, db_path, tmp_path):
        config_path = tmp_path / "softhub.json"
        config_path.write_text(json.dumps({'log_level': 'chatty'}))
        code, _ = _run(
            capsys, "--config", str(config_path), "--db", str(db_path), "status"
        )
        assert code == 0
