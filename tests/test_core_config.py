# -*- coding: utf-8 -*-
"""
Tests for softhub.core.config — SofthubConfig and load_config.

Author
------
SoftHub Contributors

Created
-------
2026-10-18
"""

import json
from pathlib import Path

import pytest

from softhub.core.config import SofthubConfig, load_config


class TestSofthubConfig:
    def test_defaults(self):
        cfg = SofthubConfig()
        assert cfg.api_base == "https://flathub.org/api/v2"
        assert cfg.chunk_size == 250
        assert cfg.retry_delay == 2.0
        assert cfg.collection_max_retries == 5
        assert cfg.search_limit == 100

    def test_custom_values(self):
        cfg = SofthubConfig(chunk_size=50, fetch_workers=8)
        assert cfg.chunk_size == 50
        assert cfg.fetch_workers == 8

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "config.json"
        cfg = SofthubConfig(chunk_size=100, collection_max_retries=None)
        cfg.save(path)

        loaded = load_config(path)
        assert loaded.chunk_size == 100
        assert loaded.collection_max_retries is None
        # Other fields should be default
        assert loaded.homepage_limit == 8

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'search_limit': 10, 'theme': 'dark'}))
        cfg = load_config(path)
        assert cfg.search_limit == 10

    def test_load_missing_file_returns_defaults(self, tmp_path):
        path = tmp_path / "nonexistent.json"
        cfg = load_config(path)
        assert cfg.chunk_size == 250

    def test_load_corrupted_file_returns_defaults(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("not json {{{")
        cfg = load_config(path)
        assert cfg.chunk_size == 250

    def test_cache_path_round_trip(self, tmp_path):
        path = tmp_path / "config.json"
        SofthubConfig(cache_path="/data/softhub.db").save(path)
        assert load_config(path).cache_path == "/data/softhub.db"
        assert SofthubConfig().cache_path is None

    def test_default_location_under_home(self, tmp_path, monkeypatch):
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        SofthubConfig(search_limit=5).save()
        assert (tmp_path / ".softhub" / "softhub_config.json").exists()
        assert load_config().search_limit == 5
