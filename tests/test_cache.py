import sqlite3

import pytest

from trailerfin.cache import CACHE_FILENAME, TmdbToImdbCache, open_cache


def test_unknown_id_returns_none(tmp_path):
    with TmdbToImdbCache(tmp_path / "c.db") as cache:
        assert cache.get_imdb_id("603") is None


def test_add_then_get_round_trip(tmp_path):
    with TmdbToImdbCache(tmp_path / "c.db") as cache:
        cache.add("603", "tt0133093")
        assert cache.get_imdb_id("603") == "tt0133093"


def test_add_replaces_existing(tmp_path):
    with TmdbToImdbCache(tmp_path / "c.db") as cache:
        cache.add("603", "tt0000001")
        cache.add("603", "tt0133093")
        assert cache.get_imdb_id("603") == "tt0133093"


def test_entries_persist_across_reopen(tmp_path):
    db_path = tmp_path / "c.db"
    with TmdbToImdbCache(db_path) as cache:
        cache.add("1399", "tt0944947")
    with TmdbToImdbCache(db_path) as reopened:
        assert reopened.get_imdb_id("1399") == "tt0944947"


def test_open_cache_uses_file_in_directory(tmp_path):
    with open_cache(tmp_path) as cache:
        cache.add("550", "tt0137523")
        assert cache.path == tmp_path.resolve() / CACHE_FILENAME
    assert (tmp_path / CACHE_FILENAME).is_file()


def test_open_cache_missing_directory_fails(tmp_path):
    with pytest.raises(FileNotFoundError):
        open_cache(tmp_path / "absent")


def test_closed_cache_cannot_be_used(tmp_path):
    cache = TmdbToImdbCache(tmp_path / "c.db")
    cache.close()
    with pytest.raises(sqlite3.ProgrammingError):
        cache.get_imdb_id("603")