"""Persistent TMDB to IMDB identifier cache backed by SQLite."""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

CACHE_FILENAME = "caches.sqlite3"


class TmdbToImdbCache:
    """Maps TMDB identifiers to IMDB identifiers, stored on disk."""

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        with self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS tmdb_to_imdb ("
                "tmdb_id TEXT PRIMARY KEY, imdb_id TEXT NOT NULL)"
            )

    def get_imdb_id(self, tmdb_id: str) -> Optional[str]:
        """Return the cached IMDB id for ``tmdb_id``, or None."""
        with self._lock:
            row = self._conn.execute(
                "SELECT imdb_id FROM tmdb_to_imdb WHERE tmdb_id = ?", (tmdb_id,)
            ).fetchone()
        return row[0] if row else None

    def add(self, tmdb_id: str, imdb_id: str) -> None:
        """Store or replace the mapping for ``tmdb_id``."""
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO tmdb_to_imdb (tmdb_id, imdb_id) VALUES (?, ?)",
                (tmdb_id, imdb_id),
            )

    def close(self) -> None:
        """Close the underlying database."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "TmdbToImdbCache":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def open_cache(cache_dir: str | os.PathLike) -> TmdbToImdbCache:
    """Open the cache file inside the existing directory ``cache_dir``."""
    directory = Path(cache_dir).resolve(strict=True)
    cache = TmdbToImdbCache(directory / CACHE_FILENAME)
    logger.debug("Initialized caching at %s", cache.path)
    return cache