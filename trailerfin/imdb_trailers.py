"""Trailer scraping from IMDB video pages into ``.strm`` files."""

from __future__ import annotations

import json
import logging
import os
import re
import time
from pathlib import Path
from typing import Any, Optional
from urllib.parse import parse_qsl, urlsplit

from bs4 import BeautifulSoup

from trailerfin.config import AppConfig
from trailerfin.errors import RequestClientError, ResponseError
from trailerfin.http_client import ImdbRequestClient
from trailerfin.media_directories import (
    BACKDROPS_FOLDER,
    FolderType,
    TrailerScraper,
    process_media_folders,
)

logger = logging.getLogger(__name__)

IMDB_ID_REGEX = re.compile(r"\{imdb-(tt\d+)\}")
VIDEO_SELECTOR = 'a[href*="/video/vi"]'
NEXT_DATA_ID = "__NEXT_DATA__"
VIDEO_PROPS_PATH = ("props", "pageProps", "videoPlaybackData", "video", "playbackURLs")
TRAILER = "trailer"
TYPE_QUERY = "#t=8"

_INTEGER_RE = re.compile(r"[+-]?\d+")
_I64_MIN, _I64_MAX = -(2**63), 2**63 - 1


def extract_imdb_id(path: str | os.PathLike) -> Optional[str]:
    """Return the ``tt`` identifier tagged as ``{imdb-tt...}`` in ``path``."""
    match = IMDB_ID_REGEX.search(str(path))
    return match.group(1) if match else None


def extract_trailer_link(html: str) -> Optional[str]:
    """Pick the first video link labelled as a trailer, else the first video link."""
    links = BeautifulSoup(html, "html.parser").select(VIDEO_SELECTOR)
    for link in links:
        if TRAILER in link.get_text().lower():
            return link["href"]
    return links[0]["href"] if links else None


def _definition_rank(entry: dict) -> int:
    definition = entry.get("videoDefinition")
    if not isinstance(definition, str):
        return 0
    for rank, marker in ((3, "1080"), (2, "720"), (1, "480")):
        if marker in definition:
            return rank
    return 0


def _lookup(data: Any, keys: tuple) -> Any:
    for key in keys:
        if not isinstance(data, dict) or key not in data:
            return None
        data = data[key]
    return data


def extract_playback_url(html: str) -> Optional[str]:
    """Find the best MP4 playback URL in a video page's embedded page data.

    Raises ValueError when the embedded data is not valid JSON.
    """
    script = BeautifulSoup(html, "html.parser").find("script", id=NEXT_DATA_ID)
    if script is None:
        return None
    text = "".join(str(child) for child in script.contents)
    if not text:
        return None
    first_line = text.split("\n", 1)[0].rstrip("\r")
    data = json.loads(first_line.strip())

    playbacks = _lookup(data, VIDEO_PROPS_PATH)
    if playbacks is None:
        return None
    entries = playbacks if isinstance(playbacks, list) else []
    mp4_entries = [
        entry
        for entry in entries
        if isinstance(entry, dict) and entry.get("videoMimeType") == "MP4"
    ]
    if mp4_entries:
        best = mp4_entries[0]
        for entry in mp4_entries[1:]:
            if _definition_rank(entry) >= _definition_rank(best):
                best = entry
        url = best.get("url")
        if isinstance(url, str):
            return f"{url}{TYPE_QUERY}"
    if entries and isinstance(entries[0], dict):
        url = entries[0].get("url")
        if isinstance(url, str):
            return f"{url}{TYPE_QUERY}"
    return None


class ImdbTrailerScraper(TrailerScraper):
    """Refreshes trailers of folders tagged with an IMDB identifier."""

    def __init__(self, client: Optional[ImdbRequestClient] = None) -> None:
        self.client = client

    def _require_client(self) -> ImdbRequestClient:
        if self.client is None:
            raise RuntimeError("IMDB client not initialized")
        return self.client

    def is_strm_expired(self, strm_path: str | os.PathLike) -> bool:
        """True unless the file holds a URL whose ``Expires`` time lies in the future."""
        path = Path(strm_path)
        if not path.exists():
            return True
        contents = path.read_text(encoding="utf-8").strip()
        parts = urlsplit(contents)
        if not parts.scheme:
            raise ValueError(f"relative URL without a base: {contents!r}")
        for key, value in parse_qsl(parts.query, keep_blank_values=True):
            if key == "Expires" and _INTEGER_RE.fullmatch(value):
                expires = int(value)
                if _I64_MIN <= expires <= _I64_MAX:
                    return int(time.time()) >= expires
        return True

    def create_or_update_strm_file(
        self, folder: str | os.PathLike, config: AppConfig, video_url: str
    ) -> None:
        """Write ``video_url`` into the backdrops ``.strm`` file of ``folder``."""
        backdrops = Path(folder) / BACKDROPS_FOLDER
        backdrops.mkdir(parents=True, exist_ok=True)
        strm_path = backdrops / config.video_filename
        strm_path.write_text(video_url, encoding="utf-8")
        logger.info("Updated %s", strm_path)

    async def get_trailer_video_page_url(self, imdb_id: str) -> Optional[str]:
        """Return the path of the title's trailer page, or None if there is none."""
        client = self._require_client()
        path = f"/title/{imdb_id}/videogallery/?sort=date,asc"
        try:
            response = await client.get_raw(path)
        except RequestClientError as exc:
            logger.error("Request failed for %s: %s", path, exc)
            raise
        if not response.is_success:
            logger.error(
                "Failed to fetch trailers for %s (status %s)", imdb_id, response.status_code
            )
            return None
        link = extract_trailer_link(response.text)
        if link is None:
            logger.warning("No video found for %s", imdb_id)
        return link

    async def get_direct_video_url_from_page(self, video_page_path: str) -> Optional[str]:
        """Return the direct video URL found on a video page, or None."""
        client = self._require_client()
        try:
            response = await client.get_raw(video_page_path)
        except RequestClientError as exc:
            logger.error("Request failed for %s: %s", video_page_path, exc)
            raise
        if not response.is_success:
            logger.error(
                "Failed to fetch video page: %s (status %s)",
                video_page_path,
                response.status_code,
            )
            return None
        try:
            url = extract_playback_url(response.text)
        except ValueError as exc:
            raise ResponseError() from exc
        if url is None:
            logger.warning("No JSON playback URLs found for %s", video_page_path)
        return url

    async def refresh_imdb_trailer(
        self, imdb_id: str, path: str | os.PathLike, config: AppConfig
    ) -> None:
        """Look up the current trailer URL and write it; failures are logged and skipped."""
        try:
            page = await self.get_trailer_video_page_url(imdb_id)
            if page is None:
                return
            direct_url = await self.get_direct_video_url_from_page(page)
        except RequestClientError:
            return
        if direct_url is None:
            return
        try:
            self.create_or_update_strm_file(path, config, direct_url)
        except OSError as exc:
            logger.error("Failed to write .strm file: %r", exc)

    async def process_path(
        self, path: str | os.PathLike, config: AppConfig, folder_type: FolderType
    ) -> None:
        """Refresh the trailer of ``path`` if its ``.strm`` file is missing or expired."""
        folder = Path(path)
        imdb_id = extract_imdb_id(folder)
        if imdb_id is None:
            logger.warning("No IMDB ID found in path: %s", folder)
            return
        strm_path = folder / BACKDROPS_FOLDER / config.video_filename
        try:
            expired = self.is_strm_expired(strm_path)
        except (OSError, ValueError):
            expired = True
        if not expired:
            logger.info("Trailer still valid for %s in %s", imdb_id, folder)
            return
        logger.info("Refreshing trailer for %s in %s", imdb_id, folder)
        await self.refresh_imdb_trailer(imdb_id, folder, config)

    async def scan_and_refresh_trailers(self, config: AppConfig) -> None:
        """Process every media directory of the configured libraries."""
        await process_media_folders(config, self)