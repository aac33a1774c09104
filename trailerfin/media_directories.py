"""Discovery of media folders and concurrent processing of each one."""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List

from trailerfin.config import AppConfig

logger = logging.getLogger(__name__)

BACKDROPS_FOLDER = "backdrops"


class FolderType(Enum):
    """Kind of library folder a media directory was found in."""

    TV_SHOW = "tv_show"
    MOVIE = "movie"


@dataclass(frozen=True)
class TaggedDir:
    """A media directory together with the kind of library it belongs to."""

    path: Path
    folder_type: FolderType


class TrailerScraper(ABC):
    """Finds and refreshes trailers for media directories."""

    @abstractmethod
    async def scan_and_refresh_trailers(self, config: AppConfig) -> None:
        """Scan every configured library folder and refresh stale trailers."""

    @abstractmethod
    async def process_path(self, path: Path, config: AppConfig, folder_type: FolderType) -> None:
        """Refresh the trailer of one media directory if needed."""


def scan_tagged_subdirs(
    base: str | os.PathLike, subfolder: str, folder_type: FolderType
) -> List[TaggedDir]:
    """List the directories directly inside ``base/subfolder``."""
    path = Path(base) / subfolder
    if not path.is_dir():
        return []
    try:
        with os.scandir(path) as entries:
            found = sorted(
                Path(entry.path) for entry in entries if entry.is_dir(follow_symlinks=False)
            )
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return []
    return [TaggedDir(path=item, folder_type=folder_type) for item in found]


def collect_media_dirs(config: AppConfig) -> List[TaggedDir]:
    """All media directories of the configured TV folders, then movie folders."""
    scan_path = Path(config.scan_path).resolve(strict=True)
    tv_dirs = [
        tagged
        for folder in config.tv_folders
        for tagged in scan_tagged_subdirs(scan_path, folder, FolderType.TV_SHOW)
    ]
    movie_dirs = [
        tagged
        for folder in config.movie_folders
        for tagged in scan_tagged_subdirs(scan_path, folder, FolderType.MOVIE)
    ]
    return tv_dirs + movie_dirs


async def process_media_folders(config: AppConfig, scraper: TrailerScraper) -> None:
    """Run ``scraper.process_path`` on every media directory, ``config.threads`` at a time."""
    dirs = collect_media_dirs(config)
    if not dirs:
        logger.warning("No valid media directories found.")
        return

    semaphore = asyncio.Semaphore(config.threads)

    async def handle(tagged: TaggedDir) -> None:
        async with semaphore:
            await scraper.process_path(tagged.path, config, tagged.folder_type)

    results = await asyncio.gather(*(handle(tagged) for tagged in dirs), return_exceptions=True)
    for tagged, result in zip(dirs, results):
        if isinstance(result, BaseException):
            logger.error("A task failed for %s: %r", tagged.path, result)