"""Application configuration read from ``TRAILERFIN_*`` environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

ENV_PREFIX = "TRAILERFIN_"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/124.0.0.0"
)

_DEFAULTS = {
    "scan_path": "/mnt/plex",
    "user_agent": DEFAULT_USER_AGENT,
    "should_schedule": "false",
    "video_filename": "video1.strm",
    "threads": "1",
    "cache_path": "/config",
    "data_source": "IMDB",
    "imdb_rate_limit": "30/minute",
    "tmdb_rate_limit": "50/second",
}

_TRUE_WORDS = frozenset({"1", "true", "on", "yes"})
_FALSE_WORDS = frozenset({"0", "false", "off", "no"})


class ConfigError(Exception):
    """Raised when the configuration is missing, malformed or inconsistent."""


class DataSource(Enum):
    """Where media identifiers in folder names come from."""

    IMDB = "IMDB"
    TMDB = "TMDB"


@dataclass(frozen=True)
class AppConfig:
    """Validated application settings."""

    scan_path: str = _DEFAULTS["scan_path"]
    video_filename: str = _DEFAULTS["video_filename"]
    should_schedule: bool = False
    schedule: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    threads: int = 1
    cache_path: str = _DEFAULTS["cache_path"]
    data_source: DataSource = DataSource.IMDB
    imdb_rate_limit: str = _DEFAULTS["imdb_rate_limit"]
    tmdb_rate_limit: str = _DEFAULTS["tmdb_rate_limit"]
    tmdb_api_key: Optional[str] = field(default=None, repr=False)
    tv_folders: Tuple[str, ...] = ()
    movie_folders: Tuple[str, ...] = ()


def parse_data_source(value: str) -> DataSource:
    """Parse a data source name, ignoring case."""
    lowered = value.lower()
    for source in DataSource:
        if source.value.lower() == lowered:
            return source
    choices = ", ".join(f'"{source.value}"' for source in DataSource)
    raise ConfigError(
        f"invalid TRAILERFIN_DATA_SOURCE: {lowered}. Must be one of: [{choices}]"
    )


def parse_csv(value: str) -> Tuple[str, ...]:
    """Split a comma separated list, trimming entries and dropping empty ones."""
    return tuple(item for item in (part.strip() for part in value.split(",")) if item)


def validate_path(path: str | os.PathLike, name: str) -> Path:
    """Return the canonical form of ``path``, which must be an existing directory."""
    candidate = Path(path)
    if not candidate.is_dir():
        raise ConfigError(
            f"Provided path for {name} does not exist or is not a directory: {str(candidate)!r}"
        )
    try:
        return candidate.resolve(strict=True)
    except OSError as exc:
        raise ConfigError(
            f"Failed to canonicalize path for {name}: {str(candidate)!r}"
        ) from exc


def _parse_bool(value: str, key: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    raise ConfigError(f"invalid boolean for {ENV_PREFIX}{key.upper()}: {value!r}")


def _parse_threads(value: str) -> int:
    try:
        threads = int(value)
    except ValueError as exc:
        raise ConfigError(f"invalid integer for TRAILERFIN_THREADS: {value!r}") from exc
    if threads < 1:
        raise ConfigError("TRAILERFIN_THREADS must be greater than or equal to 1")
    return threads


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _read_settings(environ: Mapping[str, str]) -> dict:
    settings = dict(_DEFAULTS)
    for key, value in environ.items():
        if key.upper().startswith(ENV_PREFIX):
            settings[key[len(ENV_PREFIX):].lower()] = value
    return settings


def load_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build and validate the configuration from the environment."""
    env = os.environ if environ is None else environ
    settings = _read_settings(env)

    config = AppConfig(
        scan_path=settings["scan_path"],
        video_filename=settings["video_filename"],
        should_schedule=_parse_bool(settings["should_schedule"], "should_schedule"),
        schedule=settings.get("schedule"),
        user_agent=settings["user_agent"],
        threads=_parse_threads(settings["threads"]),
        cache_path=settings["cache_path"],
        data_source=parse_data_source(settings["data_source"]),
        imdb_rate_limit=settings["imdb_rate_limit"],
        tmdb_rate_limit=settings["tmdb_rate_limit"],
        tmdb_api_key=settings.get("tmdb_api_key"),
        tv_folders=parse_csv(settings.get("tv_folders", "")),
        movie_folders=parse_csv(settings.get("movie_folders", "")),
    )

    if not config.scan_path:
        raise ConfigError("TRAILERFIN_SCAN_PATH must be set and cannot be empty")
    if _is_blank(config.user_agent):
        raise ConfigError("TRAILERFIN_USER_AGENT must be set and cannot be empty")
    if _is_blank(config.video_filename):
        raise ConfigError("TRAILERFIN_VIDEO_FILENAME must be set and cannot be empty")
    if config.should_schedule and _is_blank(config.schedule):
        raise ConfigError(
            "TRAILERFIN_SCHEDULE must be set and not empty when scheduling is enabled"
        )
    if config.data_source is DataSource.TMDB and _is_blank(config.tmdb_api_key):
        raise ConfigError(
            "TRAILERFIN_TMDB_API_KEY must be set and not empty when datasource is set to TMDB"
        )
    if _is_blank(config.cache_path):
        raise ConfigError("TRAILERFIN_CACHE_PATH must be set and cannot be empty")

    validate_path(config.scan_path, "TRAILERFIN_SCAN_PATH")
    validate_path(config.cache_path, "TRAILERFIN_CACHE_PATH")

    if not config.tv_folders and not config.movie_folders:
        raise ConfigError(
            "At least one of TRAILERFIN_TV_FOLDERS or TRAILERFIN_MOVIE_FOLDERS "
            "must be set and non-empty"
        )

    for folder in (*config.tv_folders, *config.movie_folders):
        validate_path(Path(config.scan_path) / folder, f"subfolder: {folder}")

    logger.info("Loaded configuration: %r", config)
    return config