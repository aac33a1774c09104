"""External identifier records returned by the TMDB external_ids endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Type, TypeVar

from trailerfin.empty_strings import empty_as_none


@dataclass(frozen=True)
class MovieExternalIds:
    """External identifiers of a movie."""

    id: int
    imdb_id: Optional[str]


@dataclass(frozen=True)
class TvShowExternalIds:
    """External identifiers of a TV show."""

    id: int
    imdb_id: Optional[str]


_Ids = TypeVar("_Ids", MovieExternalIds, TvShowExternalIds)


def _parse(cls: Type[_Ids], data: Any) -> _Ids:
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    if "id" not in data:
        raise ValueError("missing field `id`")
    if "imdb_id" not in data:
        raise ValueError("missing field `imdb_id`")
    ident = data["id"]
    if isinstance(ident, bool) or not isinstance(ident, int) or ident < 0:
        raise ValueError("id must be a non-negative integer")
    raw_imdb_id = data["imdb_id"]
    if raw_imdb_id is not None and not isinstance(raw_imdb_id, str):
        raise ValueError("imdb_id must be a string or null")
    return cls(id=ident, imdb_id=empty_as_none(raw_imdb_id))


def parse_movie_external_ids(data: Any) -> MovieExternalIds:
    """Build :class:`MovieExternalIds` from decoded JSON."""
    return _parse(MovieExternalIds, data)


def parse_tv_external_ids(data: Any) -> TvShowExternalIds:
    """Build :class:`TvShowExternalIds` from decoded JSON."""
    return _parse(TvShowExternalIds, data)