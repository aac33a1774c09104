# trailerfin

trailerfin walks the folders of a media library and, for every movie or show
folder whose name carries an IMDb id such as `{imdb-tt1234567}`, writes a
`backdrops/<video filename>` `.strm` file holding a direct trailer video URL
taken from IMDb. Direct links expire, so an existing `.strm` file is only
rewritten when it is missing, unreadable, has no `Expires` query parameter,
or its `Expires` time has passed.

## Installing

```
pip install .
```

## Running

```
trailerfin
trailerfin --log-level debug
```

`--log-level` takes `debug`, `info` (the default), `warning`, `error` or
`critical`. The same command is available as `python -m trailerfin.cli`.

Without scheduling, one scan runs and the program exits. With scheduling
enabled, one scan runs straight away and further scans follow the cron
schedule (evaluated in UTC) until the program is interrupted with Ctrl-C. A
scan is skipped while the previous one is still running. A configuration
error is printed to standard error and the exit status is 1.

### What a scan does

For each folder listed in `TRAILERFIN_TV_FOLDERS`, then each in
`TRAILERFIN_MOVIE_FOLDERS`, the directories directly inside it are visited, up
to `TRAILERFIN_THREADS` at a time. For a directory tagged `{imdb-tt...}` whose
trailer needs refreshing, the title's IMDb video gallery is fetched; the first
video link whose text mentions "trailer" is chosen, or else the first video
link. From that video page the MP4 playback URL with the highest definition
(1080, then 720, then 480) is written to the `.strm` file with `#t=8`
appended. Directories without an IMDb tag are skipped with a warning, and
request failures are logged without stopping the scan.

## Configuration

All settings come from environment variables with the `TRAILERFIN_` prefix.

| Variable | Default | Meaning |
| --- | --- | --- |
| `TRAILERFIN_SCAN_PATH` | `/mnt/plex` | Root of the media library; must be a directory |
| `TRAILERFIN_TV_FOLDERS` | | Comma-separated sub-folders of the scan path holding shows |
| `TRAILERFIN_MOVIE_FOLDERS` | | Comma-separated sub-folders of the scan path holding movies |
| `TRAILERFIN_VIDEO_FILENAME` | `video1.strm` | Name of the `.strm` file written in `backdrops/` |
| `TRAILERFIN_USER_AGENT` | a desktop browser string | User agent for HTTP requests |
| `TRAILERFIN_THREADS` | `1` | How many folders are processed at once (at least 1) |
| `TRAILERFIN_CACHE_PATH` | `/config` | Existing directory where the id cache file `caches.sqlite3` is kept |
| `TRAILERFIN_DATA_SOURCE` | `IMDB` | `IMDB` or `TMDB`, case-insensitive (see below) |
| `TRAILERFIN_TMDB_API_KEY` | | Required by the configuration check when the data source is `TMDB` |
| `TRAILERFIN_IMDB_RATE_LIMIT` | `30/minute` | Request rate towards IMDb |
| `TRAILERFIN_TMDB_RATE_LIMIT` | `50/second` | Read and kept in the configuration; not used for requests |
| `TRAILERFIN_SHOULD_SCHEDULE` | `false` | Run on a schedule instead of once (`true`/`false`, `yes`/`no`, `on`/`off`, `1`/`0`) |
| `TRAILERFIN_SCHEDULE` | | Cron expression; required when scheduling is on |

At least one of the TV or movie folder lists must be set, and every listed
folder must exist under the scan path. Rate limits are written as
`N/second`, `N/sec`, `N/minute`, `N/min` or `N/hour` with `N` greater than zero.
Cron expressions have five fields (minute, hour, day of month, month, day of
week) or six with a leading seconds field, e.g. `*/30 * * * * *`.

Example:

```
export TRAILERFIN_SCAN_PATH=/media/library
export TRAILERFIN_MOVIE_FOLDERS="Movies, Kids"
export TRAILERFIN_TV_FOLDERS="Tv Shows"
export TRAILERFIN_CACHE_PATH=/var/cache/trailerfin
export TRAILERFIN_SHOULD_SCHEDULE=true
export TRAILERFIN_SCHEDULE="0 0 * * *"
trailerfin
```

## Using it from Python

```python
import asyncio

from trailerfin.cli import run
from trailerfin.config import load_config

config = load_config()
asyncio.run(run(config))
```

Other building blocks:

- `trailerfin.config.load_config(environ)` validates settings from any mapping
  and raises `ConfigError`.
- `trailerfin.imdb_trailers.ImdbTrailerScraper` offers the individual steps:
  `is_strm_expired`, `create_or_update_strm_file`,
  `get_trailer_video_page_url`, `get_direct_video_url_from_page`,
  `refresh_imdb_trailer`, `process_path` and `scan_and_refresh_trailers`.
  `extract_imdb_id`, `extract_trailer_link` and `extract_playback_url` work on
  plain strings.
- `trailerfin.http_client.RateLimitedClient` is an `httpx` client with a token
  bucket limit parsed by `parse_quota`; `ImdbRequestClient` fetches pages below
  `https://www.imdb.com`.
- `trailerfin.media_directories.collect_media_dirs` and `process_media_folders`
  find and process the media directories of a configuration.
- `trailerfin.scheduler.parse_cron`, `CronJobScheduler` and `ScrapingScheduler`
  run scans on a cron schedule.
- `trailerfin.cache.open_cache` opens the TMDB-to-IMDb id cache
  (`TmdbToImdbCache`) in a directory.
- `trailerfin.external_ids.parse_movie_external_ids` and
  `parse_tv_external_ids` decode TMDB external id records.

## What it does not do

Only the IMDb data source works. The configuration accepts
`TRAILERFIN_DATA_SOURCE=TMDB`, but the `trailerfin` command then stops with
"data source TMDB is not supported": there is no TMDB request client and no
scraper that reads `{tmdb-...}` folder tags, so nothing looks up IMDb ids
through TMDB. The id cache and the external id parsers are present, but a scan
does not fill or consult the cache.

## Tests

```
pip install ".[test]"
pytest
```