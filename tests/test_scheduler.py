import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from trailerfin.config import AppConfig, load_config
from trailerfin.media_directories import TrailerScraper
from trailerfin.scheduler import (
    CronJobScheduler,
    ScrapingScheduler,
    parse_cron,
)

UTC = timezone.utc


class CountingScraper(TrailerScraper):
    def __init__(self):
        self.calls = []
        self.paths = []
        self.called = asyncio.Event()

    async def scan_and_refresh_trailers(self, config):
        self.calls.append(config)
        self.called.set()

    async def process_path(self, path, config, folder_type):
        self.paths.append(path)


def setup_empty_dir(tmp_path: Path) -> dict:
    scan_path = tmp_path / "scan-me"
    cache_path = tmp_path / "cache-me"
    for subdir in ["Tv Shows", "Kids TV", "Movies", "Kids"]:
        (scan_path / subdir).mkdir(parents=True)
    cache_path.mkdir()
    return {
        "TRAILERFIN_SCAN_PATH": str(scan_path),
        "TRAILERFIN_CACHE_PATH": str(cache_path),
        "TRAILERFIN_TV_FOLDERS": "Tv Shows, Kids TV",
        "TRAILERFIN_MOVIE_FOLDERS": "Movies, Kids",
    }


def test_default_daily_schedule_fires_at_midnight():
    schedule = parse_cron("0 0 * * *")
    start = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    assert schedule.next_after(start) == datetime(2024, 1, 2, 0, 0, tzinfo=UTC)


def test_every_second_schedule():
    schedule = parse_cron("*/1 * * * * *")
    start = datetime(2024, 5, 5, 10, 20, 30, 250000, tzinfo=UTC)
    assert schedule.next_after(start) == datetime(2024, 5, 5, 10, 20, 31, tzinfo=UTC)


def test_next_after_is_strictly_later_and_matches():
    schedule = parse_cron("15 */2 * * *")
    moment = datetime(2024, 3, 10, 7, 59, 59, tzinfo=UTC)
    for _ in range(20):
        following = schedule.next_after(moment)
        assert following > moment
        assert schedule.matches(following)
        moment = following


def test_weekday_names_and_matches():
    schedule = parse_cron("30 9 * * MON-FRI")
    assert schedule.matches(datetime(2024, 1, 1, 9, 30, tzinfo=UTC))
    assert not schedule.matches(datetime(2024, 1, 6, 9, 30, tzinfo=UTC))
    assert not schedule.matches(datetime(2024, 1, 1, 9, 31, tzinfo=UTC))


def test_seven_means_sunday():
    schedule = parse_cron("0 0 * * 7")
    assert schedule.matches(datetime(2024, 1, 7, 0, 0, tzinfo=UTC))


def test_day_of_month_or_day_of_week():
    schedule = parse_cron("0 0 13 * 5")
    start = datetime(2024, 1, 1, 0, 0, tzinfo=UTC)
    assert schedule.next_after(start) == datetime(2024, 1, 5, 0, 0, tzinfo=UTC)


def test_month_rollover():
    schedule = parse_cron("0 0 1 * *")
    start = datetime(2023, 12, 15, 8, 0, tzinfo=UTC)
    assert schedule.next_after(start) == datetime(2024, 1, 1, 0, 0, tzinfo=UTC)


def test_leap_day():
    schedule = parse_cron("0 0 29 2 *")
    start = datetime(2024, 3, 1, tzinfo=UTC)
    assert schedule.next_after(start) == datetime(2028, 2, 29, tzinfo=UTC)


def test_schedule_that_never_fires():
    schedule = parse_cron("0 0 30 2 *")
    with pytest.raises(ValueError):
        schedule.next_after(datetime(2024, 1, 1, tzinfo=UTC))


@pytest.mark.parametrize(
    "expression",
    [
        "",
        "* * * *",
        "* * * * * * *",
        "60 * * * *",
        "* 24 * * *",
        "* * 0 * *",
        "* * * 13 *",
        "*/0 * * * *",
        "5-1 * * * *",
        "a b c d e",
        "1,,2 * * * *",
    ],
)
def test_invalid_expressions(expression):
    with pytest.raises(ValueError):
        parse_cron(expression)


@pytest.mark.asyncio
async def test_scheduler_triggers_scan(tmp_path):
    environ = setup_empty_dir(tmp_path)
    environ.update(
        {
            "TRAILERFIN_VIDEO_FILENAME": "test.strm",
            "TRAILERFIN_USER_AGENT": "TestAgent",
            "TRAILERFIN_SHOULD_SCHEDULE": "true",
            "TRAILERFIN_SCHEDULE": "*/1 * * * * *",
        }
    )
    config = load_config(environ)
    called = []

    async def mock_scan(cfg):
        called.append(cfg)

    scheduler = ScrapingScheduler(CountingScraper()).setup_scheduler_with_lock(
        config, mock_scan, asyncio.Lock()
    )
    await scheduler.start()
    try:
        await asyncio.sleep(2)
    finally:
        await scheduler.shutdown()

    assert config.scan_path == str(tmp_path / "scan-me")
    assert len(called) >= 1
    assert all(cfg is config for cfg in called)


@pytest.mark.asyncio
async def test_default_handler_runs_scraper():
    scraper = CountingScraper()
    config = AppConfig(should_schedule=True, schedule="* * * * * *")
    scheduler = ScrapingScheduler(scraper).setup_scheduler_with_lock(config)
    await scheduler.start()
    try:
        await asyncio.wait_for(scraper.called.wait(), timeout=3)
    finally:
        await scheduler.shutdown()
    assert scraper.calls[0] is config


@pytest.mark.asyncio
async def test_held_lock_skips_scan():
    called = []

    async def mock_scan(cfg):
        called.append(cfg)

    lock = asyncio.Lock()
    await lock.acquire()
    config = AppConfig(schedule="* * * * * *")
    scheduler = ScrapingScheduler(CountingScraper()).setup_scheduler_with_lock(
        config, mock_scan, lock
    )
    await scheduler.start()
    try:
        await asyncio.sleep(1.5)
        assert scheduler.running
    finally:
        await scheduler.shutdown()
        lock.release()
    assert not scheduler.running
    assert called == []


@pytest.mark.asyncio
async def test_failing_scan_releases_lock():
    called = []

    async def failing_scan(cfg):
        called.append(cfg)
        raise RuntimeError("boom")

    lock = asyncio.Lock()
    config = AppConfig(schedule="* * * * * *")
    scheduler = ScrapingScheduler(CountingScraper()).setup_scheduler_with_lock(
        config, failing_scan, lock
    )
    await scheduler.start()
    try:
        await asyncio.sleep(2.5)
    finally:
        await scheduler.shutdown()
    assert len(called) >= 2
    assert not lock.locked()


@pytest.mark.asyncio
async def test_cron_job_scheduler_cannot_start_twice():
    async def job():
        return None

    scheduler = CronJobScheduler("0 0 1 1 *", job)
    await scheduler.start()
    try:
        assert scheduler.running
        with pytest.raises(RuntimeError):
            await scheduler.start()
    finally:
        await scheduler.shutdown()
    assert not scheduler.running


@pytest.mark.asyncio
async def test_shutdown_stops_firing():
    fired = []

    async def job():
        fired.append(datetime.now(UTC))

    scheduler = CronJobScheduler(parse_cron("* * * * * *"), job)
    await scheduler.start()
    await asyncio.sleep(1.3)
    await scheduler.shutdown()
    assert not scheduler.running
    count = len(fired)
    assert count >= 1
    await asyncio.sleep(1.2)
    assert len(fired) == count


@pytest.mark.asyncio
async def test_start_scheduler_runs_initial_scan():
    scraper = CountingScraper()
    config = AppConfig(should_schedule=True, schedule="0 0 1 1 *")
    task = asyncio.create_task(ScrapingScheduler(scraper).start_scheduler(config))
    await asyncio.wait_for(scraper.called.wait(), timeout=5)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert scraper.calls == [config]


def test_every_second_sequence_has_one_second_gaps():
    schedule = parse_cron("*/1 * * * * *")
    moment = datetime(2024, 12, 31, 23, 59, 58, tzinfo=UTC)
    first = schedule.next_after(moment)
    second = schedule.next_after(first)
    assert second - first == timedelta(seconds=1)
    assert second.year == 2025