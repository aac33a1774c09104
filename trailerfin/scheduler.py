"""Cron style scheduling of trailer scans."""

from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, FrozenSet, NamedTuple, Optional, Set, Union

from trailerfin.config import AppConfig
from trailerfin.media_directories import TrailerScraper

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULE = "0 0 * * *"

ScanFn = Callable[[AppConfig], Awaitable[None]]
JobFn = Callable[[], Awaitable[None]]

_MONTH_NAMES = {
    name: number
    for number, name in enumerate(
        ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"),
        start=1,
    )
}
_DAY_NAMES = {
    name: number
    for number, name in enumerate(("SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT"))
}
# How far ahead next_after looks; covers the eight-year gap between some leap days.
_SEARCH_YEARS = 9


class _FieldSpec(NamedTuple):
    name: str
    low: int
    high: int
    names: Dict[str, int]
    allow_question: bool


_SECOND = _FieldSpec("second", 0, 59, {}, False)
_MINUTE = _FieldSpec("minute", 0, 59, {}, False)
_HOUR = _FieldSpec("hour", 0, 23, {}, False)
_DAY = _FieldSpec("day of month", 1, 31, {}, True)
_MONTH = _FieldSpec("month", 1, 12, _MONTH_NAMES, False)
_WEEKDAY = _FieldSpec("day of week", 0, 7, _DAY_NAMES, True)


def _parse_number(text: str, spec: _FieldSpec) -> int:
    named = spec.names.get(text.upper())
    if named is not None:
        return named
    if not (text.isascii() and text.isdigit()):
        raise ValueError(f"invalid {spec.name} value: {text!r}")
    return int(text)


def _parse_field(text: str, spec: _FieldSpec) -> FrozenSet[int]:
    values: Set[int] = set()
    for part in text.split(","):
        if not part:
            raise ValueError(f"empty entry in {spec.name} field: {text!r}")
        base, has_step, step_text = part.partition("/")
        step = 1
        if has_step:
            if not (step_text.isascii() and step_text.isdigit()) or int(step_text) == 0:
                raise ValueError(f"invalid step in {spec.name} field: {part!r}")
            step = int(step_text)
        if base == "*" or (base == "?" and spec.allow_question):
            start, end = spec.low, spec.high
        elif "-" in base:
            first, _, last = base.partition("-")
            start, end = _parse_number(first, spec), _parse_number(last, spec)
        else:
            start = _parse_number(base, spec)
            end = spec.high if has_step else start
        for value in (start, end):
            if not spec.low <= value <= spec.high:
                raise ValueError(
                    f"{spec.name} value {value} out of range {spec.low}-{spec.high}"
                )
        if start > end:
            raise ValueError(f"reversed range in {spec.name} field: {part!r}")
        values.update(range(start, end + 1, step))
    return frozenset(values)


@dataclass(frozen=True)
class CronSchedule:
    """A parsed cron expression with five or six (leading seconds) fields."""

    expression: str
    seconds: FrozenSet[int]
    minutes: FrozenSet[int]
    hours: FrozenSet[int]
    days: FrozenSet[int]
    months: FrozenSet[int]
    weekdays: FrozenSet[int]
    days_restricted: bool
    weekdays_restricted: bool

    def _day_matches(self, moment: datetime) -> bool:
        day_ok = moment.day in self.days
        weekday_ok = (moment.weekday() + 1) % 7 in self.weekdays
        if self.days_restricted and self.weekdays_restricted:
            return day_ok or weekday_ok
        return day_ok and weekday_ok

    def matches(self, moment: datetime) -> bool:
        """True if the schedule fires at ``moment`` (to the second)."""
        return (
            moment.second in self.seconds
            and moment.minute in self.minutes
            and moment.hour in self.hours
            and moment.month in self.months
            and self._day_matches(moment)
        )

    def next_after(self, moment: datetime) -> datetime:
        """The first firing time strictly after ``moment``."""
        candidate = moment.replace(microsecond=0) + timedelta(seconds=1)
        last_year = candidate.year + _SEARCH_YEARS
        while candidate.year <= last_year:
            if candidate.month not in self.months:
                if candidate.month == 12:
                    candidate = candidate.replace(
                        year=candidate.year + 1, month=1, day=1, hour=0, minute=0, second=0
                    )
                else:
                    candidate = candidate.replace(
                        month=candidate.month + 1, day=1, hour=0, minute=0, second=0
                    )
            elif not self._day_matches(candidate):
                candidate = candidate.replace(hour=0, minute=0, second=0) + timedelta(days=1)
            elif candidate.hour not in self.hours:
                candidate = candidate.replace(minute=0, second=0) + timedelta(hours=1)
            elif candidate.minute not in self.minutes:
                candidate = candidate.replace(second=0) + timedelta(minutes=1)
            elif candidate.second not in self.seconds:
                candidate += timedelta(seconds=1)
            else:
                return candidate
        raise ValueError(f"schedule {self.expression!r} never fires")


def parse_cron(expression: str) -> CronSchedule:
    """Parse ``[second] minute hour day-of-month month day-of-week``."""
    fields = expression.split()
    if len(fields) == 5:
        fields = ["0", *fields]
    elif len(fields) != 6:
        raise ValueError(f"cron expression must have 5 or 6 fields: {expression!r}")
    second, minute, hour, day, month, weekday = fields
    weekdays = frozenset(value % 7 for value in _parse_field(weekday, _WEEKDAY))
    return CronSchedule(
        expression=expression,
        seconds=_parse_field(second, _SECOND),
        minutes=_parse_field(minute, _MINUTE),
        hours=_parse_field(hour, _HOUR),
        days=_parse_field(day, _DAY),
        months=_parse_field(month, _MONTH),
        weekdays=weekdays,
        days_restricted=not day.startswith(("*", "?")),
        weekdays_restricted=not weekday.startswith(("*", "?")),
    )


class CronJobScheduler:
    """Runs an async job at every firing time of a cron schedule (UTC)."""

    def __init__(self, schedule: Union[CronSchedule, str], job: JobFn) -> None:
        self.schedule = schedule if isinstance(schedule, CronSchedule) else parse_cron(schedule)
        self.job = job
        self._runner: Optional[asyncio.Task] = None
        self._jobs: Set[asyncio.Future] = set()

    @property
    def running(self) -> bool:
        """Whether the scheduler loop is active."""
        return self._runner is not None and not self._runner.done()

    async def start(self) -> None:
        """Begin firing the job in the background."""
        if self.running:
            raise RuntimeError("scheduler already started")
        self._runner = asyncio.create_task(self._run())

    async def _run(self) -> None:
        last = datetime.now(timezone.utc)
        while True:
            target = self.schedule.next_after(max(last, datetime.now(timezone.utc)))
            delay = (target - datetime.now(timezone.utc)).total_seconds()
            if delay > 0:
                await asyncio.sleep(delay)
            last = target
            task = asyncio.ensure_future(self.job())
            self._jobs.add(task)
            task.add_done_callback(self._job_done)

    def _job_done(self, task: asyncio.Future) -> None:
        self._jobs.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Scheduled job failed: %r", task.exception())

    async def shutdown(self) -> None:
        """Stop firing and cancel jobs still running."""
        pending = list(self._jobs)
        if self._runner is not None:
            pending.append(self._runner)
            self._runner = None
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)


async def _wait_for_interrupt() -> None:
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    try:
        loop.add_signal_handler(signal.SIGINT, stop.set)
        installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        installed = False
    try:
        await stop.wait()
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


class ScrapingScheduler:
    """Schedules trailer scans, never letting two scans overlap."""

    def __init__(self, scraper: TrailerScraper) -> None:
        self.scraper = scraper

    async def _scan(self, config: AppConfig) -> None:
        logger.info("Starting trailer scan and refresh...")
        await self.scraper.scan_and_refresh_trailers(config)

    def setup_scheduler_with_lock(
        self,
        config: AppConfig,
        scan_fn: Optional[ScanFn] = None,
        lock: Optional[asyncio.Lock] = None,
    ) -> CronJobScheduler:
        """Build a scheduler running ``scan_fn`` (default: a full scan) guarded by ``lock``."""
        expression = config.schedule if config.schedule is not None else DEFAULT_SCHEDULE
        handler = scan_fn if scan_fn is not None else self._scan
        guard = lock if lock is not None else asyncio.Lock()

        async def job() -> None:
            if guard.locked():
                logger.warning("Scheduled scan skipped: previous job still running")
                return
            async with guard:
                logger.info("Running scheduled trailer scan...")
                try:
                    await handler(config)
                except Exception as exc:
                    logger.error("Scheduled scan failed: %s", exc)

        return CronJobScheduler(expression, job)

    async def _initial_scan(self, config: AppConfig, lock: asyncio.Lock) -> None:
        if lock.locked():
            logger.warning("Initial one-shot scan skipped: job already running")
            return
        async with lock:
            try:
                await self.scraper.scan_and_refresh_trailers(config)
            except Exception as exc:
                logger.error("Initial trailer scan failed: %s", exc)

    async def start_scheduler(self, config: AppConfig) -> None:
        """Scan once now, then on schedule, until interrupted."""
        lock = asyncio.Lock()
        scheduler = self.setup_scheduler_with_lock(config, None, lock)
        logger.info(
            "Scheduler started with schedule: %s",
            config.schedule if config.schedule is not None else "No schedule",
        )
        initial = asyncio.create_task(self._initial_scan(config, lock))
        await scheduler.start()
        try:
            await _wait_for_interrupt()
        finally:
            await scheduler.shutdown()
            initial.cancel()
            await asyncio.gather(initial, return_exceptions=True)