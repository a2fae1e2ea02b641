"""
In-process job scheduler.

Runs job coroutines on the API's event loop, either every day at a wall
clock time in a given timezone or on a fixed interval. A job that raises
is logged and rescheduled.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Awaitable, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Awaitable[object]]


def parse_daily_time(value: str) -> time:
    """
    Parse ``HH:MM``.

    Raises:
        ValueError: If the value is not a valid time of day
    """
    try:
        hours, minutes = value.strip().split(":")
        return time(int(hours), int(minutes))
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid daily time {value!r}, expected HH:MM") from e


def next_daily_run(now: datetime, at: time, tz: ZoneInfo) -> datetime:
    """Next occurrence of ``at`` in ``tz`` strictly after ``now``."""
    local_now = now.astimezone(tz)
    candidate = datetime.combine(local_now.date(), at, tzinfo=tz)
    if candidate <= local_now:
        candidate = datetime.combine(local_now.date() + timedelta(days=1), at, tzinfo=tz)
    return candidate


@dataclass
class ScheduledJob:
    name: str
    func: JobFunc
    daily_at: Optional[time] = None
    interval: Optional[timedelta] = None

    def delay_from(self, now: datetime, tz: ZoneInfo) -> float:
        if self.daily_at is not None:
            return (next_daily_run(now, self.daily_at, tz) - now).total_seconds()
        return self.interval.total_seconds()


class JobScheduler:
    """
    Schedules jobs as asyncio tasks.

    Attributes:
        timezone: Timezone of the daily run times
        jobs: Registered jobs by name
    """

    def __init__(self, timezone_name: str = "Europe/Paris", clock: Optional[Callable[[], datetime]] = None):
        self.timezone = ZoneInfo(timezone_name)
        self.jobs: Dict[str, ScheduledJob] = {}
        self._tasks: List[asyncio.Task] = []
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def add_daily_job(self, name: str, func: JobFunc, at: str) -> None:
        self.jobs[name] = ScheduledJob(name, func, daily_at=parse_daily_time(at))
        logger.info(f"Scheduled job {name} daily at {at} ({self.timezone.key})")

    def add_interval_job(self, name: str, func: JobFunc, seconds: int) -> None:
        if seconds <= 0:
            raise ValueError("Interval must be positive")
        self.jobs[name] = ScheduledJob(name, func, interval=timedelta(seconds=seconds))
        logger.info(f"Scheduled job {name} every {seconds}s")

    async def run_job(self, job: ScheduledJob) -> None:
        logger.info(f"Running scheduled job {job.name}")
        try:
            await job.func()
        except Exception as e:
            logger.error(f"Scheduled job {job.name} failed: {str(e)}", exc_info=True)

    async def _loop(self, job: ScheduledJob) -> None:
        while True:
            delay = job.delay_from(self._clock(), self.timezone)
            logger.debug(f"Next run of {job.name} in {int(delay)}s")
            await asyncio.sleep(delay)
            await self.run_job(job)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [asyncio.create_task(self._loop(job), name=f"job:{job.name}") for job in self.jobs.values()]
        logger.info(f"Job scheduler started with {len(self._tasks)} jobs")

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Job scheduler stopped")
