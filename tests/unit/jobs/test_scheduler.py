"""
Unit tests for the in-process job scheduler.
"""

import asyncio
from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from inbox_actions.jobs.scheduler import JobScheduler, ScheduledJob, next_daily_run, parse_daily_time

PARIS = ZoneInfo("Europe/Paris")


class TestParseDailyTime:

    def test_valid(self):
        assert parse_daily_time("08:30") == time(8, 30)
        assert parse_daily_time(" 3:05 ") == time(3, 5)

    @pytest.mark.parametrize("value", ["8h30", "25:00", "12:60", "", None, "1:2:3"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_daily_time(value)


class TestNextDailyRun:

    def test_later_today(self):
        now = datetime(2024, 1, 15, 6, 0, tzinfo=timezone.utc)  # 07:00 in Paris
        assert next_daily_run(now, time(8, 0), PARIS) == datetime(2024, 1, 15, 8, 0, tzinfo=PARIS)

    def test_already_passed_today(self):
        now = datetime(2024, 1, 15, 7, 0, tzinfo=timezone.utc)  # 08:00 in Paris
        assert next_daily_run(now, time(8, 0), PARIS) == datetime(2024, 1, 16, 8, 0, tzinfo=PARIS)

    def test_summer_time(self):
        now = datetime(2024, 7, 1, 5, 0, tzinfo=timezone.utc)  # 07:00 in Paris
        run = next_daily_run(now, time(8, 0), PARIS)
        assert run.astimezone(timezone.utc) == datetime(2024, 7, 1, 6, 0, tzinfo=timezone.utc)


class TestScheduledJob:

    async def _noop(self):
        return None

    def test_daily_delay(self):
        job = ScheduledJob("sync", self._noop, daily_at=time(8, 0))
        now = datetime(2024, 1, 15, 6, 0, tzinfo=timezone.utc)
        assert job.delay_from(now, PARIS) == 3600

    def test_interval_delay(self):
        job = ScheduledJob("count", self._noop, interval=timedelta(minutes=15))
        assert job.delay_from(datetime.now(timezone.utc), PARIS) == 900


class TestJobScheduler:

    def test_registration(self):
        scheduler = JobScheduler("Europe/Paris")
        scheduler.add_daily_job("sync", lambda: None, "08:00")
        scheduler.add_interval_job("count", lambda: None, 60)

        assert scheduler.jobs["sync"].daily_at == time(8, 0)
        assert scheduler.jobs["count"].interval == timedelta(seconds=60)
        with pytest.raises(ValueError):
            scheduler.add_interval_job("bad", lambda: None, 0)
        with pytest.raises(ValueError):
            scheduler.add_daily_job("bad", lambda: None, "later")

    @pytest.mark.asyncio
    async def test_failing_job_is_contained(self):
        async def boom():
            raise RuntimeError("boom")

        scheduler = JobScheduler()
        await scheduler.run_job(ScheduledJob("boom", boom, interval=timedelta(seconds=1)))

    @pytest.mark.asyncio
    async def test_start_runs_jobs_and_stop_cancels(self):
        runs = []

        async def job():
            runs.append(1)

        scheduler = JobScheduler()
        scheduler.jobs["fast"] = ScheduledJob("fast", job, interval=timedelta(seconds=0.01))

        scheduler.start()
        assert scheduler.running
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert runs
        assert not scheduler.running
