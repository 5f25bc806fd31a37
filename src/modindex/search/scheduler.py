"""Periodic runner for the background indexing jobs."""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog

logger = structlog.get_logger()

Task = Callable[[], Awaitable[Any]]


@dataclass
class ScheduledJob:
    """A registered task and its run bookkeeping.

    Attributes:
        name: Job label used in logs and stats.
        interval: Seconds between ticks.
        task: Coroutine function run on each tick.
        run_immediately: Whether the first tick fires at start.
    """

    name: str
    interval: float
    task: Task
    run_immediately: bool = True
    runs_started: int = 0
    runs_succeeded: int = 0
    runs_failed: int = 0
    last_started_at: datetime | None = None
    last_finished_at: datetime | None = None
    last_error: str | None = None
    in_flight: set[asyncio.Task[None]] = field(default_factory=set)
    ticker: asyncio.Task[None] | None = None

    def snapshot(self) -> dict[str, Any]:
        """Serializable view of the job's state."""
        return {
            "name": self.name,
            "interval_seconds": self.interval,
            "runs_started": self.runs_started,
            "runs_succeeded": self.runs_succeeded,
            "runs_failed": self.runs_failed,
            "in_flight": len(self.in_flight),
            "last_started_at": _iso(self.last_started_at),
            "last_finished_at": _iso(self.last_finished_at),
            "last_error": self.last_error,
        }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class Scheduler:
    """Runs registered tasks at a fixed interval on the event loop.

    Each job gets a ticker task. A tick claims one of the job's run slots
    before spawning a run; when every slot is taken the tick waits, so a
    slow task never piles up more than ``max_concurrent_runs`` overlapping
    runs. Stopping ends the tickers and lets in-flight runs finish.
    """

    def __init__(self, max_concurrent_runs: int = 2) -> None:
        """Initialize scheduler.

        Args:
            max_concurrent_runs: Overlapping runs allowed per job.
        """
        if max_concurrent_runs < 1:
            raise ValueError("max_concurrent_runs must be at least 1")
        self._max_concurrent_runs = max_concurrent_runs
        self._jobs: dict[str, ScheduledJob] = {}
        self._stop_event = asyncio.Event()
        self._started = False
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._started and not self._stopped

    @property
    def jobs(self) -> list[dict[str, Any]]:
        return [job.snapshot() for job in self._jobs.values()]

    def schedule(
        self,
        name: str,
        interval: float,
        task: Task,
        *,
        run_immediately: bool = True,
    ) -> None:
        """Register a recurring task.

        Jobs registered after start() begin ticking right away.

        Args:
            name: Unique job label.
            interval: Seconds between ticks.
            task: Coroutine function to run on every tick.
            run_immediately: Fire the first tick without waiting an interval.

        Raises:
            ValueError: If the name is taken or the interval is not positive.
            RuntimeError: If the scheduler has been stopped.
        """
        if self._stopped:
            raise RuntimeError("scheduler has been stopped")
        if name in self._jobs:
            raise ValueError(f"job {name!r} is already scheduled")
        if interval <= 0:
            raise ValueError("interval must be positive")

        job = ScheduledJob(name=name, interval=interval, task=task, run_immediately=run_immediately)
        self._jobs[name] = job
        logger.info("job_scheduled", job=name, interval_seconds=interval)
        if self._started:
            self._start_job(job)

    def start(self) -> None:
        """Start ticking every registered job.

        Must be called from within a running event loop.

        Raises:
            RuntimeError: If the scheduler has been stopped.
        """
        if self._stopped:
            raise RuntimeError("scheduler cannot be restarted after stop")
        if self._started:
            return
        self._started = True
        for job in self._jobs.values():
            self._start_job(job)
        logger.info("scheduler_started", jobs=list(self._jobs))

    def _start_job(self, job: ScheduledJob) -> None:
        slots = asyncio.Semaphore(self._max_concurrent_runs)
        job.ticker = asyncio.create_task(
            self._tick_loop(job, slots), name=f"ticker:{job.name}"
        )

    async def _sleep(self, seconds: float) -> bool:
        """Wait for the next tick.

        Returns:
            True if stop was requested during the wait.
        """
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _tick_loop(self, job: ScheduledJob, slots: asyncio.Semaphore) -> None:
        if not job.run_immediately and await self._sleep(job.interval):
            return

        while not self._stop_event.is_set():
            await slots.acquire()
            if self._stop_event.is_set():
                slots.release()
                return

            run = asyncio.create_task(self._run_once(job, slots), name=f"run:{job.name}")
            job.in_flight.add(run)
            run.add_done_callback(job.in_flight.discard)

            if await self._sleep(job.interval):
                return

    async def _run_once(self, job: ScheduledJob, slots: asyncio.Semaphore) -> None:
        job.runs_started += 1
        job.last_started_at = datetime.now(UTC)
        try:
            await job.task()
        except Exception as e:
            job.runs_failed += 1
            job.last_error = str(e) or type(e).__name__
            logger.exception("scheduled_job_failed", job=job.name)
        else:
            job.runs_succeeded += 1
        finally:
            job.last_finished_at = datetime.now(UTC)
            slots.release()

    async def stop(self, timeout: float | None = None) -> bool:
        """Stop issuing ticks and wait for in-flight runs.

        Runs are never cancelled. Idempotent.

        Args:
            timeout: Seconds to wait for in-flight runs, None to wait forever.

        Returns:
            True if every in-flight run finished within the timeout.
        """
        if self._stopped:
            return True
        self._stopped = True
        self._stop_event.set()

        for job in self._jobs.values():
            if job.ticker is not None:
                job.ticker.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await job.ticker

        in_flight = {run for job in self._jobs.values() for run in job.in_flight}
        if not in_flight:
            logger.info("scheduler_stopped")
            return True

        logger.info("scheduler_draining", in_flight=len(in_flight))
        _, pending = await asyncio.wait(in_flight, timeout=timeout)
        if pending:
            logger.warning("scheduler_stop_timeout", still_running=len(pending), timeout_seconds=timeout)
            return False
        logger.info("scheduler_stopped")
        return True
