"""Wall-clock aligned periodic jobs.

Each job gets its own asyncio task. A task sleeps until the next minute
boundary that is a multiple of the job's interval, runs the job, and
repeats. A task awaits its job before scheduling the next tick, so a job
never overlaps itself: ticks that pass while it is still running are
skipped and logged.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Iterable, List, Optional

LOGGER = logging.getLogger(__name__)

JobFunc = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class Job:
    name: str
    func: JobFunc
    every_minutes: int = 1


def _local_now() -> datetime:
    return datetime.now().astimezone()


def next_tick(now: datetime, every_minutes: int = 1) -> datetime:
    """Return the first minute boundary after ``now`` aligned to ``every_minutes``.

    Alignment is counted from local midnight, so 60 means the top of every
    hour and 15 means :00, :15, :30 and :45.
    """

    if every_minutes < 1:
        raise ValueError(f"every_minutes must be >= 1, got {every_minutes}")
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    minute_of_day = now.hour * 60 + now.minute
    return midnight + timedelta(minutes=(minute_of_day // every_minutes + 1) * every_minutes)


class Scheduler:
    """Runs independent periodic jobs until stopped."""

    def __init__(
        self,
        jobs: Iterable[Job],
        clock: Callable[[], datetime] = _local_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._jobs = list(jobs)
        self._clock = clock
        self._sleep = sleep
        self._tasks: List[asyncio.Task] = []

    @property
    def jobs(self) -> List[Job]:
        return list(self._jobs)

    def start(self) -> None:
        """Spawn one task per job. Must be called from the running loop."""

        if self._tasks:
            return
        for job in self._jobs:
            task = asyncio.create_task(self.run_forever(job), name=f"job:{job.name}")
            self._tasks.append(task)
        LOGGER.info("Scheduler started with %s jobs", len(self._tasks))

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        LOGGER.info("Scheduler stopped")

    async def wait(self) -> None:
        """Block until every job task has ended (normally: until cancelled)."""

        await asyncio.gather(*self._tasks)

    async def run_forever(self, job: Job, max_runs: Optional[int] = None) -> None:
        runs = 0
        while max_runs is None or runs < max_runs:
            now = self._clock()
            tick = next_tick(now, job.every_minutes)
            await self._sleep(max((tick - now).total_seconds(), 0.0))

            await self.run_once(job)
            runs += 1

            missed = _missed_ticks(tick, self._clock(), job.every_minutes)
            if missed:
                LOGGER.info("Job %s ran past %s tick(s); skipped them", job.name, missed)

    async def run_once(self, job: Job) -> bool:
        """Run a job, logging any failure. Returns True on success."""

        LOGGER.debug("Running job %s", job.name)
        try:
            await job.func()
        except asyncio.CancelledError:
            raise
        except Exception:
            LOGGER.exception("Job %s failed", job.name)
            return False
        return True


def _missed_ticks(tick: datetime, finished: datetime, every_minutes: int) -> int:
    missed = 0
    following = next_tick(tick, every_minutes)
    while following <= finished:
        missed += 1
        following = next_tick(following, every_minutes)
    return missed
