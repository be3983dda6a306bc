"""
Minute-aligned periodic trigger for the announcement cycle.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from .logging_config import get_logger


logger = get_logger("scheduler")


@dataclass(frozen=True)
class IntervalSchedule:
    """
    Fires at minutes `offset, offset + interval, ...` of every hour.

    The default (interval 5, offset 1) is the cron expression `1-59/5 * * * *`.
    """
    interval_minutes: int = 5
    offset_minutes: int = 1

    def __post_init__(self):
        if not 0 < self.interval_minutes <= 60:
            raise ValueError("interval_minutes must be in 1..60")
        if not 0 <= self.offset_minutes < self.interval_minutes:
            raise ValueError("offset_minutes must be in 0..interval_minutes-1")

    def next_run(self, after: datetime) -> datetime:
        """First fire time strictly after `after`."""
        base = after.replace(second=0, microsecond=0)
        candidate = base.replace(minute=0)
        while candidate <= after or not self._fires_at(candidate):
            candidate += timedelta(minutes=1)
        return candidate

    def _fires_at(self, moment: datetime) -> bool:
        minute = moment.minute
        return minute >= self.offset_minutes and (minute - self.offset_minutes) % self.interval_minutes == 0


async def run_periodic(
    schedule: IntervalSchedule,
    job: Callable[[], Awaitable[None]],
    stop_event: Optional[asyncio.Event] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> None:
    """
    Run `job` at every fire time of `schedule` until `stop_event` is set.

    Jobs run one after another; a fire time that passes while a job is still
    running is skipped. `job` is expected to handle its own errors.
    """
    stop_event = stop_event or asyncio.Event()
    while not stop_event.is_set():
        now = clock()
        fire_at = schedule.next_run(now)
        delay = max((fire_at - now).total_seconds(), 0)
        logger.debug(f"Next cycle at {fire_at.isoformat(timespec='minutes')}")
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
            break
        except asyncio.TimeoutError:
            pass
        await job()
