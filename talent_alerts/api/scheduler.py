"""Daily trigger for the job roundup.

An asyncio task sleeps until the next configured wall-clock time in the
configured timezone, runs the roundup if the ATS is authorized, and goes back
to sleep. Failures are logged and never retried; the next run is tomorrow's.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from talent_alerts.core.config import ScheduleConfig

logger = logging.getLogger(__name__)


def next_run(now: datetime, at: str) -> datetime:
    """First ``HH:MM`` strictly after ``now``, in ``now``'s timezone."""
    hour, minute = (int(part) for part in at.split(":"))
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate = candidate + timedelta(days=1)
    return candidate


class DailyScheduler:
    def __init__(
        self,
        config: ScheduleConfig,
        job: Callable[[], Awaitable[object]],
        *,
        is_authorized: Callable[[], bool],
        clock: Callable[[ZoneInfo], datetime] = datetime.now,
    ) -> None:
        self._config = config
        self._job = job
        self._is_authorized = is_authorized
        self._clock = clock
        self._tz = ZoneInfo(config.timezone)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self._config.enabled:
            logger.info("Daily roundup schedule disabled")
            return
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Daily roundup scheduled at %s (%s)", self._config.time, self._config.timezone,
        )

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _loop(self) -> None:
        while True:
            now = self._clock(self._tz)
            target = next_run(now, self._config.time)
            # same-zone subtraction ignores DST offsets, so compare in UTC
            delay = (target.astimezone(timezone.utc) - now.astimezone(timezone.utc)).total_seconds()
            delay = max(delay, 0.0)
            logger.debug("Next daily roundup at %s (in %.0fs)", target.isoformat(), delay)
            await asyncio.sleep(delay)
            await self.run_once()

    async def run_once(self) -> None:
        """One scheduled run. Never raises."""
        if not self._is_authorized():
            logger.warning("Skipping scheduled roundup: JobAdder is not authorized")
            return
        logger.info("Running scheduled daily roundup")
        try:
            result = await self._job()
        except Exception:
            logger.exception("Scheduled daily roundup failed")
            return
        logger.info("Scheduled daily roundup finished: %s", getattr(result, "message", result))
