"""Daily quota reset job.

Once a day, at a fixed UTC time, every credential gets its full quota back
and its ``last_reset`` timestamp refreshed. The job runs as an asyncio task
on the application's event loop; aggregation calls only ever observe the
effect (quota values going up between calls).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable

from app.adapters.storage.base import AbstractCredentialStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def reset_all_quotas(
    store: AbstractCredentialStore,
    quota: int,
    now: datetime | None = None,
) -> int:
    """Restore every credential to ``quota``.

    Returns:
        Number of credentials reset.
    """
    moment = now or _utcnow()
    touched = store.reset_all(quota, int(moment.timestamp() * 1000))
    logger.info(
        "quota_reset.completed",
        extra={"credentials": touched, "quota": quota},
    )
    return touched


def seconds_until_next_reset(now: datetime, hour: int, minute: int) -> float:
    """Seconds from ``now`` (aware, any zone) to the next ``hour:minute`` UTC."""

    now_utc = now.astimezone(timezone.utc)
    target = now_utc.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now_utc:
        target += timedelta(days=1)
    return (target - now_utc).total_seconds()


class QuotaResetJob:
    """Background task resetting quotas every day at ``hour:minute`` UTC."""

    def __init__(
        self,
        store: AbstractCredentialStore,
        *,
        quota: int,
        hour: int = 7,
        minute: int = 0,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._quota = quota
        self._hour = hour
        self._minute = minute
        self._clock = clock
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="quota-reset")
        logger.info(
            "quota_reset.scheduled",
            extra={"hour_utc": self._hour, "minute_utc": self._minute},
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def run_once(self) -> int:
        """Sleep until the next scheduled time, then reset all quotas."""

        delay = seconds_until_next_reset(self._clock(), self._hour, self._minute)
        logger.debug("quota_reset.waiting", extra={"delay_s": round(delay, 1)})
        await self._sleep(delay)
        return reset_all_quotas(self._store, self._quota, self._clock())

    async def _run(self) -> None:
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("quota_reset.failed")
                # Back off before rescheduling
                await self._sleep(60)
