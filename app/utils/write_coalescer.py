"""Debounced persistence: many mutations, few flushes.

A ``WriteCoalescer`` owns a dirty flag and a background flush loop:

- ``mark_dirty()`` records a mutation and starts the loop if it is idle.
- The loop wakes every ``interval_seconds`` and flushes once if dirty, so a
  burst of mutations costs one write per interval.
- Once no mutation has arrived for ``quiet_period_seconds`` and nothing is
  dirty, the loop exits. The next mutation starts it again.
- ``flush_now()`` writes synchronously (shutdown path); ``close()`` stops the
  loop and performs that final flush.

Flush failures are logged and leave the flag dirty; the next tick retries.
Mutations made after the last successful flush are lost if the process dies
abruptly, which bounds the loss window to one interval.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class WriteCoalescer:
    """Coalesce dirty notifications into periodic calls to ``flush``.

    Thread-safe: mutations may come from the event loop thread while the
    flush loop runs on its own daemon thread.
    """

    def __init__(
        self,
        flush: Callable[[], None],
        *,
        interval_seconds: float = 0.5,
        quiet_period_seconds: float = 0.6,
        clock: Callable[[], float] = time.monotonic,
        name: str = "store",
    ) -> None:
        """Initialize the coalescer.

        Args:
            flush: Callable performing the durable write.
            interval_seconds: Spacing between flushes while dirty.
            quiet_period_seconds: Idle time after the last mutation before the
                loop stops.
            clock: Monotonic time source (injectable for tests).
            name: Label used in log events.

        Raises:
            ValueError: If the timings are not positive.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        if quiet_period_seconds <= 0:
            raise ValueError("quiet_period_seconds must be > 0")

        self._flush = flush
        self._interval = interval_seconds
        self._quiet_period = quiet_period_seconds
        self._clock = clock
        self._name = name

        self._lock = threading.RLock()
        self._flush_lock = threading.Lock()
        self._stop = threading.Event()
        self._worker: threading.Thread | None = None
        self._dirty = False
        self._closed = False
        self._last_mutation = 0.0
        self._flush_count = 0
        self._failure_count = 0

    @property
    def dirty(self) -> bool:
        with self._lock:
            return self._dirty

    @property
    def running(self) -> bool:
        with self._lock:
            return self._worker is not None

    def stats(self) -> dict[str, int | bool]:
        with self._lock:
            return {
                "dirty": self._dirty,
                "running": self._worker is not None,
                "flushes": self._flush_count,
                "failures": self._failure_count,
            }

    def mark_dirty(self) -> None:
        """Record a mutation and make sure a flush is scheduled."""

        with self._lock:
            self._dirty = True
            self._last_mutation = self._clock()
            if self._closed or self._worker is not None:
                return
            self._worker = threading.Thread(
                target=self._run,
                name=f"{self._name}-flush",
                daemon=True,
            )
            self._worker.start()

    def tick(self) -> bool:
        """Run one loop iteration: flush if dirty, then decide whether to continue.

        Returns:
            True while the loop should keep running, False once it went idle.
        """

        with self._lock:
            pending = self._dirty
            self._dirty = False

        if pending:
            self._write(reason="interval")

        with self._lock:
            idle_for = self._clock() - self._last_mutation
            if not self._dirty and idle_for >= self._quiet_period:
                self._worker = None
                logger.debug(
                    "coalescer.idle",
                    extra={"coalescer": self._name, "idle_s": round(idle_for, 3)},
                )
                return False
            return True

    def flush_now(self) -> bool:
        """Flush synchronously if there are pending mutations.

        Returns:
            True if a write happened and succeeded.
        """

        with self._lock:
            pending = self._dirty
            self._dirty = False
        if not pending:
            return False
        return self._write(reason="explicit")

    def close(self, timeout: float | None = 5.0) -> None:
        """Stop the flush loop and write any pending mutations."""

        with self._lock:
            self._closed = True
            worker = self._worker
        self._stop.set()
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)
        with self._lock:
            self._worker = None
        self.flush_now()

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            if not self.tick():
                return

    def _write(self, *, reason: str) -> bool:
        with self._flush_lock:
            try:
                self._flush()
            except Exception as exc:
                with self._lock:
                    self._dirty = True
                    self._failure_count += 1
                logger.error(
                    "coalescer.flush_failed",
                    extra={
                        "coalescer": self._name,
                        "reason": reason,
                        "error_type": type(exc).__name__,
                        "error_msg": str(exc),
                    },
                )
                return False

        with self._lock:
            self._flush_count += 1
        logger.debug(
            "coalescer.flushed",
            extra={"coalescer": self._name, "reason": reason},
        )
        return True
