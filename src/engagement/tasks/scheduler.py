"""
Periodic tasks with explicit cancel handles.

Timers (trending auto-refresh, trending rotation) are started by the view that
needs them and cancelled when that view goes away, usually by adopting the
handle into a `ViewScope`.
"""
import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

TickFn = Callable[[], Awaitable[object] | object]


class ScheduledTask:
    """Handle on a running periodic task."""

    def __init__(self, task: asyncio.Task, name: str, interval: float) -> None:
        self._task = task
        self.name = name
        self.interval = interval

    @classmethod
    def every(
        cls,
        interval: float,
        tick: TickFn,
        *,
        name: str,
        run_immediately: bool = False,
    ) -> "ScheduledTask":
        """
        Run `tick` every `interval` seconds until cancelled.

        `tick` may be a plain function or return an awaitable; the next sleep
        starts after it finished, so ticks never overlap. A failing tick is
        logged and the schedule keeps going.

        Must be called from a running event loop.
        """
        if interval <= 0:
            raise ValueError("interval must be greater than zero")
        task = asyncio.create_task(
            _run_periodically(interval, tick, name, run_immediately),
            name=f"scheduled:{name}",
        )
        logger.debug("scheduled_task_started name=%s interval=%s", name, interval)
        return cls(task, name, interval)

    @property
    def running(self) -> bool:
        """False once cancelled."""
        return not self._task.done()

    def cancel(self) -> None:
        """Stop the schedule. Safe to call more than once."""
        if not self._task.done():
            self._task.cancel()
            logger.debug("scheduled_task_cancelled name=%s", self.name)

    async def aclose(self) -> None:
        """Cancel and wait until the task has stopped."""
        self.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task


async def _run_periodically(
    interval: float, tick: TickFn, name: str, run_immediately: bool,
) -> None:
    if run_immediately:
        await _invoke(tick, name)
    while True:
        await asyncio.sleep(interval)
        await _invoke(tick, name)


async def _invoke(tick: TickFn, name: str) -> None:
    try:
        result = tick()
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("scheduled_task_failed name=%s", name)
