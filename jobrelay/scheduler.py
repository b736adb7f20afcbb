import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Set

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[None]]


class Scheduler(ABC):
    """Runs an action once after a delay without blocking the caller."""

    @abstractmethod
    def schedule(self, delay: float, action: Action) -> None:
        ...

    async def shutdown(self) -> None:
        """Drop any actions that have not fired yet."""


class AsyncioScheduler(Scheduler):
    """Scheduler backed by tasks on the running event loop.

    Tasks are kept referenced until they finish so the loop cannot garbage
    collect them mid-sleep, and are cancelled on shutdown.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def schedule(self, delay: float, action: Action) -> None:
        task = asyncio.get_running_loop().create_task(self._run_later(delay, action))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def _run_later(self, delay: float, action: Action) -> None:
        await asyncio.sleep(delay)
        try:
            await action()
        except Exception:
            logger.error("Scheduled action failed", exc_info=True)

    async def shutdown(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d pending scheduled action(s)", len(tasks))
