"""
Detached background work for the request path.

Tasks submitted here are not awaited by the caller. Each one runs under its
own timeout, outside the cancellation scope of the request that spawned it,
and reports failures through logging only. On shutdown the pool is drained
with a bound; whatever is still running after the bound is cancelled.
"""

import asyncio
import logging
from typing import Awaitable, Optional, Set

logger = logging.getLogger(__name__)


class BackgroundTaskPool:
    """Tracks fire-and-forget tasks so they are neither garbage collected nor silently lost."""

    def __init__(self, default_timeout: float = 5.0):
        self.default_timeout = default_timeout
        self.active_tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def spawn(
        self,
        coro: Awaitable,
        name: str = "background-task",
        timeout: Optional[float] = None
    ) -> Optional[asyncio.Task]:
        """Schedule `coro` and return immediately. Returns None once the pool is closed."""
        if self._closed:
            logger.warning(f"Task pool closed, dropping {name}")
            coro.close()
            return None

        task = asyncio.create_task(
            self._run(coro, name, timeout if timeout is not None else self.default_timeout),
            name=name
        )
        self.active_tasks.add(task)
        task.add_done_callback(self.active_tasks.discard)
        return task

    async def _run(self, coro: Awaitable, name: str, timeout: float):
        try:
            await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"Background task {name} timed out after {timeout:.1f}s", extra={"task": name})
        except asyncio.CancelledError:
            logger.warning(f"Background task {name} cancelled", extra={"task": name})
            raise
        except Exception as e:
            logger.error(f"Background task {name} failed: {e}", extra={"task": name})

    async def drain(self, timeout: float = 10.0):
        """Stop accepting work and wait for active tasks, cancelling what outlives `timeout`."""
        self._closed = True
        if not self.active_tasks:
            return

        pending_tasks = list(self.active_tasks)
        logger.info(f"Waiting for {len(pending_tasks)} background tasks...")

        _, pending = await asyncio.wait(pending_tasks, timeout=timeout)
        if pending:
            logger.warning(f"Timeout waiting for background tasks, cancelling {len(pending)}")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        else:
            logger.info("All background tasks completed")

    async def join(self):
        """Wait for currently active tasks without closing the pool."""
        while self.active_tasks:
            await asyncio.gather(*list(self.active_tasks), return_exceptions=True)
