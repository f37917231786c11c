"""Bounded-concurrency verification of off-site links."""

import asyncio
import logging
from collections import deque
from typing import Callable, Deque, Set

from linkcrawl.constants import MAX_CONCURRENT_LINK_CHECKS
from linkcrawl.models import BrokenLink, ExternalWorkItem
from linkcrawl.verifier import LinkVerifier

logger = logging.getLogger(__name__)


class ExternalCheckScheduler:
    """Drains a queue of external links through a LinkVerifier.

    At most ``max_concurrency`` verifications are in flight at once. All state
    changes happen on the event loop thread (in ``submit``, ``drain`` and task
    done-callbacks), so the counter and the pending deque are never updated
    concurrently.
    """

    def __init__(
        self,
        verifier: LinkVerifier,
        on_broken: Callable[[BrokenLink], None],
        is_running: Callable[[], bool],
        max_concurrency: int = MAX_CONCURRENT_LINK_CHECKS,
    ):
        """Initialize the scheduler.

        Args:
            verifier: Performs the actual HEAD/GET checks
            on_broken: Called with each BrokenLink found
            is_running: Returns False once the session has been stopped
            max_concurrency: Ceiling on simultaneous verifications
        """
        self.verifier = verifier
        self.max_concurrency = max_concurrency
        self._on_broken = on_broken
        self._is_running = is_running

        self._pending: Deque[ExternalWorkItem] = deque()
        self._tasks: Set[asyncio.Task] = set()
        self._active = 0
        self._draining = False

        self.peak_active = 0
        self.completed = 0

    @property
    def active(self) -> int:
        """Verifications currently in flight."""
        return self._active

    @property
    def pending(self) -> int:
        """Items waiting to be dispatched."""
        return len(self._pending)

    @property
    def idle(self) -> bool:
        return not self._pending and self._active == 0

    def submit(self, item: ExternalWorkItem) -> None:
        """Queue a link for verification and try to dispatch it."""
        self._pending.append(item)
        self.drain()

    def drain(self) -> None:
        """Dispatch pending items until the ceiling is reached."""
        if self._draining:
            return
        self._draining = True
        try:
            while (
                self._pending
                and self._is_running()
                and self._active < self.max_concurrency
            ):
                item = self._pending.popleft()
                self._active += 1
                self.peak_active = max(self.peak_active, self._active)

                task = asyncio.create_task(self._check(item), name=f"verify {item.url}")
                self._tasks.add(task)
                task.add_done_callback(self._on_done)
        finally:
            self._draining = False

    async def _check(self, item: ExternalWorkItem) -> None:
        outcome = await self.verifier.verify(item.url)
        if outcome.is_broken:
            self._on_broken(
                BrokenLink(url=item.url, status=outcome.broken_status, source=item.source)
            )

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        self._active -= 1
        self.completed += 1

        if not task.cancelled() and task.exception() is not None:
            logger.error(
                f"Unexpected failure in {task.get_name()}",
                exc_info=task.exception(),
            )

        self.drain()

    async def join(self) -> None:
        """Wait for every in-flight verification to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
