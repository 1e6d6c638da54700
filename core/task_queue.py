"""Bounded-concurrency queue for independent asyncio jobs.

Jobs are argument tuples handed to one task function. At most ``concurrency``
of them run at once; whenever one settles, the next pending job starts from
the completion callback, so no external driver loop is needed.

Every settled job leaves a ``JobOutcome``. Successful values are also
collected in ``results`` in completion order (not submission order).
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Dict, Generic, List, Optional, Set, Tuple, TypeVar

LOGGER = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class Job:
    args: Tuple[Any, ...]


@dataclass(frozen=True)
class JobOutcome(Generic[R]):
    """Result of one settled job: either ``value`` or ``error`` is meaningful."""

    args: Tuple[Any, ...]
    value: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BoundedTaskQueue(Generic[R]):
    """Run ``task(*args)`` for every enqueued job with a concurrency ceiling.

    The queue never cancels running work. Failures are captured per job and
    never stop the queue.

    Example::

        queue = BoundedTaskQueue(fetch_page, concurrency=5)
        for url in urls:
            queue.enqueue(url)
        await queue.finished()
        pages = queue.results
    """

    def __init__(
        self,
        task: Callable[..., Awaitable[R]],
        concurrency: int = 5,
        *,
        name: str = "queue",
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.task = task
        self.concurrency = concurrency
        self.name = name

        self._pending: Deque[Job] = deque()
        self._running: Set[asyncio.Task] = set()
        self._jobs: Dict[asyncio.Task, Job] = {}
        self._idle = asyncio.Event()
        self._idle.set()

        self.results: List[R] = []
        self.outcomes: List[JobOutcome[R]] = []
        self.peak_running = 0

    @property
    def queued(self) -> int:
        return len(self._pending)

    @property
    def running(self) -> int:
        return len(self._running)

    @property
    def failures(self) -> List[JobOutcome[R]]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def enqueue(self, *args: Any) -> None:
        """Append a job and start it right away if a slot is free."""
        self._pending.append(Job(args))
        self._idle.clear()
        self._run()

    async def finished(self) -> None:
        """Wait until nothing is pending or running.

        The state is re-checked after every wake-up: a job enqueued in the
        same loop iteration that emptied the queue keeps the caller waiting.
        """
        while self._pending or self._running:
            await self._idle.wait()

    def _run(self) -> None:
        while self._pending and len(self._running) < self.concurrency:
            job = self._pending.popleft()
            task = asyncio.create_task(self._invoke(job))
            self._running.add(task)
            self._jobs[task] = job
            self.peak_running = max(self.peak_running, len(self._running))
            task.add_done_callback(self._on_done)

    async def _invoke(self, job: Job) -> R:
        return await self.task(*job.args)

    def _on_done(self, task: asyncio.Task) -> None:
        self._running.discard(task)
        job = self._jobs.pop(task)

        if task.cancelled():
            error: Optional[BaseException] = asyncio.CancelledError()
        else:
            error = task.exception()

        if error is None:
            value = task.result()
            self.results.append(value)
            self.outcomes.append(JobOutcome(args=job.args, value=value))
        else:
            LOGGER.warning(
                "%s job %r failed: %s: %s",
                self.name,
                job.args,
                type(error).__name__,
                error,
            )
            self.outcomes.append(JobOutcome(args=job.args, error=error))

        self._run()
        if not self._pending and not self._running:
            self._idle.set()
