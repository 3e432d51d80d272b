# imagepipe/services/image_pipeline/batch_scheduler.py
"""
Sequential Batch Scheduler - runs queued requests one at a time, in order.

Each submitted item gets its own future. A single drain task pops items
from a FIFO queue and awaits the handler for exactly one item at a time, so
there is never more than one pipeline run in flight per scheduler. A failing
item resolves its own future with the exception and the drain moves on.
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Iterable, List, Optional, Tuple

from ...enums import LogEmoji, LoggerName, LogSource
from ...models.process_options_model import OptionsInput
from ...models.processed_result_model import ProcessedResult
from ...utils.validation_helpers import ImageInput
from ..logger import get_service_logger

logger = get_service_logger(LoggerName.BATCH_SCHEDULER, LogSource.SCHEDULER, LogEmoji.QUEUE)

BatchHandler = Callable[[ImageInput, OptionsInput], Awaitable[ProcessedResult]]


@dataclass
class QueueItem:
    """One pending request and the future its caller awaits."""

    input: ImageInput
    options: OptionsInput
    future: "asyncio.Future[ProcessedResult]" = field(repr=False)


class SequentialBatchScheduler:
    """
    FIFO scheduler with a single worker.

    Items whose futures were cancelled before they started are skipped.
    An item that already started runs to completion.
    """

    def __init__(self, handler: BatchHandler):
        """
        Args:
            handler: Coroutine function processing one (input, options) pair
        """
        self._handler = handler
        self._queue: Deque[QueueItem] = deque()
        self._drain_task: Optional[asyncio.Task] = None
        self._in_flight: Optional[QueueItem] = None

    @property
    def pending_count(self) -> int:
        """Number of items waiting to start."""
        return len(self._queue)

    @property
    def in_flight(self) -> bool:
        """True while an item is being processed."""
        return self._in_flight is not None

    def submit(
        self, data: ImageInput, options: OptionsInput = None
    ) -> "asyncio.Future[ProcessedResult]":
        """
        Queue one request.

        Returns:
            Future resolved with the handler's result or exception
        """
        future = asyncio.get_running_loop().create_future()
        self._queue.append(QueueItem(input=data, options=options, future=future))
        self._ensure_draining()
        return future

    async def submit_all(
        self,
        items: Iterable[Tuple[ImageInput, OptionsInput]],
        return_exceptions: bool = False,
    ) -> List[Any]:
        """
        Queue several requests and wait for all of them.

        Results come back in submission order. Every item runs even when an
        earlier one fails.

        Args:
            items: (input, options) pairs
            return_exceptions: Put exceptions in the result list instead of
                raising the first failure (in submission order)
        """
        futures = [self.submit(data, options) for data, options in items]
        if not futures:
            return []

        # Wait for everything first so no failure is left unobserved
        await asyncio.wait(futures)

        results: List[Any] = []
        for future in futures:
            if future.cancelled():
                if return_exceptions:
                    results.append(asyncio.CancelledError())
                    continue
                raise asyncio.CancelledError()

            error = future.exception()
            if error is not None:
                if not return_exceptions:
                    raise error
                results.append(error)
            else:
                results.append(future.result())
        return results

    def _ensure_draining(self) -> None:
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        processed = 0
        while self._queue:
            item = self._queue.popleft()
            if item.future.cancelled():
                logger.debug("Skipping cancelled batch item")
                continue

            self._in_flight = item
            try:
                result = await self._handler(item.input, item.options)
            except Exception as e:
                if not item.future.done():
                    item.future.set_exception(e)
            else:
                if not item.future.done():
                    item.future.set_result(result)
            finally:
                self._in_flight = None
            processed += 1

        if processed:
            logger.debug(f"Batch queue drained ({processed} item(s) processed)")
