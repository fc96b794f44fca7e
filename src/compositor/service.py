import asyncio

from compositor.aggregator import Aggregator
from compositor.buffers import Batch
from compositor.model.message import RawMessage
from compositor.runnable import Runnable


class AggregatorService(Runnable):
    """
    Runs an Aggregator as a pipeline stage. Raw messages arrive on `in_queue`; released batches are put on
    `out_queue`. The service is the aggregator's only user, so `add` and the periodic `flush` never overlap.

    The aggregator is flushed after every message and, when no message arrives, at least once a second, so a track
    buffer still releases its tracks while the input is idle. When `in_queue` is shut down and empty, the service stops,
    hands off everything still buffered, and shuts `out_queue` down.
    """

    def __init__(self, aggregator: Aggregator, in_queue: asyncio.Queue[RawMessage], out_queue: asyncio.Queue[Batch]):
        super().__init__()
        self.aggregator = aggregator
        self.in_queue = in_queue
        self.out_queue = out_queue
        self.aggregator.deliver = self._deliver

    async def step(self) -> None:
        message: RawMessage | None = None
        try:
            async with asyncio.timeout(1):
                message = await self.in_queue.get()
        except TimeoutError:
            pass
        except asyncio.QueueShutDown:
            self.stop()
            return

        if message is not None:
            self.aggregator.add(message)
            self.in_queue.task_done()
        self.aggregator.flush()

    async def teardown(self) -> None:
        self.aggregator.final_flush()
        self.out_queue.shutdown()

    def _deliver(self, batch: Batch) -> None:
        self.out_queue.put_nowait(batch)
