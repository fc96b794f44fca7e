import asyncio
import sys
from typing import TextIO

from compositor import batch
from compositor.buffers import Batch
from compositor.config import OutputFormat
from compositor.log import log
from compositor.model.json import dumps
from compositor.runnable import Runnable


class BatchWriter(Runnable):
    """
    Writes each batch released by the aggregator to a text stream (by default, stdout), one line per batch: either a
    JSON array of composites or an encoded batch blob (see `compositor.batch`). Stops once its queue is shut down and
    empty.
    """

    def __init__(
        self, in_queue: asyncio.Queue[Batch], output: OutputFormat = OutputFormat.JSON, stream: TextIO | None = None
    ):
        super().__init__()
        self._queue = in_queue
        self._output = output
        self._stream = stream if stream is not None else sys.stdout
        self._batches = 0
        self._messages = 0

    async def step(self) -> None:
        try:
            messages = await self._queue.get()
        except asyncio.QueueShutDown:
            self.stop()
            return

        self._stream.write(self.format(messages) + "\n")
        self._stream.flush()
        self._batches += 1
        self._messages += len(messages)
        self._queue.task_done()

    async def teardown(self) -> None:
        log(f"wrote {self._messages} composite messages in {self._batches} batches")

    def format(self, messages: Batch) -> str:
        match self._output:
            case OutputFormat.JSON:
                return dumps(messages)
            case OutputFormat.BLOB:
                return batch.encode(messages)
