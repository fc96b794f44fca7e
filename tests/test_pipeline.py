import asyncio
import io
import json
import os
import threading
from typing import IO

import pytest

from compositor import batch
from compositor.aggregator import Aggregator
from compositor.buffers import Batch, TrackBuffer
from compositor.config import OutputFormat
from compositor.model.message import RawMessage
from compositor.sbs1 import DecodingError
from compositor.sbs1.ingester import SBSIngester
from compositor.service import AggregatorService
from compositor.writer import BatchWriter

from conftest import SESSION, messages


def pipe(data: str) -> IO[bytes]:
    """
    Return the read end of a pipe that yields `data` and then EOF.
    """
    r, w = os.pipe()

    def write() -> None:
        with os.fdopen(w, "wb") as f:
            f.write(data.encode("ascii"))

    # Data bigger than the pipe's capacity would block a writer on this thread.
    threading.Thread(target=write, daemon=True).start()
    return os.fdopen(r, "rb")


def drain[T](queue: asyncio.Queue[T]) -> list[T]:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


def test_ingester_decode():
    ingester = SBSIngester(asyncio.Queue())
    assert ingester.decode("\r\n") is None
    assert ingester.decode("STA,,5,179,400AE7,10103,2008/11/28,14:58:51.153,2008/11/28,14:58:51.153,RM") is None
    assert ingester.decode(SESSION.splitlines()[1] + "\r\n") == messages(SESSION)[1]
    with pytest.raises(DecodingError):
        ingester.decode("MSG,3,1,1,A81BD0")


def test_ingester():
    async def run() -> list[RawMessage]:
        queue: asyncio.Queue[RawMessage] = asyncio.Queue()
        data = "\n".join(["", "MSG,3,garbage", *SESSION.splitlines(), "STA,,5,179,400AE7,10103"]) + "\n"
        with pipe(data) as stream:
            await SBSIngester(queue, stream).run()
        with pytest.raises(asyncio.QueueShutDown):
            await queue.put(messages(SESSION)[0])
        return drain(queue)

    assert asyncio.run(run()) == messages(SESSION)


def test_ingester_skips_oversized_lines():
    async def run() -> list[RawMessage]:
        queue: asyncio.Queue[RawMessage] = asyncio.Queue()
        data = "X" * 70000 + "\n" + "MSG," + "7" * 70000 + "\n" + SESSION + "\n"
        with pipe(data) as stream:
            await SBSIngester(queue, stream).run()
        return drain(queue)

    assert asyncio.run(run()) == messages(SESSION)


def test_service(clock):
    async def run() -> list[Batch]:
        in_queue: asyncio.Queue[RawMessage] = asyncio.Queue()
        out_queue: asyncio.Queue[Batch] = asyncio.Queue()
        service = AggregatorService(Aggregator(lambda _: None, clock=clock), in_queue, out_queue)
        for message in messages(SESSION):
            in_queue.put_nowait(message)
        in_queue.shutdown()

        await service.run()
        assert in_queue.empty()
        return drain(out_queue)

    delivered = asyncio.run(run())
    assert [len(batch) for batch in delivered] == [2], "buffered composites not flushed at shutdown"


def test_service_flushes_tracks_when_idle(clock):
    async def run() -> list[Batch]:
        in_queue: asyncio.Queue[RawMessage] = asyncio.Queue()
        out_queue: asyncio.Queue[Batch] = asyncio.Queue()
        aggregator = Aggregator(lambda _: None, TrackBuffer(now=clock.now), clock=clock)
        service = AggregatorService(aggregator, in_queue, out_queue)
        for message in messages(SESSION, generated_at=clock.now):
            in_queue.put_nowait(message)

        task = asyncio.create_task(service.run())
        while not in_queue.empty():
            await asyncio.sleep(0)
        clock.advance(seconds=31)
        batches = [await out_queue.get()]
        service.stop()
        await task
        return batches

    delivered = asyncio.run(run())
    assert [len(batch) for batch in delivered] == [2]


@pytest.mark.parametrize("output", [OutputFormat.JSON, OutputFormat.BLOB])
def test_pipeline(clock, output):
    async def run() -> str:
        raw_queue: asyncio.Queue[RawMessage] = asyncio.Queue()
        batch_queue: asyncio.Queue[Batch] = asyncio.Queue()
        out = io.StringIO()
        with pipe(SESSION + "\n" + SESSION + "\n") as stream:
            await asyncio.gather(
                SBSIngester(raw_queue, stream).run(),
                AggregatorService(
                    Aggregator(lambda _: None, receiver_name="receiver-1", clock=clock), raw_queue, batch_queue
                ).run(),
                BatchWriter(batch_queue, output, out).run(),
            )
        return out.getvalue()

    lines = asyncio.run(run()).splitlines()
    assert len(lines) == 1

    if output is OutputFormat.JSON:
        composites = json.loads(lines[0])
        assert [c["altitude"] for c in composites] == [20125, 20075, 20125, 20125, 20075]
        assert {c["receiver_name"] for c in composites} == {"receiver-1"}
        assert composites[-1]["callsign"] == "VRD961"
    else:
        composites = batch.decode(lines[0])
        assert len(composites) == 5
        assert composites[-1].callsign == "VRD961"
