"""
Reads SBS-1 records from stdin and writes composite message batches to stdout. For example:

    nc radio.local 30003 | python -m compositor

See compositor.config.Config for the COMPOSITOR_* environment variables that control buffering and output.
"""

import asyncio
import io
import os
import signal
import sys
import traceback

import compositor.log
from compositor.aggregator import Aggregator
from compositor.buffers import Batch
from compositor.config import Config, ConfigError
from compositor.log import log
from compositor.model.message import RawMessage
from compositor.sbs1.ingester import SBSIngester
from compositor.service import AggregatorService
from compositor.writer import BatchWriter


async def main() -> int:
    compositor.log.set_src_root(os.path.dirname(__file__))

    try:
        config = Config.from_environ(os.environ)
    except ConfigError as exc:
        log(f"configuration error: {exc}")
        return os.EX_CONFIG

    raw_queue: asyncio.Queue[RawMessage] = asyncio.Queue()
    batch_queue: asyncio.Queue[Batch] = asyncio.Queue()

    aggregator = Aggregator(
        lambda _: None,
        config.make_buffer(),
        max_quiet_time=config.max_quiet_time,
        receiver_name=config.receiver_name,
        backfill_policy=config.backfill_policy,
    )
    ingester = SBSIngester(raw_queue, tz=config.timezone)
    runnables = [
        ingester,
        AggregatorService(aggregator, raw_queue, batch_queue),
        BatchWriter(batch_queue, config.output),
    ]

    # Only the ingester is stopped; shutting down its queue lets the later stages flush and stop in order.
    def graceful_shutdown(signame: str) -> None:
        log(signame)
        ingester.stop()

    loop = asyncio.get_running_loop()
    for signame in ("SIGINT", "SIGTERM"):
        loop.add_signal_handler(getattr(signal, signame), graceful_shutdown, signame)

    try:
        await asyncio.gather(*[r.run() for r in runnables])
    except Exception as exc:  # pylint: disable=broad-exception-caught
        log("uncaught exception")
        traceback_buffer = io.StringIO()
        traceback.print_exception(exc, file=traceback_buffer)
        log(traceback_buffer.getvalue())
        return os.EX_SOFTWARE

    return os.EX_OK


if __name__ == "__main__":
    _exit_status = asyncio.run(main())
    log(f"sys.exit({_exit_status})")
    sys.exit(_exit_status)
