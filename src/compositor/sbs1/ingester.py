import asyncio
from datetime import timezone, tzinfo
import sys
from typing import IO, cast

from compositor.log import log
from compositor.model.message import RawMessage
from compositor.runnable import Runnable
from compositor.sbs1 import DecodingError
from compositor.sbs1.codec import parse


# STA, ID, AIR, SEL and CLK records describe receiver and database events, not aircraft state.
TELEMETRY_TYPES = frozenset({"MSG", "MLAT"})


class SBSIngester(Runnable):
    """
    The SBS ingester reads SBS-1 records from a pipe (by default, stdin), decodes them, and delivers each decoded
    message to an asyncio Queue. Each record must be terminated by a newline. A receiver's port 30003 can be attached
    with `nc`, and a recorded session can be played back with `python -m compositor.replay`.

    When the input ends, the ingester stops and shuts its queue down, which lets the downstream stages drain what's
    left and shut down in turn.
    """

    def __init__(
        self, out_queue: asyncio.Queue[RawMessage], stream: IO[bytes] | None = None, tz: tzinfo = timezone.utc
    ):
        super().__init__()
        self._queue = out_queue
        self._stream = stream if stream is not None else sys.stdin.buffer
        self._tz = tz
        self._errors_seen: set[str] = set()
        self._reader: asyncio.StreamReader | None = None
        self._transport: asyncio.ReadTransport | None = None

    async def setup(self) -> None:
        loop = asyncio.get_running_loop()
        self._reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(self._reader)
        self._transport, _ = await loop.connect_read_pipe(lambda: protocol, self._stream)

    async def step(self) -> None:
        # Wake up at least once a second so that a stop request is noticed even when the input is idle.
        try:
            async with asyncio.timeout(1):
                line = await cast(asyncio.StreamReader, self._reader).readline()
        except TimeoutError:
            return
        except ValueError as exc:
            # readline raises this for a line longer than the stream limit, after discarding what it buffered.
            error = str(exc)
            if error not in self._errors_seen:
                log(f"oversized line: {error} (future errors of this kind will be suppressed)")
                self._errors_seen.add(error)
            return

        if not line:
            log("end of input")
            self.stop()
            return

        try:
            decoded = self.decode(str(line, encoding="ASCII"))
        except UnicodeDecodeError as exc:
            log(f"not 7-bit ASCII: {line!r}: {exc}")
            return
        except DecodingError as exc:
            error = str(exc)
            if error not in self._errors_seen:
                log(f"decoding error: {exc.line!r}: {error} (future errors of this kind will be suppressed)")
                self._errors_seen.add(error)
            return

        if decoded is None:
            return

        try:
            self._queue.put_nowait(decoded)
        except asyncio.QueueShutDown:
            # If we get here this means the system is performing a graceful shutdown.
            self.stop()

    async def teardown(self) -> None:
        if self._transport is not None:
            self._transport.close()
        self._reader = None
        self._transport = None
        self._queue.shutdown()

    def decode(self, line: str) -> RawMessage | None:
        """
        Decode one line of input. Returns None for blank lines and for records that don't describe an aircraft, and
        raises DecodingError for malformed records.
        """
        line = line.strip()
        if not line:
            return None
        if line.split(",", 1)[0] not in TELEMETRY_TYPES:
            return None
        return parse(line, self._tz)
