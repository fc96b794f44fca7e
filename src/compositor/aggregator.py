from collections.abc import Callable
from datetime import timedelta

from compositor.buffers import Batch, CompositeBuffer, MessageBuffer
from compositor.log import log
from compositor.model.message import RawMessage
from compositor.senders import SenderCache
from compositor.synthesizer import BackfillPolicy, synthesize
from compositor.util import Clock, utc_now


class Aggregator:
    """
    The aggregator turns a stream of partial SBS-1 messages into composite messages and hands them to a consumer in
    batches. For each message it:

      1. ages out senders that have gone quiet (at most once per second),
      2. starts tracking an unknown sender if the message has a position, and otherwise drops it,
      3. updates a tracked sender's cached state and, if the message has a position, buffers a composite, and
      4. for buffers that flush on add, delivers whatever batches the buffer says are ready.

    What "ready" means is up to the buffer; see MessageBuffer and TrackBuffer. Each batch is passed to `deliver` as it
    is released. Delivery is synchronous, so a slow consumer delays the next flush, and any exception it raises
    propagates to the caller of `add`, `flush` or `final_flush`.

    Example:

        aggregator = Aggregator(lambda batch: print(f"just flushed {len(batch)} messages"))
        for line in lines:
            aggregator.add(sbs1.parse(line))
        aggregator.final_flush()

    The aggregator isn't thread-safe. Drive it from a single thread or task.
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        deliver: Callable[[Batch], None],
        buffer: CompositeBuffer | None = None,
        *,
        max_quiet_time: timedelta = timedelta(seconds=360),
        receiver_name: str = "",
        backfill_policy: BackfillPolicy = BackfillPolicy.EMIT_ON_POSITION,
        clock: Clock = utc_now,
    ):
        self.deliver = deliver
        self.buffer = buffer if buffer is not None else MessageBuffer()
        self.senders = SenderCache(max_quiet_time)
        self.receiver_name = receiver_name
        self.backfill_policy = backfill_policy
        self._clock = clock

    def add(self, message: RawMessage) -> None:
        now = self._clock()

        removed = self.senders.age_out(now)
        if removed:
            log(f"aged out {removed} quiet senders, {len(self.senders)} remain")

        sender = self.senders.get(message.icao_address)
        if sender is None:
            if message.position is not None:
                self.senders.admit(message.icao_address, now)
        else:
            sender.update(message, now)
            composite = synthesize(message, sender, self.receiver_name, self.backfill_policy)
            if composite is not None:
                self.buffer.add_message(composite)

        if self.buffer.flush_on_add:
            self._deliver(self.buffer.flush(now))

    def flush(self) -> None:
        """
        Deliver the batches the buffer considers ready. Call this periodically; a TrackBuffer only flushes from here.
        """
        self._deliver(self.buffer.flush(self._clock()))

    def final_flush(self) -> None:
        """
        Deliver everything still buffered, ready or not. Intended for shutdown.
        """
        self._deliver(self.buffer.drain(self._clock()))

    def _deliver(self, batches: list[Batch]) -> None:
        for batch in batches:
            self.deliver(batch)

    def __str__(self) -> str:
        return f"{type(self).__name__} (maxwait={self.senders.max_quiet_time})\n{self.senders}{self.buffer}"
