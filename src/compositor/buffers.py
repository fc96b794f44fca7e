"""
Holding areas for composite messages, and the policies that decide when their contents are released.

Both buffers decide readiness from the generation timestamps in the messages rather than from when the messages were
received, which gives better end-to-end delivery when the pipeline itself falls behind. The catch is that late
messages carry old timestamps and always look ready, which would flush on every call and slow things down so much that
we never catch up. So each buffer also limits how often it can flush.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from operator import attrgetter

from compositor.model.icao_address import ICAOAddress
from compositor.model.message import CompositeMessage
from compositor.util import Throttle, utc_now


type Batch = list[CompositeMessage]

TRACK_FLUSH_INTERVAL = timedelta(seconds=1)


class CompositeBuffer(ABC):
    """
    A buffer accumulates composite messages and, when asked, returns the batches that are ready to be delivered.
    `flush_on_add` tells the aggregator whether to check for ready batches after every message or only when its own
    `flush` is called.
    """

    flush_on_add: bool = False

    @abstractmethod
    def add_message(self, message: CompositeMessage) -> None: ...

    @abstractmethod
    def flush(self, now: datetime) -> list[Batch]:
        """
        Remove and return the batches that are ready at `now`.
        """

    @abstractmethod
    def drain(self, now: datetime) -> list[Batch]:
        """
        Remove and return everything, ready or not.
        """

    @abstractmethod
    def __len__(self) -> int:
        """
        Return the number of messages held.
        """


class MessageBuffer(CompositeBuffer):
    """
    A single list of composites in arrival order, flushed all at once when its oldest message has been held for
    `max_message_age`, but never more often than every `min_publish_interval`. Batches interleave aircraft.
    """

    flush_on_add = True

    def __init__(
        self,
        max_message_age: timedelta = timedelta(seconds=30),
        min_publish_interval: timedelta = timedelta(seconds=5),
    ):
        self.max_message_age = max_message_age
        self.min_publish_interval = min_publish_interval
        self.messages: Batch = []
        self.last_flush: datetime | None = None

    def add_message(self, message: CompositeMessage) -> None:
        self.messages.append(message)

    def flush(self, now: datetime) -> list[Batch]:
        if not self.messages:
            return []
        if now - self.messages[0].generated_at < self.max_message_age:
            return []
        if self.last_flush is not None and now - self.last_flush < self.min_publish_interval:
            return []
        return self.drain(now)

    def drain(self, now: datetime) -> list[Batch]:
        batch, self.messages = self.messages, []
        self.last_flush = now
        return [batch] if batch else []

    def __len__(self) -> int:
        return len(self.messages)

    def __str__(self) -> str:
        s = f"--{{ MessageBuffer (maxage={self.max_message_age}, minpub={self.min_publish_interval}) }}--\n"
        for i, m in enumerate(self.messages):
            s += f"[{i:02d}] {m}\n"
        return s


@dataclass
class Track:
    """
    The composites for one aircraft, in arrival order.
    """

    messages: Batch = field(default_factory=list)

    def age(self, now: datetime) -> timedelta:
        """
        Time since the first message was generated. An empty track is treated as a day old.
        """
        if not self.messages:
            return timedelta(days=1)
        return now - self.messages[0].generated_at


class TrackBuffer(CompositeBuffer):
    """
    Composites grouped by aircraft. A track is flushed as its own batch, sorted by generation time, once its first
    message is older than `max_age`. Batches never mix aircraft.

    Flushing is driven by the caller's periodic `flush` calls and is limited to once per second.
    """

    def __init__(self, max_age: timedelta = timedelta(seconds=30), now: datetime | None = None):
        self.max_age = max_age
        self.tracks: dict[ICAOAddress, Track] = {}
        self._flush_throttle = Throttle(TRACK_FLUSH_INTERVAL, last=now or utc_now())

    def add_message(self, message: CompositeMessage) -> None:
        try:
            track = self.tracks[message.icao_address]
        except KeyError:
            track = Track()
            self.tracks[message.icao_address] = track
        track.messages.append(message)

    def flush(self, now: datetime) -> list[Batch]:
        if not self._flush_throttle.ready(now):
            return []
        ready = [k for k, v in self.tracks.items() if v.age(now) > self.max_age]
        return self._remove(ready)

    def drain(self, now: datetime) -> list[Batch]:
        return self._remove(list(self.tracks))

    def _remove(self, icao_addresses: list[ICAOAddress]) -> list[Batch]:
        # Receivers deliver out of order, so each track is put back in time order before it's released.
        return [sorted(self.tracks.pop(k).messages, key=attrgetter("generated_at")) for k in icao_addresses]

    @property
    def last_flush(self) -> datetime | None:
        return self._flush_throttle.last

    def __len__(self) -> int:
        return sum(len(t.messages) for t in self.tracks.values())
