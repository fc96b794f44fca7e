from dataclasses import dataclass
from datetime import datetime

from compositor.model.message import RawMessage


@dataclass
class SenderState:
    """
    The latest values we've seen for the sparse fields of one aircraft. Most SBS-1 records are position reports that
    carry no speed, track, callsign or squawk; the other subtypes arrive less often and are cached here so they can be
    injected into the next position report.

    A value of `None` means the aircraft hasn't sent that field yet. The callsign has a third state: an empty string
    means the aircraft explicitly sent a blank callsign, which is not the same as never having sent one.

    Altitude isn't cached because every position report carries its own.
    """

    # fmt: off
    last_seen:     datetime
    ground_speed:  int | None = None
    vertical_rate: int | None = None
    track:         int | None = None
    callsign:      str | None = None
    squawk:        str | None = None
    # fmt: on

    def update(self, message: RawMessage, now: datetime) -> None:
        """
        Cache every sparse field present in `message`, zero values included, and mark the sender as seen at `now`.
        """
        self.last_seen = now

        if message.callsign is not None:
            self.callsign = message.callsign
        if message.squawk is not None:
            self.squawk = message.squawk
        if message.ground_speed is not None:
            self.ground_speed = message.ground_speed
        if message.track is not None:
            self.track = message.track
        if message.vertical_rate is not None:
            self.vertical_rate = message.vertical_rate

    def __str__(self) -> str:
        return (
            f"[{self.callsign or '':7.7}],[{self.squawk or ''}] {self.ground_speed or 0:3d}k, "
            f"{self.vertical_rate or 0:5d}f/m, {self.track or 0:3d}deg @ {self.last_seen}"
        )
