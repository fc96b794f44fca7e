"""
Message value types. A RawMessage is one decoded SBS-1 record; a CompositeMessage merges a position report with data
cached from earlier messages sent by the same aircraft.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Self

from compositor.model.icao_address import ICAOAddress
from compositor.model.position import Position


@dataclass(frozen=True)
class RawMessage:
    """
    A single SBS-1 record. Receivers emit several record subtypes per aircraft per second, and each subtype fills in
    only a few of the optional fields. An optional field is `None` when the record didn't carry it; zero, an empty
    string and `False` are all values that were actually observed.

    Timestamps are timezone-aware and in UTC.
    """

    # fmt: off
    msg_type:            str
    subtype:             int
    icao_address:        ICAOAddress
    generated_at:        datetime
    logged_at:           datetime

    callsign:            str      | None = None
    altitude:            int      | None = None
    ground_speed:        int      | None = None
    track:               int      | None = None
    position:            Position | None = None
    vertical_rate:       int      | None = None
    squawk:              str      | None = None

    alert_squawk_change: bool     | None = None
    emergency:           bool     | None = None
    spi:                 bool     | None = None
    is_on_ground:        bool     | None = None

    num_stations:        int      | None = None
    # fmt: on

    def is_mlat(self) -> bool:
        return self.msg_type == "MLAT"

    def is_masked(self) -> bool:
        return self.icao_address.masked

    def __str__(self) -> str:
        s = f"{self.msg_type}{self.subtype} : {self.icao_address}"
        if self.position is not None:
            s += f" {self.position}"
        return s


@dataclass(frozen=True)
class CompositeMessage(RawMessage):
    """
    A RawMessage with every field we could find for the aircraft filled in. Composites are only ever built from
    messages that carry a position, so `position` is never `None`.
    """

    receiver_name: str = ""

    @classmethod
    def from_message(cls, message: RawMessage, receiver_name: str = "", **overrides: Any) -> Self:
        values = {f.name: getattr(message, f.name) for f in fields(RawMessage)}
        values.update(overrides)
        return cls(**values, receiver_name=receiver_name)

    @property
    def data_system(self) -> str:
        """
        Distinguishes genuine ADS-B data from positions synthesized by multilateration.
        """
        match self.msg_type:
            case "MLAT":
                return "MLAT"
            case "MSG":
                return "ADSB"
            case _:
                return self.msg_type

    def signature(self) -> "Signature":
        return Signature(self.icao_address, self.position)

    def __str__(self) -> str:
        return (
            f"{self.msg_type}{self.subtype}+ : {self.icao_address}[{self.callsign or '':7.7}] "
            f"{self.altitude or 0:5d}f, {self.ground_speed or 0:3d}k, {self.vertical_rate or 0:5d}f/m, "
            f"{self.track or 0:3d}deg, {self.position} @ {self.generated_at} ({self.receiver_name}) {self.data_system}"
        )


@dataclass(frozen=True)
class Signature:
    """
    The subset of a composite message that identifies its content. Two composites with equal signatures describe the
    same observation, e.g. one aircraft position reported through two different receivers.
    """

    icao_address: ICAOAddress
    position: Position | None


def unique(composites: Iterable[CompositeMessage]) -> Iterator[CompositeMessage]:
    """
    Yield composites in order, skipping any whose signature has already been seen.
    """
    seen: set[Signature] = set()
    for composite in composites:
        signature = composite.signature()
        if signature in seen:
            continue
        seen.add(signature)
        yield composite
