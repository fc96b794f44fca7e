"""
Binary encoding of composite message batches, for handing a whole batch across a process or storage boundary as a
single string. This is not SBS-1: every field of every composite survives the round trip, including which optional
fields were absent.

Layout (big-endian), base64-encoded:

    header   "CMB" version:u8 count:u32
    record   length:u32 body[length]        (repeated `count` times)

Inside a body, strings are a u16 byte length followed by UTF-8, timestamps are i64 microseconds since the Unix epoch
(UTC), and each optional field is a u8 presence flag followed by the value if present. Booleans are a single u8:
0 absent, 1 false, 2 true.
"""

import base64
import binascii
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
import struct

from compositor.model.icao_address import ICAOAddress
from compositor.model.message import CompositeMessage
from compositor.model.position import Position


MAGIC = b"CMB"
VERSION = 1

_HEADER = struct.Struct(">3sBI")
_U8 = struct.Struct(">B")
_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")
_I64 = struct.Struct(">q")
_LAT_LON = struct.Struct(">dd")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


class BatchDecodingError(ValueError):
    """
    Exception raised when a string isn't a valid encoded batch.
    """


class BatchEncodingError(ValueError):
    """
    Exception raised when a composite has a value the format can't hold: a string longer than 65535 bytes, a naive
    timestamp, or an integer outside the signed 64-bit range.
    """


def encode(messages: Iterable[CompositeMessage]) -> str:
    try:
        records = [_encode_record(m) for m in messages]
    except struct.error as exc:
        raise BatchEncodingError(str(exc)) from exc
    buffer = bytearray(_HEADER.pack(MAGIC, VERSION, len(records)))
    for record in records:
        buffer.extend(_U32.pack(len(record)))
        buffer.extend(record)
    return base64.b64encode(bytes(buffer)).decode("ascii")


def decode(blob: str) -> list[CompositeMessage]:
    try:
        data = base64.b64decode(blob, validate=True)
        reader = _Reader(data)
        magic, version, count = reader.unpack(_HEADER)
        if magic != MAGIC:
            raise BatchDecodingError(f"bad magic {magic!r}")
        if version != VERSION:
            raise BatchDecodingError(f"unsupported version {version}")
        messages = []
        for _ in range(count):
            (length,) = reader.unpack(_U32)
            record = _Reader(reader.take(length))
            messages.append(_decode_record(record))
            record.expect_end()
        reader.expect_end()
    except BatchDecodingError:
        raise
    except (binascii.Error, struct.error, OverflowError, ValueError) as exc:
        # ValueError covers undecodable UTF-8 and out-of-range ICAO addresses.
        raise BatchDecodingError(str(exc)) from exc
    return messages


class _Writer:
    def __init__(self) -> None:
        self.buffer = bytearray()

    def pack(self, fmt: struct.Struct, *values: object) -> None:
        self.buffer.extend(fmt.pack(*values))

    def string(self, value: str) -> None:
        raw = value.encode("utf-8")
        if len(raw) > 0xFFFF:
            raise BatchEncodingError(f"string of {len(raw)} bytes is too long: {value[:20]!r}...")
        self.pack(_U16, len(raw))
        self.buffer.extend(raw)

    def timestamp(self, value: datetime) -> None:
        if value.utcoffset() is None:
            raise BatchEncodingError(f"timestamp has no time zone: {value}")
        self.pack(_I64, (value - _EPOCH) // _MICROSECOND)

    def optional_string(self, value: str | None) -> None:
        self.pack(_U8, value is not None)
        if value is not None:
            self.string(value)

    def optional_int(self, value: int | None) -> None:
        self.pack(_U8, value is not None)
        if value is not None:
            self.pack(_I64, value)

    def optional_bool(self, value: bool | None) -> None:
        self.pack(_U8, 0 if value is None else int(value) + 1)

    def optional_position(self, value: Position | None) -> None:
        self.pack(_U8, value is not None)
        if value is not None:
            self.pack(_LAT_LON, value.latitude, value.longitude)


class _Reader:
    def __init__(self, data: bytes):
        self._data = data
        self._offset = 0

    def take(self, length: int) -> bytes:
        if self._offset + length > len(self._data):
            raise BatchDecodingError("truncated batch")
        chunk = self._data[self._offset : self._offset + length]
        self._offset += length
        return chunk

    def unpack(self, fmt: struct.Struct) -> tuple:
        return fmt.unpack(self.take(fmt.size))

    def expect_end(self) -> None:
        if self._offset != len(self._data):
            raise BatchDecodingError(f"{len(self._data) - self._offset} unexpected trailing bytes")

    def present(self) -> bool:
        (flag,) = self.unpack(_U8)
        if flag > 1:
            raise BatchDecodingError(f"bad presence flag {flag}")
        return flag == 1

    def string(self) -> str:
        (length,) = self.unpack(_U16)
        return self.take(length).decode("utf-8")

    def integer(self) -> int:
        return self.unpack(_I64)[0]

    def timestamp(self) -> datetime:
        return _EPOCH + self.integer() * _MICROSECOND

    def optional_string(self) -> str | None:
        return self.string() if self.present() else None

    def optional_int(self) -> int | None:
        return self.integer() if self.present() else None

    def optional_bool(self) -> bool | None:
        (value,) = self.unpack(_U8)
        match value:
            case 0:
                return None
            case 1 | 2:
                return value == 2
            case _:
                raise BatchDecodingError(f"bad boolean {value}")

    def optional_position(self) -> Position | None:
        if not self.present():
            return None
        latitude, longitude = self.unpack(_LAT_LON)
        return Position(longitude=longitude, latitude=latitude)


def _encode_record(m: CompositeMessage) -> bytes:
    w = _Writer()
    w.string(m.msg_type)
    w.pack(_I64, m.subtype)
    w.string(str(m.icao_address))
    w.timestamp(m.generated_at)
    w.timestamp(m.logged_at)
    w.optional_string(m.callsign)
    w.optional_int(m.altitude)
    w.optional_int(m.ground_speed)
    w.optional_int(m.track)
    w.optional_position(m.position)
    w.optional_int(m.vertical_rate)
    w.optional_string(m.squawk)
    w.optional_bool(m.alert_squawk_change)
    w.optional_bool(m.emergency)
    w.optional_bool(m.spi)
    w.optional_bool(m.is_on_ground)
    w.optional_int(m.num_stations)
    w.string(m.receiver_name)
    return bytes(w.buffer)


def _decode_record(r: _Reader) -> CompositeMessage:
    # Keyword arguments are evaluated in order, which is the order the fields were written in.
    return CompositeMessage(
        msg_type=r.string(),
        subtype=r.integer(),
        icao_address=ICAOAddress(r.string()),
        generated_at=r.timestamp(),
        logged_at=r.timestamp(),
        callsign=r.optional_string(),
        altitude=r.optional_int(),
        ground_speed=r.optional_int(),
        track=r.optional_int(),
        position=r.optional_position(),
        vertical_rate=r.optional_int(),
        squawk=r.optional_string(),
        alert_squawk_change=r.optional_bool(),
        emergency=r.optional_bool(),
        spi=r.optional_bool(),
        is_on_ground=r.optional_bool(),
        num_stations=r.optional_int(),
        receiver_name=r.string(),
    )
