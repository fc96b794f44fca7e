"""
Conversion between SBS-1 text records and RawMessage objects.

A record is a line of 22 comma-separated cells, or 25 for the extended format that MLAT servers emit. Cells that
don't apply to a record's subtype are left empty, and an empty cell decodes to `None`. Timestamps in the format are
not zoned; whoever runs dump1090 decides what time zone they're in, so the zone is a parameter here.
"""

import csv
import math
from datetime import datetime, time, timezone, tzinfo

from compositor.model.icao_address import ICAOAddress
from compositor.model.message import RawMessage
from compositor.model.position import Position
from compositor.sbs1 import DecodingError


# fmt: off
MESSAGE_TYPE        = 0
TRANSMISSION_TYPE   = 1
SESSION_ID          = 2
AIRCRAFT_ID         = 3
HEX_IDENT           = 4
FLIGHT_ID           = 5
DATE_GENERATED      = 6
TIME_GENERATED      = 7
DATE_LOGGED         = 8
TIME_LOGGED         = 9
CALLSIGN            = 10
ALTITUDE            = 11
GROUND_SPEED        = 12
TRACK               = 13
LATITUDE            = 14
LONGITUDE           = 15
VERTICAL_RATE       = 16
SQUAWK              = 17
ALERT_SQUAWK_CHANGE = 18
EMERGENCY           = 19
SPI                 = 20
IS_ON_GROUND        = 21

# Extended basestation format only
NUM_STATIONS        = 22
ERROR_ESTIMATE      = 24
# fmt: on

BASE_FIELD_COUNT = 22
EXTENDED_FIELD_COUNT = 25

_DATE_FORMAT = "%Y/%m/%d"
_TIME_FORMAT = "%H:%M:%S"


def parse(line: str, tz: tzinfo = timezone.utc) -> RawMessage:
    """
    Decode one SBS-1 record. Timestamps in the record are interpreted as local times in `tz` and converted to UTC.
    Raises DecodingError if the record has the wrong number of cells or a cell can't be parsed.
    """
    line = line.rstrip("\r\n")
    try:
        cells = next(csv.reader([line]))
    except (csv.Error, StopIteration) as exc:
        raise DecodingError(f"not a CSV record: {exc}", line) from exc

    if len(cells) not in (BASE_FIELD_COUNT, EXTENDED_FIELD_COUNT):
        raise DecodingError(f"record has {len(cells)} fields", line)

    try:
        icao_address = ICAOAddress(cells[HEX_IDENT].strip())
    except ValueError as exc:
        raise DecodingError(f"bad hex ident {cells[HEX_IDENT]!r}", line) from exc

    position = None
    if cells[LATITUDE] and cells[LONGITUDE]:
        position = Position(
            longitude=_float(cells, LONGITUDE, line),
            latitude=_float(cells, LATITUDE, line),
        )

    return RawMessage(
        msg_type=cells[MESSAGE_TYPE],
        subtype=_required_int(cells, TRANSMISSION_TYPE, line),
        icao_address=icao_address,
        generated_at=_timestamp(cells[DATE_GENERATED], cells[TIME_GENERATED], tz, line),
        logged_at=_timestamp(cells[DATE_LOGGED], cells[TIME_LOGGED], tz, line),
        callsign=cells[CALLSIGN].strip() if cells[CALLSIGN] else None,
        altitude=_int(cells, ALTITUDE, line),
        ground_speed=_int(cells, GROUND_SPEED, line),
        track=_int(cells, TRACK, line),
        position=position,
        vertical_rate=_int(cells, VERTICAL_RATE, line),
        squawk=cells[SQUAWK].strip() if cells[SQUAWK] else None,
        alert_squawk_change=_flag(cells, ALERT_SQUAWK_CHANGE, line),
        emergency=_flag(cells, EMERGENCY, line),
        spi=_flag(cells, SPI, line),
        is_on_ground=_flag(cells, IS_ON_GROUND, line),
        num_stations=_int(cells, NUM_STATIONS, line) if len(cells) == EXTENDED_FIELD_COUNT else None,
    )


def serialize(message: RawMessage, tz: tzinfo = timezone.utc) -> str:
    """
    Encode the base (22-cell) fields of a message as an SBS-1 record, with timestamps expressed as local times in
    `tz`. Absent fields become empty cells, so `parse(serialize(message))` reproduces the base fields.
    """
    cells = [""] * BASE_FIELD_COUNT

    cells[MESSAGE_TYPE] = message.msg_type
    cells[TRANSMISSION_TYPE] = str(message.subtype)
    cells[HEX_IDENT] = str(message.icao_address)
    cells[DATE_GENERATED], cells[TIME_GENERATED] = _format_timestamp(message.generated_at, tz)
    cells[DATE_LOGGED], cells[TIME_LOGGED] = _format_timestamp(message.logged_at, tz)
    cells[CALLSIGN] = message.callsign or ""
    cells[ALTITUDE] = _format_optional(message.altitude)
    cells[GROUND_SPEED] = _format_optional(message.ground_speed)
    cells[TRACK] = _format_optional(message.track)
    if message.position is not None:
        cells[LATITUDE] = f"{message.position.latitude:.5f}"
        cells[LONGITUDE] = f"{message.position.longitude:.5f}"
    cells[VERTICAL_RATE] = _format_optional(message.vertical_rate)
    cells[SQUAWK] = message.squawk or ""
    cells[ALERT_SQUAWK_CHANGE] = _format_flag(message.alert_squawk_change)
    cells[EMERGENCY] = _format_flag(message.emergency)
    cells[SPI] = _format_flag(message.spi)
    cells[IS_ON_GROUND] = _format_flag(message.is_on_ground)

    return ",".join(cells)


def _required_int(cells: list[str], index: int, line: str) -> int:
    try:
        return int(cells[index])
    except ValueError as exc:
        raise DecodingError(f"bad integer in field {index}: {cells[index]!r}", line) from exc


def _int(cells: list[str], index: int, line: str) -> int | None:
    if not cells[index]:
        return None
    return _required_int(cells, index, line)


def _float(cells: list[str], index: int, line: str) -> float:
    try:
        value = float(cells[index])
    except ValueError as exc:
        raise DecodingError(f"bad number in field {index}: {cells[index]!r}", line) from exc
    if not math.isfinite(value):
        raise DecodingError(f"non-finite number in field {index}: {cells[index]!r}", line)
    return value


def _flag(cells: list[str], index: int, line: str) -> bool | None:
    match cells[index].strip():
        case "":
            return None
        case "0":
            return False
        case "-1" | "1":
            return True
        case other:
            raise DecodingError(f"bad flag in field {index}: {other!r}", line)


def _timestamp(date_cell: str, time_cell: str, tz: tzinfo, line: str) -> datetime:
    # strptime's %f stops at microseconds, but some feeds write nanoseconds.
    clock, _, fraction = time_cell.partition(".")
    try:
        day = datetime.strptime(date_cell, _DATE_FORMAT).date()
        hms = datetime.strptime(clock, _TIME_FORMAT).time()
        if fraction and not fraction.isdigit():
            raise ValueError(f"bad fraction {fraction!r}")
    except ValueError as exc:
        raise DecodingError(f"bad timestamp {date_cell!r} {time_cell!r}", line) from exc

    microsecond = int(fraction[:6].ljust(6, "0")) if fraction else 0
    local = datetime.combine(day, time(hms.hour, hms.minute, hms.second, microsecond), tzinfo=tz)
    return local.astimezone(timezone.utc)


def _format_timestamp(timestamp: datetime, tz: tzinfo) -> tuple[str, str]:
    local = timestamp.astimezone(tz)
    clock = local.strftime(_TIME_FORMAT)
    fraction = f"{local.microsecond:06d}".rstrip("0")
    if fraction:
        clock += "." + fraction
    return local.strftime(_DATE_FORMAT), clock


def _format_optional(value: int | None) -> str:
    return "" if value is None else str(value)


def _format_flag(value: bool | None) -> str:
    if value is None:
        return ""
    return "-1" if value else "0"
