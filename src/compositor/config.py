from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta, timezone, tzinfo
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from compositor.buffers import CompositeBuffer, MessageBuffer, TrackBuffer
from compositor.synthesizer import BackfillPolicy


class ConfigError(ValueError):
    """
    Exception raised when an environment variable has a value we can't use.
    """


class BufferKind(Enum):
    FLAT = "flat"
    TRACK = "track"


class OutputFormat(Enum):
    JSON = "json"
    BLOB = "blob"


@dataclass
class Config:
    """
    Settings for the `python -m compositor` pipeline. Every setting has a default and can be overridden by an
    environment variable; see `from_environ`.
    """

    # fmt: off
    buffer:               BufferKind     = BufferKind.FLAT
    max_message_age:      timedelta      = timedelta(seconds=30)
    min_publish_interval: timedelta      = timedelta(seconds=5)
    max_quiet_time:       timedelta      = timedelta(seconds=360)
    track_max_age:        timedelta      = timedelta(seconds=30)
    backfill_policy:      BackfillPolicy = BackfillPolicy.EMIT_ON_POSITION
    receiver_name:        str            = ""
    timezone:             tzinfo         = timezone.utc
    output:               OutputFormat   = OutputFormat.JSON
    # fmt: on

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "Config":
        """
        Build a configuration from COMPOSITOR_* variables. Durations are in seconds and may be fractional. Unset
        variables keep their defaults. Raises ConfigError for values that can't be parsed.
        """
        config = cls()
        env = {k.removeprefix("COMPOSITOR_"): v for k, v in environ.items() if k.startswith("COMPOSITOR_")}

        if "BUFFER" in env:
            config.buffer = _enum(BufferKind, "COMPOSITOR_BUFFER", env["BUFFER"])
        if "MAX_MESSAGE_AGE" in env:
            config.max_message_age = _seconds("COMPOSITOR_MAX_MESSAGE_AGE", env["MAX_MESSAGE_AGE"])
        if "MIN_PUBLISH_INTERVAL" in env:
            config.min_publish_interval = _seconds("COMPOSITOR_MIN_PUBLISH_INTERVAL", env["MIN_PUBLISH_INTERVAL"])
        if "MAX_QUIET_TIME" in env:
            config.max_quiet_time = _seconds("COMPOSITOR_MAX_QUIET_TIME", env["MAX_QUIET_TIME"])
        if "TRACK_MAX_AGE" in env:
            config.track_max_age = _seconds("COMPOSITOR_TRACK_MAX_AGE", env["TRACK_MAX_AGE"])
        if "BACKFILL" in env:
            config.backfill_policy = _enum(BackfillPolicy, "COMPOSITOR_BACKFILL", env["BACKFILL"])
        if "RECEIVER_NAME" in env:
            config.receiver_name = env["RECEIVER_NAME"]
        if "TIMEZONE" in env:
            config.timezone = _zone("COMPOSITOR_TIMEZONE", env["TIMEZONE"])
        if "OUTPUT" in env:
            config.output = _enum(OutputFormat, "COMPOSITOR_OUTPUT", env["OUTPUT"])

        return config

    def make_buffer(self) -> CompositeBuffer:
        match self.buffer:
            case BufferKind.FLAT:
                return MessageBuffer(self.max_message_age, self.min_publish_interval)
            case BufferKind.TRACK:
                return TrackBuffer(self.track_max_age)


def _seconds(name: str, value: str) -> timedelta:
    try:
        seconds = float(value)
    except ValueError as exc:
        raise ConfigError(f"{name}: {value!r} is not a number of seconds") from exc
    if not 0 <= seconds < float("inf"):
        raise ConfigError(f"{name}: {value!r} is out of range")
    try:
        return timedelta(seconds=seconds)
    except OverflowError as exc:
        raise ConfigError(f"{name}: {value!r} is out of range") from exc


def _enum[E: Enum](enum: type[E], name: str, value: str) -> E:
    try:
        return enum(value.strip().lower())
    except ValueError as exc:
        choices = ", ".join(repr(e.value) for e in enum)
        raise ConfigError(f"{name}: {value!r} is not one of {choices}") from exc


def _zone(name: str, value: str) -> tzinfo:
    if value.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"{name}: unknown time zone {value!r}") from exc
