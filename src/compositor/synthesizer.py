"""
Deciding when a raw message becomes a composite message, and what goes into it.

Position reports are the only messages that produce output; every other subtype exists to keep a sender's cached state
fresh. When a position report arrives from a sender we're already tracking, it's cloned and any sparse field it didn't
fill in is taken from the cache.
"""

from enum import Enum

from compositor.model.message import CompositeMessage, RawMessage
from compositor.model.sender import SenderState


class BackfillPolicy(Enum):
    # Emit for every position report from a tracked sender, even if the cache is still missing fields.
    EMIT_ON_POSITION = "emit-on-position"
    # Hold back position reports until the cache has a ground speed, a track and a callsign (blank counts).
    REQUIRE_FULL_BACKFILL = "require-full-backfill"


def synthesize(
    message: RawMessage,
    sender: SenderState | None,
    receiver_name: str = "",
    policy: BackfillPolicy = BackfillPolicy.EMIT_ON_POSITION,
) -> CompositeMessage | None:
    """
    Return a composite for `message`, or None if this message doesn't produce one. `sender` must already have been
    updated from `message`. A sender that isn't tracked yet (`sender is None`) never produces output.
    """
    if message.position is None or sender is None:
        return None

    if policy is BackfillPolicy.REQUIRE_FULL_BACKFILL and not _fully_backfilled(sender):
        return None

    # A message's own value wins unless it's empty or zero, the same as when it's missing.
    return CompositeMessage.from_message(
        message,
        receiver_name,
        ground_speed=_backfill(message.ground_speed, sender.ground_speed),
        vertical_rate=_backfill(message.vertical_rate, sender.vertical_rate),
        track=_backfill(message.track, sender.track),
        callsign=_backfill(message.callsign, sender.callsign),
        squawk=_backfill(message.squawk, sender.squawk),
    )


def _backfill[T](own: T | None, cached: T | None) -> T | None:
    if own or cached is None:
        return own
    return cached


def _fully_backfilled(sender: SenderState) -> bool:
    return bool(sender.ground_speed) and bool(sender.track) and sender.callsign is not None
