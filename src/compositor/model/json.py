"""
Utilities for serializing compositor data model objects into JSON. Example:

    batch = [model.CompositeMessage(...), ...]
    model.json.dumps(batch)

This is equivalent to:

    json.dumps(batch, default=<private serialization function>, allow_nan=False, separators=(",", ":"))

Fields that are `None` are left out, so the output only contains what the aircraft actually sent (or what was
backfilled for it).
"""

import dataclasses
from datetime import datetime
import json
from typing import Any

from compositor.model.icao_address import ICAOAddress
from compositor.model.message import CompositeMessage, RawMessage
from compositor.model.position import Position


def _default(obj: Any) -> Any:
    if isinstance(obj, RawMessage):
        result = {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
        if isinstance(obj, CompositeMessage):
            result["data_system"] = obj.data_system
        return {k: v for k, v in result.items() if v is not None}
    if isinstance(obj, ICAOAddress):
        return str(obj)
    if isinstance(obj, Position):
        return {"longitude": obj.longitude, "latitude": obj.latitude}
    if isinstance(obj, datetime):
        return obj.isoformat()
    raise TypeError(f"object of type {type(obj).__name__!r} is not JSON serializable")


def dumps(obj: Any) -> str:
    return json.dumps(obj, default=_default, allow_nan=False, separators=(",", ":"))
