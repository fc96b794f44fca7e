"""
This module contains the application's data model. The primary classes are RawMessage, one decoded SBS-1 record, and
CompositeMessage, the fully populated record synthesized from several raw messages. SenderState holds what we know
about one aircraft between messages; all other model classes support these.

Messages can be serialized to JSON by a convenience function that calls into the `json` package with a special default
serializer (and sets a few other serialization options as well). Example:

    composite = model.CompositeMessage(...)
    model.json.dumps([composite, ...])

This is equivalent to:

    json.dumps([composite, ...], default=<private serialization function>, allow_nan=False, separators=(",", ":"))
"""
