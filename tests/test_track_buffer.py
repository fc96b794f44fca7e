from datetime import datetime, timedelta

from compositor.aggregator import Aggregator
from compositor.buffers import Batch, Track, TrackBuffer
from compositor.model.icao_address import ICAOAddress
from compositor.model.message import CompositeMessage
from compositor.model.position import Position

from conftest import SESSION, messages


def composite(icao: str, generated_at: datetime) -> CompositeMessage:
    return CompositeMessage(
        "MSG", 3, ICAOAddress(icao), generated_at, generated_at, altitude=20000, position=Position(-121.86, 36.69)
    )


def test_track_age(clock):
    assert Track().age(clock.now) == timedelta(days=1)

    track = Track([composite("A81BD0", clock.now - timedelta(seconds=10))])
    track.messages.append(composite("A81BD0", clock.now - timedelta(seconds=100)))
    assert track.age(clock.now) == timedelta(seconds=10), "age not taken from the first message added"


def test_flush_per_track(clock):
    tb = TrackBuffer(max_age=timedelta(seconds=30), now=clock.now)
    t = clock.now
    interleaved = [
        composite("A81BD0", t - timedelta(seconds=40)),
        composite("ABEEF0", t - timedelta(seconds=45)),
        composite("A81BD0", t - timedelta(seconds=50)),
        composite("ABEEF0", t - timedelta(seconds=35)),
    ]
    for message in interleaved:
        tb.add_message(message)
    assert len(tb) == 4

    assert tb.flush(clock.now) == [], "flushed within a second of the last flush"

    batches = tb.flush(clock.advance(seconds=1))
    assert len(batches) == 2
    assert [{str(m.icao_address) for m in batch} for batch in batches] == [{"A81BD0"}, {"ABEEF0"}]
    assert batches[0] == [interleaved[2], interleaved[0]]
    assert batches[1] == [interleaved[1], interleaved[3]]
    assert tb.tracks == {}


def test_flush_only_old_tracks(clock):
    tb = TrackBuffer(max_age=timedelta(seconds=30), now=clock.now - timedelta(seconds=1))
    old = composite("A81BD0", clock.now - timedelta(seconds=31))
    tb.add_message(old)
    tb.add_message(composite("ABEEF0", clock.now - timedelta(seconds=30)))
    tb.add_message(composite("A2C635", clock.now - timedelta(seconds=10)))

    assert tb.flush(clock.now) == [[old]]
    assert set(tb.tracks) == {ICAOAddress("ABEEF0"), ICAOAddress("A2C635")}


def test_flush_rate_limit(clock):
    tb = TrackBuffer(max_age=timedelta(seconds=30), now=clock.now - timedelta(seconds=1))
    assert tb.flush(clock.now) == []
    assert tb.last_flush == clock.now

    tb.add_message(composite("A81BD0", clock.now - timedelta(seconds=60)))
    assert tb.flush(clock.advance(seconds=0.999)) == []
    assert len(tb.flush(clock.advance(seconds=0.001))) == 1


def test_aggregator_with_tracks(clock):
    delivered: list[Batch] = []
    aggregator = Aggregator(delivered.append, TrackBuffer(max_age=timedelta(seconds=30), now=clock.now), clock=clock)

    for message in messages(SESSION, generated_at=clock.now):
        aggregator.add(message)
    clock.advance(seconds=31)
    aggregator.add(messages(SESSION)[0])
    assert delivered == [], "track buffer flushed on add"

    aggregator.flush()
    assert [len(batch) for batch in delivered] == [2]


def test_final_flush_drains_every_track(clock):
    delivered: list[Batch] = []
    tb = TrackBuffer(now=clock.now)
    aggregator = Aggregator(delivered.append, tb, clock=clock)
    tb.add_message(composite("A81BD0", clock.now))
    tb.add_message(composite("ABEEF0", clock.now))

    aggregator.flush()
    assert delivered == []

    aggregator.final_flush()
    assert len(delivered) == 2
    assert len(tb) == 0
