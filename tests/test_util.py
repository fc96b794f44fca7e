import os
from datetime import timedelta

import compositor.log
from compositor.log import log
from compositor.util import Throttle, maybe


def test_log_context(capsys, monkeypatch):
    monkeypatch.setattr(compositor.log, "_src_root", "")
    log("hello", 42)
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.startswith(__file__ + ":")
    assert captured.err.endswith(":test_log_context: hello 42\n")


def test_log_strips_src_root(capsys, monkeypatch):
    monkeypatch.setattr(compositor.log, "_src_root", "")
    compositor.log.set_src_root(os.path.dirname(__file__))

    def emit() -> None:
        log("hello")

    emit()
    filename, lineno, qualname, message = capsys.readouterr().err.split(":")
    assert filename == "test_util.py"
    assert int(lineno) > 0
    assert qualname == "test_log_strips_src_root.<locals>.emit"
    assert message == " hello\n"


def test_maybe():
    assert maybe(lambda: 1 + 1) == 2
    assert maybe(lambda: 1 / 0) is None


def test_throttle(clock):
    throttle = Throttle(timedelta(seconds=1))
    assert throttle.ready(clock.now), "first request refused"
    assert throttle.last == clock.now
    assert not throttle.ready(clock.advance(seconds=0.999))
    assert throttle.ready(clock.advance(seconds=0.001))

    primed = Throttle(timedelta(seconds=1), last=clock.now)
    assert not primed.ready(clock.now)
