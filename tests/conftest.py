import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from compositor.model.message import RawMessage
from compositor.sbs1 import parse


# A climb-out recorded from one receiver: every subtype a dump1090 feed sends for one aircraft.
SESSION = """\
MSG,7,1,1,A81BD0,1,2015/11/27,21:31:02.722,2015/11/27,21:31:02.721,,20150,,,,,,,,,,0
MSG,3,1,1,A81BD0,1,2015/11/27,21:31:03.354,2015/11/27,21:31:03.316,,20125,,,36.69804,-121.86007,,,,,,0
MSG,3,1,1,A81BD0,1,2015/11/27,21:31:03.704,2015/11/27,21:31:03.716,,20125,,,36.69830,-121.86017,,,,,,0
MSG,4,1,1,A81BD0,1,2015/11/27,21:31:04.704,2015/11/27,21:31:04.689,,,304,328,,,-1856,,,,,0
MSG,7,1,1,A81BD0,1,2015/11/27,21:31:04.753,2015/11/27,21:31:04.752,,20100,,,,,,,,,,0
MSG,1,1,1,A81BD0,1,2015/11/27,21:31:05.205,2015/11/27,21:31:05.153,VRD961  ,,,,,,,,,,,0
MSG,6,1,1,A81BD0,1,2015/11/27,21:31:05.255,2015/11/27,21:31:05.253,,,,,,,,1200,-1,0,0,0
MSG,3,1,1,A81BD0,1,2015/11/27,21:31:05.274,2015/11/27,21:31:05.276,,20075,,,36.70029,-121.86190,,,,,,0"""

UNRELATED = "MSG,7,1,1,ABEEF0,1,2015/11/27,21:31:04.753,2015/11/27,21:31:04.752,,20100,,,,,,,,,,0"

MLAT_SESSION = """\
MLAT,3,1,1,A76E37,1,2016/03/10,18:22:22.989,2016/03/10,18:22:22.989,,28211,497,66,36.8347,-120.4883,1696,,,,,,,,
MLAT,3,1,1,A2C635,1,2016/03/10,18:22:23.220,2016/03/10,18:22:23.220,,37559,379,316,36.3631,-120.3861,-884,,,,,,,,
MLAT,3,1,1,A24757,1,2016/03/10,18:22:23.527,2016/03/10,18:22:23.527,,39006,465,150,35.9798,-119.7215,-5,,,,,,,,
MLAT,3,1,1,A81A3E,1,2016/03/10,18:22:24.115,2016/03/10,18:22:24.115,,21113,399,143,36.8268,-121.4215,1003,,,,,,,,
MLAT,3,1,1,A7BBE9,1,2016/03/10,18:22:24.180,2016/03/10,18:22:24.180,,8901,217,296,37.1378,-122.6959,3,,,,,,,,
MLAT,3,1,1,AB5024,1,2016/03/10,18:22:24.183,2016/03/10,18:22:24.183,,6628,238,321,37.0451,-121.7235,-818,,,,,,,,"""

MASKED = "MLAT,3,1,1,~A76E37,1,2016/03/10,18:22:22.989,2016/03/10,18:22:22.989,,28211,497,66,36.8347,-120.4883,1696,,,,,,,,"


class FakeClock:
    """
    A wall clock that only moves when told to.
    """

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2015, 11, 27, 21, 31, 10, tzinfo=timezone.utc))


def messages(sbs: str, generated_at: datetime | None = None) -> list[RawMessage]:
    """
    Parse every record in `sbs`. If `generated_at` is given, it replaces each record's own generation timestamp.
    """
    result = []
    for line in sbs.splitlines():
        message = parse(line)
        if generated_at is not None:
            message = dataclasses.replace(message, generated_at=generated_at)
        result.append(message)
    return result
