from collections.abc import Iterator
from datetime import datetime, timedelta

from compositor.model.icao_address import ICAOAddress
from compositor.model.sender import SenderState
from compositor.util import Throttle


AGE_OUT_INTERVAL = timedelta(seconds=1)


class SenderCache:
    """
    The aircraft we're currently getting data from, keyed by ICAO address.

    The cache is a whitelist: an address only gets an entry once it has sent a position, so transponders that never
    report where they are (and garbled addresses that never repeat) don't use up memory. Entries are removed by the
    ageout sweep once an aircraft has been quiet for `max_quiet_time`; after that, the aircraft has to send a position
    again before it's tracked.
    """

    def __init__(self, max_quiet_time: timedelta):
        self.max_quiet_time = max_quiet_time
        self._senders: dict[ICAOAddress, SenderState] = {}
        self._age_out_throttle = Throttle(AGE_OUT_INTERVAL)

    def get(self, icao_address: ICAOAddress) -> SenderState | None:
        return self._senders.get(icao_address)

    def admit(self, icao_address: ICAOAddress, last_seen: datetime) -> SenderState:
        sender = SenderState(last_seen=last_seen)
        self._senders[icao_address] = sender
        return sender

    def remove(self, icao_address: ICAOAddress) -> None:
        del self._senders[icao_address]

    def age_out(self, now: datetime) -> int:
        """
        Remove every sender that has been quiet for at least `max_quiet_time` and return how many were removed. The
        sweep runs at most once per second; calls in between do nothing and return 0.
        """
        if not self._age_out_throttle.ready(now):
            return 0

        quiet = [k for k, v in self._senders.items() if now - v.last_seen >= self.max_quiet_time]
        for icao_address in quiet:
            self.remove(icao_address)
        if quiet:
            # Dictionary performance degrades over time when there are a lot of additions and deletions. Recreating it
            # gets it back into a good state.
            self._senders = dict(self._senders)
        return len(quiet)

    def __contains__(self, icao_address: object) -> bool:
        return icao_address in self._senders

    def __iter__(self) -> Iterator[ICAOAddress]:
        return iter(self._senders)

    def __len__(self) -> int:
        return len(self._senders)

    def __str__(self) -> str:
        return "".join(f" - {k} {v}\n" for k, v in self._senders.items())
