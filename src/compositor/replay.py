"""
This is a developer utility that plays back SBS-1 records from an archive. It was written to enable development
without a live receiver.

The archive is a text file of SBS-1 records, such as a capture of dump1090's port 30003. Records are printed to stdout
with delays computed from their generation timestamps so that the replay runs at the same rate as the original
session. Records that can't be decoded are reported and skipped.

With --loop, the replay starts over at the beginning when the end of the archive is reached, and so runs
indefinitely. To feed the replay to the compositor:

    python3 -m compositor.replay archive.sbs | python3 -m compositor
"""

import argparse
from collections.abc import Callable, Iterable
import sys
import time

from compositor.log import log
from compositor.sbs1 import DecodingError, parse


def replay(
    lines: Iterable[str],
    write: Callable[[str], None],
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    source: str = "<archive>",
) -> int:
    """
    Write each record in `lines` once the time since the first record, measured by `clock`, has caught up with the
    difference between their generation timestamps. Returns the number of records written.
    """
    first_timestamp = None
    t0 = clock()
    written = 0

    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue

        try:
            timestamp = parse(line).generated_at
        except DecodingError as exc:
            log(f"{source}:{lineno}: {exc}")
            continue

        if first_timestamp is None:
            first_timestamp = timestamp
        else:
            real_elapsed = clock() - t0
            sim_elapsed = (timestamp - first_timestamp).total_seconds()
            sleep_needed = sim_elapsed - real_elapsed
            if sleep_needed > 0:
                sleep(sleep_needed)

        write(line)
        written += 1

    return written


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m compositor.replay", description="Play back an SBS-1 archive.")
    parser.add_argument("archive", help="file of SBS-1 records")
    parser.add_argument("--loop", action="store_true", help="start over when the end of the archive is reached")
    args = parser.parse_args(argv)

    def write(line: str) -> None:
        print(line, flush=True)

    while True:
        with open(args.archive, "rt", encoding="ascii", errors="replace") as f:
            if not replay(f, write, source=args.archive):
                log(f"{args.archive}: no records to replay")
                return 1
        if not args.loop:
            return 0


if __name__ == "__main__":
    sys.exit(main())
