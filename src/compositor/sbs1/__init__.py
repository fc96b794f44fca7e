"""
Reading and writing the SBS-1 ("BaseStation") text format produced by dump1090 on port 30003 and by mlat-client's
extended basestation output. See http://woodair.net/SBS/Article/Barebones42_Socket_Data.htm for the field layout.
"""


class DecodingError(ValueError):
    """
    Exception raised for any failure to decode an SBS-1 record. `line` is the offending record.
    """

    def __init__(self, reason: str, line: str):
        super().__init__(reason)
        self.line = line


# pylint: disable=wrong-import-position
from compositor.sbs1.codec import parse, serialize  # noqa: E402

__all__ = ["DecodingError", "parse", "serialize"]
