from dataclasses import dataclass


@dataclass(frozen=True)
class Position:
    """
    A location on the surface of Earth, referenced to WGS 84. Positions are values: two positions with the same
    coordinates are equal and hash the same, which lets them take part in message signatures.
    """

    longitude: float
    latitude: float

    def __str__(self) -> str:
        return f"({self.latitude:.7f},{self.longitude:.7f})"
