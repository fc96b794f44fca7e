class ICAOAddress:
    """
    A 24-bit address identifying an aircraft equipped with a Mode S transponder. These globally unique identifiers are
    assigned to aircraft as part of their registation certificate, and normally never change. On a time scale of a
    single flight, this makes them suitable keys for relating information from disparate sources.

    SBS-1 feeds prefix an address with "~" when it isn't a real ICAO address (for example, TIS-B targets and other
    non-ICAO sources relayed by an MLAT server). Such addresses are "masked". A masked address never equals the
    unmasked address with the same digits. The canonical representation is six uppercase hexadecimal digits, preceded
    by "~" if the address is masked.
    """

    MAX = 2**24 - 1
    MIN = 0
    MASK_MARKER = "~"

    def __init__(self, value: str | int, masked: bool = False) -> None:
        if isinstance(value, str):
            if value.startswith(ICAOAddress.MASK_MARKER):
                masked = True
                value = value.removeprefix(ICAOAddress.MASK_MARKER)
            value = int(value, 16)
        if ICAOAddress.MIN <= value <= ICAOAddress.MAX:
            self._value = value
            self._masked = masked
        else:
            raise ValueError("initializing value out of range")

    @property
    def masked(self) -> bool:
        return self._masked

    def __int__(self) -> int:
        return self._value

    def __eq__(self, other: object) -> bool:
        """
        ICAOAddress has equality with other ICAOAddress objects, integers, and strings in canonical form.
        """
        if isinstance(other, ICAOAddress):
            return self._value == other._value and self._masked == other._masked
        if isinstance(other, int):
            return not self._masked and self._value == other
        if isinstance(other, str):
            try:
                return self == ICAOAddress(other)
            except ValueError:
                return False
        return False

    def __hash__(self) -> int:
        return self._value | (int(self._masked) << 24)

    def __repr__(self) -> str:
        return f"ICAOAddress({str(self)!r})"

    def __str__(self) -> str:
        return f"{ICAOAddress.MASK_MARKER if self._masked else ''}{self._value:06X}"
