# src/consensusbridge/hex.py
from __future__ import annotations
import enum
from typing import Iterator

from .errors import InvalidCharError, OddLengthStringError
from .strategy import ByteDecoder, ByteEncoder, EncodeBytes, TextSink

# Capacity of the encoder buffer in characters (two per byte).
HEX_BUF_SIZE = 512

_HEX_VALUES = {c: int(c, 16) for c in "0123456789abcdefABCDEF"}


class Case(enum.Enum):
    LOWER = "lower"
    UPPER = "upper"


class HexEncoder(EncodeBytes):
    """Buffered bytes -> hex text encoder.

    The buffer holds at most HEX_BUF_SIZE characters and only ever whole
    bytes, so a byte's two digits never straddle a flush.
    """

    def __init__(self, case: Case = Case.LOWER):
        self.case = case
        self._buf: list = []
        self._len = 0

    def _is_full(self) -> bool:
        return self._len + 2 > HEX_BUF_SIZE

    def _put_bytes_min(self, data: memoryview) -> memoryview:
        # Encode as many bytes as fit; return the rest.
        n = min((HEX_BUF_SIZE - self._len) // 2, len(data))
        text = data[:n].hex()
        if self.case is Case.UPPER:
            text = text.upper()
        self._buf.append(text)
        self._len += 2 * n
        return data[n:]

    def buffered(self) -> str:
        return "".join(self._buf)

    def encode_chunk(self, sink: TextSink, data: bytes) -> None:
        rest = memoryview(data).cast("B")
        while len(rest):
            if self._is_full():
                self.flush(sink)
            rest = self._put_bytes_min(rest)

    def flush(self, sink: TextSink) -> None:
        sink.write_str(self.buffered())
        self._buf.clear()
        self._len = 0


class HexDecoder:
    """Lazy hex text -> bytes iterator.

    Decodes one pair of characters per step. The first invalid digit is
    raised as InvalidCharError and the iterator is exhausted from then on.
    Upper, lower and mixed case digits are all accepted.

    The odd-length check counts characters, not UTF-8 bytes, so a lone
    non-ASCII character such as "é" is rejected as odd length 1 rather
    than as an invalid character.
    """

    def __init__(self, s: str):
        if len(s) % 2:
            raise OddLengthStringError(len(s))
        self._s = s
        self._pos = 0
        self._failed = False

    def __iter__(self) -> "HexDecoder":
        return self

    def __next__(self) -> int:
        if self._failed or self._pos >= len(self._s):
            raise StopIteration
        hi, lo = self._s[self._pos], self._s[self._pos + 1]
        try:
            byte = (_digit(hi) << 4) | _digit(lo)
        except InvalidCharError:
            self._failed = True
            raise
        self._pos += 2
        return byte


def _digit(c: str) -> int:
    try:
        return _HEX_VALUES[c]
    except KeyError:
        raise InvalidCharError(c) from None


class Hex(ByteEncoder, ByteDecoder):
    """Hex-encoding strategy; `case` selects the digits produced on encode."""

    expecting = "bytes encoded as a hex string"

    def __init__(self, case: Case = Case.LOWER):
        self.case = Case(case)

    def encoder(self) -> HexEncoder:
        return HexEncoder(self.case)

    def from_str(self, s: str) -> Iterator[int]:
        return HexDecoder(s)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Hex) and other.case is self.case

    def __hash__(self) -> int:
        return hash((Hex, self.case))

    def __repr__(self) -> str:
        return f"Hex({self.case})"


HEX_LOWER = Hex(Case.LOWER)
HEX_UPPER = Hex(Case.UPPER)
