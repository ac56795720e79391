# src/consensusbridge/errors.py
from __future__ import annotations
from typing import Any, Optional


class ConsensusBridgeError(Exception):
    """Base exception for the consensusbridge library."""
    pass


class ContractViolation(ConsensusBridgeError, AssertionError):
    """A native encoder/decoder or a sink broke the error-reporting contract."""
    pass


class UnsupportedFormatError(ConsensusBridgeError):
    """
    Unsupported serialization format.

    Raised when an unknown or unsupported `fmt` is requested, e.g. not in
    {'json', 'msgpack', 'cbor'}.
    """
    pass


# --- Opaque transport failures ---
class OpaqueIOError(ConsensusBridgeError, OSError):
    """
    Generic I/O failure handed to a native encoder/decoder.

    Carries no cause on purpose: the detailed error is kept by the writer or
    reader that raised it and is recovered by the caller afterwards.
    """

    def __init__(self) -> None:
        super().__init__()


class FormatterError(ConsensusBridgeError):
    """Text sink refused a write. The sink keeps the detailed cause, if any."""
    pass


# --- Framework error vocabulary ---
class Unexpected:
    """Description of an unexpected input value, used in error messages."""

    __slots__ = ("kind", "value")

    def __init__(self, kind: str, value: Any = None):
        self.kind = kind
        self.value = value

    @classmethod
    def char(cls, c: str) -> "Unexpected":
        return cls("char", c)

    @classmethod
    def unsigned(cls, n: int) -> "Unexpected":
        return cls("unsigned", int(n))

    @classmethod
    def signed(cls, n: int) -> "Unexpected":
        return cls("signed", int(n))

    @classmethod
    def byte_array(cls, b: bytes) -> "Unexpected":
        return cls("bytes", bytes(b))

    @classmethod
    def string(cls, s: str) -> "Unexpected":
        return cls("str", s)

    @classmethod
    def seq(cls) -> "Unexpected":
        return cls("seq")

    @classmethod
    def of(cls, value: Any) -> "Unexpected":
        """Describe an arbitrary decoded Python value."""
        if value is None:
            return cls("unit")
        if isinstance(value, bool):
            return cls("bool", value)
        if isinstance(value, int):
            return cls.unsigned(value) if value >= 0 else cls.signed(value)
        if isinstance(value, float):
            return cls("float", value)
        if isinstance(value, str):
            return cls.string(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls.byte_array(bytes(value))
        if isinstance(value, (list, tuple)):
            return cls.seq()
        if isinstance(value, dict):
            return cls("map")
        return cls("other", type(value).__name__)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Unexpected):
            return NotImplemented
        return self.kind == other.kind and self.value == other.value

    def __hash__(self) -> int:
        return hash((self.kind, self.value))

    def __repr__(self) -> str:
        return f"Unexpected({self.kind!r}, {self.value!r})"

    def __str__(self) -> str:
        k, v = self.kind, self.value
        if k == "char":
            return f"character `{v}`"
        if k in ("unsigned", "signed"):
            return f"integer `{v}`"
        if k == "float":
            return f"floating point `{v}`"
        if k == "bool":
            return f"boolean `{'true' if v else 'false'}`"
        if k == "str":
            return f"string {v!r}"
        if k == "bytes":
            return "byte array"
        if k == "seq":
            return "sequence"
        if k == "map":
            return "map"
        if k == "unit":
            return "null"
        return str(v)


class SerializationError(ConsensusBridgeError):
    """
    Error of the generic serialization framework.

    Raised when:
      - a target refuses a value (e.g. size limit exceeded),
      - a source holds a value of the wrong type or range,
      - a native decode failure is unified into the framework vocabulary,
      - a binary/text payload cannot be parsed at all.

    `unexpected`, `expected` and `length` are kept for inspection when the
    error was built by one of the structured constructors.
    """

    def __init__(
        self,
        message: str,
        *,
        unexpected: Optional[Unexpected] = None,
        expected: Optional[str] = None,
        length: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.unexpected = unexpected
        self.expected = expected
        self.length = length

    @classmethod
    def custom(cls, message: Any) -> "SerializationError":
        return cls(str(message))

    @classmethod
    def invalid_value(cls, unexpected: Unexpected, expected: str) -> "SerializationError":
        return cls(
            f"invalid value: {unexpected}, expected {expected}",
            unexpected=unexpected,
            expected=expected,
        )

    @classmethod
    def invalid_type(cls, unexpected: Unexpected, expected: str) -> "SerializationError":
        return cls(
            f"invalid type: {unexpected}, expected {expected}",
            unexpected=unexpected,
            expected=expected,
        )

    @classmethod
    def invalid_length(cls, length: int, expected: str) -> "SerializationError":
        return cls(
            f"invalid length {length}, expected {expected}",
            expected=expected,
            length=int(length),
        )


# --- Native codec parse failures ---
class ParseError(ConsensusBridgeError):
    """Native (consensus) decoding failed on malformed input."""
    pass


class MissingData(ParseError):
    """Input ended early or a slice was too short."""

    def __init__(self) -> None:
        super().__init__("missing data")


class OversizedVectorAllocation(ParseError):
    """A length prefix asked for more items than allowed."""

    def __init__(self, requested: int, max: int):
        super().__init__(f"requested {requested} items, maximum is {max}")
        self.requested = int(requested)
        self.max = int(max)


class InvalidChecksum(ParseError):
    """Payload checksum does not match the transmitted one."""

    def __init__(self, expected: bytes, actual: bytes):
        if len(expected) != 4 or len(actual) != 4:
            raise ValueError("checksums are exactly 4 bytes")
        super().__init__(f"expected checksum {bytes(expected).hex()}, got {bytes(actual).hex()}")
        self.expected = bytes(expected)
        self.actual = bytes(actual)


class NonMinimalVarInt(ParseError):
    """Compact size integer was not encoded in its shortest form."""

    def __init__(self) -> None:
        super().__init__("non-minimal compact size")


class ParseFailed(ParseError):
    """Generic parse failure with a static message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedSegwitFlag(ParseError):
    """Unknown flag byte after the segwit marker."""

    def __init__(self, flag: int):
        super().__init__(f"unsupported segwit flag {flag}")
        self.flag = int(flag)


# --- Text-decoding strategy failures ---
class ByteDecodeInitError(ConsensusBridgeError):
    """A text decoder could not be created for the given string."""

    def into_de_error(self, error_type: type = SerializationError) -> SerializationError:
        return error_type.custom(str(self))


class ByteDecodeError(ConsensusBridgeError):
    """A text decoder hit malformed input."""

    def into_de_error(self, error_type: type = SerializationError) -> SerializationError:
        return error_type.custom(str(self))


class OddLengthStringError(ByteDecodeInitError):
    """Hex string has an odd number of characters."""

    def __init__(self, length: int):
        super().__init__(f"odd hex string length {length}")
        self.length = int(length)

    def into_de_error(self, error_type: type = SerializationError) -> SerializationError:
        return error_type.invalid_length(self.length, "an even number of ASCII-encoded hex digits")


class InvalidCharError(ByteDecodeError):
    """Hex string contains a character that is not a hex digit."""

    EXPECTED = "an ASCII-encoded hex digit"

    def __init__(self, invalid_char: str):
        super().__init__(f"invalid hex character {invalid_char!r}")
        self.invalid_char = invalid_char

    def into_de_error(self, error_type: type = SerializationError) -> SerializationError:
        c = self.invalid_char
        if c.isascii():
            return error_type.invalid_value(Unexpected.char(c), self.EXPECTED)
        return error_type.invalid_value(Unexpected.unsigned(ord(c)), self.EXPECTED)
