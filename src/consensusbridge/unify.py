# src/consensusbridge/unify.py
from __future__ import annotations
from typing import Any

from .errors import (
    ConsensusBridgeError,
    InvalidChecksum,
    MissingData,
    NonMinimalVarInt,
    OversizedVectorAllocation,
    ParseError,
    ParseFailed,
    SerializationError,
    Unexpected,
    UnsupportedSegwitFlag,
)

MSG_UNCONSUMED = "got more bytes than expected"


class DecodeError(ConsensusBridgeError):
    """Failure of a native decode driven from a byte iterator."""

    def unify(self, error_type: type = SerializationError) -> SerializationError:
        """Convert into the framework error type."""
        return error_type.custom(str(self))


class SourceError(DecodeError):
    """The byte source itself failed; `error` is its own error."""

    def __init__(self, error: Exception):
        super().__init__(str(error))
        self.error = error

    def unify(self, error_type: type = SerializationError) -> SerializationError:
        error = self.error
        if isinstance(error, SerializationError):
            return error
        into = getattr(error, "into_de_error", None)
        if into is not None:
            return into(error_type)
        return error_type.custom(error)


class Unconsumed(DecodeError):
    """Input continued after the native decoder finished."""

    def __init__(self) -> None:
        super().__init__(MSG_UNCONSUMED)

    def unify(self, error_type: type = SerializationError) -> SerializationError:
        return error_type.custom(MSG_UNCONSUMED)


class NativeParseError(DecodeError):
    """The native decoder rejected the input."""

    def __init__(self, parse_error: ParseError):
        super().__init__(str(parse_error))
        self.parse_error = parse_error

    def unify(self, error_type: type = SerializationError) -> SerializationError:
        return consensus_error_into_serde(self.parse_error, error_type)


def consensus_error_into_serde(error: ParseError, error_type: Any = SerializationError) -> SerializationError:
    """Translate a native parse failure into the framework vocabulary."""
    if isinstance(error, MissingData):
        return error_type.custom("missing data (early end of file or slice too short)")
    if isinstance(error, OversizedVectorAllocation):
        return error_type.custom(
            f"the requested allocation of {error.requested} items exceeds maximum of {error.max}"
        )
    if isinstance(error, InvalidChecksum):
        e = error.expected
        return error_type.invalid_value(
            Unexpected.byte_array(error.actual),
            f"checksum {e[0]:02x}{e[1]:02x}{e[2]:02x}{e[3]:02x}",
        )
    if isinstance(error, NonMinimalVarInt):
        return error_type.custom("compact size was not encoded minimally")
    if isinstance(error, ParseFailed):
        return error_type.custom(error.message)
    if isinstance(error, UnsupportedSegwitFlag):
        return error_type.invalid_value(Unexpected.unsigned(error.flag), "segwit version 1 flag")
    raise TypeError(f"unknown parse error kind: {type(error).__name__}")
