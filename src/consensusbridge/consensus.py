# src/consensusbridge/consensus.py
"""
Native ("consensus") encoding primitives.

Domain objects implement `consensus_encode(writer) -> int` and a
`consensus_decode(reader)` classmethod. Writers expose `write(bytes) -> int`
and readers `read(n) -> bytes`; both report transport failure as OSError.
Malformed input is reported with the ParseError family.
"""
from __future__ import annotations
import hashlib
import io
import struct
from dataclasses import dataclass
from typing import Any, Iterator, Protocol, Type, TypeVar, runtime_checkable

from . import config
from .errors import (
    ConsensusBridgeError,
    InvalidChecksum,
    MissingData,
    NonMinimalVarInt,
    OpaqueIOError,
    OversizedVectorAllocation,
    ParseError,
    ParseFailed,
)
from .unify import NativeParseError, SourceError, Unconsumed
from .writer import type_name, violation

T = TypeVar("T")

# Upper bound on any length prefix we are willing to honour.
MAX_VEC_SIZE = 4_000_000

_END = object()


@runtime_checkable
class Encodable(Protocol):
    def consensus_encode(self, writer: Any) -> int: ...


@runtime_checkable
class Decodable(Protocol):
    @classmethod
    def consensus_decode(cls, reader: Any) -> Any: ...


# ---------- Integers ----------

def read_exact(reader: Any, n: int) -> bytes:
    """Read exactly `n` bytes or raise MissingData."""
    data = reader.read(n)
    if len(data) < n:
        raise MissingData()
    return bytes(data)


def write_u8(writer: Any, v: int) -> int:
    return writer.write(struct.pack("<B", v))


def read_u8(reader: Any) -> int:
    return read_exact(reader, 1)[0]


def write_u32(writer: Any, v: int) -> int:
    return writer.write(struct.pack("<I", v))


def read_u32(reader: Any) -> int:
    return struct.unpack("<I", read_exact(reader, 4))[0]


def write_u64(writer: Any, v: int) -> int:
    return writer.write(struct.pack("<Q", v))


def read_u64(reader: Any) -> int:
    return struct.unpack("<Q", read_exact(reader, 8))[0]


def write_compact_size(writer: Any, n: int) -> int:
    """Bitcoin-style variable length integer."""
    if n < 0xFD:
        return write_u8(writer, n)
    if n <= 0xFFFF:
        return writer.write(b"\xfd" + struct.pack("<H", n))
    if n <= 0xFFFFFFFF:
        return writer.write(b"\xfe" + struct.pack("<I", n))
    return writer.write(b"\xff" + struct.pack("<Q", n))


def read_compact_size(reader: Any) -> int:
    """Inverse of write_compact_size; rejects non-minimal encodings."""
    prefix = read_u8(reader)
    if prefix < 0xFD:
        return prefix
    if prefix == 0xFD:
        n = struct.unpack("<H", read_exact(reader, 2))[0]
        if n < 0xFD:
            raise NonMinimalVarInt()
        return n
    if prefix == 0xFE:
        n = struct.unpack("<I", read_exact(reader, 4))[0]
        if n < 0x10000:
            raise NonMinimalVarInt()
        return n
    n = struct.unpack("<Q", read_exact(reader, 8))[0]
    if n < 0x100000000:
        raise NonMinimalVarInt()
    return n


# ---------- Byte strings ----------

def write_var_bytes(writer: Any, data: bytes) -> int:
    return write_compact_size(writer, len(data)) + writer.write(bytes(data))


def read_var_bytes(reader: Any, max_len: int = MAX_VEC_SIZE) -> bytes:
    n = read_compact_size(reader)
    if n > max_len:
        raise OversizedVectorAllocation(n, max_len)
    return read_exact(reader, n)


def checksum(data: bytes) -> bytes:
    """First four bytes of double SHA-256."""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()[:4]


# ---------- Whole-value helpers ----------

def encode(value: Any) -> bytes:
    """Native-encode `value` into a fresh bytes object."""
    buf = io.BytesIO()
    value.consensus_encode(buf)
    return buf.getvalue()


def decode(cls: Type[T], data: bytes) -> T:
    """Native-decode `data`; every byte must be consumed."""
    reader = io.BytesIO(data)
    value = cls.consensus_decode(reader)
    if reader.tell() != len(data):
        raise ParseFailed("data not consumed entirely when explicitly deserializing")
    return value


class IterReader:
    """
    Byte reader over an iterator of ints.

    A failure raised by the iterator is stored in `error` and reported to the
    native decoder as OpaqueIOError. `decode()` then checks that what the
    decoder reports agrees with what the iterator did.
    """

    def __init__(self, iterator: Iterator[int]):
        self._iterator = iter(iterator)
        self.error: Any = None

    def read(self, n: int = -1) -> bytes:
        if self.error is not None:
            raise OpaqueIOError()
        out = bytearray()
        try:
            while n < 0 or len(out) < n:
                b = next(self._iterator, _END)
                if b is _END:
                    break
                out.append(b)
        except ConsensusBridgeError as exc:
            self.error = exc
            raise OpaqueIOError() from None
        return bytes(out)

    def decode(self, cls: Type[T]) -> T:
        """
        Decode one `cls` and require the iterator to be exhausted.

        Raises:
            SourceError: the iterator failed (its error is attached),
            NativeParseError: the native decoder rejected the bytes,
            Unconsumed: input continued after the value,
            ContractViolation: decoder and iterator disagree (debug only).
        """
        checked = config.debug_assertions()
        name = type_name(cls)
        try:
            value = cls.consensus_decode(self)
        except ParseError as exc:
            if self.error is None:
                raise NativeParseError(exc) from exc
            if checked:
                raise violation(
                    f"{name} should've returned `Other` IO error because of deserialization "
                    f"error {self.error!r} but it returned consensus error {exc!r} instead"
                )
            raise SourceError(self.error) from exc
        except OSError as exc:
            if isinstance(exc, OpaqueIOError) and self.error is not None:
                raise SourceError(self.error) from None
            if checked:
                raise violation(
                    f"unexpected I/O error {exc!r} returned from {name}.consensus_decode(), "
                    f"deserialization error: {self.error!r}"
                )
            if self.error is not None:
                raise SourceError(self.error) from exc
            raise NativeParseError(ParseFailed(f"I/O error: {exc}")) from exc

        if self.error is not None:
            if checked:
                raise violation(f"{name} silently ate the error: {self.error!r}")
            raise SourceError(self.error)
        try:
            tail = next(self._iterator, _END)
        except ConsensusBridgeError:
            # a malformed tail is still more input than expected
            tail = None
        if tail is not _END:
            raise Unconsumed()
        return value


# ---------- Built-in native types ----------

@dataclass(frozen=True)
class VarBytes:
    """Compact-size length prefix followed by raw bytes."""
    data: bytes = b""

    def consensus_encode(self, writer: Any) -> int:
        return write_var_bytes(writer, self.data)

    @classmethod
    def consensus_decode(cls, reader: Any) -> "VarBytes":
        return cls(read_var_bytes(reader))


@dataclass(frozen=True)
class CheckedData:
    """
    Payload protected by a checksum.

    Layout: u32 LE length, 4-byte checksum (double SHA-256 prefix), payload.
    """
    data: bytes = b""

    def consensus_encode(self, writer: Any) -> int:
        n = write_u32(writer, len(self.data))
        n += writer.write(checksum(self.data))
        n += writer.write(bytes(self.data))
        return n

    @classmethod
    def consensus_decode(cls, reader: Any) -> "CheckedData":
        length = read_u32(reader)
        if length > MAX_VEC_SIZE:
            raise OversizedVectorAllocation(length, MAX_VEC_SIZE)
        transmitted = read_exact(reader, 4)
        data = read_exact(reader, length)
        expected = checksum(data)
        if expected != transmitted:
            raise InvalidChecksum(expected=expected, actual=transmitted)
        return cls(data)
