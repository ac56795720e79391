import os, sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

import io

import pytest

from consensusbridge.config import debug_mode
from consensusbridge.consensus import (
    MAX_VEC_SIZE,
    CheckedData,
    IterReader,
    VarBytes,
    checksum,
    decode,
    encode,
    read_compact_size,
    read_var_bytes,
    write_compact_size,
)
from consensusbridge.errors import (
    ContractViolation,
    InvalidChecksum,
    InvalidCharError,
    MissingData,
    NonMinimalVarInt,
    OpaqueIOError,
    OversizedVectorAllocation,
    ParseFailed,
)
from consensusbridge.hex import HexDecoder
from consensusbridge.unify import NativeParseError, SourceError, Unconsumed


@pytest.mark.parametrize("n, size", [
    (0, 1), (0xFC, 1), (0xFD, 3), (0xFFFF, 3), (0x10000, 5), (0xFFFFFFFF, 5), (0x100000000, 9),
])
def test_compact_size_roundtrip(n, size):
    buf = io.BytesIO()
    assert write_compact_size(buf, n) == size
    assert len(buf.getvalue()) == size
    assert read_compact_size(io.BytesIO(buf.getvalue())) == n


@pytest.mark.parametrize("raw", [
    b"\xfd\xfc\x00",
    b"\xfe\xff\xff\x00\x00",
    b"\xff\xff\xff\xff\xff\x00\x00\x00\x00",
])
def test_compact_size_non_minimal(raw):
    with pytest.raises(NonMinimalVarInt):
        read_compact_size(io.BytesIO(raw))


def test_var_bytes_oversized():
    raw = b"\xfe" + (MAX_VEC_SIZE + 1).to_bytes(4, "little")
    with pytest.raises(OversizedVectorAllocation) as ei:
        read_var_bytes(io.BytesIO(raw))
    assert ei.value.requested == MAX_VEC_SIZE + 1
    assert ei.value.max == MAX_VEC_SIZE


def test_truncated_input_is_missing_data():
    with pytest.raises(MissingData):
        decode(VarBytes, b"\x05\x01")


def test_decode_requires_full_consumption():
    with pytest.raises(ParseFailed):
        decode(VarBytes, b"\x00\x00")


def test_checked_data_roundtrip():
    v = CheckedData(b"hello")
    raw = encode(v)
    assert raw[:4] == b"\x05\x00\x00\x00"
    assert raw[4:8] == checksum(b"hello")
    assert decode(CheckedData, raw) == v


def test_checked_data_bad_checksum():
    raw = bytearray(encode(CheckedData(b"hello")))
    raw[4:8] = b"\x00\x00\x00\x00"
    with pytest.raises(InvalidChecksum) as ei:
        decode(CheckedData, bytes(raw))
    assert ei.value.actual == b"\x00\x00\x00\x00"
    assert ei.value.expected == checksum(b"hello")


def test_iter_reader_reads_short_at_end():
    r = IterReader(iter([1, 2, 3]))
    assert r.read(2) == b"\x01\x02"
    assert r.read(5) == b"\x03"
    assert r.read(1) == b""


def test_iter_reader_stores_iterator_failure():
    r = IterReader(HexDecoder("00zz"))
    with pytest.raises(OpaqueIOError):
        r.read(2)
    assert isinstance(r.error, InvalidCharError)
    with pytest.raises(OpaqueIOError):
        r.read(1)


def test_iter_reader_decode_value():
    assert IterReader(iter([2, 0xAB, 0xCD])).decode(VarBytes) == VarBytes(b"\xab\xcd")


def test_iter_reader_detects_leftover():
    with pytest.raises(Unconsumed):
        IterReader(iter([0, 7])).decode(VarBytes)


def test_iter_reader_malformed_tail_counts_as_leftover():
    with pytest.raises(Unconsumed):
        IterReader(HexDecoder("00zz")).decode(VarBytes)


def test_iter_reader_source_error():
    with pytest.raises(SourceError) as ei:
        IterReader(HexDecoder("01zz")).decode(VarBytes)
    assert ei.value.error.invalid_char == "z"


def test_iter_reader_parse_error():
    with pytest.raises(NativeParseError) as ei:
        IterReader(iter([1])).decode(VarBytes)
    assert isinstance(ei.value.parse_error, MissingData)


class Swallower:
    @classmethod
    def consensus_decode(cls, reader):
        try:
            reader.read(1)
        except OSError:
            pass
        return cls()


class Misreporter:
    @classmethod
    def consensus_decode(cls, reader):
        try:
            reader.read(1)
        except OSError:
            raise ParseFailed("not my fault")
        return cls()


def test_decoder_swallowing_source_error_is_a_violation():
    with pytest.raises(ContractViolation, match="silently ate the error"):
        IterReader(HexDecoder("zz")).decode(Swallower)
    with debug_mode(False):
        with pytest.raises(SourceError):
            IterReader(HexDecoder("zz")).decode(Swallower)


def test_decoder_misreporting_source_error_is_a_violation():
    with pytest.raises(ContractViolation, match="Misreporter"):
        IterReader(HexDecoder("zz")).decode(Misreporter)
    with debug_mode(False):
        with pytest.raises(SourceError):
            IterReader(HexDecoder("zz")).decode(Misreporter)
