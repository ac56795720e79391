import os, sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

import pytest

from consensusbridge.errors import (
    ByteDecodeError,
    ByteDecodeInitError,
    InvalidCharError,
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
from consensusbridge.unify import DecodeError, NativeParseError, SourceError, Unconsumed, consensus_error_into_serde


@pytest.mark.parametrize("error, message", [
    (MissingData(), "missing data (early end of file or slice too short)"),
    (NonMinimalVarInt(), "compact size was not encoded minimally"),
    (ParseFailed("data not consumed entirely when explicitly deserializing"),
     "data not consumed entirely when explicitly deserializing"),
    (OversizedVectorAllocation(5, 4), "the requested allocation of 5 items exceeds maximum of 4"),
])
def test_custom_messages(error, message):
    err = consensus_error_into_serde(error)
    assert isinstance(err, SerializationError)
    assert str(err) == message


def test_checksum_mismatch_payload():
    err = consensus_error_into_serde(
        InvalidChecksum(expected=bytes([0xDE, 0xAD, 0xBE, 0xEF]), actual=bytes([0, 0, 0, 0]))
    )
    assert "checksum deadbeef" in str(err)
    assert err.expected == "checksum deadbeef"
    assert list(err.unexpected.value) == [0, 0, 0, 0]
    assert err.unexpected == Unexpected.byte_array(b"\x00\x00\x00\x00")


def test_oversized_allocation_payload():
    err = consensus_error_into_serde(OversizedVectorAllocation(1000000, 4000))
    assert "1000000" in str(err)
    assert "4000" in str(err)


def test_unsupported_flag_payload():
    err = consensus_error_into_serde(UnsupportedSegwitFlag(2))
    assert err.unexpected == Unexpected.unsigned(2)
    assert str(err) == "invalid value: integer `2`, expected segwit version 1 flag"


def test_unknown_parse_error_kind():
    class Odd(ParseError):
        pass

    with pytest.raises(TypeError):
        consensus_error_into_serde(Odd("?"))


def test_source_error_passes_framework_error_through():
    inner = SerializationError.custom("element broke")
    assert SourceError(inner).unify() is inner


def test_source_error_converts_strategy_error():
    err = SourceError(InvalidCharError("q")).unify()
    assert err.unexpected == Unexpected.char("q")


def test_unconsumed():
    assert str(Unconsumed().unify()) == "got more bytes than expected"


def test_native_parse_error_uses_translation_table():
    assert str(NativeParseError(MissingData()).unify()).startswith("missing data")


def test_custom_error_type():
    class MyError(SerializationError):
        pass

    err = Unconsumed().unify(MyError)
    assert type(err) is MyError
    err = NativeParseError(InvalidChecksum(b"\x00" * 4, b"\x01" * 4)).unify(MyError)
    assert type(err) is MyError


def test_plain_decode_error_unifies_to_its_message():
    err = DecodeError("iterator gave up").unify()
    assert type(err) is SerializationError
    assert str(err) == "iterator gave up"


def test_source_error_with_plain_strategy_error():
    assert str(SourceError(ByteDecodeError("bad input")).unify()) == "bad input"
    assert str(SourceError(ByteDecodeInitError("cannot decode")).unify()) == "cannot decode"


@pytest.mark.parametrize("expected, actual", [(b"\x00\x01", b"\x00" * 4), (b"\x00" * 4, b"")])
def test_checksum_must_be_four_bytes(expected, actual):
    with pytest.raises(ValueError):
        InvalidChecksum(expected, actual)
