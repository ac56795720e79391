# src/consensusbridge/__init__.py
from .bridge import ConsensusDisplay, With, serialize, deserialize
from .hex import Case, Hex, HexEncoder, HexDecoder, HEX_LOWER, HEX_UPPER, HEX_BUF_SIZE
from .strategy import ByteEncoder, ByteDecoder, EncodeBytes
from .consensus import (
    Encodable,
    Decodable,
    IterReader,
    VarBytes,
    CheckedData,
    MAX_VEC_SIZE,
    encode,
    decode,
    checksum,
)
from .formats import (
    ValueSerializer,
    ValueDeserializer,
    consensus_field,
    to_value,
    from_value,
    dumps,
    loads,
)
from .unify import DecodeError, SourceError, Unconsumed, NativeParseError, consensus_error_into_serde
from .config import debug_assertions, set_debug, debug_mode
from .errors import (
    ConsensusBridgeError,
    ContractViolation,
    UnsupportedFormatError,
    OpaqueIOError,
    FormatterError,
    SerializationError,
    Unexpected,
    ParseError,
    MissingData,
    OversizedVectorAllocation,
    InvalidChecksum,
    NonMinimalVarInt,
    ParseFailed,
    UnsupportedSegwitFlag,
    ByteDecodeInitError,
    ByteDecodeError,
    OddLengthStringError,
    InvalidCharError,
)

__version__ = "0.1.0"

__all__ = [
    # Bridge
    "ConsensusDisplay", "With", "serialize", "deserialize",
    # Strategies
    "Case", "Hex", "HexEncoder", "HexDecoder", "HEX_LOWER", "HEX_UPPER", "HEX_BUF_SIZE",
    "ByteEncoder", "ByteDecoder", "EncodeBytes",
    # Native codec
    "Encodable", "Decodable", "IterReader", "VarBytes", "CheckedData", "MAX_VEC_SIZE",
    "encode", "decode", "checksum",
    # Formats
    "ValueSerializer", "ValueDeserializer", "consensus_field", "to_value", "from_value",
    "dumps", "loads",
    # Unification
    "DecodeError", "SourceError", "Unconsumed", "NativeParseError", "consensus_error_into_serde",
    # Config
    "debug_assertions", "set_debug", "debug_mode",
    # Errors
    "ConsensusBridgeError", "ContractViolation", "UnsupportedFormatError", "OpaqueIOError",
    "FormatterError", "SerializationError", "Unexpected",
    "ParseError", "MissingData", "OversizedVectorAllocation", "InvalidChecksum",
    "NonMinimalVarInt", "ParseFailed", "UnsupportedSegwitFlag",
    "ByteDecodeInitError", "ByteDecodeError", "OddLengthStringError", "InvalidCharError",
]
