# src/consensusbridge/formats.py
from __future__ import annotations
import dataclasses
import json
import logging
import typing
from typing import Any, Dict, Optional, Type, TypeVar, Union

from .bridge import With, deserialize, serialize
from .errors import FormatterError, SerializationError, Unexpected, UnsupportedFormatError
from .hex import HEX_LOWER
from .writer import StringSink

T = TypeVar("T")

logger = logging.getLogger("consensusbridge.formats")

# fmt -> human readable?
FORMATS: Dict[str, bool] = {
    "json": True,
    "msgpack": False,
    "cbor": False,
}

CONSENSUS_WITH = "consensusbridge.with"
CONSENSUS_TYPE = "consensusbridge.type"


# ---------- Serializer side ----------

class SeqBuilder:
    """Collects sequence elements into a list; refuses to grow past `limit`."""

    def __init__(self, limit: Optional[int] = None):
        self.limit = limit
        self.items: list = []

    def serialize_element(self, value: Any) -> None:
        if self.limit is not None and len(self.items) >= self.limit:
            raise SerializationError.custom(f"sequence exceeds size limit of {self.limit} elements")
        self.items.append(value)

    def end(self) -> list:
        return self.items


class ValueSerializer:
    """
    Serializer producing plain Python values (str / list of ints).

    size_limit bounds every produced string (in characters) and every
    sequence (in elements); None means unbounded.
    """

    error_type = SerializationError

    def __init__(self, human_readable: bool = True, size_limit: Optional[int] = None):
        self.human_readable = bool(human_readable)
        self.size_limit = size_limit

    def is_human_readable(self) -> bool:
        return self.human_readable

    def collect_str(self, display: Any) -> str:
        sink = StringSink(self.size_limit)
        try:
            display.fmt(sink)
        except FormatterError as exc:
            if sink.error is not None:
                raise sink.error from None
            raise self.error_type.custom("an error occurred when formatting an argument") from exc
        return sink.getvalue()

    def serialize_seq(self, length: Optional[int] = None) -> SeqBuilder:
        if length is not None and self.size_limit is not None and length > self.size_limit:
            raise self.error_type.custom(f"sequence exceeds size limit of {self.size_limit} elements")
        return SeqBuilder(self.size_limit)


# ---------- Deserializer side ----------

class ListSeqAccess:
    """Element-by-element access to a decoded list; elements must be u8."""

    def __init__(self, items: Union[list, tuple], error_type: type = SerializationError):
        self._items = items
        self._pos = 0
        self.error_type = error_type

    def size_hint(self) -> int:
        return len(self._items) - self._pos

    def next_element(self) -> Optional[int]:
        if self._pos >= len(self._items):
            return None
        v = self._items[self._pos]
        self._pos += 1
        if isinstance(v, bool) or not isinstance(v, int):
            raise self.error_type.invalid_type(Unexpected.of(v), "u8")
        if not 0 <= v <= 0xFF:
            raise self.error_type.invalid_value(Unexpected.of(v), "u8")
        return v


class ValueDeserializer:
    """Deserializer reading plain Python values produced by json/msgpack/cbor."""

    error_type = SerializationError

    def __init__(self, value: Any, human_readable: bool = True):
        self.value = value
        self.human_readable = bool(human_readable)

    def is_human_readable(self) -> bool:
        return self.human_readable

    def deserialize_str(self, visitor: Any) -> Any:
        if isinstance(self.value, str):
            return visitor.visit_str(self.value)
        raise self.error_type.invalid_type(Unexpected.of(self.value), visitor.expecting())

    def deserialize_seq(self, visitor: Any) -> Any:
        if isinstance(self.value, (list, tuple)):
            return visitor.visit_seq(ListSeqAccess(self.value, self.error_type))
        raise self.error_type.invalid_type(Unexpected.of(self.value), visitor.expecting())


# ---------- Records ----------

def consensus_field(strategy: Any = None, *, cls: Optional[type] = None, **kwargs: Any) -> Any:
    """
    Dataclass field serialized through its native encoding.

    strategy: text strategy for human-readable formats (None -> the one given to dumps/loads).
    cls: type to decode into; defaults to the field annotation.
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[CONSENSUS_WITH] = With(strategy)
    if cls is not None:
        metadata[CONSENSUS_TYPE] = cls
    return dataclasses.field(metadata=metadata, **kwargs)


def _is_encodable(value: Any) -> bool:
    return callable(getattr(value, "consensus_encode", None))


def _is_record(obj: Any) -> bool:
    return dataclasses.is_dataclass(obj) and not _is_encodable(obj)


def to_value(
    value: Any,
    human_readable: bool = True,
    *,
    strategy: Any = None,
    size_limit: Optional[int] = None,
) -> Any:
    """Turn an encodable value or a record into plain Python data."""
    strategy = strategy if strategy is not None else HEX_LOWER
    ser = ValueSerializer(human_readable, size_limit)
    if _is_encodable(value):
        return serialize(value, ser, strategy)
    if _is_record(value) and not isinstance(value, type):
        out: Dict[str, Any] = {}
        for f in dataclasses.fields(value):
            v = getattr(value, f.name)
            w = f.metadata.get(CONSENSUS_WITH)
            if w is not None:
                out[f.name] = w.serialize(v, ser, strategy)
            elif _is_record(v):
                out[f.name] = to_value(v, human_readable, strategy=strategy, size_limit=size_limit)
            else:
                out[f.name] = v
        return out
    raise TypeError(f"{type(value).__name__} is neither natively encodable nor a dataclass record")


def from_value(cls: Type[T], obj: Any, human_readable: bool = True, *, strategy: Any = None) -> T:
    """Inverse of to_value()."""
    strategy = strategy if strategy is not None else HEX_LOWER
    if callable(getattr(cls, "consensus_decode", None)):
        return deserialize(cls, ValueDeserializer(obj, human_readable), strategy)
    if not dataclasses.is_dataclass(cls):
        raise TypeError(f"{cls.__name__} is neither natively decodable nor a dataclass record")
    if not isinstance(obj, dict):
        raise SerializationError.invalid_type(Unexpected.of(obj), f"struct {cls.__name__}")

    hints = None
    kwargs: Dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        if f.name not in obj:
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                raise SerializationError.custom(f"missing field `{f.name}`")
            continue
        raw = obj[f.name]
        w = f.metadata.get(CONSENSUS_WITH)
        if w is None:
            if isinstance(raw, dict):
                if hints is None:
                    hints = typing.get_type_hints(cls)
                sub = hints.get(f.name)
                if isinstance(sub, type) and _is_record(sub):
                    raw = from_value(sub, raw, human_readable, strategy=strategy)
            kwargs[f.name] = raw
            continue
        field_cls = f.metadata.get(CONSENSUS_TYPE)
        if field_cls is None:
            if hints is None:
                hints = typing.get_type_hints(cls)
            field_cls = hints[f.name]
        kwargs[f.name] = w.deserialize(field_cls, ValueDeserializer(raw, human_readable), strategy)
    return cls(**kwargs)


# ---------- Formats ----------

def _check_fmt(fmt: str) -> bool:
    if fmt not in FORMATS:
        raise UnsupportedFormatError(f"Unknown format: {fmt}")
    return FORMATS[fmt]


def dumps(
    value: Any,
    fmt: str = "json",
    *,
    strategy: Any = None,
    size_limit: Optional[int] = None,
) -> Union[str, bytes]:
    """
    Serialize an encodable value (or a record holding some) to `fmt`.
    Supported fmt: "json" (returns str), "msgpack", "cbor" (return bytes).
    """
    human_readable = _check_fmt(fmt)
    logger.debug("dumps %s as %s", type(value).__name__, fmt)
    obj = to_value(value, human_readable, strategy=strategy, size_limit=size_limit)

    if fmt == "json":
        return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))

    if fmt == "msgpack":
        try:
            import msgpack  # type: ignore
        except Exception as e:
            raise SerializationError("msgpack not available") from e
        return msgpack.packb(obj, use_bin_type=True)

    try:
        import cbor2  # type: ignore
    except Exception as e:
        raise SerializationError("cbor2 not available") from e
    return cbor2.dumps(obj)


def loads(cls: Type[T], data: Union[str, bytes], fmt: str = "json", *, strategy: Any = None) -> T:
    """
    Deserialize a `cls` value from `fmt`.
    Supported fmt: "json", "msgpack", "cbor".
    """
    human_readable = _check_fmt(fmt)
    logger.debug("loads %s from %s", cls.__name__, fmt)

    if fmt == "json":
        try:
            obj = json.loads(data)
        except ValueError as e:
            raise SerializationError("failed to decode json payload") from e
    elif fmt == "msgpack":
        try:
            import msgpack  # type: ignore
        except Exception as e:
            raise SerializationError("msgpack not available") from e
        try:
            obj = msgpack.unpackb(data, raw=False)
        except Exception as e:
            raise SerializationError("failed to decode msgpack payload") from e
    else:
        try:
            import cbor2  # type: ignore
        except Exception as e:
            raise SerializationError("cbor2 not available") from e
        try:
            obj = cbor2.loads(data)
        except Exception as e:
            raise SerializationError("failed to decode cbor payload") from e

    return from_value(cls, obj, human_readable, strategy=strategy)
