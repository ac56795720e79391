# src/consensusbridge/bridge.py
"""
(De)serialization of natively-encoded values through a generic framework.

For human-readable targets a value becomes one string produced by a text
strategy (hex by default). For binary targets it becomes a sequence of byte
elements, one element per byte; nothing is buffered in between.

A serializer must provide `is_human_readable()`, `collect_str(display)` and
`serialize_seq(length)`; a deserializer `is_human_readable()`,
`deserialize_str(visitor)` and `deserialize_seq(visitor)`. See
`consensusbridge.formats` for the in-memory implementation.
"""
from __future__ import annotations
import logging
from typing import Any, Iterator, Optional, Type, TypeVar

from . import config
from .consensus import IterReader
from .errors import ByteDecodeInitError, FormatterError, OpaqueIOError, SerializationError
from .hex import HEX_LOWER
from .strategy import ByteDecoder, ByteEncoder, TextSink
from .unify import DecodeError
from .writer import EncodeOutcome, SeqByteWriter, StringSink, TextByteWriter, type_name, violation

T = TypeVar("T")

logger = logging.getLogger("consensusbridge.bridge")


class ConsensusDisplay:
    """Renders a natively-encodable value as text using a strategy."""

    def __init__(self, value: Any, strategy: Optional[ByteEncoder] = None):
        self.value = value
        self.strategy = strategy if strategy is not None else HEX_LOWER

    def fmt(self, sink: TextSink) -> None:
        """Write the text form into `sink`. Raises FormatterError if the sink fails."""
        writer = TextByteWriter(sink, self.strategy.encoder())
        try:
            self.value.consensus_encode(writer)
        except OSError as exc:
            expected = isinstance(exc, OpaqueIOError) and writer.writer.was_error
            if config.debug_assertions() and not expected:
                raise violation(f"{type_name(self.value)} returned an unexpected error: {exc!r}")
            raise FormatterError() from exc
        writer.actually_flush()

    def __str__(self) -> str:
        sink = StringSink()
        self.fmt(sink)
        return sink.getvalue()


def serialize(value: Any, serializer: Any, strategy: Optional[ByteEncoder] = None) -> Any:
    """Serialize `value` via its native encoding."""
    human_readable = serializer.is_human_readable()
    logger.debug("serializing %s as %s", type_name(value), "text" if human_readable else "byte sequence")
    if human_readable:
        return serializer.collect_str(ConsensusDisplay(value, strategy))

    seq = serializer.serialize_seq(None)
    writer = SeqByteWriter(seq)
    try:
        value.consensus_encode(writer)
    except OSError as exc:
        outcome = EncodeOutcome(exc, writer.error)
    else:
        outcome = EncodeOutcome(None, writer.error)
    outcome.resolve(value)
    return seq.end()


def deserialize(cls: Type[T], deserializer: Any, strategy: Optional[ByteDecoder] = None) -> T:
    """Deserialize a `cls` value from its native encoding."""
    error_type = getattr(deserializer, "error_type", SerializationError)
    human_readable = deserializer.is_human_readable()
    logger.debug("deserializing %s from %s", type_name(cls), "text" if human_readable else "byte sequence")
    if human_readable:
        strategy = strategy if strategy is not None else HEX_LOWER
        return deserializer.deserialize_str(HumanReadableVisitor(cls, strategy, error_type))
    return deserializer.deserialize_seq(BinaryVisitor(cls, error_type))


class HumanReadableVisitor:
    def __init__(self, cls: type, strategy: ByteDecoder, error_type: type = SerializationError):
        self.cls = cls
        self.strategy = strategy
        self.error_type = error_type

    def expecting(self) -> str:
        return self.strategy.expecting

    def visit_str(self, s: str) -> Any:
        try:
            decoder = self.strategy.from_str(s)
        except ByteDecodeInitError as exc:
            raise exc.into_de_error(self.error_type) from exc
        try:
            return IterReader(decoder).decode(self.cls)
        except DecodeError as exc:
            raise exc.unify(self.error_type) from exc


class BinaryVisitor:
    def __init__(self, cls: type, error_type: type = SerializationError):
        self.cls = cls
        self.error_type = error_type

    def expecting(self) -> str:
        return "a sequence of bytes"

    def visit_seq(self, seq: Any) -> Any:
        try:
            return IterReader(_seq_bytes(seq)).decode(self.cls)
        except DecodeError as exc:
            raise exc.unify(self.error_type) from exc


def _seq_bytes(seq: Any) -> Iterator[int]:
    while True:
        byte = seq.next_element()
        if byte is None:
            return
        yield byte


class With:
    """
    Reusable field-level helper bundling a strategy with serialize/deserialize.

        tx_with = With(Hex(Case.UPPER))
        out = tx_with.serialize(tx, serializer)
        tx2 = tx_with.deserialize(Transaction, deserializer)

    `strategy=None` defers to the default (lower-case hex) or, for records,
    to the strategy given to `dumps`/`loads`.
    """

    def __init__(self, strategy: Any = None):
        self.strategy = strategy

    def serialize(self, value: Any, serializer: Any, default: Any = None) -> Any:
        return serialize(value, serializer, self.strategy if self.strategy is not None else default)

    def deserialize(self, cls: Type[T], deserializer: Any, default: Any = None) -> T:
        return deserialize(cls, deserializer, self.strategy if self.strategy is not None else default)

    def __repr__(self) -> str:
        return f"With({self.strategy!r})"
