# src/consensusbridge/strategy.py
"""
Text-encoding strategy contracts.

A strategy turns native-encoded bytes into text and back. Encoding is
incremental and buffered: the bridge feeds chunks as the native encoder
produces them and flushes exactly once at the end. Decoding is lazy: the
decoder yields one byte at a time and stops at the first malformed input.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterator, Protocol


class TextSink(Protocol):
    """Anything accepting text. Signals failure by raising FormatterError."""

    def write_str(self, text: str) -> None: ...


class EncodeBytes(ABC):
    """Per-call encoder state; allowed (and expected) to buffer."""

    @abstractmethod
    def encode_chunk(self, sink: TextSink, data: bytes) -> None:
        """Transform `data` and write it to `sink`, flushing the buffer whenever it fills up."""

    @abstractmethod
    def flush(self, sink: TextSink) -> None:
        """Write buffered text (if any) to `sink` and clear the buffer."""


class ByteEncoder(ABC):
    """Produces a fresh `EncodeBytes` per serialize call."""

    @abstractmethod
    def encoder(self) -> EncodeBytes: ...


class ByteDecoder(ABC):
    """
    Produces a lazy byte iterator over a string.

    `from_str` may raise a ByteDecodeInitError when the string can't possibly
    decode; the iterator raises a ByteDecodeError at the first bad input and
    is exhausted afterwards.
    """

    #: Shown in "invalid type" diagnostics when the source holds no string.
    expecting: str = "bytes encoded as a string"

    @abstractmethod
    def from_str(self, s: str) -> Iterator[int]: ...
