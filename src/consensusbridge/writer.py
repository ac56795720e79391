# src/consensusbridge/writer.py
"""
Byte-sink adapters handed to native encoders.

A native encoder only knows one kind of write failure: a generic OSError.
The adapters below raise an `OpaqueIOError` when the real sink fails and keep
the detailed failure to themselves, so the caller can recover it once the
native encoder returns (see `EncodeOutcome`).

With debug assertions on, the adapters also prove that no failure is dropped
or invented on the way: no write may follow a failed write, and whenever the
adapter itself reports failure the underlying sink must have failed first.
"""
from __future__ import annotations
import logging
from typing import Any, NamedTuple, Optional

from . import config
from .errors import ContractViolation, FormatterError, OpaqueIOError, SerializationError
from .strategy import EncodeBytes, TextSink

logger = logging.getLogger("consensusbridge.writer")


def type_name(obj: Any) -> str:
    t = obj if isinstance(obj, type) else type(obj)
    return f"{t.__module__}.{t.__qualname__}"


def violation(message: str) -> ContractViolation:
    logger.error("contract violation: %s", message)
    return ContractViolation(message)


class ErrorTrackingWriter:
    """Text sink wrapper that remembers whether the wrapped sink ever failed."""

    def __init__(self, sink: TextSink):
        self.sink = sink
        self._checked = config.debug_assertions()
        self.was_error = False

    def assert_no_error(self, fun: str) -> None:
        if self._checked and self.was_error:
            raise violation(f"`{fun}` called on errored writer")

    def assert_was_error(self, offender: Any) -> None:
        if self._checked and not self.was_error:
            raise violation(f"{type_name(offender)} returned an error unexpectedly")

    def write_str(self, text: str) -> None:
        self.assert_no_error("write_str")
        try:
            self.sink.write_str(text)
        except FormatterError:
            if self._checked:
                self.was_error = True
            raise


class TextByteWriter:
    """Byte sink that feeds a text-encoding strategy writing into a text sink."""

    def __init__(self, sink: TextSink, encoder: EncodeBytes):
        self.writer = ErrorTrackingWriter(sink)
        self.encoder = encoder

    def write(self, data: bytes) -> int:
        try:
            self.encoder.encode_chunk(self.writer, data)
        except FormatterError:
            self.writer.assert_was_error(self.encoder)
            raise OpaqueIOError() from None
        return len(data)

    def flush(self) -> None:
        # Native encoders may flush at will; the single real flush happens in actually_flush().
        pass

    def actually_flush(self) -> None:
        try:
            self.encoder.flush(self.writer)
        except FormatterError:
            self.writer.assert_was_error(self.encoder)
            raise


class SeqByteWriter:
    """Byte sink that emits every byte as one element of a structured sequence."""

    def __init__(self, seq: Any):
        self.seq = seq
        self.error: Optional[SerializationError] = None

    def write(self, data: bytes) -> int:
        if self.error is not None and config.debug_assertions():
            raise violation("`write` called on errored writer")
        for byte in bytes(data):
            try:
                self.seq.serialize_element(byte)
            except SerializationError as exc:
                self.error = exc
                raise OpaqueIOError() from None
        return len(data)

    def flush(self) -> None:
        pass


class EncodeOutcome(NamedTuple):
    """
    What a native encode call reported (`io_error`, None on success) next to
    the detailed failure the sink recorded (`cause`).

    `resolve()` checks the two agree and raises the error that should reach
    the caller, if any.
    """
    io_error: Optional[OSError]
    cause: Optional[SerializationError]

    def resolve(self, offender: Any) -> None:
        io_error, cause = self.io_error, self.cause
        checked = config.debug_assertions()
        if io_error is None:
            if cause is None:
                return
            if checked:
                raise violation(f"{type_name(offender)} silently ate an I/O error: {cause!r}")
            raise cause
        if isinstance(io_error, OpaqueIOError) and cause is not None:
            raise cause
        if checked:
            raise violation(
                f"{type_name(offender)} returned an unexpected I/O error: {io_error!r} "
                f"serialization error: {cause!r}"
            )
        if cause is not None:
            raise cause
        raise SerializationError.custom(f"unexpected I/O error: {io_error!r}") from io_error


class StringSink:
    """In-memory text sink, optionally bounded to `limit` characters.

    On overflow the detailed error is kept in `error` and FormatterError is raised.
    """

    def __init__(self, limit: Optional[int] = None):
        self.limit = limit
        self.error: Optional[SerializationError] = None
        self._parts: list = []
        self._len = 0

    def write_str(self, text: str) -> None:
        if self.limit is not None and self._len + len(text) > self.limit:
            self.error = SerializationError.custom(
                f"string exceeds size limit of {self.limit} characters"
            )
            raise FormatterError()
        self._parts.append(text)
        self._len += len(text)

    def getvalue(self) -> str:
        return "".join(self._parts)
