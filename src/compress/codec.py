"""Streaming bzip2 transform used between a job's source and sink.

The codec itself is the standard library's incremental ``bz2`` compressor
and decompressor. This module only adapts them to the two stream shapes the
bridge needs:

* :class:`EncodeStream` is written to and pushes compressed blocks into a
  sink, counting bytes on both sides.
* :class:`DecodeStream` is read from and pulls compressed blocks out of a
  source. Concatenated streams are decoded back to back, as ``bzip2`` does.

Malformed input never leaks ``OSError``/``EOFError`` from the codec; it is
reported as :class:`~compress.errors.CodecError`.
"""

from __future__ import annotations

import bz2
import logging
from typing import BinaryIO, Optional, Protocol

from .errors import CodecError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class Writable(Protocol):
    def write(self, data: bytes) -> object:
        ...


class Readable(Protocol):
    def read(self, size: int = -1) -> bytes:
        ...


class EncodeStream:
    """Compress everything written to it into ``sink``.

    ``input_offset`` and ``output_offset`` are final once :meth:`close` has
    returned. Closing does not close the sink.
    """

    def __init__(self, sink: Writable, level: int = 9) -> None:
        self._sink = sink
        self._compressor = bz2.BZ2Compressor(level)
        self._closed = False
        self.input_offset = 0
        self.output_offset = 0

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("write to closed encode stream")
        self.input_offset += len(data)
        self._emit(self._compressor.compress(data))
        return len(data)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._emit(self._compressor.flush())

    def _emit(self, block: bytes) -> None:
        if block:
            self._sink.write(block)
            self.output_offset += len(block)

    def __enter__(self) -> "EncodeStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()


class DecodeStream:
    """Decompress bytes pulled from ``source``.

    :meth:`read` returns at most ``size`` decoded bytes (one chunk when
    ``size`` is negative) and ``b""`` once every stream has been decoded.
    """

    def __init__(self, source: Readable, chunk_size: int = CHUNK_SIZE) -> None:
        self._source = source
        self._chunk_size = chunk_size
        self._decompressor = bz2.BZ2Decompressor()
        self._started = False
        self._eof = False
        self.input_offset = 0
        self.output_offset = 0

    def read(self, size: int = -1) -> bytes:
        limit = size if size > 0 else self._chunk_size
        while not self._eof:
            block = self._next_block(limit)
            if block:
                self.output_offset += len(block)
                return block
        return b""

    def _fill(self) -> bytes:
        data = self._source.read(self._chunk_size)
        self.input_offset += len(data)
        return data

    def _next_block(self, limit: int) -> bytes:
        decompressor = self._decompressor
        if decompressor.eof:
            rest = decompressor.unused_data or self._fill()
            if not rest:
                self._eof = True
                return b""
            decompressor = self._decompressor = bz2.BZ2Decompressor()
            try:
                return decompressor.decompress(rest, limit)
            except OSError:
                logger.debug("Ignoring %d bytes of trailing garbage after end of stream", len(rest))
                self._eof = True
                return b""

        if decompressor.needs_input:
            data = self._fill()
            if not data:
                if not self._started:
                    raise CodecError("compressed stream is empty")
                raise CodecError("compressed stream ends before the end-of-stream marker")
            self._started = True
        else:
            data = b""

        try:
            return decompressor.decompress(data, limit)
        except OSError as exc:
            raise CodecError(f"corrupted file or format error: {exc}") from exc


def new_encode_stream(sink: Writable, level: int = 9) -> EncodeStream:
    if not 1 <= level <= 9:
        raise ValueError(f"invalid compression level {level}")
    return EncodeStream(sink, level)


def new_decode_stream(source: Readable, chunk_size: Optional[int] = None) -> DecodeStream:
    return DecodeStream(source, chunk_size or CHUNK_SIZE)


def discard_decoded(source: BinaryIO, chunk_size: int = CHUNK_SIZE) -> DecodeStream:
    """Decode ``source`` to the end without keeping the output."""

    stream = new_decode_stream(source, chunk_size)
    while stream.read(chunk_size):
        pass
    return stream
