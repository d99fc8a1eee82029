"""Producer/consumer plumbing that runs the codec between a source and a sink.

A transfer runs on two threads joined by a bounded :class:`Conduit`:

* ``ENCODE``: source -> encoder -> conduit -> sink (the producer compresses)
* ``DECODE``: source -> conduit -> decoder -> sink (the consumer decompresses)

The producer is a dedicated thread; the consumer is the calling thread. The
conduit only ever holds compressed bytes, and at most ``capacity`` chunks of
them, so memory use does not grow with the file.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import BinaryIO, Deque, Dict, Optional

from .codec import CHUNK_SIZE, Readable, Writable, new_decode_stream, new_encode_stream
from .models import Direction, TransferResult

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 8


class Conduit:
    """Bounded in-memory byte channel with error signalling on both ends.

    The writer ends the stream with :meth:`close` or :meth:`close_with_error`;
    the reader gives up with :meth:`abort`. Errors are handed to the other
    side instead of looking like a clean end of stream.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("conduit capacity must be at least 1")
        self._capacity = capacity
        self._chunks: Deque[bytes] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._write_error: Optional[BaseException] = None
        self._read_error: Optional[BaseException] = None
        self._leftover = b""

    # writer side

    def write(self, data: bytes) -> int:
        if not data:
            return 0
        with self._cond:
            while len(self._chunks) >= self._capacity and self._read_error is None:
                self._cond.wait()
            if self._read_error is not None:
                raise BrokenPipeError(f"conduit reader aborted: {self._read_error}") from self._read_error
            if self._closed:
                raise ValueError("write to closed conduit")
            self._chunks.append(bytes(data))
            self._cond.notify_all()
        return len(data)

    def close(self) -> None:
        self.close_with_error(None)

    def close_with_error(self, error: Optional[BaseException]) -> None:
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._write_error = error
            self._cond.notify_all()

    # reader side

    def read(self, size: int = -1) -> bytes:
        if not self._leftover:
            with self._cond:
                while not self._chunks and not self._closed:
                    self._cond.wait()
                if self._chunks:
                    self._leftover = self._chunks.popleft()
                    self._cond.notify_all()
                elif self._write_error is not None:
                    raise self._write_error
                else:
                    return b""
        if 0 < size < len(self._leftover):
            block, self._leftover = self._leftover[:size], self._leftover[size:]
            return block
        block, self._leftover = self._leftover, b""
        return block

    def abort(self, error: BaseException) -> None:
        with self._cond:
            if self._read_error is None:
                self._read_error = error
            self._chunks.clear()
            self._cond.notify_all()

    @property
    def buffered(self) -> int:
        with self._cond:
            return len(self._chunks)


def copy_stream(reader: Readable, writer: Writable, chunk_size: int = CHUNK_SIZE) -> int:
    total = 0
    while True:
        block = reader.read(chunk_size)
        if not block:
            return total
        writer.write(block)
        total += len(block)


def _pump_raw(source: Readable, conduit: Conduit, chunk_size: int) -> None:
    try:
        copy_stream(source, conduit, chunk_size)
    except Exception as exc:
        conduit.close_with_error(exc)
    else:
        conduit.close()


def _pump_encoded(
    source: Readable,
    conduit: Conduit,
    level: int,
    chunk_size: int,
    counts: Dict[str, int],
) -> None:
    try:
        encoder = new_encode_stream(conduit, level)
        copy_stream(source, encoder, chunk_size)
        encoder.close()
    except Exception as exc:
        conduit.close_with_error(exc)
        return
    counts["in"] = encoder.input_offset
    counts["out"] = encoder.output_offset
    conduit.close()


def bridge(
    source: BinaryIO,
    sink: BinaryIO,
    direction: Direction,
    *,
    level: int = 9,
    chunk_size: int = CHUNK_SIZE,
    capacity: int = DEFAULT_CAPACITY,
    name: str = "bridge",
) -> TransferResult:
    """Move ``source`` through the codec into ``sink``.

    Never raises for I/O or codec failures; the first failure on either side
    is returned as ``TransferResult.err``. The producer thread has always
    been joined when this returns. ``source`` and ``sink`` stay open.
    """

    conduit = Conduit(capacity)
    counts: Dict[str, int] = {}
    if direction is Direction.ENCODE:
        producer = threading.Thread(
            target=_pump_encoded,
            args=(source, conduit, level, chunk_size, counts),
            name=f"{name}-producer",
            daemon=True,
        )
    else:
        producer = threading.Thread(
            target=_pump_raw,
            args=(source, conduit, chunk_size),
            name=f"{name}-producer",
            daemon=True,
        )

    logger.debug("Starting %s transfer for %s", direction.value, name)
    producer.start()
    err: Optional[BaseException] = None
    decoder = None
    try:
        if direction is Direction.ENCODE:
            copy_stream(conduit, sink, chunk_size)
        else:
            decoder = new_decode_stream(conduit, chunk_size)
            copy_stream(decoder, sink, chunk_size)
    except Exception as exc:
        err = exc
    finally:
        # unblocks a producer still writing after the decoder stopped reading
        conduit.abort(err or BrokenPipeError("consumer finished"))
        producer.join()

    if err is not None:
        logger.debug("Transfer for %s failed: %s", name, err)
        return TransferResult(err=err)

    if decoder is not None:
        result = TransferResult(bytes_in=decoder.input_offset, bytes_out=decoder.output_offset)
    else:
        result = TransferResult(bytes_in=counts.get("in", 0), bytes_out=counts.get("out", 0))
    logger.debug("Finished %s transfer for %s: %d in, %d out", direction.value, name, result.bytes_in, result.bytes_out)
    return result
