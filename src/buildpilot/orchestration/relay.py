"""
Stream relays and the shared log buffer.

Each output stream of a command is drained by its own relay thread. A relay
forwards every decoded chunk to the observer immediately and appends it to
the session's LogBuffer, so the full transcript survives whatever the
outcome. Chunk order is preserved within a stream; chunks of different
streams interleave in arrival order.
"""

import codecs
import logging
import socket
import threading
from typing import List, Optional

from ..transport.base import ChunkReader
from .observer import BUILD_OUTPUT_EVENT, Observer

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024


class LogBuffer:
    """Append-only transcript shared by the relays of one session."""

    def __init__(self):
        self._chunks: List[str] = []
        self._lock = threading.Lock()

    def append(self, text: str) -> None:
        if not text:
            return
        with self._lock:
            self._chunks.append(text)

    def getvalue(self) -> str:
        with self._lock:
            return "".join(self._chunks)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(chunk) for chunk in self._chunks)

    def __bool__(self) -> bool:
        with self._lock:
            return bool(self._chunks)


class StreamRelay:
    """
    Drain one output stream into an observer and an optional LogBuffer.

    The relay stops only at end of stream. A read error counts as end of
    stream: whatever arrived before it is kept.

    Args:
        name: Stream name, used for the thread name and logging.
        reader: Callable returning up to ``size`` bytes, ``b""`` at EOF.
        observer: Sink receiving each decoded chunk.
        event_name: Event name passed to the observer.
        log_buffer: Transcript to append to; None relays without recording.
    """

    def __init__(
        self,
        name: str,
        reader: ChunkReader,
        observer: Observer,
        event_name: str = BUILD_OUTPUT_EVENT,
        log_buffer: Optional[LogBuffer] = None,
        chunk_size: int = CHUNK_SIZE,
    ):
        self.name = name
        self.reader = reader
        self.observer = observer
        self.event_name = event_name
        self.log_buffer = log_buffer
        self.chunk_size = chunk_size
        self.bytes_read = 0
        self._thread: Optional[threading.Thread] = None
        # Incremental so multi-byte characters split across reads survive.
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def _forward(self, text: str) -> None:
        if not text:
            return
        try:
            self.observer.emit(self.event_name, text)
        except Exception as e:
            # Delivery is best-effort; the transcript must still be complete.
            logger.debug(f"Relay '{self.name}' observer error: {e}")
        if self.log_buffer is not None:
            self.log_buffer.append(text)

    def _read_chunk(self) -> bytes:
        try:
            return self.reader(self.chunk_size)
        except (OSError, ValueError, EOFError, socket.timeout) as e:
            logger.warning(f"Read error on '{self.name}', treating as end of stream: {e}")
            return b""

    def run(self) -> None:
        """Drain the stream to completion on the calling thread."""
        while True:
            data = self._read_chunk()
            if not data:
                break
            self.bytes_read += len(data)
            self._forward(self._decoder.decode(data))
        self._forward(self._decoder.decode(b"", final=True))
        logger.debug(f"Relay '{self.name}' finished after {self.bytes_read} bytes")

    def start(self) -> threading.Thread:
        if self._thread is not None:
            raise RuntimeError(f"Relay '{self.name}' already started")
        self._thread = threading.Thread(target=self.run, name=f"Relay-{self.name}", daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the relay thread; returns True once it has finished."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    @property
    def finished(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()
