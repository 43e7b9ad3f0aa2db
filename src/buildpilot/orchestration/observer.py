"""
Observers receiving live build output.

Delivery to an observer is best-effort: a failing sink must never stall or
break the relay feeding it. SafeObserver makes that policy explicit by
swallowing sink errors while counting them and reporting each drop.
"""

import logging
import sys
import threading
from typing import Callable, List, Optional, Protocol, TextIO, Tuple

logger = logging.getLogger(__name__)

BUILD_OUTPUT_EVENT = "build-output"


class Observer(Protocol):
    def emit(self, event_name: str, payload: str) -> None:
        ...


class SafeObserver:
    """
    Wrap a sink so emission never raises.

    Args:
        sink: The observer actually receiving events.
        on_drop: Optional callback invoked with ``(event_name, error)`` for
            every emission the sink rejected.
    """

    def __init__(self, sink: Observer,
                 on_drop: Optional[Callable[[str, Exception], None]] = None):
        self.sink = sink
        self.on_drop = on_drop
        self._dropped = 0
        self._lock = threading.Lock()

    @property
    def dropped(self) -> int:
        """Number of emissions the sink failed to accept."""
        with self._lock:
            return self._dropped

    def emit(self, event_name: str, payload: str) -> None:
        try:
            self.sink.emit(event_name, payload)
        except Exception as e:
            with self._lock:
                self._dropped += 1
            logger.debug(f"Observer dropped '{event_name}' event: {e}")
            if self.on_drop is not None:
                try:
                    self.on_drop(event_name, e)
                except Exception as callback_error:
                    logger.debug(f"on_drop callback failed: {callback_error}")


class StreamObserver:
    """Write payloads verbatim to a text stream (stdout by default)."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self._lock = threading.Lock()

    def emit(self, event_name: str, payload: str) -> None:
        with self._lock:
            self.stream.write(payload)
            self.stream.flush()


class LoggingObserver:
    """Forward payloads to a logger, one record per non-empty line."""

    def __init__(self, target: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.target = target or logger
        self.level = level

    def emit(self, event_name: str, payload: str) -> None:
        for line in payload.splitlines():
            if line.strip():
                self.target.log(self.level, f"[{event_name}] {line}")


class RecordingObserver:
    """Keep every event in memory; used for pre-flight capture and tests."""

    def __init__(self):
        self.events: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def emit(self, event_name: str, payload: str) -> None:
        with self._lock:
            self.events.append((event_name, payload))

    def payloads(self, event_name: str = BUILD_OUTPUT_EVENT) -> List[str]:
        with self._lock:
            return [payload for name, payload in self.events if name == event_name]

    def text(self, event_name: str = BUILD_OUTPUT_EVENT) -> str:
        return "".join(self.payloads(event_name))
