# -- coding: utf-8 --
"""OutputManager: keep the diagnostic log ring and fan events out to channels."""

import logging
import threading
from collections import deque
from datetime import datetime
from typing import Protocol

from core.contracts import LogEntry, LogLevel, SessionEvent

L = logging.getLogger("label_station.output")

DEFAULT_LOG_HISTORY = 50


class OutputChannel(Protocol):
    def start(self): ...
    def stop(self): ...
    def publish(self, entry: LogEntry, event: SessionEvent | None): ...


class LogStore:
    """Append-only ring of the most recent log entries."""

    def __init__(self, max_entries: int = DEFAULT_LOG_HISTORY):
        self._max_entries = max(int(max_entries), 1)
        self._entries: deque[LogEntry] = deque(maxlen=self._max_entries)
        self._lock = threading.Lock()
        self._seq = 0
        self._counts = {level: 0 for level in LogLevel}

    def append(self, message: str, level: LogLevel = LogLevel.INFO) -> LogEntry:
        with self._lock:
            self._seq += 1
            entry = LogEntry(
                seq=self._seq,
                timestamp=datetime.now().astimezone(),
                message=message,
                level=level,
            )
            self._entries.append(entry)
            self._counts[level] += 1
        return entry

    def clear(self):
        with self._lock:
            self._entries.clear()

    def since(self, seq: int | None = None) -> list[LogEntry]:
        with self._lock:
            entries = list(self._entries)
        if seq is None:
            return entries
        return [e for e in entries if e.seq > seq]

    @property
    def entries(self) -> list[LogEntry]:
        with self._lock:
            return list(self._entries)

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def latest_seq(self) -> int:
        with self._lock:
            return self._seq

    def stats(self) -> dict:
        with self._lock:
            counts = {level.value: n for level, n in self._counts.items()}
            total = self._seq
        return {"total": total, **counts}


_PY_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.DATA: logging.DEBUG,
}


class LoggingChannel:
    """Mirror log entries into the `logging` tree (raw data only at DEBUG)."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("label_station.events")

    def start(self):
        return None

    def stop(self):
        return None

    def publish(self, entry: LogEntry, event: SessionEvent | None):
        device = event.device if event is not None else "system"
        self._logger.log(
            _PY_LEVELS.get(entry.level, logging.INFO),
            "[%s] %s",
            device,
            entry.message,
        )


class OutputManager:
    def __init__(self, store: LogStore):
        self._store = store
        self._channels: list[OutputChannel] = []

    def handle_event(self, event: SessionEvent):
        """Event sink handed to the sessions."""
        entry = self._store.append(event.message, event.level)
        self._fan_out(entry, event)

    def log(self, message: str, level: LogLevel = LogLevel.INFO):
        entry = self._store.append(message, level)
        self._fan_out(entry, None)

    def add_channel(self, channel: OutputChannel):
        self._channels.append(channel)

    def start(self):
        for ch in self._channels:
            ch.start()

    def stop(self):
        for ch in self._channels:
            try:
                ch.stop()
            except Exception:
                L.exception("Output channel stop failed: %r", ch)

    def clear(self):
        self._store.clear()

    # ---- Read API for HMI (proxy to internal store) ----
    @property
    def store(self) -> LogStore:
        return self._store

    def _fan_out(self, entry: LogEntry, event: SessionEvent | None):
        for ch in self._channels:
            try:
                ch.publish(entry, event)
            except Exception:
                L.exception("Output channel publish failed: %r", ch)


__all__ = [
    "DEFAULT_LOG_HISTORY",
    "LogStore",
    "LoggingChannel",
    "OutputManager",
    "OutputChannel",
]
