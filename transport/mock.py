# -- coding: utf-8 --

import logging
import queue
import threading

from transport.base import (
    BaseTransport,
    OpenFailed,
    ReadFault,
    TransportConfig,
    WriteFault,
    register_transport,
)

L = logging.getLogger("label_station.transport.mock")

_WAKE = object()


@register_transport("mock")
class MockTransport(BaseTransport):
    """In-memory endpoint: tests and dry runs push bytes in, read the writes out.

    Failures are scripted through attributes: `fail_open`, `fail_close`,
    `fail_write` hold an exception to raise; `feed_error()` queues a read fault.
    """

    endpoints = ["mock0"]

    def __init__(self, cfg: TransportConfig):
        super().__init__(cfg)
        self._chunks: queue.Queue = queue.Queue()
        self._open = False
        self._lock = threading.Lock()
        self.written: list[bytes] = []
        self.open_count = 0
        self.close_count = 0
        self.fail_open: Exception | None = None
        self.fail_close: Exception | None = None
        self.fail_write: Exception | None = None

    @property
    def is_open(self) -> bool:
        return self._open

    @classmethod
    def list_endpoints(cls):
        return list(cls.endpoints)

    def open(self):
        if self.fail_open is not None:
            raise OpenFailed(str(self.fail_open)) from self.fail_open
        with self._lock:
            self._open = True
            self.open_count += 1

    def close(self):
        with self._lock:
            self._open = False
            self.close_count += 1
        self._chunks.put(_WAKE)
        if self.fail_close is not None:
            raise self.fail_close

    def feed(self, data: bytes | str):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._chunks.put(bytes(data))

    def feed_error(self, message: str = "device unplugged"):
        self._chunks.put(ReadFault(message))

    def read(self, size: int) -> bytes:
        if not self._open:
            raise ReadFault(f"{self.cfg.endpoint or 'mock'}: port is not open")
        try:
            item = self._chunks.get(timeout=self.cfg.read_timeout_s)
        except queue.Empty:
            return b""
        if item is _WAKE:
            return b""
        if isinstance(item, Exception):
            raise item
        return item

    def write(self, data: bytes) -> int:
        if not self._open:
            raise WriteFault(f"{self.cfg.endpoint or 'mock'}: port is not open")
        if self.fail_write is not None:
            raise WriteFault(str(self.fail_write)) from self.fail_write
        with self._lock:
            self.written.append(bytes(data))
        return len(data)

    def cancel_read(self):
        self._chunks.put(_WAKE)


__all__ = ["MockTransport"]
