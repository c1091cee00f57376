# -- coding: utf-8 --

import logging
import threading

import serial
from serial.tools import list_ports

from transport.base import (
    BaseTransport,
    OpenFailed,
    ReadFault,
    TransportConfig,
    TransportUnavailable,
    WriteFault,
    register_transport,
)

L = logging.getLogger("label_station.transport.serial")


@register_transport("serial")
class SerialTransport(BaseTransport):
    def __init__(self, cfg: TransportConfig):
        super().__init__(cfg)
        self._port: serial.Serial | None = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        port = self._port
        return bool(port is not None and port.is_open)

    @classmethod
    def list_endpoints(cls):
        return [p.device for p in sorted(list_ports.comports(), key=lambda p: p.device)]

    def open(self):
        if not self.cfg.endpoint:
            raise TransportUnavailable("no serial endpoint selected")
        with self._lock:
            if self._port is not None and self._port.is_open:
                return
            try:
                self._port = serial.Serial(
                    port=self.cfg.endpoint,
                    baudrate=int(self.cfg.baud_rate),
                    timeout=self.cfg.read_timeout_s,
                    write_timeout=self.cfg.write_timeout_s,
                )
            except (serial.SerialException, ValueError, OSError) as e:
                self._port = None
                raise OpenFailed(f"{self.cfg.endpoint}: {e}") from e
        L.info(
            "Serial port %s opened at %d baud", self.cfg.endpoint, self.cfg.baud_rate
        )

    def close(self):
        with self._lock:
            port = self._port
            self._port = None
        if port is None:
            return
        port.close()
        L.info("Serial port %s closed", self.cfg.endpoint)

    def read(self, size: int) -> bytes:
        port = self._port
        if port is None or not port.is_open:
            raise ReadFault(f"{self.cfg.endpoint}: port is not open")
        try:
            # Take whatever is already buffered so frames are not split needlessly.
            waiting = port.in_waiting
            return port.read(max(int(size), int(waiting or 0), 1))
        except (serial.SerialException, OSError, TypeError) as e:
            raise ReadFault(f"{self.cfg.endpoint}: {e}") from e

    def write(self, data: bytes) -> int:
        port = self._port
        if port is None or not port.is_open:
            raise WriteFault(f"{self.cfg.endpoint}: port is not open")
        try:
            written = port.write(data)
            port.flush()
        except (serial.SerialException, OSError) as e:
            raise WriteFault(f"{self.cfg.endpoint}: {e}") from e
        return int(written or 0)

    def cancel_read(self):
        port = self._port
        if port is None:
            return
        cancel = getattr(port, "cancel_read", None)
        if callable(cancel):
            cancel()


__all__ = ["SerialTransport"]
