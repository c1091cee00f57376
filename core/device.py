"""State handling shared by the scale and printer sessions."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Optional

from core.contracts import DeviceStatus, LogLevel, SessionEvent
from core.lifecycle import AsyncTaskOwner, LoopRunner
from transport import (
    BaseTransport,
    OpenFailed,
    TransportConfig,
    TransportError,
    TransportOpener,
    TransportUnavailable,
    create_transport,
    enumerate_endpoints,
    require_baud_rate,
)

EventSink = Callable[[SessionEvent], None]

_BUSY = (DeviceStatus.CONNECTING, DeviceStatus.CONNECTED)


class DeviceSession:
    """Owns one transport and the disconnected/connecting/connected/error cycle."""

    def __init__(
        self,
        device: str,
        *,
        transport_kind: str,
        endpoint: str,
        baud_rate: int,
        read_timeout_s: float,
        loop_runner: LoopRunner,
        on_event: Optional[EventSink] = None,
        opener: Optional[TransportOpener] = None,
        list_endpoints: Optional[Callable[[], List[str]]] = None,
        logger: logging.Logger,
    ):
        self.device = device
        self.transport_kind = transport_kind
        self.read_timeout_s = float(read_timeout_s)
        self.on_event = on_event
        self._log = logger
        self._opener = opener or (lambda cfg: create_transport(transport_kind, cfg))
        self._list_endpoints = list_endpoints or (
            lambda: enumerate_endpoints(transport_kind)
        )
        self._endpoint = str(endpoint or "")
        self._baud_rate = require_baud_rate(baud_rate)
        self._status = DeviceStatus.DISCONNECTED
        self._state_lock = threading.Lock()
        self._transport: BaseTransport | None = None
        self._last_error: Exception | None = None
        self._tasks = AsyncTaskOwner(
            loop_runner=loop_runner, logger=logger, owner_name=f"{device}_session"
        )

    # ---- read API ----
    @property
    def status(self) -> DeviceStatus:
        with self._state_lock:
            return self._status

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def baud_rate(self) -> int:
        return self._baud_rate

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def loop_runner(self) -> LoopRunner:
        return self._tasks.loop_runner

    def set_baud_rate(self, baud_rate: int):
        rate = require_baud_rate(baud_rate)
        with self._state_lock:
            if self._status in _BUSY:
                raise RuntimeError(
                    f"{self.device} baud rate is fixed while connected; disconnect first"
                )
            self._baud_rate = rate

    # ---- connect helpers ----
    def _begin_connect(self, endpoint: str | None, baud_rate: int | None):
        rate = require_baud_rate(baud_rate) if baud_rate is not None else None
        with self._state_lock:
            if self._status in _BUSY:
                raise RuntimeError(
                    f"{self.device} session already {self._status.value}; disconnect first"
                )
            if rate is not None:
                self._baud_rate = rate
            if endpoint is not None:
                self._endpoint = str(endpoint)
            prev = self._status
            self._status = DeviceStatus.CONNECTING
        if prev != DeviceStatus.CONNECTING:
            self._emit(
                "status",
                f"Requesting {self.device} port...",
                LogLevel.INFO,
                payload=DeviceStatus.CONNECTING,
            )

    def _open_transport(self) -> BaseTransport:
        endpoint = self._resolve_endpoint()
        cfg = TransportConfig(
            endpoint=endpoint,
            baud_rate=self._baud_rate,
            read_timeout_s=self.read_timeout_s,
        )
        try:
            transport = self._opener(cfg)
            transport.open()
        except TransportError:
            raise
        except Exception as e:
            raise OpenFailed(f"{endpoint}: {e}") from e
        self._endpoint = endpoint
        return transport

    def _resolve_endpoint(self) -> str:
        endpoint = self._endpoint.strip()
        if endpoint:
            return endpoint
        try:
            available = list(self._list_endpoints())
        except Exception as e:
            raise TransportUnavailable(f"cannot enumerate endpoints: {e}") from e
        if not available:
            raise TransportUnavailable(f"no {self.transport_kind} endpoints available")
        self._log.info(
            "No %s endpoint configured; using first available %s",
            self.device,
            available[0],
        )
        return available[0]

    def _fail_connect(self, err: Exception):
        self._last_error = err
        self._log.error(
            "%s connection failed (%s): %s", self.device, type(err).__name__, err
        )
        self._emit(
            "error",
            f"{self.device.capitalize()} Connection Failed: {err}",
            LogLevel.ERROR,
            payload=err,
        )
        self._set_status(DeviceStatus.ERROR)

    def _close_transport(self):
        with self._state_lock:
            transport = self._transport
            self._transport = None
        if transport is None:
            return
        try:
            transport.close()
        except Exception as e:
            self._log.warning("Error closing %s port: %s", self.device, e)
            self._emit("error", f"Error closing port: {e}", LogLevel.ERROR, payload=e)

    # ---- events ----
    def _set_status(self, status: DeviceStatus, message: str = "", level=LogLevel.INFO):
        with self._state_lock:
            prev = self._status
            self._status = status
        if prev == status and not message:
            return
        self._emit(
            "status",
            message or f"{self.device.capitalize()} {status.value}",
            level,
            payload=status,
        )

    def _emit(self, kind: str, message: str, level: LogLevel, payload: Any = None):
        sink = self.on_event
        if sink is None:
            return
        try:
            sink(
                SessionEvent(
                    kind=kind,
                    device=self.device,
                    message=message,
                    level=level,
                    payload=payload,
                )
            )
        except Exception:
            self._log.exception("%s event sink failed", self.device)


__all__ = ["DeviceSession", "EventSink"]
