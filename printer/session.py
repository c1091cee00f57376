# -- coding: utf-8 --

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from core.contracts import DeviceStatus, LabelSize, LogLevel
from core.device import DeviceSession, EventSink
from core.label import LabelRecord
from core.lifecycle import LoopRunner
from printer.tspl import DEFAULT_BRAND, build_program, needs_raster_fallback
from transport import TransportError, TransportOpener, WriteFault

L = logging.getLogger("label_station.printer.session")


@dataclass
class PrinterSessionConfig:
    transport: str = "serial"
    endpoint: str = ""
    baud_rate: int = 9600
    read_timeout_s: float = 0.1
    encoding: str = "utf-8"
    label_size: str = LabelSize.SIZE_100_80.value
    copies: int = 1
    brand: str = DEFAULT_BRAND


def build_printer_config_from_loaded_config(cfg) -> PrinterSessionConfig:
    block = cfg.printer
    return PrinterSessionConfig(
        transport=str(block.transport),
        endpoint=str(block.endpoint or ""),
        baud_rate=int(block.baud_rate),
        encoding=str(block.encoding),
        label_size=str(block.label_size),
        copies=int(block.copies),
        brand=str(block.brand),
    )


class PrinterSession(DeviceSession):
    """Writes whole TSPL programs to a label printer, one job at a time."""

    def __init__(
        self,
        cfg: PrinterSessionConfig,
        on_event: Optional[EventSink] = None,
        *,
        loop_runner: LoopRunner,
        opener: Optional[TransportOpener] = None,
        list_endpoints: Optional[Callable[[], List[str]]] = None,
    ):
        super().__init__(
            "printer",
            transport_kind=cfg.transport,
            endpoint=cfg.endpoint,
            baud_rate=cfg.baud_rate,
            read_timeout_s=cfg.read_timeout_s,
            loop_runner=loop_runner,
            on_event=on_event,
            opener=opener,
            list_endpoints=list_endpoints,
            logger=L,
        )
        self.cfg = cfg
        self._write_lock: asyncio.Lock | None = None
        self.jobs_sent = 0

    def connect(self, endpoint: str | None = None, baud_rate: int | None = None) -> bool:
        self._begin_connect(endpoint, baud_rate)
        try:
            transport = self._open_transport()
        except TransportError as e:
            self._fail_connect(e)
            return False
        with self._state_lock:
            self._transport = transport
        self._set_status(
            DeviceStatus.CONNECTED,
            f"TSPL Printer Connected ({self.endpoint} @ {self.baud_rate})",
            LogLevel.SUCCESS,
        )
        return True

    def disconnect(self):
        with self._state_lock:
            had_transport = self._transport is not None
        self._close_transport()
        self._set_status(
            DeviceStatus.DISCONNECTED, "Printer Disconnected" if had_transport else ""
        )

    def print_program(self, program: str) -> bool:
        """Send one program as a single payload. Returns True when written."""
        try:
            payload = program.encode(self.cfg.encoding)
        except UnicodeEncodeError as e:
            return self._write_failed(WriteFault(f"cannot encode program: {e}"))
        try:
            return self.loop_runner.run_async(self._write_job(payload), timeout=None)
        except Exception as e:
            return self._write_failed(e)

    def print_label(
        self,
        record: LabelRecord,
        size: LabelSize | str | None = None,
        copies: int | None = None,
    ) -> bool:
        if not record.tracking_number.strip():
            self._emit(
                "write_failed",
                "Validation Error: Tracking Number is required.",
                LogLevel.ERROR,
            )
            return False
        if needs_raster_fallback(record, self.cfg.brand):
            L.warning(
                "Label has characters outside Latin-1; printer fonts may not render them"
            )
        program = build_program(
            record,
            size or self.cfg.label_size,
            copies=int(copies if copies is not None else self.cfg.copies),
            brand=self.cfg.brand,
        )
        return self.print_program(program)

    async def _write_job(self, payload: bytes) -> bool:
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        async with self._write_lock:
            transport = self._transport
            if transport is None or self.status != DeviceStatus.CONNECTED:
                return self._write_failed(WriteFault("Serial Printer not connected!"))
            try:
                await asyncio.to_thread(transport.write, payload)
            except Exception as e:
                return self._write_failed(e)
        self.jobs_sent += 1
        L.info("TSPL program sent (%d bytes)", len(payload))
        self._emit(
            "write_succeeded", "TSPL Command Sent", LogLevel.SUCCESS, payload=len(payload)
        )
        return True

    def _write_failed(self, err: Exception) -> bool:
        self._last_error = err
        L.error("Print failed: %s", err)
        self._emit("write_failed", f"Print Failed: {err}", LogLevel.ERROR, payload=err)
        return False


__all__ = [
    "PrinterSessionConfig",
    "PrinterSession",
    "build_printer_config_from_loaded_config",
]
