"""Station assembly: shared loop, label book, log ring, device sessions, HMI."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from core.contracts import LogLevel
from core.label import LabelBook, build_label_record
from core.lifecycle import LoopRunner
from output.manager import LoggingChannel, LogStore, OutputManager
from printer.session import PrinterSession, build_printer_config_from_loaded_config
from scale.session import ScaleSession, build_scale_config_from_loaded_config

L = logging.getLogger("label_station.station")


@dataclass
class StationContext:
    scale: ScaleSession
    printer: PrinterSession
    label_book: LabelBook
    output: OutputManager


class Station:
    """Owns one scale, one printer and the label they share."""

    def __init__(
        self,
        context: StationContext,
        loop_runner: LoopRunner,
        *,
        scale_enabled: bool = True,
        printer_enabled: bool = False,
    ):
        self.context = context
        self.loop_runner = loop_runner
        self.scale_enabled = scale_enabled
        self.printer_enabled = printer_enabled
        self._stop_evt = threading.Event()
        self._started = False
        self._stopped = False

    @property
    def scale(self) -> ScaleSession:
        return self.context.scale

    @property
    def printer(self) -> PrinterSession:
        return self.context.printer

    @property
    def label_book(self) -> LabelBook:
        return self.context.label_book

    @property
    def output(self) -> OutputManager:
        return self.context.output

    def start(self):
        if self._started:
            raise RuntimeError("Station is single-use; start() may only be called once")
        if self._stopped:
            raise RuntimeError("Station is stopped and cannot be started again")
        self._started = True
        try:
            self.output.start()
            self.output.log("Station started")
            # A device that fails to connect stays in ERROR; the HMI can retry.
            if self.scale_enabled:
                self.scale.connect()
            if self.printer_enabled:
                self.printer.connect()
        except Exception:
            L.exception("Station start failed; rolling back partial startup")
            try:
                self.stop()
            except Exception:
                L.exception("Station rollback stop failed")
            raise

    def request_stop(self):
        self._stop_evt.set()

    def run(self, runtime_limit_s: float | None = None):
        if not self._started:
            raise RuntimeError("Station.run() requires start() first")
        start_ts = time.perf_counter()
        try:
            while not self._stop_evt.wait(0.1):
                if (
                    runtime_limit_s is not None
                    and (time.perf_counter() - start_ts) >= runtime_limit_s
                ):
                    L.info(
                        "Runtime limit reached (%ss); shutting down station",
                        runtime_limit_s,
                    )
                    self.request_stop()
        finally:
            self.stop()

    def stop(self):
        if self._stopped:
            return
        self._stopped = True

        def _run_stage(name: str, fn: Callable[[], None]):
            t0 = time.perf_counter()
            try:
                fn()
            except Exception:
                L.exception("Shutdown stage failed: %s", name)
            finally:
                L.debug(
                    "Shutdown stage=%s elapsed=%.1fms",
                    name,
                    (time.perf_counter() - t0) * 1000,
                )

        _run_stage("scale", self.scale.disconnect)
        _run_stage("printer", self.printer.disconnect)
        _run_stage("output_manager", self.output.stop)
        _run_stage("async_loop", self.loop_runner.shutdown_loop)


def build_station_from_loaded_config(
    cfg, *, loop_runner: Optional[LoopRunner] = None
) -> Station:
    loop_runner = loop_runner or LoopRunner()
    store = LogStore(cfg.runtime.log_history_size)
    output = OutputManager(store)
    output.add_channel(LoggingChannel())

    label_book = LabelBook(
        build_label_record(cfg.label_defaults, qr_template=cfg.label.qr_url_template),
        qr_template=cfg.label.qr_url_template,
    )
    scale = ScaleSession(
        build_scale_config_from_loaded_config(cfg),
        label_book,
        output.handle_event,
        loop_runner=loop_runner,
    )
    printer = PrinterSession(
        build_printer_config_from_loaded_config(cfg),
        output.handle_event,
        loop_runner=loop_runner,
    )
    context = StationContext(
        scale=scale, printer=printer, label_book=label_book, output=output
    )

    if cfg.hmi.enabled:
        from output.hmi import HmiOutput

        output.add_channel(
            HmiOutput(cfg.hmi.host, int(cfg.hmi.port), context, loop_runner=loop_runner)
        )
        output.log(f"HMI enabled @ http://{cfg.hmi.host}:{cfg.hmi.port}", LogLevel.INFO)

    return Station(
        context,
        loop_runner,
        scale_enabled=bool(cfg.scale.enabled),
        printer_enabled=bool(cfg.printer.enabled),
    )


__all__ = ["Station", "StationContext", "build_station_from_loaded_config"]
