# -- coding: utf-8 --

import asyncio
import codecs
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from core.contracts import DeviceStatus, LogLevel
from core.device import DeviceSession, EventSink
from core.label import LabelBook
from core.lifecycle import LoopRunner, run_async_cleanup
from scale.extractor import extract_weight
from scale.flush import DEFAULT_QUIET_MS, FlushTimer
from scale.framer import DEFAULT_BUFFER_CAP, LineFramer
from transport import BaseTransport, TransportError, TransportOpener

L = logging.getLogger("label_station.scale.session")


@dataclass
class ScaleSessionConfig:
    transport: str = "serial"
    endpoint: str = ""
    baud_rate: int = 9600
    read_timeout_s: float = 0.1
    read_chunk_size: int = 64
    encoding: str = "utf-8"
    flush_quiet_ms: float = DEFAULT_QUIET_MS
    buffer_cap: int = DEFAULT_BUFFER_CAP
    stop_timeout_s: float = 1.0


def build_scale_config_from_loaded_config(cfg) -> ScaleSessionConfig:
    block = cfg.scale
    return ScaleSessionConfig(
        transport=str(block.transport),
        endpoint=str(block.endpoint or ""),
        baud_rate=int(block.baud_rate),
        read_timeout_s=float(block.read_timeout_ms) / 1000.0,
        read_chunk_size=int(block.read_chunk_size),
        encoding=str(block.encoding),
        flush_quiet_ms=float(block.flush_quiet_ms),
        buffer_cap=int(block.buffer_cap),
    )


def _visible(text: str) -> str:
    return text.replace("\r", "\\r").replace("\n", "\\n")


class ScaleSession(DeviceSession):
    """Reads a scale port and folds the latest positive reading into the label.

    One asyncio task on the shared loop owns all reads. Chunk decoding, line
    framing, weight extraction and flush-timer rearming happen in that task's
    loop step, so a forced flush can never interleave with a chunk's own
    line split.
    """

    def __init__(
        self,
        cfg: ScaleSessionConfig,
        label_book: LabelBook,
        on_event: Optional[EventSink] = None,
        *,
        loop_runner: LoopRunner,
        opener: Optional[TransportOpener] = None,
        list_endpoints: Optional[Callable[[], List[str]]] = None,
    ):
        super().__init__(
            "scale",
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
        self.label_book = label_book
        self._framer = LineFramer(cfg.buffer_cap)
        self._decoder: codecs.IncrementalDecoder | None = None
        self._flush_timer: FlushTimer | None = None
        self._read_task: asyncio.Task | None = None
        self._stopping = False
        self._closing = False

    # ---- public API ----
    def connect(self, endpoint: str | None = None, baud_rate: int | None = None) -> bool:
        self._begin_connect(endpoint, baud_rate)
        try:
            transport = self._open_transport()
        except TransportError as e:
            self._fail_connect(e)
            return False

        with self._state_lock:
            self._transport = transport
            self._closing = False
            self._stopping = False
        self._decoder = codecs.getincrementaldecoder(self.cfg.encoding)(
            errors="replace"
        )
        self._framer.reset()
        self._set_status(
            DeviceStatus.CONNECTED,
            f"Scale Connected! ({self.endpoint} @ {self.baud_rate})",
            LogLevel.SUCCESS,
        )
        try:
            self._read_task = self.loop_runner.run_async(
                self._start_reader(transport), timeout=1.0
            )
        except Exception as e:
            L.exception("Scale read task failed to start")
            self._release_resources()
            self._fail_connect(e)
            return False
        return True

    def disconnect(self):
        """Stop reading and close the port. Always ends in DISCONNECTED."""
        with self._state_lock:
            self._closing = True
            self._stopping = True
            transport = self._transport
            task = self._read_task
            self._read_task = None

        if transport is not None:
            try:
                transport.cancel_read()
            except Exception as e:
                L.warning("Error canceling scale reader: %s", e)

        if task is not None:
            try:
                run_async_cleanup(
                    self._stop_reader(),
                    loop_runner=self.loop_runner,
                    timeout=self.cfg.stop_timeout_s + 0.5,
                )
            except Exception as e:
                L.warning("Scale read task did not stop cleanly: %s", e)

        had_transport = transport is not None
        self._release_resources()
        self._set_status(
            DeviceStatus.DISCONNECTED,
            "Scale Disconnected" if had_transport else "",
        )

    @property
    def pending_text(self) -> str:
        return self._framer.pending

    def stats(self) -> dict:
        timer = self._flush_timer
        return {
            "status": self.status.value,
            "endpoint": self.endpoint,
            "baud_rate": self.baud_rate,
            "buffered_chars": len(self._framer.pending),
            "dropped_chars": self._framer.dropped_total,
            "flush_armed": bool(timer and timer.armed),
            "forced_flushes": timer.fired_count if timer else 0,
        }

    # ---- loop-side ----
    async def _start_reader(self, transport: BaseTransport) -> asyncio.Task:
        self._flush_timer = FlushTimer(
            self.cfg.flush_quiet_ms / 1000.0, self._on_flush_timeout
        )
        task = asyncio.create_task(
            self._read_loop(transport), name="scale_session.read_loop"
        )
        return self._tasks.register(task)

    async def _stop_reader(self) -> bool:
        if self._flush_timer is not None:
            self._flush_timer.disarm()
        self._tasks.cancel_local_tasks()
        return await self._tasks.wait_local_tasks(timeout=self.cfg.stop_timeout_s)

    async def _read_loop(self, transport: BaseTransport):
        fault: Exception | None = None
        try:
            while not self._stopping:
                data = await asyncio.to_thread(transport.read, self.cfg.read_chunk_size)
                if self._stopping:
                    break
                if data:
                    self._on_bytes(data)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            fault = e
        finally:
            if self._flush_timer is not None:
                self._flush_timer.disarm()
        if fault is not None:
            self._on_read_fault(fault)

    def _on_bytes(self, data: bytes):
        decoder = self._decoder
        timer = self._flush_timer
        if decoder is None or timer is None:
            return
        timer.disarm()
        text = decoder.decode(data)
        if text:
            self._emit("raw_chunk", f'Raw: "{_visible(text)}"', LogLevel.DATA, payload=text)
            framed = self._framer.feed(text)
            if framed.dropped:
                L.warning(
                    "Scale buffer over %d chars; dropped %d oldest",
                    self._framer.cap,
                    framed.dropped,
                )
                self._emit(
                    "overflow",
                    f"Buffer overflow: dropped {framed.dropped} chars",
                    LogLevel.WARNING,
                    payload=framed.dropped,
                )
            for line in framed.lines:
                self._process_line(line)
        timer.arm()

    def _on_flush_timeout(self):
        if self._stopping:
            return
        rest = self._framer.take_remainder()
        if not rest.strip():
            return
        self._emit("flush", f'Buffer Flush: "{_visible(rest)}"', LogLevel.WARNING, payload=rest)
        self._process_line(rest)

    def _process_line(self, line: str):
        clean = line.strip()
        if not clean:
            return
        self._emit("line", f'Line: "{clean}"', LogLevel.INFO, payload=clean)
        sample = extract_weight(clean)
        if sample is None:
            L.debug("No weight candidate in %r", clean)
            return
        if self.label_book.set_if_changed("weight", sample.text):
            self._emit(
                "weight_updated",
                f"Auto-fill Weight: {sample.text}",
                LogLevel.SUCCESS,
                payload=sample,
            )

    def _on_read_fault(self, err: Exception):
        with self._state_lock:
            if self._closing:
                return
            self._closing = True
            self._stopping = True
        self._last_error = err
        L.error("Scale read fault: %s", err)
        self._emit("error", f"Scale Read Error: {err}", LogLevel.ERROR, payload=err)
        self._release_resources()
        self._set_status(DeviceStatus.ERROR)

    # ---- teardown ----
    def _release_resources(self):
        decoder = self._decoder
        self._decoder = None
        if decoder is not None:
            try:
                decoder.reset()
            except Exception as e:
                L.warning("Error releasing scale decoder: %s", e)
        self._framer.reset()
        self._close_transport()


__all__ = [
    "ScaleSessionConfig",
    "ScaleSession",
    "build_scale_config_from_loaded_config",
]
