# -- coding: utf-8 --
from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from aiohttp import web

from core.contracts import LogEntry, SessionEvent
from core.label import LabelBook
from core.lifecycle import LoopRunner, run_async_cleanup
from printer.tspl import build_program


class StationContextLike(Protocol):
    @property
    def scale(self) -> Any: ...

    @property
    def printer(self) -> Any: ...

    @property
    def label_book(self) -> LabelBook: ...

    @property
    def output(self) -> Any: ...


L = logging.getLogger("label_station.output.hmi")


def _serialize_entry(entry: LogEntry) -> dict:
    return {
        "seq": entry.seq,
        "timestamp": entry.timestamp.isoformat(),
        "message": entry.message,
        "level": entry.level.value,
    }


def _parse_since_seq(raw: str | None) -> int | None:
    if not raw:
        return None
    try:
        val = int(raw)
    except ValueError:
        return None
    return val if val >= 0 else None


async def _json_body(request: web.Request) -> dict:
    if not request.can_read_body:
        return {}
    try:
        data = await request.json()
    except ValueError as e:
        raise web.HTTPBadRequest(text=f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise web.HTTPBadRequest(text="JSON body must be an object")
    return data


class _ApiServer:
    def __init__(
        self,
        host: str,
        port: int,
        context: StationContextLike,
        *,
        loop_runner: LoopRunner,
    ):
        self.host = host
        self.port = port
        self.context = context
        self.app = web.Application()
        self._setup_routes()
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self._started = False
        self._loop_runner = loop_runner

    def _setup_routes(self):
        app = self.app
        ctx = self.context

        async def status(request):
            logs = ctx.output.store
            since_seq = _parse_since_seq(request.query.get("since_seq"))
            latest_seq = logs.latest_seq
            full_snapshot = since_seq is None
            if since_seq is not None and latest_seq < since_seq:
                # Sequence reset likely happened; force client resync.
                since_seq = None
                full_snapshot = True
            payload = {
                "scale": ctx.scale.stats(),
                "printer": {
                    "status": ctx.printer.status.value,
                    "endpoint": ctx.printer.endpoint,
                    "baud_rate": ctx.printer.baud_rate,
                    "jobs_sent": ctx.printer.jobs_sent,
                },
                "label": ctx.label_book.snapshot().to_dict(),
                "logs": [_serialize_entry(e) for e in logs.since(since_seq)],
                "log_stats": logs.stats(),
                "max_logs": logs.max_entries,
                "latest_seq": latest_seq,
                "full_snapshot": full_snapshot,
            }
            return web.json_response(payload)

        async def update_label(request):
            data = await _json_body(request)
            try:
                record = ctx.label_book.update_many(data)
            except KeyError as e:
                raise web.HTTPBadRequest(text=str(e.args[0])) from e
            return web.json_response({"label": record.to_dict()})

        async def program(request):
            cfg = ctx.printer.cfg
            try:
                text = build_program(
                    ctx.label_book.snapshot(),
                    request.query.get("size") or cfg.label_size,
                    copies=cfg.copies,
                    brand=cfg.brand,
                )
            except ValueError as e:
                raise web.HTTPBadRequest(text=str(e)) from e
            return web.Response(text=text, content_type="text/plain")

        async def print_label(request):
            data = await _json_body(request)
            try:
                ok = await asyncio.to_thread(
                    ctx.printer.print_label,
                    ctx.label_book.snapshot(),
                    data.get("size"),
                    data.get("copies"),
                )
            except ValueError as e:
                raise web.HTTPBadRequest(text=str(e)) from e
            return web.json_response({"printed": ok})

        async def clear_logs(_request):
            ctx.output.clear()
            L.info("Log panel cleared")
            return web.json_response({"latest_seq": ctx.output.store.latest_seq})

        def _connect_handler(session):
            async def handler(request):
                data = await _json_body(request)
                try:
                    ok = await asyncio.to_thread(
                        session.connect, data.get("endpoint"), data.get("baud_rate")
                    )
                except ValueError as e:
                    raise web.HTTPBadRequest(text=str(e)) from e
                except RuntimeError as e:
                    raise web.HTTPConflict(text=str(e)) from e
                return web.json_response(
                    {"connected": ok, "status": session.status.value}
                )

            return handler

        def _disconnect_handler(session):
            async def handler(_request):
                await asyncio.to_thread(session.disconnect)
                return web.json_response({"status": session.status.value})

            return handler

        app.router.add_get("/status", status)
        app.router.add_post("/label", update_label)
        app.router.add_get("/program", program)
        app.router.add_post("/print", print_label)
        app.router.add_post("/logs/clear", clear_logs)
        app.router.add_post("/scale/connect", _connect_handler(ctx.scale))
        app.router.add_post("/scale/disconnect", _disconnect_handler(ctx.scale))
        app.router.add_post("/printer/connect", _connect_handler(ctx.printer))
        app.router.add_post("/printer/disconnect", _disconnect_handler(ctx.printer))

    def start(self):
        if self._started:
            return
        try:
            self._loop_runner.run_async(self._serve(), timeout=1.0)
        except Exception:
            self.stop()
            raise
        self._started = True

    async def _serve(self):
        self._runner = web.AppRunner(self.app, access_log=None)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        L.info("HMI web service running @ http://%s:%d", self.host, self.port)

    def stop(self):
        async def _cleanup():
            if self._runner:
                await self._runner.cleanup()
            self._runner = None
            self._site = None

        run_async_cleanup(
            _cleanup(),
            timeout=0.5,
            loop_runner=self._loop_runner,
        )
        self._started = False
        L.info("HMI web service stopped")


class HmiOutput:
    """HTTP control surface; registered as an output channel for lifecycle only."""

    def __init__(
        self,
        host: str,
        port: int,
        context: StationContextLike,
        *,
        loop_runner: LoopRunner,
    ):
        self.server = _ApiServer(host, port, context, loop_runner=loop_runner)

    def start(self):
        self.server.start()

    def stop(self):
        self.server.stop()

    def publish(self, entry: LogEntry, event: SessionEvent | None):
        # HMI pulls logs via /status; no push needed.
        _ = entry, event
        return None


__all__ = ["HmiOutput"]
