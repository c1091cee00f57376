"""Shared background asyncio loop and the sync bridge the sessions use."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Coroutine
from concurrent.futures import TimeoutError
from typing import Any, TypeVar

L = logging.getLogger("label_station.runtime")


T = TypeVar("T")


class LoopRunner:
    """Owns one background asyncio loop; device tasks and timers live on it."""

    def __init__(self, *, logger: logging.Logger | None = None):
        self._logger = logger or L
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._stopped = False
        self._lock = threading.Lock()
        self._loop_ready: threading.Event | None = None
        self._loop_thread_ident: int | None = None

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._stopped:
                raise RuntimeError("Async loop already stopped")
            if self._loop and self._thread and self._thread.is_alive():
                return self._loop
            self._loop = asyncio.new_event_loop()
            self._loop_ready = threading.Event()
            self._loop_thread_ident = None

            def _runner():
                loop = self._loop
                if loop is None:
                    return
                asyncio.set_event_loop(loop)
                self._loop_thread_ident = threading.get_ident()
                if self._loop_ready:
                    self._loop_ready.set()
                loop.run_forever()

            self._thread = threading.Thread(
                target=_runner, name="label_station.loop", daemon=True
            )
            self._thread.start()
            if self._loop_ready:
                self._loop_ready.wait(timeout=0.5)
            return self._loop

    def in_loop_thread(self) -> bool:
        return (
            self._loop_thread_ident is not None
            and threading.get_ident() == self._loop_thread_ident
        )

    def run_async(self, coro: Coroutine[Any, Any, T], timeout: float | None = 0.5) -> T:
        """Submit coroutine to the shared loop from a non-loop thread and wait."""
        loop = self._ensure_loop()
        if self.in_loop_thread():
            coro.close()
            raise RuntimeError(
                "run_async must not be called from the loop thread; await directly"
            )
        fut = asyncio.run_coroutine_threadsafe(coro, loop)
        try:
            return fut.result(timeout=timeout)
        except TimeoutError:
            fut.cancel()
            self._logger.warning("run_async timeout after %.2fs", timeout or 0)
            raise

    def shutdown_loop(self, timeout: float = 1.0):
        """Cancel pending tasks and stop the shared loop."""
        if self.in_loop_thread():
            raise RuntimeError("shutdown_loop must not be called from the loop thread")
        with self._lock:
            loop = self._loop
            thread = self._thread
            self._stopped = True
            if not loop or not thread or loop.is_closed():
                return

        async def _shutdown():
            current = asyncio.current_task()
            tasks = [
                t for t in asyncio.all_tasks() if t is not current and not t.done()
            ]
            if tasks:
                names = [t.get_name() or repr(t) for t in tasks[:10]]
                self._logger.info(
                    "shutdown_loop pending_tasks=%d names=%s",
                    len(tasks),
                    ", ".join(names),
                )
            for t in tasks:
                t.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
            await loop.shutdown_asyncgens()

        fut = asyncio.run_coroutine_threadsafe(_shutdown(), loop)
        try:
            fut.result(timeout=timeout)
        except TimeoutError:
            fut.cancel()
            raise
        finally:
            loop.call_soon_threadsafe(loop.stop)
            if thread.is_alive():
                thread.join(timeout=timeout)
            if not loop.is_closed() and not loop.is_running():
                loop.close()
            self._loop = None
            self._thread = None
            self._loop_ready = None
            self._loop_thread_ident = None


class AsyncTaskOwner:
    """Tracks the asyncio tasks one session created so stop() can cancel them."""

    def __init__(
        self,
        *,
        loop_runner: LoopRunner,
        logger: logging.Logger | None = None,
        owner_name: str = "async_service",
    ):
        self._logger = logger or L
        self._owner_name = owner_name
        self._loop_runner = loop_runner
        self._local_tasks: list[asyncio.Task[Any]] = []

    def register(self, task: asyncio.Task[Any] | None):
        if task is None:
            return None
        self._local_tasks.append(task)
        task.add_done_callback(self._forget)
        return task

    def _forget(self, task: asyncio.Task[Any]):
        try:
            self._local_tasks.remove(task)
        except ValueError:
            pass

    def cancel_local_tasks(self):
        for task in list(self._local_tasks):
            task.cancel()

    async def wait_local_tasks(self, timeout: float | None = None) -> bool:
        """Wait for owned tasks to finish; False when some outlived `timeout`."""
        tasks = [t for t in self._local_tasks if not t.done()]
        if not tasks:
            return True
        _done, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            self._logger.warning(
                "%s: %d task(s) still running after %.2fs",
                self._owner_name,
                len(pending),
                timeout or 0,
            )
        return not pending

    @property
    def loop_runner(self) -> LoopRunner:
        return self._loop_runner


def run_async_cleanup(
    coro: Coroutine[Any, Any, Any],
    *,
    loop_runner: LoopRunner,
    timeout: float = 0.5,
):
    """Run async cleanup from sync code with a bounded wait."""
    return loop_runner.run_async(coro, timeout=timeout)


__all__ = [
    "LoopRunner",
    "AsyncTaskOwner",
    "run_async_cleanup",
]
