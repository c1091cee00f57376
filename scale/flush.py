import asyncio
import logging
from typing import Callable

L = logging.getLogger("label_station.scale.flush")

DEFAULT_QUIET_MS = 150.0


class FlushTimer:
    """Debounce timer on an asyncio loop: fires once after `quiet_s` of silence.

    arm()/disarm() must be called on the loop thread; the callback runs there too.
    """

    def __init__(
        self,
        quiet_s: float,
        callback: Callable[[], None],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.quiet_s = max(float(quiet_s), 0.0)
        self._callback = callback
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self.fired_count = 0

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self):
        self.disarm()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.quiet_s, self._fire)

    def disarm(self):
        handle = self._handle
        self._handle = None
        if handle is not None:
            handle.cancel()

    def _fire(self):
        self._handle = None
        self.fired_count += 1
        try:
            self._callback()
        except Exception:
            L.exception("flush callback failed")


__all__ = ["DEFAULT_QUIET_MS", "FlushTimer"]
