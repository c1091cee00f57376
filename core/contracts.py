"""Data contracts shared by the scale, printer, and output channels."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any


class DeviceStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class LogLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    DATA = "data"


class LabelSize(str, Enum):
    SIZE_80_100 = "80x100"
    SIZE_100_100 = "100x100"
    SIZE_100_80 = "100x80"

    @property
    def width_mm(self) -> int:
        return int(self.value.split("x")[0])

    @property
    def height_mm(self) -> int:
        return int(self.value.split("x")[1])

    @classmethod
    def parse(cls, value: "LabelSize | str") -> "LabelSize":
        if isinstance(value, LabelSize):
            return value
        raw = str(value or "").strip().lower().replace(" ", "").replace("mm", "")
        for size in cls:
            if size.value == raw:
                return size
        raise ValueError(
            f"Unknown label size {value!r}. Available: "
            + ", ".join(s.value for s in cls)
        )


def format_reading(value: float) -> str:
    """Shortest round-trip text for a reading: `205`, `0.00001`, `1e-7`.

    Plain decimal notation is used from 1e-6 up to 1e21; outside that range the
    exponent is written without zero padding and with an explicit sign.
    """
    value = float(value)
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" not in text:
        return text
    mantissa, exp = text.split("e")
    exp = int(exp)
    if -7 < exp < 21:
        return format(Decimal(text), "f")
    return f"{mantissa}e{'+' if exp > 0 else '-'}{abs(exp)}"


@dataclass(frozen=True, slots=True)
class WeightSample:
    value: float
    line: str = ""

    @property
    def text(self) -> str:
        return format_reading(self.value)


@dataclass(slots=True)
class SessionEvent:
    kind: str
    device: str = ""
    message: str = ""
    level: LogLevel = LogLevel.INFO
    payload: Any | None = None
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True)
class LogEntry:
    seq: int = 0
    timestamp: datetime | None = None
    message: str = ""
    level: LogLevel = LogLevel.INFO


__all__ = [
    "DeviceStatus",
    "LogLevel",
    "LabelSize",
    "WeightSample",
    "format_reading",
    "SessionEvent",
    "LogEntry",
]
