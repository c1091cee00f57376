"""Pick the measurement out of one scale line."""

from __future__ import annotations

import math
import re

from core.contracts import WeightSample

_NUMBER = re.compile(r"[-+]?\d*\.?\d+")


def find_candidates(line: str) -> list[str]:
    return _NUMBER.findall(line or "")


def extract_weight(line: str) -> WeightSample | None:
    """Return the rightmost strictly positive finite number in `line`.

    Scale frames put status and unit codes ahead of the reading, so the scan
    runs right to left and skips zero/negative tokens (tare, checksum fields).
    """
    text = (line or "").strip()
    if not text:
        return None
    for candidate in reversed(find_candidates(text)):
        try:
            value = float(candidate)
        except ValueError:
            continue
        if math.isfinite(value) and value > 0:
            return WeightSample(value=value, line=text)
    return None


__all__ = ["find_candidates", "extract_weight"]
