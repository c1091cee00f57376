"""Runtime config value validation."""

from __future__ import annotations

import codecs
import string
from typing import Any

from core.contracts import LabelSize
from core.label import IDENTIFIER_FIELD, LabelRecord
from transport import SUPPORTED_BAUD_RATES

from .schema import ConfigError, LoadedConfig

_LOG_LEVELS = ("debug", "info", "warning", "error")


def validate_config(cfg: LoadedConfig) -> None:
    # runtime
    _require_choice("runtime.log_level", str(cfg.runtime.log_level).lower(), _LOG_LEVELS)
    _require_float("runtime.max_runtime_s", cfg.runtime.max_runtime_s, min_v=0.0)
    _require_int("runtime.log_history_size", cfg.runtime.log_history_size, min_v=1)

    # scale
    _require_str("scale.transport", cfg.scale.transport)
    _require_baud("scale.baud_rate", cfg.scale.baud_rate)
    _require_int("scale.read_timeout_ms", cfg.scale.read_timeout_ms, min_v=1, max_v=10000)
    _require_int("scale.read_chunk_size", cfg.scale.read_chunk_size, min_v=1)
    _require_encoding("scale.encoding", cfg.scale.encoding)
    _require_float("scale.flush_quiet_ms", cfg.scale.flush_quiet_ms, min_v=1.0, max_v=60000.0)
    _require_int("scale.buffer_cap", cfg.scale.buffer_cap, min_v=1)

    # printer
    _require_str("printer.transport", cfg.printer.transport)
    _require_baud("printer.baud_rate", cfg.printer.baud_rate)
    _require_encoding("printer.encoding", cfg.printer.encoding)
    try:
        LabelSize.parse(cfg.printer.label_size)
    except ValueError as e:
        raise ConfigError(f"printer.label_size: {e}") from e
    _require_int("printer.copies", cfg.printer.copies, min_v=1)

    # label
    _require_qr_template("label.qr_url_template", cfg.label.qr_url_template)
    known = set(LabelRecord.field_names())
    for key in cfg.label_defaults:
        if key not in known:
            raise ConfigError(f"Unknown label field '{key}' in label defaults")

    # hmi
    _require_port("hmi.port", cfg.hmi.port)


def _require_int(
    name: str, value: Any, *, min_v: int | None = None, max_v: int | None = None
) -> int:
    try:
        iv = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer") from e
    if min_v is not None and iv < min_v:
        op = ">=" if min_v != 1 else ">"
        threshold = min_v if min_v != 1 else 0
        raise ConfigError(f"{name} must be {op} {threshold}")
    if max_v is not None and iv > max_v:
        raise ConfigError(f"{name} must be <= {max_v}")
    return iv


def _require_float(
    name: str, value: Any, *, min_v: float | None = None, max_v: float | None = None
) -> float:
    try:
        fv = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number") from e
    if min_v is not None and fv < min_v:
        raise ConfigError(f"{name} must be >= {min_v:g}")
    if max_v is not None and fv > max_v:
        raise ConfigError(f"{name} must be <= {max_v:g}")
    return fv


def _require_port(name: str, value: Any) -> int:
    return _require_int(name, value, min_v=1, max_v=65535)


def _require_str(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{name} must be a non-empty string")
    return value


def _require_choice(name: str, value: Any, choices) -> Any:
    if value not in choices:
        raise ConfigError(f"{name} must be one of: {', '.join(map(str, choices))}")
    return value


def _require_baud(name: str, value: Any) -> int:
    baud = _require_int(name, value, min_v=1)
    return _require_choice(name, baud, SUPPORTED_BAUD_RATES)


def _require_encoding(name: str, value: Any) -> str:
    try:
        codecs.lookup(str(value))
    except LookupError as e:
        raise ConfigError(f"{name}: unknown encoding {value!r}") from e
    return str(value)


def _require_qr_template(name: str, value: Any) -> str:
    text = _require_str(name, value)
    try:
        fields = {f for _, f, _, _ in string.Formatter().parse(text) if f is not None}
    except ValueError as e:
        raise ConfigError(f"{name}: {e}") from e
    if fields - {"tracking"}:
        raise ConfigError(f"{name} may only use the {{tracking}} placeholder")
    if "tracking" not in fields:
        raise ConfigError(
            f"{name} must contain {{tracking}} to embed the {IDENTIFIER_FIELD}"
        )
    return text


__all__ = ["validate_config"]
