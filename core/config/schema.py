"""Typed config schema blocks shared by loader/validator/station."""

from dataclasses import dataclass, field
from typing import Any, Dict, List


class ConfigError(Exception):
    pass


@dataclass
class RuntimeConfig:
    log_level: str = "info"
    max_runtime_s: float = 0.0
    log_history_size: int = 50


@dataclass
class ScaleConfigBlock:
    enabled: bool = True
    transport: str = "serial"
    endpoint: str = ""
    baud_rate: int = 9600
    read_timeout_ms: int = 100
    read_chunk_size: int = 64
    encoding: str = "utf-8"
    flush_quiet_ms: float = 150.0
    buffer_cap: int = 1000


@dataclass
class PrinterConfigBlock:
    enabled: bool = False
    transport: str = "serial"
    endpoint: str = ""
    baud_rate: int = 9600
    encoding: str = "utf-8"
    label_size: str = "100x80"
    copies: int = 1
    brand: str = "ARSH EXPRESS"


@dataclass
class LabelConfigBlock:
    defaults_file: str = ""
    qr_url_template: str = "https://tracking.post.ir/?id={tracking}"


@dataclass
class HmiConfigBlock:
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class LoadedConfig:
    imports: List[str]
    runtime: RuntimeConfig
    scale: ScaleConfigBlock
    printer: PrinterConfigBlock
    label: LabelConfigBlock
    hmi: HmiConfigBlock
    label_defaults: Dict[str, Any] = field(default_factory=dict)
    paths: Dict[str, str] = field(default_factory=dict)


__all__ = [
    "ConfigError",
    "RuntimeConfig",
    "ScaleConfigBlock",
    "PrinterConfigBlock",
    "LabelConfigBlock",
    "HmiConfigBlock",
    "LoadedConfig",
]
