"""Config package facade."""

from .loader import load_config
from .schema import (
    ConfigError,
    HmiConfigBlock,
    LabelConfigBlock,
    LoadedConfig,
    PrinterConfigBlock,
    RuntimeConfig,
    ScaleConfigBlock,
)
from .validate import validate_config

__all__ = [
    "ConfigError",
    "LoadedConfig",
    "RuntimeConfig",
    "ScaleConfigBlock",
    "PrinterConfigBlock",
    "LabelConfigBlock",
    "HmiConfigBlock",
    "load_config",
    "validate_config",
]
