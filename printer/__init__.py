from .session import (
    PrinterSession,
    PrinterSessionConfig,
    build_printer_config_from_loaded_config,
)
from .tspl import LAYOUTS, build_program, encode_label, render_program

__all__ = [
    "PrinterSession",
    "PrinterSessionConfig",
    "build_printer_config_from_loaded_config",
    "LAYOUTS",
    "build_program",
    "encode_label",
    "render_program",
]
