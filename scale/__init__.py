from .extractor import extract_weight, find_candidates
from .flush import DEFAULT_QUIET_MS, FlushTimer
from .framer import DEFAULT_BUFFER_CAP, FramedChunk, LineFramer
from .session import (
    ScaleSession,
    ScaleSessionConfig,
    build_scale_config_from_loaded_config,
)

__all__ = [
    "extract_weight",
    "find_candidates",
    "DEFAULT_QUIET_MS",
    "FlushTimer",
    "DEFAULT_BUFFER_CAP",
    "FramedChunk",
    "LineFramer",
    "ScaleSession",
    "ScaleSessionConfig",
    "build_scale_config_from_loaded_config",
]
