# -- coding: utf-8 --

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Type

from core.registry import register_named, resolve_registered

TransportFactory = Dict[str, Type["BaseTransport"]]
_registry: TransportFactory = {}
_module_names = {"serial": "serial_port"}

SUPPORTED_BAUD_RATES = (1200, 2400, 4800, 9600, 19200, 38400, 115200)


class TransportError(Exception):
    pass


class TransportUnavailable(TransportError):
    """No serial capability or no endpoint to open at all."""


class OpenFailed(TransportError):
    """open() was rejected (permission denied, busy, bad settings)."""


class ReadFault(TransportError):
    pass


class WriteFault(TransportError):
    pass


@dataclass
class TransportConfig:
    endpoint: str = ""
    baud_rate: int = 9600
    read_timeout_s: float = 0.1
    write_timeout_s: float | None = None


class BaseTransport(ABC):
    """One open connection, owned by exactly one session at a time."""

    def __init__(self, cfg: TransportConfig):
        self.cfg = cfg

    @property
    @abstractmethod
    def is_open(self) -> bool:
        pass

    @abstractmethod
    def open(self):
        """Open the endpoint; raise OpenFailed/TransportUnavailable."""

    @abstractmethod
    def close(self):
        pass

    @abstractmethod
    def read(self, size: int) -> bytes:
        """Block at most `cfg.read_timeout_s`; b"" on timeout, ReadFault on error."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write the whole payload; WriteFault on error."""

    def cancel_read(self):
        """Wake a blocked read() so the reader can observe cancellation."""
        return None

    @classmethod
    def list_endpoints(cls) -> List[str]:
        return []


def register_transport(name: str):
    return register_named(_registry, name)


def resolve_transport(name: str) -> Type[BaseTransport]:
    return resolve_registered(
        _registry,
        name,
        package=__package__ or "transport",
        unknown_label="transport type",
        module_names=_module_names,
    )


def create_transport(name: str, cfg: TransportConfig, **kwargs) -> BaseTransport:
    cls = resolve_transport(name)
    return cls(cfg, **kwargs)


def enumerate_endpoints(name: str) -> List[str]:
    return list(resolve_transport(name).list_endpoints())


def require_baud_rate(baud_rate) -> int:
    try:
        rate = int(baud_rate)
    except (TypeError, ValueError) as e:
        raise ValueError(f"baud rate must be an integer, got {baud_rate!r}") from e
    if rate not in SUPPORTED_BAUD_RATES:
        raise ValueError(
            f"Unsupported baud rate {rate}. "
            f"Allowed: {', '.join(str(r) for r in SUPPORTED_BAUD_RATES)}"
        )
    return rate


TransportOpener = Callable[[TransportConfig], BaseTransport]


__all__ = [
    "SUPPORTED_BAUD_RATES",
    "TransportError",
    "TransportUnavailable",
    "OpenFailed",
    "ReadFault",
    "WriteFault",
    "TransportConfig",
    "BaseTransport",
    "TransportOpener",
    "register_transport",
    "resolve_transport",
    "create_transport",
    "enumerate_endpoints",
    "require_baud_rate",
]
