from .base import (
    SUPPORTED_BAUD_RATES,
    TransportError,
    TransportUnavailable,
    OpenFailed,
    ReadFault,
    WriteFault,
    TransportConfig,
    BaseTransport,
    TransportOpener,
    register_transport,
    resolve_transport,
    create_transport,
    enumerate_endpoints,
    require_baud_rate,
)

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
