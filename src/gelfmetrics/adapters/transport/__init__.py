"""GELF transport adapters implementing GelfTransportPort."""

from gelfmetrics.adapters.transport.gelf import (
    GelfTransport,
    TcpSender,
    UdpSender,
    create_sender,
)
from gelfmetrics.core.config import TransportConfig
from gelfmetrics.core.models import GelfTransports


def create_transport(config: TransportConfig) -> GelfTransport:
    """Create and start the transport described by ``config``."""
    return GelfTransport(config)


__all__ = [
    "GelfTransport",
    "GelfTransports",
    "TcpSender",
    "UdpSender",
    "create_sender",
    "create_transport",
]
