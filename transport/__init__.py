"""Actor transports."""

from transport.base import Transport
from transport.http_gateway import HttpGatewayTransport

__all__ = ["HttpGatewayTransport", "Transport"]
