from .base import Transport
from .console import ConsoleTransport
from .gateway import GatewayTransport
from .twilio import TwilioTransport
from .registry import load_transport_from_config, get_available_transports, get_config_warnings

__all__ = [
    "Transport",
    "ConsoleTransport",
    "GatewayTransport",
    "TwilioTransport",
    "load_transport_from_config",
    "get_available_transports",
    "get_config_warnings",
]
