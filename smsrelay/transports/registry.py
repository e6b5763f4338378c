"""Pick the outbound transport from config."""

import logging

from .base import Transport

log = logging.getLogger(__name__)

DEFAULT_GATEWAY_URL = "http://host.docker.internal:8095"

# Configuration warnings collected during loading
_CONFIG_WARNINGS: list[dict] = []


def get_available_transports() -> list[str]:
    return ["console", "gateway", "twilio"]


def get_config_warnings() -> list[dict]:
    """Get configuration warnings from last load."""
    return _CONFIG_WARNINGS.copy()


def load_transport_from_config(transport_config: dict) -> Transport:
    """Instantiate the configured transport, falling back to console."""
    global _CONFIG_WARNINGS
    from .console import ConsoleTransport
    from .gateway import GatewayTransport
    from .twilio import TwilioTransport

    _CONFIG_WARNINGS = []  # Reset warnings on each load
    kind = transport_config.get("type", "console")
    transport = None

    if kind == "gateway":
        gateway_conf = transport_config.get("gateway", {}) or {}
        transport = GatewayTransport(
            gateway_url=gateway_conf.get("url", DEFAULT_GATEWAY_URL),
            timeout=float(gateway_conf.get("timeout_seconds", 15.0)),
        )

    elif kind == "twilio":
        twilio_conf = transport_config.get("twilio", {}) or {}
        account_sid = twilio_conf.get("account_sid", "")
        auth_token = twilio_conf.get("auth_token", "")
        from_number = twilio_conf.get("from_number", "")
        missing = []
        if not account_sid:
            missing.append("account_sid")
        if not auth_token:
            missing.append("auth_token")
        if not from_number:
            missing.append("from_number")
        if missing:
            _CONFIG_WARNINGS.append({
                "transport": "twilio",
                "message": f"Selected but missing: {', '.join(missing)}",
            })
        else:
            transport = TwilioTransport(
                account_sid=account_sid,
                auth_token=auth_token,
                from_number=from_number,
            )

    elif kind != "console":
        _CONFIG_WARNINGS.append({
            "transport": kind,
            "message": f"Unknown transport type, expected one of {get_available_transports()}",
        })

    if transport is None:
        transport = ConsoleTransport()

    for w in _CONFIG_WARNINGS:
        log.warning(f"[registry] {w['transport']} - {w['message']}")
    log.info(f"[registry] Using {transport.name} transport")
    return transport
