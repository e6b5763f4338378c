import logging

import httpx

from .base import Transport

log = logging.getLogger(__name__)


class GatewayTransport(Transport):
    """Sends SMS through the phone gateway's HTTP API."""

    def __init__(self, gateway_url: str, enabled: bool = True, timeout: float = 15.0):
        self._gateway_url = gateway_url.rstrip("/")
        self._enabled = enabled
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "gateway"

    async def send(self, destination: str, text: str) -> bool:
        if not self._enabled:
            return False

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    f"{self._gateway_url}/send",
                    json={
                        "recipient": destination,
                        "message": text,
                    }
                )
                if resp.status_code == 200:
                    return True
                log.error(f"[gateway] Error {resp.status_code}: {resp.text}")
                return False
        except httpx.HTTPError as e:
            log.error(f"[gateway] Error sending: {type(e).__name__}: {e}")
            return False

    async def check_available(self) -> bool:
        if not self._enabled:
            return False
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{self._gateway_url}/health")
                return resp.status_code == 200
        except httpx.HTTPError:
            return False

    def is_enabled(self) -> bool:
        return self._enabled
