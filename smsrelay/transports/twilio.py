import logging

import httpx

from .base import Transport

log = logging.getLogger(__name__)

TWILIO_API = "https://api.twilio.com/2010-04-01"


class TwilioTransport(Transport):
    """Sends SMS via the Twilio Messages API."""

    def __init__(self, account_sid: str, auth_token: str, from_number: str, enabled: bool = True):
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._from_number = from_number
        self._enabled = enabled

    @property
    def name(self) -> str:
        return "twilio"

    async def send(self, destination: str, text: str) -> bool:
        if not self._enabled:
            return False

        url = f"{TWILIO_API}/Accounts/{self._account_sid}/Messages.json"
        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                resp = await client.post(
                    url,
                    auth=(self._account_sid, self._auth_token),
                    data={
                        "From": self._from_number,
                        "To": destination,
                        "Body": text,
                    },
                )
                if resp.status_code == 201:
                    return True
                log.error(f"[twilio] Error {resp.status_code}: {resp.text}")
                return False
        except httpx.HTTPError as e:
            log.error(f"[twilio] Error sending: {type(e).__name__}: {e}")
            return False

    def is_enabled(self) -> bool:
        return self._enabled
