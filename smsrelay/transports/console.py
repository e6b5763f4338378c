from .base import Transport


class ConsoleTransport(Transport):
    """Prints outgoing SMS to the console for local runs."""

    def __init__(self, enabled: bool = True):
        self._enabled = enabled

    @property
    def name(self) -> str:
        return "console"

    async def send(self, destination: str, text: str) -> bool:
        print(f"[SMS] -> {destination}: {text}")
        return True

    def is_enabled(self) -> bool:
        return self._enabled
