from abc import ABC, abstractmethod


class Transport(ABC):
    """Outbound SMS channel used to deliver reply segments."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Transport name for logging."""
        pass

    @abstractmethod
    async def send(self, destination: str, text: str) -> bool:
        """Send one SMS. Returns True on success."""
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        pass

    async def check_available(self) -> bool:
        return self.is_enabled()
