"""Error kinds raised by the relay pipeline.

Rejected senders and duplicate deliveries are ordinary outcomes, not errors,
so they have no exception type here.
"""


class RelayError(Exception):
    """Base class for relay failures."""


class ConfigurationError(RelayError):
    """Limits or settings that make the task impossible. Never retried."""


class LlmInvocationError(RelayError):
    """The LLM provider failed or returned nothing usable."""


class SegmentSendError(RelayError):
    """A single segment could not be handed to the transport."""

    def __init__(self, index: int, total: int, detail: str = ""):
        self.index = index
        self.total = total
        self.detail = detail
        message = f"segment {index}/{total} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
