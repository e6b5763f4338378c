import asyncio
import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from smsrelay.allowlist import normalize_number


class InboundRequest(BaseModel):
    """Incoming SMS handed over by the transport host."""
    sender: str
    body: str
    timestamp: Optional[datetime] = None


class InboundResponse(BaseModel):
    """Response to an inbound request."""
    status: str  # accepted, rejected, duplicate
    reason: str
    fingerprint: Optional[str] = None


class ProcessingState(Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class AdmissionStatus(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    DUPLICATE = "duplicate"


class RelayOutcome(Enum):
    COMPLETED = "completed"
    FAILED = "failed"


def fingerprint(sender: str, body: str) -> str:
    """Dedup key for an inbound message.

    Identical sender and body are one unit of work, which absorbs duplicate
    delivery events from the transport. The sender is normalized first, so
    "+1 555-123-4567" and "+15551234567" share a key. Two different bodies
    that collide on the md5 digest are also treated as one; with 128 bits
    this is accepted.
    """
    digest = hashlib.md5(body.encode()).hexdigest()
    return f"{normalize_number(sender)}:{digest}"


@dataclass(frozen=True)
class InboundMessage:
    """Internal message representation. Immutable once received."""
    sender: str
    body: str
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def fingerprint(self) -> str:
        return fingerprint(self.sender, self.body)

    @classmethod
    def from_request(cls, req: InboundRequest) -> "InboundMessage":
        return cls(
            sender=req.sender.strip(),
            body=req.body,
            received_at=req.timestamp or datetime.now(timezone.utc),
        )


@dataclass(frozen=True)
class Segment:
    """One size-bounded piece of an outgoing reply.

    ``text`` is exactly what goes on the wire, including the "(i/n) " prefix
    when the reply had to be split.
    """
    index: int
    total: int
    text: str
    numbered: bool = False

    @property
    def prefix(self) -> str:
        if not self.numbered:
            return ""
        return f"({self.index}/{self.total}) "

    @property
    def body(self) -> str:
        return self.text[len(self.prefix):]


@dataclass
class DispatchReport:
    succeeded: int = 0
    failed: int = 0
    total: int = 0

    @property
    def outcome(self) -> ProcessingState:
        """Terminal state for the task.

        Partial delivery still completes, so a half-sent answer is never
        reprocessed from scratch.
        """
        if self.failed == 0 or self.succeeded > 0:
            return ProcessingState.COMPLETED
        return ProcessingState.FAILED


@dataclass
class RelayResult:
    """Terminal record of one relay task."""
    message: InboundMessage
    fingerprint: str
    outcome: RelayOutcome
    report: Optional[DispatchReport] = None
    reply: str = ""
    error: str = ""


@dataclass
class Admission:
    """What happened to an inbound event at the gate."""
    status: AdmissionStatus
    fingerprint: str
    reason: str = ""
    task: Optional[asyncio.Task] = None

    @property
    def accepted(self) -> bool:
        return self.status is AdmissionStatus.ACCEPTED
