"""Shared pytest fixtures for relay tests."""

import asyncio
from typing import Callable, Optional

import pytest

from smsrelay import db
from smsrelay.allowlist import AllowList
from smsrelay.config import RelaySettings
from smsrelay.dedup import DedupTracker
from smsrelay.errors import LlmInvocationError
from smsrelay.llm import LLMClient
from smsrelay.relay import RelayOrchestrator
from smsrelay.state_store import InMemoryStateStore
from smsrelay.transports import Transport

SENDER = "+15551234567"


class StubLLM(LLMClient):
    """Returns a canned reply, or raises, and records prompts."""

    def __init__(self, reply: str = "Hello there", error: Optional[Exception] = None):
        self.reply_text = reply
        self.error = error
        self.prompts: list[str] = []
        self.gate: Optional[asyncio.Event] = None

    @property
    def name(self) -> str:
        return "stub"

    async def reply(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply_text

    async def check_available(self) -> bool:
        return True


class RecordingTransport(Transport):
    """Records every send. ``fail_if`` and ``raise_if`` pick texts that fail."""

    def __init__(
        self,
        fail_if: Callable[[str], bool] = lambda text: False,
        raise_if: Callable[[str], bool] = lambda text: False,
    ):
        self.fail_if = fail_if
        self.raise_if = raise_if
        self.sent: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "recording"

    async def send(self, destination: str, text: str) -> bool:
        self.sent.append((destination, text))
        if self.raise_if(text):
            raise ConnectionError("transport down")
        return not self.fail_if(text)

    def is_enabled(self) -> bool:
        return True

    @property
    def texts(self) -> list[str]:
        return [text for _, text in self.sent]


class RecordingSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point the module-level database at a fresh file."""
    monkeypatch.setattr(db, "DB_PATH", tmp_path / "relay.db")
    db.init_db()
    return db


@pytest.fixture
def store():
    return InMemoryStateStore()


@pytest.fixture
def tracker(store):
    return DedupTracker(store, capacity=100)


@pytest.fixture
def llm():
    return StubLLM()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def settings():
    return RelaySettings()


@pytest.fixture
def results():
    return []


@pytest.fixture
def orchestrator(tracker, llm, transport, settings, sleep, results):
    return RelayOrchestrator(
        allowlist=AllowList([SENDER]),
        tracker=tracker,
        llm=llm,
        transport=transport,
        settings=settings,
        on_finished=results.append,
        sleep=sleep,
    )


def long_reply() -> str:
    """400 characters that split into three segments at the default limits."""
    return " ".join(["abcd"] * 80) + "!"
