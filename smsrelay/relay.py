"""Inbound SMS -> LLM -> segmented reply pipeline."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from smsrelay.allowlist import AllowList
from smsrelay.config import RelaySettings
from smsrelay.dedup import DedupTracker
from smsrelay.dispatcher import dispatch
from smsrelay.errors import ConfigurationError, LlmInvocationError
from smsrelay.formatting import format_for_sms
from smsrelay.llm import LLMClient
from smsrelay.models import (
    Admission,
    AdmissionStatus,
    InboundMessage,
    ProcessingState,
    RelayOutcome,
    RelayResult,
)
from smsrelay.segmenter import segment
from smsrelay.transports import Transport

log = logging.getLogger(__name__)

APOLOGY = "Error: Unable to process your message. Please try again later."


class RelayOrchestrator:
    """Admits inbound messages and runs one relay task per fingerprint.

    ``on_inbound_message`` must be called from the event loop. It returns
    immediately; the LLM call and the sends happen in a background task.
    """

    def __init__(
        self,
        allowlist: AllowList,
        tracker: DedupTracker,
        llm: LLMClient,
        transport: Transport,
        settings: RelaySettings,
        on_finished: Optional[Callable[[RelayResult], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.allowlist = allowlist
        self.tracker = tracker
        self.llm = llm
        self.transport = transport
        self.settings = settings
        self.on_finished = on_finished
        self._sleep = sleep
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def on_inbound_message(self, sender: str, body: str) -> Admission:
        message = InboundMessage(sender=sender.strip(), body=body)
        return self.admit(message)

    def admit(self, message: InboundMessage) -> Admission:
        fp = message.fingerprint

        if not self.allowlist.is_allowed(message.sender):
            log.info(f"[REJECTED] {message.sender}: not in allow-list")
            return Admission(status=AdmissionStatus.REJECTED, fingerprint=fp, reason="sender not in allow-list")

        if not self.tracker.try_begin(fp):
            log.info(f"[DUPLICATE] {message.sender}: {fp} already seen")
            return Admission(status=AdmissionStatus.DUPLICATE, fingerprint=fp, reason="already processing or processed")

        task = asyncio.create_task(self.relay(message, fp))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        log.info(f"[ACCEPTED] {message.sender}: {len(message.body)} chars, {fp}")
        return Admission(status=AdmissionStatus.ACCEPTED, fingerprint=fp, reason="relaying to LLM", task=task)

    async def relay(self, message: InboundMessage, fp: str) -> RelayResult:
        """Run one admitted message to a terminal state.

        The fingerprint must already be claimed with ``try_begin``; it is
        finished exactly once here whatever happens.
        """
        outcome = ProcessingState.FAILED
        result = RelayResult(message=message, fingerprint=fp, outcome=RelayOutcome.FAILED)
        try:
            try:
                reply = await self.llm.reply(message.body)
                text = format_for_sms(
                    reply,
                    supports_emoji=self.settings.supports_emoji,
                    flatten_newlines=self.settings.flatten_newlines,
                )
                segments = segment(text, self.settings.max_segment_length, self.settings.max_segments)
                if not segments:
                    raise LlmInvocationError("LLM reply was empty after formatting")
            except LlmInvocationError as e:
                log.error(f"[FAILED] {message.sender}: {e}")
                result.error = str(e)
                await self._send_apology(message.sender)
                return result

            result.reply = text
            report = await dispatch(
                message.sender,
                segments,
                self.transport.send,
                self.settings.inter_segment_delay,
                sleep=self._sleep,
            )
            result.report = report
            outcome = report.outcome
            if outcome is ProcessingState.COMPLETED:
                result.outcome = RelayOutcome.COMPLETED
                log.info(f"[COMPLETED] {message.sender}: {report.succeeded}/{report.total} segments sent")
            else:
                result.error = "no segment could be sent"
                log.error(f"[FAILED] {message.sender}: none of {report.total} segments sent")
            return result
        except ConfigurationError as e:
            log.error(f"[FAILED] {message.sender}: configuration error: {e}")
            result.error = str(e)
            raise
        finally:
            self.tracker.finish(fp, outcome)
            self._notify(result)

    async def drain(self):
        """Wait for all in-flight relay tasks."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _send_apology(self, destination: str):
        try:
            ok = await self.transport.send(destination, APOLOGY)
            if not ok:
                log.warning(f"Apology to {destination} was not delivered")
        except Exception as e:
            log.warning(f"Apology to {destination} not sent: {e}")

    def _notify(self, result: RelayResult):
        if self.on_finished is None:
            return
        try:
            self.on_finished(result)
        except Exception as e:
            log.error(f"on_finished callback failed for {result.fingerprint}: {e}")

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error(f"Relay task ended with {type(exc).__name__}: {exc}")
