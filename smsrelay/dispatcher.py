import asyncio
import logging
from typing import Awaitable, Callable, Sequence

from smsrelay.errors import SegmentSendError
from smsrelay.models import DispatchReport, Segment

log = logging.getLogger(__name__)

SendFunc = Callable[[str, str], Awaitable[bool]]


def failure_notice(index: int, total: int) -> str:
    return f"Error: Failed to send message part {index}/{total}"


async def dispatch(
    destination: str,
    segments: Sequence[Segment],
    send: SendFunc,
    inter_segment_delay: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> DispatchReport:
    """Send segments one at a time, in order, pausing between sends.

    A failed segment is replaced by a short failure notice (best effort) and
    the remaining segments are still sent.
    """
    report = DispatchReport(total=len(segments))
    ordered = sorted(segments, key=lambda s: s.index)

    for position, seg in enumerate(ordered):
        try:
            ok = await send(destination, seg.text)
            if not ok:
                raise SegmentSendError(seg.index, seg.total, "transport refused")
            report.succeeded += 1
            log.info(f"Sent segment {seg.index}/{seg.total} to {destination} ({len(seg.text)} chars)")
        except Exception as e:
            report.failed += 1
            log.error(f"[SEND_FAILED] {destination} segment {seg.index}/{seg.total}: {e}")
            await _send_notice(destination, seg, send)

        # Pace consecutive sends to dodge carrier rate limiting
        if position < len(ordered) - 1 and inter_segment_delay > 0:
            await sleep(inter_segment_delay)

    log.info(
        f"Dispatch to {destination} done: {report.succeeded} sent, "
        f"{report.failed} failed of {report.total}"
    )
    return report


async def _send_notice(destination: str, seg: Segment, send: SendFunc):
    try:
        await send(destination, failure_notice(seg.index, seg.total))
    except Exception as e:
        log.warning(f"Failure notice for segment {seg.index}/{seg.total} not sent: {e}")
