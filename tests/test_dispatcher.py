"""Tests for sequential segment dispatch."""

import pytest

from smsrelay.dispatcher import dispatch, failure_notice
from smsrelay.models import ProcessingState, Segment
from tests.conftest import SENDER, RecordingSleep, RecordingTransport


def _segments(n):
    return [Segment(index=i, total=n, text=f"({i}/{n}) part {i}", numbered=True) for i in range(1, n + 1)]


class TestDispatch:
    """Ordering, pacing and per-segment failure handling."""

    @pytest.mark.asyncio
    async def test_sends_all_in_order_with_pauses_between(self):
        transport = RecordingTransport()
        sleep = RecordingSleep()

        report = await dispatch(SENDER, _segments(3), transport.send, 2.0, sleep=sleep)

        assert transport.texts == ["(1/3) part 1", "(2/3) part 2", "(3/3) part 3"]
        assert all(dest == SENDER for dest, _ in transport.sent)
        assert sleep.calls == [2.0, 2.0]
        assert (report.succeeded, report.failed, report.total) == (3, 0, 3)
        assert report.outcome is ProcessingState.COMPLETED

    @pytest.mark.asyncio
    async def test_sorts_segments_by_index(self):
        transport = RecordingTransport()
        segments = list(reversed(_segments(3)))

        await dispatch(SENDER, segments, transport.send, 0, sleep=RecordingSleep())

        assert transport.texts == ["(1/3) part 1", "(2/3) part 2", "(3/3) part 3"]

    @pytest.mark.asyncio
    async def test_single_segment_never_sleeps(self):
        sleep = RecordingSleep()
        await dispatch(SENDER, _segments(1), RecordingTransport().send, 2.0, sleep=sleep)
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_zero_delay_skips_sleep(self):
        sleep = RecordingSleep()
        await dispatch(SENDER, _segments(3), RecordingTransport().send, 0, sleep=sleep)
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_failed_segment_is_replaced_by_notice(self):
        """Segment 2 fails, a notice goes out, segment 3 still follows."""
        transport = RecordingTransport(fail_if=lambda text: text.startswith("(2/3)"))

        report = await dispatch(SENDER, _segments(3), transport.send, 0, sleep=RecordingSleep())

        assert transport.texts == [
            "(1/3) part 1",
            "(2/3) part 2",
            failure_notice(2, 3),
            "(3/3) part 3",
        ]
        assert (report.succeeded, report.failed, report.total) == (2, 1, 3)
        assert report.outcome is ProcessingState.COMPLETED

    @pytest.mark.asyncio
    async def test_raising_send_counts_as_failure(self):
        transport = RecordingTransport(raise_if=lambda text: text.startswith("(1/2)"))

        report = await dispatch(SENDER, _segments(2), transport.send, 0, sleep=RecordingSleep())

        assert (report.succeeded, report.failed) == (1, 1)
        assert transport.texts[-1] == "(2/2) part 2"

    @pytest.mark.asyncio
    async def test_notice_failure_is_swallowed(self):
        transport = RecordingTransport(raise_if=lambda text: True)

        report = await dispatch(SENDER, _segments(2), transport.send, 0, sleep=RecordingSleep())

        assert (report.succeeded, report.failed, report.total) == (0, 2, 2)
        assert report.outcome is ProcessingState.FAILED
        assert len(transport.sent) == 4

    def test_failure_notice_text(self):
        assert failure_notice(2, 3) == "Error: Failed to send message part 2/3"
