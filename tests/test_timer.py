"""Tests for AutoSubmitTimer state machine."""
import asyncio
from unittest.mock import MagicMock

import pytest

from pulse_cli.timer import AutoSubmitTimer, TimerState


def _timer():
    ticks = []
    fired = MagicMock()
    cancelled = MagicMock()
    timer = AutoSubmitTimer(on_tick=ticks.append, on_fired=fired, on_cancelled=cancelled)
    return timer, ticks, fired, cancelled


class TestAutoSubmitTimer:

    def test_starts_idle(self):
        timer, *_ = _timer()
        assert timer.state is TimerState.IDLE
        assert not timer.is_running

    def test_fires_once_on_expiry(self):
        timer, ticks, fired, cancelled = _timer()

        async def scenario():
            timer.arm(0.05, 0.02)
            assert timer.is_running
            return await timer.wait()

        assert asyncio.run(scenario()) is TimerState.FIRED
        fired.assert_called_once()
        cancelled.assert_not_called()
        assert ticks and all(t == 1 for t in ticks)

    def test_ticks_round_remaining_up(self):
        timer, ticks, fired, _ = _timer()

        async def scenario():
            timer.arm(1.2, 0.5)
            await timer.wait()

        asyncio.run(scenario())

        assert ticks[0] == 2
        assert set(ticks[1:]) == {1}
        fired.assert_called_once()

    def test_cancel_while_running(self):
        timer, ticks, fired, cancelled = _timer()

        async def scenario():
            timer.arm(0.2, 0.05)
            await asyncio.sleep(0.06)
            timer.cancel()
            await asyncio.sleep(0.25)
            return timer.state

        assert asyncio.run(scenario()) is TimerState.CANCELLED
        fired.assert_not_called()
        cancelled.assert_called_once()

    def test_cancel_is_noop_when_not_running(self):
        timer, _, _, cancelled = _timer()
        timer.cancel()
        assert timer.state is TimerState.IDLE
        cancelled.assert_not_called()

    def test_cancel_after_fire_is_noop(self):
        timer, _, fired, cancelled = _timer()

        async def scenario():
            timer.arm(0.01, 0.01)
            await timer.wait()
            timer.cancel()

        asyncio.run(scenario())
        assert timer.state is TimerState.FIRED
        cancelled.assert_not_called()

    def test_rearm_leaves_single_countdown(self):
        timer, _, fired, cancelled = _timer()

        async def scenario():
            timer.arm(0.05, 0.02)
            first = timer._task
            timer.arm(0.05, 0.02)
            second = timer._task
            await timer.wait()
            await asyncio.sleep(0.1)
            return first, second

        first, second = asyncio.run(scenario())

        assert first is not second
        assert first.cancelled()
        fired.assert_called_once()
        cancelled.assert_not_called()

    def test_rejects_non_positive_interval(self):
        timer, *_ = _timer()

        async def scenario():
            timer.arm(1.0, 0)

        with pytest.raises(ValueError):
            asyncio.run(scenario())
