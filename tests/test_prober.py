from __future__ import annotations

import asyncio

import pytest

from ragchat.prober import LivenessProber


class _ScriptedProbe:
    def __init__(self, outcomes: list[object]) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self) -> bool:
        self.calls += 1
        outcome = self.outcomes.pop(0) if self.outcomes else True
        if isinstance(outcome, BaseException):
            raise outcome
        return bool(outcome)


def test_prober_becomes_ready_once_and_stops() -> None:
    async def scenario() -> None:
        probe = _ScriptedProbe([False, False, True, True])
        prober = LivenessProber(probe, interval_s=0.001)
        notified: list[int] = []
        prober.add_listener(lambda: notified.append(probe.calls))

        assert await prober.wait_ready(timeout_s=1.0)
        await asyncio.sleep(0.02)

        assert probe.calls == 3
        assert prober.attempts == 3
        assert notified == [3]
        assert not prober.running

    asyncio.run(scenario())


def test_prober_first_attempt_is_immediate() -> None:
    async def scenario() -> None:
        probe = _ScriptedProbe([False])
        prober = LivenessProber(probe, interval_s=60.0)
        await asyncio.sleep(0.01)
        assert probe.calls == 1
        assert not prober.ready
        prober.dispose()

    asyncio.run(scenario())


def test_prober_swallows_probe_errors() -> None:
    async def scenario() -> None:
        probe = _ScriptedProbe([OSError("unreachable"), RuntimeError("boom"), True])
        prober = LivenessProber(probe, interval_s=0.001)
        assert await prober.wait_ready(timeout_s=1.0)
        assert probe.calls == 3

    asyncio.run(scenario())


def test_prober_dispose_stops_polling() -> None:
    async def scenario() -> None:
        probe = _ScriptedProbe([False] * 100)
        prober = LivenessProber(probe, interval_s=0.005)
        await asyncio.sleep(0.02)
        prober.dispose()
        calls = probe.calls
        await asyncio.sleep(0.03)
        assert probe.calls == calls
        assert not prober.ready
        assert not await prober.wait_ready(timeout_s=0.01)

    asyncio.run(scenario())


def test_listener_added_after_ready_fires_immediately() -> None:
    async def scenario() -> None:
        prober = LivenessProber(_ScriptedProbe([True]), interval_s=0.001)
        await prober.wait_ready(timeout_s=1.0)
        seen: list[bool] = []
        prober.add_listener(lambda: seen.append(True))
        assert seen == [True]

    asyncio.run(scenario())


@pytest.mark.parametrize("interval_s", [0.0, -1.0])
def test_prober_rejects_non_positive_interval(interval_s: float) -> None:
    with pytest.raises(ValueError):
        LivenessProber(_ScriptedProbe([True]), interval_s=interval_s, autostart=False)
