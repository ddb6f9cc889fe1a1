"""Tests for the asyncio-backed clock."""

import asyncio

from rsvp_pacer.clock import AsyncioClock


def test_arm_fires_callback():
    """The callback runs once after the delay."""
    fired = []

    async def run():
        clock = AsyncioClock()
        clock.arm(10, lambda: fired.append(True))
        await asyncio.sleep(0.05)

    asyncio.run(run())
    assert fired == [True]


def test_cancelled_timer_never_fires():
    """A cancelled handle suppresses its callback."""
    fired = []

    async def run():
        clock = AsyncioClock()
        handle = clock.arm(10, lambda: fired.append(True))
        handle.cancel()
        await asyncio.sleep(0.05)

    asyncio.run(run())
    assert fired == []


def test_negative_delay_runs_soon():
    """Delays below zero are treated as zero."""
    fired = []

    async def run():
        AsyncioClock().arm(-100, lambda: fired.append(True))
        await asyncio.sleep(0.01)

    asyncio.run(run())
    assert fired == [True]
