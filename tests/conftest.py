"""Shared fixtures for RSVP pacer tests."""

import heapq
import itertools

import pytest

from rsvp_pacer.models import Body, Title


class FakeHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeClock:
    """Virtual-time clock: timers fire only when ``advance`` passes their deadline."""

    def __init__(self):
        self.now = 0.0
        self._timers = []
        self._seq = itertools.count()

    def arm(self, delay_ms, callback):
        handle = FakeHandle()
        heapq.heappush(self._timers, (self.now + delay_ms, next(self._seq), handle, callback))
        return handle

    @property
    def pending(self):
        return sum(1 for _, _, handle, _ in self._timers if not handle.cancelled)

    def next_delay(self):
        """Delay until the next live timer, or None."""
        live = [due for due, _, handle, _ in self._timers if not handle.cancelled]
        return min(live) - self.now if live else None

    def advance(self, ms):
        target = self.now + ms
        while self._timers and self._timers[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._timers)
            self.now = due
            if not handle.cancelled:
                callback()
        self.now = target

    def run_until_idle(self, limit=10000):
        """Fire timers in order until none are pending."""
        for _ in range(limit):
            delay = self.next_delay()
            if delay is None:
                return
            self.advance(delay)
        raise AssertionError("clock never went idle")


class EventRecorder:
    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    def of(self, event_type):
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self):
        self.events.clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def sample_units():
    """A heading followed by two body lines."""
    return [
        Title(level=1, text="Chapter One"),
        Body(text="The quick brown fox jumps"),
        Body(text="over the lazy dog"),
    ]
