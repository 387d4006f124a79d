"""Shared fakes for room and handler tests."""

from __future__ import annotations

import random
from typing import Any, Callable, Dict, List

import pytest

from superxo.config import Settings
from superxo.rooms import RoomRegistry


class FakePeer:
    def __init__(self) -> None:
        self.live = True
        self.sent: List[Dict[str, Any]] = []

    def send(self, message) -> None:
        self.sent.append(message.dump())

    def types(self) -> List[str]:
        return [payload["type"] for payload in self.sent]

    def last(self, kind: str) -> Dict[str, Any]:
        return [payload for payload in self.sent if payload["type"] == kind][-1]


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    def __init__(self) -> None:
        self.timers: List[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def fire(self) -> None:
        for timer in list(self.timers):
            if not timer.cancelled:
                timer.callback()
        self.timers.clear()


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_registry(scheduler, clock):
    def factory(**overrides) -> RoomRegistry:
        return RoomRegistry(
            Settings(**overrides),
            scheduler=scheduler,
            clock=clock,
            rng=random.Random(7),
        )

    return factory


@pytest.fixture
def registry(make_registry) -> RoomRegistry:
    return make_registry()


@pytest.fixture
def make_peer():
    return FakePeer
