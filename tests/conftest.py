"""Shared fixtures: a recording emitter, a controllable clock, a coordinator."""

import random

import pytest

from ephemeral.codes import CodeAllocator
from ephemeral.rooms import RoomCoordinator
from ephemeral.state import RoomStore


class RecordingSocketIO:
    """Stands in for flask_socketio.SocketIO: records every emit."""

    def __init__(self):
        self.sent = []
        self.failing = set()

    def emit(self, event, *args, to=None, **kwargs):
        if to in self.failing:
            raise ConnectionError(f"sid {to} is gone")
        self.sent.append((to, event, args[0] if args else None))

    def events(self, sid, name=None):
        return [
            (event, payload)
            for to, event, payload in self.sent
            if to == sid and (name is None or event == name)
        ]

    def payloads(self, sid, name):
        return [payload for event, payload in self.events(sid, name)]

    def clear(self):
        self.sent.clear()


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class ScriptedRandom(random.Random):
    """randrange() returns the scripted values, then repeats the last one."""

    def __init__(self, *values):
        super().__init__(0)
        self.values = list(values)

    def randrange(self, *args, **kwargs):
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]


@pytest.fixture
def socketio():
    return RecordingSocketIO()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def coordinator(socketio, clock):
    return RoomCoordinator(socketio, ttl=600, clock=clock)


@pytest.fixture
def make_coordinator(socketio, clock):
    """Coordinator whose allocator draws the given code values in order."""

    def _make(*values, **options):
        store = RoomStore()
        allocator = CodeAllocator(
            room_exists=lambda code: code in store,
            rng=ScriptedRandom(*values),
        )
        options.setdefault("ttl", 600)
        return RoomCoordinator(socketio, store=store, allocator=allocator, clock=clock, **options)

    return _make
