"""Tests for the expiry sweep and the background cleanup loop."""

import pytest

from ephemeral.cleanup import start_cleanup_task, sweep
from ephemeral.ledger import RETENTION_TTL, SessionLedger
from ephemeral.rooms import RoomCoordinator


class StopLoop(BaseException):
    """Escapes the cleanup loop, which only swallows Exception."""


class LoopSocketIO:
    def __init__(self, cycles):
        self.cycles = cycles
        self.sleeps = []
        self.task = None

    def sleep(self, seconds):
        if len(self.sleeps) >= self.cycles:
            raise StopLoop()
        self.sleeps.append(seconds)

    def start_background_task(self, target):
        self.task = target
        return target


class TestSweep:
    def test_idle_room_expires(self, coordinator, socketio, clock):
        room = coordinator.create_room("a", "A")
        coordinator.join_room("b", room.code, "B")
        coordinator.send_message("a", "hi")
        socketio.clear()

        clock.advance(601)
        assert sweep(coordinator) == [room.code]

        assert socketio.events("a") == [("roomExpired", None)]
        assert socketio.events("b") == [("roomExpired", None)]
        assert room.code not in coordinator.store
        assert room.code not in coordinator.allocator
        assert room.messages == []
        assert coordinator.connections == {}

    def test_active_room_survives(self, coordinator, socketio, clock):
        room = coordinator.create_room("a", "A")
        clock.advance(500)
        coordinator.send_message("a", "ping")
        clock.advance(500)

        assert sweep(coordinator) == []
        assert room.code in coordinator.store

    def test_after_expiry_the_caller_is_not_in_a_room(self, coordinator, clock):
        from ephemeral.errors import NotInRoom

        coordinator.create_room("a", "A")
        clock.advance(601)
        sweep(coordinator)

        with pytest.raises(NotInRoom):
            coordinator.send_message("a", "hello?")

    def test_destroying_twice_is_a_noop(self, coordinator, clock):
        room = coordinator.create_room("a", "A")
        clock.advance(601)
        sweep(coordinator)

        assert sweep(coordinator) == []
        assert coordinator.destroy_room(room.code) is False
        assert coordinator.destroy_room("9999") is False

    def test_prunes_ledger_and_stale_reservations(self, socketio, clock):
        ledger = SessionLedger(retention=RETENTION_TTL, ttl=60)
        coordinator = RoomCoordinator(socketio, ledger=ledger, ttl=600, clock=clock)

        room = coordinator.create_room("a", "A")
        coordinator.leave_room("a")
        pending = coordinator.allocate_code()
        assert ledger.has_left_sid("a", room.code)

        clock.advance(601)
        sweep(coordinator)

        assert len(ledger) == 0
        assert pending not in coordinator.allocator


class TestCleanupTask:
    def test_runs_a_sweep_each_cycle(self, coordinator, clock):
        room = coordinator.create_room("a", "A")
        clock.advance(601)
        loop = LoopSocketIO(cycles=1)

        start_cleanup_task(loop, coordinator, interval=30)
        with pytest.raises(StopLoop):
            loop.task()

        assert loop.sleeps == [30]
        assert room.code not in coordinator.store

    def test_failed_cycle_does_not_stop_the_loop(self, coordinator, monkeypatch):
        calls = []

        def flaky(now=None):
            calls.append(now)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return []

        monkeypatch.setattr(coordinator, "expire_rooms", flaky)
        loop = LoopSocketIO(cycles=2)

        start_cleanup_task(loop, coordinator, interval=1)
        with pytest.raises(StopLoop):
            loop.task()

        assert len(calls) == 2

    @pytest.mark.parametrize("log_cycles, expected", [(True, 1), (False, 0)])
    def test_cycle_logging_is_configurable(self, coordinator, monkeypatch, log_cycles, expected):
        messages = []
        monkeypatch.setattr("ephemeral.cleanup.log_info", lambda module, message: messages.append(message))
        loop = LoopSocketIO(cycles=1)

        start_cleanup_task(loop, coordinator, interval=1, log_cycles=log_cycles)
        with pytest.raises(StopLoop):
            loop.task()

        assert messages.count("Cleanup cycle executed successfully.") == expected
