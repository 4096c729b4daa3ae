#!/usr/bin/env python3
"""
Tests for connection → session binding, dispatch and teardown.

Clocks are replaced by :class:`ManualClock` so ticks run on demand; a
manual clock keeps firing after it is cancelled, which models a timer
that was already in flight when the session ended.
"""

from __future__ import annotations

import threading
import time
import unittest
from typing import Callable, List

from protocol.codec import decode_inbound
from protocol.errors import TransportFailure
from protocol.message import (
    Coordinate,
    ErrorMessage,
    PositionUpdate,
    SimulationStarted,
)
from sim.registry import SessionRegistry

ROUTE = [Coordinate(lat=0.0, lng=0.0), Coordinate(lat=0.0, lng=1.0)]


class ManualClock:
    def __init__(self, period_s: float, callback: Callable[[], None], name: str = "") -> None:
        self.period_s = period_s
        self.callback = callback
        self.name = name
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            self.callback()


class ClockRecorder:
    """Clock factory that remembers every clock it built."""

    def __init__(self) -> None:
        self.clocks: List[ManualClock] = []

    def __call__(self, period_s, callback, name=""):
        clock = ManualClock(period_s, callback, name)
        self.clocks.append(clock)
        return clock

    @property
    def last(self) -> ManualClock:
        return self.clocks[-1]


class RegistryTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.clocks = ClockRecorder()
        self.registry = SessionRegistry(tick_interval_s=0.1, clock_factory=self.clocks)
        self.sent: List[object] = []
        self.cid = self.registry.connect(self.sent.append)

    def updates(self) -> List[PositionUpdate]:
        return [m for m in self.sent if isinstance(m, PositionUpdate)]


class ConnectionTests(RegistryTestCase):
    def test_connect_creates_empty_slot(self) -> None:
        other = self.registry.connect(lambda m: None)
        self.assertNotEqual(self.cid, other)
        self.assertEqual(self.registry.connection_count(), 2)
        self.assertIsNone(self.registry.session_for(self.cid))
        self.assertEqual(self.registry.active_sessions(), [])

    def test_disconnect_is_idempotent(self) -> None:
        self.registry.disconnect(self.cid)
        self.registry.disconnect(self.cid)
        self.assertFalse(self.registry.has_connection(self.cid))
        self.assertEqual(self.registry.metrics.report()["connections_closed"], 1)


class StartTests(RegistryTestCase):
    def test_short_route_sends_error_and_creates_nothing(self) -> None:
        self.assertFalse(self.registry.start(self.cid, ROUTE[:1], 1.0))
        self.assertEqual(self.sent, [ErrorMessage(message="At least two waypoints are required")])
        self.assertIsNone(self.registry.session_for(self.cid))
        self.assertEqual(self.clocks.clocks, [])

    def test_start_announces_then_arms_clock(self) -> None:
        self.assertTrue(self.registry.start(self.cid, ROUTE, 1.0))
        self.assertEqual(self.sent, [SimulationStarted(initial_position=ROUTE[0])])
        self.assertTrue(self.clocks.last.started)
        self.assertEqual(self.clocks.last.period_s, 0.1)
        self.assertEqual(self.registry.active_sessions(), [self.cid])

    def test_each_tick_emits_position(self) -> None:
        self.registry.start(self.cid, ROUTE, 1.0)
        self.clocks.last.fire(3)
        updates = self.updates()
        self.assertEqual(len(updates), 3)
        self.assertAlmostEqual(updates[-1].position.lng, 0.00003, places=12)
        self.assertFalse(updates[-1].is_complete)

    def test_restart_discards_previous_clock(self) -> None:
        self.registry.start(self.cid, ROUTE, 1.0)
        first = self.clocks.last
        first.fire()

        second_route = [Coordinate(lat=10.0, lng=10.0), Coordinate(lat=11.0, lng=10.0)]
        self.registry.start(self.cid, second_route, 2.0)
        second = self.clocks.last
        self.assertIsNot(first, second)
        self.assertTrue(first.cancelled)

        self.sent.clear()
        first.fire(5)
        self.assertEqual(self.sent, [])

        second.fire(2)
        updates = self.updates()
        self.assertEqual(len(updates), 2)
        for update in updates:
            self.assertEqual(update.position.lng, 10.0)
        self.assertEqual(len(self.registry.active_sessions()), 1)

    def test_rejected_restart_keeps_running_session(self) -> None:
        self.registry.start(self.cid, ROUTE, 1.0)
        clock = self.clocks.last
        self.registry.start(self.cid, [], 1.0)
        self.assertFalse(clock.cancelled)
        self.assertIsNotNone(self.registry.session_for(self.cid))
        self.assertIsInstance(self.sent[-1], ErrorMessage)

    def test_start_for_unknown_connection_is_ignored(self) -> None:
        self.assertFalse(self.registry.start("no-such-connection", ROUTE, 1.0))
        self.assertEqual(self.clocks.clocks, [])


class ControlTests(RegistryTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.registry.start(self.cid, ROUTE, 1.0)
        self.clock = self.clocks.last
        self.clock.fire(2)

    def test_pause_and_resume(self) -> None:
        self.assertTrue(self.registry.pause(self.cid))
        self.registry.pause(self.cid)
        count = len(self.updates())
        self.clock.fire(10)
        self.assertEqual(len(self.updates()), count)

        self.registry.resume(self.cid)
        self.clock.fire()
        updates = self.updates()
        self.assertEqual(len(updates), count + 1)
        self.assertAlmostEqual(updates[-1].progress, 0.00003, places=12)

    def test_set_speed(self) -> None:
        self.registry.set_speed(self.cid, 10.0)
        self.clock.fire()
        self.assertAlmostEqual(self.updates()[-1].progress, 0.00002 + 0.0001, places=12)

    def test_stop_tears_down_and_silences_controls(self) -> None:
        self.assertTrue(self.registry.stop(self.cid))
        self.assertTrue(self.clock.cancelled)
        self.assertIsNone(self.registry.session_for(self.cid))
        self.assertTrue(self.registry.has_connection(self.cid))

        count = len(self.sent)
        self.clock.fire(3)
        self.assertFalse(self.registry.stop(self.cid))
        self.assertFalse(self.registry.pause(self.cid))
        self.assertFalse(self.registry.resume(self.cid))
        self.assertFalse(self.registry.set_speed(self.cid, 3.0))
        self.assertEqual(len(self.sent), count)

    def test_disconnect_stops_updates_even_if_timer_fires(self) -> None:
        self.registry.disconnect(self.cid)
        self.assertTrue(self.clock.cancelled)
        count = len(self.sent)
        self.clock.fire(5)
        self.assertEqual(len(self.sent), count)
        self.assertFalse(self.registry.pause(self.cid))

    def test_completion_removes_session(self) -> None:
        session = self.registry.session_for(self.cid)
        with session.lock:
            session.progress = 1.0
        self.clock.fire()
        self.assertFalse(self.updates()[-1].is_complete)
        self.clock.fire()
        self.assertTrue(self.updates()[-1].is_complete)
        self.assertTrue(self.clock.cancelled)
        self.assertIsNone(self.registry.session_for(self.cid))
        self.assertEqual(self.registry.metrics.report()["sessions_completed"], 1)

        count = len(self.sent)
        self.clock.fire()
        self.assertEqual(len(self.sent), count)

    def test_handle_dispatches_decoded_messages(self) -> None:
        self.registry.handle(self.cid, decode_inbound('{"type": "PAUSE_SIMULATION"}'))
        self.assertTrue(self.registry.session_for(self.cid).paused)
        self.registry.handle(self.cid, decode_inbound('{"type": "RESUME_SIMULATION"}'))
        self.assertFalse(self.registry.session_for(self.cid).paused)
        self.registry.handle(self.cid, decode_inbound('{"type": "UPDATE_SPEED", "speed": 7}'))
        self.assertEqual(self.registry.session_for(self.cid).speed, 7.0)
        self.registry.handle(self.cid, decode_inbound('{"type": "STOP_SIMULATION"}'))
        self.assertIsNone(self.registry.session_for(self.cid))

    def test_shutdown_releases_everything(self) -> None:
        self.registry.shutdown()
        self.assertTrue(self.clock.cancelled)
        self.assertEqual(self.registry.connection_count(), 0)


class TransportFailureTests(unittest.TestCase):
    def test_failed_send_counts_as_disconnect(self) -> None:
        clocks = ClockRecorder()
        registry = SessionRegistry(clock_factory=clocks)
        delivered: List[object] = []

        def flaky_send(message) -> None:
            if isinstance(message, PositionUpdate):
                raise TransportFailure("socket closed")
            delivered.append(message)

        cid = registry.connect(flaky_send)
        registry.start(cid, ROUTE, 1.0)
        clocks.last.fire()

        self.assertFalse(registry.has_connection(cid))
        self.assertTrue(clocks.last.cancelled)
        self.assertEqual(registry.metrics.report()["send_failures"], 1)
        self.assertEqual(len(delivered), 1)


class RealClockTests(unittest.TestCase):
    def test_no_updates_after_disconnect(self) -> None:
        registry = SessionRegistry(tick_interval_s=0.005)
        lock = threading.Lock()
        sent: List[object] = []
        got_updates = threading.Event()

        def send(message) -> None:
            with lock:
                sent.append(message)
                if len(sent) >= 4:
                    got_updates.set()

        cid = registry.connect(send)
        registry.start(cid, ROUTE, 1.0)
        self.assertTrue(got_updates.wait(timeout=5.0))

        registry.disconnect(cid)
        with lock:
            count = len(sent)
        time.sleep(0.05)
        with lock:
            self.assertEqual(len(sent), count)


if __name__ == "__main__":
    unittest.main()
