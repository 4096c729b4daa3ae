#!/usr/bin/env python3
"""
Tests for inbound decoding and outbound encoding.
"""

from __future__ import annotations

import json
import unittest

from protocol.codec import decode_inbound, encode_outbound
from protocol.errors import ProtocolError
from protocol.message import (
    Coordinate,
    ErrorMessage,
    PauseSimulation,
    PositionUpdate,
    ResumeSimulation,
    SimulationStarted,
    StartSimulation,
    StopSimulation,
    UpdateSpeed,
)


class DecodeTests(unittest.TestCase):
    def test_start_simulation(self) -> None:
        msg = decode_inbound(json.dumps({
            "type": "START_SIMULATION",
            "waypoints": [{"lat": 40.7128, "lng": -74.006}, {"lat": 51.5074, "lng": -0.1278}],
            "speed": 2,
        }))
        self.assertIsInstance(msg, StartSimulation)
        self.assertEqual(msg.waypoints[0], Coordinate(lat=40.7128, lng=-74.006))
        self.assertEqual(msg.speed, 2.0)

    def test_start_fields_are_optional(self) -> None:
        msg = decode_inbound('{"type": "START_SIMULATION"}')
        self.assertIsNone(msg.waypoints)
        self.assertIsNone(msg.speed)

    def test_control_messages(self) -> None:
        cases = {
            "PAUSE_SIMULATION": PauseSimulation,
            "RESUME_SIMULATION": ResumeSimulation,
            "STOP_SIMULATION": StopSimulation,
        }
        for kind, cls in cases.items():
            self.assertIsInstance(decode_inbound(json.dumps({"type": kind})), cls)

    def test_update_speed(self) -> None:
        msg = decode_inbound(b'{"type": "UPDATE_SPEED", "speed": 0.5, "extra": true}')
        self.assertIsInstance(msg, UpdateSpeed)
        self.assertEqual(msg.speed, 0.5)

    def test_integer_speed_is_a_number(self) -> None:
        msg = decode_inbound('{"type": "UPDATE_SPEED", "speed": 3}')
        self.assertEqual(msg.speed, 3.0)

    def test_rejects_bad_frames(self) -> None:
        bad = [
            "not json",
            "[1, 2, 3]",
            '{"speed": 1}',
            '{"type": "LAUNCH"}',
            '{"type": "UPDATE_SPEED"}',
            '{"type": "UPDATE_SPEED", "speed": "fast"}',
            '{"type": "UPDATE_SPEED", "speed": "2.5"}',
            '{"type": "UPDATE_SPEED", "speed": true}',
            '{"type": "UPDATE_SPEED", "speed": NaN}',
            '{"type": "UPDATE_SPEED", "speed": Infinity}',
            '{"type": "UPDATE_SPEED", "speed": -Infinity}',
            '{"type": "UPDATE_SPEED", "speed": 1e999}',
            '{"type": "START_SIMULATION", "speed": "3"}',
            '{"type": "START_SIMULATION", "speed": false}',
            '{"type": "START_SIMULATION", "speed": NaN}',
            '{"type": "START_SIMULATION", "waypoints": [{"lat": 1}]}',
            '{"type": "START_SIMULATION", "waypoints": [{"lat": NaN, "lng": 0}, {"lat": 1, "lng": 1}]}',
        ]
        for raw in bad:
            with self.assertRaises(ProtocolError, msg=raw):
                decode_inbound(raw)


class EncodeTests(unittest.TestCase):
    def test_position_update_wire_shape(self) -> None:
        frame = encode_outbound(PositionUpdate(
            position=Coordinate(lat=0.0, lng=0.5),
            progress=0.25,
            current_waypoint=3,
            is_complete=False,
        ))
        self.assertEqual(json.loads(frame), {
            "type": "POSITION_UPDATE",
            "position": {"lat": 0.0, "lng": 0.5},
            "progress": 0.25,
            "currentWaypoint": 3,
            "isComplete": False,
        })

    def test_started_and_error(self) -> None:
        started = json.loads(encode_outbound(SimulationStarted(Coordinate(lat=1.0, lng=2.0))))
        self.assertEqual(started, {"type": "SIMULATION_STARTED", "initialPosition": {"lat": 1.0, "lng": 2.0}})
        error = json.loads(encode_outbound(ErrorMessage("nope")))
        self.assertEqual(error, {"type": "ERROR", "message": "nope"})

    def test_non_finite_numbers_are_not_encoded(self) -> None:
        update = PositionUpdate(
            position=Coordinate(lat=float("nan"), lng=0.0),
            progress=float("inf"),
            current_waypoint=0,
        )
        with self.assertRaises(ValueError):
            encode_outbound(update)


if __name__ == "__main__":
    unittest.main()
