#!/usr/bin/env python3
"""
sim/session.py
==============
State machine for one route simulation.

A :class:`SimulationSession` owns the waypoint list, the index of the
segment being traversed, the distance accumulated inside that segment,
the speed multiplier and the pause flag.  Each call to :meth:`advance`
is one clock tick: it moves the position along the current segment by a
fixed step scaled by ``speed`` and reports the result.

The session is not thread-safe on its own.  Callers that share it
between a clock thread and a control path hold :attr:`lock` around every
call (see :mod:`sim.registry`).
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional, Sequence, Tuple

import config
from protocol.errors import ValidationError
from protocol.message import Coordinate, PositionUpdate
from sim.geometry import lerp, segment_distance, total_distance

log = logging.getLogger("session")

# Degrees of coordinate space moved per second at speed 1.
SPEED_SCALE: float = 0.0001
# Ticks per second the step is divided over.
TICKS_PER_SECOND: int = 10

MIN_WAYPOINTS: int = 2


class SimulationSession:
    """One vehicle traversing one route.

    Parameters
    ----------
    waypoints : sequence of Coordinate
        Ordered route; at least two points.
    speed : float or None
        Speed multiplier.  ``None`` or ``0`` falls back to
        :data:`config.DEFAULT_SPEED`.

    Raises
    ------
    ValidationError
        If fewer than two waypoints are given.
    """

    def __init__(
        self,
        waypoints: Optional[Sequence[Coordinate]],
        speed: Optional[float] = None,
    ) -> None:
        if not waypoints or len(waypoints) < MIN_WAYPOINTS:
            raise ValidationError("At least two waypoints are required")

        self.waypoints: Tuple[Coordinate, ...] = tuple(waypoints)
        self.current_index: int = 0
        self.next_index: int = 1
        self.progress: float = 0.0
        self.speed: float = speed or config.DEFAULT_SPEED
        self.paused: bool = False
        self.position: Coordinate = self.waypoints[0]
        self.complete: bool = False
        self.stopped: bool = False
        self.total_distance: float = total_distance(self.waypoints)

        self.lock = threading.Lock()

        log.debug(
            "session created waypoints=%d speed=%s total_distance=%.6f",
            len(self.waypoints), self.speed, self.total_distance,
        )

    # ── Controls ──────────────────────────────────────────────────────────────

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def set_speed(self, speed: float) -> None:
        """Replace the speed multiplier; applies from the next tick.

        No bounds are enforced: ``0`` freezes progress and negative values
        move progress backwards within the segment.
        """
        self.speed = speed

    def stop(self) -> None:
        """Mark the session finished so that any later tick is a no-op."""
        self.stopped = True

    @property
    def active(self) -> bool:
        """True while ticks still have an effect (not complete, not stopped)."""
        return not (self.complete or self.stopped)

    # ── Tick ──────────────────────────────────────────────────────────────────

    def step_size(self) -> float:
        """Distance covered by one tick at the current speed."""
        return (self.speed * SPEED_SCALE) / TICKS_PER_SECOND

    def advance(self) -> Optional[PositionUpdate]:
        """Run one tick.

        Returns
        -------
        PositionUpdate or None
            ``None`` when paused, complete or stopped.  Otherwise the
            update to emit; ``is_complete`` is set on the final one.
        """
        if self.paused or not self.active:
            return None

        if self.next_index >= len(self.waypoints):
            self.complete = True
            return self._update()

        current = self.waypoints[self.current_index]
        nxt = self.waypoints[self.next_index]
        seg_dist = segment_distance(current, nxt)

        self.progress += self.step_size()
        if seg_dist == 0:
            ratio = 1.0
        else:
            ratio = min(self.progress / seg_dist, 1.0)

        self.position = lerp(current, nxt, ratio)

        # Overshoot past the waypoint is dropped, not carried forward.
        if ratio >= 1:
            self.current_index += 1
            self.next_index += 1
            self.progress = 0.0

        return self._update()

    def _update(self) -> PositionUpdate:
        return PositionUpdate(
            position=self.position,
            progress=self.progress,
            current_waypoint=self.current_index,
            is_complete=self.complete,
        )

    # ── Introspection ─────────────────────────────────────────────────────────

    def snapshot(self) -> Dict[str, Any]:
        return {
            "current_index": self.current_index,
            "next_index": self.next_index,
            "progress": self.progress,
            "speed": self.speed,
            "paused": self.paused,
            "position": self.position.as_dict(),
            "complete": self.complete,
            "stopped": self.stopped,
            "total_distance": self.total_distance,
            "waypoint_count": len(self.waypoints),
        }
