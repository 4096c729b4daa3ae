#!/usr/bin/env python3
"""
sim/geometry.py
===============
Route geometry helpers used by :mod:`sim.session`.

Distances are Euclidean in coordinate-degree space, not geodesic.  The
simulation's speed unit is defined relative to this metric, so swapping in
a great-circle formula would change every observable position.
"""

from __future__ import annotations

import math
from typing import Sequence

from protocol.message import Coordinate


def segment_distance(a: Coordinate, b: Coordinate) -> float:
    """Straight-line distance between two points, in degrees.

    Parameters
    ----------
    a, b : Coordinate
        Segment endpoints.  Equal points give ``0.0``.
    """
    d_lat = b.lat - a.lat
    d_lng = b.lng - a.lng
    return math.sqrt(d_lat * d_lat + d_lng * d_lng)


def total_distance(waypoints: Sequence[Coordinate]) -> float:
    """Sum of :func:`segment_distance` over consecutive waypoint pairs."""
    total = 0.0
    for i in range(len(waypoints) - 1):
        total += segment_distance(waypoints[i], waypoints[i + 1])
    return total


def lerp(a: Coordinate, b: Coordinate, ratio: float) -> Coordinate:
    """Component-wise linear interpolation from *a* (ratio 0) to *b* (ratio 1)."""
    return Coordinate(
        lat=a.lat + (b.lat - a.lat) * ratio,
        lng=a.lng + (b.lng - a.lng) * ratio,
    )
