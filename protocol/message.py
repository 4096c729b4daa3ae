"""
protocol/message.py
===================
Data structures exchanged between a client and the simulation engine.

Inbound messages are pydantic models forming a tagged union on ``type``;
they are decoded once at the transport boundary (see :mod:`protocol.codec`).
Outbound messages are frozen dataclasses that know their own wire shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, FiniteFloat


@dataclass(frozen=True)
class Coordinate:
    """A single geographic point.

    Attributes:
        lat (float): Latitude in degrees. Not range-checked.
        lng (float): Longitude in degrees. Not range-checked.
    """
    lat: FiniteFloat
    lng: FiniteFloat

    def as_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


# ── Inbound (client → server) ────────────────────────────────────────────────


class StartSimulation(BaseModel):
    """Begin a new simulation over ``waypoints`` at ``speed``."""
    type: Literal["START_SIMULATION"]
    waypoints: Optional[List[Coordinate]] = None
    speed: Optional[FiniteFloat] = Field(default=None, strict=True)


class PauseSimulation(BaseModel):
    type: Literal["PAUSE_SIMULATION"]


class ResumeSimulation(BaseModel):
    type: Literal["RESUME_SIMULATION"]


class StopSimulation(BaseModel):
    type: Literal["STOP_SIMULATION"]


class UpdateSpeed(BaseModel):
    """Replace the speed multiplier of the running simulation."""
    type: Literal["UPDATE_SPEED"]
    speed: FiniteFloat = Field(strict=True)


InboundMessage = Annotated[
    Union[
        StartSimulation,
        PauseSimulation,
        ResumeSimulation,
        StopSimulation,
        UpdateSpeed,
    ],
    Field(discriminator="type"),
]

INBOUND_TYPES = (
    "START_SIMULATION",
    "PAUSE_SIMULATION",
    "RESUME_SIMULATION",
    "STOP_SIMULATION",
    "UPDATE_SPEED",
)


# ── Outbound (server → client) ───────────────────────────────────────────────


@dataclass(frozen=True)
class SimulationStarted:
    """Confirmation that a simulation is armed, carrying the first waypoint."""
    TYPE: ClassVar[str] = "SIMULATION_STARTED"

    initial_position: Coordinate

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": self.TYPE,
            "initialPosition": self.initial_position.as_dict(),
        }


@dataclass(frozen=True)
class PositionUpdate:
    """
    Result of one clock tick.

    Attributes:
        position (Coordinate): Interpolated location after the tick.
        progress (float): Distance accumulated within the current segment.
        current_waypoint (int): Index of the segment's start waypoint.
        is_complete (bool): True on the final update of a route.
    """
    TYPE: ClassVar[str] = "POSITION_UPDATE"

    position: Coordinate
    progress: float
    current_waypoint: int
    is_complete: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": self.TYPE,
            "position": self.position.as_dict(),
            "progress": self.progress,
            "currentWaypoint": self.current_waypoint,
            "isComplete": self.is_complete,
        }


@dataclass(frozen=True)
class ErrorMessage:
    TYPE: ClassVar[str] = "ERROR"

    message: str

    def as_dict(self) -> Dict[str, Any]:
        return {"type": self.TYPE, "message": self.message}


OutboundMessage = Union[SimulationStarted, PositionUpdate, ErrorMessage]
