"""
protocol — Real-time simulation protocol
========================================

Typed messages, JSON codec and error taxonomy shared by the simulation
engine (:mod:`sim`) and the WebSocket transport (:mod:`api`).

Modules
-------
message
    :class:`Coordinate`, inbound message models, outbound dataclasses.
codec
    :func:`decode_inbound` / :func:`encode_outbound`.
errors
    :class:`ValidationError`, :class:`ProtocolError`, :class:`TransportFailure`.
metrics
    :class:`TransportMetrics` counter snapshot.
"""

from .message import (
    Coordinate,
    ErrorMessage,
    InboundMessage,
    OutboundMessage,
    PauseSimulation,
    PositionUpdate,
    ResumeSimulation,
    SimulationStarted,
    StartSimulation,
    StopSimulation,
    UpdateSpeed,
)
from .codec import decode_inbound, encode_outbound
from .errors import ProtocolError, RouteSimError, TransportFailure, ValidationError
from .metrics import TransportMetrics

__all__ = [
    "Coordinate",
    "ErrorMessage",
    "InboundMessage",
    "OutboundMessage",
    "PauseSimulation",
    "PositionUpdate",
    "ResumeSimulation",
    "SimulationStarted",
    "StartSimulation",
    "StopSimulation",
    "UpdateSpeed",
    "decode_inbound",
    "encode_outbound",
    "ProtocolError",
    "RouteSimError",
    "TransportFailure",
    "ValidationError",
    "TransportMetrics",
]
