#!/usr/bin/env python3
"""
sim/registry.py
===============
Binds simulation sessions to live connections.

The :class:`SessionRegistry` maps an opaque connection id to a slot that
holds at most one :class:`~sim.session.SimulationSession` and the
:class:`~sim.clock.TickClock` driving it.  It routes decoded inbound
messages to the right session and sends outbound messages through the
callable registered for the connection.

Locking
-------
* ``SessionRegistry._lock`` guards the id → slot map only.  It is never
  held while a session advances or a message is sent.
* ``SimulationSession.lock`` serialises ticks and control messages for
  one session.  Ticks emit while holding it, and teardown marks the
  session stopped while holding it, so no update can leave after a
  teardown has returned.

Every path that ends a simulation (stop, completion, restart, disconnect,
shutdown) goes through :meth:`SessionRegistry._release`.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import config
from protocol.errors import ProtocolError, TransportFailure, ValidationError
from protocol.message import (
    Coordinate,
    ErrorMessage,
    InboundMessage,
    OutboundMessage,
    PauseSimulation,
    ResumeSimulation,
    SimulationStarted,
    StartSimulation,
    StopSimulation,
    UpdateSpeed,
)
from protocol.metrics import TransportMetrics
from sim.clock import TickClock
from sim.session import SimulationSession

log = logging.getLogger("registry")

Sender = Callable[[OutboundMessage], None]
ClockFactory = Callable[..., TickClock]


@dataclass
class _Slot:
    """Registry entry for one live connection."""
    connection_id: str
    send: Sender
    session: Optional[SimulationSession] = None
    clock: Optional[TickClock] = None


class SessionRegistry:
    """Owns every connection's simulation and clock.

    Parameters
    ----------
    tick_interval_s : float or None
        Clock period; defaults to :data:`config.TICK_INTERVAL_S`.
    clock_factory : callable or None
        ``factory(period_s, callback, name)`` returning an object with
        ``start()`` and ``cancel()``.  Defaults to :class:`TickClock`.
    metrics : TransportMetrics or None
        Shared counters; a private instance is created when omitted.
    """

    def __init__(
        self,
        tick_interval_s: Optional[float] = None,
        clock_factory: Optional[ClockFactory] = None,
        metrics: Optional[TransportMetrics] = None,
    ) -> None:
        self._tick_interval_s = (
            config.TICK_INTERVAL_S if tick_interval_s is None else tick_interval_s
        )
        self._clock_factory = clock_factory or TickClock
        self.metrics = metrics or TransportMetrics()

        self._lock = threading.Lock()
        self._slots: Dict[str, _Slot] = {}

    # ── Connections ───────────────────────────────────────────────────────────

    def connect(self, send: Sender) -> str:
        """Register a new connection and return its id.

        Args:
            send (callable): Delivers one outbound message to the client.
                Must not block; raises :class:`TransportFailure` once the
                connection is gone.
        """
        connection_id = str(uuid.uuid4())
        with self._lock:
            self._slots[connection_id] = _Slot(connection_id=connection_id, send=send)
        self.metrics.incr("connections_opened")
        log.info("connect id=%s", connection_id)
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        """Forget a connection, tearing down its simulation.  Idempotent."""
        with self._lock:
            slot = self._slots.pop(connection_id, None)
        if slot is None:
            return
        self.metrics.incr("connections_closed")
        self._release(connection_id, slot.session, slot.clock, "disconnect")
        log.info("disconnect id=%s", connection_id)

    def shutdown(self, join_timeout: float = 1.0) -> None:
        """Disconnect everything; used when the server stops."""
        with self._lock:
            slots = list(self._slots.values())
            self._slots.clear()
        for slot in slots:
            self.metrics.incr("connections_closed")
            self._release(slot.connection_id, slot.session, slot.clock, "shutdown")
            if slot.clock is not None and hasattr(slot.clock, "join"):
                slot.clock.join(timeout=join_timeout)
        if slots:
            log.info("registry shutdown closed=%d", len(slots))

    # ── Dispatch ──────────────────────────────────────────────────────────────

    def handle(self, connection_id: str, message: InboundMessage) -> None:
        """Apply one decoded inbound message to the connection's session."""
        if isinstance(message, StartSimulation):
            self.start(connection_id, message.waypoints, message.speed)
        elif isinstance(message, PauseSimulation):
            self.pause(connection_id)
        elif isinstance(message, ResumeSimulation):
            self.resume(connection_id)
        elif isinstance(message, StopSimulation):
            self.stop(connection_id)
        elif isinstance(message, UpdateSpeed):
            self.set_speed(connection_id, message.speed)
        else:
            raise ProtocolError(f"unhandled message {type(message).__name__}")

    # ── Operations ────────────────────────────────────────────────────────────

    def start(
        self,
        connection_id: str,
        waypoints: Optional[Sequence[Coordinate]],
        speed: Optional[float] = None,
    ) -> bool:
        """
        Start (or restart) the simulation for a connection.

        A rejected request sends an ``ERROR`` message and leaves any
        running simulation untouched.

        Returns:
            bool: True if a new simulation was armed.
        """
        with self._lock:
            slot = self._slots.get(connection_id)
        if slot is None:
            log.warning("start for unknown connection id=%s", connection_id)
            return False

        try:
            session = SimulationSession(waypoints, speed)
        except ValidationError as exc:
            log.warning("start rejected id=%s reason=%s", connection_id, exc)
            if not self._send(connection_id, slot.send, ErrorMessage(message=str(exc))):
                self.disconnect(connection_id)
            return False

        send = slot.send
        clock = self._clock_factory(
            self._tick_interval_s,
            lambda: self._tick(connection_id, session, send),
            f"clock-{connection_id[:8]}",
        )

        with self._lock:
            slot = self._slots.get(connection_id)
            if slot is None:
                return False
            previous = (slot.session, slot.clock)
            slot.session, slot.clock = session, clock

        self._release(connection_id, previous[0], previous[1], "restart")
        self.metrics.incr("sessions_started")
        log.info(
            "start id=%s waypoints=%d speed=%s total_distance=%.6f",
            connection_id, len(session.waypoints), session.speed,
            session.total_distance,
        )

        if not self._send(connection_id, send, SimulationStarted(initial_position=session.position)):
            self.disconnect(connection_id)
            return False
        clock.start()
        return True

    def pause(self, connection_id: str) -> bool:
        return self._control(connection_id, "pause", lambda s: s.pause())

    def resume(self, connection_id: str) -> bool:
        return self._control(connection_id, "resume", lambda s: s.resume())

    def set_speed(self, connection_id: str, speed: float) -> bool:
        return self._control(connection_id, "speed", lambda s: s.set_speed(speed))

    def stop(self, connection_id: str) -> bool:
        """End the connection's simulation, if any.  Idempotent."""
        session, clock = self._detach(connection_id)
        if session is None:
            return False
        self._release(connection_id, session, clock, "stop")
        return True

    # ── Introspection ─────────────────────────────────────────────────────────

    def session_for(self, connection_id: str) -> Optional[SimulationSession]:
        with self._lock:
            slot = self._slots.get(connection_id)
            return slot.session if slot else None

    def has_connection(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._slots

    def connection_count(self) -> int:
        with self._lock:
            return len(self._slots)

    def active_sessions(self) -> List[str]:
        """Connection ids that currently own a simulation."""
        with self._lock:
            return [cid for cid, slot in self._slots.items() if slot.session is not None]

    # ── Internals ─────────────────────────────────────────────────────────────

    def _control(
        self,
        connection_id: str,
        name: str,
        action: Callable[[SimulationSession], None],
    ) -> bool:
        session = self.session_for(connection_id)
        if session is None:
            log.debug("%s ignored, no session id=%s", name, connection_id)
            return False
        with session.lock:
            if not session.active:
                return False
            action(session)
        log.info("%s id=%s", name, connection_id)
        return True

    def _tick(self, connection_id: str, session: SimulationSession, send: Sender) -> None:
        """Clock callback: advance one step and emit the update."""
        with session.lock:
            update = session.advance()
            if update is None:
                return
            delivered = self._send(connection_id, send, update)

        if not delivered:
            self.disconnect(connection_id)
            return

        if update.is_complete:
            self.metrics.incr("sessions_completed")
            finished, clock = self._detach(connection_id, expected=session)
            if finished is not None:
                self._release(connection_id, finished, clock, "complete")

    def _detach(
        self,
        connection_id: str,
        expected: Optional[SimulationSession] = None,
    ) -> Tuple[Optional[SimulationSession], Optional[TickClock]]:
        """Unhook the slot's session and clock, leaving the slot in place."""
        with self._lock:
            slot = self._slots.get(connection_id)
            if slot is None or slot.session is None:
                return None, None
            if expected is not None and slot.session is not expected:
                return None, None
            session, clock = slot.session, slot.clock
            slot.session = slot.clock = None
        return session, clock

    def _release(
        self,
        connection_id: str,
        session: Optional[SimulationSession],
        clock: Optional[TickClock],
        reason: str,
    ) -> None:
        """Disarm the clock and stop the session.  The one teardown path."""
        if clock is not None:
            clock.cancel()
        if session is not None:
            with session.lock:
                session.stop()
            log.info("session ended id=%s reason=%s", connection_id, reason)

    def _send(self, connection_id: str, send: Sender, message: OutboundMessage) -> bool:
        try:
            send(message)
        except TransportFailure as exc:
            self.metrics.incr("send_failures")
            log.warning("send failed id=%s type=%s: %s", connection_id, message.TYPE, exc)
            return False
        self.metrics.incr("sent")
        return True
