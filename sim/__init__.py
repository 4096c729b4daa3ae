"""
sim — Simulation core
=====================

Modules
-------
geometry
    Segment / route distance and interpolation helpers.
session
    :class:`SimulationSession` state machine and tick step.
clock
    :class:`TickClock` cancelable periodic timer thread.
registry
    :class:`SessionRegistry` connection → session binding and dispatch.
"""
