"""
protocol/errors.py
==================
Exception taxonomy shared by the simulation engine and the transport.

* :class:`ValidationError`: a start request the engine refuses; the
  client is told via an ``ERROR`` message.
* :class:`ProtocolError`: an inbound frame that cannot be decoded; it is
  logged and dropped, never echoed back.
* :class:`TransportFailure`: an outbound send that cannot be delivered;
  handled like a disconnect.
"""


class RouteSimError(Exception):
    """Base class for every error raised by this project."""


class ValidationError(RouteSimError):
    """Raised when a simulation cannot be started with the given input."""


class ProtocolError(RouteSimError):
    """Raised when an inbound message is unparseable or of an unknown type."""


class TransportFailure(RouteSimError):
    """Raised by a sender when the connection can no longer deliver messages."""
