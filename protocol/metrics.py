"""
TransportMetrics: Tracks simple statistics for the WebSocket transport.
"""

import threading


class TransportMetrics:
    """
    Thread-safe counters for connections and message flow.

    Attributes:
        connections_opened (int): Connections accepted since start-up.
        connections_closed (int): Connections torn down (any reason).
        received (int): Inbound frames that decoded successfully.
        protocol_errors (int): Inbound frames dropped as undecodable.
        sent (int): Outbound messages handed to a connection.
        send_failures (int): Outbound messages that hit a closed connection.
        sessions_started (int): Simulations armed.
        sessions_completed (int): Simulations that reached the last waypoint.
    """

    _FIELDS = (
        "connections_opened",
        "connections_closed",
        "received",
        "protocol_errors",
        "sent",
        "send_failures",
        "sessions_started",
        "sessions_completed",
    )

    def __init__(self):
        """Initialize all counters to zero."""
        self._lock = threading.Lock()
        for name in self._FIELDS:
            setattr(self, name, 0)

    def incr(self, name: str, amount: int = 1) -> None:
        """
        Increment one counter.

        Args:
            name (str): One of the attribute names listed above.
            amount (int): Value to add.
        """
        if name not in self._FIELDS:
            raise KeyError(name)
        with self._lock:
            setattr(self, name, getattr(self, name) + amount)

    def report(self) -> dict:
        """
        Return a snapshot of current metrics.

        Returns:
            dict: Counter name to value.
        """
        with self._lock:
            return {name: getattr(self, name) for name in self._FIELDS}
