"""
api — HTTP and WebSocket surface
================================

Modules
-------
server
    FastAPI application (:func:`create_app`, module-level ``app``).
connection
    :class:`WebSocketLink` thread-safe outbound queue for one socket.
route_files
    CSV / JSON / GeoJSON / TXT coordinate parsing.
geocode
    Offline place lookup.
schemas
    Pydantic response models.
"""
