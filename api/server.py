"""
api/server.py
=============
FastAPI application exposing the route simulator.

Routes
------
* ``/ws``: WebSocket carrying the real-time simulation protocol
  (see :mod:`protocol.message`).  Each connection owns at most one
  simulation, driven by a :class:`~sim.registry.SessionRegistry`.
* ``POST /api/upload-coordinates``: parse an uploaded coordinate file.
* ``GET /api/geocode``: look up named places.
* ``GET /api/health``: connection / session counts and transport metrics.

Start the server with :mod:`main`, or directly::

    uvicorn api.server:app --port 3001
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, HTTPException, UploadFile, WebSocket
from fastapi.middleware.cors import CORSMiddleware

import config
from api.connection import WebSocketLink
from api.geocode import search_locations
from api.route_files import RouteFileError, parse_route_file
from api.schemas import (
    CoordinateModel,
    GeocodeResponse,
    GeocodeResultModel,
    HealthResponse,
    UploadResponse,
)
from protocol.codec import decode_inbound
from protocol.errors import ProtocolError
from sim.registry import SessionRegistry

log = logging.getLogger("server")


def create_app(registry: Optional[SessionRegistry] = None) -> FastAPI:
    """Build the application around *registry* (a fresh one by default)."""
    registry = registry or SessionRegistry()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        log.info("Route simulator ready (tick %d ms)", config.TICK_INTERVAL_MS)
        yield
        registry.shutdown()
        log.info("Route simulator stopped")

    app = FastAPI(
        title="Route Simulator",
        description="Streams simulated vehicle positions along client-defined routes.",
        version="1.0",
        lifespan=lifespan,
    )
    app.state.registry = registry
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── WebSocket protocol ───────────────────────────────────────────────────

    @app.websocket("/ws")
    async def simulation_socket(websocket: WebSocket) -> None:
        await websocket.accept()
        link = WebSocketLink(websocket, asyncio.get_running_loop())
        connection_id = registry.connect(link.send)
        link.on_failure = lambda: registry.disconnect(connection_id)
        writer = asyncio.create_task(link.pump())

        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    log.info("client closed id=%s code=%s", connection_id, frame.get("code"))
                    break

                raw = frame.get("text")
                if raw is None:
                    raw = frame.get("bytes")
                try:
                    message = decode_inbound(raw)
                except ProtocolError as exc:
                    registry.metrics.incr("protocol_errors")
                    log.warning("dropped frame id=%s: %s", connection_id, exc)
                    continue

                registry.metrics.incr("received")
                registry.handle(connection_id, message)
        finally:
            registry.disconnect(connection_id)
            link.close()
            await writer

    # ── HTTP routes ──────────────────────────────────────────────────────────

    @app.post("/api/upload-coordinates", response_model=UploadResponse)
    async def upload_coordinates(file: Optional[UploadFile] = File(None)):
        """Parse a CSV / JSON / GeoJSON / TXT file into waypoints."""
        if file is None:
            raise HTTPException(status_code=400, detail="No file uploaded")

        raw = await file.read(config.MAX_UPLOAD_BYTES + 1)
        if len(raw) > config.MAX_UPLOAD_BYTES:
            raise HTTPException(
                status_code=413,
                detail=f"File exceeds the {config.MAX_UPLOAD_BYTES} byte limit",
            )
        try:
            content = raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise HTTPException(status_code=400, detail="File must be UTF-8 text")

        try:
            coordinates = parse_route_file(content, file.filename or "")
        except RouteFileError as exc:
            log.info("upload rejected file=%s: %s", file.filename, exc)
            raise HTTPException(status_code=400, detail=str(exc))

        log.info("upload parsed file=%s waypoints=%d", file.filename, len(coordinates))
        return UploadResponse(
            success=True,
            coordinates=[CoordinateModel(**c.as_dict()) for c in coordinates],
            message=f"Successfully parsed {len(coordinates)} waypoints",
        )

    @app.get("/api/geocode", response_model=GeocodeResponse)
    def geocode(query: Optional[str] = None):
        """Return candidate places matching ``query``."""
        if not query:
            raise HTTPException(status_code=400, detail="Search query is required")
        results = search_locations(query)
        return GeocodeResponse(
            results=[GeocodeResultModel(**r.as_dict()) for r in results],
        )

    @app.get("/api/health", response_model=HealthResponse)
    def health():
        return HealthResponse(
            status="ok",
            connections=registry.connection_count(),
            active_sessions=len(registry.active_sessions()),
            transport=registry.metrics.report(),
        )

    return app


app = create_app()
