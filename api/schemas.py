"""
api/schemas.py
==============
Pydantic response models for the HTTP routes in :mod:`api.server`.
"""

from typing import Dict, List

from pydantic import BaseModel


class CoordinateModel(BaseModel):
    """Single waypoint in a response payload."""
    lat: float
    lng: float


class UploadResponse(BaseModel):
    """Result of ``POST /api/upload-coordinates``."""
    success: bool
    coordinates: List[CoordinateModel]
    message: str


class GeocodeResultModel(BaseModel):
    name: str
    lat: float
    lng: float


class GeocodeResponse(BaseModel):
    """Result of ``GET /api/geocode``."""
    results: List[GeocodeResultModel]


class HealthResponse(BaseModel):
    status: str
    connections: int
    active_sessions: int
    transport: Dict[str, int]
