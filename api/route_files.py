"""
api/route_files.py
==================
Turns uploaded coordinate files into waypoint lists.

Supported formats (chosen by file extension):

* ``.json`` / ``.geojson``: an array of ``{"lat": .., "lng": ..}`` objects,
  or a GeoJSON ``FeatureCollection`` of ``Point`` / ``LineString`` features.
* ``.csv``: a header row with a latitude column (name contains ``lat``)
  and a longitude column (name contains ``lon`` or ``lng``).
* ``.txt``: one ``lat,lng`` or ``lat lng`` pair per line.

Every parser raises :class:`RouteFileError` with a message prefixed by the
format name, e.g. ``"CSV parsing error: ..."``.
"""

from __future__ import annotations

import functools
import io
import json
import math
import os
from typing import Any, Callable, List

import pandas as pd

from protocol.errors import RouteSimError
from protocol.message import Coordinate


class RouteFileError(RouteSimError, ValueError):
    """Raised when an uploaded file cannot be turned into coordinates."""


def _prefixed(label: str) -> Callable:
    """Re-raise any :class:`RouteFileError` with ``"<label>: "`` in front."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(content: str) -> List[Coordinate]:
            try:
                return func(content)
            except RouteFileError as exc:
                raise RouteFileError(f"{label}: {exc}") from exc
        return wrapper
    return decorator


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


# ── JSON / GeoJSON ───────────────────────────────────────────────────────────


def _geometry_points(geometry: Any) -> List[Coordinate]:
    if not isinstance(geometry, dict) or not isinstance(geometry.get("coordinates"), list):
        raise RouteFileError("Invalid GeoJSON format. Expected coordinates array in geometry.")

    coords = geometry["coordinates"]
    if geometry.get("type") == "LineString":
        positions = coords
    else:
        positions = [coords]

    points = []
    for position in positions:
        if not isinstance(position, list) or len(position) < 2:
            raise RouteFileError("Invalid GeoJSON position. Expected [lng, lat].")
        lng, lat = position[0], position[1]
        if not (_is_number(lat) and _is_number(lng)):
            raise RouteFileError("Invalid GeoJSON position. Expected numeric [lng, lat].")
        points.append(Coordinate(lat=float(lat), lng=float(lng)))
    return points


@_prefixed("JSON parsing error")
def parse_json(content: str) -> List[Coordinate]:
    try:
        data = json.loads(content)
    except ValueError as exc:
        raise RouteFileError(str(exc)) from exc

    if isinstance(data, list):
        points = []
        for point in data:
            if not isinstance(point, dict) or not (
                _is_number(point.get("lat")) and _is_number(point.get("lng"))
            ):
                raise RouteFileError("Invalid coordinate format. Expected {lat, lng} objects.")
            points.append(Coordinate(lat=float(point["lat"]), lng=float(point["lng"])))
        return points

    if isinstance(data, dict) and data.get("type") == "FeatureCollection":
        features = data.get("features")
        if not isinstance(features, list):
            raise RouteFileError("Invalid GeoJSON format. Expected a features array.")
        points = []
        for feature in features:
            geometry = feature.get("geometry") if isinstance(feature, dict) else None
            points.extend(_geometry_points(geometry))
        return points

    raise RouteFileError("Invalid JSON format. Expected array of coordinates or GeoJSON.")


# ── CSV ──────────────────────────────────────────────────────────────────────


@_prefixed("CSV parsing error")
def parse_csv(content: str) -> List[Coordinate]:
    body = content.strip()
    if not body:
        raise RouteFileError("CSV file must contain at least a header and one data row.")

    try:
        df = pd.read_csv(
            io.StringIO(body),
            index_col=False,
            skipinitialspace=True,
            float_precision="round_trip",
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise RouteFileError(str(exc).strip()) from exc

    if df.empty:
        raise RouteFileError("CSV file must contain at least a header and one data row.")

    headers = [str(col).lower() for col in df.columns]
    lat_idx = next((i for i, h in enumerate(headers) if "lat" in h), -1)
    lng_idx = next((i for i, h in enumerate(headers) if "lon" in h or "lng" in h), -1)
    if lat_idx == -1 or lng_idx == -1:
        raise RouteFileError("Could not find latitude/longitude columns in CSV.")

    lat_raw = df.iloc[:, lat_idx]
    lng_raw = df.iloc[:, lng_idx]
    if lat_raw.isna().any() or lng_raw.isna().any():
        raise RouteFileError("CSV row is missing a coordinate value.")

    lats = pd.to_numeric(lat_raw, errors="coerce")
    lngs = pd.to_numeric(lng_raw, errors="coerce")
    if lats.isna().any() or lngs.isna().any():
        raise RouteFileError("Invalid coordinate values in CSV.")

    points = []
    for lat, lng in zip(lats.tolist(), lngs.tolist()):
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise RouteFileError("Invalid coordinate values in CSV.")
        points.append(Coordinate(lat=float(lat), lng=float(lng)))
    return points


# ── TXT ──────────────────────────────────────────────────────────────────────


@_prefixed("Text file parsing error")
def parse_txt(content: str) -> List[Coordinate]:
    lines = [line.strip() for line in content.strip().splitlines() if line.strip()]
    if not lines:
        raise RouteFileError("Text file contains no data.")

    points = []
    for line in lines:
        parts = line.split(",") if "," in line else line.split()
        if len(parts) < 2:
            raise RouteFileError("Invalid coordinate format in text file.")
        try:
            lat = float(parts[0])
            lng = float(parts[1])
        except ValueError as exc:
            raise RouteFileError("Invalid coordinate values in text file.") from exc
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise RouteFileError("Invalid coordinate values in text file.")
        points.append(Coordinate(lat=lat, lng=lng))
    return points


# ── Dispatch ─────────────────────────────────────────────────────────────────

_PARSERS = {
    ".json": parse_json,
    ".geojson": parse_json,
    ".csv": parse_csv,
    ".txt": parse_txt,
}


def parse_route_file(content: str, filename: str) -> List[Coordinate]:
    """
    Parse an uploaded file into coordinates.

    Args:
        content (str): Decoded file text.
        filename (str): Original file name; only its extension is used.

    Returns:
        List[Coordinate]: Waypoints in file order (may be fewer than two;
        the simulation enforces its own minimum on start).

    Raises:
        RouteFileError: On an unsupported extension or malformed content.
    """
    extension = os.path.splitext(filename or "")[1].lower()
    parser = _PARSERS.get(extension)
    if parser is None:
        raise RouteFileError("Unsupported file format. Please upload JSON, CSV, or TXT files.")
    return parser(content)
