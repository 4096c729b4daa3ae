"""
api/geocode.py
==============
Offline place lookup used to seed a route's first waypoints.

Results come from a fixed table rather than a real geocoding provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class GeocodeResult:
    name: str
    lat: float
    lng: float

    def as_dict(self) -> Dict[str, object]:
        return {"name": self.name, "lat": self.lat, "lng": self.lng}


# (query substring, results); first match wins
_KNOWN_PLACES: Tuple[Tuple[str, Tuple[GeocodeResult, ...]], ...] = (
    ("new york", (
        GeocodeResult("New York, NY, USA", 40.7128, -74.0060),
        GeocodeResult("New York Mills, MN, USA", 46.5188, -95.3767),
    )),
    ("london", (
        GeocodeResult("London, UK", 51.5074, -0.1278),
        GeocodeResult("London, ON, Canada", 42.9849, -81.2453),
    )),
)

_FALLBACK: Tuple[GeocodeResult, ...] = (
    GeocodeResult("Paris, France", 48.8566, 2.3522),
    GeocodeResult("Berlin, Germany", 52.5200, 13.4050),
    GeocodeResult("Tokyo, Japan", 35.6762, 139.6503),
)


def search_locations(query: str) -> List[GeocodeResult]:
    """Return candidate places for *query* (case-insensitive substring match)."""
    needle = query.lower()
    for key, results in _KNOWN_PLACES:
        if key in needle:
            return list(results)
    return list(_FALLBACK)
