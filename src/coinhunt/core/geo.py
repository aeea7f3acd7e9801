from __future__ import annotations
from dataclasses import dataclass
from math import asin, atan2, cos, degrees, isfinite, radians, sin, sqrt

"""
Geospatial helpers.

We keep a tiny geometry layer here so the hunt engine can do distance/bearing math
without pulling in heavier GIS dependencies. Everything in this module is pure.

Conventions:
- Coordinates are WGS-84 decimal degrees.
- Bearings are compass degrees: 0 = North, 90 = East, always normalized to [0, 360).
- Relative bearings are signed turns in [-180, 180): negative means "turn left".
"""

EARTH_RADIUS_M = 6_371_000.0

# Approximate meters per degree of latitude (used for small local offsets only).
METERS_PER_DEGREE_LAT = 111_320.0

_CARDINALS_8 = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")
_CARDINALS_16 = (
    "N",
    "NNE",
    "NE",
    "ENE",
    "E",
    "ESE",
    "SE",
    "SSE",
    "S",
    "SSW",
    "SW",
    "WSW",
    "W",
    "WNW",
    "NW",
    "NNW",
)
_CARDINAL_NAMES = {
    "N": "North",
    "NE": "Northeast",
    "E": "East",
    "SE": "Southeast",
    "S": "South",
    "SW": "Southwest",
    "W": "West",
    "NW": "Northwest",
}


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


def is_valid_point(point: GeoPoint) -> bool:
    """Return True when both coordinates are finite and inside WGS-84 ranges."""
    lat = float(point.lat)
    lon = float(point.lon)
    if not (isfinite(lat) and isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in meters between two points."""
    if a.lat == b.lat and a.lon == b.lon:
        return 0.0
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Rounding can push `h` marginally outside [0, 1] for antipodal points.
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_M * asin(sqrt(h))


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    """Alias of `haversine_m`, kept for call sites that read better with it."""
    return haversine_m(a, b)


def normalize_bearing(bearing: float) -> float:
    """Wrap any angle into [0, 360)."""
    out = float(bearing) % 360.0
    # `-1e-15 % 360` rounds to 360.0 exactly.
    return 0.0 if out >= 360.0 else out


def bearing_deg(origin: GeoPoint, target: GeoPoint) -> float:
    """Initial great-circle bearing from `origin` to `target`, in [0, 360).

    Identical points have no defined bearing; by convention this returns 0.0
    (a degenerate case, not an error).
    """
    if origin.lat == target.lat and origin.lon == target.lon:
        return 0.0
    lat1 = radians(origin.lat)
    lat2 = radians(target.lat)
    dlon = radians(target.lon - origin.lon)

    y = sin(dlon) * cos(lat2)
    x = cos(lat1) * sin(lat2) - sin(lat1) * cos(lat2) * cos(dlon)
    return normalize_bearing(degrees(atan2(y, x)))


def relative_bearing(target_bearing: float, device_heading: float) -> float:
    """Signed turn from `device_heading` to `target_bearing`, in [-180, 180).

    Examples: (350, 10) -> -20, (10, 350) -> 20, (359, 1) -> -2.
    """
    rel = (float(target_bearing) - float(device_heading) + 180.0) % 360.0 - 180.0
    # Float modulo can land exactly on the excluded upper edge.
    return -180.0 if rel >= 180.0 else rel


def cardinal_direction(bearing: float, points: int = 8) -> str:
    """Map a bearing to an 8- or 16-point compass label.

    Each sector is centred on its label and includes its lower edge, so with
    8 points 22.5 is "NE" and 22.4999 is "N".
    """
    if points == 8:
        labels = _CARDINALS_8
    elif points == 16:
        labels = _CARDINALS_16
    else:
        raise ValueError("points must be 8 or 16")
    sector = 360.0 / len(labels)
    idx = int((normalize_bearing(bearing) + sector / 2) // sector) % len(labels)
    return labels[idx]


def cardinal_direction_full(bearing: float) -> str:
    return _CARDINAL_NAMES[cardinal_direction(bearing, points=8)]


def format_distance(meters: float) -> str:
    """Render a distance for display (cm below 1 m, m below 1 km, km above)."""
    m = float(meters)
    if m < 1.0:
        return f"{m * 100:.0f} cm"
    if m < 1000.0:
        return f"{m:.0f} m"
    return f"{m / 1000.0:.1f} km"


def format_bearing(bearing: float) -> str:
    b = normalize_bearing(bearing)
    return f"{b:.0f}° {cardinal_direction(b)}"


def format_coordinates(point: GeoPoint, decimals: int = 4) -> str:
    lat_dir = "N" if point.lat >= 0 else "S"
    lon_dir = "E" if point.lon >= 0 else "W"
    return f"{abs(point.lat):.{decimals}f}{lat_dir}, {abs(point.lon):.{decimals}f}{lon_dir}"


def offset_point(origin: GeoPoint, meters_north: float, meters_east: float) -> GeoPoint:
    """Return a point displaced by a small local offset (flat-earth approximation)."""
    dlat = float(meters_north) / METERS_PER_DEGREE_LAT
    dlon = float(meters_east) / (METERS_PER_DEGREE_LAT * cos(radians(origin.lat)))
    return GeoPoint(lat=origin.lat + dlat, lon=origin.lon + dlon)
