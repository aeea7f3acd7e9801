"""
Lightweight spatial indexing (grid bucket) for lat/lon points.

Used by the coin pool to answer "nearest coin within R meters" without O(N) scans
when a hunt area holds thousands of coins. Unlike a static index, entries can be
added and removed by key while the hunt is running.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, Hashable, Iterator, TypeVar

from coinhunt.core.geo import GeoPoint, haversine_m

K = TypeVar("K", bound=Hashable)

# Projection error margin: cells are searched a bit wider than the radius so the
# equirectangular approximation never hides a point that is truly in range.
_SEARCH_SLACK = 1.25


def _to_xy_m(lat: float, lon: float, *, lat0_deg: float) -> tuple[float, float]:
    # Equirectangular projection around a reference latitude (good enough for a city-scale hunt).
    lat0 = math.radians(float(lat0_deg))
    x = float(lon) * 111_320.0 * max(math.cos(lat0), 1e-6)
    y = float(lat) * 110_540.0
    return x, y


@dataclass(frozen=True)
class _Entry(Generic[K]):
    key: K
    point: GeoPoint
    cell: tuple[int, int]


class SpatialGridIndex(Generic[K]):
    """Mutable grid index keyed by a hashable id (not thread-safe; callers lock)."""

    def __init__(self, *, cell_size_m: float = 250.0, lat0_deg: float | None = None):
        if not float(cell_size_m) > 0:
            raise ValueError("cell_size_m must be > 0")
        self._cell_size_m = float(cell_size_m)
        # Reference latitude is pinned by the first inserted point when not given.
        self._lat0_deg = float(lat0_deg) if lat0_deg is not None else None
        self._cells: dict[tuple[int, int], dict[K, _Entry[K]]] = {}
        self._entries: dict[K, _Entry[K]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[K]:
        return iter(self._entries)

    def _cell_key(self, lat: float, lon: float) -> tuple[int, int]:
        x_m, y_m = _to_xy_m(lat, lon, lat0_deg=self._lat0_deg or 0.0)
        return (int(math.floor(x_m / self._cell_size_m)), int(math.floor(y_m / self._cell_size_m)))

    def insert(self, key: K, point: GeoPoint) -> None:
        if key in self._entries:
            self.remove(key)
        if self._lat0_deg is None:
            self._lat0_deg = float(point.lat)
        cell = self._cell_key(point.lat, point.lon)
        e = _Entry(key=key, point=point, cell=cell)
        self._entries[key] = e
        self._cells.setdefault(cell, {})[key] = e

    def remove(self, key: K) -> bool:
        e = self._entries.pop(key, None)
        if e is None:
            return False
        bucket = self._cells.get(e.cell)
        if bucket is not None:
            bucket.pop(key, None)
            if not bucket:
                del self._cells[e.cell]
        return True

    def clear(self) -> None:
        self._cells.clear()
        self._entries.clear()

    def _crosses_antimeridian(self, origin: GeoPoint, radius_m: float) -> bool:
        # Cell x indices do not wrap at +/-180 deg, so a search box spilling over it
        # cannot be answered from the ring of cells around the origin.
        cos_lat = math.cos(math.radians(float(origin.lat)))
        if cos_lat <= 1e-6:
            return True
        dlon = radius_m * _SEARCH_SLACK / (111_320.0 * cos_lat)
        return abs(float(origin.lon)) + dlon >= 180.0

    def _candidates(self, origin: GeoPoint, radius_m: float) -> Iterator[_Entry[K]]:
        cx, cy = self._cell_key(origin.lat, origin.lon)
        steps = int(math.ceil(radius_m * _SEARCH_SLACK / self._cell_size_m))
        if (2 * steps + 1) ** 2 >= len(self._cells) or self._crosses_antimeridian(origin, radius_m):
            # Searching the ring would touch more cells than exist (or miss wrapped ones); scan everything.
            for bucket in self._cells.values():
                yield from bucket.values()
            return
        for dx in range(-steps, steps + 1):
            for dy in range(-steps, steps + 1):
                bucket = self._cells.get((cx + dx, cy + dy))
                if bucket:
                    yield from bucket.values()

    def query_within(self, origin: GeoPoint, radius_m: float) -> list[tuple[K, float]]:
        """Return `(key, distance_m)` pairs within the radius, nearest first (ties by key)."""
        r = float(radius_m)
        if not r >= 0 or not self._entries:
            return []
        out: list[tuple[K, float]] = []
        for e in self._candidates(origin, r):
            d = haversine_m(origin, e.point)
            if d <= r:
                out.append((e.key, d))
        out.sort(key=lambda kd: (kd[1], kd[0]))
        return out

    def nearest(self, origin: GeoPoint, radius_m: float) -> tuple[K, float] | None:
        """Return the nearest `(key, distance_m)` within the radius; exact ties go to the lower key."""
        r = float(radius_m)
        if not r >= 0 or not self._entries:
            return None
        best: tuple[K, float] | None = None
        for e in self._candidates(origin, r):
            d = haversine_m(origin, e.point)
            if d > r:
                continue
            if best is None or d < best[1] or (d == best[1] and e.key < best[0]):
                best = (e.key, d)
        return best
