"""
Coin pool: the authoritative set of coins for one hunt session.

The pool is the only mutable state shared between the tick driver (proximity
engine) and other callers (collection attempts, the session awarding/removing
coins). Every public method takes the pool lock, and `remove` is a single-winner
compare-and-remove: for a given id exactly one caller ever sees `True`.

The pool never designates a target; that is the engine's job.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from coinhunt.core.geo import GeoPoint
from coinhunt.core.spatial_index import SpatialGridIndex
from coinhunt.domain.models import Coin

logger = logging.getLogger(__name__)


class CoinPool:
    def __init__(self, coins: Iterable[Coin] = (), *, cell_size_m: float = 250.0):
        self._lock = threading.Lock()
        self._coins: dict[str, Coin] = {}
        self._removed: set[str] = set()
        self._index: SpatialGridIndex[str] = SpatialGridIndex(cell_size_m=cell_size_m)
        if coins:
            self.populate(coins)

    def __len__(self) -> int:
        with self._lock:
            return len(self._coins)

    def __contains__(self, coin_id: object) -> bool:
        with self._lock:
            return coin_id in self._coins

    def ids(self) -> list[str]:
        with self._lock:
            return sorted(self._coins)

    def coins(self) -> list[Coin]:
        with self._lock:
            return [self._coins[k] for k in sorted(self._coins)]

    # --- session hooks ---

    def populate(self, coins: Iterable[Coin]) -> int:
        """Add a batch of coins; the whole batch is rejected if any id is duplicated."""
        batch = list(coins)
        seen: set[str] = set()
        with self._lock:
            for coin in batch:
                if coin.id in seen or coin.id in self._coins:
                    raise ValueError(f"duplicate coin id in pool: {coin.id!r}")
                seen.add(coin.id)
            for coin in batch:
                self._insert_locked(coin)
        logger.info("Coin pool populated with %s coins (total=%s)", len(batch), len(self))
        return len(batch)

    def add(self, coin: Coin) -> None:
        with self._lock:
            if coin.id in self._coins:
                raise ValueError(f"duplicate coin id in pool: {coin.id!r}")
            self._insert_locked(coin)

    def restore(self, coin: Coin) -> bool:
        """Put back a coin whose collection was rolled back; False if the id is live again."""
        with self._lock:
            if coin.id in self._coins:
                return False
            self._insert_locked(coin)
        logger.info("Coin %s restored to pool", coin.id)
        return True

    def clear(self) -> None:
        with self._lock:
            self._coins.clear()
            self._removed.clear()
            self._index.clear()
        logger.info("Coin pool cleared")

    def _insert_locked(self, coin: Coin) -> None:
        self._coins[coin.id] = coin
        # A coin re-added after removal is live again.
        self._removed.discard(coin.id)
        self._index.insert(coin.id, coin.point)

    # --- lookups ---

    def get(self, coin_id: str) -> Coin | None:
        with self._lock:
            return self._coins.get(coin_id)

    def was_removed(self, coin_id: str) -> bool:
        """True if the coin left the pool through `remove` since the last `clear`."""
        with self._lock:
            return coin_id in self._removed

    def remove(self, coin_id: str) -> bool:
        """Remove a coin; returns False (not an error) if it is already gone."""
        with self._lock:
            coin = self._coins.pop(coin_id, None)
            if coin is None:
                return False
            self._index.remove(coin_id)
            self._removed.add(coin_id)
        logger.debug("Coin %s removed from pool", coin_id)
        return True

    def nearest_with_distance(self, position: GeoPoint, max_radius_m: float) -> tuple[Coin, float] | None:
        with self._lock:
            hit = self._index.nearest(position, max_radius_m)
            if hit is None:
                return None
            coin_id, d = hit
            return self._coins[coin_id], d

    def nearest(self, position: GeoPoint, max_radius_m: float) -> Coin | None:
        """Closest remaining coin within `max_radius_m`; exact ties go to the lower id."""
        hit = self.nearest_with_distance(position, max_radius_m)
        return hit[0] if hit else None

    def within(self, position: GeoPoint, radius_m: float) -> list[tuple[Coin, float]]:
        """All coins within the radius as `(coin, distance_m)`, nearest first."""
        with self._lock:
            return [(self._coins[k], d) for k, d in self._index.query_within(position, radius_m)]
