"""
Hunt session: explicit owner of one coin pool and one proximity engine.

Collaborators receive a reference to the session (or to its pool/engine) instead
of reaching for global singletons. The session is also the "caller" the engine
expects for malformed ticks: it logs `InputRejected` and skips the tick.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable

from coinhunt.config.settings import ProximitySettings, Settings, get_settings
from coinhunt.core.errors import InputRejected
from coinhunt.core.geo import GeoPoint
from coinhunt.domain.models import Coin, CollectionResult, to_decimal
from coinhunt.economy.tiers import Tier, TierPolicy
from coinhunt.economy.wallet import InMemoryWallet, Wallet
from coinhunt.hunt.engine import ProximityEngine
from coinhunt.hunt.events import ProximityListener
from coinhunt.hunt.pool import CoinPool

logger = logging.getLogger(__name__)


class HuntSession:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        proximity: ProximitySettings | None = None,
        find_limit: Any = None,
        wallet: Wallet | None = None,
    ):
        settings = settings or get_settings()
        proximity = proximity or settings.proximity
        self.policy = TierPolicy(settings.economy)
        self.pool = CoinPool(cell_size_m=proximity.index_cell_size_m)
        self.engine = ProximityEngine(proximity, policy=self.policy)
        self.wallet: Wallet = wallet if wallet is not None else InMemoryWallet()
        self._find_limit = to_decimal(find_limit) if find_limit is not None else self.policy.default_find_limit
        self._last_position: GeoPoint | None = None
        self._rejected_ticks = 0

    # --- session hooks ---

    def start(self, coins: Iterable[Coin]) -> int:
        """Populate the pool for a new hunt; coin ids may repeat those of earlier hunts."""
        if isinstance(self.wallet, InMemoryWallet):
            self.wallet.begin_hunt()
        return self.pool.populate(coins)

    def end(self) -> None:
        self.engine.reset()
        self.pool.clear()
        self._last_position = None

    def add_listener(self, listener: ProximityListener) -> None:
        self.engine.add_listener(listener)

    def remove_listener(self, listener: ProximityListener) -> bool:
        return self.engine.remove_listener(listener)

    # --- economy collaborator surface ---

    @property
    def find_limit(self) -> Decimal:
        return self._find_limit

    def set_find_limit(self, value: Any) -> Decimal:
        limit = to_decimal(value)
        if limit < 0:
            raise ValueError("find limit must be >= 0")
        old_tier = self.policy.tier_for(self._find_limit)
        self._find_limit = limit
        new_tier = self.policy.tier_for(limit)
        if new_tier != old_tier:
            logger.info("Tier changed: %s -> %s", self.policy.name_for(old_tier), self.policy.name_for(new_tier))
        return limit

    @property
    def tier(self) -> Tier:
        return self.policy.tier_for(self._find_limit)

    # --- location collaborator surface ---

    @property
    def last_position(self) -> GeoPoint | None:
        return self._last_position

    @property
    def rejected_ticks(self) -> int:
        return self._rejected_ticks

    def on_location(self, lat: Any, lon: Any, heading: Any = None) -> bool:
        """Feed one location fix; returns False if the tick was rejected."""
        try:
            position = GeoPoint(lat=float(lat), lon=float(lon))
        except (TypeError, ValueError):
            position = None
        try:
            if position is None:
                raise InputRejected(f"invalid coordinates: ({lat!r}, {lon!r})")
            self.engine.update(position, heading, self.pool, self._find_limit)
        except InputRejected as e:
            self._rejected_ticks += 1
            logger.warning("Rejected location tick: %s", e)
            return False
        self._last_position = position
        return True

    # --- user intent ---

    def pin(self, coin_id: str) -> bool:
        if coin_id not in self.pool:
            return False
        self.engine.pin_target(coin_id)
        return True

    def unpin(self) -> None:
        self.engine.unpin_target()

    def collect(self) -> CollectionResult:
        return self.engine.attempt_collect(self.pool, self._find_limit, wallet=self.wallet)
