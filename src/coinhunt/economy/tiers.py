"""
Find-limit tiers.

A player's find limit is the highest coin value they may collect. The limit itself
is owned by an external economy collaborator; this module only interprets it:
- which of the six named tiers it falls into,
- whether a given coin value is collectible under it,
- display helpers (money formatting, tier-up and over-limit messages).

Money is always `Decimal`; comparisons are exact (no rounding tolerance).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum
from typing import Any

from coinhunt.config.settings import EconomySettings
from coinhunt.domain.models import to_decimal, to_money


class Tier(IntEnum):
    """Six find-limit tiers in ascending order."""

    CABIN_BOY = 0
    DECK_HAND = 1
    TREASURE_HUNTER = 2
    CAPTAIN = 3
    PIRATE_LEGEND = 4
    KING_OF_PIRATES = 5


@dataclass(frozen=True)
class TierInfo:
    tier: Tier
    name: str
    limit: Decimal


def is_collectible(coin_value: Any, find_limit: Any) -> bool:
    """True iff `coin_value <= find_limit` (boundary inclusive, exact Decimal compare)."""
    return to_decimal(coin_value) <= to_decimal(find_limit)


def format_money(value: Any) -> str:
    return f"${to_money(value):,.2f}"


def congratulation_message(value: Any) -> str:
    v = to_money(value)
    if v >= Decimal("50"):
        return "LEGENDARY FIND! Ye've struck gold, Captain!"
    if v >= Decimal("25"):
        return "MASSIVE HAUL! The crew will sing of this!"
    if v >= Decimal("10"):
        return "EXCELLENT! A worthy treasure indeed!"
    if v >= Decimal("5"):
        return "GREAT FIND! Yer treasure grows!"
    if v >= Decimal("1"):
        return "Nice find, matey!"
    return "Every coin counts on the high seas!"


class TierPolicy:
    """Maps find limits to tiers and answers collectibility questions."""

    def __init__(self, settings: EconomySettings | None = None):
        settings = settings or EconomySettings()
        self._tiers: tuple[TierInfo, ...] = tuple(
            TierInfo(tier=Tier(i), name=t.name, limit=to_money(t.threshold))
            for i, t in enumerate(settings.tiers)
        )
        self._by_name = {info.name: info for info in self._tiers}
        self._coin_tiers = tuple((t.name, to_money(t.min_value)) for t in settings.coin_tiers)
        self._default_find_limit = to_money(settings.default_find_limit)

    @property
    def tiers(self) -> tuple[TierInfo, ...]:
        return self._tiers

    @property
    def default_find_limit(self) -> Decimal:
        return self._default_find_limit

    def tier_for(self, find_limit: Any) -> Tier:
        """Highest tier whose threshold is <= the limit (limits below the first tier map to it)."""
        limit = to_decimal(find_limit)
        for info in reversed(self._tiers):
            if limit >= info.limit:
                return info.tier
        return self._tiers[0].tier

    def info_for(self, tier: Tier) -> TierInfo:
        return self._tiers[Tier(tier)]

    def limit_for(self, tier: Tier) -> Decimal:
        return self.info_for(tier).limit

    def name_for(self, tier: Tier) -> str:
        return self.info_for(tier).name

    def tier_named(self, name: str) -> Tier:
        try:
            return self._by_name[name].tier
        except KeyError:
            raise ValueError(f"unknown tier name: {name!r}") from None

    def is_collectible(self, coin_value: Any, find_limit: Any) -> bool:
        return is_collectible(coin_value, find_limit)

    def is_locked(self, coin_value: Any, find_limit: Any) -> bool:
        return not is_collectible(coin_value, find_limit)

    def next_tier(self, find_limit: Any) -> Tier | None:
        """The first tier whose threshold is above the limit (None at the top)."""
        limit = to_decimal(find_limit)
        for info in self._tiers:
            if info.limit > limit:
                return info.tier
        return None

    def progress_to_next_tier(self, find_limit: Any) -> float:
        """Progress from the current tier threshold to the next one, in 0..1."""
        limit = to_decimal(find_limit)
        nxt = self.next_tier(limit)
        if nxt is None:
            return 1.0
        current = self.limit_for(self.tier_for(limit))
        upper = self.limit_for(nxt)
        if limit < current:
            return 0.0
        span = upper - current
        if span <= 0:
            return 1.0
        return float((limit - current) / span)

    def coin_tier_for(self, value: Any) -> str:
        """Visual tier (Bronze..Diamond) used for coin styling."""
        v = to_money(value)
        name = self._coin_tiers[0][0]
        for tier_name, min_value in self._coin_tiers:
            if v >= min_value:
                name = tier_name
        return name

    def over_limit_message(self, coin_value: Any, find_limit: Any) -> str:
        return (
            f"This treasure be {format_money(coin_value)}, but yer limit is only "
            f"{format_money(find_limit)}!"
        )

    def unlock_hint(self, coin_value: Any) -> str:
        return f"Hide {format_money(coin_value)} to unlock!"

    def tier_up_message(self, tier: Tier) -> str:
        info = self.info_for(tier)
        if info.tier == self._tiers[-1].tier:
            return f"All hail the {info.name}! No find limit can hold ye!"
        return f"Ye've been promoted to {info.name}! Finds up to {format_money(info.limit)}!"
