"""
Collection transaction.

Turns the engine's current target into a wallet credit, at most once per coin.

Order of checks (first failing check wins):
1. NOT_TARGETED       - the engine has no target
2. OUT_OF_RANGE       - the target zone is not COLLECTIBLE
3. LOCKED             - the coin value is above the find limit *passed now*
4. ALREADY_COLLECTED  - another caller removed the coin first
5. CREDIT_FAILED      - the wallet refused the credit; the coin goes back to the pool

Removal from the pool is the single point of truth: the coin is removed first and
credited only if this caller won the removal. Two racing callers can both pass
checks 1-3, but only one `remove` returns True. A removed coin is either credited
or restored, never dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from coinhunt.domain.models import (
    Coin,
    Collected,
    CollectionResult,
    Denied,
    DenialReason,
    ProximityZone,
    to_decimal,
)
from coinhunt.economy.tiers import congratulation_message, format_money, is_collectible
from coinhunt.economy.wallet import Wallet
from coinhunt.hunt.pool import CoinPool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineSnapshot:
    """Immutable view of proximity engine state at one instant."""

    target: Coin | None = None
    zone: ProximityZone = ProximityZone.OUT_OF_RANGE
    distance_m: float | None = None
    bearing_deg: float | None = None
    relative_bearing_deg: float | None = None
    is_locked: bool = False
    pinned: bool = False
    # Coins within collect distance of the last accepted fix, target or not.
    coins_in_range: int = 0

    @property
    def has_target(self) -> bool:
        return self.target is not None


def _deny(reason: DenialReason, message: str, coin: Coin | None = None) -> Denied:
    return Denied(reason=reason, message=message, coin_id=coin.id if coin else None)


def claim_coin(snapshot: EngineSnapshot, pool: CoinPool, find_limit: Any) -> CollectionResult:
    """Run checks 1-4 and remove the coin; the returned `Collected` is not yet credited."""
    coin = snapshot.target
    if coin is None:
        return _deny(DenialReason.NOT_TARGETED, "No treasure targeted.")

    if snapshot.zone is not ProximityZone.COLLECTIBLE:
        return _deny(DenialReason.OUT_OF_RANGE, "Too far away! Get closer to collect.", coin)

    limit = to_decimal(find_limit)
    if not is_collectible(coin.value, limit):
        return _deny(
            DenialReason.LOCKED,
            f"This treasure be {format_money(coin.value)}, but yer limit is only {format_money(limit)}!",
            coin,
        )

    if not pool.remove(coin.id):
        logger.info("Collection of %s lost the race; coin already gone", coin.id)
        return _deny(DenialReason.ALREADY_COLLECTED, "Coin already collected.", coin)

    return Collected(coin=coin, credited_value=coin.value, message=congratulation_message(coin.value))


def credit_or_restore(claimed: Collected, pool: CoinPool, wallet: Wallet | None) -> CollectionResult:
    """Credit a claimed coin; if the wallet refuses, put the coin back and deny."""
    coin = claimed.coin
    if wallet is not None:
        try:
            wallet.credit(coin.id, claimed.credited_value)
        except Exception:
            logger.exception("Crediting coin %s failed; returning it to the pool", coin.id)
            pool.restore(coin)
            return _deny(DenialReason.CREDIT_FAILED, "Yer wallet could not take this treasure. Try again!", coin)
    logger.info("Collected coin %s for %s", coin.id, format_money(claimed.credited_value))
    return claimed


def attempt_collect(
    snapshot: EngineSnapshot,
    pool: CoinPool,
    find_limit: Any,
    *,
    wallet: Wallet | None = None,
) -> CollectionResult:
    """Run the gated remove-then-credit transaction for the snapshot's target."""
    result = claim_coin(snapshot, pool, find_limit)
    if not isinstance(result, Collected):
        return result
    return credit_or_restore(result, pool, wallet)
