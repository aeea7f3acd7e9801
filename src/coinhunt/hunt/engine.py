"""
Proximity & targeting engine.

One engine instance tracks one player against one coin pool. On every sensor tick
the caller invokes `update(position, heading, pool, find_limit)`; the engine:

1. (re)selects the target coin (nearest within the tracking radius, or a pinned one),
2. computes distance and bearing to it,
3. classifies the proximity zone with hysteresis,
4. recomputes the lock state against the find limit,
5. notices targets that disappeared from the pool and re-selects.

State machine: NoTarget <-> Tracking(coin, zone).

Atomicity: inputs are validated before anything is touched (`InputRejected` leaves
the previous state intact). The next state is built in full, committed under the
engine lock, and only then are notifications delivered (outside the lock, so
listeners may query the engine).

Target policy for automatically selected targets: the target is kept while it stays
within `tracking_radius_m + hysteresis_m`, and is only replaced by another coin that
is nearer by more than `retarget_margin_m`. Pinned targets are never replaced by
re-evaluation; they are dropped only when unpinned or removed from the pool.

Collection claims the coin under the engine lock and drops the target right away;
the wallet is called after the lock is released. If the wallet refuses the credit
the coin goes back to the pool and the next tick can select it again.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any

from coinhunt.config.settings import ProximitySettings
from coinhunt.core.errors import InputRejected, InvariantViolation
from coinhunt.core.geo import (
    GeoPoint,
    bearing_deg,
    cardinal_direction,
    format_distance,
    haversine_m,
    is_valid_point,
    normalize_bearing,
    relative_bearing,
)
from coinhunt.domain.models import Coin, Collected, CollectionResult, ProximityZone, to_decimal
from coinhunt.economy.collection import EngineSnapshot, claim_coin, credit_or_restore
from coinhunt.economy.tiers import TierPolicy
from coinhunt.economy.wallet import Wallet
from coinhunt.hunt.events import EventKind, ProximityEvent, ProximityListener, deliver
from coinhunt.hunt.pool import CoinPool
from coinhunt.hunt.zones import classify_zone, describe_zone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickInput:
    """Validated tick input."""

    position: GeoPoint
    heading: float | None
    find_limit: Decimal


def _validate_find_limit(find_limit: Any) -> Decimal:
    try:
        limit = to_decimal(find_limit)
    except ValueError as e:
        raise InputRejected(f"invalid find limit: {find_limit!r}") from e
    if limit < 0:
        raise InputRejected(f"find limit must be >= 0, got {limit}")
    return limit


def validate_tick(position: Any, heading: Any, find_limit: Any) -> TickInput:
    """Validate and normalize one tick; raises `InputRejected` on malformed input."""
    try:
        point = GeoPoint(lat=float(position.lat), lon=float(position.lon))
    except (AttributeError, TypeError, ValueError) as e:
        raise InputRejected(f"invalid position: {position!r}") from e
    if not is_valid_point(point):
        raise InputRejected(f"position out of range or not finite: ({point.lat}, {point.lon})")

    norm_heading: float | None = None
    if heading is not None:
        try:
            h = float(heading)
        except (TypeError, ValueError) as e:
            raise InputRejected(f"invalid heading: {heading!r}") from e
        if not math.isfinite(h):
            raise InputRejected(f"heading must be finite, got {h}")
        norm_heading = normalize_bearing(h)

    return TickInput(position=point, heading=norm_heading, find_limit=_validate_find_limit(find_limit))


class ProximityEngine:
    def __init__(self, settings: ProximitySettings | None = None, *, policy: TierPolicy | None = None):
        self._settings = settings or ProximitySettings()
        self._policy = policy or TierPolicy()
        self._lock = threading.RLock()
        self._listeners: list[ProximityListener] = []
        self._state = EngineSnapshot()
        self._pin_request: str | None = None

    @property
    def settings(self) -> ProximitySettings:
        return self._settings

    # --- listeners ---

    def add_listener(self, listener: ProximityListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: ProximityListener) -> bool:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                return False
            return True

    def _dispatch(self, events: list[ProximityEvent]) -> None:
        if not events:
            return
        with self._lock:
            listeners = list(self._listeners)
        for event in events:
            for listener in listeners:
                try:
                    deliver(listener, event)
                except Exception:
                    # A broken listener must not break the tick or starve other listeners.
                    logger.exception("Proximity listener %r failed on %s", listener, event.kind.value)

    # --- queries ---

    def snapshot(self) -> EngineSnapshot:
        with self._lock:
            return self._state

    @property
    def has_target(self) -> bool:
        return self.snapshot().has_target

    @property
    def current_target(self) -> Coin | None:
        return self.snapshot().target

    @property
    def current_zone(self) -> ProximityZone:
        return self.snapshot().zone

    @property
    def current_distance(self) -> float | None:
        return self.snapshot().distance_m

    @property
    def current_bearing(self) -> float | None:
        return self.snapshot().bearing_deg

    @property
    def relative_bearing(self) -> float | None:
        return self.snapshot().relative_bearing_deg

    @property
    def is_locked(self) -> bool:
        return self.snapshot().is_locked

    @property
    def is_pinned(self) -> bool:
        return self.snapshot().pinned

    @property
    def coins_in_range(self) -> int:
        return self.snapshot().coins_in_range

    def proximity_description(self) -> str:
        return describe_zone(self.current_zone)

    def direction_text(self) -> str:
        """Distance and compass direction to the target, e.g. `"42 m NE"`."""
        snap = self.snapshot()
        if snap.distance_m is None or snap.bearing_deg is None:
            return "No coins nearby"
        return f"{format_distance(snap.distance_m)} {cardinal_direction(snap.bearing_deg)}"

    # --- commands ---

    def pin_target(self, coin_id: str) -> None:
        """Ask the next `update` to track `coin_id` regardless of distance."""
        with self._lock:
            self._pin_request = coin_id

    def unpin_target(self) -> None:
        """Return to automatic selection; the current target is re-evaluated next tick."""
        with self._lock:
            self._pin_request = None
            if self._state.pinned:
                self._state = replace(self._state, pinned=False)

    def reset(self) -> None:
        """Drop the target (e.g., at session end), emitting the usual clear notifications."""
        with self._lock:
            prev = self._state
            self._state = EngineSnapshot()
            self._pin_request = None
            events = self._transition_events(prev, self._state, target_cleared=True)
        self._dispatch(events)

    def update(self, position: Any, heading: Any, pool: CoinPool, find_limit: Any) -> EngineSnapshot:
        """Process one sensor tick; returns the committed snapshot.

        Raises `InputRejected` for malformed input, in which case nothing changes.
        """
        tick = validate_tick(position, heading, find_limit)
        s = self._settings

        with self._lock:
            prev = self._state
            target = prev.target
            pinned = prev.pinned

            if self._pin_request is not None:
                requested = pool.get(self._pin_request)
                if requested is None:
                    logger.warning("Cannot pin coin %s: not in pool", self._pin_request)
                else:
                    target, pinned = requested, True

            if target is not None:
                try:
                    self._check_target_present(target, pool)
                except InvariantViolation as exc:
                    logger.error("%s; forcing target re-selection", exc)
                    target, pinned = None, False
                else:
                    # Use the pool's copy (single source of truth for the coin record).
                    current = pool.get(target.id)
                    if current is None:
                        target, pinned = None, False
                    else:
                        target = current

            if target is not None and not pinned:
                target = self._reevaluate_auto_target(target, tick.position, pool)

            if target is None:
                pinned = False
                target = pool.nearest(tick.position, s.tracking_radius_m)
                if target is not None:
                    logger.debug("Selected target %s", target.id)

            in_range = len(pool.within(tick.position, s.collect_distance_m))
            if target is None:
                new_state = EngineSnapshot(coins_in_range=in_range)
            else:
                target_point = target.point
                d = haversine_m(tick.position, target_point)
                b = bearing_deg(tick.position, target_point)
                rel = relative_bearing(b, tick.heading) if tick.heading is not None else None
                same_target = prev.target is not None and prev.target.id == target.id
                zone = classify_zone(d, s, prev.zone if same_target else None)
                new_state = EngineSnapshot(
                    target=target,
                    zone=zone,
                    distance_m=d,
                    bearing_deg=b,
                    relative_bearing_deg=rel,
                    is_locked=not self._policy.is_collectible(target.value, tick.find_limit),
                    pinned=pinned,
                    coins_in_range=in_range,
                )

            events = self._transition_events(prev, new_state, target_cleared=True)
            self._state = new_state
            if self._pin_request is not None:
                self._pin_request = None

        self._dispatch(events)
        return new_state

    def attempt_collect(
        self,
        pool: CoinPool,
        find_limit: Any,
        *,
        wallet: Wallet | None = None,
    ) -> CollectionResult:
        """Collect the current target if it is in range and unlocked (at most once per coin)."""
        limit = _validate_find_limit(find_limit)

        with self._lock:
            prev = self._state
            claim = claim_coin(prev, pool, limit)
            if isinstance(claim, Collected):
                # The coin has left the pool; ticks must not keep chasing it while the wallet is called.
                cleared = EngineSnapshot(coins_in_range=max(prev.coins_in_range - 1, 0))
                self._state = cleared
        if not isinstance(claim, Collected):
            logger.info("Collection denied: %s", claim.reason.value)
            return claim

        result = credit_or_restore(claim, pool, wallet)
        events: list[ProximityEvent] = []
        if isinstance(result, Collected):
            events.append(
                ProximityEvent(EventKind.TARGET_COLLECTED, coin=result.coin, credited_value=result.credited_value)
            )
            events.extend(self._transition_events(prev, cleared, target_cleared=False))
        else:
            logger.warning("Collection of %s rolled back: %s", claim.coin.id, result.reason.value)
            events.extend(self._transition_events(prev, cleared, target_cleared=True))
        self._dispatch(events)
        return result

    # --- internals ---

    def _check_target_present(self, target: Coin, pool: CoinPool) -> None:
        if target.id in pool:
            return
        if pool.was_removed(target.id):
            logger.info("Target %s left the pool (collected elsewhere); re-selecting", target.id)
            return
        raise InvariantViolation(f"target {target.id} is missing from the pool but was never removed")

    def _reevaluate_auto_target(self, target: Coin, position: GeoPoint, pool: CoinPool) -> Coin | None:
        s = self._settings
        d = haversine_m(position, target.point)
        if d > s.tracking_radius_m + s.hysteresis_m:
            logger.debug("Target %s drifted out of tracking radius (%.1f m)", target.id, d)
            return None
        hit = pool.nearest_with_distance(position, s.tracking_radius_m)
        if hit is not None:
            candidate, cd = hit
            if candidate.id != target.id and cd < d - s.retarget_margin_m:
                logger.debug("Retargeting %s -> %s (%.1f m < %.1f m)", target.id, candidate.id, cd, d)
                return candidate
        return target

    @staticmethod
    def _transition_events(
        prev: EngineSnapshot,
        new: EngineSnapshot,
        *,
        target_cleared: bool,
    ) -> list[ProximityEvent]:
        """Notifications for a committed transition, in delivery order."""
        events: list[ProximityEvent] = []
        prev_id = prev.target.id if prev.target is not None else None
        new_id = new.target.id if new.target is not None else None
        target_changed = prev_id != new_id
        was_collectible = prev.zone is ProximityZone.COLLECTIBLE
        is_collectible = new.zone is ProximityZone.COLLECTIBLE

        if target_changed:
            if prev.target is not None and was_collectible:
                events.append(ProximityEvent(EventKind.EXITED_COLLECTION_RANGE, coin=prev.target))
            if new.target is not None:
                logger.info("Target set: %s", new_id)
                events.append(ProximityEvent(EventKind.TARGET_SET, coin=new.target))
            elif target_cleared:
                logger.info("Target cleared (was %s)", prev_id)
                events.append(ProximityEvent(EventKind.TARGET_CLEARED))

        if prev.zone is not new.zone:
            logger.debug("Zone changed: %s -> %s", prev.zone.value, new.zone.value)
            events.append(ProximityEvent(EventKind.ZONE_CHANGED, old_zone=prev.zone, new_zone=new.zone))

        if new.target is not None and is_collectible and (target_changed or not was_collectible):
            events.append(ProximityEvent(EventKind.ENTERED_COLLECTION_RANGE, coin=new.target))
        elif not target_changed and prev.target is not None and was_collectible and not is_collectible:
            events.append(ProximityEvent(EventKind.EXITED_COLLECTION_RANGE, coin=prev.target))

        if prev.is_locked != new.is_locked:
            events.append(ProximityEvent(EventKind.LOCK_STATE_CHANGED, is_locked=new.is_locked))

        if new.target is not None and new.distance_m is not None:
            events.append(
                ProximityEvent(EventKind.DISTANCE_UPDATED, distance_m=new.distance_m, bearing_deg=new.bearing_deg)
            )
        return events
