"""
Proximity notifications.

Each engine instance owns its listener list (no global event bus). Listeners
subclass `ProximityListener` and override only the callbacks they care about.

`ProximityEvent` is a plain record of one notification; `RecordingListener`
collects them so the CLI, the simulator API and tests can inspect what fired.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from coinhunt.domain.models import Coin, ProximityZone


class EventKind(str, Enum):
    TARGET_SET = "target_set"
    TARGET_CLEARED = "target_cleared"
    TARGET_COLLECTED = "target_collected"
    ZONE_CHANGED = "zone_changed"
    DISTANCE_UPDATED = "distance_updated"
    ENTERED_COLLECTION_RANGE = "entered_collection_range"
    EXITED_COLLECTION_RANGE = "exited_collection_range"
    LOCK_STATE_CHANGED = "lock_state_changed"


@dataclass(frozen=True)
class ProximityEvent:
    kind: EventKind
    coin: Coin | None = None
    old_zone: ProximityZone | None = None
    new_zone: ProximityZone | None = None
    distance_m: float | None = None
    bearing_deg: float | None = None
    is_locked: bool | None = None
    credited_value: Decimal | None = None

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"kind": self.kind.value}
        if self.coin is not None:
            out["coin_id"] = self.coin.id
        if self.old_zone is not None:
            out["old_zone"] = self.old_zone.value
        if self.new_zone is not None:
            out["new_zone"] = self.new_zone.value
        if self.distance_m is not None:
            out["distance_m"] = round(self.distance_m, 3)
        if self.bearing_deg is not None:
            out["bearing_deg"] = round(self.bearing_deg, 2)
        if self.is_locked is not None:
            out["is_locked"] = self.is_locked
        if self.credited_value is not None:
            out["credited_value"] = str(self.credited_value)
        return out


class ProximityListener:
    """No-op base class; override the callbacks you need."""

    def on_target_set(self, coin: Coin) -> None:
        pass

    def on_target_cleared(self) -> None:
        pass

    def on_target_collected(self, coin: Coin, credited_value: Decimal) -> None:
        pass

    def on_zone_changed(self, old: ProximityZone, new: ProximityZone) -> None:
        pass

    def on_distance_updated(self, distance_m: float, bearing_deg: float) -> None:
        pass

    def on_entered_collection_range(self, coin: Coin) -> None:
        pass

    def on_exited_collection_range(self, coin: Coin) -> None:
        pass

    def on_lock_state_changed(self, is_locked: bool) -> None:
        pass


def deliver(listener: ProximityListener, event: ProximityEvent) -> None:
    """Invoke the listener callback matching `event.kind`."""
    kind = event.kind
    if kind is EventKind.TARGET_SET:
        listener.on_target_set(event.coin)
    elif kind is EventKind.TARGET_CLEARED:
        listener.on_target_cleared()
    elif kind is EventKind.TARGET_COLLECTED:
        listener.on_target_collected(event.coin, event.credited_value)
    elif kind is EventKind.ZONE_CHANGED:
        listener.on_zone_changed(event.old_zone, event.new_zone)
    elif kind is EventKind.DISTANCE_UPDATED:
        listener.on_distance_updated(event.distance_m, event.bearing_deg)
    elif kind is EventKind.ENTERED_COLLECTION_RANGE:
        listener.on_entered_collection_range(event.coin)
    elif kind is EventKind.EXITED_COLLECTION_RANGE:
        listener.on_exited_collection_range(event.coin)
    elif kind is EventKind.LOCK_STATE_CHANGED:
        listener.on_lock_state_changed(event.is_locked)
    else:
        raise ValueError(f"unknown event kind: {kind!r}")


@dataclass(eq=False)
class RecordingListener(ProximityListener):
    """Keeps every notification it receives, in order."""

    events: list[ProximityEvent] = field(default_factory=list)

    def on_target_set(self, coin: Coin) -> None:
        self.events.append(ProximityEvent(EventKind.TARGET_SET, coin=coin))

    def on_target_cleared(self) -> None:
        self.events.append(ProximityEvent(EventKind.TARGET_CLEARED))

    def on_target_collected(self, coin: Coin, credited_value: Decimal) -> None:
        self.events.append(
            ProximityEvent(EventKind.TARGET_COLLECTED, coin=coin, credited_value=credited_value)
        )

    def on_zone_changed(self, old: ProximityZone, new: ProximityZone) -> None:
        self.events.append(ProximityEvent(EventKind.ZONE_CHANGED, old_zone=old, new_zone=new))

    def on_distance_updated(self, distance_m: float, bearing_deg: float) -> None:
        self.events.append(
            ProximityEvent(EventKind.DISTANCE_UPDATED, distance_m=distance_m, bearing_deg=bearing_deg)
        )

    def on_entered_collection_range(self, coin: Coin) -> None:
        self.events.append(ProximityEvent(EventKind.ENTERED_COLLECTION_RANGE, coin=coin))

    def on_exited_collection_range(self, coin: Coin) -> None:
        self.events.append(ProximityEvent(EventKind.EXITED_COLLECTION_RANGE, coin=coin))

    def on_lock_state_changed(self, is_locked: bool) -> None:
        self.events.append(ProximityEvent(EventKind.LOCK_STATE_CHANGED, is_locked=is_locked))

    def kinds(self) -> list[EventKind]:
        return [e.kind for e in self.events]

    def of_kind(self, kind: EventKind) -> list[ProximityEvent]:
        return [e for e in self.events if e.kind is kind]

    def drain(self) -> list[ProximityEvent]:
        out = list(self.events)
        self.events.clear()
        return out
