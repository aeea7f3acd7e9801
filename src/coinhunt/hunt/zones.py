"""
Zone classification with hysteresis.

Raw classification is a pure function of distance:
- COLLECTIBLE if distance <= collect_distance_m
- NEAR        if distance <= near_distance_m
- OUT_OF_RANGE otherwise

Hysteresis keeps GPS jitter at a boundary from flapping the zone. Entering a
tighter zone requires crossing its raw threshold; leaving a zone the player is
already in (or inside of) requires exceeding threshold + hysteresis_m.

Example (collect=5, h=1): 6 -> NEAR, 4.9 -> COLLECTIBLE, 5.3 -> COLLECTIBLE,
6.2 -> NEAR.
"""

from __future__ import annotations

from coinhunt.config.settings import ProximitySettings
from coinhunt.domain.models import ProximityZone


def raw_zone(distance_m: float, settings: ProximitySettings) -> ProximityZone:
    if distance_m <= settings.collect_distance_m:
        return ProximityZone.COLLECTIBLE
    if distance_m <= settings.near_distance_m:
        return ProximityZone.NEAR
    return ProximityZone.OUT_OF_RANGE


def classify_zone(
    distance_m: float,
    settings: ProximitySettings,
    previous: ProximityZone | None = None,
) -> ProximityZone:
    """Classify `distance_m`, keeping `previous` sticky inside the hysteresis band."""
    if previous is None:
        return raw_zone(distance_m, settings)

    h = settings.hysteresis_m
    for zone, threshold in (
        (ProximityZone.COLLECTIBLE, settings.collect_distance_m),
        (ProximityZone.NEAR, settings.near_distance_m),
    ):
        # The band only widens zones the player currently occupies (or is inside of).
        limit = threshold + h if previous.rank >= zone.rank else threshold
        if distance_m <= limit:
            return zone
    return ProximityZone.OUT_OF_RANGE


_ZONE_DESCRIPTIONS = {
    ProximityZone.COLLECTIBLE: "In range! Tap to collect!",
    ProximityZone.NEAR: "Almost there!",
    ProximityZone.OUT_OF_RANGE: "Too far away",
}


def describe_zone(zone: ProximityZone) -> str:
    """Short player-facing hint for a zone."""
    return _ZONE_DESCRIPTIONS[zone]
