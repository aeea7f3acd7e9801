from __future__ import annotations

from typing import Any, Mapping

from coinhunt.config.settings import ProximitySettings, Settings

"""
Per-session settings overrides (safe subset).

The simulator API can send `proximity` overrides to tune zone thresholds for a
single session. Only the keys in `OVERRIDABLE_PROXIMITY_KEYS` are accepted; the
merged proximity section is re-validated so thresholds stay consistent
(collect <= near, non-negative radii).

The economy section (find limits, tier table) and the index cell size are never
overridable per session.
"""

OVERRIDABLE_PROXIMITY_KEYS = frozenset(
    {
        "collect_distance_m",
        "near_distance_m",
        "hysteresis_m",
        "tracking_radius_m",
        "retarget_margin_m",
    }
)


def _check_proximity_keys(section: Any) -> dict[str, Any]:
    if not isinstance(section, Mapping):
        raise ValueError("settings_overrides key 'proximity' must be a mapping")
    unknown = sorted(k for k in section if k not in OVERRIDABLE_PROXIMITY_KEYS)
    if unknown:
        raise ValueError(f"settings_overrides contains a disallowed key: 'proximity.{unknown[0]}'")
    return dict(section)


def apply_settings_overrides(settings: Settings, overrides: Mapping[str, Any] | None) -> Settings:
    """Return a new validated Settings with the whitelisted overrides applied."""
    if not overrides:
        return settings

    for key in overrides:
        if key != "proximity":
            raise ValueError(f"settings_overrides contains a disallowed key: '{key}'")

    patch = _check_proximity_keys(overrides["proximity"])
    proximity = ProximitySettings.model_validate({**settings.proximity.model_dump(), **patch})
    return settings.model_copy(update={"proximity": proximity})
