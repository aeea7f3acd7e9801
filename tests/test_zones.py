import pytest

from coinhunt.config.settings import ProximitySettings
from coinhunt.domain.models import ProximityZone
from coinhunt.hunt.zones import classify_zone, raw_zone

SETTINGS = ProximitySettings(collect_distance_m=5, near_distance_m=50, hysteresis_m=1)


def _walk(distances):
    zone = None
    out = []
    for d in distances:
        zone = classify_zone(d, SETTINGS, zone)
        out.append(zone)
    return out


def test_raw_zone_thresholds_are_inclusive():
    assert raw_zone(5, SETTINGS) is ProximityZone.COLLECTIBLE
    assert raw_zone(5.0001, SETTINGS) is ProximityZone.NEAR
    assert raw_zone(50, SETTINGS) is ProximityZone.NEAR
    assert raw_zone(50.1, SETTINGS) is ProximityZone.OUT_OF_RANGE


def test_hysteresis_keeps_collectible_inside_band():
    assert _walk([6, 4.9, 5.3]) == [
        ProximityZone.NEAR,
        ProximityZone.COLLECTIBLE,
        ProximityZone.COLLECTIBLE,
    ]


def test_hysteresis_releases_once_band_is_exceeded():
    assert _walk([4, 5.9, 6.0, 6.01, 5.5, 5.0]) == [
        ProximityZone.COLLECTIBLE,
        ProximityZone.COLLECTIBLE,
        ProximityZone.COLLECTIBLE,
        ProximityZone.NEAR,
        # Re-entering requires the raw threshold again.
        ProximityZone.NEAR,
        ProximityZone.COLLECTIBLE,
    ]


def test_hysteresis_on_outer_boundary():
    assert _walk([49, 50.8, 51.2, 50.5, 49.9]) == [
        ProximityZone.NEAR,
        ProximityZone.NEAR,
        ProximityZone.OUT_OF_RANGE,
        ProximityZone.OUT_OF_RANGE,
        ProximityZone.NEAR,
    ]


def test_jump_from_collectible_straight_out_of_range():
    assert _walk([2, 500]) == [ProximityZone.COLLECTIBLE, ProximityZone.OUT_OF_RANGE]


def test_zero_hysteresis_is_pure_function_of_distance():
    s = ProximitySettings(collect_distance_m=5, near_distance_m=50, hysteresis_m=0)
    zone = classify_zone(4, s)
    assert classify_zone(5.01, s, zone) is ProximityZone.NEAR


def test_settings_reject_inverted_or_negative_thresholds():
    with pytest.raises(ValueError):
        ProximitySettings(collect_distance_m=60, near_distance_m=50)
    with pytest.raises(ValueError):
        ProximitySettings(tracking_radius_m=-1)
    with pytest.raises(ValueError):
        ProximitySettings(hysteresis_m=float("nan"))
