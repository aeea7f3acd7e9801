import logging
import math

import pytest

from coinhunt.config.settings import ProximitySettings
from coinhunt.core.errors import InputRejected
from coinhunt.core.geo import GeoPoint, offset_point
from coinhunt.domain.models import Coin, ProximityZone
from coinhunt.hunt.engine import ProximityEngine
from coinhunt.hunt.events import EventKind, ProximityListener, RecordingListener
from coinhunt.hunt.pool import CoinPool

SETTINGS = ProximitySettings(
    collect_distance_m=5,
    near_distance_m=50,
    hysteresis_m=1,
    tracking_radius_m=100,
    retarget_margin_m=2,
)


def _engine(settings: ProximitySettings = SETTINGS) -> tuple[ProximityEngine, RecordingListener]:
    engine = ProximityEngine(settings)
    recorder = RecordingListener()
    engine.add_listener(recorder)
    return engine, recorder


def _coin(coin_id: str, lat: float, lon: float, value: str = "1.00") -> Coin:
    return Coin(id=coin_id, location={"lat": lat, "lon": lon}, value=value)


def test_walk_up_scenario_enters_collection_range_once():
    engine, rec = _engine()
    pool = CoinPool([_coin("c1", 0, 0.00005)])

    snap = engine.update(GeoPoint(0, 0), None, pool, "1.00")
    assert snap.zone is ProximityZone.NEAR
    assert snap.distance_m == pytest.approx(5.56, abs=0.01)
    assert rec.kinds() == [EventKind.TARGET_SET, EventKind.ZONE_CHANGED, EventKind.DISTANCE_UPDATED]
    zone_event = rec.of_kind(EventKind.ZONE_CHANGED)[0]
    assert (zone_event.old_zone, zone_event.new_zone) == (ProximityZone.OUT_OF_RANGE, ProximityZone.NEAR)
    rec.drain()

    # Player steps ~1.1 m east: the coin is now ~4.4 m away.
    snap = engine.update(GeoPoint(0, 0.00001), None, pool, "1.00")
    assert snap.distance_m == pytest.approx(4.45, abs=0.01)
    assert engine.current_zone is ProximityZone.COLLECTIBLE
    assert rec.kinds() == [
        EventKind.ZONE_CHANGED,
        EventKind.ENTERED_COLLECTION_RANGE,
        EventKind.DISTANCE_UPDATED,
    ]
    rec.drain()

    engine.update(GeoPoint(0, 0.000011), None, pool, "1.00")
    assert rec.kinds() == [EventKind.DISTANCE_UPDATED]


def test_distance_updates_fire_every_tick_without_zone_change():
    engine, rec = _engine()
    origin = GeoPoint(25.0, 121.5)
    pool = CoinPool([Coin(id="c1", location={"lat": 25.0003, "lon": 121.5}, value="1")])

    for _ in range(3):
        engine.update(origin, 90.0, pool, "1")
    assert len(rec.of_kind(EventKind.DISTANCE_UPDATED)) == 3
    assert len(rec.of_kind(EventKind.ZONE_CHANGED)) == 1
    assert len(rec.of_kind(EventKind.TARGET_SET)) == 1
    assert engine.relative_bearing == pytest.approx(-90.0, abs=0.01)


def test_hysteresis_sequence_through_engine():
    engine, _ = _engine()
    origin = GeoPoint(10.0, 20.0)
    pool = CoinPool([Coin(id="c1", location={"lat": 10.0, "lon": 20.0}, value="1")])
    zones = []
    for meters in [6, 4.9, 5.3, 6.2]:
        player = offset_point(origin, -meters, 0)
        engine.update(player, None, pool, "1")
        zones.append(engine.current_zone)
    assert zones[:3] == [ProximityZone.NEAR, ProximityZone.COLLECTIBLE, ProximityZone.COLLECTIBLE]
    assert zones[3] is ProximityZone.NEAR


def test_empty_pool_emits_nothing():
    engine, rec = _engine()
    snap = engine.update(GeoPoint(0, 0), None, CoinPool(), "1")
    assert not snap.has_target
    assert engine.current_zone is ProximityZone.OUT_OF_RANGE
    assert engine.current_distance is None
    assert rec.events == []


def test_external_removal_clears_target_on_next_tick():
    engine, rec = _engine()
    pool = CoinPool([_coin("c1", 0, 0.00003)])
    engine.update(GeoPoint(0, 0), None, pool, "1")
    assert engine.current_zone is ProximityZone.COLLECTIBLE
    rec.drain()

    assert pool.remove("c1")
    snap = engine.update(GeoPoint(0, 0), None, pool, "1")

    assert not snap.has_target
    assert rec.kinds() == [
        EventKind.EXITED_COLLECTION_RANGE,
        EventKind.TARGET_CLEARED,
        EventKind.ZONE_CHANGED,
    ]

    # A second empty tick does not repeat the clear notification.
    rec.drain()
    engine.update(GeoPoint(0, 0), None, pool, "1")
    assert rec.events == []


def test_external_removal_falls_back_to_next_nearest():
    engine, rec = _engine()
    pool = CoinPool([_coin("c1", 0, 0.0001), _coin("c2", 0, 0.0003)])
    engine.update(GeoPoint(0, 0), None, pool, "1")
    assert engine.current_target.id == "c1"
    rec.drain()

    pool.remove("c1")
    engine.update(GeoPoint(0, 0), None, pool, "1")
    assert engine.current_target.id == "c2"
    assert rec.of_kind(EventKind.TARGET_SET)[0].coin.id == "c2"
    assert rec.of_kind(EventKind.TARGET_CLEARED) == []


def test_target_vanishing_without_removal_is_logged_and_healed(caplog):
    engine, rec = _engine()
    pool = CoinPool([_coin("c1", 0, 0.0001)])
    engine.update(GeoPoint(0, 0), None, pool, "1")

    pool.clear()
    with caplog.at_level(logging.ERROR, logger="coinhunt.hunt.engine"):
        snap = engine.update(GeoPoint(0, 0), None, pool, "1")

    assert not snap.has_target
    assert any("never removed" in r.getMessage() for r in caplog.records)
    assert EventKind.TARGET_CLEARED in rec.kinds()


@pytest.mark.parametrize(
    "position, heading, find_limit",
    [
        (GeoPoint(float("nan"), 0), None, "1"),
        (GeoPoint(0, float("inf")), None, "1"),
        (GeoPoint(91, 0), None, "1"),
        (GeoPoint(0, 0), float("nan"), "1"),
        (GeoPoint(0, 0), None, "-1"),
        (GeoPoint(0, 0), None, "lots"),
        (None, None, "1"),
    ],
)
def test_malformed_tick_is_rejected_and_state_preserved(position, heading, find_limit):
    engine, rec = _engine()
    pool = CoinPool([_coin("c1", 0, 0.0001)])
    before = engine.update(GeoPoint(0, 0), None, pool, "1")
    rec.drain()

    with pytest.raises(InputRejected):
        engine.update(position, heading, pool, find_limit)

    assert engine.snapshot() == before
    assert rec.events == []


def test_heading_is_normalized_and_optional():
    engine, _ = _engine()
    pool = CoinPool([_coin("c1", 0.0001, 0)])
    engine.update(GeoPoint(0, 0), None, pool, "1")
    assert engine.relative_bearing is None
    engine.update(GeoPoint(0, 0), 370.0, pool, "1")
    assert engine.relative_bearing == pytest.approx(-10.0)


def test_lock_state_notifies_only_on_change():
    engine, rec = _engine()
    pool = CoinPool([_coin("c1", 0, 0.0001, value="10.01")])

    engine.update(GeoPoint(0, 0), None, pool, "10.00")
    engine.update(GeoPoint(0, 0), None, pool, "10.00")
    locks = rec.of_kind(EventKind.LOCK_STATE_CHANGED)
    assert [e.is_locked for e in locks] == [True]
    assert engine.is_locked

    engine.update(GeoPoint(0, 0), None, pool, "25.00")
    engine.update(GeoPoint(0, 0), None, pool, "25.00")
    # Limit drops again mid-approach: the target re-locks.
    engine.update(GeoPoint(0, 0), None, pool, "5.00")
    locks = rec.of_kind(EventKind.LOCK_STATE_CHANGED)
    assert [e.is_locked for e in locks] == [True, False, True]


def test_auto_target_switches_only_when_clearly_nearer():
    engine, rec = _engine()
    origin = GeoPoint(0, 0)
    a = Coin(id="a", location={"lat": 0.0002, "lon": 0}, value="1")  # ~22 m north
    b = Coin(id="b", location={"lat": -0.00021, "lon": 0}, value="1")  # ~23 m south
    pool = CoinPool([a, b])

    engine.update(origin, None, pool, "1")
    assert engine.current_target.id == "a"

    # Step 1 m south: b is now ~1 m nearer, inside the retarget margin.
    engine.update(offset_point(origin, -1, 0), None, pool, "1")
    assert engine.current_target.id == "a"

    # Step 5 m south: b is clearly nearer.
    engine.update(offset_point(origin, -5, 0), None, pool, "1")
    assert engine.current_target.id == "b"
    assert [e.coin.id for e in rec.of_kind(EventKind.TARGET_SET)] == ["a", "b"]


def test_auto_target_dropped_beyond_tracking_radius():
    engine, rec = _engine()
    pool = CoinPool([_coin("c1", 0, 0)])
    engine.update(offset_point(GeoPoint(0, 0), 0, 99), None, pool, "1")
    assert engine.has_target
    engine.update(offset_point(GeoPoint(0, 0), 0, 100.5), None, pool, "1")
    assert engine.has_target
    engine.update(offset_point(GeoPoint(0, 0), 0, 102), None, pool, "1")
    assert not engine.has_target
    assert rec.kinds().count(EventKind.TARGET_CLEARED) == 1


def test_pinned_target_ignores_distance_until_unpinned():
    engine, rec = _engine()
    near = _coin("near", 0, 0.0001)
    far = _coin("far", 0.01, 0)  # ~1.1 km, outside the tracking radius
    pool = CoinPool([near, far])

    engine.update(GeoPoint(0, 0), None, pool, "1")
    assert engine.current_target.id == "near"

    engine.pin_target("far")
    snap = engine.update(GeoPoint(0, 0), None, pool, "1")
    assert snap.target.id == "far"
    assert snap.pinned
    assert snap.zone is ProximityZone.OUT_OF_RANGE
    assert math.isfinite(snap.distance_m)

    engine.update(GeoPoint(0, 0), None, pool, "1")
    assert engine.current_target.id == "far"

    engine.unpin_target()
    engine.update(GeoPoint(0, 0), None, pool, "1")
    assert engine.current_target.id == "near"
    assert [e.coin.id for e in rec.of_kind(EventKind.TARGET_SET)] == ["near", "far", "near"]


def test_pin_of_unknown_coin_is_ignored(caplog):
    engine, _ = _engine()
    pool = CoinPool([_coin("c1", 0, 0.0001)])
    engine.pin_target("ghost")
    with caplog.at_level(logging.WARNING, logger="coinhunt.hunt.engine"):
        engine.update(GeoPoint(0, 0), None, pool, "1")
    assert engine.current_target.id == "c1"
    assert not engine.is_pinned


def test_failing_listener_does_not_break_tick_or_other_listeners(caplog):
    class Broken(ProximityListener):
        def on_target_set(self, coin):
            raise RuntimeError("boom")

    engine = ProximityEngine(SETTINGS)
    rec = RecordingListener()
    engine.add_listener(Broken())
    engine.add_listener(rec)
    pool = CoinPool([_coin("c1", 0, 0.0001)])

    with caplog.at_level(logging.ERROR, logger="coinhunt.hunt.engine"):
        engine.update(GeoPoint(0, 0), None, pool, "1")

    assert engine.has_target
    assert EventKind.TARGET_SET in rec.kinds()
    assert any("listener" in r.getMessage() for r in caplog.records)


def test_remove_listener_stops_notifications():
    engine, rec = _engine()
    assert engine.remove_listener(rec)
    assert not engine.remove_listener(rec)
    engine.update(GeoPoint(0, 0), None, CoinPool([_coin("c1", 0, 0.0001)]), "1")
    assert rec.events == []


def test_reset_clears_target_with_notifications():
    engine, rec = _engine()
    pool = CoinPool([_coin("c1", 0, 0.00002, value="5")])
    engine.update(GeoPoint(0, 0), None, pool, "1")
    rec.drain()

    engine.reset()
    assert not engine.has_target
    assert rec.kinds() == [
        EventKind.EXITED_COLLECTION_RANGE,
        EventKind.TARGET_CLEARED,
        EventKind.ZONE_CHANGED,
        EventKind.LOCK_STATE_CHANGED,
    ]


def test_coins_in_range_and_player_hints():
    engine, _ = _engine()
    pool = CoinPool([_coin("a", 0, 0.00002), _coin("b", 0, -0.00003), _coin("far", 0, 0.0003)])
    assert engine.direction_text() == "No coins nearby"
    assert engine.proximity_description() == "Too far away"

    engine.update(GeoPoint(0, 0), None, pool, "1")

    assert engine.coins_in_range == 2
    assert engine.current_target.id == "a"
    assert engine.proximity_description() == "In range! Tap to collect!"
    assert engine.direction_text() == "2 m E"

    engine.update(GeoPoint(0, 0.0002), None, pool, "1")
    assert engine.coins_in_range == 0
    assert engine.proximity_description() == "Almost there!"
