import json

import pytest

import coinhunt.cli as cli


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    # Keep the CLI from reconfiguring global logging inside the test process.
    monkeypatch.setattr(cli, "configure_logging", lambda level=None: None)


@pytest.fixture()
def hunt_files(tmp_path):
    coins = tmp_path / "coins.json"
    coins.write_text(
        json.dumps(
            {
                "coins": [
                    {"id": "c1", "location": {"lat": 0, "lon": 0.00005}, "value": "1.00"},
                    {"id": "c2", "location": {"lat": 0, "lon": 0.0004}, "value": "75.00"},
                ]
            }
        ),
        encoding="utf-8",
    )
    track = tmp_path / "track.json"
    track.write_text(
        json.dumps(
            [
                {"lat": 0, "lon": 0, "heading": 90},
                {"lat": 0, "lon": 0.00001, "heading": 90},
                {"lat": 0, "lon": 0.0004},
            ]
        ),
        encoding="utf-8",
    )
    return coins, track


def test_replay_json_collects_and_reports_balance(hunt_files, capsys):
    coins, track = hunt_files
    rc = cli.main(["replay", "--coins", str(coins), "--track", str(track), "--collect", "--json"])
    assert rc == 0

    out = json.loads(capsys.readouterr().out)
    ticks = out["ticks"]
    assert [t["accepted"] for t in ticks] == [True, True, True]
    assert ticks[0]["collection"] is None
    assert [e["kind"] for e in ticks[0]["events"]][:2] == ["target_set", "zone_changed"]

    assert ticks[1]["collection"]["outcome"] == "collected"
    assert ticks[1]["collection"]["coin_id"] == "c1"

    # c2 is worth more than the default limit.
    assert ticks[2]["collection"]["outcome"] == "denied"
    assert ticks[2]["collection"]["reason"] == "locked"

    assert out["wallet_balance"] == "1.00"
    assert out["remaining_coins"] == 1


def test_replay_text_output(hunt_files, capsys):
    coins, track = hunt_files
    rc = cli.main(["replay", "--coins", str(coins), "--track", str(track), "--find-limit", "100"])
    assert rc == 0
    out = capsys.readouterr().out
    assert "target_set c1" in out
    assert "zone out_of_range -> near" in out
    assert "entered_collection_range c1" in out
    assert "Remaining coins: 2" in out


def test_tiers_marks_current_tier(capsys):
    assert cli.main(["tiers", "--find-limit", "30"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 6
    marked = [line for line in lines if line.startswith("*")]
    assert len(marked) == 1
    assert "Captain" in marked[0]
