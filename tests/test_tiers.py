from decimal import Decimal

import pytest

from coinhunt.config.settings import EconomySettings
from coinhunt.economy.tiers import Tier, TierPolicy, format_money, is_collectible


def test_tier_for_uses_highest_matching_threshold():
    policy = TierPolicy()
    assert policy.tier_for("0.50") is Tier.CABIN_BOY
    assert policy.tier_for("1.00") is Tier.CABIN_BOY
    assert policy.tier_for("4.99") is Tier.CABIN_BOY
    assert policy.tier_for("4.999") is Tier.CABIN_BOY
    assert policy.tier_for("5.00") is Tier.DECK_HAND
    assert policy.tier_for("10") is Tier.TREASURE_HUNTER
    assert policy.tier_for("25") is Tier.CAPTAIN
    assert policy.tier_for("50") is Tier.PIRATE_LEGEND
    assert policy.tier_for("100") is Tier.KING_OF_PIRATES
    assert policy.tier_for("100000") is Tier.KING_OF_PIRATES


def test_is_collectible_boundary_is_inclusive_and_exact():
    assert is_collectible(Decimal("10.00"), Decimal("10.00"))
    assert not is_collectible(Decimal("10.01"), Decimal("10.00"))
    assert not is_collectible("10.001", "10.00")
    assert is_collectible(0, 0)


def test_limit_and_name_lookups_are_bijective():
    policy = TierPolicy()
    names = [policy.name_for(t) for t in Tier]
    assert len(set(names)) == len(Tier)
    for tier in Tier:
        assert policy.tier_named(policy.name_for(tier)) is tier
        assert policy.tier_for(policy.limit_for(tier)) is tier
    assert policy.name_for(Tier.KING_OF_PIRATES) == "King of Pirates"
    assert policy.limit_for(Tier.CAPTAIN) == Decimal("25.00")
    with pytest.raises(ValueError):
        policy.tier_named("Admiral")


def test_next_tier_and_progress():
    policy = TierPolicy()
    assert policy.next_tier("1.00") is Tier.DECK_HAND
    assert policy.progress_to_next_tier("3.00") == pytest.approx(0.5)
    assert policy.next_tier("100") is None
    assert policy.progress_to_next_tier("100") == 1.0
    assert policy.progress_to_next_tier("0.50") == 0.0


def test_coin_visual_tiers_and_messages():
    policy = TierPolicy()
    assert policy.coin_tier_for("0.25") == "Bronze"
    assert policy.coin_tier_for("1.00") == "Silver"
    assert policy.coin_tier_for("24.99") == "Gold"
    assert policy.coin_tier_for("250") == "Diamond"
    assert format_money("1234.5") == "$1,234.50"
    assert "$10.01" in policy.over_limit_message("10.01", "10")
    assert policy.unlock_hint("5") == "Hide $5.00 to unlock!"
    assert "Deck Hand" in policy.tier_up_message(Tier.DECK_HAND)


def test_economy_settings_reject_unordered_tiers():
    tiers = [
        {"name": f"T{i}", "threshold": t}
        for i, t in enumerate(["1", "5", "5", "25", "50", "100"])
    ]
    with pytest.raises(ValueError, match="ascending"):
        EconomySettings.model_validate({"tiers": tiers})
    with pytest.raises(ValueError, match="six"):
        EconomySettings.model_validate({"tiers": tiers[:3]})
