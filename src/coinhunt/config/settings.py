# src/coinhunt/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/coinhunt/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `COINHUNT_LOG_LEVEL`, `COINHUNT_DEFAULT_FIND_LIMIT`)
- an external YAML file via `COINHUNT_CONFIG_PATH`

Design rule:
- Tuning knobs (zone thresholds, hysteresis, tier table) live in YAML, not hard-coded
  in the engine.
"""

from __future__ import annotations

import os
from decimal import Decimal
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any
from coinhunt.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `coinhunt.config`."""
    text = resources.files("coinhunt.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "CoinHunt"
    log_level: str = "INFO"


class ProximitySettings(BaseModel):
    """Zone thresholds and target-tracking knobs for one proximity engine.

    The zone-flap guarantee depends on these values, so they are validated here
    instead of being trusted at tick time.
    """

    model_config = ConfigDict(frozen=True)

    collect_distance_m: float = Field(5.0, ge=0, allow_inf_nan=False)
    near_distance_m: float = Field(50.0, ge=0, allow_inf_nan=False)
    hysteresis_m: float = Field(1.0, ge=0, allow_inf_nan=False)
    tracking_radius_m: float = Field(100.0, ge=0, allow_inf_nan=False)
    retarget_margin_m: float = Field(2.0, ge=0, allow_inf_nan=False)
    index_cell_size_m: float = Field(250.0, gt=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def _validate_order(self) -> "ProximitySettings":
        if self.collect_distance_m > self.near_distance_m:
            raise ValueError("proximity.collect_distance_m must be <= proximity.near_distance_m")
        return self


class TierDefinition(BaseModel):
    name: str = Field(..., min_length=1)
    threshold: Decimal = Field(..., gt=0)


class CoinTierDefinition(BaseModel):
    name: str = Field(..., min_length=1)
    min_value: Decimal = Field(..., ge=0)


def _default_tiers() -> list[TierDefinition]:
    return [
        TierDefinition(name="Cabin Boy", threshold=Decimal("1.00")),
        TierDefinition(name="Deck Hand", threshold=Decimal("5.00")),
        TierDefinition(name="Treasure Hunter", threshold=Decimal("10.00")),
        TierDefinition(name="Captain", threshold=Decimal("25.00")),
        TierDefinition(name="Pirate Legend", threshold=Decimal("50.00")),
        TierDefinition(name="King of Pirates", threshold=Decimal("100.00")),
    ]


def _default_coin_tiers() -> list[CoinTierDefinition]:
    return [
        CoinTierDefinition(name="Bronze", min_value=Decimal("0.00")),
        CoinTierDefinition(name="Silver", min_value=Decimal("1.00")),
        CoinTierDefinition(name="Gold", min_value=Decimal("5.00")),
        CoinTierDefinition(name="Platinum", min_value=Decimal("25.00")),
        CoinTierDefinition(name="Diamond", min_value=Decimal("100.00")),
    ]


class EconomySettings(BaseModel):
    default_find_limit: Decimal = Field(Decimal("1.00"), ge=0)
    tiers: list[TierDefinition] = Field(default_factory=_default_tiers)
    coin_tiers: list[CoinTierDefinition] = Field(default_factory=_default_coin_tiers)

    @field_validator("tiers")
    @classmethod
    def _validate_tiers(cls, tiers: list[TierDefinition]) -> list[TierDefinition]:
        if len(tiers) != 6:
            raise ValueError("economy.tiers must define exactly six tiers")
        thresholds = [t.threshold for t in tiers]
        if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
            raise ValueError("economy.tiers thresholds must be strictly ascending")
        names = [t.name for t in tiers]
        if len(set(names)) != len(names):
            raise ValueError("economy.tiers names must be unique")
        return tiers

    @field_validator("coin_tiers")
    @classmethod
    def _validate_coin_tiers(cls, tiers: list[CoinTierDefinition]) -> list[CoinTierDefinition]:
        if not tiers:
            raise ValueError("economy.coin_tiers must not be empty")
        mins = [t.min_value for t in tiers]
        if any(b <= a for a, b in zip(mins, mins[1:])):
            raise ValueError("economy.coin_tiers min_value must be strictly ascending")
        return tiers


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    proximity: ProximitySettings = Field(default_factory=ProximitySettings)
    economy: EconomySettings = Field(default_factory=EconomySettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("COINHUNT_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    find_limit = os.getenv("COINHUNT_DEFAULT_FIND_LIMIT")
    if find_limit:
        data.setdefault("economy", {})["default_find_limit"] = find_limit.strip()

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("COINHUNT_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
