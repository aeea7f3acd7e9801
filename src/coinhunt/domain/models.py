"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- session inputs (`Coin`, `LocationFix`)
- collection outcomes (`Collected`, `Denied`)
- API/CLI payloads built on top of them

Keeping these models in one place helps:
- validation (reject bad coin files and API payloads early),
- exact money handling (values are `Decimal`, never float),
- consistent JSON output across CLI/API.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from coinhunt.core.geo import GeoPoint as CoreGeoPoint

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Convert a number/string to a finite Decimal without rounding (floats go through `str`)."""
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, float):
        d = Decimal(str(value))
    else:
        try:
            d = Decimal(value)
        except (InvalidOperation, TypeError) as e:
            raise ValueError(f"invalid money value: {value!r}") from e
    if not d.is_finite():
        raise ValueError("money value must be finite")
    return d


def to_money(value: Any) -> Decimal:
    """Convert a number/string to a cent-quantized Decimal."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class GeoPoint(BaseModel):
    """A geographic point in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    lon: float = Field(..., ge=-180, le=180, allow_inf_nan=False)

    def to_core(self) -> CoreGeoPoint:
        return CoreGeoPoint(lat=self.lat, lon=self.lon)


class Coin(BaseModel):
    """One placed treasure item. Immutable; removed from its pool exactly once."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    location: GeoPoint
    value: Decimal = Field(..., ge=0)

    label: str | None = None
    hidden_by: str | None = None

    @field_validator("id")
    @classmethod
    def _strip_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("coin id must not be blank")
        return v

    @field_validator("value", mode="before")
    @classmethod
    def _quantize_value(cls, v: Any) -> Decimal:
        return to_money(v)

    @property
    def point(self) -> CoreGeoPoint:
        return self.location.to_core()


class ProximityZone(str, Enum):
    """Discrete proximity classification, loosest first."""

    OUT_OF_RANGE = "out_of_range"
    NEAR = "near"
    COLLECTIBLE = "collectible"

    @property
    def rank(self) -> int:
        return _ZONE_RANK[self]

    def is_tighter_than(self, other: "ProximityZone") -> bool:
        return self.rank > other.rank


_ZONE_RANK = {
    ProximityZone.OUT_OF_RANGE: 0,
    ProximityZone.NEAR: 1,
    ProximityZone.COLLECTIBLE: 2,
}


class DenialReason(str, Enum):
    NOT_TARGETED = "not_targeted"
    OUT_OF_RANGE = "out_of_range"
    LOCKED = "locked"
    ALREADY_COLLECTED = "already_collected"
    # The wallet refused the credit; the coin was put back in the pool.
    CREDIT_FAILED = "credit_failed"


class Collected(BaseModel):
    """Successful collection: the coin left the pool and its value was credited."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["collected"] = "collected"
    coin: Coin
    credited_value: Decimal
    message: str = ""

    @property
    def success(self) -> bool:
        return True


class Denied(BaseModel):
    """Collection refused. Not a fault; `message` is safe to show to the player."""

    model_config = ConfigDict(frozen=True)

    outcome: Literal["denied"] = "denied"
    reason: DenialReason
    message: str = ""
    coin_id: str | None = None

    @property
    def success(self) -> bool:
        return False


CollectionResult = Union[Collected, Denied]


class LocationFix(BaseModel):
    """One position/heading sample pushed by the location collaborator."""

    lat: float
    lon: float
    heading: float | None = None
    t: float | None = Field(default=None, description="Optional timestamp (seconds), informational only.")
