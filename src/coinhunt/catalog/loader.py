"""
Coin and track file loaders.

Coin files are local JSON lists of coins (id, location, value). Track files are
recorded walks: JSON lists of location fixes `{lat, lon, heading?, t?}`. Both are
validated into typed Pydantic models so the session can assume a consistent shape.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import TypeAdapter

from coinhunt.core.env import resolve_project_path
from coinhunt.domain.models import Coin, LocationFix


_COINS_ADAPTER = TypeAdapter(list[Coin])
_TRACK_ADAPTER = TypeAdapter(list[LocationFix])


def load_coins(path: str | Path) -> list[Coin]:
    """Load and validate a coin JSON file."""
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        # Also accept `{"coins": [...]}` as written by the simulator API.
        payload = payload.get("coins", [])
    return _COINS_ADAPTER.validate_python(payload)


def load_track(path: str | Path) -> list[LocationFix]:
    """Load a recorded walk; order in the file is tick order."""
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    return _TRACK_ADAPTER.validate_python(payload)
