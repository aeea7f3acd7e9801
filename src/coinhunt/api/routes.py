"""
API routes (hunt simulator).

Endpoints:
- POST   `/api/sessions`: start a session from a coin list (+ optional proximity overrides).
- GET    `/api/sessions/{id}`: current engine state.
- POST   `/api/sessions/{id}/ticks`: push one location fix.
- POST   `/api/sessions/{id}/collect`: attempt to collect the current target.
- POST   `/api/sessions/{id}/pin`: pin a coin as the target.
- DELETE `/api/sessions/{id}`: end the session.
- GET    `/api/tiers`: find-limit tier table.

Every mutating call returns the notifications it produced, in order.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from coinhunt.config.overrides import apply_settings_overrides
from coinhunt.config.settings import get_settings
from coinhunt.core.errors import CollectionDenied
from coinhunt.core.geo import cardinal_direction, format_distance
from coinhunt.domain.models import Coin, Collected, LocationFix
from coinhunt.economy.tiers import TierPolicy, format_money
from coinhunt.hunt.events import RecordingListener
from coinhunt.hunt.session import HuntSession
from coinhunt.hunt.zones import describe_zone

logger = logging.getLogger(__name__)

router = APIRouter()


class CreateSessionRequest(BaseModel):
    coins: list[Coin] = Field(default_factory=list)
    find_limit: str | None = None
    proximity: dict[str, Any] | None = None


class PinRequest(BaseModel):
    coin_id: str


@dataclass
class _SessionEntry:
    session: HuntSession
    recorder: RecordingListener
    lock: threading.Lock = field(default_factory=threading.Lock)


_sessions: dict[str, _SessionEntry] = {}
_sessions_lock = threading.Lock()


def _entry(session_id: str) -> _SessionEntry:
    with _sessions_lock:
        entry = _sessions.get(session_id)
    if entry is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "SESSION_NOT_FOUND", "message": f"Unknown session: {session_id}"},
        )
    return entry


def _state(session: HuntSession) -> dict[str, Any]:
    snap = session.engine.snapshot()
    target = snap.target
    out: dict[str, Any] = {
        "has_target": snap.has_target,
        "target": target.model_dump(mode="json") if target else None,
        "zone": snap.zone.value,
        "distance_m": snap.distance_m,
        "distance_label": format_distance(snap.distance_m) if snap.distance_m is not None else None,
        "bearing_deg": snap.bearing_deg,
        "direction": cardinal_direction(snap.bearing_deg) if snap.bearing_deg is not None else None,
        "relative_bearing_deg": snap.relative_bearing_deg,
        "is_locked": snap.is_locked,
        "pinned": snap.pinned,
        "coins_in_range": snap.coins_in_range,
        "hint": describe_zone(snap.zone),
        "find_limit": str(session.find_limit),
        "tier": session.policy.name_for(session.tier),
        "remaining_coins": len(session.pool),
        "wallet_balance": str(getattr(session.wallet, "pending_balance", "0.00")),
    }
    return out


@router.post("/api/sessions", status_code=201)
def create_session(req: CreateSessionRequest) -> dict:
    """Start a hunt session with its own pool and engine."""
    settings = get_settings()
    try:
        settings = apply_settings_overrides(settings, {"proximity": req.proximity} if req.proximity else None)
        session = HuntSession(settings, find_limit=req.find_limit)
        session.start(req.coins)
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": str(e)}) from e

    recorder = RecordingListener()
    session.add_listener(recorder)
    session_id = uuid.uuid4().hex
    with _sessions_lock:
        _sessions[session_id] = _SessionEntry(session=session, recorder=recorder)
    logger.info("Session %s started with %s coins", session_id, len(req.coins))
    return {"session_id": session_id, "state": _state(session)}


@router.get("/api/sessions/{session_id}")
def get_session(session_id: str) -> dict:
    entry = _entry(session_id)
    return {"session_id": session_id, "state": _state(entry.session)}


@router.post("/api/sessions/{session_id}/ticks")
def post_tick(session_id: str, fix: LocationFix) -> dict:
    """Push one location fix; rejected fixes leave the state unchanged."""
    entry = _entry(session_id)
    with entry.lock:
        accepted = entry.session.on_location(fix.lat, fix.lon, fix.heading)
        events = entry.recorder.drain()
        state = _state(entry.session)
    return {"accepted": accepted, "events": [e.as_dict() for e in events], "state": state}


@router.post("/api/sessions/{session_id}/collect")
def post_collect(session_id: str) -> dict:
    """Attempt collection; denials are reported as 409 with the denial reason."""
    entry = _entry(session_id)
    with entry.lock:
        result = entry.session.collect()
        events = entry.recorder.drain()
        state = _state(entry.session)
    if not isinstance(result, Collected):
        raise CollectionDenied(result.reason.value, result.message)
    return {
        "result": {
            "coin_id": result.coin.id,
            "credited_value": str(result.credited_value),
            "message": result.message,
        },
        "events": [e.as_dict() for e in events],
        "state": state,
    }


@router.post("/api/sessions/{session_id}/pin")
def post_pin(session_id: str, req: PinRequest) -> dict:
    entry = _entry(session_id)
    with entry.lock:
        if not entry.session.pin(req.coin_id):
            raise HTTPException(
                status_code=404,
                detail={"code": "COIN_NOT_FOUND", "message": f"Coin not in pool: {req.coin_id}"},
            )
    return {"pinned": req.coin_id}


@router.delete("/api/sessions/{session_id}")
def delete_session(session_id: str) -> dict:
    entry = _entry(session_id)
    with entry.lock:
        entry.session.end()
    with _sessions_lock:
        _sessions.pop(session_id, None)
    return {"ended": session_id}


@router.get("/api/tiers")
def get_tiers() -> dict:
    """Return the configured find-limit tiers (name + limit)."""
    policy = TierPolicy(get_settings().economy)
    return {
        "tiers": [
            {"tier": int(info.tier), "name": info.name, "limit": str(info.limit), "label": format_money(info.limit)}
            for info in policy.tiers
        ]
    }
