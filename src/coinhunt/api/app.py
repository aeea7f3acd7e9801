# src/coinhunt/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance for the hunt simulator. It lets a browser
or script drive a hunt session (push fixes, collect, pin) without a device.
Business logic lives in `coinhunt.api.routes` and `coinhunt.hunt`.
"""

from __future__ import annotations

import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from coinhunt.core.errors import CollectionDenied
from coinhunt.core.logging import configure_logging

from .routes import router

configure_logging()

app = FastAPI(title="CoinHunt Simulator API", version="0.1.0")

# CORS (dev-friendly): allow local map frontends to call this API.
# Configure via env:
# - COINHUNT_CORS_ORIGINS="http://localhost:8003,http://127.0.0.1:8003"
# - COINHUNT_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
cors_origins = [s.strip() for s in os.getenv("COINHUNT_CORS_ORIGINS", "").split(",") if s.strip()]
cors_allow_local = os.getenv("COINHUNT_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
cors_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)


@app.exception_handler(CollectionDenied)
async def collection_denied(_request: Request, exc: CollectionDenied) -> JSONResponse:
    # Same `{"detail": {...}}` shape as HTTPException errors.
    return JSONResponse(
        status_code=409,
        content={"detail": {"code": "COLLECTION_DENIED", "reason": exc.reason, "message": exc.message}},
    )


@app.get("/api/health")
def health() -> dict:
    return {"status": "ok"}
