"""Drill session control endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dribblecam.api.schemas.models import SessionSchema
from dribblecam.api.services.engine import DrillEngine
from dribblecam.api.services.state import get_engine

router = APIRouter(prefix="/session", tags=["session"])


@router.get("", response_model=SessionSchema)
def get_session(engine: DrillEngine = Depends(get_engine)) -> SessionSchema:
    return SessionSchema.from_snapshot(engine.session.snapshot())


@router.post("/start", response_model=SessionSchema)
def start_session(engine: DrillEngine = Depends(get_engine)) -> SessionSchema:
    """Start (or restart) a drill: countdown first, then counting."""

    engine.session.start()
    return SessionSchema.from_snapshot(engine.session.snapshot())


@router.post("/end", response_model=SessionSchema)
def end_session(engine: DrillEngine = Depends(get_engine)) -> SessionSchema:
    """End the drill and reset the count."""

    engine.session.end()
    return SessionSchema.from_snapshot(engine.session.snapshot())
