"""Stats endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dribblecam.api.schemas.models import StatsSchema
from dribblecam.api.services.engine import DrillEngine
from dribblecam.api.services.state import get_engine

router = APIRouter()


@router.get("/stats", response_model=StatsSchema)
def stats(engine: DrillEngine = Depends(get_engine)) -> StatsSchema:
    """Return high-level tracking and drill statistics."""

    result = engine.latest_result()
    snap = engine.session.snapshot()
    return StatsSchema(
        fps=engine.fps(),
        tracked=bool(result.tracked) if result is not None else False,
        count=snap.count,
        phase=snap.phase.value,
        dropped_batches=engine.dropped_batches(),
        error=engine.last_error,
    )
