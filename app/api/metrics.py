from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from app.config import Settings, get_settings
from app.observability.metrics import InMemoryEmitter

router = APIRouter(prefix="/api", tags=["metrics"])


@router.get("/metrics")
async def metrics(request: Request) -> dict:
    settings: Settings = getattr(request.app.state, "settings", None) or get_settings()
    emitter = getattr(request.app.state, "metric_emitter", None)
    # Only the in-memory backend can be read back; other backends are write-only.
    if not settings.enable_metrics_endpoint or not isinstance(emitter, InMemoryEmitter):
        raise HTTPException(status_code=404, detail="Not found")
    return emitter.snapshot()
