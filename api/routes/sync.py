"""Sync endpoints: manual trigger, checkpoint/run status and metrics."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from core.config import ConfigurationError, load_settings
from core.observability import get_logger, get_metrics
from mirror.orchestrator import ManualSyncResponse, SyncOrchestrator, build_orchestrator


router = APIRouter()
logger = get_logger(__name__)


class ManualSyncRequest(BaseModel):
    """Manual sync request body."""
    full_resync: bool = False


class SyncStatusResponse(BaseModel):
    """Checkpoints per entity and the most recent runs."""
    running: bool
    checkpoints: Dict[str, str]
    recent_runs: List[Dict[str, Any]]


def get_orchestrator(request: Request) -> SyncOrchestrator:
    """Orchestrator shared by the app, built from settings on first use."""
    orchestrator: Optional[SyncOrchestrator] = request.app.state.orchestrator
    if orchestrator is None:
        try:
            orchestrator = build_orchestrator(load_settings())
        except ConfigurationError as e:
            logger.error(f"Sync is not configured: {e}")
            raise HTTPException(status_code=503, detail=str(e))
        request.app.state.orchestrator = orchestrator
    return orchestrator


@router.post("/manual", response_model=ManualSyncResponse)
async def trigger_manual_sync(
    body: Optional[ManualSyncRequest] = None,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> ManualSyncResponse:
    """Run a sync now; incremental unless full_resync is set.

    Failures (including "already running") come back as a payload with
    success=false rather than an HTTP error.
    """
    full_resync = body.full_resync if body else False
    logger.info(f"Manual sync requested (full_resync={full_resync})")
    return await orchestrator.run_manual_sync(full_resync=full_resync)


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(
    limit: int = Query(10, ge=1, le=100),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> SyncStatusResponse:
    return SyncStatusResponse(
        running=orchestrator.is_running,
        checkpoints=orchestrator.store.list_checkpoints(),
        recent_runs=orchestrator.store.recent_runs(limit),
    )


@router.get("/metrics")
async def sync_metrics() -> Dict[str, Any]:
    """In-process run/stage counters and stage timings."""
    return get_metrics().get_summary()
