"""
Miscellaneous routes: health check and manual refresh.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from ..auth import verify_api_key
from ..config import config, get_scheduler, state
from ..scheduler import IngestionScheduler
from ..schemas import RefreshRequest, RefreshResponse

# Health check stays reachable without an API key
public_router = APIRouter(tags=["misc"])

router = APIRouter(
    tags=["misc"],
    dependencies=[Depends(verify_api_key)]
)


# ─────────────────────────────────────────────────────────────
# Health Check
# ─────────────────────────────────────────────────────────────

@public_router.get("/status")
async def health_check() -> dict:
    """API health check."""
    scheduler = state.scheduler
    return {
        "status": "ok",
        "version": "1.0.0",
        "auth_enabled": bool(config.AUTH_API_KEY),
        "chat_enabled": bool(state.chat_service and state.chat_service.is_available),
        "provider": state.provider.name if state.provider else None,
        "scheduler_running": bool(scheduler and scheduler.is_running),
        "live_listeners": state.notifier.listener_count if state.notifier else 0,
        "last_trending_run": (
            scheduler.last_trending_run.isoformat()
            if scheduler and scheduler.last_trending_run else None
        ),
    }


# ─────────────────────────────────────────────────────────────
# Manual refresh
# ─────────────────────────────────────────────────────────────

@router.post("/refresh")
async def refresh(
    scheduler: Annotated[IngestionScheduler, Depends(get_scheduler)],
    request: RefreshRequest | None = None,
) -> RefreshResponse:
    """
    Run one ingestion cycle now for one source or all active sources.

    Sources already mid-cycle are reported as skipped. Trending topics are
    recomputed when the refresh stored new articles.
    """
    request = request or RefreshRequest()
    result = await scheduler.refresh_now(request.source_id)
    if result.created:
        await scheduler.run_trending()
    return RefreshResponse(
        ran=result.ran,
        skipped=result.skipped,
        failed=result.failed,
        created=result.created,
    )
