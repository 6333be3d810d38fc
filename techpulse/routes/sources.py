"""
Source routes: registry listing, registration, soft removal and OPML.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from ..auth import verify_api_key
from ..config import get_registry, state
from ..schemas import (
    AddSourceRequest,
    ImportOPMLRequest,
    SourceResponse,
    UpdateSourceRequest,
)
from ..sources import SourceRegistry, spec_for_feed

router = APIRouter(
    prefix="/sources",
    tags=["sources"],
    dependencies=[Depends(verify_api_key)]
)

RegistryDep = Annotated[SourceRegistry, Depends(get_registry)]


def _sync_scheduler():
    """Let a running scheduler pick up registry changes."""
    if state.scheduler and state.scheduler.is_running:
        state.scheduler.sync_sources()


@router.get("")
async def list_sources(registry: RegistryDep, include_inactive: bool = False) -> list[SourceResponse]:
    """List registered sources (active only unless include_inactive)."""
    sources = registry.db.get_sources(active_only=not include_inactive)
    return [SourceResponse.from_db(s) for s in sources]


@router.get("/export")
async def export_opml(registry: RegistryDep) -> Response:
    """Export active sources as OPML."""
    return Response(
        content=registry.export_opml(),
        media_type="application/xml",
        headers={"Content-Disposition": 'attachment; filename="techpulse-sources.opml"'},
    )


@router.post("/import")
async def import_opml(request: ImportOPMLRequest, registry: RegistryDep) -> list[SourceResponse]:
    """Register every feed listed in an OPML document."""
    try:
        sources = registry.import_opml(request.opml_content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    _sync_scheduler()
    return [SourceResponse.from_db(s) for s in sources]


@router.post("", status_code=201)
async def add_source(request: AddSourceRequest, registry: RegistryDep) -> SourceResponse:
    """Register a source, or reactivate the existing one with the same feed URL."""
    source = registry.register(spec_for_feed(
        request.feed_url,
        name=request.name,
        url=request.url,
        fetch_interval_minutes=request.fetch_interval_minutes,
    ))
    _sync_scheduler()
    return SourceResponse.from_db(source)


@router.patch("/{source_id}")
async def update_source(
    source_id: int,
    request: UpdateSourceRequest,
    registry: RegistryDep,
) -> SourceResponse:
    """Rename a source or change its fetch interval."""
    source = registry.update(
        source_id,
        name=request.name,
        fetch_interval_minutes=request.fetch_interval_minutes,
    )
    _sync_scheduler()
    return SourceResponse.from_db(source)


@router.delete("/{source_id}")
async def remove_source(source_id: int, registry: RegistryDep) -> SourceResponse:
    """Deactivate a source. Its articles are kept."""
    source = registry.deactivate(source_id)
    _sync_scheduler()
    return SourceResponse.from_db(source)
