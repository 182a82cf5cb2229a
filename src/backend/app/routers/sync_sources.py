# app/routers/sync_sources.py
from fastapi import APIRouter, Depends, Query, Response, status

from app.core.auth import CurrentUser, get_current_user, require_moderator
from app.schemas import sync_source as schemas_sync_source
from app.services.sync_service import SyncService, get_sync_service

router = APIRouter()

@router.get("/api/v1/sync-sources", response_model=schemas_sync_source.SyncSourcesResponse)
def list_sync_sources(
        include_inactive: bool = Query(False),
        user: CurrentUser = Depends(get_current_user),
        service: SyncService = Depends(get_sync_service)):
    require_moderator(user)
    sources = service.list_sources(include_inactive=include_inactive)
    return {"count": len(sources), "sources": sources}

@router.post("/api/v1/sync-sources", response_model=schemas_sync_source.SyncSource, status_code=status.HTTP_201_CREATED)
def create_sync_source(
        request: schemas_sync_source.SyncSourceCreate,
        user: CurrentUser = Depends(get_current_user),
        service: SyncService = Depends(get_sync_service)):
    return service.create_source(request, user)

@router.patch("/api/v1/sync-sources/{source_id}", response_model=schemas_sync_source.SyncSource)
def update_sync_source(
        source_id: str,
        request: schemas_sync_source.SyncSourceUpdate,
        user: CurrentUser = Depends(get_current_user),
        service: SyncService = Depends(get_sync_service)):
    return service.update_source(source_id, request, user)

@router.delete("/api/v1/sync-sources/{source_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sync_source(
        source_id: str,
        user: CurrentUser = Depends(get_current_user),
        service: SyncService = Depends(get_sync_service)):
    service.delete_source(source_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post("/api/v1/sync-sources/sync-all", response_model=schemas_sync_source.SyncAllResult)
async def sync_all_sources(
        user: CurrentUser = Depends(get_current_user),
        service: SyncService = Depends(get_sync_service)):
    return await service.sync_all_sources(user)

@router.post("/api/v1/sync-sources/{source_id}/sync", response_model=schemas_sync_source.SyncResult)
async def sync_source(
        source_id: str,
        user: CurrentUser = Depends(get_current_user),
        service: SyncService = Depends(get_sync_service)):
    return await service.sync_source(source_id, user)
