# app/routers/moderation.py
from fastapi import APIRouter, Depends, Query

from app.core.auth import CurrentUser, get_current_user
from app.schemas import moderation as schemas_moderation
from app.schemas import spot as schemas_spot
from app.services.moderation_service import ModerationService, get_moderation_service
from app.services.spot_service import SpotService, get_spot_service

router = APIRouter()

@router.post("/api/v1/moderation/spots/delete", response_model=schemas_moderation.DeleteResult)
def delete_spots(
        request: schemas_moderation.DeleteSpotsRequest,
        user: CurrentUser = Depends(get_current_user),
        service: SpotService = Depends(get_spot_service)):
    deleted, failed = service.delete_spots(request.spot_ids, user)
    return {"deleted": deleted, "failed": failed}

@router.post("/api/v1/moderation/images/cleanup", response_model=schemas_moderation.CleanupResult)
def cleanup_unused_images(
        dry_run: bool = Query(True),
        user: CurrentUser = Depends(get_current_user),
        service: ModerationService = Depends(get_moderation_service)):
    return service.cleanup_unused_images(user, dry_run=dry_run)

@router.get("/api/v1/moderation/images/missing", response_model=schemas_moderation.MissingImagesResult)
def find_missing_images(
        user: CurrentUser = Depends(get_current_user),
        service: ModerationService = Depends(get_moderation_service)):
    return service.find_missing_images(user)

@router.get("/api/v1/moderation/spots/orphaned", response_model=schemas_moderation.OrphanedSpotsResult)
def find_orphaned_spots(
        user: CurrentUser = Depends(get_current_user),
        service: ModerationService = Depends(get_moderation_service)):
    return service.find_orphaned_spots(user)

@router.post("/api/v1/moderation/spots/{spot_id}/images/replace", response_model=schemas_spot.Spot)
def upload_replacement_image(
        spot_id: str,
        request: schemas_moderation.ReplacementImageRequest,
        user: CurrentUser = Depends(get_current_user),
        service: ModerationService = Depends(get_moderation_service)):
    return service.upload_replacement_image(spot_id, request.old_image_url, request.image, user)

@router.post("/api/v1/moderation/source-names/refresh", response_model=schemas_moderation.SourceNamesResult)
def update_cached_source_names(
        user: CurrentUser = Depends(get_current_user),
        service: ModerationService = Depends(get_moderation_service)):
    return {"updated": service.update_cached_source_names(user)}

@router.post("/api/v1/moderation/ratings/recompute", response_model=schemas_moderation.RecomputeResult)
def recompute_ratings(
        user: CurrentUser = Depends(get_current_user),
        service: ModerationService = Depends(get_moderation_service)):
    return {"recomputed": service.recompute_ratings(user)}

@router.get("/api/v1/moderation/spots/duplicate-candidates", response_model=schemas_spot.SpotsResponse)
def search_duplicate_candidates(
        q: str = Query(''),
        exclude: str | None = Query(None),
        limit: int = Query(1000, ge=1, le=5000),
        user: CurrentUser = Depends(get_current_user),
        service: SpotService = Depends(get_spot_service)):
    """
    重複の登録先の候補．excludeには重複として登録するスポット自身を渡す．
    """
    spots = service.search_duplicate_candidates(user, exclude_spot_id=exclude, q=q, limit=limit)
    return {"total": len(spots), "spots": spots}

@router.get("/api/v1/moderation/audit-log", response_model=schemas_moderation.AuditLogResponse)
def list_audit_log(
        spot_id: str | None = Query(None),
        user_id: str | None = Query(None),
        limit: int = Query(100, ge=1, le=1000),
        user: CurrentUser = Depends(get_current_user),
        service: ModerationService = Depends(get_moderation_service)):
    entries = service.list_audit_log(user, spot_id=spot_id, user_id=user_id, limit=limit)
    return {"total": len(entries), "entries": entries}
