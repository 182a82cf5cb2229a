# app/routers/spots.py
from fastapi import APIRouter, Depends, Query, Response, status

from app.core.auth import CurrentUser, get_current_user
from app.core.errors import SpotValidationError
from app.schemas import rating as schemas_rating
from app.schemas import spot as schemas_spot
from app.services.spot_form import SpotForm
from app.services.spot_service import SpotService, get_spot_service
from app.services.viewport_service import ViewportBounds

router = APIRouter()

def _bounds_or_none(south: float | None, west: float | None, north: float | None, east: float | None) -> ViewportBounds | None:
    """
    4辺が全て揃った時のみ表示範囲とみなす．1つでも欠けていれば範囲で絞り込まない．
    """
    if None in (south, west, north, east):
        return None
    try:
        return ViewportBounds(south=south, west=west, north=north, east=east)
    except ValueError as e:
        raise SpotValidationError({'bounds': str(e)}) from e

@router.get("/api/v1/spots", response_model=schemas_spot.VisibleSpotsResponse)
def search_spots(
        q: str = Query(''),
        south: float | None = Query(None),
        west: float | None = Query(None),
        north: float | None = Query(None),
        east: float | None = Query(None),
        source: str | None = Query(None), # ''はネイティブのみ
        has_images: bool = Query(False),
        include_hidden: bool = Query(False),
        limit: int = Query(500, ge=1, le=5000),
        user: CurrentUser = Depends(get_current_user),
        service: SpotService = Depends(get_spot_service)):
    """
    キーワードに一致し，表示範囲内にあるスポットとそのマーカー．並び順は登録順．
    """
    bounds = _bounds_or_none(south, west, north, east)
    visible = service.search_spots(
        q=q, bounds=bounds, spot_source=source, has_images=has_images,
        include_hidden=include_hidden and user.is_moderator, limit=limit,
    )

    markers = {
        spot_id: schemas_spot.Marker(id=m.spot_id, lat=m.lat, lng=m.lng, title=m.title)
        for spot_id, m in visible.markers.items()
    }
    return {"total": len(visible.spots), "spots": visible.spots, "markers": markers}

@router.get("/api/v1/spots/top", response_model=schemas_spot.TopSpotsResponse)
def top_spots(
        south: float,
        west: float,
        north: float,
        east: float,
        limit: int | None = Query(None, ge=1, le=1000),
        source: str | None = Query(None),
        has_images: bool = Query(False),
        service: SpotService = Depends(get_spot_service)):
    """
    表示範囲内のランキング（Wilsonスコアの下限が高い順）．
    """
    bounds = _bounds_or_none(south, west, north, east)
    spots, total_count, average_wilson = service.top_spots_in_bounds(
        bounds, limit=limit, spot_source=source, has_images=has_images,
    )
    return {
        "spots": spots,
        "total_count": total_count,
        "shown_count": len(spots),
        "average_wilson": average_wilson,
    }

@router.get("/api/v1/spots/{spot_id}", response_model=schemas_spot.Spot)
def get_spot(spot_id: str, service: SpotService = Depends(get_spot_service)):
    return service.get_spot(spot_id)

@router.post("/api/v1/spots", response_model=schemas_spot.Spot, status_code=status.HTTP_201_CREATED)
async def create_spot(
        request: schemas_spot.SpotWriteRequest,
        user: CurrentUser = Depends(get_current_user),
        service: SpotService = Depends(get_spot_service)):
    return await service.create_spot(SpotForm.from_request(request), user)

@router.put("/api/v1/spots/{spot_id}", response_model=schemas_spot.Spot)
async def update_spot(
        spot_id: str,
        request: schemas_spot.SpotWriteRequest,
        user: CurrentUser = Depends(get_current_user),
        service: SpotService = Depends(get_spot_service)):
    return await service.update_spot(spot_id, SpotForm.from_request(request), user)

@router.delete("/api/v1/spots/{spot_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_spot(
        spot_id: str,
        user: CurrentUser = Depends(get_current_user),
        service: SpotService = Depends(get_spot_service)):
    service.delete_spot(spot_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post("/api/v1/spots/{spot_id}/ratings", response_model=schemas_rating.RatingStats)
def rate_spot(
        spot_id: str,
        request: schemas_rating.RatingCreate,
        user: CurrentUser = Depends(get_current_user),
        service: SpotService = Depends(get_spot_service)):
    return service.rate_spot(spot_id, request.rating, user)

@router.get("/api/v1/spots/{spot_id}/ratings", response_model=schemas_rating.RatingsResponse)
def list_ratings(spot_id: str, service: SpotService = Depends(get_spot_service)):
    ratings = service.get_spot_ratings(spot_id)
    return {"total": len(ratings), "ratings": ratings}

@router.get("/api/v1/spots/{spot_id}/ratings/stats", response_model=schemas_rating.RatingStats)
def get_rating_stats(
        spot_id: str,
        user: CurrentUser = Depends(get_current_user),
        service: SpotService = Depends(get_spot_service)):
    return service.get_rating_stats(spot_id, user)

@router.get("/api/v1/spots/{spot_id}/duplicates", response_model=schemas_spot.SpotsResponse)
def list_duplicates(spot_id: str, service: SpotService = Depends(get_spot_service)):
    duplicates = service.get_duplicates(spot_id)
    return {"total": len(duplicates), "spots": duplicates}

@router.post("/api/v1/spots/{spot_id}/duplicate-of", response_model=schemas_spot.Spot)
def mark_as_duplicate(
        spot_id: str,
        request: schemas_spot.MarkDuplicateRequest,
        user: CurrentUser = Depends(get_current_user),
        service: SpotService = Depends(get_spot_service)):
    return service.mark_as_duplicate(spot_id, request, user)

@router.put("/api/v1/spots/{spot_id}/hidden", response_model=schemas_spot.Spot)
def set_hidden(
        spot_id: str,
        request: schemas_spot.HideRequest,
        user: CurrentUser = Depends(get_current_user),
        service: SpotService = Depends(get_spot_service)):
    return service.set_hidden(spot_id, request.hidden, user)

@router.post("/api/v1/spots/{spot_id}/native-copy", response_model=schemas_spot.Spot, status_code=status.HTTP_201_CREATED)
def create_native_copy(
        spot_id: str,
        user: CurrentUser = Depends(get_current_user),
        service: SpotService = Depends(get_spot_service)):
    return service.create_native_from_existing(spot_id, user)
