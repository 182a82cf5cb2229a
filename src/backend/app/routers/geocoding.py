# app/routers/geocoding.py
from fastapi import APIRouter, Depends, Query

from app.core.auth import CurrentUser, get_current_user, require_user
from app.core.errors import NotFoundError
from app.schemas import geocoding as schemas_geocoding
from app.services.geocoding_service import GeocodingService, get_geocoding_service

router = APIRouter()

@router.get("/api/v1/geocode/reverse", response_model=schemas_geocoding.GeocodeResult)
async def reverse_geocode(
        lat: float = Query(..., ge=-90, le=90),
        lng: float = Query(..., ge=-180, le=180),
        user: CurrentUser = Depends(get_current_user),
        geocoder: GeocodingService = Depends(get_geocoding_service)):
    """
    座標 -> 住所・都市・国コード．
    """
    require_user(user)
    result = await geocoder.reverse_geocode(lat, lng)
    if result is None:
        raise NotFoundError(f"住所が見つかりません: ({lat}, {lng})")
    return result

@router.get("/api/v1/geocode/forward", response_model=schemas_geocoding.Coordinates)
async def geocode_address(
        address: str = Query(..., min_length=1),
        user: CurrentUser = Depends(get_current_user),
        geocoder: GeocodingService = Depends(get_geocoding_service)):
    require_user(user)
    result = await geocoder.geocode_address(address)
    if result is None:
        raise NotFoundError(f"座標が見つかりません: {address}")
    return result
