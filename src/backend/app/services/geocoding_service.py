# app/services/geocoding_service.py
import logging
import httpx
from fastapi import Depends
from app.core.config import Settings, get_settings
from app.core.errors import BackendReadError
from app.schemas.geocoding import Coordinates, GeocodeResult

logger = logging.getLogger(__name__)

# 都市名はこの優先順で住所要素から探す．
CITY_TYPES_PRIORITY = (
    'locality',
    'postal_town',
    'administrative_area_level_2',
    'administrative_area_level_1',
)

def _find_component(components: list[dict], component_type: str) -> dict | None:
    for comp in components:
        if component_type in (comp.get('types') or []):
            return comp
    return None

def parse_reverse_geocode(data: dict) -> GeocodeResult | None:
    """
    Google Geocoding APIのレスポンスから住所・都市・国コードを取り出す．結果が無ければNone．
    """
    results = data.get('results') or []
    if data.get('status') != 'OK' or not results:
        return None

    first = results[0]
    components = first.get('address_components') or []

    country_code = None
    country = _find_component(components, 'country')
    if country and country.get('short_name'):
        country_code = country['short_name'] # 例：'NL'

    city = None
    for component_type in CITY_TYPES_PRIORITY:
        comp = _find_component(components, component_type)
        if comp and comp.get('long_name'):
            city = comp['long_name']
            break

    return GeocodeResult(address=first.get('formatted_address'), city=city, country_code=country_code)

def parse_forward_geocode(data: dict) -> Coordinates | None:
    results = data.get('results') or []
    if data.get('status') != 'OK' or not results:
        return None
    location = results[0]['geometry']['location']
    return Coordinates(latitude=location['lat'], longitude=location['lng'])

class GeocodingService:
    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self._client = client

    async def _request(self, params: dict) -> dict:
        if not self.settings.GOOGLE_MAPS_API_KEY:
            raise BackendReadError("Google Maps APIキーが設定されていません．")
        params = {**params, 'key': self.settings.GOOGLE_MAPS_API_KEY}

        try:
            if self._client is not None:
                response = await self._client.get(self.settings.GEOCODING_URL, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT_SECONDS) as client:
                    response = await client.get(self.settings.GEOCODING_URL, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise BackendReadError(f"ジオコーディングに失敗しました: {e}") from e

    async def reverse_geocode(self, lat: float, lng: float) -> GeocodeResult | None:
        data = await self._request({'latlng': f"{lat},{lng}"})
        result = parse_reverse_geocode(data)
        if result is None:
            logger.info("no address found for (%s, %s): %s", lat, lng, data.get('error_message') or data.get('status'))
        return result

    async def reverse_geocode_silently(self, lat: float, lng: float) -> GeocodeResult | None:
        """
        表示を補うだけのベストエフォート処理．失敗はログに残して無視する．
        """
        try:
            return await self.reverse_geocode(lat, lng)
        except BackendReadError as e:
            logger.warning("reverse geocoding (%s, %s) ignored: %s", lat, lng, e.detail)
            return None

    async def geocode_address(self, address: str) -> Coordinates | None:
        data = await self._request({'address': address})
        return parse_forward_geocode(data)

def get_geocoding_service(settings: Settings = Depends(get_settings)) -> GeocodingService:
    return GeocodingService(settings=settings)
