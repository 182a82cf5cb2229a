# tests/test_geocoding_service.py
import asyncio
import httpx
import pytest
from app.core.errors import BackendReadError
from app.services.geocoding_service import GeocodingService, parse_forward_geocode, parse_reverse_geocode

AMSTERDAM_RESPONSE = {
    'status': 'OK',
    'results': [{
        'formatted_address': 'Dam 1, 1012 JS Amsterdam, Netherlands',
        'address_components': [
            {'long_name': 'Amsterdam', 'short_name': 'Amsterdam', 'types': ['locality', 'political']},
            {'long_name': 'Noord-Holland', 'short_name': 'NH', 'types': ['administrative_area_level_1']},
            {'long_name': 'Netherlands', 'short_name': 'NL', 'types': ['country', 'political']},
        ],
        'geometry': {'location': {'lat': 52.373, 'lng': 4.893}},
    }],
}

def service_with(settings, handler) -> GeocodingService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeocodingService(settings, client=client)

class TestParsing:
    def test_reverse(self):
        result = parse_reverse_geocode(AMSTERDAM_RESPONSE)
        assert result.address == 'Dam 1, 1012 JS Amsterdam, Netherlands'
        assert result.city == 'Amsterdam'
        assert result.country_code == 'NL'

    def test_city_falls_back_to_admin_area(self):
        data = {'status': 'OK', 'results': [{
            'formatted_address': 'Somewhere',
            'address_components': [
                {'long_name': 'Utrecht', 'short_name': 'UT', 'types': ['administrative_area_level_1']},
            ],
        }]}
        assert parse_reverse_geocode(data).city == 'Utrecht'

    def test_zero_results(self):
        assert parse_reverse_geocode({'status': 'ZERO_RESULTS', 'results': []}) is None
        assert parse_forward_geocode({'status': 'ZERO_RESULTS', 'results': []}) is None

    def test_forward(self):
        coords = parse_forward_geocode(AMSTERDAM_RESPONSE)
        assert (coords.latitude, coords.longitude) == (52.373, 4.893)

class TestService:
    def test_reverse_geocode_sends_key_and_latlng(self, settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            return httpx.Response(200, json=AMSTERDAM_RESPONSE)

        result = asyncio.run(service_with(settings, handler).reverse_geocode(52.373, 4.893))
        assert result.city == 'Amsterdam'
        assert seen['latlng'] == '52.373,4.893'
        assert seen['key'] == 'test-key'

    def test_http_error_is_a_read_error(self, settings):
        service = service_with(settings, lambda request: httpx.Response(500))
        with pytest.raises(BackendReadError):
            asyncio.run(service.reverse_geocode(0.0, 0.0))

    def test_silent_variant_swallows_errors(self, settings):
        service = service_with(settings, lambda request: httpx.Response(500))
        assert asyncio.run(service.reverse_geocode_silently(0.0, 0.0)) is None

    def test_missing_api_key(self, settings):
        settings.GOOGLE_MAPS_API_KEY = None
        service = service_with(settings, lambda request: httpx.Response(200, json=AMSTERDAM_RESPONSE))
        with pytest.raises(BackendReadError):
            asyncio.run(service.geocode_address('Dam 1'))

    def test_geocode_address(self, settings):
        service = service_with(settings, lambda request: httpx.Response(200, json=AMSTERDAM_RESPONSE))
        coords = asyncio.run(service.geocode_address('Dam 1, Amsterdam'))
        assert coords.latitude == 52.373
