# tests/conftest.py
# DBや外部サービスに接続せずにテストできるよう，スポットは属性を持つだけの軽量オブジェクトで代用する．
from types import SimpleNamespace
import pytest
from app.core.auth import CurrentUser, UserRole
from app.core.config import Settings
from app.schemas.geocoding import GeocodeResult

def make_spot(spot_id='spot-1', name='Spot', latitude=0.0, longitude=0.0, **kwargs):
    values = {
        'id': spot_id,
        'name': name,
        'description': '',
        'latitude': latitude,
        'longitude': longitude,
        'tags': [],
        'image_urls': [],
        'youtube_video_ids': [],
        'spot_access': None,
        'spot_features': [],
        'spot_facilities': {},
        'good_for': [],
        'address': None,
        'city': None,
        'country_code': None,
        'created_by': None,
        'spot_source': None,
        'duplicate_of': None,
        'hidden': False,
        'average_rating': 0.0,
        'rating_count': 0,
        'wilson_lower_bound': 0.0,
    }
    values.update(kwargs)
    return SimpleNamespace(**values)

class FakeGeocoder:
    """
    reverse_geocode_silently()の呼び出しを記録し，座標ごとに決めた結果を返す．
    """
    def __init__(self, results=None):
        self.results = results or {}
        self.calls = []

    async def reverse_geocode_silently(self, lat, lng):
        self.calls.append((lat, lng))
        return self.results.get((lat, lng))

class FakeStorage:
    def __init__(self, keys=None, missing=None):
        self.uploaded = []
        self.deleted = []
        self.keys = list(keys or [])
        self.missing = set(missing or [])

    def upload_image(self, data, name_hint='spot', index=0):
        url = f"https://cdn.example.com/spots/{name_hint}_{index}.jpg"
        self.uploaded.append(url)
        return url

    def upload_images(self, images, name_hint='spot'):
        return [self.upload_image(data, name_hint=name_hint, index=i) for i, data in enumerate(images)]

    def delete_image(self, image_url):
        self.deleted.append(image_url)
        return True

    def list_image_keys(self):
        return list(self.keys)

    def delete_keys(self, keys):
        self.deleted.extend(keys)
        return len(keys)

    def image_exists(self, image_url):
        return image_url not in self.missing

class FakeSession:
    """
    add()されたオブジェクト（監査ログなど）を記録する．
    """
    def __init__(self):
        self.added = []

    def add(self, obj):
        self.added.append(obj)

    def rollback(self):
        self.added.clear()

    def refresh(self, obj):
        pass

@pytest.fixture()
def settings():
    return Settings(
        _env_file=None,
        DB_PASSWORD='secret',
        S3_BUCKET_NAME='parkour-bucket',
        S3_PUBLIC_BASE_URL='https://cdn.example.com',
        GOOGLE_MAPS_API_KEY='test-key',
    )

@pytest.fixture()
def anonymous():
    return CurrentUser(user_id=None)

@pytest.fixture()
def user():
    return CurrentUser(user_id='user-1', display_name='Traceur', role=UserRole.USER)

@pytest.fixture()
def moderator():
    return CurrentUser(user_id='mod-1', display_name='Moderator', role=UserRole.MODERATOR)

@pytest.fixture()
def geocoder():
    return FakeGeocoder()

@pytest.fixture()
def storage():
    return FakeStorage()

@pytest.fixture()
def paris_geocode():
    return GeocodeResult(address='Place de l\'Hôtel de Ville, 75004 Paris, France', city='Paris', country_code='FR')
