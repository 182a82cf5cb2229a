# tests/test_config.py
from app.core.config import Settings

def test_database_url():
    settings = Settings(_env_file=None, DB_HOST='db', DB_USER='u', DB_PASSWORD='p', DB_NAME='spots')
    assert str(settings.DATABASE_URL) == 'postgresql://u:p@db:5432/spots'

def test_is_configured(settings):
    assert settings.is_configured
    assert not Settings(_env_file=None).is_configured

def test_public_url_round_trip(settings):
    url = settings.public_image_url('spots/a.jpg')
    assert url == 'https://cdn.example.com/spots/a.jpg'
    assert settings.object_key_from_url(url) == 'spots/a.jpg'

def test_bucket_url_is_recognised(settings):
    assert settings.object_key_from_url('https://parkour-bucket.s3.amazonaws.com/spots/b.png') == 'spots/b.png'
    assert settings.object_key_from_url('https://example.org/spots/b.png') is None
