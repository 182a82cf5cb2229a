# tests/test_storage_service.py
import pytest
from botocore.exceptions import ClientError
from app.core.errors import BackendWriteError
from app.services.storage_service import StorageService, build_object_key, detect_content_type

class FakeS3Client:
    def __init__(self, existing=()):
        self.objects = {key: b'' for key in existing}
        self.fail_put = False

    def put_object(self, Bucket, Key, Body, ContentType, CacheControl):
        if self.fail_put:
            raise ClientError({'Error': {'Code': '500', 'Message': 'boom'}}, 'PutObject')
        self.objects[Key] = Body

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)

    def head_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({'Error': {'Code': '404', 'Message': 'Not Found'}}, 'HeadObject')
        return {}

class TestHelpers:
    @pytest.mark.parametrize('data, expected', [
        (b'\xff\xd8\xff\xe0rest', 'image/jpeg'),
        (b'\x89PNG\r\n\x1a\n', 'image/png'),
        (b'GIF89a', 'image/gif'),
        (b'RIFF\x00\x00\x00\x00WEBPVP8 ', 'image/webp'),
        (b'unknown', 'image/jpeg'),
    ])
    def test_detect_content_type(self, data, expected):
        assert detect_content_type(data) == expected

    def test_object_key(self):
        key = build_object_key('spots', 'Parc de Bercy!', 2, 'image/png')
        assert key.startswith('spots/Parc_de_Bercy__')
        assert key.endswith('_2.png')

class TestStorageService:
    def test_upload_returns_public_url(self, settings):
        client = FakeS3Client()
        url = StorageService(settings, client=client).upload_image(b'\x89PNG....', name_hint='wall')
        assert url.startswith('https://cdn.example.com/spots/wall_')
        assert settings.object_key_from_url(url) in client.objects

    def test_upload_failure(self, settings):
        client = FakeS3Client()
        client.fail_put = True
        with pytest.raises(BackendWriteError):
            StorageService(settings, client=client).upload_image(b'data')

    def test_delete_ignores_foreign_urls(self, settings):
        client = FakeS3Client(existing=['spots/a.jpg'])
        storage = StorageService(settings, client=client)
        assert storage.delete_image('https://elsewhere.example.org/a.jpg') is False
        assert storage.delete_image('https://cdn.example.com/spots/a.jpg') is True
        assert client.objects == {}

    def test_image_exists(self, settings):
        storage = StorageService(settings, client=FakeS3Client(existing=['spots/a.jpg']))
        assert storage.image_exists('https://cdn.example.com/spots/a.jpg')
        assert not storage.image_exists('https://cdn.example.com/spots/b.jpg')
        assert storage.image_exists('https://elsewhere.example.org/b.jpg')
