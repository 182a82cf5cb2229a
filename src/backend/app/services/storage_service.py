# app/services/storage_service.py
import logging
import re
import time
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Depends
from app.core.config import Settings, get_settings
from app.core.errors import BackendReadError, BackendWriteError

logger = logging.getLogger(__name__)

EXTENSIONS = {
    'image/jpeg': '.jpg',
    'image/png': '.png',
    'image/gif': '.gif',
    'image/webp': '.webp',
}

def detect_content_type(data: bytes) -> str:
    """
    先頭のマジックバイトから画像形式を判定する．判定できなければJPEG扱い．
    """
    if data[:3] == b'\xff\xd8\xff':
        return 'image/jpeg'
    if data[:4] == b'\x89PNG':
        return 'image/png'
    if data[:3] == b'GIF':
        return 'image/gif'
    if len(data) >= 12 and data[:4] == b'RIFF' and data[8:12] == b'WEBP':
        return 'image/webp'
    return 'image/jpeg'

def build_object_key(prefix: str, name_hint: str, index: int, content_type: str) -> str:
    safe_name = re.sub(r'[^a-zA-Z0-9]', '_', name_hint or 'spot')
    timestamp_ms = int(time.time() * 1000)
    return f"{prefix}/{safe_name}_{timestamp_ms}_{index}{EXTENSIONS.get(content_type, '.jpg')}"

class StorageService:
    """
    スポット画像のS3ラッパー．キーは '{IMAGE_PREFIX}/{名前}_{ミリ秒}_{番号}.{拡張子}'．
    """
    def __init__(self, settings: Settings, client=None):
        self.settings = settings
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client('s3')
        return self._client

    @property
    def bucket(self) -> str:
        if not self.settings.S3_BUCKET_NAME:
            raise BackendWriteError("S3_BUCKET_NAMEが設定されていません．")
        return self.settings.S3_BUCKET_NAME

    def upload_image(self, data: bytes, name_hint: str = 'spot', index: int = 0) -> str:
        content_type = detect_content_type(data)
        key = build_object_key(self.settings.IMAGE_PREFIX, name_hint, index, content_type)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl='public, max-age=31536000',
            )
        except (BotoCoreError, ClientError) as e:
            raise BackendWriteError(f"画像のアップロードに失敗しました: {e}") from e
        logger.info("uploaded image s3://%s/%s (%d bytes)", self.bucket, key, len(data))
        return self.settings.public_image_url(key)

    def upload_images(self, images: list[bytes], name_hint: str = 'spot') -> list[str]:
        return [self.upload_image(data, name_hint=name_hint, index=i) for i, data in enumerate(images)]

    def delete_image(self, image_url: str) -> bool:
        """
        自前のストレージにある画像のみ削除する．外部URLや削除失敗はFalse．
        """
        key = self.settings.object_key_from_url(image_url)
        if key is None:
            return False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
            return True
        except (BotoCoreError, ClientError) as e:
            logger.warning("failed to delete %s: %s", image_url, e)
            return False

    def list_image_keys(self) -> list[str]:
        keys = []
        try:
            paginator = self.client.get_paginator('list_objects_v2')
            for page in paginator.paginate(Bucket=self.bucket, Prefix=f"{self.settings.IMAGE_PREFIX}/"):
                keys.extend(obj['Key'] for obj in page.get('Contents', []))
        except (BotoCoreError, ClientError) as e:
            raise BackendReadError(f"画像一覧の取得に失敗しました: {e}") from e
        return keys

    def delete_keys(self, keys: list[str]) -> int:
        deleted = 0
        # delete_objectsは1回あたり1000件まで
        for i in range(0, len(keys), 1000):
            chunk = keys[i:i + 1000]
            try:
                response = self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={'Objects': [{'Key': key} for key in chunk], 'Quiet': True},
                )
            except (BotoCoreError, ClientError) as e:
                raise BackendWriteError(f"画像の削除に失敗しました: {e}") from e
            deleted += len(chunk) - len(response.get('Errors', []))
        return deleted

    def image_exists(self, image_url: str) -> bool:
        key = self.settings.object_key_from_url(image_url)
        if key is None:
            return True # 外部URLは確認しない
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('404', 'NoSuchKey', 'NotFound'):
                return False
            raise BackendReadError(f"画像の確認に失敗しました: {e}") from e

def get_storage_service(settings: Settings = Depends(get_settings)) -> StorageService:
    return StorageService(settings=settings)
