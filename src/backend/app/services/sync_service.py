# app/services/sync_service.py
"""
外部フィードの同期．フィードをダウンロードしてPlacemarkに変換し，
（同期元，緯度，経度）が一致するスポットがあれば更新，無ければ作成する．
"""
import asyncio
import random
import logging
import httpx
from fastapi import Depends
from sqlalchemy.orm import Session
from app.core.auth import CurrentUser, require_moderator
from app.core.config import Settings, get_settings
from app.core.errors import BackendReadError, BackendWriteError, NotFoundError, SpotServiceError, SpotValidationError
from app.crud import spot as crud_spot
from app.crud import sync_source as crud_sync_source
from app.db import session
from app.models import SyncSource
from app.schemas.sync_source import SyncAllResult, SyncResult, SyncSourceCreate, SyncSourceUpdate, SyncStats
from app.services.feed_service import Placemark, clean_description, extract_image_urls, load_placemarks
from app.services.geocoding_service import GeocodingService, get_geocoding_service
from app.services.spot_service import backend_read, backend_write
from app.services.storage_service import StorageService, get_storage_service

logger = logging.getLogger(__name__)

class SyncService:
    def __init__(self, db: Session, settings: Settings, storage: StorageService,
                 geocoder: GeocodingService, client: httpx.AsyncClient | None = None):
        self.db = db
        self.settings = settings
        self.storage = storage
        self.geocoder = geocoder
        self._client = client

    # ---------- ダウンロード ----------

    async def _get(self, client: httpx.AsyncClient, url: str) -> bytes:
        response = await client.get(url, follow_redirects=True)
        response.raise_for_status()
        return response.content

    async def download_feed(self, url: str) -> bytes:
        try:
            if self._client is not None:
                return await self._get(self._client, url)
            async with httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT_SECONDS) as client:
                return await self._get(client, url)
        except httpx.HTTPError as e:
            raise BackendReadError(f"フィードのダウンロードに失敗しました: {url} ({e})") from e

    async def _mirror_image_limited(
            self,
            client: httpx.AsyncClient,
            semaphore: asyncio.Semaphore,
            url: str,
            name_hint: str,
            index: int) -> str | None:
        """
        1枚の画像をダウンロードしてS3に置き直す．失敗した画像は飛ばす（None）．
        """
        async with semaphore:
            try:
                data = await self._get(client, url)
                return await asyncio.to_thread(self.storage.upload_image, data, name_hint, index)
            except (httpx.HTTPError, BackendWriteError) as e:
                logger.warning("skipped image %d of %s (%s): %s", index + 1, name_hint, url, e)
                return None

    async def mirror_images(self, urls: list[str], name_hint: str) -> list[str]:
        if not urls:
            return []

        async def run(client: httpx.AsyncClient) -> list[str | None]:
            semaphore = asyncio.Semaphore(self.settings.IMAGE_DOWNLOAD_CONCURRENCY)
            tasks = [
                asyncio.create_task(self._mirror_image_limited(client, semaphore, url, name_hint, i))
                for i, url in enumerate(urls)
            ]
            # セマフォにより同時ダウンロード数が制限されている．
            return await asyncio.gather(*tasks)

        if self._client is not None:
            results = await run(self._client)
        else:
            async with httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT_SECONDS) as client:
                results = await run(client)
        return [url for url in results if url is not None]

    # ---------- 同期 ----------

    async def _apply_placemark(self, source: SyncSource, placemark: Placemark, stats: SyncStats) -> None:
        lat, lon = placemark.latitude, placemark.longitude
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            logger.warning("skipped placemark %r with invalid coordinates (%s, %s)", placemark.name, lat, lon)
            stats.skipped += 1
            return

        image_urls = await self.mirror_images(extract_image_urls(placemark), placemark.name)
        values = {
            'name': placemark.name,
            'description': clean_description(placemark.description),
            'latitude': lat,
            'longitude': lon,
            'spot_source': source.id,
            'spot_source_name': source.name,
        }
        if image_urls:
            values['image_urls'] = image_urls
        if source.record_folder_name:
            values['folder_name'] = placemark.folder_name

        with backend_read(self.db, "既存スポットの検索"):
            existing = crud_spot.find_by_source_and_location(self.db, source.id, lat, lon)

        if existing is not None:
            with backend_write(self.db, "スポットの更新"):
                crud_spot.update_spot(self.db, existing, values)
            stats.updated += 1
            return

        geocode = await self.geocoder.reverse_geocode_silently(lat, lon)
        if geocode is not None:
            values.update(address=geocode.address, city=geocode.city, country_code=geocode.country_code)
            stats.geocoded += 1
        values.update(created_by=None, ranking=random.random(), average_rating=0.0, rating_count=0, wilson_lower_bound=0.0)
        with backend_write(self.db, "スポットの登録"):
            crud_spot.create_spot(self.db, values)
        stats.created += 1

    async def sync_source(self, source_id: str, user: CurrentUser) -> SyncResult:
        require_moderator(user)
        source = self.get_source(source_id)
        return await self._sync(source)

    async def _sync(self, source: SyncSource) -> SyncResult:
        logger.info("sync started: %s (%s) from %s", source.name, source.id, source.kmz_url)
        payload = await self.download_feed(source.kmz_url)
        placemarks = load_placemarks(source.kmz_url, payload, include_folders=source.include_folders)

        stats = SyncStats(total=len(placemarks))
        for placemark in placemarks:
            await self._apply_placemark(source, placemark, stats)

        with backend_write(self.db, "同期結果の記録"):
            crud_sync_source.record_sync(self.db, source, stats.model_dump())
        logger.info("sync finished: %s %s", source.name, stats.model_dump())
        return SyncResult(source_id=source.id, source_name=source.name, success=True, stats=stats)

    async def sync_all_sources(self, user: CurrentUser) -> SyncAllResult:
        """
        有効な全ての同期元を順番に同期する．1つの同期元の失敗は記録して次へ進む．
        """
        require_moderator(user)
        with backend_read(self.db, "同期元の取得"):
            sources = crud_sync_source.list_sources(self.db)
        if not sources:
            return SyncAllResult(message="有効な同期元がありません．", total_stats=SyncStats(), results=[])

        results = []
        total_stats = SyncStats()
        for source in sources:
            try:
                result = await self._sync(source)
            except SpotServiceError as e:
                logger.error("sync failed: %s (%s): %s", source.name, source.id, e.detail)
                result = SyncResult(source_id=source.id, source_name=source.name,
                                    success=False, stats=SyncStats(), error=e.detail)
            results.append(result)
            total_stats = total_stats.add(result.stats)

        return SyncAllResult(
            message=f"{len(results)}件の同期元を処理しました．",
            total_stats=total_stats,
            results=results,
        )

    # ---------- 同期元の管理 ----------

    def list_sources(self, include_inactive: bool = False) -> list[SyncSource]:
        with backend_read(self.db, "同期元の取得"):
            return crud_sync_source.list_sources(self.db, include_inactive=include_inactive)

    def get_source(self, source_id: str) -> SyncSource:
        with backend_read(self.db, "同期元の取得"):
            source = crud_sync_source.get_source(self.db, source_id)
        if source is None:
            raise NotFoundError(f"同期元が見つかりません: {source_id}")
        return source

    def create_source(self, request: SyncSourceCreate, user: CurrentUser) -> SyncSource:
        require_moderator(user)
        errors = {}
        if not request.name.strip():
            errors['name'] = "名前を入力してください．"
        if not request.kmz_url.strip():
            errors['kmz_url'] = "フィードのURLを入力してください．"
        if errors:
            raise SpotValidationError(errors)

        with backend_write(self.db, "同期元の作成"):
            source = crud_sync_source.create_source(self.db, request.model_dump())
        logger.info("sync source %s (%s) created by %s", source.name, source.id, user.user_id)
        return source

    def update_source(self, source_id: str, request: SyncSourceUpdate, user: CurrentUser) -> SyncSource:
        require_moderator(user)
        source = self.get_source(source_id)
        values = request.model_dump(exclude_unset=True)
        for name in ('name', 'kmz_url'):
            if name in values and not (values[name] or '').strip():
                raise SpotValidationError({name: "空にはできません．"})
        with backend_write(self.db, "同期元の更新"):
            return crud_sync_source.update_source(self.db, source, values)

    def delete_source(self, source_id: str, user: CurrentUser) -> None:
        """
        同期元のみ削除する．取り込み済みのスポットは残る（孤立スポットとしてモデレーションで確認できる）．
        """
        require_moderator(user)
        with backend_write(self.db, "同期元の削除"):
            deleted = crud_sync_source.delete_source(self.db, source_id)
        if not deleted:
            raise NotFoundError(f"同期元が見つかりません: {source_id}")
        logger.info("sync source %s deleted by %s", source_id, user.user_id)

def get_sync_service(
        db: Session = Depends(session.get_db),
        settings: Settings = Depends(get_settings),
        storage: StorageService = Depends(get_storage_service),
        geocoder: GeocodingService = Depends(get_geocoding_service)) -> SyncService:
    return SyncService(db=db, settings=settings, storage=storage, geocoder=geocoder)
