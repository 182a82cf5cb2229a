# app/services/spot_service.py
"""
スポットに関する全ての読み書きの窓口．
DBを唯一の正とし，返ってきた内容をそのままSpotStoreに流して購読者へ通知する（楽観的更新はしない）．
"""
import logging
import random
from collections.abc import Callable
from contextlib import contextmanager
from functools import lru_cache
from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.auth import CurrentUser, require_moderator, require_user
from app.core.config import Settings, get_settings
from app.core.errors import BackendReadError, BackendWriteError, NotFoundError, PermissionDeniedError, SpotValidationError
from app.crud import rating as crud_rating
from app.crud import spot as crud_spot
from app.db import session
from app.models import AuditAction, Rating, Spot
from app.services import audit_service
from app.schemas.rating import RatingStats
from app.schemas.spot import MarkDuplicateRequest
from app.services.geocoding_service import GeocodingService, get_geocoding_service
from app.services.spot_form import SpotForm
from app.services.storage_service import StorageService, get_storage_service
from app.services.viewport_service import ViewportBounds, VisibleSpots, compute_visible_spots

logger = logging.getLogger(__name__)

class SpotStore:
    """
    プロセス全体で共有するスポット一覧のキャッシュ．
    publish()は一覧を丸ごと差し替え，購読者へ同期的に通知する．
    """
    def __init__(self):
        self._spots: list = []
        self._listeners: list[Callable[[list], None]] = []

    @property
    def spots(self) -> list:
        return list(self._spots)

    def subscribe(self, listener: Callable[[list], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def publish(self, spots: list) -> None:
        self._spots = list(spots)
        self._notify()

    def upsert(self, spot) -> None:
        for i, current in enumerate(self._spots):
            if current.id == spot.id:
                self._spots[i] = spot
                break
        else:
            self._spots.append(spot)
        self._notify()

    def remove(self, spot_id: str) -> None:
        self._spots = [s for s in self._spots if s.id != spot_id]
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.spots)

@lru_cache
def get_spot_store() -> SpotStore:
    return SpotStore()

@contextmanager
def backend_read(db: Session, action: str):
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("%s failed: %s", action, e)
        raise BackendReadError(f"{action}に失敗しました．再試行してください．") from e

@contextmanager
def backend_write(db: Session, action: str):
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("%s failed: %s", action, e)
        raise BackendWriteError(f"{action}に失敗しました．") from e

def delete_unshared_images(db: Session, storage: StorageService, image_urls: list[str], spot_id: str) -> list[str]:
    """
    spot_id以外のスポットが参照していない画像だけをストレージから消す．消したURLを返す．
    参照の確認に失敗した画像は残す（未使用画像の掃除で後から消せる）．
    """
    deleted = []
    for url in image_urls:
        try:
            shared = crud_spot.is_image_referenced_elsewhere(db, url, spot_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("kept image %s: reference check failed: %s", url, e)
            continue
        if shared:
            logger.info("kept image %s: still used by another spot", url)
            continue
        if storage.delete_image(url):
            deleted.append(url)
    return deleted

class SpotService:
    def __init__(self, db: Session, settings: Settings, storage: StorageService,
                 geocoder: GeocodingService, store: SpotStore | None = None):
        self.db = db
        self.settings = settings
        self.storage = storage
        self.geocoder = geocoder
        self.store = store if store is not None else get_spot_store()

    # ---------- 読み込み ----------

    def get_spot(self, spot_id: str) -> Spot:
        with backend_read(self.db, "スポットの取得"):
            spot = crud_spot.get_spot(self.db, spot_id)
        if spot is None:
            raise NotFoundError(f"スポットが見つかりません: {spot_id}")
        return spot

    def search_spots(
            self,
            q: str = '',
            bounds: ViewportBounds | None = None,
            spot_source: str | None = None,
            has_images: bool = False,
            include_hidden: bool = False,
            limit: int = 500) -> VisibleSpots:
        with backend_read(self.db, "スポットの検索"):
            candidates = crud_spot.search_spots(
                self.db, q=q, spot_source=spot_source, has_images=has_images,
                include_hidden=include_hidden, limit=limit,
                bounds=(bounds.south, bounds.west, bounds.north, bounds.east) if bounds is not None else None,
            )
        self.store.publish(candidates)
        # キーワードと範囲はDB側で絞り込み済み．ここではマーカーを作る．
        return compute_visible_spots(candidates, '', bounds)

    def top_spots_in_bounds(self, bounds: ViewportBounds, limit: int | None = None,
                            spot_source: str | None = None, has_images: bool = False) -> tuple[list[Spot], int, float]:
        with backend_read(self.db, "ランキングの取得"):
            return crud_spot.get_top_spots_in_bounds(
                self.db, bounds.south, bounds.west, bounds.north, bounds.east,
                limit=limit or self.settings.TOP_SPOTS_LIMIT,
                spot_source=spot_source, has_images=has_images,
            )

    def get_duplicates(self, spot_id: str) -> list[Spot]:
        with backend_read(self.db, "重複スポットの取得"):
            return crud_spot.get_duplicates_of(self.db, spot_id)

    def search_duplicate_candidates(self, user: CurrentUser, exclude_spot_id: str | None = None,
                                    q: str | None = None, limit: int = 1000) -> list[Spot]:
        require_moderator(user)
        with backend_read(self.db, "重複候補の検索"):
            return crud_spot.search_duplicate_candidates(self.db, exclude_spot_id=exclude_spot_id, q=q, limit=limit)

    # ---------- 書き込み ----------

    async def create_spot(self, form: SpotForm, user: CurrentUser) -> Spot:
        require_user(user)
        form.validate(user, is_edit=False, min_description_length=self.settings.MIN_DESCRIPTION_LENGTH)

        image_urls = self.storage.upload_images(form.new_images, name_hint=form.name)
        lat, lng = form.location
        if form.geocode is None:
            form.geocode = await self.geocoder.reverse_geocode_silently(lat, lng)

        values = form.to_values(image_urls)
        values.update(
            created_by=user.user_id,
            created_by_name=user.display_name,
            ranking=random.random(),
            duplicate_of=None,
            average_rating=0.0,
            rating_count=0,
            wilson_lower_bound=0.0,
        )
        with backend_write(self.db, "スポットの登録"):
            spot = crud_spot.create_spot(self.db, values)

        logger.info("spot %s created by %s with %d images", spot.id, user.user_id, len(image_urls))
        form.clear()
        self.store.upsert(spot)
        return spot

    async def update_spot(self, spot_id: str, form: SpotForm, user: CurrentUser) -> Spot:
        require_user(user)
        spot = self.get_spot(spot_id)
        if not (user.is_moderator or spot.created_by == user.user_id):
            raise PermissionDeniedError("このスポットを編集する権限がありません．")
        form.restrict_images_to(spot.image_urls or [])
        form.validate(user, is_edit=True, min_description_length=self.settings.MIN_DESCRIPTION_LENGTH)

        removed_images = list(form.images_to_delete)
        image_urls = form.kept_image_urls + self.storage.upload_images(form.new_images, name_hint=form.name)

        lat, lng = form.location
        moved = (lat, lng) != (spot.latitude, spot.longitude)
        if moved and form.geocode is None:
            form.geocode = await self.geocoder.reverse_geocode_silently(lat, lng)

        values = form.to_values(image_urls)
        if moved and form.geocode is None:
            # 移動後の住所が取れなければ，移動前の住所も残さない．
            values.update(address=None, city=None, country_code=None)

        changes = audit_service.spot_changes(spot, values)
        with backend_write(self.db, "スポットの更新"):
            if changes:
                audit_service.record(self.db, AuditAction.SPOT_EDIT, spot.id, user, changes=changes)
            spot = crud_spot.update_spot(self.db, spot, values)

        # 古い画像は更新が確定してから消す．
        delete_unshared_images(self.db, self.storage, removed_images, spot.id)
        logger.info("spot %s updated by %s", spot.id, user.user_id)
        form.clear()
        self.store.upsert(spot)
        return spot

    def delete_spot(self, spot_id: str, user: CurrentUser) -> None:
        require_moderator(user)
        spot = self.get_spot(spot_id)
        with backend_write(self.db, "スポットの削除"):
            audit_service.record(self.db, AuditAction.SPOT_DELETE, spot_id, user,
                                 details={'name': spot.name, 'spot_source': spot.spot_source})
            deleted = crud_spot.delete_spot(self.db, spot_id)
        if not deleted:
            raise NotFoundError(f"スポットが見つかりません: {spot_id}")
        logger.info("spot %s deleted by %s", spot_id, user.user_id)
        self.store.remove(spot_id)

    def delete_spots(self, spot_ids: list[str], user: CurrentUser) -> tuple[int, int]:
        """
        まとめて削除する．1件ずつ処理し，失敗しても残りは続ける．（削除数，失敗数）を返す．
        """
        require_moderator(user)
        deleted = failed = 0
        for spot_id in spot_ids:
            try:
                self.delete_spot(spot_id, user)
                deleted += 1
            except (NotFoundError, BackendWriteError) as e:
                logger.warning("failed to delete spot %s: %s", spot_id, e.detail)
                failed += 1
        return deleted, failed

    def set_hidden(self, spot_id: str, hidden: bool, user: CurrentUser) -> Spot:
        require_moderator(user)
        spot = self.get_spot(spot_id)
        action = AuditAction.SPOT_HIDDEN if hidden else AuditAction.SPOT_UNHIDDEN
        with backend_write(self.db, "表示状態の変更"):
            audit_service.record(self.db, action, spot_id, user, details={'hidden': hidden})
            spot = crud_spot.update_spot(self.db, spot, {'hidden': hidden})
        self.store.upsert(spot)
        return spot

    def create_native_from_existing(self, spot_id: str, user: CurrentUser) -> Spot:
        """
        外部フィード由来のスポットを，ネイティブスポットとして複製する．評価は引き継がない．
        """
        require_moderator(user)
        source = self.get_spot(spot_id)
        values = {
            name: getattr(source, name)
            for name in ('name', 'description', 'latitude', 'longitude', 'address', 'city', 'country_code',
                         'image_urls', 'youtube_video_ids', 'tags', 'spot_access', 'spot_features',
                         'spot_facilities', 'good_for')
        }
        values.update(
            created_by=user.user_id,
            created_by_name=user.display_name,
            ranking=random.random(),
            spot_source=None,
            duplicate_of=None,
        )
        with backend_write(self.db, "ネイティブスポットの作成"):
            spot = crud_spot.create_spot(self.db, values)
        self.store.upsert(spot)
        return spot

    # ---------- 評価 ----------

    def rate_spot(self, spot_id: str, rating: float, user: CurrentUser) -> RatingStats:
        """
        1回の操作につき1件の評価を送る．集計はcrud_rating（SQL）に任せ，保存された値を返す．
        """
        require_user(user)
        self.get_spot(spot_id)
        with backend_write(self.db, "評価の送信"):
            crud_rating.upsert_rating(self.db, spot_id, user.user_id, rating)
        return self.get_rating_stats(spot_id, user)

    def get_spot_ratings(self, spot_id: str) -> list[Rating]:
        self.get_spot(spot_id)
        with backend_read(self.db, "評価一覧の取得"):
            return crud_rating.list_ratings(self.db, spot_id)

    def get_rating_stats(self, spot_id: str, user: CurrentUser | None = None) -> RatingStats:
        spot = self.get_spot(spot_id)
        self.db.refresh(spot)
        user_rating = None
        if user is not None and user.is_authenticated:
            with backend_read(self.db, "評価の取得"):
                user_rating = crud_rating.get_user_rating(self.db, spot_id, user.user_id)
        return RatingStats(
            average_rating=spot.average_rating or 0.0,
            rating_count=spot.rating_count or 0,
            wilson_lower_bound=spot.wilson_lower_bound or 0.0,
            user_rating=user_rating,
        )

    # ---------- 重複 ----------

    def mark_as_duplicate(self, spot_id: str, request: MarkDuplicateRequest, user: CurrentUser) -> Spot:
        require_moderator(user)
        if spot_id == request.original_spot_id:
            raise SpotValidationError({'original_spot_id': "スポットを自分自身の重複にはできません．"})
        original = self.get_spot(request.original_spot_id)
        duplicate = self.get_spot(spot_id)
        if original.duplicate_of is not None:
            raise SpotValidationError({'original_spot_id': "重複として登録済みのスポットを元にはできません．"})
        if original.spot_source is not None:
            raise SpotValidationError({'original_spot_id': "元のスポットはネイティブスポットである必要があります．"})

        updates = merge_duplicate_into_original(original, duplicate, request)
        with backend_write(self.db, "重複の登録"):
            audit_service.record(self.db, AuditAction.SPOT_MARKED_AS_DUPLICATE, spot_id, user,
                                 changes=audit_service.spot_changes(original, updates) or None,
                                 details=request.model_dump())
            if updates:
                original = crud_spot.update_spot(self.db, original, updates)
            duplicate = crud_spot.update_spot(self.db, duplicate, {'duplicate_of': original.id})

        logger.info("spot %s marked as duplicate of %s by %s (fields: %s)",
                    spot_id, original.id, user.user_id, sorted(updates))
        self.store.upsert(original)
        self.store.upsert(duplicate)
        return duplicate

def merge_duplicate_into_original(original, duplicate, request: MarkDuplicateRequest) -> dict:
    """
    重複スポットから元のスポットへ引き継ぐ値を求める．空の値は引き継がない．
    """
    updates = {}

    if request.transfer_photos and duplicate.image_urls:
        existing = list(original.image_urls or [])
        new = [url for url in duplicate.image_urls if url not in existing]
        if new:
            updates['image_urls'] = existing + new

    if request.transfer_youtube_links and duplicate.youtube_video_ids:
        existing = list(original.youtube_video_ids or [])
        new = [vid for vid in duplicate.youtube_video_ids if vid not in existing]
        if new:
            updates['youtube_video_ids'] = existing + new

    if request.overwrite_name and duplicate.name:
        updates['name'] = duplicate.name
    if request.overwrite_description and duplicate.description:
        updates['description'] = duplicate.description

    if request.overwrite_location:
        if duplicate.latitude != 0.0 and duplicate.longitude != 0.0:
            updates['latitude'] = duplicate.latitude
            updates['longitude'] = duplicate.longitude
        for name in ('address', 'city', 'country_code'):
            if getattr(duplicate, name):
                updates[name] = getattr(duplicate, name)

    if request.overwrite_spot_attributes:
        for name in ('spot_access', 'spot_features', 'spot_facilities', 'good_for'):
            if getattr(duplicate, name):
                updates[name] = getattr(duplicate, name)

    return updates

def get_spot_service(
        db: Session = Depends(session.get_db),
        settings: Settings = Depends(get_settings),
        storage: StorageService = Depends(get_storage_service),
        geocoder: GeocodingService = Depends(get_geocoding_service),
        store: SpotStore = Depends(get_spot_store)) -> SpotService:
    return SpotService(db=db, settings=settings, storage=storage, geocoder=geocoder, store=store)
