# app/services/moderation_service.py
"""
モデレーター向けのメンテナンス操作．全ての操作でモデレーター権限を要求する．
スポット単体の削除・非表示・重複登録はapp/services/spot_service.pyにある．
"""
import logging
from fastapi import Depends
from sqlalchemy.orm import Session
from app.core.auth import CurrentUser, require_moderator
from app.core.config import Settings, get_settings
from app.core.errors import NotFoundError, SpotValidationError
from app.crud import audit_log as crud_audit_log
from app.crud import rating as crud_rating
from app.crud import spot as crud_spot
from app.crud import sync_source as crud_sync_source
from app.db import session
from app.models import AuditLog, Spot
from app.schemas.moderation import (
    CleanupResult, MissingImage, MissingImagesResult, OrphanedSpot, OrphanedSpotsResult,
)
from app.services.spot_service import backend_read, backend_write, delete_unshared_images
from app.services.storage_service import StorageService, get_storage_service

logger = logging.getLogger(__name__)

class ModerationService:
    def __init__(self, db: Session, settings: Settings, storage: StorageService):
        self.db = db
        self.settings = settings
        self.storage = storage

    def _referenced_keys(self) -> set[str]:
        with backend_read(self.db, "画像参照の取得"):
            references = crud_spot.list_image_references(self.db)
        keys = set()
        for _, _, urls in references:
            for url in urls:
                key = self.settings.object_key_from_url(url)
                if key is not None:
                    keys.add(key)
        return keys

    def cleanup_unused_images(self, user: CurrentUser, dry_run: bool = True) -> CleanupResult:
        """
        どのスポットからも参照されていない画像を削除する．dry_runでは一覧を返すだけ．
        """
        require_moderator(user)
        stored_keys = self.storage.list_image_keys()
        referenced = self._referenced_keys()
        unused = sorted(key for key in stored_keys if key not in referenced)

        deleted = 0
        if unused and not dry_run:
            deleted = self.storage.delete_keys(unused)
        logger.info("image cleanup by %s: scanned=%d unused=%d deleted=%d dry_run=%s",
                    user.user_id, len(stored_keys), len(unused), deleted, dry_run)
        return CleanupResult(scanned=len(stored_keys), unused=unused, deleted=deleted, dry_run=dry_run)

    def find_missing_images(self, user: CurrentUser) -> MissingImagesResult:
        require_moderator(user)
        with backend_read(self.db, "画像参照の取得"):
            references = crud_spot.list_image_references(self.db)

        missing = []
        for spot_id, spot_name, urls in references:
            for url in urls:
                if not self.storage.image_exists(url):
                    missing.append(MissingImage(spot_id=spot_id, spot_name=spot_name, image_url=url))
        return MissingImagesResult(checked_spots=len(references), missing=missing)

    def find_orphaned_spots(self, user: CurrentUser) -> OrphanedSpotsResult:
        """
        削除済みの同期元を指しているスポット．
        """
        require_moderator(user)
        with backend_read(self.db, "孤立スポットの検索"):
            source_ids = list(crud_sync_source.get_source_names(self.db))
            spots = crud_spot.list_spots_with_sources_not_in(self.db, source_ids)
        return OrphanedSpotsResult(orphaned=[
            OrphanedSpot(spot_id=spot.id, spot_name=spot.name, spot_source=spot.spot_source)
            for spot in spots
        ])

    def upload_replacement_image(self, spot_id: str, old_image_url: str, data: bytes, user: CurrentUser) -> Spot:
        """
        スポットの画像1枚を差し替える．並び順は保ち，古い画像はストレージから消す．
        """
        require_moderator(user)
        with backend_read(self.db, "スポットの取得"):
            spot = crud_spot.get_spot(self.db, spot_id)
        if spot is None:
            raise NotFoundError(f"スポットが見つかりません: {spot_id}")

        image_urls = list(spot.image_urls or [])
        if old_image_url not in image_urls:
            raise SpotValidationError({'old_image_url': "このスポットの画像ではありません．"})

        new_url = self.storage.upload_image(data, name_hint=spot.name)
        image_urls[image_urls.index(old_image_url)] = new_url
        with backend_write(self.db, "画像の差し替え"):
            spot = crud_spot.update_spot(self.db, spot, {'image_urls': image_urls})

        delete_unshared_images(self.db, self.storage, [old_image_url], spot.id)
        logger.info("image of spot %s replaced by %s: %s -> %s", spot_id, user.user_id, old_image_url, new_url)
        return spot

    def update_cached_source_names(self, user: CurrentUser) -> int:
        require_moderator(user)
        with backend_write(self.db, "同期元名の更新"):
            names = crud_sync_source.get_source_names(self.db)
            return crud_spot.update_source_names(self.db, names)

    def recompute_ratings(self, user: CurrentUser) -> int:
        """
        評価のある全スポットの集計値を計算し直す．
        """
        require_moderator(user)
        with backend_write(self.db, "評価の再集計"):
            return crud_rating.recompute_spot_aggregate(self.db)

    def list_audit_log(self, user: CurrentUser, spot_id: str | None = None,
                       user_id: str | None = None, limit: int = 100) -> list[AuditLog]:
        """
        新しい順．spot_id・user_idで絞り込める．
        """
        require_moderator(user)
        with backend_read(self.db, "監査ログの取得"):
            return crud_audit_log.list_entries(self.db, spot_id=spot_id, user_id=user_id, limit=limit)

def get_moderation_service(
        db: Session = Depends(session.get_db),
        settings: Settings = Depends(get_settings),
        storage: StorageService = Depends(get_storage_service)) -> ModerationService:
    return ModerationService(db=db, settings=settings, storage=storage)
