# scripts/sync_sources.py

# 有効な全ての同期元をコマンドラインから同期する（定期実行用）．

import sys
import asyncio
from pathlib import Path

# backend/ をPythonの検索パスに追加（先に実行しないとappが見つからないよ．）
sys.path.append(str(Path(__file__).resolve().parent.parent))

from app.core.auth import CurrentUser, UserRole
from app.core.config import get_settings
from app.core.logging import setup_logging
from app.db.session import SessionLocal
from app.services.geocoding_service import GeocodingService
from app.services.storage_service import StorageService
from app.services.sync_service import SyncService

SYSTEM_USER = CurrentUser(user_id='system', display_name='scheduled sync', role=UserRole.ADMIN)

async def main():
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    db = SessionLocal()
    try:
        service = SyncService(
            db=db,
            settings=settings,
            storage=StorageService(settings),
            geocoder=GeocodingService(settings),
        )
        result = await service.sync_all_sources(SYSTEM_USER)
    finally:
        db.close()

    print(result.message)
    for r in result.results:
        status = "OK" if r.success else f"失敗: {r.error}"
        print(f"  {r.source_name}: {status} {r.stats.model_dump()}")
    print(f"合計: {result.total_stats.model_dump()}")

if __name__ == "__main__":
    asyncio.run(main())
