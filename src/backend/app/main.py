# app/main.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends
from app.core.config import Settings, get_settings
from app.core.errors import register_error_handlers
from app.core.logging import setup_logging
from app.routers import attributes, geocoding, moderation, reports, spots, sync_sources

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if not get_settings().is_configured:
        logger.warning("DB・S3・Geocodingの接続情報が揃っていません．.envを確認してください．")
    yield

app = FastAPI(lifespan=lifespan)

register_error_handlers(app)

app.include_router(attributes.router)
app.include_router(spots.router)
app.include_router(sync_sources.router)
app.include_router(moderation.router)
app.include_router(reports.router)
app.include_router(geocoding.router)

@app.get("/")
def read_root():
    return {"message": "Welcome to Parkour Spots API!"}

@app.get("/health")
def health(settings: Settings = Depends(get_settings)):
    """
    外部サービスの接続情報が揃っていなければ，configured=Falseを返す（起動自体は止めない）．
    """
    return {"status": "ok", "configured": settings.is_configured}
