# app/models/spot.py
import uuid
from sqlalchemy import Column, String, Text, Float, Integer, Boolean, DateTime, ARRAY, func
from sqlalchemy.dialects.postgresql import JSONB
from app.db.base_class import Base
from geoalchemy2 import Geography

def new_spot_id() -> str:
    return uuid.uuid4().hex

class Spot(Base):
    __tablename__ = "spots"

    id = Column(String(32), primary_key=True, default=new_spot_id) # 作成時に採番する不透明なID

    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default='')
    tags = Column(ARRAY(String), nullable=True)

    # 読み出し用にfloatでも保持し，範囲検索はgeom（SRID=4326：世界測地系WGS84）で行う．
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    geom = Column(Geography(geometry_type='POINT', srid=4326), nullable=False)
    geohash = Column(String(12), index=True, nullable=True)

    # 属性（語彙はapp/constants/spot_attributes.py）
    spot_access = Column(String, nullable=True)
    spot_features = Column(ARRAY(String), nullable=True)
    spot_facilities = Column(JSONB, nullable=True) # {施設キー: 'yes' | 'no'}．キーが無ければ不明．
    good_for = Column(ARRAY(String), nullable=True)

    image_urls = Column(ARRAY(String), nullable=True)
    youtube_video_ids = Column(ARRAY(String), nullable=True)

    # 逆ジオコーディング結果
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    country_code = Column(String(2), nullable=True)

    created_by = Column(String, nullable=True)
    created_by_name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # 外部フィードから取り込んだスポットのみ設定される．NULLはネイティブスポット．
    spot_source = Column(String(32), index=True, nullable=True)
    spot_source_name = Column(String, nullable=True)
    folder_name = Column(String, nullable=True)

    duplicate_of = Column(String(32), index=True, nullable=True)
    hidden = Column(Boolean, nullable=False, default=False)

    # 評価の集計値はapp/crud/rating.pyがSQLで計算して書き込む．
    average_rating = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)
    wilson_lower_bound = Column(Float, nullable=False, default=0.0)
    ranking = Column(Float, nullable=True) # 同点時の並び順を決める乱数
