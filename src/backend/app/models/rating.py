# app/models/rating.py
import uuid
from sqlalchemy import Column, String, Float, DateTime, ForeignKey, UniqueConstraint, func
from app.db.base_class import Base

class Rating(Base):
    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint('spot_id', 'user_id', name='uq_ratings_spot_user'), # 1ユーザー1スポットにつき1件
    )

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    spot_id = Column(String(32), ForeignKey('spots.id', ondelete='CASCADE'), index=True, nullable=False)
    user_id = Column(String, index=True, nullable=False)
    rating = Column(Float, nullable=False) # 1〜5の星の数
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
