# app/schemas/rating.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

class RatingCreate(BaseModel):
    rating: float = Field(ge=1, le=5)

class Rating(BaseModel):
    id: str
    spot_id: str
    user_id: str
    rating: float
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

class RatingsResponse(BaseModel):
    total: int
    ratings: list[Rating]

class RatingStats(BaseModel):
    # 集計値は保存済みの値をそのまま返す．ここで再計算はしない．
    average_rating: float = 0.0
    rating_count: int = 0
    wilson_lower_bound: float = 0.0
    user_rating: float | None = None
