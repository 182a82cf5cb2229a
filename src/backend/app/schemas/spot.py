# app/schemas/spot.py
from datetime import datetime
from pydantic import BaseModel, Base64Bytes, ConfigDict, Field, computed_field
from app.constants import spot_attributes

class AttributeView(BaseModel):
    category: str
    key: str
    label: str
    icon: str

class Spot(BaseModel):
    """
    APIで返すスポット．DBモデル（app/models/spot.py）から自動で変換できる．
    """
    id: str
    name: str
    description: str = ''
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    tags: list[str] | None = None

    spot_access: str | None = None
    spot_features: list[str] | None = None
    spot_facilities: dict[str, str] | None = None
    good_for: list[str] | None = None

    image_urls: list[str] | None = None
    youtube_video_ids: list[str] | None = None
    address: str | None = None
    city: str | None = None
    country_code: str | None = None

    created_by: str | None = None
    created_by_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    spot_source: str | None = None
    spot_source_name: str | None = None
    folder_name: str | None = None
    duplicate_of: str | None = None
    hidden: bool = False

    average_rating: float = 0.0
    rating_count: int = Field(default=0, ge=0)
    wilson_lower_bound: float = 0.0
    ranking: float | None = None

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def attributes(self) -> list[AttributeView]:
        """
        表示用のラベルとアイコン．古いデータの未知のキーは辞書のフォールバックで表示する．
        """
        pairs = []
        if self.spot_access:
            pairs.append(('access', self.spot_access))
        pairs += [('features', key) for key in self.spot_features or []]
        pairs += [('facilities', key) for key, value in (self.spot_facilities or {}).items() if value == 'yes']
        pairs += [('goodFor', key) for key in self.good_for or []]
        return [
            AttributeView(
                category=category,
                key=key,
                label=spot_attributes.get_label(category, key),
                icon=spot_attributes.get_icon(category, key),
            )
            for category, key in pairs
        ]

# APIレスポンス全体を表すスキーマ
class SpotsResponse(BaseModel):
    total: int
    spots: list[Spot]

class Marker(BaseModel):
    id: str
    lat: float
    lng: float
    title: str

class VisibleSpotsResponse(BaseModel):
    total: int
    spots: list[Spot]
    markers: dict[str, Marker]

class TopSpotsResponse(BaseModel):
    spots: list[Spot]
    total_count: int
    shown_count: int
    average_wilson: float

class SpotWriteRequest(BaseModel):
    """
    登録・編集フォームの送信内容．画像はアップロード前のバイト列（base64）か，アップロード済みのURL．
    検証はapp/services/spot_form.pyで行うため，ここでは型のみを定める．
    """
    name: str = ''
    description: str = ''
    tags: str | list[str] | None = None # 入力欄はカンマ区切り
    device_latitude: float | None = None
    device_longitude: float | None = None
    picked_latitude: float | None = None
    picked_longitude: float | None = None

    spot_access: str | None = None
    spot_features: list[str] = []
    spot_facilities: dict[str, str | None] = {}
    good_for: list[str] = []
    youtube_video_ids: list[str] = []

    image_urls: list[str] = []
    images: list[Base64Bytes] = []
    images_to_delete: list[str] = []

class MarkDuplicateRequest(BaseModel):
    original_spot_id: str
    transfer_photos: bool = False
    transfer_youtube_links: bool = False
    overwrite_name: bool = False
    overwrite_description: bool = False
    overwrite_location: bool = False
    overwrite_spot_attributes: bool = False

class HideRequest(BaseModel):
    hidden: bool
