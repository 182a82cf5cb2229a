# app/services/spot_form.py
"""
スポットの登録・編集フォーム．
送信前の検証（ネットワーク呼び出しの前にフィールド単位でエラーを返す）と，
位置の選択に伴う逆ジオコーディング結果の反映を担当する．
"""
import logging
from dataclasses import dataclass, field
from app.constants import spot_attributes
from app.constants.spot_attributes import FacilityValue, SpotAccess
from app.core.auth import CurrentUser
from app.core.errors import SpotValidationError
from app.schemas.geocoding import GeocodeResult
from app.schemas.spot import SpotWriteRequest

logger = logging.getLogger(__name__)

DEFAULT_MIN_DESCRIPTION_LENGTH = 10

def parse_tags(raw: str | list[str] | None) -> list[str]:
    """
    カンマ区切りの入力をタグのリストにする．空白は除去し，空のタグと重複は捨てる．
    """
    if raw is None:
        return []
    parts = raw.split(',') if isinstance(raw, str) else raw
    tags = []
    for part in parts:
        tag = part.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags

@dataclass
class LatestRequestGuard:
    """
    連続した非同期リクエストのうち，最後に発行したものの応答だけを採用するための連番．
    """
    _sequence: int = 0

    def issue(self) -> int:
        self._sequence += 1
        return self._sequence

    def is_latest(self, token: int) -> bool:
        return token == self._sequence

@dataclass
class SpotForm:
    name: str = ''
    description: str = ''
    tags: list[str] = field(default_factory=list)

    device_location: tuple[float, float] | None = None # 端末の位置情報
    picked_location: tuple[float, float] | None = None # 地図上で選んだ位置（端末の位置より優先）

    spot_access: str | None = None
    spot_features: list[str] = field(default_factory=list)
    spot_facilities: dict[str, str] = field(default_factory=dict)
    good_for: list[str] = field(default_factory=list)
    youtube_video_ids: list[str] = field(default_factory=list)

    existing_image_urls: list[str] = field(default_factory=list) # アップロード済み
    new_images: list[bytes] = field(default_factory=list) # アップロード前のバイト列
    images_to_delete: list[str] = field(default_factory=list)

    geocode: GeocodeResult | None = None
    _geocode_guard: LatestRequestGuard = field(default_factory=LatestRequestGuard, repr=False)

    @classmethod
    def from_request(cls, request: SpotWriteRequest) -> "SpotForm":
        form = cls(
            name=request.name,
            description=request.description,
            tags=parse_tags(request.tags),
            spot_access=request.spot_access,
            spot_features=list(request.spot_features),
            good_for=list(request.good_for),
            youtube_video_ids=list(request.youtube_video_ids),
            existing_image_urls=list(request.image_urls),
            new_images=list(request.images),
            images_to_delete=list(request.images_to_delete),
        )
        if request.device_latitude is not None and request.device_longitude is not None:
            form.device_location = (request.device_latitude, request.device_longitude)
        if request.picked_latitude is not None and request.picked_longitude is not None:
            form.picked_location = (request.picked_latitude, request.picked_longitude)
        # Noneは「不明」なのでキーごと落とす．値の検証はvalidate()でまとめて行う．
        form.spot_facilities = {k: v for k, v in request.spot_facilities.items() if v is not None}
        return form

    @classmethod
    def from_spot(cls, spot) -> "SpotForm":
        """
        編集画面の初期値．既存の画像・住所はそのまま引き継ぐ．
        """
        return cls(
            name=spot.name,
            description=spot.description or '',
            tags=list(spot.tags or []),
            picked_location=(spot.latitude, spot.longitude),
            spot_access=spot.spot_access,
            spot_features=list(spot.spot_features or []),
            spot_facilities=dict(spot.spot_facilities or {}),
            good_for=list(spot.good_for or []),
            youtube_video_ids=list(spot.youtube_video_ids or []),
            existing_image_urls=list(spot.image_urls or []),
            geocode=GeocodeResult(address=spot.address, city=spot.city, country_code=spot.country_code),
        )

    @property
    def location(self) -> tuple[float, float] | None:
        return self.picked_location or self.device_location

    @property
    def kept_image_urls(self) -> list[str]:
        return [url for url in self.existing_image_urls if url not in self.images_to_delete]

    @property
    def image_count(self) -> int:
        return len(self.kept_image_urls) + len(self.new_images)

    def restrict_images_to(self, stored_urls: list[str]) -> None:
        """
        既存画像・削除する画像の指定を，編集対象のスポットに保存済みのURLだけに絞る．
        """
        stored = set(stored_urls)
        self.existing_image_urls = [url for url in self.existing_image_urls if url in stored]
        self.images_to_delete = [url for url in self.images_to_delete if url in stored]

    def set_facility(self, key: str, value: FacilityValue | str | None) -> None:
        """
        施設の3状態（あり・なし・不明）．Noneはキーごと削除し「不明」とする．
        """
        if not spot_attributes.is_known('facilities', key):
            raise ValueError(f"未知の施設です: {key}")
        if value is None:
            self.spot_facilities.pop(key, None)
        else:
            self.spot_facilities[key] = FacilityValue(value).value

    def toggle_feature(self, key: str) -> None:
        _toggle(self.spot_features, key)

    def toggle_good_for(self, key: str) -> None:
        _toggle(self.good_for, key)

    def add_image(self, data: bytes) -> None:
        self.new_images.append(data)

    def remove_existing_image(self, url: str) -> None:
        if url in self.existing_image_urls and url not in self.images_to_delete:
            self.images_to_delete.append(url)

    def validate(self, user: CurrentUser, is_edit: bool = False,
                 min_description_length: int = DEFAULT_MIN_DESCRIPTION_LENGTH) -> None:
        errors: dict[str, str] = {}

        if not self.name.strip():
            errors['name'] = "スポット名を入力してください．"

        # モデレーターは編集時のみ説明文を省略できる．
        description = self.description.strip()
        if not (user.is_moderator and is_edit):
            if not description:
                errors['description'] = "説明を入力してください．"
            elif len(description) < min_description_length:
                errors['description'] = f"説明は{min_description_length}文字以上で入力してください．"

        if self.image_count < 1 and not user.is_moderator:
            errors['images'] = "画像を1枚以上追加してください．"

        location = self.location
        if location is None:
            errors['location'] = "位置を取得するか，地図上で選択してください．"
        else:
            lat, lng = location
            if not (-90 <= lat <= 90 and -180 <= lng <= 180):
                errors['location'] = f"座標が範囲外です: ({lat}, {lng})"

        if self.spot_access is not None and self.spot_access not in {a.value for a in SpotAccess}:
            errors['spot_access'] = f"未知のアクセス区分です: {self.spot_access}"
        unknown_features = [k for k in self.spot_features if not spot_attributes.is_known('features', k)]
        if unknown_features:
            errors['spot_features'] = f"未知の特徴です: {', '.join(unknown_features)}"
        unknown_skills = [k for k in self.good_for if not spot_attributes.is_known('goodFor', k)]
        if unknown_skills:
            errors['good_for'] = f"未知のスキルです: {', '.join(unknown_skills)}"
        bad_facilities = [
            k for k, v in self.spot_facilities.items()
            if not spot_attributes.is_known('facilities', k) or v not in {f.value for f in FacilityValue}
        ]
        if bad_facilities:
            errors['spot_facilities'] = f"施設の値が不正です: {', '.join(bad_facilities)}"

        if errors:
            raise SpotValidationError(errors)

    async def pick_location(self, lat: float, lng: float, geocoder) -> GeocodeResult | None:
        """
        地図上で位置を選び，逆ジオコーディングする．
        応答待ちの間に別の位置が選ばれた場合，古い応答は捨てる．
        """
        self.picked_location = (lat, lng)
        self.geocode = None
        token = self._geocode_guard.issue()

        result = await geocoder.reverse_geocode_silently(lat, lng)
        if not self._geocode_guard.is_latest(token):
            logger.debug("discarded stale geocode response for (%s, %s)", lat, lng)
            return None
        self.geocode = result
        return result

    def to_values(self, image_urls: list[str]) -> dict:
        """
        DBに書き込む値．locationは検証済みである前提．
        """
        lat, lng = self.location
        values = {
            'name': self.name.strip(),
            'description': self.description.strip(),
            'tags': list(self.tags),
            'latitude': lat,
            'longitude': lng,
            'spot_access': self.spot_access,
            'spot_features': list(self.spot_features),
            'spot_facilities': dict(self.spot_facilities),
            'good_for': list(self.good_for),
            'youtube_video_ids': list(self.youtube_video_ids),
            'image_urls': list(image_urls),
        }
        if self.geocode is not None:
            values['address'] = self.geocode.address
            values['city'] = self.geocode.city
            values['country_code'] = self.geocode.country_code
        return values

    def clear(self) -> None:
        """
        送信成功後に一時的な入力状態を捨てる．
        """
        self.new_images.clear()
        self.images_to_delete.clear()
        self.picked_location = None
        self.geocode = None

def _toggle(values: list[str], key: str) -> None:
    if key in values:
        values.remove(key)
    else:
        values.append(key)
