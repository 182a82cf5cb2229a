# app/constants/spot_attributes.py
"""
スポット属性の辞書．登録・編集・詳細表示の全てで同じラベル・アイコン・説明を使うための一元管理．
iconはMaterial Iconsの識別子．
"""
from enum import Enum

FALLBACK_ICON = 'info'

class SpotAccess(str, Enum):
    PUBLIC = 'public'
    RESTRICTED = 'restricted'
    PAID = 'paid'

class FacilityValue(str, Enum):
    # キーが存在しない状態が「不明」．Noneを値として保存しない．
    YES = 'yes'
    NO = 'no'

GOOD_FOR_SKILLS: dict[str, dict[str, str]] = {
    'vaults': {'label': 'Vaults', 'icon': 'directions_run', 'description': 'Jumping over obstacles'},
    'balance': {'label': 'Balance', 'icon': 'balance', 'description': 'Walking on narrow surfaces'},
    'ascend': {'label': 'Ascend', 'icon': 'arrow_upward', 'description': 'Climbing up structures'},
    'descend': {'label': 'Descend', 'icon': 'arrow_downward', 'description': 'Controlled descent techniques'},
    'speed_run': {'label': 'Speed run', 'icon': 'speed', 'description': 'Fast-paced movement sequences'},
    'water_challenges': {'label': 'Water challenges', 'icon': 'water', 'description': 'Water-based obstacles'},
    'pole_slide': {'label': 'Pole slide', 'icon': 'arrow_downward_outlined', 'description': 'Sliding down poles'},
    'precisions': {'label': 'Precisions', 'icon': 'center_focus_strong', 'description': 'Precise landing techniques'},
    'wall_runs': {'label': 'Wall Runs', 'icon': 'directions_run', 'description': 'Running up vertical surfaces'},
    'strides': {'label': 'Strides', 'icon': 'open_in_full', 'description': 'Long jumping movements'},
    'rolls': {'label': 'Rolls', 'icon': 'refresh', 'description': 'Rolling techniques for safe landings'},
    'cats': {'label': 'Cats', 'icon': 'pets', 'description': 'Cat-like climbing and hanging movements'},
    'flow': {'label': 'Flow', 'icon': 'waves', 'description': 'Smooth, continuous movement sequences'},
    'flips': {'label': 'Flips', 'icon': 'refresh', 'description': 'Aerial rotations and acrobatic movements'},
}

SPOT_FEATURES: dict[str, dict[str, str]] = {
    'walls_low': {'label': 'Walls - Low (<1m)', 'icon': 'view_in_ar', 'description': 'Low walls for vaulting (up to 1 meter)'},
    'walls_medium': {'label': 'Walls - Medium (1-2m)', 'icon': 'view_in_ar', 'description': 'Medium height walls (1 to 2 meters)'},
    'walls_high': {'label': 'Walls - High (>2m)', 'icon': 'view_in_ar', 'description': 'High walls for climbing (above 2 meters)'},
    'bars_low': {'label': 'Bars - Low (<1m)', 'icon': 'horizontal_rule', 'description': 'Low bars for swinging (up to 1 meter)'},
    'bars_medium': {'label': 'Bars - Medium (1-2m)', 'icon': 'horizontal_rule', 'description': 'Medium height bars (1 to 2 meters)'},
    'bars_high': {'label': 'Bars - High (>2m)', 'icon': 'horizontal_rule', 'description': 'High bars for advanced moves (above 2 meters)'},
    'climbing_tree': {'label': 'Climbing tree', 'icon': 'park', 'description': 'Tree suitable for climbing'},
    'rocks': {'label': 'Rocks', 'icon': 'terrain', 'description': 'Natural rock formations'},
    'soft_landing_pit': {'label': 'Soft landing pit', 'icon': 'toys', 'description': 'Soft surface for safe landings'},
    'roof_gap': {'label': 'Roof gap', 'icon': 'roofing', 'description': 'Jumping between rooftops'},
    'bouncy_equipment': {'label': 'Bouncy Equipment', 'icon': 'sports_gymnastics', 'description': 'Airtrack, trampoline, spring floor, or similar bouncy surfaces'},
}

SPOT_ACCESS: dict[str, dict[str, str]] = {
    SpotAccess.PUBLIC.value: {'label': 'Public', 'icon': 'lock_open', 'description': 'Open to everyone, no restrictions'},
    SpotAccess.RESTRICTED.value: {'label': 'Restricted', 'icon': 'lock', 'description': 'Limited access, may require permission'},
    SpotAccess.PAID.value: {'label': 'Paid', 'icon': 'payments', 'description': 'Requires payment or membership'},
}

SPOT_FACILITIES: dict[str, dict[str, str]] = {
    'covered': {'label': 'Covered', 'icon': 'roofing', 'description': 'Shelter from weather'},
    'lighting': {'label': 'Lighting', 'icon': 'lightbulb', 'description': 'Artificial lighting available'},
    'water_tap': {'label': 'Water tap', 'icon': 'water_drop', 'description': 'Access to drinking water'},
    'toilet': {'label': 'Toilet', 'icon': 'wc', 'description': 'Restroom facilities'},
    'parking': {'label': 'Parking', 'icon': 'local_parking', 'description': 'Vehicle parking available'},
}

# カテゴリ名は保存済みデータ・APIと共通のキー（goodForのみキャメルケース）
CATEGORIES: dict[str, dict[str, dict[str, str]]] = {
    'access': SPOT_ACCESS,
    'features': SPOT_FEATURES,
    'facilities': SPOT_FACILITIES,
    'goodFor': GOOD_FOR_SKILLS,
}

def _entry(category: str, key: str) -> dict[str, str] | None:
    return CATEGORIES.get(category, {}).get(key)

def get_label(category: str, key: str) -> str:
    entry = _entry(category, key)
    return entry['label'] if entry else key

def get_description(category: str, key: str) -> str:
    entry = _entry(category, key)
    return entry['description'] if entry else ''

def get_icon(category: str, key: str) -> str:
    entry = _entry(category, key)
    return entry['icon'] if entry else FALLBACK_ICON

def get_keys(category: str) -> list[str]:
    return list(CATEGORIES.get(category, {}).keys())

def get_entries(category: str) -> dict[str, dict[str, str]]:
    # 呼び出し側が辞書を書き換えても定数に影響しないようコピーを返す．
    return {key: dict(entry) for key, entry in CATEGORIES.get(category, {}).items()}

def is_known(category: str, key: str) -> bool:
    return _entry(category, key) is not None
