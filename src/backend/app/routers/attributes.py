# app/routers/attributes.py
from fastapi import APIRouter

from app.constants import spot_attributes
from app.core.errors import NotFoundError
from app.schemas import attribute as schemas_attribute

router = APIRouter()

def _category(category: str) -> schemas_attribute.AttributeCategory:
    entries = [
        schemas_attribute.AttributeEntry(key=key, **entry)
        for key, entry in spot_attributes.get_entries(category).items()
    ]
    return schemas_attribute.AttributeCategory(category=category, entries=entries)

@router.get("/api/v1/attributes", response_model=schemas_attribute.AttributesResponse)
def list_attributes():
    """
    登録フォームと詳細表示で使う属性の辞書（ラベル・アイコン・説明）．
    """
    return {"categories": [_category(category) for category in spot_attributes.CATEGORIES]}

@router.get("/api/v1/attributes/{category}", response_model=schemas_attribute.AttributeCategory)
def get_attribute_category(category: str):
    if category not in spot_attributes.CATEGORIES:
        raise NotFoundError(f"未知の属性カテゴリです: {category}")
    return _category(category)
