# app/schemas/attribute.py
from pydantic import BaseModel

class AttributeEntry(BaseModel):
    key: str
    label: str
    icon: str
    description: str = ''

class AttributeCategory(BaseModel):
    category: str
    entries: list[AttributeEntry] # 辞書の定義順

class AttributesResponse(BaseModel):
    categories: list[AttributeCategory]
