# app/schemas/geocoding.py
from pydantic import BaseModel

class GeocodeResult(BaseModel):
    address: str | None = None
    city: str | None = None
    country_code: str | None = None

class Coordinates(BaseModel):
    latitude: float
    longitude: float
