# tests/test_geohash.py
from app.utils import geohash

def test_known_value():
    assert geohash.encode(57.64911, 10.40744, precision=11) == 'u4pruydqqvj'

def test_bbox_contains_point():
    lat, lon = 48.8566, 2.3522
    south, west, north, east = geohash.decode_bbox(geohash.encode(lat, lon, precision=7))
    assert south <= lat <= north
    assert west <= lon <= east

def test_prefix_grows_with_precision():
    assert geohash.encode(52.37, 4.89, precision=12).startswith(geohash.encode(52.37, 4.89, precision=5))
