# app/utils/geohash.py
BASE32 = '0123456789bcdefghjkmnpqrstuvwxyz'

def encode(lat: float, lon: float, precision: int = 12) -> str:
    """
    緯度経度をgeohash文字列に変換する．経度・緯度の順に交互に区間を二分していく．
    """
    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]
    chars = []
    bit = 0
    ch = 0
    is_lon = True

    while len(chars) < precision:
        rng, value = (lon_range, lon) if is_lon else (lat_range, lat)
        mid = (rng[0] + rng[1]) / 2
        if value >= mid:
            ch |= 1 << (4 - bit)
            rng[0] = mid
        else:
            rng[1] = mid
        is_lon = not is_lon

        if bit < 4:
            bit += 1
        else:
            chars.append(BASE32[ch])
            bit = 0
            ch = 0

    return ''.join(chars)

def decode_bbox(geohash: str) -> tuple[float, float, float, float]:
    """
    geohashが表す矩形を (south, west, north, east) で返す．
    """
    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]
    is_lon = True
    for c in geohash:
        idx = BASE32.index(c)
        for shift in range(4, -1, -1):
            rng = lon_range if is_lon else lat_range
            mid = (rng[0] + rng[1]) / 2
            if (idx >> shift) & 1:
                rng[0] = mid
            else:
                rng[1] = mid
            is_lon = not is_lon
    return lat_range[0], lon_range[0], lat_range[1], lon_range[1]
