# app/crud/spot.py
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_, func, update, true
from app.models import Spot
from app.utils import geohash

def point_wkt(lat: float, lon: float) -> str:
    return f"SRID=4326;POINT({lon} {lat})" # lon -> latの順に注意！

def with_location(values: dict) -> dict:
    """
    latitude/longitudeが含まれていれば，geomとgeohashも合わせて更新する．
    """
    if 'latitude' in values and 'longitude' in values:
        values = dict(values)
        values['geom'] = point_wkt(values['latitude'], values['longitude'])
        values['geohash'] = geohash.encode(values['latitude'], values['longitude'])
    return values

def get_spot(db: Session, spot_id: str) -> Spot | None:
    return db.get(Spot, spot_id)

def _text_conditions(q: str | None) -> list:
    """
    スペース区切りの全てのキーワードが，名前・説明・タグのいずれかに含まれる．
    """
    conditions = []
    for kw in (q or '').split():
        pattern = f"%{kw}%"
        conditions.append(or_(
            Spot.name.ilike(pattern),
            Spot.description.ilike(pattern),
            func.array_to_string(Spot.tags, ' ').ilike(pattern),
        ))
    return conditions

def _source_condition(spot_source: str | None):
    # None=全て，''=ネイティブのみ，それ以外=そのソース
    if spot_source is None:
        return true()
    if spot_source == '':
        return Spot.spot_source.is_(None)
    return Spot.spot_source == spot_source

def _has_images_condition():
    return func.coalesce(func.cardinality(Spot.image_urls), 0) > 0

def search_spots(
        db: Session,
        q: str | None = None,
        spot_source: str | None = None,
        has_images: bool = False,
        include_hidden: bool = False,
        include_duplicates: bool = False,
        bounds: tuple[float, float, float, float] | None = None,
        limit: int = 500) -> list[Spot]:
    """
    boundsは（south, west, north, east）．範囲での絞り込みはlimitの前に適用する．
    並び順は作成順（バックエンドの挿入順）．
    """
    conditions = _text_conditions(q)
    if bounds is not None:
        south, west, north, east = bounds
        conditions.append(Spot.latitude.between(south, north))
        conditions.append(Spot.longitude.between(west, east))
    conditions.append(_source_condition(spot_source))
    if has_images:
        conditions.append(_has_images_condition())
    if not include_hidden:
        conditions.append(Spot.hidden.is_(False))
    if not include_duplicates:
        conditions.append(Spot.duplicate_of.is_(None))

    return (
        db.query(Spot)
        .filter(and_(*conditions))
        .order_by(Spot.created_at.asc(), Spot.id.asc())
        .limit(limit)
        .all()
    )

def get_top_spots_in_bounds(
        db: Session,
        south: float,
        west: float,
        north: float,
        east: float,
        limit: int = 100,
        spot_source: str | None = None,
        has_images: bool = False) -> tuple[list[Spot], int, float]:
    """
    矩形内のスポットをWilsonスコアの下限→乱数の順に並べ，上位limit件を返す．
    戻り値は（スポット，矩形内の総数，矩形内のWilsonスコア平均）．
    """
    conditions = [
        Spot.latitude.between(south, north),
        Spot.longitude.between(west, east),
        Spot.hidden.is_(False),
        Spot.duplicate_of.is_(None),
        _source_condition(spot_source),
    ]
    if has_images:
        conditions.append(_has_images_condition())

    total_count, average_wilson = db.query(
        func.count(Spot.id),
        func.coalesce(func.avg(Spot.wilson_lower_bound), 0.0),
    ).filter(and_(*conditions)).one()

    spots = (
        db.query(Spot)
        .filter(and_(*conditions))
        .order_by(Spot.wilson_lower_bound.desc(), Spot.ranking.desc().nulls_last()) # デフォルトでは，NULLが先頭に来る．
        .limit(limit)
        .all()
    )
    return spots, int(total_count), float(average_wilson)

def create_spot(db: Session, values: dict) -> Spot:
    spot = Spot(**with_location(values))
    db.add(spot)
    db.commit()
    db.refresh(spot)
    return spot

def update_spot(db: Session, spot: Spot, values: dict) -> Spot:
    for key, value in with_location(values).items():
        setattr(spot, key, value)
    db.commit()
    db.refresh(spot)
    return spot

def delete_spot(db: Session, spot_id: str) -> bool:
    num_deleted = db.query(Spot).filter(Spot.id == spot_id).delete()
    db.commit()
    return num_deleted > 0

def find_by_source_and_location(db: Session, spot_source: str, lat: float, lon: float) -> Spot | None:
    # 同期元が同じで座標が完全一致するものを同一スポットとみなす．
    return (
        db.query(Spot)
        .filter(Spot.spot_source == spot_source, Spot.latitude == lat, Spot.longitude == lon)
        .first()
    )

def get_duplicates_of(db: Session, spot_id: str) -> list[Spot]:
    return db.query(Spot).filter(Spot.duplicate_of == spot_id).all()

def list_image_references(db: Session) -> list[tuple[str, str, list[str]]]:
    """
    全スポットの（ID，名前，画像URLリスト）．画像の掃除・欠損チェック用．
    """
    rows = db.query(Spot.id, Spot.name, Spot.image_urls).filter(_has_images_condition()).all()
    return [(row.id, row.name, list(row.image_urls or [])) for row in rows]

def list_spots_with_sources_not_in(db: Session, source_ids: list[str]) -> list[Spot]:
    query = db.query(Spot).filter(Spot.spot_source.is_not(None))
    if source_ids:
        query = query.filter(Spot.spot_source.not_in(source_ids))
    return query.all()

def update_source_names(db: Session, names_by_source: dict[str, str]) -> int:
    updated = 0
    for source_id, name in names_by_source.items():
        result = db.execute(
            update(Spot)
            .where(Spot.spot_source == source_id)
            .where(or_(Spot.spot_source_name.is_(None), Spot.spot_source_name != name))
            .values(spot_source_name=name)
        )
        updated += result.rowcount or 0
    db.commit()
    return updated

def is_image_referenced_elsewhere(db: Session, image_url: str, spot_id: str) -> bool:
    # 重複登録やネイティブ複製で，同じ画像URLを複数のスポットが持つことがある．
    row = (
        db.query(Spot.id)
        .filter(Spot.id != spot_id, Spot.image_urls.any(image_url))
        .first()
    )
    return row is not None

def search_duplicate_candidates(db: Session, exclude_spot_id: str | None = None, q: str | None = None, limit: int = 1000) -> list[Spot]:
    """
    重複の登録先として選べるスポット（ネイティブで，自身が重複でないもの）．
    qは1つの文字列として名前・説明・住所・市区町村のいずれかに含まれるかを見る．
    """
    query = db.query(Spot).filter(Spot.duplicate_of.is_(None), Spot.spot_source.is_(None))
    if exclude_spot_id:
        query = query.filter(Spot.id != exclude_spot_id)
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        query = query.filter(or_(
            Spot.name.ilike(pattern),
            Spot.description.ilike(pattern),
            Spot.address.ilike(pattern),
            Spot.city.ilike(pattern),
        ))
    return query.order_by(Spot.name.asc()).limit(limit).all()
