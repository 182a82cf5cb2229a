# app/crud/rating.py
from sqlalchemy.orm import Session
from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from app.models import Rating, Spot

# Wilsonスコア区間の信頼係数（95%）
Z = 1.96

def _aggregate_query():
    """
    スポットごとの平均・件数・Wilsonスコアの下限を計算する式．
    星1〜5を[0, 1]の「好評の割合」p = (rating - 1) / 4 に変換して下限を求める．
    """
    n = func.count(Rating.id)
    p = func.avg((Rating.rating - 1.0) / 4.0)
    z2 = Z * Z
    wilson_expr = (
        (p + z2 / (2.0 * n) - Z * func.sqrt((p * (1.0 - p) + z2 / (4.0 * n)) / n))
        / (1.0 + z2 / n)
    )
    return (
        select(
            Rating.spot_id.label('spot_id'),
            func.avg(Rating.rating).label('average_rating'),
            n.label('rating_count'),
            func.greatest(wilson_expr, 0.0).label('wilson_lower_bound'),
        )
        .group_by(Rating.spot_id)
    )

def upsert_rating(db: Session, spot_id: str, user_id: str, rating: float) -> None:
    """
    既に評価済みなら上書き，未評価なら新規作成．スポットの集計値も同じトランザクションで更新する．
    """
    stmt = insert(Rating).values(spot_id=spot_id, user_id=user_id, rating=rating)
    stmt = stmt.on_conflict_do_update(
        constraint='uq_ratings_spot_user',
        set_={'rating': rating, 'updated_at': func.now()},
    )
    db.execute(stmt)
    _update_aggregates(db, [spot_id])
    db.commit()

def recompute_spot_aggregate(db: Session, spot_ids: list[str] | None = None) -> int:
    """
    評価の集計値をSQLで計算し，spotsテーブルに書き戻す．更新した件数を返す．
    """
    updated = _update_aggregates(db, spot_ids)
    db.commit()
    return updated

def _update_aggregates(db: Session, spot_ids: list[str] | None) -> int:
    aggregate = _aggregate_query()
    if spot_ids is not None:
        aggregate = aggregate.where(Rating.spot_id.in_(spot_ids))
    sq = aggregate.subquery('rating_aggregate')

    result = db.execute(
        update(Spot)
        .where(Spot.id == sq.c.spot_id)
        .values(
            average_rating=sq.c.average_rating,
            rating_count=sq.c.rating_count,
            wilson_lower_bound=sq.c.wilson_lower_bound,
        )
    )
    return result.rowcount or 0

def get_user_rating(db: Session, spot_id: str, user_id: str) -> float | None:
    return db.scalar(
        select(Rating.rating).where(Rating.spot_id == spot_id, Rating.user_id == user_id)
    )

def list_ratings(db: Session, spot_id: str) -> list[Rating]:
    return (
        db.query(Rating)
        .filter(Rating.spot_id == spot_id)
        .order_by(Rating.updated_at.desc())
        .all()
    )
