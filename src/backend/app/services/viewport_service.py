# app/services/viewport_service.py
"""
地図の表示範囲と検索文字列から，マーカーとして描画・一覧表示するスポットを求める．

・検索文字列：空白区切りの全トークンが，名前・説明・タグのいずれかに部分一致（大文字小文字は区別しない）
・表示範囲：緯度が[south, north]，経度が[west, east]に入るかの単純な矩形判定（測地線距離ではない）．
  ±180度の日付変更線をまたぐ表示範囲は正しく扱えないが，実用上ほぼ起きないため許容する．
・表示範囲が未取得（地図の初期化前）の場合は範囲で絞り込まない．
・結果は呼び出しのたびに全体を作り直す（差分更新はしない）．並び順は入力の順序を保つ．
"""
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
import numpy as np

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ViewportBounds:
    south: float
    west: float
    north: float
    east: float

    def __post_init__(self):
        if not (-90 <= self.south <= 90 and -90 <= self.north <= 90):
            raise ValueError(f"緯度は[-90, 90]の範囲で指定してください: south={self.south}, north={self.north}")
        if not (-180 <= self.west <= 180 and -180 <= self.east <= 180):
            raise ValueError(f"経度は[-180, 180]の範囲で指定してください: west={self.west}, east={self.east}")
        if self.south > self.north:
            raise ValueError(f"southがnorthより北にあります: south={self.south}, north={self.north}")

    def contains(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east

@dataclass(frozen=True)
class Marker:
    spot_id: str
    lat: float
    lng: float
    title: str

@dataclass(frozen=True)
class VisibleSpots:
    spots: list
    markers: dict[str, Marker]

def _searchable_texts(spot) -> list[str]:
    texts = [spot.name or '', spot.description or '']
    texts.extend(spot.tags or [])
    return [t.lower() for t in texts]

def matches_query(spot, query: str) -> bool:
    tokens = query.lower().split()
    if not tokens:
        return True
    texts = _searchable_texts(spot)
    return all(any(token in text for text in texts) for token in tokens)

def filter_by_query(spots: Iterable, query: str | None) -> list:
    spots = list(spots)
    if not query or not query.strip():
        return spots
    return [spot for spot in spots if matches_query(spot, query)]

def filter_by_bounds(spots: Sequence, bounds: ViewportBounds | None) -> list:
    if bounds is None or len(spots) == 0:
        return list(spots)

    # スポット数が多くても1回のベクトル演算で判定できるようにする．
    lats = np.fromiter((s.latitude for s in spots), dtype=float, count=len(spots))
    lngs = np.fromiter((s.longitude for s in spots), dtype=float, count=len(spots))
    mask = (
        (lats >= bounds.south) & (lats <= bounds.north) &
        (lngs >= bounds.west) & (lngs <= bounds.east)
    )
    return [spot for spot, inside in zip(spots, mask) if inside]

def build_markers(spots: Iterable) -> dict[str, Marker]:
    return {
        spot.id: Marker(spot_id=spot.id, lat=spot.latitude, lng=spot.longitude, title=spot.name)
        for spot in spots
        if spot.id is not None
    }

def compute_visible_spots(spots: Iterable, query: str = '', bounds: ViewportBounds | None = None) -> VisibleSpots:
    candidates = filter_by_query(spots, query)
    visible = filter_by_bounds(candidates, bounds)
    return VisibleSpots(spots=visible, markers=build_markers(visible))

@dataclass
class SearchState:
    """
    地図画面の検索状態．selected_spot_sourceはNone=全て，''=ネイティブのみ，それ以外=そのソースのみ．
    """
    center_lat: float | None = None
    center_lng: float | None = None
    zoom: float | None = None
    is_satellite: bool = False
    include_spots_without_pictures: bool = True
    selected_spot_source: str | None = None

def apply_search_state(spots: Iterable, state: SearchState) -> list:
    result = []
    for spot in spots:
        if not state.include_spots_without_pictures and not spot.image_urls:
            continue
        if state.selected_spot_source is not None:
            if state.selected_spot_source == '':
                if spot.spot_source:
                    continue
            elif spot.spot_source != state.selected_spot_source:
                continue
        result.append(spot)
    return result

@dataclass
class ViewportFilter:
    """
    現在の（検索文字列，表示範囲，検索状態）を保持し，いずれかが変わるたびに表示集合を作り直して購読者へ通知する．
    """
    spots: list = field(default_factory=list)
    query: str = ''
    bounds: ViewportBounds | None = None
    state: SearchState = field(default_factory=SearchState)
    _listeners: list[Callable[[VisibleSpots], None]] = field(default_factory=list, repr=False)
    _visible: VisibleSpots | None = field(default=None, repr=False)

    def __post_init__(self):
        self._visible = self._compute()

    @property
    def visible(self) -> VisibleSpots:
        return self._visible

    def subscribe(self, listener: Callable[[VisibleSpots], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def set_spots(self, spots: Iterable) -> VisibleSpots:
        self.spots = list(spots)
        return self._refresh()

    def set_query(self, query: str) -> VisibleSpots:
        self.query = query or ''
        return self._refresh()

    def set_bounds(self, bounds: ViewportBounds | None) -> VisibleSpots:
        # 地図のパン・ズームが落ち着いた時に呼ばれる．
        self.bounds = bounds
        return self._refresh()

    def set_state(self, state: SearchState) -> VisibleSpots:
        self.state = state
        return self._refresh()

    def _compute(self) -> VisibleSpots:
        return compute_visible_spots(apply_search_state(self.spots, self.state), self.query, self.bounds)

    def _refresh(self) -> VisibleSpots:
        self._visible = self._compute()
        logger.debug("visible spots: %d / %d", len(self._visible.spots), len(self.spots))
        for listener in list(self._listeners):
            listener(self._visible)
        return self._visible
