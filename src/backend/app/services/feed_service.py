# app/services/feed_service.py
"""
外部フィード（KMZ・KML・GeoJSON）からスポット候補（Placemark）を取り出す．
ダウンロードやDBへの書き込みはapp/services/sync_service.pyが担当し，ここは純粋な変換のみ．
"""
import io
import json
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from zipfile import BadZipFile, ZipFile
from shapely.geometry import shape
from app.core.errors import FeedFormatError

UNNAMED_SPOT = 'Unnamed Spot'

@dataclass
class Placemark:
    name: str
    description: str
    latitude: float
    longitude: float
    altitude: float = 0.0
    folder_name: str | None = None
    extended_data: dict[str, str] = field(default_factory=dict)

def detect_feed_format(url: str, payload: bytes) -> str:
    """
    'kmz' | 'kml' | 'geojson' を返す．中身で判定し，判定できなければURLの拡張子を見る．
    """
    if payload[:2] == b'PK':
        return 'kmz'
    head = payload[:1024].lstrip()
    if head.startswith(b'{'):
        return 'geojson'
    if b'<kml' in head or head.startswith(b'<?xml'):
        return 'kml'

    path = url.lower().split('?')[0]
    for suffix, feed_format in (('.kmz', 'kmz'), ('.kml', 'kml'), ('.geojson', 'geojson'), ('.json', 'geojson')):
        if path.endswith(suffix):
            return feed_format
    raise FeedFormatError(f"フィードの形式を判定できません: {url}")

def extract_kml_from_kmz(kmz_bytes: bytes) -> str:
    """
    KMZ（zip）からKMLを取り出す．ルート直下のKMLを優先し，無ければ最初に見つかったもの．
    """
    try:
        with ZipFile(io.BytesIO(kmz_bytes)) as zf:
            kml_files = [
                name for name in zf.namelist()
                if name.lower().endswith('.kml') and not name.startswith('__MACOSX/')
            ]
            if not kml_files:
                raise FeedFormatError("KMZの中にKMLファイルがありません．")
            root_level = [name for name in kml_files if '/' not in name]
            target = root_level[0] if root_level else kml_files[0]
            return zf.read(target).decode('utf-8')
    except (BadZipFile, UnicodeDecodeError) as e:
        raise FeedFormatError(f"KMZファイルを展開できません: {e}") from e

def _local(tag: str) -> str:
    # '{http://www.opengis.net/kml/2.2}Placemark' -> 'Placemark'
    return tag.rsplit('}', 1)[-1]

def _child(element: ET.Element, name: str) -> ET.Element | None:
    for child in element:
        if _local(child.tag) == name:
            return child
    return None

def _child_text(element: ET.Element, name: str) -> str | None:
    child = _child(element, name)
    return child.text if child is not None else None

def _parse_point(placemark: ET.Element) -> tuple[float, float, float] | None:
    point = None
    for el in placemark.iter():
        if _local(el.tag) == 'Point':
            point = el
            break
    if point is None:
        return None
    coordinates = _child_text(point, 'coordinates')
    if not coordinates:
        return None

    # "lon,lat[,alt]"（経度が先）
    try:
        values = [float(v) for v in coordinates.strip().split()[0].split(',')]
    except ValueError:
        return None
    if len(values) < 2:
        return None
    lon, lat = values[0], values[1]
    alt = values[2] if len(values) > 2 else 0.0
    return lat, lon, alt

def _parse_extended_data(placemark: ET.Element) -> dict[str, str]:
    data = {}
    extended = _child(placemark, 'ExtendedData')
    if extended is None:
        return data
    for el in extended:
        if _local(el.tag) == 'Data' and el.get('name'):
            data[el.get('name')] = (_child_text(el, 'value') or '').strip()
    return data

def parse_kml_placemarks(kml_text: str, include_folders: list[str] | None = None) -> list[Placemark]:
    """
    DocumentとFolder（入れ子を含む）の中にあるPoint型のPlacemarkを全て取り出す．
    include_foldersが指定されていれば，そのフォルダ直下のものだけを残す．
    """
    try:
        root = ET.fromstring(kml_text.encode('utf-8'))
    except ET.ParseError as e:
        raise FeedFormatError(f"KMLを解析できません: {e}") from e

    placemarks: list[Placemark] = []

    def walk(element: ET.Element, folder_name: str | None):
        for child in element:
            local = _local(child.tag)
            if local == 'Placemark':
                point = _parse_point(child)
                if point is None:
                    continue # Point以外（LineStringなど）は対象外
                lat, lon, alt = point
                placemarks.append(Placemark(
                    name=(_child_text(child, 'name') or '').strip() or UNNAMED_SPOT,
                    description=_child_text(child, 'description') or '',
                    latitude=lat,
                    longitude=lon,
                    altitude=alt,
                    folder_name=folder_name,
                    extended_data=_parse_extended_data(child),
                ))
            elif local == 'Folder':
                walk(child, (_child_text(child, 'name') or '').strip() or None)
            elif local == 'Document':
                walk(child, folder_name)

    walk(root, None)

    if include_folders:
        wanted = set(include_folders)
        placemarks = [p for p in placemarks if p.folder_name in wanted]
    return placemarks

def parse_geojson_features(geojson_text: str) -> list[Placemark]:
    """
    FeatureCollectionの各Featureを1スポットとする．Point以外の図形は代表点を使う．
    """
    try:
        data = json.loads(geojson_text)
    except json.JSONDecodeError as e:
        raise FeedFormatError(f"GeoJSONを解析できません: {e}") from e

    if data.get('type') == 'Feature':
        features = [data]
    elif data.get('type') == 'FeatureCollection':
        features = data.get('features') or []
    else:
        raise FeedFormatError(f"未対応のGeoJSONです: type={data.get('type')}")

    placemarks = []
    for feature in features:
        geometry = feature.get('geometry')
        if not geometry:
            continue
        geom = shape(geometry)
        if geom.is_empty:
            continue
        point = geom if geom.geom_type == 'Point' else geom.representative_point()

        props = feature.get('properties') or {}
        extended = {}
        images = props.get('images') or props.get('image_urls') or []
        if isinstance(images, str):
            images = images.split()
        if images:
            extended['gx_media_links'] = ' '.join(images)

        placemarks.append(Placemark(
            name=str(props.get('name') or props.get('title') or '').strip() or UNNAMED_SPOT,
            description=str(props.get('description') or ''),
            latitude=point.y,
            longitude=point.x,
            altitude=point.z if point.has_z else 0.0,
            folder_name=props.get('folder'),
            extended_data=extended,
        ))
    return placemarks

def load_placemarks(url: str, payload: bytes, include_folders: list[str] | None = None) -> list[Placemark]:
    feed_format = detect_feed_format(url, payload)
    try:
        if feed_format == 'geojson':
            return parse_geojson_features(payload.decode('utf-8'))
        kml_text = extract_kml_from_kmz(payload) if feed_format == 'kmz' else payload.decode('utf-8')
    except UnicodeDecodeError as e:
        raise FeedFormatError(f"フィードの文字コードがUTF-8ではありません: {e}") from e
    return parse_kml_placemarks(kml_text, include_folders=include_folders)

def clean_description(description: str | None) -> str:
    """
    説明文のHTMLを取り除く．改行（<br>）は残す．
    """
    if not description:
        return ''
    text = re.sub(r'<br\s*/?>', '\n', description, flags=re.IGNORECASE)
    text = re.sub(r'<img[^>]*>', '', text, flags=re.IGNORECASE)
    text = re.sub(r'<[^>]*>', '', text)
    # &amp;は最後に戻す（"&amp;lt;" を "<" にしないため）
    for entity, char in (('&nbsp;', ' '), ('&lt;', '<'), ('&gt;', '>'), ('&quot;', '"'), ('&apos;', "'"), ('&amp;', '&')):
        text = text.replace(entity, char)
    text = re.sub(r'\n\s*\n\s*\n', '\n\n', text)
    text = re.sub(r'\n\s*\n', '\n\n', text)
    return text.strip()

def extract_image_urls(placemark: Placemark) -> list[str]:
    """
    説明文の<img src>とExtendedDataのgx_media_linksから画像URLを集める．重複は除き，順序は保つ．
    """
    urls = re.findall(r'<img[^>]+src="([^"]+)"', placemark.description or '')
    media_links = placemark.extended_data.get('gx_media_links', '')
    urls.extend(url for url in media_links.split() if url.strip())

    result = []
    for url in urls:
        if url.startswith(('http://', 'https://')) and url not in result:
            result.append(url)
    return result
