# tests/test_feed_service.py
import io
import json
from zipfile import ZipFile
import pytest
from app.core.errors import FeedFormatError
from app.services.feed_service import (
    Placemark, clean_description, detect_feed_format, extract_image_urls, extract_kml_from_kmz,
    load_placemarks, parse_geojson_features, parse_kml_placemarks,
)

KML = """<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2">
  <Document>
    <name>Parkour map</name>
    <Placemark>
      <name>Loose spot</name>
      <description>Top level</description>
      <Point><coordinates>4.8952,52.3702,0</coordinates></Point>
    </Placemark>
    <Folder>
      <name>Amsterdam</name>
      <Placemark>
        <name>Museumplein</name>
        <description><![CDATA[Nice rails<br><img src="https://mymaps.example.com/img1.jpg" />]]></description>
        <ExtendedData>
          <Data name="gx_media_links"><value>https://mymaps.example.com/img2.jpg https://mymaps.example.com/img1.jpg</value></Data>
        </ExtendedData>
        <Point><coordinates> 4.8816,52.3579 </coordinates></Point>
      </Placemark>
      <Placemark>
        <name>Route</name>
        <LineString><coordinates>4.0,52.0 4.1,52.1</coordinates></LineString>
      </Placemark>
      <Folder>
        <name>Noord</name>
        <Placemark>
          <Point><coordinates>4.91,52.39</coordinates></Point>
        </Placemark>
      </Folder>
    </Folder>
  </Document>
</kml>
"""

def make_kmz(files: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with ZipFile(buffer, 'w') as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()

class TestKmz:
    def test_prefers_root_kml(self):
        kmz = make_kmz({'files/other.kml': '<kml/>', 'doc.kml': KML})
        assert extract_kml_from_kmz(kmz) == KML

    def test_ignores_macos_metadata(self):
        kmz = make_kmz({'__MACOSX/doc.kml': 'junk', 'sub/doc.kml': KML})
        assert extract_kml_from_kmz(kmz) == KML

    def test_no_kml(self):
        with pytest.raises(FeedFormatError):
            extract_kml_from_kmz(make_kmz({'image.jpg': 'x'}))

    def test_not_a_zip(self):
        with pytest.raises(FeedFormatError):
            extract_kml_from_kmz(b'not a zip')

class TestKml:
    def test_placemarks_in_document_and_folders(self):
        placemarks = parse_kml_placemarks(KML)
        assert [p.name for p in placemarks] == ['Loose spot', 'Museumplein', 'Unnamed Spot']
        assert [p.folder_name for p in placemarks] == [None, 'Amsterdam', 'Noord']

    def test_coordinates_are_lon_lat(self):
        museumplein = parse_kml_placemarks(KML)[1]
        assert (museumplein.latitude, museumplein.longitude) == (52.3579, 4.8816)

    def test_include_folders(self):
        placemarks = parse_kml_placemarks(KML, include_folders=['Noord'])
        assert [p.folder_name for p in placemarks] == ['Noord']

    def test_invalid_xml(self):
        with pytest.raises(FeedFormatError):
            parse_kml_placemarks('<kml><Document>')

class TestGeoJson:
    def test_points_and_polygons(self):
        data = {
            'type': 'FeatureCollection',
            'features': [
                {'type': 'Feature', 'properties': {'name': 'Plaza', 'images': ['https://example.com/a.jpg']},
                 'geometry': {'type': 'Point', 'coordinates': [2.35, 48.85]}},
                {'type': 'Feature', 'properties': {'title': 'Park'},
                 'geometry': {'type': 'Polygon', 'coordinates': [[[0, 0], [2, 0], [2, 2], [0, 2], [0, 0]]]}},
                {'type': 'Feature', 'properties': {}, 'geometry': None},
            ],
        }
        placemarks = parse_geojson_features(json.dumps(data))
        assert [p.name for p in placemarks] == ['Plaza', 'Park']
        assert (placemarks[0].latitude, placemarks[0].longitude) == (48.85, 2.35)
        assert 0 < placemarks[1].latitude < 2 and 0 < placemarks[1].longitude < 2
        assert extract_image_urls(placemarks[0]) == ['https://example.com/a.jpg']

    def test_not_geojson(self):
        with pytest.raises(FeedFormatError):
            parse_geojson_features('{"type": "Topology"}')

class TestDetectFormat:
    def test_by_content(self):
        assert detect_feed_format('https://x/feed', make_kmz({'doc.kml': KML})) == 'kmz'
        assert detect_feed_format('https://x/feed', b'  {"type": "FeatureCollection"}') == 'geojson'
        assert detect_feed_format('https://x/feed', KML.encode()) == 'kml'

    def test_by_extension(self):
        assert detect_feed_format('https://x/spots.geojson?v=1', b'\n\n') == 'geojson'

    def test_unknown(self):
        with pytest.raises(FeedFormatError):
            detect_feed_format('https://x/feed', b'hello')

    def test_load_placemarks_from_kmz(self):
        placemarks = load_placemarks('https://x/map.kmz', make_kmz({'doc.kml': KML}), include_folders=['Amsterdam'])
        assert [p.name for p in placemarks] == ['Museumplein']

class TestDescriptionAndImages:
    def test_clean_description(self):
        html = 'Line one<br>Line <b>two</b><br/><img src="x.jpg"/>&amp; more&nbsp;text'
        assert clean_description(html) == 'Line one\nLine two\n& more text'

    def test_clean_description_collapses_blank_lines(self):
        assert clean_description('a<br><br><br><br>b') == 'a\n\nb'
        assert clean_description(None) == ''

    def test_extract_image_urls_dedupes_in_order(self):
        placemark = parse_kml_placemarks(KML)[1]
        assert extract_image_urls(placemark) == [
            'https://mymaps.example.com/img1.jpg',
            'https://mymaps.example.com/img2.jpg',
        ]

    def test_non_http_urls_are_ignored(self):
        placemark = Placemark(name='x', description='<img src="data:image/png;base64,AAA">', latitude=0, longitude=0,
                              extended_data={'gx_media_links': 'ftp://a/b.jpg https://ok.example.com/c.jpg'})
        assert extract_image_urls(placemark) == ['https://ok.example.com/c.jpg']
