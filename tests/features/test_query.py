"""Tests for WFS query descriptors."""

from urllib.parse import parse_qs, urlparse

from domain.models import TileBounds
from domain.settings import TileLoadSettings
from features.query import FeatureQueryBuilder, build_query


BOUNDS = TileBounds(76.98, 21.66, 77.01, 21.69)


class TestBuildQuery:
    """Tests for build_query."""

    def test_params(self):
        query = build_query(BOUNDS, layer_name='aetem:testAetem')
        params = query.to_params()
        assert params == {
            'service': 'WFS',
            'version': '2.0.0',
            'request': 'GetFeature',
            'typeNames': 'aetem:testAetem',
            'srsName': 'EPSG:4326',
            'outputFormat': 'application/json',
            'count': '2000',
            'bbox': '76.98,21.66,77.01,21.69,EPSG:4326',
        }

    def test_bbox_order_and_crs_suffix(self):
        """bbox is minLon,minLat,maxLon,maxLat followed by the CRS."""
        query = build_query(BOUNDS, srs_name='EPSG:4326')
        assert query.bbox == (76.98, 21.66, 77.01, 21.69)
        assert query.bbox_param.endswith(',EPSG:4326')

    def test_custom_cap(self):
        query = build_query(BOUNDS, max_features=50)
        assert query.to_params()['count'] == '50'

    def test_to_url(self):
        query = build_query(BOUNDS, layer_name='ws:layer')
        url = query.to_url('http://geo.example/geoserver/ws/ows')
        parsed = urlparse(url)
        qs = parse_qs(parsed.query)
        assert parsed.path == '/geoserver/ws/ows'
        assert qs['typeNames'] == ['ws:layer']
        assert qs['bbox'] == ['76.98,21.66,77.01,21.69,EPSG:4326']

    def test_is_pure(self):
        """Same bounds give equal descriptors."""
        assert build_query(BOUNDS) == build_query(BOUNDS)


class TestFeatureQueryBuilder:
    """Tests for FeatureQueryBuilder."""

    def test_from_settings(self):
        settings = TileLoadSettings(layer_name='ws:b', max_features=10, srs_name='EPSG:4326')
        builder = FeatureQueryBuilder.from_settings(settings)
        query = builder.build_query(BOUNDS)
        assert query.layer_name == 'ws:b'
        assert query.max_features == 10
