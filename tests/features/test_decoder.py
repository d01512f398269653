"""Tests for the building feature decoder."""

import json
import math

import pytest

from conftest import make_feature
from domain.models import BuildingEntity, Decoded, Rejected, TileId
from features.decoder import (
    FeatureDecoder,
    decode,
    decode_many,
    decode_or_none,
    infer_height,
    parse_number,
)


def _four_point_feature(properties):
    return {
        'type': 'Feature',
        'geometry': {
            'type': 'Polygon',
            'coordinates': [[[77.0, 21.67], [77.001, 21.67], [77.001, 21.671], [77.0, 21.67]]],
        },
        'properties': properties,
    }


class TestHeightPolicy:
    """Tests for the height inference order."""

    def test_explicit_height(self):
        """A16 = "15" gives a 15 m extrusion."""
        entity = decode_or_none(_four_point_feature({'A16': '15'}))
        assert entity is not None
        assert entity.extruded_height == 15

    def test_floor_count(self):
        """Without A16, A26 = "4" floors gives 14 m."""
        entity = decode_or_none(_four_point_feature({'A26': '4'}))
        assert entity.extruded_height == 14.0

    def test_alternate_floor_key(self):
        assert infer_height({'GRO_FLO_CO': 2}) == 7.0

    def test_keys_case_insensitive(self):
        assert infer_height({'a16': '20'}) == 20.0
        assert infer_height({'gro_flo_co': '3'}) == 10.5

    def test_zero_height_falls_back_to_floors(self):
        assert infer_height({'A16': '0', 'A26': '2'}) == 7.0

    def test_default_height(self):
        assert infer_height({}) == 6.0
        assert infer_height(None) == 6.0
        assert infer_height({'A16': '-3', 'A26': '0'}) == 6.0

    def test_clamped(self):
        assert infer_height({'A16': '1200'}) == 600.0
        assert infer_height({'A26': '500'}) == 600.0

    def test_out_of_range_integers_are_ignored(self):
        """Integers too large for a float count as absent."""
        assert infer_height({'A16': 10**400, 'A26': 2}) == 7.0
        assert infer_height({'A26': 10**400}) == 6.0

    def test_huge_json_height_decodes(self):
        raw = json.loads(
            '{"geometry": {"type": "Polygon", "coordinates": '
            '[[[77.0, 21.67], [77.001, 21.67], [77.001, 21.671]]]}, '
            '"properties": {"A16": ' + '9' * 400 + '}}'
        )
        result = decode(raw)
        assert isinstance(result, Decoded)
        assert result.entity.extruded_height == 6.0

    def test_huge_json_coordinate_is_rejected(self):
        raw = json.loads(
            '{"geometry": {"type": "Polygon", "coordinates": '
            '[[[' + '9' * 400 + ', 21.67], [77.001, 21.67], [77.001, 21.671]]]}}'
        )
        assert isinstance(decode(raw), Rejected)

    def test_unparseable_is_absent(self):
        assert infer_height({'A16': 'n/a', 'A26': '3'}) == 10.5
        assert infer_height({'A16': 'nan'}) == 6.0
        assert infer_height({'A16': float('inf')}) == 6.0

    def test_leading_number(self):
        assert infer_height({'A16': '15.5m'}) == 15.5

    @pytest.mark.parametrize(
        'props',
        [
            {'A16': '15'},
            {'A16': '0.01'},
            {'A16': '100000'},
            {'A26': '171.5'},
            {'A16': '-1', 'A26': '-1'},
            {'A16': 'x', 'GRO_FLO_CO': 'y'},
            {'A16': None, 'A26': ''},
            {'A16': True},
        ],
    )
    def test_height_in_range(self, props):
        height = infer_height(props)
        assert 0 < height <= 600


class TestParseNumber:
    """Tests for parse_number."""

    @pytest.mark.parametrize(
        'value,expected',
        [
            ('15', 15.0),
            (' 7.5 ', 7.5),
            ('3F', 3.0),
            ('1e2', 100.0),
            (4, 4.0),
            (2.5, 2.5),
            ('', None),
            (None, None),
            ('abc', None),
            (float('nan'), None),
            (10**400, None),
            ('9' * 400, None),
        ],
    )
    def test_values(self, value, expected):
        assert parse_number(value) == expected


class TestGeometry:
    """Tests for geometry extraction."""

    def test_polygon_exterior_ring(self):
        feature = make_feature(1.0, 2.0, size=1.0)
        feature['geometry']['coordinates'].append([[1.2, 2.2], [1.4, 2.2], [1.4, 2.4]])
        entity = decode_or_none(feature)
        assert entity.positions[0] == (1.0, 2.0)
        assert len(entity.positions) == 5

    def test_multipolygon_first_polygon(self):
        feature = make_feature(1.0, 2.0, size=1.0, geom_type='MultiPolygon')
        feature['geometry']['coordinates'].append([[[9, 9], [10, 9], [10, 10]]])
        entity = decode_or_none(feature)
        assert entity.positions[0] == (1.0, 2.0)
        assert all(lon < 3 for lon, _ in entity.positions)

    def test_altitude_component_ignored(self):
        feature = _four_point_feature({})
        feature['geometry']['coordinates'] = [[[1, 1, 30], [2, 1, 30], [2, 2, 30]]]
        entity = decode_or_none(feature)
        assert entity.positions == ((1.0, 1.0), (2.0, 1.0), (2.0, 2.0))

    @pytest.mark.parametrize(
        'feature',
        [
            None,
            'feature',
            {},
            {'geometry': None},
            {'geometry': {'type': 'Polygon'}},
            {'geometry': {'type': 'Polygon', 'coordinates': []}},
            {'geometry': {'type': 'Point', 'coordinates': [1, 2]}},
            {'geometry': {'type': 'LineString', 'coordinates': [[1, 2], [3, 4]]}},
            {'geometry': {'type': 'Polygon', 'coordinates': [[[1, 2], [3, 4]]]}},
            {'geometry': {'type': 'Polygon', 'coordinates': [[[1, 2], ['a', 4], [5, 6]]]}},
            {'geometry': {'type': 'Polygon', 'coordinates': [[[1], [3, 4], [5, 6]]]}},
            {'geometry': {'type': 'Polygon', 'coordinates': [[1, 2, 3]]}},
            {'geometry': {'type': 'MultiPolygon', 'coordinates': [[]]}},
            {'geometry': {'type': 'Polygon', 'coordinates': [[[1, 2], [math.inf, 4], [5, 6]]]}},
            {'geometry': {'type': 'Polygon', 'coordinates': [[[10**400, 2], [3, 4], [5, 6]]]}},
        ],
    )
    def test_rejected_never_raises(self, feature):
        result = decode(feature)
        assert isinstance(result, Rejected)
        assert result.reason
        assert decode_or_none(feature) is None

    def test_unsupported_type_reason(self):
        result = decode({'geometry': {'type': 'Point', 'coordinates': [1, 2]}})
        assert 'Point' in result.reason


class TestDecodedEntity:
    """Tests for entity fields."""

    def test_decoded_carries_metadata(self):
        feature = make_feature(1.0, 2.0, properties={'A16': '9', 'name': 'x'})
        feature['id'] = 'testAetem.17'
        result = decode(feature, TileId(1, 2))
        assert isinstance(result, Decoded)
        entity = result.entity
        assert isinstance(entity, BuildingEntity)
        assert entity.tile_id == TileId(1, 2)
        assert entity.feature_id == 'testAetem.17'
        assert entity.properties['name'] == 'x'

    def test_entities_are_distinct_by_identity(self):
        feature = make_feature(1.0, 2.0)
        a = decode_or_none(feature)
        b = decode_or_none(feature)
        assert a != b
        assert len({a, b}) == 2

    def test_decode_many(self):
        features = [make_feature(1.0, 2.0), {'geometry': None}, make_feature(1.1, 2.0)]
        entities, rejected = decode_many(features, TileId(0, 0))
        assert len(entities) == 2
        assert rejected == 1

    def test_decoder_object(self):
        decoder = FeatureDecoder()
        assert decoder.decode_or_none(make_feature(1.0, 2.0)) is not None
        assert isinstance(decoder.decode({}), Rejected)
