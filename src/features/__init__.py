"""Feature service queries and feature decoding."""

from features.decoder import FeatureDecoder, decode, decode_many, decode_or_none, infer_height
from features.query import FeatureQueryBuilder, QueryDescriptor, build_query

__all__ = [
    'FeatureDecoder',
    'FeatureQueryBuilder',
    'QueryDescriptor',
    'build_query',
    'decode',
    'decode_many',
    'decode_or_none',
    'infer_height',
]
