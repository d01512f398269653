"""WFS GetFeature request descriptors for one tile."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from shared.constants import (
    WFS_LAYER_NAME,
    WFS_MAX_FEATURES,
    WFS_OUTPUT_FORMAT,
    WFS_REQUEST,
    WFS_SERVICE,
    WFS_SRS_NAME,
    WFS_VERSION,
)

if TYPE_CHECKING:
    from domain.models import TileBounds
    from domain.settings import TileLoadSettings


@dataclass(frozen=True)
class QueryDescriptor:
    """Parameters of a single GetFeature request."""

    layer_name: str
    srs_name: str
    output_format: str
    max_features: int
    bbox: tuple[float, float, float, float]

    @property
    def bbox_param(self) -> str:
        # minLon,minLat,maxLon,maxLat followed by the CRS of the box
        min_lon, min_lat, max_lon, max_lat = self.bbox
        return f'{min_lon},{min_lat},{max_lon},{max_lat},{self.srs_name}'

    def to_params(self) -> dict[str, str]:
        return {
            'service': WFS_SERVICE,
            'version': WFS_VERSION,
            'request': WFS_REQUEST,
            'typeNames': self.layer_name,
            'srsName': self.srs_name,
            'outputFormat': self.output_format,
            'count': str(self.max_features),
            'bbox': self.bbox_param,
        }

    def to_url(self, base_url: str) -> str:
        return f'{base_url}?{urlencode(self.to_params())}'


def build_query(
    bounds: TileBounds,
    *,
    layer_name: str = WFS_LAYER_NAME,
    srs_name: str = WFS_SRS_NAME,
    output_format: str = WFS_OUTPUT_FORMAT,
    max_features: int = WFS_MAX_FEATURES,
) -> QueryDescriptor:
    return QueryDescriptor(
        layer_name=layer_name,
        srs_name=srs_name,
        output_format=output_format,
        max_features=max_features,
        bbox=(bounds.min_lon, bounds.min_lat, bounds.max_lon, bounds.max_lat),
    )


class FeatureQueryBuilder:
    """Builds tile queries for one configured layer."""

    def __init__(
        self,
        *,
        layer_name: str = WFS_LAYER_NAME,
        srs_name: str = WFS_SRS_NAME,
        output_format: str = WFS_OUTPUT_FORMAT,
        max_features: int = WFS_MAX_FEATURES,
    ) -> None:
        self.layer_name = layer_name
        self.srs_name = srs_name
        self.output_format = output_format
        self.max_features = max_features

    @classmethod
    def from_settings(cls, settings: TileLoadSettings) -> FeatureQueryBuilder:
        return cls(
            layer_name=settings.layer_name,
            srs_name=settings.srs_name,
            output_format=settings.output_format,
            max_features=settings.max_features,
        )

    def build_query(self, bounds: TileBounds) -> QueryDescriptor:
        return build_query(
            bounds,
            layer_name=self.layer_name,
            srs_name=self.srs_name,
            output_format=self.output_format,
            max_features=self.max_features,
        )
