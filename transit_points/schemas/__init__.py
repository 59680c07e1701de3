"""Pydantic Schemas"""
from transit_points.schemas.geo_point import (
    GeoPointCreate,
    GeoPointWrite,
    GeoPointBulkCreate,
    GeoPointResponse,
    NearbyGeoPointResponse,
    GeoBoundsResponse
)

__all__ = [
    "GeoPointCreate",
    "GeoPointWrite",
    "GeoPointBulkCreate",
    "GeoPointResponse",
    "NearbyGeoPointResponse",
    "GeoBoundsResponse"
]
