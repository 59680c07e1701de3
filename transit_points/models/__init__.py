"""SQLAlchemy Models"""
from transit_points.models.geo_point import GeoPointMixin, TraversalPoint, StopPoint

__all__ = [
    "GeoPointMixin",
    "TraversalPoint",
    "StopPoint",
]
