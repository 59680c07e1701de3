"""Ordered geo-point store"""
from transit_points.store.types import ParentKind, GeoPoint, NearbyPoint, GeoBounds
from transit_points.store.ordered_point_store import OrderedPointStore, to_coordinate

__all__ = [
    "ParentKind",
    "GeoPoint",
    "NearbyPoint",
    "GeoBounds",
    "OrderedPointStore",
    "to_coordinate",
]
