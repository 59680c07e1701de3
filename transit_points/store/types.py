"""
Value types passed across the point store boundary.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Optional, Type

from transit_points.models import GeoPointMixin, TraversalPoint, StopPoint


class ParentKind(Enum):
    """Which kind of parent entity owns a point collection"""
    TRAVERSAL = "traversal"
    STOP = "stop"

    @property
    def model(self) -> Type[GeoPointMixin]:
        return _MODELS[self]

    @property
    def table_name(self) -> str:
        return self.model.__tablename__


_MODELS = {
    ParentKind.TRAVERSAL: TraversalPoint,
    ParentKind.STOP: StopPoint,
}


@dataclass(frozen=True)
class GeoPoint:
    """A single ordered waypoint belonging to one parent entity.

    ``id`` is None until the store assigns one.
    """
    parent_id: int
    latitude: Decimal
    longitude: Decimal
    sequence: int
    id: Optional[int] = None

    def with_id(self, point_id: int) -> "GeoPoint":
        return replace(self, id=point_id)


@dataclass(frozen=True)
class NearbyPoint:
    """Proximity search hit"""
    point: GeoPoint
    distance_km: float


@dataclass(frozen=True)
class GeoBounds:
    """Extent of all stored points; every field is None when nothing is stored"""
    lat_min: Optional[Decimal] = None
    lat_max: Optional[Decimal] = None
    lon_min: Optional[Decimal] = None
    lon_max: Optional[Decimal] = None

    @property
    def is_empty(self) -> bool:
        return self.lat_min is None
