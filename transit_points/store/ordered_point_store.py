"""
Ordered geo-point store.

One store instance manages the point collection of one parent kind (traversal
waypoints or stop outlines). Every call opens its own session; nothing is
cached between calls. Multi-statement operations (batch insert, append,
resequencing) run inside a single transaction and roll back completely on
failure before the error reaches the caller.
"""
import logging
import math
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from sqlalchemy import select, delete, func, exists
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from transit_points.exceptions import ValidationError, PersistenceError
from transit_points.store.types import ParentKind, GeoPoint, NearbyPoint, GeoBounds
from transit_points.utils.geo import haversine_km
from transit_points.utils.metrics import record_db_error

logger = logging.getLogger(__name__)

COORDINATE_QUANTUM = Decimal("0.0000001")


def to_decimal(value, name: str = "coordinate") -> Decimal:
    """Parse a finite Decimal without rounding; used for query arguments."""
    if value is None:
        raise ValidationError(f"{name} is required")
    try:
        # str() keeps floats at their shortest repr (16.75, not 16.749999...)
        decimal_value = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{name} is not a valid decimal: {value!r}")
    if not decimal_value.is_finite():
        raise ValidationError(f"{name} must be a finite number")
    return decimal_value


def to_coordinate(value, name: str = "coordinate") -> Decimal:
    """Normalize a latitude/longitude to the stored 7-digit Decimal.

    Only for values being written. No range check: out-of-range values are
    stored as given.
    """
    return to_decimal(value, name).quantize(COORDINATE_QUANTUM)


def require_positive_id(value, name: str = "id") -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer, got {value!r}")
    return value


class OrderedPointStore:
    """CRUD, ordering and spatial queries over one kind of point collection"""

    def __init__(self, session_factory: async_sessionmaker, kind: ParentKind):
        self._session_factory = session_factory
        self.kind = kind
        self._model = kind.model

    # -------------------------------------------------------------------------
    # Mapping
    # -------------------------------------------------------------------------

    @staticmethod
    def _to_point(row) -> GeoPoint:
        return GeoPoint(
            id=row.id,
            parent_id=row.parent_id,
            latitude=row.latitude,
            longitude=row.longitude,
            sequence=row.sequence,
        )

    def _new_row(self, point: GeoPoint):
        return self._model(
            parent_id=point.parent_id,
            latitude=point.latitude,
            longitude=point.longitude,
            sequence=point.sequence,
        )

    @staticmethod
    def _validated(point: GeoPoint) -> GeoPoint:
        """Check required fields and return a copy with normalized coordinates"""
        if point is None:
            raise ValidationError("point is required")
        require_positive_id(point.parent_id, "parent_id")
        if point.sequence is None:
            raise ValidationError("sequence is required")
        require_positive_id(point.sequence, "sequence")
        return GeoPoint(
            id=point.id,
            parent_id=point.parent_id,
            latitude=to_coordinate(point.latitude, "latitude"),
            longitude=to_coordinate(point.longitude, "longitude"),
            sequence=point.sequence,
        )

    @contextmanager
    def _translate_errors(self, operation: str):
        try:
            yield
        except SQLAlchemyError as e:
            record_db_error(f"{self.kind.value}.{operation}", type(e).__name__)
            raise PersistenceError(
                f"{self.kind.table_name}: {operation} failed: {e}", operation
            ) from e

    def _ordered(self, query):
        return query.order_by(self._model.parent_id, self._model.sequence, self._model.id)

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def _insert(self, session: AsyncSession, point: GeoPoint) -> int:
        row = self._new_row(point)
        session.add(row)
        await session.flush()
        if row.id is None:
            raise PersistenceError(
                f"{self.kind.table_name}: insert returned no generated id", "create"
            )
        return row.id

    async def create(self, point: GeoPoint) -> int:
        """Insert one point and return its generated id"""
        point = self._validated(point)
        with self._translate_errors("create"):
            async with self._session_factory() as session:
                async with session.begin():
                    return await self._insert(session, point)

    async def create_batch(self, points: Iterable[GeoPoint]) -> List[int]:
        """Insert all points atomically; ids come back in input order.

        Every point is validated before the transaction opens. Points may
        belong to different parents.
        """
        validated = [self._validated(point) for point in points]
        if not validated:
            return []

        ids = []
        with self._translate_errors("create_batch"):
            async with self._session_factory() as session:
                async with session.begin():
                    for point in validated:
                        ids.append(await self._insert(session, point))

        logger.debug(f"{self.kind.table_name}: batch inserted {len(ids)} points")
        return ids

    async def append(self, parent_id: int, latitude, longitude) -> GeoPoint:
        """Insert a point at the end of its parent's path.

        Allocation and insert share one transaction, which narrows but does
        not close the window for two concurrent appenders to pick the same
        sequence. resequence() restores a strict order afterwards.
        """
        point = self._validated(GeoPoint(
            parent_id=parent_id, latitude=latitude, longitude=longitude, sequence=1
        ))
        with self._translate_errors("append"):
            async with self._session_factory() as session:
                async with session.begin():
                    sequence = await self._next_sequence(session, parent_id)
                    point = GeoPoint(
                        parent_id=point.parent_id,
                        latitude=point.latitude,
                        longitude=point.longitude,
                        sequence=sequence,
                    )
                    point_id = await self._insert(session, point)
        return point.with_id(point_id)

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    async def get(self, point_id: int) -> Optional[GeoPoint]:
        require_positive_id(point_id, "point_id")
        with self._translate_errors("get"):
            async with self._session_factory() as session:
                row = await session.get(self._model, point_id)
                return self._to_point(row) if row is not None else None

    async def list_all(self) -> List[GeoPoint]:
        with self._translate_errors("list_all"):
            async with self._session_factory() as session:
                result = await session.execute(self._ordered(select(self._model)))
                return [self._to_point(row) for row in result.scalars()]

    async def list_by_parent(self, parent_id: int) -> List[GeoPoint]:
        """Points of one parent in path order"""
        require_positive_id(parent_id, "parent_id")
        with self._translate_errors("list_by_parent"):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(self._model)
                    .where(self._model.parent_id == parent_id)
                    .order_by(self._model.sequence, self._model.id)
                )
                return [self._to_point(row) for row in result.scalars()]

    async def find_in_bounding_box(
        self, lat_min, lat_max, lon_min, lon_max
    ) -> List[GeoPoint]:
        """Points inside the closed box, across all parents.

        An inverted box (min > max) matches nothing.
        """
        lat_min = to_decimal(lat_min, "lat_min")
        lat_max = to_decimal(lat_max, "lat_max")
        lon_min = to_decimal(lon_min, "lon_min")
        lon_max = to_decimal(lon_max, "lon_max")

        with self._translate_errors("find_in_bounding_box"):
            async with self._session_factory() as session:
                result = await session.execute(
                    self._ordered(
                        select(self._model).where(
                            self._model.latitude.between(lat_min, lat_max),
                            self._model.longitude.between(lon_min, lon_max),
                        )
                    )
                )
                return [self._to_point(row) for row in result.scalars()]

    async def find_near(self, latitude, longitude, radius_km: float) -> List[NearbyPoint]:
        """Points within radius_km of (latitude, longitude), nearest first.

        Distance is computed for every stored point; there is no spatial index.
        """
        lat0 = to_decimal(latitude, "latitude")
        lon0 = to_decimal(longitude, "longitude")
        try:
            radius = float(radius_km)
        except (TypeError, ValueError):
            raise ValidationError(f"radius_km must be a number, got {radius_km!r}")
        if not math.isfinite(radius) or radius < 0:
            raise ValidationError(f"radius_km must be finite and non-negative, got {radius_km!r}")
        radius_km = radius

        with self._translate_errors("find_near"):
            async with self._session_factory() as session:
                result = await session.execute(select(self._model))
                rows = result.scalars().all()

        hits = []
        for row in rows:
            distance = haversine_km(lat0, lon0, row.latitude, row.longitude)
            if distance <= radius_km:
                hits.append(NearbyPoint(point=self._to_point(row), distance_km=distance))

        hits.sort(key=lambda hit: (hit.distance_km, hit.point.parent_id, hit.point.sequence))
        return hits

    # -------------------------------------------------------------------------
    # Update / delete
    # -------------------------------------------------------------------------

    async def update(self, point: GeoPoint) -> bool:
        """Overwrite every field of an existing point.

        Returns False when no point has that id. The new sequence is not
        checked for uniqueness within the (possibly new) parent.
        """
        if point is None:
            raise ValidationError("point is required")
        require_positive_id(point.id, "id")
        point = self._validated(point)

        with self._translate_errors("update"):
            async with self._session_factory() as session:
                async with session.begin():
                    row = await session.get(self._model, point.id)
                    if row is None:
                        return False
                    row.parent_id = point.parent_id
                    row.latitude = point.latitude
                    row.longitude = point.longitude
                    row.sequence = point.sequence
                    return True

    async def delete(self, point_id: int) -> bool:
        require_positive_id(point_id, "point_id")
        with self._translate_errors("delete"):
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(self._model).where(self._model.id == point_id)
                    )
                    return result.rowcount > 0

    async def delete_by_parent(self, parent_id: int) -> int:
        """Remove every point of a parent; returns how many were removed"""
        require_positive_id(parent_id, "parent_id")
        with self._translate_errors("delete_by_parent"):
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(self._model).where(self._model.parent_id == parent_id)
                    )
                    return result.rowcount

    # -------------------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------------------

    async def _next_sequence(self, session: AsyncSession, parent_id: int) -> int:
        result = await session.execute(
            select(func.coalesce(func.max(self._model.sequence), 0) + 1)
            .where(self._model.parent_id == parent_id)
        )
        return int(result.scalar_one())

    async def next_sequence(self, parent_id: int) -> int:
        """max(sequence) + 1 for the parent, or 1 if it has no points.

        Not coupled to any later insert; see append().
        """
        require_positive_id(parent_id, "parent_id")
        with self._translate_errors("next_sequence"):
            async with self._session_factory() as session:
                return await self._next_sequence(session, parent_id)

    async def resequence(self, parent_id: int) -> int:
        """Renumber a parent's points 1..N keeping their relative order.

        Ties between duplicated sequences keep insertion (id) order. Returns N.
        """
        require_positive_id(parent_id, "parent_id")
        with self._translate_errors("resequence"):
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        select(self._model)
                        .where(self._model.parent_id == parent_id)
                        .order_by(self._model.sequence, self._model.id)
                    )
                    rows = result.scalars().all()
                    for position, row in enumerate(rows, start=1):
                        if row.sequence != position:
                            row.sequence = position
                            await session.flush()

        logger.debug(f"{self.kind.table_name}: resequenced parent {parent_id} ({len(rows)} points)")
        return len(rows)

    # -------------------------------------------------------------------------
    # Checks and statistics
    # -------------------------------------------------------------------------

    async def exists_duplicate(self, parent_id: int, latitude, longitude) -> bool:
        """True if the parent already has a point at exactly this coordinate"""
        require_positive_id(parent_id, "parent_id")
        latitude = to_decimal(latitude, "latitude")
        longitude = to_decimal(longitude, "longitude")

        with self._translate_errors("exists_duplicate"):
            async with self._session_factory() as session:
                found = await session.scalar(
                    select(
                        exists().where(
                            self._model.parent_id == parent_id,
                            self._model.latitude == latitude,
                            self._model.longitude == longitude,
                        )
                    )
                )
                return bool(found)

    async def bounds(self) -> GeoBounds:
        """Min/max latitude and longitude over every stored point"""
        with self._translate_errors("bounds"):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(
                        func.min(self._model.latitude),
                        func.max(self._model.latitude),
                        func.min(self._model.longitude),
                        func.max(self._model.longitude),
                    )
                )
                lat_min, lat_max, lon_min, lon_max = result.one()
                return GeoBounds(lat_min=lat_min, lat_max=lat_max, lon_min=lon_min, lon_max=lon_max)

    async def count(self) -> int:
        with self._translate_errors("count"):
            async with self._session_factory() as session:
                return await session.scalar(select(func.count(self._model.id)))

    async def count_by_parent(self, parent_id: int) -> int:
        require_positive_id(parent_id, "parent_id")
        with self._translate_errors("count_by_parent"):
            async with self._session_factory() as session:
                return await session.scalar(
                    select(func.count(self._model.id)).where(self._model.parent_id == parent_id)
                )
