"""
Geo-point API Routes
One router per parent kind: traversal waypoints and stop outlines share every endpoint.
"""
from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import async_sessionmaker
from typing import List, Optional

from transit_points.database import get_session_factory
from transit_points.store import OrderedPointStore, ParentKind, GeoPoint, to_coordinate
from transit_points.schemas.geo_point import (
    GeoPointCreate,
    GeoPointWrite,
    GeoPointBulkCreate,
    GeoPointResponse,
    NearbyGeoPointResponse,
    GeoBoundsResponse
)
from transit_points.utils.metrics import record_point_operation


def build_router(kind: ParentKind) -> APIRouter:
    """Build the CRUD/spatial router for one parent kind"""
    router = APIRouter()
    label = kind.value

    def get_store(session_factory: async_sessionmaker = Depends(get_session_factory)) -> OrderedPointStore:
        return OrderedPointStore(session_factory, kind)

    # =========================================================================
    # Collection queries
    # =========================================================================

    @router.get("/", response_model=List[GeoPointResponse])
    async def list_points(
        parent_id: Optional[int] = Query(None, description="Only points of this parent, in path order"),
        store: OrderedPointStore = Depends(get_store)
    ):
        """List points, ordered by parent and sequence"""
        record_point_operation('list', label)
        if parent_id is not None:
            return await store.list_by_parent(parent_id)
        return await store.list_all()

    @router.get("/count")
    async def count_points(
        parent_id: Optional[int] = Query(None),
        store: OrderedPointStore = Depends(get_store)
    ):
        """Get total count of points, optionally for one parent"""
        if parent_id is not None:
            return {"count": await store.count_by_parent(parent_id)}
        return {"count": await store.count()}

    @router.get("/bounds", response_model=GeoBoundsResponse)
    async def get_bounds(store: OrderedPointStore = Depends(get_store)):
        """Min/max latitude and longitude over every point"""
        record_point_operation('bounds', label)
        bounds = await store.bounds()
        return GeoBoundsResponse(
            lat_min=bounds.lat_min,
            lat_max=bounds.lat_max,
            lon_min=bounds.lon_min,
            lon_max=bounds.lon_max,
            empty=bounds.is_empty
        )

    @router.get("/within", response_model=List[GeoPointResponse])
    async def find_within_box(
        lat_min: float = Query(..., description="South edge"),
        lat_max: float = Query(..., description="North edge"),
        lon_min: float = Query(..., description="West edge"),
        lon_max: float = Query(..., description="East edge"),
        store: OrderedPointStore = Depends(get_store)
    ):
        """Points inside a closed bounding box; an inverted box returns nothing"""
        record_point_operation('bounding_box', label)
        return await store.find_in_bounding_box(lat_min, lat_max, lon_min, lon_max)

    @router.get("/nearby", response_model=List[NearbyGeoPointResponse])
    async def find_nearby(
        lat: float = Query(..., ge=-90, le=90, description="Latitude"),
        lng: float = Query(..., ge=-180, le=180, description="Longitude"),
        radius_km: float = Query(1.0, ge=0, description="Search radius in km"),
        limit: Optional[int] = Query(None, ge=1, le=1000),
        store: OrderedPointStore = Depends(get_store)
    ):
        """Points within radius_km of the given coordinate, nearest first"""
        record_point_operation('nearby', label)
        hits = await store.find_near(lat, lng, radius_km)
        if limit is not None:
            hits = hits[:limit]
        return [
            NearbyGeoPointResponse(
                **asdict(hit.point),
                distance_km=round(hit.distance_km, 3)
            )
            for hit in hits
        ]

    @router.get("/exists")
    async def check_duplicate(
        parent_id: int = Query(...),
        lat: float = Query(...),
        lng: float = Query(...),
        store: OrderedPointStore = Depends(get_store)
    ):
        """Whether the parent already has a point at exactly this coordinate"""
        return {"exists": await store.exists_duplicate(parent_id, lat, lng)}

    # =========================================================================
    # Per-parent operations
    # =========================================================================

    @router.get("/parent/{parent_id}", response_model=List[GeoPointResponse])
    async def list_parent_points(parent_id: int, store: OrderedPointStore = Depends(get_store)):
        """Points of one parent in path order"""
        record_point_operation('list_by_parent', label)
        return await store.list_by_parent(parent_id)

    @router.get("/parent/{parent_id}/next-sequence")
    async def get_next_sequence(parent_id: int, store: OrderedPointStore = Depends(get_store)):
        """Sequence an appended point would get (not reserved)"""
        return {"parent_id": parent_id, "next_sequence": await store.next_sequence(parent_id)}

    @router.post("/parent/{parent_id}/resequence", response_model=List[GeoPointResponse])
    async def resequence_parent(parent_id: int, store: OrderedPointStore = Depends(get_store)):
        """Renumber the parent's points 1..N keeping their order"""
        await store.resequence(parent_id)
        record_point_operation('resequence', label)
        return await store.list_by_parent(parent_id)

    @router.delete("/parent/{parent_id}")
    async def delete_parent_points(parent_id: int, store: OrderedPointStore = Depends(get_store)):
        """Delete every point of a parent (used when the parent itself is removed)"""
        count = await store.delete_by_parent(parent_id)
        record_point_operation('delete_by_parent', label)
        return {"status": "deleted", "parent_id": parent_id, "count": count}

    # =========================================================================
    # Single points
    # =========================================================================

    @router.get("/{point_id}", response_model=GeoPointResponse)
    async def get_point(point_id: int, store: OrderedPointStore = Depends(get_store)):
        """Get a specific point"""
        point = await store.get(point_id)
        if not point:
            raise HTTPException(status_code=404, detail=f"{label.capitalize()} point not found")
        return point

    @router.post("/", response_model=GeoPointResponse, status_code=201)
    async def create_point(
        payload: GeoPointCreate,
        reject_duplicates: bool = Query(False, description="Fail if the parent already has this exact coordinate"),
        store: OrderedPointStore = Depends(get_store)
    ):
        """Create a point; without a sequence it is appended to the parent's path"""
        # compare against the coordinate as it will be stored
        if reject_duplicates and await store.exists_duplicate(
            payload.parent_id,
            to_coordinate(payload.latitude, "latitude"),
            to_coordinate(payload.longitude, "longitude")
        ):
            raise HTTPException(
                status_code=409,
                detail=f"Parent {payload.parent_id} already has a point at ({payload.latitude}, {payload.longitude})"
            )

        if payload.sequence is None:
            point = await store.append(payload.parent_id, payload.latitude, payload.longitude)
        else:
            point = GeoPoint(**payload.model_dump())
            point = point.with_id(await store.create(point))

        record_point_operation('create', label, written=1)
        return point

    @router.post("/bulk", response_model=List[GeoPointResponse], status_code=201)
    async def bulk_create_points(
        request: GeoPointBulkCreate,
        store: OrderedPointStore = Depends(get_store)
    ):
        """Bulk create points in one transaction; nothing is stored if any insert fails"""
        points = [GeoPoint(**item.model_dump()) for item in request.points]
        ids = await store.create_batch(points)
        record_point_operation('bulk_create', label, written=len(ids))
        return [point.with_id(point_id) for point, point_id in zip(points, ids)]

    @router.put("/{point_id}", response_model=GeoPointResponse)
    async def update_point(
        point_id: int,
        payload: GeoPointWrite,
        store: OrderedPointStore = Depends(get_store)
    ):
        """Replace every field of a point (re-parenting allowed)"""
        point = GeoPoint(id=point_id, **payload.model_dump())
        if not await store.update(point):
            raise HTTPException(status_code=404, detail=f"{label.capitalize()} point not found")
        record_point_operation('update', label)
        return point

    @router.delete("/{point_id}")
    async def delete_point(point_id: int, store: OrderedPointStore = Depends(get_store)):
        """Delete a point"""
        if not await store.delete(point_id):
            raise HTTPException(status_code=404, detail=f"{label.capitalize()} point not found")
        record_point_operation('delete', label)
        return {"status": "deleted", "id": point_id}

    return router


traversal_points = build_router(ParentKind.TRAVERSAL)
stop_points = build_router(ParentKind.STOP)
