"""
Geo-point Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List


class GeoPointBase(BaseModel):
    """Fields shared by every incoming point payload"""
    parent_id: int = Field(..., gt=0, description="Owning traversal or stop ID")
    latitude: float = Field(..., ge=-90, le=90, description="Latitude in decimal degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in decimal degrees")


class GeoPointCreate(GeoPointBase):
    """Schema for creating a point; omit sequence to append at the end of the parent"""
    sequence: Optional[int] = Field(None, ge=1, description="Position within the parent")


class GeoPointWrite(GeoPointBase):
    """Full point payload, used for updates and bulk creates"""
    sequence: int = Field(..., ge=1, description="Position within the parent")


class GeoPointBulkCreate(BaseModel):
    """Schema for bulk creating points (may span several parents)"""
    points: List[GeoPointWrite] = Field(..., min_length=1)


class GeoPointResponse(BaseModel):
    """Schema for point response"""
    id: int
    parent_id: int
    latitude: float
    longitude: float
    sequence: int

    class Config:
        from_attributes = True


class NearbyGeoPointResponse(GeoPointResponse):
    """Response with distance for proximity search"""
    distance_km: float = Field(..., description="Distance in kilometers")


class GeoBoundsResponse(BaseModel):
    """Extent of all stored points, for map viewports"""
    lat_min: Optional[float] = None
    lat_max: Optional[float] = None
    lon_min: Optional[float] = None
    lon_max: Optional[float] = None
    empty: bool
