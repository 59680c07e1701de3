"""
Geo-point Models - ordered waypoints of traversals and stops
"""
from sqlalchemy import Column, Integer, Numeric, Index
from transit_points.database import Base

# 7 fractional digits, ~1 cm at the equator
COORDINATE_TYPE = Numeric(10, 7)


class GeoPointMixin:
    """Columns shared by every ordered point table.

    Subclasses map ``parent_id`` onto their own foreign-key column name.
    """
    id = Column(Integer, primary_key=True, autoincrement=True)
    latitude = Column(COORDINATE_TYPE, nullable=False)
    longitude = Column(COORDINATE_TYPE, nullable=False)
    sequence = Column(Integer, nullable=False)


class TraversalPoint(GeoPointMixin, Base):
    """Waypoint of a route traversal"""
    __tablename__ = "traversal_point"

    parent_id = Column("traversal_id", Integer, nullable=False, index=True)

    __table_args__ = (
        Index("ix_traversal_point_parent_sequence", "traversal_id", "sequence"),
    )


class StopPoint(GeoPointMixin, Base):
    """Waypoint outlining a stop"""
    __tablename__ = "stop_point"

    parent_id = Column("stop_id", Integer, nullable=False, index=True)

    __table_args__ = (
        Index("ix_stop_point_parent_sequence", "stop_id", "sequence"),
    )
