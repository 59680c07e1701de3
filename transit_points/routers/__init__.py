"""API Routers"""
from transit_points.routers.geo_points import build_router, traversal_points, stop_points

__all__ = ["build_router", "traversal_points", "stop_points"]
