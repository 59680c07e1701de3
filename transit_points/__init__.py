"""Transit Points - ordered geo-points of route traversals and stops"""

__version__ = "1.0.0"
