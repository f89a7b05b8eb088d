"""
townlink - public road network generation for grid terrain maps.

This package connects the settlements of a tile map with public roads using
a reusable A* search engine and terrain-aware road placement rules.
"""

__version__ = "0.1.0"
