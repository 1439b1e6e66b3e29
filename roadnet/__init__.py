"""
roadnet - road network world builder

Turns OpenStreetMap survey data into a planar road/POI dataset, then serves
it at runtime through an A* pathfinder and a chunk streaming manager.
"""

__version__ = "1.0.0"
