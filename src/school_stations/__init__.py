"""
School Stations

Finds the Melbourne train stations within walking range of top-ranked
schools and renders both on an interactive map.
"""

__version__ = "0.1.0"
