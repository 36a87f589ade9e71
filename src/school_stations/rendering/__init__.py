"""
School Stations - Map Rendering

folium rendering of the unified point list.

Usage:
    from school_stations.rendering import build_icon_map, build_legend_html, build_map, save_map

    icons = build_icon_map(config.map, band_size, max_rank)
    legend = build_legend_html(config.map, band_size, max_rank)
    m = build_map(points, icons, legend, config.map)
    save_map(m, "output/school_stations_map.html")
"""

from school_stations.rendering.map_builder import (
    RESERVED_FIELDS,
    band_colors,
    build_icon_map,
    build_legend_html,
    build_map,
    frame_to_points,
    from_record,
    icon_key,
    make_icon,
    points_to_frame,
    popup_html,
    save_map,
    to_record,
)

__all__ = [
    "RESERVED_FIELDS",
    "band_colors",
    "build_icon_map",
    "build_legend_html",
    "build_map",
    "frame_to_points",
    "from_record",
    "icon_key",
    "make_icon",
    "points_to_frame",
    "popup_html",
    "save_map",
    "to_record",
]
