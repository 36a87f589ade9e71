"""
School Stations - Map Builder

Renders schools and nearby stations with folium:
- one FeatureGroup per category with a layer control
- per-band school icons and a train icon for stations, either folium.Icon
  specs or image files from the configured icon directory
- HTML popups, a title and a fixed-position legend

Points cross into the renderer as flat records
{label, category, latitude, longitude, popup, **attributes}.
"""

from __future__ import annotations

import html
import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

import folium
import pandas as pd

from school_stations.shared.config import IconConfig, MapConfig
from school_stations.shared.models import Category, GeoPoint
from school_stations.shared.normalize import rank_band

logger = logging.getLogger(__name__)

RESERVED_FIELDS = ("label", "category", "latitude", "longitude", "popup")

LAYER_NAMES = {Category.SCHOOL: "Schools", Category.STATION: "Train stations"}


# =============================================================================
# Record Conversion
# =============================================================================


def popup_html(point: GeoPoint) -> str:
    """Popup body: the label in bold followed by one line per attribute."""
    lines = [f"<b>{html.escape(point.label)}</b>"]
    for key, value in point.attributes.items():
        name = key.replace("_", " ").capitalize()
        lines.append(f"{html.escape(name)}: {html.escape(value)}")
    return "<br>".join(lines)


def to_record(point: GeoPoint) -> dict[str, Any]:
    """Convert a GeoPoint to the renderer's flat record shape."""
    record: dict[str, Any] = {
        "label": point.label,
        "category": point.category.value,
        "latitude": point.latitude,
        "longitude": point.longitude,
        "popup": popup_html(point),
    }
    for key, value in point.attributes.items():
        if key not in RESERVED_FIELDS:
            record[key] = value
    return record


def from_record(record: Mapping[str, Any]) -> GeoPoint:
    """Rebuild a GeoPoint from a record; blank attribute values are dropped."""
    attributes = {
        key: value
        for key, value in record.items()
        if key not in RESERVED_FIELDS
        and value is not None
        and not (not isinstance(value, str) and pd.isna(value))
        and str(value) != ""
    }
    return GeoPoint(
        label=str(record["label"]),
        latitude=record.get("latitude"),
        longitude=record.get("longitude"),
        category=Category(record["category"]),
        attributes=attributes,
    )


def points_to_frame(points: Iterable[GeoPoint]) -> pd.DataFrame:
    """Tabulate points as records (one row per point)."""
    records = [to_record(p) for p in points]
    if not records:
        return pd.DataFrame(columns=list(RESERVED_FIELDS))
    return pd.DataFrame.from_records(records)


def frame_to_points(df: pd.DataFrame) -> list[GeoPoint]:
    return [from_record(record) for record in df.to_dict(orient="records")]


# =============================================================================
# Icons and Legend
# =============================================================================


def icon_key(point: GeoPoint) -> str:
    """Icon lookup key: "school:<band>", "school" or "station"."""
    if point.category is Category.STATION:
        return "station"
    band = point.attributes.get("band")
    return f"school:{band}" if band else "school"


def band_colors(
    map_config: MapConfig, band_size: int = 10, max_rank: int = 50
) -> dict[str, str]:
    """
    Colour for every rank band up to max_rank, keyed like rank_band().

    band_colors(config, 20, 50) == {"20": "darkred", "40": "red", "60": "orange"}
    """
    last = int(rank_band(max(max_rank, 1), band_size))
    uppers = range(band_size, last + 1, band_size)
    palette = map_config.band_palette or [map_config.default_band_color]
    return {str(upper): palette[i % len(palette)] for i, upper in enumerate(uppers)}


def build_icon_map(
    map_config: MapConfig, band_size: int = 10, max_rank: int = 50
) -> dict[str, IconConfig]:
    """
    Build the icon specs keyed by icon_key().

    When map_config.icon_dir is set, image files named school_<band>.png,
    school.png and station.png replace the matching folium.Icon specs.
    """
    icons = {
        f"school:{band}": IconConfig(color=color, icon=map_config.school_icon)
        for band, color in band_colors(map_config, band_size, max_rank).items()
    }
    icons["school"] = IconConfig(
        color=map_config.default_band_color, icon=map_config.school_icon
    )
    icons["station"] = map_config.station_icon.model_copy()

    if map_config.icon_dir:
        icon_dir = Path(map_config.icon_dir)
        for key, spec in icons.items():
            image = icon_dir / f"{key.replace(':', '_')}.png"
            if image.exists():
                icons[key] = spec.model_copy(update={"image": str(image)})
            else:
                logger.debug(f"No icon image for {key} in {icon_dir}")
    return icons


def make_icon(spec: IconConfig) -> folium.Icon | folium.CustomIcon:
    """Create a fresh icon object; folium icons cannot be shared between markers."""
    if spec.image:
        return folium.CustomIcon(spec.image, icon_size=spec.size)
    return folium.Icon(color=spec.color, icon=spec.icon, prefix=spec.prefix)


def build_legend_html(map_config: MapConfig, band_size: int = 10, max_rank: int = 50) -> str:
    """Fixed-position legend listing the rank bands and the station marker."""
    rows = []
    for band, color in band_colors(map_config, band_size, max_rank).items():
        upper = int(band)
        lower = upper - band_size + 1
        rows.append(
            f'<div style="margin-bottom: 3px;">'
            f'<span style="display:inline-block; width: 10px; height: 10px; '
            f'background-color: {color}; margin-right: 4px;"></span>'
            f"Rank {lower}-{min(upper, max_rank)}</div>"
        )
    rows.append(
        f'<div><span style="display:inline-block; width: 10px; height: 10px; '
        f'background-color: {map_config.station_icon.color}; margin-right: 4px;"></span>'
        f"Train station</div>"
    )
    return f"""
    <div style="position: fixed;
                bottom: 20px; right: 10px;
                z-index: 9999;
                font-size: 11px;
                background-color: white;
                border: 2px solid grey;
                border-radius: 5px;
                padding: 8px;">
        <div style="font-weight: bold; margin-bottom: 6px; font-size: 12px;">Legend</div>
        {''.join(rows)}
    </div>
    """


# =============================================================================
# Map
# =============================================================================


def build_map(
    points: Sequence[GeoPoint],
    icons: Mapping[str, IconConfig],
    legend_html: str | None,
    map_config: MapConfig,
) -> folium.Map:
    """
    Build a folium map with one marker per located point.

    Points without coordinates are skipped (they are reported upstream).
    """
    m = folium.Map(
        location=list(map_config.center),
        zoom_start=map_config.zoom_start,
        tiles=map_config.tiles,
    )

    title_html = f"""
        <h3 align="center" style="font-size:20px">{html.escape(map_config.title)}</h3>
    """
    m.get_root().html.add_child(folium.Element(title_html))

    layers = {
        category: folium.FeatureGroup(name=name, show=True).add_to(m)
        for category, name in LAYER_NAMES.items()
    }

    added = 0
    skipped = 0
    for point in points:
        if not point.has_coordinates:
            skipped += 1
            continue
        key = icon_key(point)
        spec = icons.get(key) or icons.get(key.split(":", 1)[0])
        if spec is None:
            raise KeyError(f"No icon configured for '{key}'")
        folium.Marker(
            [point.latitude, point.longitude],
            popup=folium.Popup(popup_html(point), max_width=map_config.popup_max_width),
            tooltip=point.label,
            icon=make_icon(spec),
        ).add_to(layers[point.category])
        added += 1

    folium.LayerControl(collapsed=False).add_to(m)

    if legend_html:
        m.get_root().html.add_child(folium.Element(legend_html))

    if skipped:
        logger.warning(f"{skipped} points without coordinates left off the map")
    logger.info(f"Built map with {added} markers")
    return m


def save_map(m: folium.Map, path: str | Path) -> Path:
    """Write the map as a standalone HTML file, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    m.save(str(path))
    logger.info(f"Map saved as {path}")
    return path
