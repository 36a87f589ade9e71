"""
School Stations - Command Line Entry Point

    school-stations --env prod --radius-km 1.5 --index grid
"""

from __future__ import annotations

import argparse
import logging
import sys

from school_stations.shared.config import get_config
from school_stations.shared.errors import SchoolStationsError
from school_stations.shared.geo.proximity import INDEXES
from school_stations.shared.log import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="school-stations",
        description="Map the train stations within walking range of top-ranked Melbourne schools.",
    )
    ap.add_argument("--env", choices=["dev", "prod"], default=None, help="Config environment")
    ap.add_argument("--radius-km", type=float, default=None, help="Proximity radius in km")
    ap.add_argument("--band-size", type=int, default=None, help="Ranks per icon band")
    ap.add_argument("--index", choices=sorted(INDEXES), default=None, help="Proximity index")
    ap.add_argument(
        "--coordinates",
        choices=["reference", "geocode"],
        default=None,
        help="Where school coordinates come from",
    )
    ap.add_argument(
        "--geocode-unmatched",
        action="store_true",
        default=None,
        help="Geocode schools missing from the reference file",
    )
    ap.add_argument("--locations", default=None, help="School locations reference CSV")
    ap.add_argument("--output", default=None, help="Output map HTML path")
    ap.add_argument("--review-dir", default=None, help="Directory for manual-review CSVs")
    ap.add_argument("--no-map", action="store_true", help="Skip rendering the map")
    ap.add_argument("--log-level", default=None, help="Override the configured log level")
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = get_config(args.env)
    configure_logging(config, level=args.log_level)

    # Imported after logging is configured so module-level config loading is logged
    from school_stations.pipeline import run_pipeline

    try:
        result = run_pipeline(
            config,
            radius_km=args.radius_km,
            index=args.index,
            band_size=args.band_size,
            coordinate_source=args.coordinates,
            geocode_unmatched=args.geocode_unmatched,
            locations_path=args.locations,
            output_path=args.output,
            review_dir=args.review_dir,
            render=not args.no_map,
        )
    except SchoolStationsError as e:
        logger.error(f"Pipeline failed: {e}")
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(f"Schools on map:        {result.schools_located}")
    print(f"Stations within {result.radius_km:g} km: {len(result.nearby)}")
    print(f"Ungeocoded points:     {len(result.ungeocoded)}")
    print(f"Join mismatches:       {len(result.join_mismatches)}")
    print(f"Dropped rows:          {len(result.dropped_rows)}")
    if result.map_path:
        print(f"Map:                   {result.map_path}")
    for path in result.review_files:
        print(f"Review file:           {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
