#!/usr/bin/env python3
"""CLI entry point for building the facility maps."""

import argparse
import sys
from pathlib import Path

from nycmaps.config import load_settings_from_env
from nycmaps.pipeline import MapPipeline


def main():
    parser = argparse.ArgumentParser(
        description="Build static and interactive maps of NYC hospitals"
    )
    parser.add_argument(
        "--boundaries",
        choices=["geojson", "shapefile"],
        default="geojson",
        help="Where to load PUMA boundaries from",
    )
    parser.add_argument(
        "--output-dir",
        help="Directory for figures and the HTML map. Default: $NYCMAPS_OUTPUT_DIR or ./output",
    )
    parser.add_argument(
        "--broadband-url",
        help="URL or path of the broadband CSV. Default: $NYCMAPS_BROADBAND_URL",
    )
    parser.add_argument(
        "--income-url",
        help="URL or path of the income spreadsheet. Default: $NYCMAPS_INCOME_URL",
    )
    parser.add_argument(
        "--no-static",
        action="store_true",
        help="Skip the static figures",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not print progress",
    )

    args = parser.parse_args()

    # Load settings from environment, then apply overrides
    settings = load_settings_from_env()
    if args.output_dir:
        settings.output_dir = Path(args.output_dir)
    if args.broadband_url:
        settings.broadband_url = args.broadband_url
    if args.income_url:
        settings.income_url = args.income_url
    if args.quiet:
        settings.verbose = False

    if settings.verbose:
        print("Building maps...")
        print(f"  Boundaries: {args.boundaries}")
        print(f"  Output dir: {settings.output_dir}")
        print(f"  Broadband: {settings.broadband_url or 'not set'}")
        print(f"  Income: {settings.income_url or 'not set'}")
        print()

    pipeline = MapPipeline(settings)

    try:
        result = pipeline.run(
            boundary_source=args.boundaries,
            save_static=not args.no_static,
        )
    except Exception as e:
        print(f"Map build failed: {e}", file=sys.stderr)
        sys.exit(1)

    if settings.verbose:
        print("\n" + "=" * 50)
        print("Build Complete!")
        print("=" * 50)
        print(f"Facilities: {len(result.facilities)}")
        print(f"PUMAs: {len(result.pumas)}")
        for name, join in result.joins.items():
            print(f"  {name} coverage: {join.coverage:.1%}")
        for name, path in result.figures.items():
            print(f"Figure {name}: {path}")
        print(f"Interactive map: {result.html_path}")


if __name__ == "__main__":
    main()
