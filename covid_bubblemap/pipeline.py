"""
Bubble map build: fetch the JHU CSSE snapshot and write the web app.

Steps
-----
  Step 1 · Fetch and normalise case points (or load a saved GeoJSON snapshot)
  Step 2 · Optionally save the normalised snapshot as GeoJSON
  Step 3 · Generate the Mapbox GL JS bubble map

Usage
-----
    covid-bubblemap                                   # fetch + build
    covid-bubblemap --output site/index.html
    covid-bubblemap --save-geojson points.geojson     # keep the snapshot
    covid-bubblemap --from-geojson points.geojson     # rebuild without fetching
    covid-bubblemap --config bubblemap.yaml --verbose

Environment variables (.env)
----------------------------
    MAPBOX_TOKEN  — Mapbox public token (required for the map to render)
    JHU_API_URL   — override the snapshot endpoint (optional)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple, Union

import requests
import yaml
from dotenv import load_dotenv

from .config import BubbleMapConfig
from .jhu import CasePoint, JHUClient, load_geojson, points_from_geojson, save_geojson
from .mapbox import generate_bubble_map, summarize

logger = logging.getLogger(__name__)


def fetch_points(config: BubbleMapConfig) -> Tuple[CasePoint, ...]:
    """Fetch the current snapshot, saving it as GeoJSON if configured."""
    client = JHUClient(config.api)
    try:
        points = client.query()
        if config.output_geojson:
            config.output_geojson.parent.mkdir(parents=True, exist_ok=True)
            save_geojson(client.to_geojson(points), config.output_geojson)
    finally:
        client.close()
    return points


def build_bubble_map(
    config: Optional[BubbleMapConfig] = None,
    from_geojson: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Run the build end to end.

    Args:
        config: Build configuration (defaults + environment when omitted)
        from_geojson: Use a saved snapshot instead of fetching

    Returns:
        Path to the written HTML file
    """
    config = config or BubbleMapConfig()

    if from_geojson:
        logger.info(f"Loading case points from {from_geojson}")
        points = points_from_geojson(load_geojson(from_geojson))
    else:
        points = fetch_points(config)

    path = generate_bubble_map(
        points,
        output_path=config.output_html,
        config=config.map,
        title=config.title,
    )
    _print_summary(points, path)
    return path


def _print_summary(points, path: Path) -> None:
    """Print build summary."""
    summary = summarize(points)
    print("\n" + "=" * 60)
    print("Bubble map")
    print("=" * 60)
    print(f"Locations: {summary['locations']:,}")
    print(f"Cases:     {summary['cases']:,}")
    print(f"Deaths:    {summary['deaths']:,}")
    if summary["updated_at"]:
        print(f"Updated:   {summary['updated_at']}")
    print(f"Output:    {path}")
    print("=" * 60 + "\n")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="COVID-19 case bubble map (JHU CSSE + Mapbox GL JS)")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--output", help="HTML output path")
    parser.add_argument("--token", help="Mapbox public token (default: MAPBOX_TOKEN)")
    parser.add_argument("--title", help="Page title")
    parser.add_argument("--save-geojson", help="Also save the normalised points as GeoJSON")
    parser.add_argument("--from-geojson", help="Build from a saved GeoJSON snapshot instead of fetching")
    parser.add_argument("--verbose", action="store_true", help="DEBUG-level logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    load_dotenv()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = BubbleMapConfig.from_yaml(args.config) if args.config else BubbleMapConfig()

        # Command-line overrides
        if args.output:
            config.output_html = Path(args.output)
        if args.token:
            config.map.mapbox_token = args.token
        if args.title:
            config.title = args.title
        if args.save_geojson:
            config.output_geojson = Path(args.save_geojson)

        build_bubble_map(config, from_geojson=args.from_geojson)
    except (requests.RequestException, yaml.YAMLError, RuntimeError, ValueError, OSError) as e:
        logger.error(f"Bubble map build failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
