#!/usr/bin/env python
"""
Command-line interface for the roadnet world builder

Usage:
    python cli.py download --region=mindanao
    python cli.py process --input=data/raw/mindanao.osm
    python cli.py route --from 0,0 --to 1500,-800
"""

import os
import sys
import json
import argparse
from typing import List, Optional, Tuple

from loguru import logger

from roadnet.config import get_config, validate_config
from roadnet.dataset import load_roads
from roadnet.errors import RoadnetError
from roadnet.ingest import IngestionPipeline, RegionDownloader, find_latest_osm_file
from roadnet.ingest.download import apply_env_overrides
from roadnet.navigation import Pathfinder


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def _parse_position(value: str) -> Tuple[float, float]:
    try:
        x_str, z_str = value.split(",")
        return float(x_str), float(z_str)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected X,Z in meters, got '{value}'") from None


def cmd_process(args):
    """Convert an OSM file into roads.json and pois.json"""
    setup_logging(args.verbose)
    config = get_config()

    logger.info("=" * 60)
    logger.info("roadnet - OSM processing")
    logger.info("=" * 60)

    input_path = args.input or find_latest_osm_file(config.ingest.input_dir)
    if not input_path:
        logger.error(f"No .osm file found in {config.ingest.input_dir}. Run `python cli.py download` first.")
        return 1

    try:
        validate_config(config)
        pipeline = IngestionPipeline(config, workers=args.workers)
        result = pipeline.run_file(input_path)
        roads_path, pois_path = pipeline.save(result, args.output_dir)
    except RoadnetError as e:
        logger.error(f"Processing failed: {e}")
        return 1

    stats = result.stats
    logger.info(f"✓ Roads: {roads_path} ({stats.roads} roads, {stats.total_points} points)")
    logger.info(f"✓ POIs:  {pois_path} ({stats.pois} POIs)")
    return 0


def cmd_download(args):
    """Download raw OSM data for a named region"""
    setup_logging(args.verbose)
    config = get_config()
    apply_env_overrides(config)

    logger.info("=" * 60)
    logger.info("roadnet - OSM download")
    logger.info("=" * 60)

    try:
        validate_config(config)
        path = RegionDownloader(config).download(args.region, args.output_dir)
    except RoadnetError as e:
        logger.error(f"Download failed: {e}")
        return 1

    logger.info(f"✓ Downloaded: {path}")
    return 0


def cmd_regions(args):
    """List the configured regions"""
    for name, region in sorted(get_config().regions.items()):
        print(f"{name:<16} S {region.south:>6} W {region.west:>7} "
              f"N {region.north:>6} E {region.east:>7}  {region.description}")
    return 0


def cmd_route(args):
    """Find a route over a processed roads.json"""
    setup_logging(args.verbose)
    config = get_config()
    roads_path = args.roads or os.path.join(config.ingest.output_dir, "roads.json")

    try:
        roads = load_roads(roads_path)
    except RoadnetError as e:
        logger.error(f"Cannot load road network: {e}")
        return 1

    pathfinder = Pathfinder(config.graph)
    pathfinder.build_graph(roads.roads)

    (start_x, start_z), (end_x, end_z) = args.start, args.end
    path = pathfinder.find_path(start_x, start_z, end_x, end_z)
    if path is None:
        logger.error("No route found")
        return 1

    logger.info(f"Route: {len(path)} points, {pathfinder.get_path_distance(path):.0f} m")
    print(json.dumps({"distance": pathfinder.get_path_distance(path), "points": path}, indent=2))
    return 0


def main(argv: Optional[List[str]] = None):
    config = get_config()
    parser = argparse.ArgumentParser(
        description="roadnet world builder CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Download raw OSM data:
    python cli.py download --region=davao

  Process the newest file in data/raw:
    python cli.py process

  Process a specific file:
    python cli.py process --input=data/raw/test.osm

  Route between two planar positions:
    python cli.py route --from 0,0 --to 1500,-800
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    # Subcommands accept -v too; SUPPRESS keeps a top-level -v from being reset
    verbose_parent = argparse.ArgumentParser(add_help=False)
    verbose_parent.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS,
                                help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Process command
    process_parser = subparsers.add_parser("process", parents=[verbose_parent], help="Convert OSM data into roads.json and pois.json")
    process_parser.add_argument("--input", "-i", help="Input .osm file (default: newest file in data/raw)")
    process_parser.add_argument("--output-dir", "-o", help="Output directory (default: data/processed)")
    process_parser.add_argument("--workers", type=int, help="Worker threads (default: CPU count)")
    process_parser.set_defaults(func=cmd_process)

    # Download command
    download_parser = subparsers.add_parser("download", parents=[verbose_parent], help="Download OSM data for a named region")
    download_parser.add_argument("--region", "-r", default=config.default_region,
                                 choices=sorted(config.regions), help="Region to download")
    download_parser.add_argument("--output-dir", "-o", help="Output directory (default: data/raw)")
    download_parser.set_defaults(func=cmd_download)

    # Regions command
    regions_parser = subparsers.add_parser("regions", help="List downloadable regions")
    regions_parser.set_defaults(func=cmd_regions)

    # Route command
    route_parser = subparsers.add_parser("route", parents=[verbose_parent], help="Find a route over processed roads")
    route_parser.add_argument("--from", dest="start", type=_parse_position, required=True, help="Start X,Z")
    route_parser.add_argument("--to", dest="end", type=_parse_position, required=True, help="End X,Z")
    route_parser.add_argument("--roads", help="roads.json path (default: data/processed/roads.json)")
    route_parser.set_defaults(func=cmd_route)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
