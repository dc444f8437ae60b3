"""Command-line interface for the cut profile computation."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from noise_pathfinder import __version__, config
from noise_pathfinder.logging_config import setup_logging


def parse_args(args=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="noise-pathfinder",
        description="Compute the cut profile between a sound source and a receiver "
                    "through buildings, terrain and ground effect areas",
    )
    parser.add_argument("input", type=Path,
                        help="Scene file: DXF (buildings, terrain, ground) or LandXML (terrain)")
    parser.add_argument("--terrain", type=Path, default=None,
                        help="Additional LandXML terrain file")
    parser.add_argument("--surface-name", default="",
                        help="Name of the LandXML surface to use (default: first)")
    parser.add_argument("--source", type=float, nargs=3, required=True,
                        metavar=("X", "Y", "Z"), help="Source coordinate")
    parser.add_argument("--receiver", type=float, nargs=3, required=True,
                        metavar=("X", "Y", "Z"), help="Receiver coordinate")
    parser.add_argument("--max-line-length", type=float, default=config.MAX_LINE_LENGTH,
                        help="Max sub-segment length for index queries (default: 15)")
    parser.add_argument("--max-area", type=float, default=config.DEFAULT_MAX_TRIANGLE_AREA,
                        help="Max terrain triangle area, 0 for none (default: 0)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser.parse_args(args)


def main(args=None) -> None:
    """Main entry point."""
    opts = parse_args(args)
    setup_logging(logging.DEBUG if opts.verbose else logging.WARNING)

    # Validate inputs
    for path in (opts.input, opts.terrain):
        if path is not None and not path.exists():
            print(f"Error: Input file not found: {path}", file=sys.stderr)
            sys.exit(1)
    if opts.max_line_length <= 0:
        print("Error: --max-line-length must be positive", file=sys.stderr)
        sys.exit(1)

    print(f"Noise Pathfinder v{__version__}")
    print(f"  Input:      {opts.input}")
    if opts.terrain:
        print(f"  Terrain:    {opts.terrain}")
    print(f"  Source:     {tuple(opts.source)}")
    print(f"  Receiver:   {tuple(opts.receiver)}")
    print()

    # ── Load scene ────────────────────────────────────────────────
    from noise_pathfinder.scene.builder import SceneBuilder
    from noise_pathfinder.landxml.parser import LandXMLParser
    from noise_pathfinder.dxf.reader import read_dxf_scene

    builder = SceneBuilder(max_line_length=opts.max_line_length)
    builder.set_maximum_area(opts.max_area)
    try:
        if opts.input.suffix.lower() == ".dxf":
            read_dxf_scene(opts.input, builder)
        else:
            LandXMLParser(opts.input).feed(builder, opts.surface_name)
        if opts.terrain:
            LandXMLParser(opts.terrain).feed(builder, opts.surface_name)
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print("Building scene...")
    scene = builder.finish()
    if scene is None:
        print("Error: Unable to build the scene (terrain triangulation failed)",
              file=sys.stderr)
        sys.exit(1)

    print(f"  Buildings:  {scene.building_count}")
    print(f"  Walls:      {len(scene.walls)}")
    print(f"  Triangles:  {len(scene.triangles)}")
    print(f"  Ground:     {len(scene.ground_effects)}")
    print()

    # ── Profile ───────────────────────────────────────────────────
    profile = scene.get_profile(opts.source, opts.receiver)
    print(f"Cut profile ({len(profile)} points):")
    for point in profile:
        print(f"  {point}")
    print()
    print(f"  Building:   {profile.has_building}")
    print(f"  Terrain:    {profile.has_terrain}")
    print(f"  Ground:     {profile.has_ground_effect}")

    print("\nDone.")
