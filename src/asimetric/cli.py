"""
Command-line interface for asimetric.

Usage:
    python -m asimetric extract <images> --mode elevation --bounds 45 90 --skymap skymap.npz
    asimetric extract <images> --mode ccd --bounds 0 9 0 9 --metric sum
    asimetric info <skymap.npz>
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

from .channels import first_frame, frame_shape, normalize_channels
from .cli_output import (
    print_error,
    print_header,
    print_info,
    print_metric,
    print_path,
    print_success,
    print_value_table,
    print_warning,
    setup_terminal,
)
from .config import RegionMode
from .errors import CoreError
from .extract import MetricResult, extract_region_metric
from .io import read_image_stack, read_skymap
from .report import write_metric_report
from .utils import get_version, get_version_banner

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%H:%M:%S",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="asimetric",
        description="Extract region luminosity metrics from all-sky imager frame stacks.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # --- extract ---
    extract_parser = subparsers.add_parser("extract", help="Extract a per-frame region metric")
    extract_parser.add_argument(
        "images",
        help="Image stack (.npy, .npz or FITS)",
    )
    extract_parser.add_argument(
        "--mode",
        required=True,
        help="Region mode: azimuth, elevation, ccd, geodetic or geomagnetic",
    )
    extract_parser.add_argument(
        "--bounds",
        type=float,
        nargs="+",
        required=True,
        help="Region bounds: 2 values (azimuth/elevation) or 4 values "
        "(ccd: x0 x1 y0 y1, geodetic: lon0 lon1 lat0 lat1)",
    )
    extract_parser.add_argument(
        "--metric",
        choices=["median", "mean", "sum"],
        default=None,
        help="Statistic (default: median)",
    )
    extract_parser.add_argument(
        "--percentile",
        type=float,
        default=None,
        help="Nearest-rank percentile in (0, 100) instead of --metric",
    )
    extract_parser.add_argument(
        "--skymap",
        default=None,
        help="Skymap .npz (required for azimuth, elevation and geodetic)",
    )
    extract_parser.add_argument(
        "--altitude",
        type=float,
        default=None,
        help="Mapping altitude in km (required for geodetic)",
    )
    extract_parser.add_argument(
        "--channels",
        type=int,
        choices=[1, 3],
        default=None,
        help="Force the number of channels instead of inferring it",
    )
    extract_parser.add_argument(
        "--preview",
        default=None,
        help="Write a PNG of the region over the first frame",
    )
    extract_parser.add_argument(
        "--json",
        default=None,
        help="Write the result as a JSON report",
    )
    extract_parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar while reducing frames",
    )
    extract_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    # --- info ---
    info_parser = subparsers.add_parser("info", help="Summarize a skymap")
    info_parser.add_argument("skymap", help="Skymap .npz")
    info_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def _print_values(result: MetricResult) -> None:
    values = np.atleast_2d(result.values)
    columns = ["value"] if result.n_channels == 1 else ["r", "g", "b"]
    print_value_table(columns, values.T)


def _write_preview(images: np.ndarray, result: MetricResult, args: argparse.Namespace) -> Path:
    from .preview import build_preview_image, save_preview

    channels, canonical = normalize_channels(images, n_channels=args.channels)
    overlay = result.region.overlay(frame_shape(canonical, channels))
    image = build_preview_image(first_frame(canonical, channels), overlay)
    return save_preview(args.preview, image)


def run_extract(args: argparse.Namespace) -> int:
    """Run the 'extract' command."""
    try:
        mode = RegionMode.parse(args.mode)
        if args.skymap and not mode.needs_skymap:
            print_warning(f"--skymap is not used by {mode.value} regions")
        if args.altitude is not None and mode is not RegionMode.GEODETIC:
            print_warning(f"--altitude is not used by {mode.value} regions")

        images = read_image_stack(args.images)
        skymap = read_skymap(args.skymap) if args.skymap and mode.needs_skymap else None

        result = extract_region_metric(
            images,
            mode,
            args.bounds,
            metric=args.metric,
            percentile=args.percentile,
            skymap=skymap,
            altitude_km=args.altitude,
            n_channels=args.channels,
            show_progress=args.progress,
        )
    except (CoreError, OSError, ValueError) as e:
        print_error(str(e))
        logger.debug("Extraction failed", exc_info=True)
        return 1

    print_header(f"{result.statistic.describe()} over {result.boundary.describe()}")
    print_metric("Pixels", result.n_pixels)
    print_metric("Frames", result.n_frames)
    print_metric("Channels", result.n_channels)
    _print_values(result)

    if args.preview:
        print_path("Preview", str(_write_preview(images, result, args)))
    if args.json:
        print_path("Report", str(write_metric_report(result, args.json)))

    print_success("Extraction complete")
    return 0


def run_info(args: argparse.Namespace) -> int:
    """Run the 'info' command."""
    try:
        skymap = read_skymap(args.skymap)
    except (CoreError, OSError, ValueError) as e:
        print_error(str(e))
        return 1

    summary = skymap.summary()
    print_header(f"Skymap: {Path(args.skymap).name}")
    for key in ("project_uid", "site_uid", "imager_uid"):
        if summary[key]:
            print_metric(key, summary[key])
    print_metric("Grid", "x".join(str(s) for s in summary["shape"]))
    alt_min, alt_max = skymap.altitude_range
    print_metric("Altitudes", f"{alt_min:g} .. {alt_max:g}", "km")
    el_min, el_max = summary["elevation_range"]
    print_metric("Elevation", f"{el_min:.1f} .. {el_max:.1f}", "deg")
    print()
    print_info("Geodetic coverage per mapping altitude")
    for altitude, (lon0, lon1, lat0, lat1) in summary["coverage"].items():
        print_metric(
            f"{altitude:g} km",
            f"lon {lon0:.2f} .. {lon1:.2f}, lat {lat0:.2f} .. {lat1:.2f}",
        )
    return 0


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    setup_logging(args.verbose)
    setup_terminal()
    logger.debug(get_version_banner())

    if args.command == "extract":
        return run_extract(args)
    elif args.command == "info":
        return run_info(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
