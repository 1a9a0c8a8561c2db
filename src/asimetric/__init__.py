"""
asimetric - Region luminosity metrics for all-sky imager frame stacks.

Extracts one number per frame (and per channel) from a region of an
all-sky imager (ASI) stack. Regions are given in CCD pixels, azimuth,
elevation or geodetic latitude/longitude at a mapping altitude, resolved
through the imager's skymap calibration table.

Example
-------
>>> from asimetric import extract_metric
>>> values = extract_metric(images, "geodetic", [-110, -100, 55, 60],
...                         metric="mean", skymap=skymap, altitude_km=110)

Example (colour percentile)
---------------------------
>>> rgb = extract_metric(rgb_images, "elevation", [10, 90],
...                      percentile=90, skymap=skymap)
>>> rgb.shape  # (3, n_frames)
"""

from .config import (
    BoundarySpec,
    ExtractConfig,
    MetricKind,
    RegionMode,
    StatisticSpec,
)
from .errors import (
    ConfigurationError,
    CoreError,
    EmptyRegionError,
    RangeError,
    UnrecognizedShapeError,
    UnsupportedModeError,
    ValidationError,
)
from .utils import __version__, __version_info__, get_version_banner

# Primary entry points
from .extract import MetricResult, extract_metric, extract_metrics, extract_region_metric

# Components
from .channels import normalize_channels
from .reduce import reduce_stack
from .region import RegionMask, build_region, region_for_bounds
from .skymap import Skymap, resolve_coordinates, resolve_geodetic
from .validate import resolve_statistic, validate_bounds

# I/O and reports
from .io import read_image_stack, read_skymap, write_skymap
from .report import metric_report, write_metric_report

# Preview
from .preview import build_preview_image, save_preview

__all__ = [
    # Version
    "__version__",
    "__version_info__",
    "get_version_banner",
    # Config
    "BoundarySpec",
    "ExtractConfig",
    "MetricKind",
    "RegionMode",
    "StatisticSpec",
    # Errors
    "CoreError",
    "ValidationError",
    "ConfigurationError",
    "RangeError",
    "EmptyRegionError",
    "UnrecognizedShapeError",
    "UnsupportedModeError",
    # Main entry points
    "extract_metric",
    "extract_region_metric",
    "extract_metrics",
    "MetricResult",
    # Components
    "normalize_channels",
    "validate_bounds",
    "resolve_statistic",
    "Skymap",
    "resolve_coordinates",
    "resolve_geodetic",
    "RegionMask",
    "build_region",
    "region_for_bounds",
    "reduce_stack",
    # I/O
    "read_image_stack",
    "read_skymap",
    "write_skymap",
    "metric_report",
    "write_metric_report",
    # Preview
    "build_preview_image",
    "save_preview",
]
