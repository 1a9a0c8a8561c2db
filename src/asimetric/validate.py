"""
Validation of region boundaries and statistic selectors.

All checks run before any image or skymap array is touched, so a
failing call never leaves partial state behind. Bound pairs are
normalized to ascending order: the caller's min/max labelling is not
trusted.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from .config import BoundarySpec, MetricKind, RegionMode, StatisticSpec
from .errors import RangeError, UnsupportedModeError, ValidationError

logger = logging.getLogger(__name__)

# Valid domain of each angular bound, in degrees
AZIMUTH_RANGE = (0.0, 360.0)
ELEVATION_RANGE = (0.0, 90.0)
ELEVATION_HIGH_MAX = 180.0
LONGITUDE_RANGE = (-180.0, 180.0)
LATITUDE_RANGE = (-90.0, 90.0)


def parse_mode(mode: str | RegionMode) -> RegionMode:
    """Return the RegionMode for a mode name (case-insensitive)."""
    return RegionMode.parse(mode)


def _as_values(mode: RegionMode, bounds: Sequence[float] | np.ndarray) -> list[float]:
    """Convert bounds to a list of finite floats of the right arity."""
    try:
        values = [float(v) for v in np.asarray(bounds, dtype=np.float64).ravel()]
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{mode.value} bounds must be numeric, got {bounds!r}") from e

    if len(values) != mode.n_bounds:
        raise ValidationError(
            f"{mode.value} mode expects {mode.n_bounds} bounds, got {len(values)}"
        )
    if not all(math.isfinite(v) for v in values):
        raise ValidationError(f"{mode.value} bounds must be finite, got {values}")
    return values


def _check_domain(
    name: str,
    pair: tuple[float, float],
    domain: tuple[float, float],
    error: type[ValidationError] | type[RangeError] = ValidationError,
) -> None:
    lo, hi = domain
    for value in pair:
        if not lo <= value <= hi:
            raise error(f"{name} bound {value:g} outside valid range [{lo:g}, {hi:g}]")


def _order_pair(name: str, low: float, high: float) -> tuple[float, float]:
    """Swap a reversed pair and reject zero-area extents."""
    if low > high:
        logger.debug("Swapping reversed %s bounds (%g, %g)", name, low, high)
        low, high = high, low
    if low == high:
        raise ValidationError(f"{name} bounds enclose zero area ({low:g} == {high:g})")
    return low, high


def _check_integral(name: str, pair: tuple[float, float]) -> tuple[int, int]:
    for value in pair:
        if not float(value).is_integer():
            raise ValidationError(f"{name} bounds must be whole pixel indices, got {value:g}")
    return int(pair[0]), int(pair[1])


def validate_bounds(
    mode: str | RegionMode,
    bounds: Sequence[float] | np.ndarray,
    image_shape: tuple[int, int] | None = None,
) -> BoundarySpec:
    """
    Validate and normalize region bounds for a mode.

    Parameters
    ----------
    mode : str or RegionMode
        Region mode (case-insensitive).
    bounds : sequence of float
        2 values (azimuth, elevation) or 4 values: ``[x0, x1, y0, y1]``
        for ccd, ``[lon0, lon1, lat0, lat1]`` for geodetic.
    image_shape : tuple[int, int], optional
        (height, width) of a single frame. Required to check ccd extents;
        when omitted the ccd extent check is skipped.

    Returns
    -------
    BoundarySpec
        Mode and bounds with every pair in ascending order.

    Raises
    ------
    ValidationError
        Unknown mode, wrong arity, value outside its angular domain, or
        zero-area extent.
    RangeError
        CCD bounds outside the frame.
    UnsupportedModeError
        Geomagnetic mode.
    """
    mode = parse_mode(mode)
    values = _as_values(mode, bounds)

    if mode is RegionMode.GEOMAGNETIC:
        _order_pair("geomagnetic longitude", values[0], values[1])
        _order_pair("geomagnetic latitude", values[2], values[3])
        raise UnsupportedModeError(
            "Geomagnetic regions are not supported; use geodetic, azimuth, "
            "elevation or ccd bounds instead"
        )

    if mode is RegionMode.AZIMUTH:
        _check_domain("azimuth", (values[0], values[1]), AZIMUTH_RANGE)
        normalized = _order_pair("azimuth", values[0], values[1])

    elif mode is RegionMode.ELEVATION:
        low, high = _order_pair("elevation", values[0], values[1])
        _check_domain("elevation", (low,), ELEVATION_RANGE)
        # Open interval: zenith pixels (90) are only selected by a high bound above 90
        _check_domain("elevation", (high,), (ELEVATION_RANGE[0], ELEVATION_HIGH_MAX))
        normalized = (low, high)

    elif mode is RegionMode.GEODETIC:
        _check_domain("longitude", (values[0], values[1]), LONGITUDE_RANGE)
        _check_domain("latitude", (values[2], values[3]), LATITUDE_RANGE)
        normalized = _order_pair("longitude", values[0], values[1]) + _order_pair(
            "latitude", values[2], values[3]
        )

    else:
        x_pair = _order_pair("ccd x", *_check_integral("ccd x", (values[0], values[1])))
        y_pair = _order_pair("ccd y", *_check_integral("ccd y", (values[2], values[3])))
        if image_shape is not None:
            height, width = image_shape
            _check_domain("ccd x", x_pair, (0, width - 1), error=RangeError)
            _check_domain("ccd y", y_pair, (0, height - 1), error=RangeError)
        normalized = x_pair + y_pair

    return BoundarySpec(mode=mode, bounds=tuple(normalized))


def resolve_statistic(
    metric: str | MetricKind | None = None,
    percentile: float | None = None,
) -> StatisticSpec:
    """
    Resolve the metric/percentile selectors into a single statistic.

    Parameters
    ----------
    metric : str or MetricKind, optional
        'median' (default), 'mean', 'sum' or 'percentile'.
    percentile : float, optional
        Nearest-rank percentile, strictly inside (0, 100).

    Returns
    -------
    StatisticSpec

    Notes
    -----
    'median' is the default selector, so combining it with a percentile
    is not a conflict: the percentile wins. Combining a percentile with
    'mean' or 'sum' is rejected.
    """
    kind = MetricKind.MEDIAN if metric is None else MetricKind.parse(metric)

    if percentile is None:
        if kind is MetricKind.PERCENTILE:
            raise ValidationError("metric 'percentile' requires a percentile value")
        return StatisticSpec(kind=kind)

    if kind in (MetricKind.MEAN, MetricKind.SUM):
        raise ValidationError(
            f"Conflicting statistic selectors: metric={kind.value!r} and percentile={percentile!r}"
        )

    try:
        p = float(percentile)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"percentile must be numeric, got {percentile!r}") from e
    if not 0.0 < p < 100.0:
        raise ValidationError(f"percentile must be in (0, 100), got {p:g}")

    return StatisticSpec(kind=MetricKind.PERCENTILE, percentile=p)
