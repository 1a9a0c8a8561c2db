"""
Skymap calibration tables and coordinate resolution.

A skymap maps every detector pixel of one all-sky imager to a look
direction (azimuth, elevation) and, at a handful of reference mapping
altitudes, to geodetic latitude/longitude. This module resolves the
coordinate arrays a region mode needs, including the per-pixel
altitude interpolation used for geodetic regions.

Conventions
-----------
- Angles in degrees, altitudes in km.
- Non-finite entries mark pixels without a valid mapping (typically
  below the horizon of the fisheye lens).
- Latitude/longitude tables may be given per pixel centre (H, W, A) or
  per pixel corner (H+1, W+1, A).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np

from .config import RegionMode
from .errors import (
    ConfigurationError,
    RangeError,
    UnsupportedModeError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Skymap:
    """Immutable per-imager geometric calibration table."""

    full_azimuth: np.ndarray
    """Azimuth of each pixel, shape (H, W), degrees."""

    full_elevation: np.ndarray
    """Elevation of each pixel, shape (H, W), degrees."""

    full_map_altitude: np.ndarray
    """Ascending reference mapping altitudes, shape (A,), km."""

    full_map_latitude: np.ndarray
    """Geodetic latitude at each altitude, shape (H', W', A)."""

    full_map_longitude: np.ndarray
    """Geodetic longitude at each altitude, shape (H', W', A)."""

    site_uid: str = ""
    imager_uid: str = ""
    project_uid: str = ""

    def validate(self) -> None:
        """
        Check the internal consistency of the table.

        The match between skymap and image shapes is a caller
        precondition and is not checked here.
        """
        if self.full_azimuth.ndim != 2 or self.full_azimuth.shape != self.full_elevation.shape:
            raise ValidationError(
                f"full_azimuth {self.full_azimuth.shape} and full_elevation "
                f"{self.full_elevation.shape} must be 2-D arrays of equal shape"
            )
        altitudes = np.asarray(self.full_map_altitude)
        if altitudes.ndim != 1 or altitudes.size == 0:
            raise ValidationError(f"full_map_altitude must be a non-empty 1-D array, got {altitudes.shape}")
        if altitudes.size > 1 and np.any(np.diff(altitudes) <= 0):
            raise ValidationError("full_map_altitude must be strictly ascending")
        lat, lon = self.full_map_latitude, self.full_map_longitude
        if lat.ndim != 3 or lat.shape != lon.shape:
            raise ValidationError(
                f"full_map_latitude {lat.shape} and full_map_longitude {lon.shape} "
                "must be 3-D arrays of equal shape"
            )
        if lat.shape[2] != altitudes.size:
            raise ValidationError(
                f"Latitude/longitude tables have {lat.shape[2]} altitude layers, "
                f"full_map_altitude has {altitudes.size}"
            )

    @property
    def shape(self) -> tuple[int, int]:
        """(height, width) of the azimuth/elevation grid."""
        return self.full_azimuth.shape

    @property
    def altitude_range(self) -> tuple[float, float]:
        return float(np.min(self.full_map_altitude)), float(np.max(self.full_map_altitude))

    def summary(self) -> dict[str, Any]:
        """
        Summarize the table: shapes, altitudes and geodetic coverage.

        Returns
        -------
        dict
            Keys: 'site_uid', 'imager_uid', 'project_uid', 'shape',
            'altitudes_km', 'elevation_range', 'coverage'. 'coverage' maps
            each altitude to its (lon_min, lon_max, lat_min, lat_max).
        """
        coverage = {}
        for idx, altitude in enumerate(self.full_map_altitude):
            lat = self.full_map_latitude[:, :, idx]
            lon = normalize_longitude(self.full_map_longitude[:, :, idx])
            coverage[float(altitude)] = _extent(lat, lon)

        finite_el = self.full_elevation[np.isfinite(self.full_elevation)]
        elevation_range = (
            (float(finite_el.min()), float(finite_el.max())) if finite_el.size else (np.nan, np.nan)
        )

        return {
            "site_uid": self.site_uid,
            "imager_uid": self.imager_uid,
            "project_uid": self.project_uid,
            "shape": tuple(int(s) for s in self.shape),
            "altitudes_km": [float(a) for a in self.full_map_altitude],
            "elevation_range": elevation_range,
            "coverage": coverage,
        }


def require_skymap(skymap: Skymap | None, mode: RegionMode) -> Skymap:
    """Return the skymap, or fail if a skymap-based mode has none."""
    if skymap is None:
        raise ConfigurationError(f"{mode.value} regions require a skymap")
    return skymap


def normalize_longitude(lon: np.ndarray) -> np.ndarray:
    """Map longitudes above 180 into (-180, 180] (returns a new array)."""
    lon = np.array(lon, dtype=np.float64)
    with np.errstate(invalid="ignore"):
        lon[lon > 180.0] -= 360.0
    return lon


def interpolate_layer(
    layers: np.ndarray,
    altitudes: np.ndarray,
    altitude_km: float,
    lower: int,
    upper: int,
) -> np.ndarray:
    """
    Linearly interpolate one (H', W', A) table between two altitude layers.

    ``lower == upper`` is the degenerate case and returns the layer itself
    (weight 0), which keeps exact-altitude selection and interpolation
    bit-identical.
    """
    a = np.asarray(layers[:, :, lower], dtype=np.float64)
    b = np.asarray(layers[:, :, upper], dtype=np.float64)
    if lower == upper:
        weight = 0.0
    else:
        weight = (altitude_km - altitudes[lower]) / (altitudes[upper] - altitudes[lower])
    return a + weight * (b - a)


def bracket_altitude(altitudes: np.ndarray, altitude_km: float) -> tuple[int, int]:
    """
    Indices of the two reference altitudes bracketing ``altitude_km``.

    Both indices are equal when the altitude matches a reference altitude.

    Raises
    ------
    RangeError
        If the altitude is outside the reference range.
    """
    lo, hi = float(altitudes[0]), float(altitudes[-1])
    if not lo <= altitude_km <= hi:
        raise RangeError(
            f"Altitude {altitude_km:g} km outside skymap range [{lo:g}, {hi:g}] km"
        )
    exact = np.flatnonzero(altitudes == altitude_km)
    if exact.size:
        return int(exact[0]), int(exact[0])
    upper = int(np.searchsorted(altitudes, altitude_km, side="right"))
    return upper - 1, upper


def resolve_geodetic(skymap: Skymap, altitude_km: float | None) -> tuple[np.ndarray, np.ndarray]:
    """
    Latitude and longitude of every skymap grid point at ``altitude_km``.

    Parameters
    ----------
    skymap : Skymap
        Calibration table.
    altitude_km : float
        Mapping altitude in km.

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        (latitude, longitude), each of shape (H', W'), longitude in (-180, 180].

    Raises
    ------
    ConfigurationError
        If no altitude was given.
    RangeError
        If the altitude is outside the skymap's reference altitudes.

    Notes
    -----
    Interpolation is linear in altitude, per grid point, and independent
    for latitude and longitude. Longitudes are normalized before
    interpolating so that layers straddling the antimeridian in 0-360
    convention interpolate consistently.
    """
    if altitude_km is None:
        raise ConfigurationError("Geodetic regions require altitude_km")

    altitudes = np.asarray(skymap.full_map_altitude, dtype=np.float64)
    altitude_km = float(altitude_km)
    lower, upper = bracket_altitude(altitudes, altitude_km)

    lon_layers = normalize_longitude(skymap.full_map_longitude)
    lat = interpolate_layer(skymap.full_map_latitude, altitudes, altitude_km, lower, upper)
    lon = interpolate_layer(lon_layers, altitudes, altitude_km, lower, upper)

    if lower == upper:
        logger.debug("Using skymap layer %d (%.1f km) directly", lower, altitude_km)
    else:
        logger.debug(
            "Interpolated lat/lon to %.1f km between %.1f and %.1f km",
            altitude_km, altitudes[lower], altitudes[upper],
        )
    return lat, lon


def _extent(lat: np.ndarray, lon: np.ndarray) -> tuple[float, float, float, float]:
    """(lon_min, lon_max, lat_min, lat_max) ignoring non-finite entries."""
    if not (np.any(np.isfinite(lat)) and np.any(np.isfinite(lon))):
        return (np.nan, np.nan, np.nan, np.nan)
    return (
        float(np.nanmin(lon)),
        float(np.nanmax(lon)),
        float(np.nanmin(lat)),
        float(np.nanmax(lat)),
    )


def check_geodetic_coverage(
    lat: np.ndarray,
    lon: np.ndarray,
    bounds: tuple[float, float, float, float],
) -> None:
    """
    Fail if geodetic bounds touch or exceed the skymap's covered extent.

    Parameters
    ----------
    lat, lon : np.ndarray
        Resolved coordinates at the target altitude.
    bounds : tuple
        Normalized (lon0, lon1, lat0, lat1).

    Raises
    ------
    RangeError
        If any bound lies on or outside the covered extent.
    """
    lon_min, lon_max, lat_min, lat_max = _extent(lat, lon)
    lon0, lon1, lat0, lat1 = bounds

    if not (lon_min < lon0 and lon1 < lon_max):
        raise RangeError(
            f"No coverage: longitude bounds [{lon0:g}, {lon1:g}] not strictly inside "
            f"skymap extent [{lon_min:g}, {lon_max:g}]"
        )
    if not (lat_min < lat0 and lat1 < lat_max):
        raise RangeError(
            f"No coverage: latitude bounds [{lat0:g}, {lat1:g}] not strictly inside "
            f"skymap extent [{lat_min:g}, {lat_max:g}]"
        )


def resolve_coordinates(
    mode: RegionMode,
    skymap: Skymap | None,
    altitude_km: float | None = None,
) -> tuple[np.ndarray, ...]:
    """
    Coordinate arrays needed to test membership for ``mode``.

    Returns
    -------
    tuple of np.ndarray
        () for ccd, (azimuth,) or (elevation,) for the angular modes and
        (latitude, longitude) for geodetic.
    """
    if mode is RegionMode.CCD:
        return ()
    if mode is RegionMode.GEOMAGNETIC:
        raise UnsupportedModeError("Geomagnetic regions are not supported")

    skymap = require_skymap(skymap, mode)
    if mode is RegionMode.AZIMUTH:
        return (np.asarray(skymap.full_azimuth),)
    if mode is RegionMode.ELEVATION:
        return (np.asarray(skymap.full_elevation),)
    return resolve_geodetic(skymap, altitude_km)
