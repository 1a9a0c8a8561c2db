"""
Region mask construction.

Each region mode is described by a RegionHandler bundling three
functions: a bound validator, a coordinate resolver and a membership
builder. The extraction code only talks to the handler table, so it
never branches on the mode itself.

Membership rules
----------------
- azimuth / elevation: open interval ``low < v < high`` on finite values,
  over the full (H, W) grid.
- ccd: inclusive rectangle ``x0..x1`` x ``y0..y1``, taken as slices.
- geodetic: closed intervals on longitude and latitude, evaluated on the
  interior grid ``[1:, 1:]`` of the resolved tables; interior cell
  (r, c) selects image pixel (r, c).

The geodetic/angular asymmetry (closed vs open intervals, interior vs
full grid) follows the skymap pixel-corner layout and is kept as is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import cached_property, partial
from typing import Callable, Sequence

import numpy as np

from .config import BoundarySpec, RegionMode
from .errors import ConfigurationError, EmptyRegionError, UnsupportedModeError
from .skymap import Skymap, check_geodetic_coverage, resolve_coordinates
from .validate import validate_bounds

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class RegionMask:
    """
    Set of pixels belonging to a region, computed once per call.

    Either ``indices`` (flat indices into ``grid_shape``) or the
    ``rows``/``cols`` slice pair (ccd regions) is set.
    """

    mode: RegionMode
    grid_shape: tuple[int, int]
    indices: np.ndarray | None = None
    rows: slice | None = None
    cols: slice | None = None

    @property
    def is_slice(self) -> bool:
        return self.indices is None

    @property
    def n_pixels(self) -> int:
        """Number of pixels in the region."""
        if self.is_slice:
            return len(range(*self.rows.indices(self.grid_shape[0]))) * len(
                range(*self.cols.indices(self.grid_shape[1]))
            )
        return int(self.indices.size)

    @cached_property
    def pixel_coords(self) -> tuple[np.ndarray, np.ndarray]:
        """(row, col) image coordinates of every region pixel."""
        if self.is_slice:
            rr, cc = np.mgrid[self.rows, self.cols]
            return rr.ravel(), cc.ravel()
        return np.unravel_index(self.indices, self.grid_shape)

    def gather(self, chunk: np.ndarray, channels: int) -> np.ndarray:
        """
        Region values of a chunk of frames.

        Parameters
        ----------
        chunk : np.ndarray
            Canonical frames: (H, W, k) for mono, (C, H, W, k) for colour.
        channels : int
            Number of channels of the canonical layout.

        Returns
        -------
        np.ndarray
            (n_pixels, k) for mono, (C, n_pixels, k) for colour.
        """
        k = chunk.shape[-1]
        if self.is_slice:
            if channels == 1:
                return chunk[self.rows, self.cols, :].reshape(-1, k)
            return chunk[:, self.rows, self.cols, :].reshape(chunk.shape[0], -1, k)

        rows, cols = self.pixel_coords
        if channels == 1:
            return chunk[rows, cols, :]
        return chunk[:, rows, cols, :]

    def overlay(self, frame_shape: tuple[int, int] | None = None) -> np.ndarray:
        """
        Boolean raster of the region, the size of a single frame.

        Parameters
        ----------
        frame_shape : tuple[int, int], optional
            (height, width) of the frame. Defaults to ``grid_shape``.
        """
        shape = tuple(frame_shape) if frame_shape is not None else self.grid_shape
        raster = np.zeros(shape, dtype=bool)
        if self.is_slice:
            raster[self.rows, self.cols] = True
        else:
            rows, cols = self.pixel_coords
            inside = (rows < shape[0]) & (cols < shape[1])
            raster[rows[inside], cols[inside]] = True
        return raster


def angular_membership(values: np.ndarray, low: float, high: float) -> np.ndarray:
    """Finite values strictly between ``low`` and ``high``."""
    values = np.asarray(values)
    with np.errstate(invalid="ignore"):
        return np.isfinite(values) & (values > low) & (values < high)


def geodetic_membership(
    lat: np.ndarray,
    lon: np.ndarray,
    bounds: tuple[float, float, float, float],
) -> np.ndarray:
    """
    Interior grid points whose lat/lon fall inside closed bounds.

    The first row and column are dropped, so the result has shape
    (H' - 1, W' - 1).
    """
    lon0, lon1, lat0, lat1 = bounds
    lat = np.asarray(lat)[1:, 1:]
    lon = np.asarray(lon)[1:, 1:]
    with np.errstate(invalid="ignore"):
        return (lon >= lon0) & (lon <= lon1) & (lat >= lat0) & (lat <= lat1)


def _index_region(mode: RegionMode, member: np.ndarray, spec: BoundarySpec) -> RegionMask:
    indices = np.flatnonzero(member)
    if indices.size == 0:
        raise EmptyRegionError(f"Region {spec.describe()} contains no valid pixels")
    return RegionMask(mode=mode, grid_shape=tuple(member.shape), indices=indices)


def _check_grid(grid_shape: tuple[int, ...], frame_shape: tuple[int, int], corners: bool = False) -> None:
    """
    Angular tables must match the frame; lat/lon tables may also carry the
    extra row and column of a pixel-corner layout.
    """
    grid = tuple(int(s) for s in grid_shape[:2])
    frame = tuple(int(s) for s in frame_shape)
    if corners:
        fits = grid in (frame, (frame[0] + 1, frame[1] + 1))
    else:
        fits = grid == frame
    if not fits:
        raise ConfigurationError(f"Skymap grid {grid} does not match image frames {frame}")


def _build_angular(
    spec: BoundarySpec,
    coords: tuple[np.ndarray, ...],
    frame_shape: tuple[int, int],
) -> RegionMask:
    _check_grid(coords[0].shape, frame_shape)
    low, high = spec.bounds
    return _index_region(spec.mode, angular_membership(coords[0], low, high), spec)


def _build_geodetic(
    spec: BoundarySpec,
    coords: tuple[np.ndarray, ...],
    frame_shape: tuple[int, int],
) -> RegionMask:
    lat, lon = coords
    _check_grid(lat.shape, frame_shape, corners=True)
    return _index_region(spec.mode, geodetic_membership(lat, lon, spec.bounds), spec)


def _build_ccd(
    spec: BoundarySpec,
    coords: tuple[np.ndarray, ...],
    frame_shape: tuple[int, int],
) -> RegionMask:
    x0, x1, y0, y1 = (int(b) for b in spec.bounds)
    region = RegionMask(
        mode=spec.mode,
        grid_shape=tuple(frame_shape),
        rows=slice(y0, y1 + 1),
        cols=slice(x0, x1 + 1),
    )
    if region.n_pixels == 0:
        raise EmptyRegionError(f"Region {spec.describe()} contains no pixels")
    return region


def _resolve(
    mode: RegionMode,
    spec: BoundarySpec,
    skymap: Skymap | None,
    altitude_km: float | None,
) -> tuple[np.ndarray, ...]:
    coords = resolve_coordinates(mode, skymap, altitude_km)
    if mode is RegionMode.GEODETIC:
        lat, lon = coords
        check_geodetic_coverage(lat, lon, spec.bounds)
    return coords


def _unsupported(*args, **kwargs):
    raise UnsupportedModeError("Geomagnetic regions are not supported")


@dataclass(frozen=True)
class RegionHandler:
    """Mode-specific pieces of region extraction."""

    mode: RegionMode
    validate: Callable[..., BoundarySpec]
    """validate(bounds, image_shape) -> BoundarySpec"""

    resolve: Callable[..., tuple[np.ndarray, ...]]
    """resolve(spec, skymap, altitude_km) -> coordinate arrays"""

    build: Callable[..., RegionMask]
    """build(spec, coords, frame_shape) -> RegionMask"""


def _handler(mode: RegionMode, build: Callable[..., RegionMask]) -> RegionHandler:
    return RegionHandler(
        mode=mode,
        validate=partial(validate_bounds, mode),
        resolve=partial(_resolve, mode),
        build=build,
    )


REGION_HANDLERS: dict[RegionMode, RegionHandler] = {
    RegionMode.AZIMUTH: _handler(RegionMode.AZIMUTH, _build_angular),
    RegionMode.ELEVATION: _handler(RegionMode.ELEVATION, _build_angular),
    RegionMode.CCD: _handler(RegionMode.CCD, _build_ccd),
    RegionMode.GEODETIC: _handler(RegionMode.GEODETIC, _build_geodetic),
    RegionMode.GEOMAGNETIC: RegionHandler(
        mode=RegionMode.GEOMAGNETIC,
        validate=partial(validate_bounds, RegionMode.GEOMAGNETIC),
        resolve=_unsupported,
        build=_unsupported,
    ),
}


def get_handler(mode: RegionMode) -> RegionHandler:
    return REGION_HANDLERS[mode]


def build_region(
    spec: BoundarySpec,
    frame_shape: tuple[int, int],
    skymap: Skymap | None = None,
    altitude_km: float | None = None,
) -> RegionMask:
    """
    Resolve coordinates and build the region mask for validated bounds.

    Parameters
    ----------
    spec : BoundarySpec
        Validated, normalized bounds.
    frame_shape : tuple[int, int]
        (height, width) of a single frame.
    skymap : Skymap, optional
        Required for azimuth, elevation and geodetic regions.
    altitude_km : float, optional
        Required for geodetic regions.

    Returns
    -------
    RegionMask

    Raises
    ------
    ConfigurationError
        Missing skymap or altitude.
    RangeError
        Altitude or geodetic bounds outside the skymap's coverage.
    EmptyRegionError
        No pixel satisfies the bounds.
    """
    handler = get_handler(spec.mode)
    coords = handler.resolve(spec, skymap, altitude_km)
    region = handler.build(spec, coords, frame_shape)
    logger.debug("Region %s: %d pixels on %s grid", spec.describe(), region.n_pixels, region.grid_shape)
    return region


def region_for_bounds(
    mode: str | RegionMode,
    bounds: Sequence[float],
    frame_shape: tuple[int, int],
    skymap: Skymap | None = None,
    altitude_km: float | None = None,
) -> RegionMask:
    """Validate bounds and build their region in one step (preview helper)."""
    spec = validate_bounds(mode, bounds, image_shape=frame_shape)
    return build_region(spec, frame_shape, skymap=skymap, altitude_km=altitude_km)
