"""
Region metric extraction for all-sky imager frame stacks.

Pipeline for one call:
    1. Validate the statistic and bounds
    2. Normalize the stack to its canonical channel layout
    3. Resolve skymap coordinates and build the region mask
    4. Reduce every frame over the region

Example
-------
>>> from asimetric import extract_metric
>>> values = extract_metric(images, "elevation", [45, 95], metric="mean", skymap=skymap)
>>> values.shape
(n_frames,)
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .channels import first_frame, frame_shape, n_frames, normalize_channels
from .config import BoundarySpec, ExtractConfig, RegionMode, StatisticSpec
from .reduce import DEFAULT_CHUNK_FRAMES, reduce_stack
from .region import RegionMask, build_region, get_handler
from .skymap import Skymap
from .validate import parse_mode, resolve_statistic

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = max(1, os.cpu_count() - 1) if os.cpu_count() else 4


@dataclass
class MetricResult:
    """Result of one region extraction."""

    values: np.ndarray
    """(n_frames,) for mono stacks, (channels, n_frames) for colour stacks."""

    region: RegionMask
    """Pixels the statistic was computed over."""

    boundary: BoundarySpec
    statistic: StatisticSpec
    n_channels: int
    n_frames: int
    label: str = ""

    @property
    def n_pixels(self) -> int:
        return self.region.n_pixels


def extract_region_metric(
    images: np.ndarray,
    mode: str | RegionMode,
    bounds: Sequence[float],
    metric: str | None = None,
    percentile: float | None = None,
    skymap: Skymap | None = None,
    altitude_km: float | None = None,
    n_channels: int | None = None,
    show_preview: bool = False,
    chunk_frames: int = DEFAULT_CHUNK_FRAMES,
    show_progress: bool = False,
    label: str = "",
) -> MetricResult:
    """
    Extract a per-frame statistic over a region, with the region itself.

    Parameters
    ----------
    images : np.ndarray
        Image stack: (H, W), (H, W, N), (3, H, W), (1, H, W, N) or (3, H, W, N).
    mode : str or RegionMode
        'azimuth', 'elevation', 'ccd', 'geodetic' or 'geomagnetic'.
    bounds : sequence of float
        Azimuth/elevation: [low, high]. ccd: [x0, x1, y0, y1] (inclusive
        pixel indices). geodetic: [lon0, lon1, lat0, lat1]. Reversed pairs
        are accepted.
    metric : str, optional
        'median' (default), 'mean' or 'sum'.
    percentile : float, optional
        Nearest-rank percentile in (0, 100). Colour stacks rank pixels by
        their channel sum and return the selected pixel's channels.
    skymap : Skymap, optional
        Required for azimuth, elevation and geodetic regions. Its pixel grid
        must match the image frames.
    altitude_km : float, optional
        Mapping altitude, required for geodetic regions.
    n_channels : {1, 3}, optional
        Force the channel interpretation of ``images``.
    show_preview : bool, default False
        Display the region over the first frame (matplotlib).
    chunk_frames : int, default 256
        Frames gathered per reduction step.
    show_progress : bool, default False
        Show a progress bar while reducing.
    label : str, optional
        Name echoed in the result.

    Returns
    -------
    MetricResult

    Raises
    ------
    ValidationError, ConfigurationError, RangeError, EmptyRegionError,
    UnrecognizedShapeError, UnsupportedModeError
        See ``asimetric.errors``. No partial result is ever returned.
    """
    mode = parse_mode(mode)
    statistic = resolve_statistic(metric, percentile)
    channels, canonical = normalize_channels(images, n_channels=n_channels)
    shape = frame_shape(canonical, channels)
    frames = n_frames(canonical)

    boundary = get_handler(mode).validate(bounds, shape)
    region = build_region(boundary, shape, skymap=skymap, altitude_km=altitude_km)

    if show_preview:
        _preview(canonical, channels, region, shape, boundary)

    values = reduce_stack(
        canonical,
        channels,
        region,
        statistic,
        chunk_frames=chunk_frames,
        show_progress=show_progress,
    )

    logger.info(
        "Extracted %s over %s: %d pixels, %d frame(s), %d channel(s)",
        statistic.describe(),
        boundary.describe(),
        region.n_pixels,
        frames,
        channels,
    )

    return MetricResult(
        values=values,
        region=region,
        boundary=boundary,
        statistic=statistic,
        n_channels=channels,
        n_frames=frames,
        label=label,
    )


def extract_metric(
    images: np.ndarray,
    mode: str | RegionMode,
    bounds: Sequence[float],
    metric: str | None = None,
    percentile: float | None = None,
    skymap: Skymap | None = None,
    altitude_km: float | None = None,
    n_channels: int | None = None,
    show_preview: bool = False,
    chunk_frames: int = DEFAULT_CHUNK_FRAMES,
    show_progress: bool = False,
) -> np.ndarray:
    """
    Extract a per-frame statistic over a region of an image stack.

    Same parameters as ``extract_region_metric``.

    Returns
    -------
    np.ndarray
        (n_frames,) for mono stacks, (channels, n_frames) for colour stacks.
    """
    return extract_region_metric(
        images,
        mode,
        bounds,
        metric=metric,
        percentile=percentile,
        skymap=skymap,
        altitude_km=altitude_km,
        n_channels=n_channels,
        show_preview=show_preview,
        chunk_frames=chunk_frames,
        show_progress=show_progress,
    ).values


def _preview(
    canonical: np.ndarray,
    channels: int,
    region: RegionMask,
    shape: tuple[int, int],
    boundary: BoundarySpec,
) -> None:
    from .preview import build_preview_image, show_preview

    image = build_preview_image(first_frame(canonical, channels), region.overlay(shape))
    show_preview(image, title=f"{boundary.describe()} ({region.n_pixels} px)")


def _extract_config(
    images: np.ndarray,
    config: ExtractConfig,
    skymap: Skymap | None,
    chunk_frames: int,
) -> MetricResult:
    return extract_region_metric(
        images,
        config.mode,
        config.bounds,
        metric=config.metric,
        percentile=config.percentile,
        skymap=skymap,
        altitude_km=config.altitude_km,
        n_channels=config.n_channels,
        chunk_frames=chunk_frames,
        label=config.label,
    )


def extract_metrics(
    images: np.ndarray,
    configs: Sequence[ExtractConfig],
    skymap: Skymap | None = None,
    workers: int | None = None,
    chunk_frames: int = DEFAULT_CHUNK_FRAMES,
    show_progress: bool = False,
) -> list[MetricResult]:
    """
    Extract several regions from the same image stack.

    The stack and skymap are only read, so regions are evaluated in a
    thread pool without copying them.

    Parameters
    ----------
    images : np.ndarray
        Image stack (any layout accepted by ``extract_metric``).
    configs : sequence of ExtractConfig
        One entry per region.
    skymap : Skymap, optional
        Shared by all regions that need one.
    workers : int or None, default None
        Number of threads. None uses auto-detection (CPU count - 1).
        Set to 1 for sequential processing.
    chunk_frames : int, default 256
        Frames gathered per reduction step.
    show_progress : bool, default False
        Show a progress bar over regions.

    Returns
    -------
    list[MetricResult]
        In the order of ``configs``.

    Raises
    ------
    CoreError
        The first failing region's error; no partial list is returned.
    """
    from .cli_output import create_progress_bar

    for config in configs:
        config.validate()

    if workers is None:
        workers = DEFAULT_WORKERS
    n_regions = len(configs)

    pbar = create_progress_bar(
        total=n_regions,
        desc="Extracting regions",
        unit="region",
        disable=not show_progress,
    )

    if workers <= 1 or n_regions < 2:
        results = []
        with pbar:
            for config in configs:
                results.append(_extract_config(images, config, skymap, chunk_frames))
                pbar.update(1)
        return results

    ordered: list[MetricResult | None] = [None] * n_regions
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(_extract_config, images, config, skymap, chunk_frames): idx
            for idx, config in enumerate(configs)
        }
        with pbar:
            try:
                for future in as_completed(futures):
                    ordered[futures[future]] = future.result()
                    pbar.update(1)
            except Exception:
                # Queued regions are dropped; running ones finish before the re-raise
                executor.shutdown(wait=False, cancel_futures=True)
                raise

    logger.info("Extracted %d regions with %d workers", n_regions, workers)
    return ordered
