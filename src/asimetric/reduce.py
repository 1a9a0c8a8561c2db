"""
Per-frame statistics over the pixels of a region.

The region mask is resolved once; frames are then streamed in chunks so
that only ``n_pixels x chunk_frames`` values are materialized at a time,
which keeps burst-mode stacks of many gigabytes tractable.
"""

from __future__ import annotations

import logging

import numpy as np

from .channels import n_frames
from .config import MetricKind, StatisticSpec
from .region import RegionMask

logger = logging.getLogger(__name__)

# Frames gathered per reduction step
DEFAULT_CHUNK_FRAMES = 256


def nearest_rank_index(percentile: float, count: int) -> int:
    """
    Index of the nearest-rank percentile in an ascending sort.

    ``floor(p / 100 * (count - 1))``; no interpolation between ranks.
    """
    return int(np.floor(percentile / 100.0 * (count - 1)))


def joint_percentile(values: np.ndarray, percentile: float) -> np.ndarray:
    """
    Nearest-rank percentile of colour pixels, ranked by channel sum.

    Pixels are ranked once per frame by the sum of their channel values
    and the selected pixel's channels are returned together, so the
    result is always a colour that actually occurs in the frame.

    Parameters
    ----------
    values : np.ndarray
        Region values with shape (C, n_pixels, k).
    percentile : float
        Percentile in (0, 100).

    Returns
    -------
    np.ndarray
        Shape (C, k).
    """
    n_pixels, k = values.shape[1], values.shape[2]
    totals = values.sum(axis=0)
    order = np.argsort(totals, axis=0, kind="stable")
    selected = order[nearest_rank_index(percentile, n_pixels)]
    return values[:, selected, np.arange(k)]


def reduce_values(values: np.ndarray, channels: int, statistic: StatisticSpec) -> np.ndarray:
    """
    Reduce gathered region values to one number per frame (and channel).

    Parameters
    ----------
    values : np.ndarray
        (n_pixels, k) for mono, (C, n_pixels, k) for colour.
    channels : int
        1 or 3.
    statistic : StatisticSpec
        Statistic to compute.

    Returns
    -------
    np.ndarray
        (k,) for mono, (C, k) for colour, float64.
    """
    values = np.asarray(values, dtype=np.float64)
    pixel_axis = 0 if channels == 1 else 1

    if statistic.kind is MetricKind.MEDIAN:
        return np.median(values, axis=pixel_axis)
    if statistic.kind is MetricKind.MEAN:
        return np.mean(values, axis=pixel_axis)
    if statistic.kind is MetricKind.SUM:
        return np.sum(values, axis=pixel_axis)

    if channels == 1:
        idx = nearest_rank_index(statistic.percentile, values.shape[0])
        return np.sort(values, axis=0)[idx]
    return joint_percentile(values, statistic.percentile)


def reduce_stack(
    canonical: np.ndarray,
    channels: int,
    region: RegionMask,
    statistic: StatisticSpec,
    chunk_frames: int = DEFAULT_CHUNK_FRAMES,
    show_progress: bool = False,
) -> np.ndarray:
    """
    Compute a statistic over a region for every frame of a canonical stack.

    Parameters
    ----------
    canonical : np.ndarray
        (H, W, N) for mono, (C, H, W, N) for colour.
    channels : int
        1 or 3.
    region : RegionMask
        Pixels to reduce over.
    statistic : StatisticSpec
        Statistic to compute.
    chunk_frames : int, default 256
        Number of frames gathered per step.
    show_progress : bool, default False
        Show a progress bar.

    Returns
    -------
    np.ndarray
        (N,) for mono, (C, N) for colour, float64, frame order preserved.
    """
    from .cli_output import create_progress_bar

    if chunk_frames < 1:
        raise ValueError(f"chunk_frames must be >= 1, got {chunk_frames}")

    total = n_frames(canonical)
    out_shape = (total,) if channels == 1 else (canonical.shape[0], total)
    result = np.empty(out_shape, dtype=np.float64)

    pbar = create_progress_bar(
        total=total,
        desc=f"Reducing {statistic.describe()}",
        unit="frame",
        disable=not show_progress,
    )
    with pbar:
        for start in range(0, total, chunk_frames):
            end = min(start + chunk_frames, total)
            values = region.gather(canonical[..., start:end], channels)
            result[..., start:end] = reduce_values(values, channels, statistic)
            pbar.update(end - start)

    return result
