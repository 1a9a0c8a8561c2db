"""
Version metadata and display helpers.
"""

from __future__ import annotations

import platform
from datetime import datetime, timezone

import numpy as np

__version__ = "0.3.0"
__version_info__ = {
    "major": 0,
    "minor": 3,
    "patch": 0,
    "status": "beta",
    "date": "2026-10-19",
}


def get_version() -> str:
    return __version__


def get_version_banner() -> str:
    """One-line banner logged at CLI start-up."""
    return f"asimetric {__version__} ({__version_info__['status']}, {__version_info__['date']})"


def get_platform_info() -> str:
    """Operating system and interpreter, recorded in reports."""
    return f"{platform.system()} {platform.release()} / {platform.python_implementation()} {platform.python_version()}"


def get_timestamp_iso() -> str:
    """Current UTC time, ISO 8601."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def linear_stretch(
    data: np.ndarray,
    percentiles: tuple[float, float] = (1.0, 99.5),
) -> np.ndarray:
    """
    Map an image to [0, 1] between two percentiles of its finite values.

    All channels of a colour image share the same black and white points.
    NaN and infinite pixels map to 0.

    Parameters
    ----------
    data : np.ndarray
        Image, (H, W) or (H, W, C).
    percentiles : tuple[float, float], default (1.0, 99.5)
        Black and white points.

    Returns
    -------
    np.ndarray
        float32, same shape as ``data``.
    """
    data = np.asarray(data, dtype=np.float64)
    finite = np.isfinite(data)
    out = np.zeros(data.shape, dtype=np.float32)
    if not finite.any():
        return out

    black, white = np.percentile(data[finite], percentiles)
    span = white - black
    if span <= 0:
        return out

    out[finite] = np.clip((data[finite] - black) / span, 0.0, 1.0)
    return out


def to_uint8(data: np.ndarray) -> np.ndarray:
    """Quantize a [0, 1] image to 8 bits, rounding to nearest."""
    return np.rint(np.clip(data, 0.0, 1.0) * 255.0).astype(np.uint8)
