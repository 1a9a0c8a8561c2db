"""
Region preview rendering.

Draws a region mask on top of a frame so that the selected pixels can be
checked by eye. Previews never influence extracted metrics.
"""

from __future__ import annotations

import logging
from pathlib import Path

import imageio.v3 as iio
import numpy as np
from scipy import ndimage

from .utils import linear_stretch, to_uint8

logger = logging.getLogger(__name__)

# RGB, [0, 1]
REGION_TINT = (1.0, 0.35, 0.1)
OUTLINE_COLOR = (1.0, 0.9, 0.0)


def region_outline(overlay: np.ndarray, width: int = 1) -> np.ndarray:
    """
    Boundary pixels of a boolean region raster.

    Parameters
    ----------
    overlay : np.ndarray
        Boolean raster (H, W).
    width : int, default 1
        Outline thickness in pixels.
    """
    overlay = np.asarray(overlay, dtype=bool)
    eroded = ndimage.binary_erosion(overlay, iterations=width, border_value=0)
    return overlay & ~eroded


def build_preview_image(
    frame: np.ndarray,
    overlay: np.ndarray,
    alpha: float = 0.35,
    percentiles: tuple[float, float] = (1.0, 99.5),
) -> np.ndarray:
    """
    Render a frame with the region tinted and outlined.

    Parameters
    ----------
    frame : np.ndarray
        Mono (H, W) or colour (H, W, 3) frame.
    overlay : np.ndarray
        Boolean region raster (H, W).
    alpha : float, default 0.35
        Opacity of the region tint.
    percentiles : tuple[float, float], default (1.0, 99.5)
        Stretch black/white points.

    Returns
    -------
    np.ndarray
        RGB uint8 image (H, W, 3).
    """
    frame = np.asarray(frame)
    overlay = np.asarray(overlay, dtype=bool)
    if frame.shape[:2] != overlay.shape:
        raise ValueError(f"Overlay {overlay.shape} does not match frame {frame.shape[:2]}")

    if frame.ndim == 2:
        rgb = np.repeat(linear_stretch(frame, percentiles)[:, :, np.newaxis], 3, axis=2)
    else:
        # Linked stretch keeps channel ratios
        rgb = linear_stretch(frame, percentiles)

    tint = np.asarray(REGION_TINT, dtype=np.float32)
    rgb[overlay] = (1 - alpha) * rgb[overlay] + alpha * tint
    rgb[region_outline(overlay)] = OUTLINE_COLOR

    return to_uint8(rgb)


def save_preview(path: str | Path, image: np.ndarray) -> Path:
    """Write a preview image (PNG recommended)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    iio.imwrite(path, image)
    logger.info("Wrote preview: %s", path)
    return path


def show_preview(image: np.ndarray, title: str = "") -> None:
    """Display a preview image in a matplotlib window."""
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(6, 6))
    ax.imshow(image, origin="upper")
    ax.set_title(title)
    ax.set_axis_off()
    fig.tight_layout()
    plt.show()
