"""
Channel inference and canonical layout for image stacks.

Canonical layouts:
    mono   : (height, width, n_frames)
    colour : (3, height, width, n_frames)

The canonical array is always a NumPy view of the caller's array (new
axes are added or a length-1 channel axis is indexed away); nothing is
copied and the caller's array is never written to.
"""

from __future__ import annotations

import logging

import numpy as np

from .errors import UnrecognizedShapeError

logger = logging.getLogger(__name__)


def infer_channels(shape: tuple[int, ...]) -> int:
    """
    Infer the number of channels from a raw stack shape.

    - 4-D: channels = shape[0]
    - 3-D with a leading axis of 3: one colour frame (3, H, W)
    - any other 3-D or 2-D: mono
    """
    ndim = len(shape)
    if ndim == 4:
        return int(shape[0])
    if ndim == 3 and shape[0] == 3:
        return 3
    if ndim in (2, 3):
        return 1
    raise UnrecognizedShapeError(
        f"Image stack must be 2-D, 3-D or 4-D, got {ndim}-D array of shape {shape}"
    )


def normalize_channels(
    images: np.ndarray,
    n_channels: int | None = None,
) -> tuple[int, np.ndarray]:
    """
    Return the channel count and the canonical view of an image stack.

    Parameters
    ----------
    images : np.ndarray
        Raw stack: (H, W), (H, W, N), (3, H, W), (1, H, W, N) or (3, H, W, N).
    n_channels : {1, 3}, optional
        Force the interpretation instead of inferring it. Useful for a mono
        stack whose height happens to be 3.

    Returns
    -------
    tuple[int, np.ndarray]
        (channels, canonical) with canonical shaped (H, W, N) for mono and
        (3, H, W, N) for colour.

    Raises
    ------
    UnrecognizedShapeError
        If the shape matches no known layout, or cannot satisfy the
        requested channel count.
    """
    images = np.asarray(images)
    shape = images.shape

    channels = infer_channels(shape) if n_channels is None else int(n_channels)
    if channels not in (1, 3):
        raise UnrecognizedShapeError(
            f"Only 1 or 3 channels are supported, got {channels} for shape {shape}"
        )

    if images.ndim == 4:
        if shape[0] != channels:
            raise UnrecognizedShapeError(
                f"4-D stack {shape} has {shape[0]} channels, {channels} requested"
            )
        canonical = images[0] if channels == 1 else images
    elif images.ndim == 3:
        if channels == 3:
            if shape[0] != 3:
                raise UnrecognizedShapeError(
                    f"3-D stack {shape} cannot be read as a single colour frame"
                )
            canonical = images[..., np.newaxis]
        else:
            canonical = images
    elif images.ndim == 2:
        if channels != 1:
            raise UnrecognizedShapeError(f"2-D image {shape} cannot have {channels} channels")
        canonical = images[..., np.newaxis]
    else:
        raise UnrecognizedShapeError(
            f"Image stack must be 2-D, 3-D or 4-D, got {images.ndim}-D array of shape {shape}"
        )

    logger.debug("Normalized stack %s -> %s (%d channel(s))", shape, canonical.shape, channels)
    return channels, canonical


def frame_shape(canonical: np.ndarray, channels: int) -> tuple[int, int]:
    """Return (height, width) of a canonical stack."""
    if channels == 1:
        return canonical.shape[0], canonical.shape[1]
    return canonical.shape[1], canonical.shape[2]


def n_frames(canonical: np.ndarray) -> int:
    """Number of frames in a canonical stack (always the last axis)."""
    return canonical.shape[-1]


def first_frame(canonical: np.ndarray, channels: int) -> np.ndarray:
    """
    First frame of a canonical stack as a displayable image.

    Mono frames are (H, W); colour frames are returned as (H, W, 3).
    """
    if channels == 1:
        return canonical[:, :, 0]
    return np.moveaxis(canonical[:, :, :, 0], 0, -1)
