"""
Array file loading for the command-line interface.

Handles:
- Image stacks from .npy, .npz or FITS
- Skymaps stored as .npz archives of the calibration arrays

Native imager and skymap formats are read by the data-access layer, not
here; these helpers only move already-decoded arrays in and out of files.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from astropy.io import fits

from .skymap import Skymap

logger = logging.getLogger(__name__)

FITS_SUFFIXES = (".fits", ".fit", ".fts", ".fits.gz")

SKYMAP_ARRAYS = (
    "full_azimuth",
    "full_elevation",
    "full_map_altitude",
    "full_map_latitude",
    "full_map_longitude",
)
SKYMAP_UIDS = ("site_uid", "imager_uid", "project_uid")


def _is_fits(path: Path) -> bool:
    return any(path.name.lower().endswith(suffix) for suffix in FITS_SUFFIXES)


def read_fits_stack(path: str | Path) -> np.ndarray:
    """
    Read a FITS image or cube as a stack with frames on the last axis.

    FITS cubes are frame-major in NumPy order:
    - (H, W)        -> (H, W)
    - (N, H, W)     -> (H, W, N)
    - (N, C, H, W)  -> (C, H, W, N)

    A 3-D cube is always read as N mono frames, so a single colour frame
    must be stored as (1, 3, H, W); a (3, H, W) file gives three mono
    frames.

    Notes
    -----
    astropy applies BZERO/BSCALE on read, so unsigned 16-bit data comes
    back with its physical values.
    """
    with fits.open(path) as hdul:
        hdu = next((h for h in hdul if h.data is not None), None)
        if hdu is None:
            raise ValueError(f"No image data in FITS file: {path}")
        data = np.asarray(hdu.data)

    if data.ndim == 3:
        data = np.moveaxis(data, 0, -1)
    elif data.ndim == 4:
        data = np.transpose(data, (1, 2, 3, 0))
    return data


def read_image_stack(path: str | Path, key: str = "images") -> np.ndarray:
    """
    Read an image stack from disk.

    Parameters
    ----------
    path : str or Path
        .npy (layout kept as stored), .npz (array ``key`` or the only
        array) or FITS (see ``read_fits_stack``).
    key : str, default "images"
        Array name inside a .npz archive.

    Returns
    -------
    np.ndarray
        Raw stack, ready for ``extract_metric``.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image stack not found: {path}")

    if _is_fits(path):
        data = read_fits_stack(path)
    elif path.suffix == ".npy":
        data = np.load(path)
    elif path.suffix == ".npz":
        with np.load(path) as archive:
            if key in archive.files:
                data = archive[key]
            elif len(archive.files) == 1:
                data = archive[archive.files[0]]
            else:
                raise ValueError(
                    f"{path.name} holds {len(archive.files)} arrays and none is named {key!r}"
                )
    else:
        raise ValueError(f"Unsupported image stack format: {path.suffix}")

    logger.info("Loaded image stack %s: shape %s, dtype %s", path.name, data.shape, data.dtype)
    return data


def read_skymap(path: str | Path) -> Skymap:
    """
    Read a skymap from a .npz archive.

    The archive must contain the arrays named in ``SKYMAP_ARRAYS``;
    ``site_uid``, ``imager_uid`` and ``project_uid`` are optional.
    The table is validated before being returned.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Skymap not found: {path}")

    with np.load(path) as archive:
        missing = [name for name in SKYMAP_ARRAYS if name not in archive.files]
        if missing:
            raise ValueError(f"Skymap {path.name} is missing arrays: {', '.join(missing)}")
        arrays = {name: np.asarray(archive[name]) for name in SKYMAP_ARRAYS}
        uids = {name: str(archive[name]) for name in SKYMAP_UIDS if name in archive.files}

    skymap = Skymap(**arrays, **uids)
    skymap.validate()
    logger.info(
        "Loaded skymap %s: grid %s, altitudes %s km",
        path.name,
        skymap.shape,
        ", ".join(f"{a:g}" for a in skymap.full_map_altitude),
    )
    return skymap


def write_skymap(path: str | Path, skymap: Skymap) -> Path:
    """Write a skymap in the .npz layout read by ``read_skymap``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    arrays = {name: getattr(skymap, name) for name in SKYMAP_ARRAYS}
    uids = {name: np.asarray(getattr(skymap, name)) for name in SKYMAP_UIDS}
    np.savez_compressed(path, **arrays, **uids)
    logger.info("Wrote skymap: %s", path)
    return path
