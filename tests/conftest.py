"""
Pytest configuration and fixtures.
"""

import numpy as np
import pytest

from asimetric.skymap import Skymap


@pytest.fixture
def block_stack():
    """Mono stack: background 10, a bright block of 100."""
    def _create(height=100, width=100, n_frames=5, block=(slice(0, 10), slice(0, 10)),
                background=10, value=100, dtype=np.uint16):
        images = np.full((height, width, n_frames), background, dtype=dtype)
        images[block[0], block[1], :] = value
        return images

    return _create


@pytest.fixture
def elevation_skymap():
    """Skymap whose elevation is 90 inside a block and 0 elsewhere."""
    def _create(height=100, width=100, block=(slice(0, 10), slice(0, 10))):
        elevation = np.zeros((height, width), dtype=np.float32)
        elevation[block[0], block[1]] = 90.0
        azimuth = np.zeros((height, width), dtype=np.float32)
        altitudes = np.array([90.0, 110.0, 150.0])
        lat = np.zeros((height, width, 3))
        lon = np.zeros((height, width, 3))
        return Skymap(
            full_azimuth=azimuth,
            full_elevation=elevation,
            full_map_altitude=altitudes,
            full_map_latitude=lat,
            full_map_longitude=lon,
        )

    return _create


@pytest.fixture
def geo_skymap():
    """
    Skymap on a regular lat/lon grid that drifts with altitude.

    At altitude index a, latitude = 50 + row * 0.1 + a and
    longitude = 250 + col * 0.1 + a (0-360 convention, i.e. -110 + ...).
    Azimuth increases with column (0..360), elevation is NaN in the
    first column.
    """
    def _create(height=50, width=60, altitudes=(90.0, 110.0, 150.0)):
        rows, cols = np.mgrid[0:height, 0:width].astype(np.float64)
        altitudes = np.asarray(altitudes, dtype=np.float64)
        offsets = np.arange(altitudes.size, dtype=np.float64)
        lat = 50.0 + rows[:, :, np.newaxis] * 0.1 + offsets
        lon = 250.0 + cols[:, :, np.newaxis] * 0.1 + offsets
        azimuth = cols * (360.0 / width)
        elevation = rows * (90.0 / height)
        elevation[:, 0] = np.nan
        return Skymap(
            full_azimuth=azimuth,
            full_elevation=elevation,
            full_map_altitude=altitudes,
            full_map_latitude=lat,
            full_map_longitude=lon,
            site_uid="test",
            imager_uid="asi-01",
        )

    return _create


@pytest.fixture
def random_stack():
    """Random integer stack in mono (H, W, N) or colour (3, H, W, N) layout."""
    def _create(height=50, width=60, n_frames=4, channels=1, seed=42):
        rng = np.random.default_rng(seed)
        shape = (height, width, n_frames) if channels == 1 else (channels, height, width, n_frames)
        return rng.integers(0, 4096, size=shape).astype(np.uint16)

    return _create
