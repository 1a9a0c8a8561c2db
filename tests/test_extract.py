"""
Tests for the extract module.

Tests cover:
- Worked block-stack scenarios (elevation mean/percentile, ccd sum)
- Result shapes for mono and colour stacks
- Geodetic extraction through the interior grid
- Error taxonomy and no partial results
- Batch extraction of several regions
"""

import time

import numpy as np
import pytest

from asimetric import extract_metric, extract_metrics, extract_region_metric
from asimetric.config import ExtractConfig, MetricKind, RegionMode
from asimetric.errors import (
    ConfigurationError,
    CoreError,
    EmptyRegionError,
    RangeError,
    UnrecognizedShapeError,
    UnsupportedModeError,
    ValidationError,
)


class TestBlockScenarios:
    """Tests on a 100x100x5 stack with a bright 10x10 block."""

    def test_elevation_mean(self, block_stack, elevation_skymap):
        values = extract_metric(
            block_stack(), "elevation", [45, 95], metric="mean", skymap=elevation_skymap()
        )
        np.testing.assert_array_equal(values, [100, 100, 100, 100, 100])

    def test_elevation_percentile(self, block_stack, elevation_skymap):
        values = extract_metric(
            block_stack(), "elevation", [45, 95], percentile=50, skymap=elevation_skymap()
        )
        np.testing.assert_array_equal(values, [100, 100, 100, 100, 100])

    def test_ccd_sum(self, block_stack):
        values = extract_metric(block_stack(), "ccd", [0, 9, 0, 9], metric="sum")
        np.testing.assert_array_equal(values, [10000, 10000, 10000, 10000, 10000])

    def test_elevation_median_default(self, block_stack, elevation_skymap):
        values = extract_metric(block_stack(), "elevation", [45, 95], skymap=elevation_skymap())
        np.testing.assert_array_equal(values, [100] * 5)

    def test_background_region(self, block_stack):
        """The complementary region sees only the background."""
        values = extract_metric(block_stack(), "ccd", [20, 99, 20, 99], metric="mean")
        np.testing.assert_array_equal(values, [10] * 5)

    def test_reversed_bounds_same_result(self, block_stack, elevation_skymap):
        skymap = elevation_skymap()
        images = block_stack()
        forward = extract_metric(images, "elevation", [45, 95], metric="mean", skymap=skymap)
        reverse = extract_metric(images, "elevation", [95, 45], metric="mean", skymap=skymap)
        np.testing.assert_array_equal(forward, reverse)

    def test_mode_case_insensitive(self, block_stack):
        values = extract_metric(block_stack(), "CCD", [0, 9, 0, 9], metric="sum")
        assert values[0] == 10000

    def test_result_describes_region(self, block_stack, elevation_skymap):
        result = extract_region_metric(
            block_stack(), "elevation", [95, 45], metric="mean",
            skymap=elevation_skymap(), label="zenith",
        )
        assert result.n_pixels == 100
        assert result.n_frames == 5
        assert result.n_channels == 1
        assert result.label == "zenith"
        assert result.boundary.mode is RegionMode.ELEVATION
        assert result.boundary.bounds == (45.0, 95.0)
        assert result.statistic.kind is MetricKind.MEAN


class TestShapes:
    """Tests for output shapes and frame order."""

    def test_mono_shape(self, random_stack):
        images = random_stack(n_frames=7)
        values = extract_metric(images, "ccd", [0, 10, 0, 10])
        assert values.shape == (7,)
        assert values.dtype == np.float64

    def test_colour_shape(self, random_stack):
        images = random_stack(n_frames=7, channels=3)
        values = extract_metric(images, "ccd", [0, 10, 0, 10], metric="mean")
        assert values.shape == (3, 7)

    def test_single_frame(self, random_stack):
        images = random_stack(n_frames=1)[:, :, 0]
        values = extract_metric(images, "ccd", [0, 4, 0, 4], metric="mean")
        assert values.shape == (1,)
        assert values[0] == pytest.approx(images[:5, :5].mean())

    def test_frame_order_preserved(self):
        """Each output entry belongs to the frame at the same index."""
        images = np.zeros((20, 20, 6))
        for i in range(6):
            images[:, :, i] = i * 10
        values = extract_metric(images, "ccd", [2, 8, 2, 8], metric="mean", chunk_frames=4)
        np.testing.assert_array_equal(values, [0, 10, 20, 30, 40, 50])

    def test_colour_channels_reduced_separately(self):
        images = np.zeros((3, 10, 10, 2))
        images[0] = 1.0
        images[1] = 2.0
        images[2] = 3.0
        values = extract_metric(images, "ccd", [0, 9, 0, 9], metric="sum")
        np.testing.assert_array_equal(values[:, 0], [100, 200, 300])

    def test_colour_percentile_is_joint(self):
        """The colour percentile returns one pixel's channels, not per-channel ranks."""
        images = np.zeros((3, 2, 3, 1))
        images[:, :, 0, 0] = [[10, 10], [0, 0], [0, 0]]
        images[:, :, 1, 0] = [[0, 0], [20, 20], [0, 0]]
        images[:, :, 2, 0] = [[0, 0], [0, 0], [30, 30]]
        values = extract_metric(images, "ccd", [0, 2, 0, 1], percentile=50)
        np.testing.assert_array_equal(values[:, 0], [0, 20, 0])

    def test_caller_stack_not_modified(self, random_stack):
        images = random_stack(channels=3)
        before = images.copy()
        extract_metric(images, "ccd", [0, 10, 0, 10], percentile=75)
        np.testing.assert_array_equal(images, before)


class TestGeodetic:
    """Tests for geodetic extraction."""

    def test_interior_grid_selects_pixels(self, geo_skymap, random_stack):
        """Interior cell (r, c) maps to image pixel (r, c)."""
        images = random_stack(height=50, width=60, n_frames=3)
        values = extract_metric(
            images, "geodetic", [-109.05, -108.55, 51.05, 51.45],
            metric="mean", skymap=geo_skymap(), altitude_km=90.0,
        )
        expected = images[10:14, 9:14, :].astype(np.float64).mean(axis=(0, 1))
        np.testing.assert_allclose(values, expected)

    def test_interpolated_altitude(self, geo_skymap, random_stack):
        """At 100 km the grid shifts by half a degree."""
        images = random_stack(height=50, width=60, n_frames=2)
        values = extract_metric(
            images, "geodetic", [-108.55, -108.05, 51.55, 51.95],
            metric="mean", skymap=geo_skymap(), altitude_km=100.0,
        )
        expected = images[10:14, 9:14, :].astype(np.float64).mean(axis=(0, 1))
        np.testing.assert_allclose(values, expected)

    def test_missing_altitude(self, geo_skymap, random_stack):
        with pytest.raises(ConfigurationError, match="altitude_km"):
            extract_metric(random_stack(), "geodetic", [-109, -105, 51, 53], skymap=geo_skymap())

    def test_altitude_outside_skymap(self, geo_skymap, random_stack):
        with pytest.raises(RangeError, match="outside skymap range"):
            extract_metric(
                random_stack(), "geodetic", [-109, -105, 51, 53],
                skymap=geo_skymap(), altitude_km=300.0,
            )

    def test_no_coverage(self, geo_skymap, random_stack):
        with pytest.raises(RangeError, match="No coverage"):
            extract_metric(
                random_stack(), "geodetic", [-120, -115, 51, 53],
                skymap=geo_skymap(), altitude_km=90.0,
            )


class TestErrors:
    """Tests for the error taxonomy."""

    def test_missing_skymap(self, block_stack):
        with pytest.raises(ConfigurationError, match="skymap"):
            extract_metric(block_stack(), "elevation", [45, 95])

    def test_geomagnetic_unsupported(self, block_stack, elevation_skymap):
        with pytest.raises(UnsupportedModeError):
            extract_metric(block_stack(), "geomagnetic", [10, 20, 60, 70], skymap=elevation_skymap())

    def test_geomagnetic_zero_area_is_validation_error(self, block_stack):
        with pytest.raises(ValidationError, match="zero area"):
            extract_metric(block_stack(), "geomagnetic", [10, 10, 60, 70])

    def test_unknown_mode(self, block_stack):
        with pytest.raises(ValidationError, match="Unrecognized region mode"):
            extract_metric(block_stack(), "zenith", [10, 20])

    def test_ccd_outside_frame(self, block_stack):
        with pytest.raises(RangeError):
            extract_metric(block_stack(), "ccd", [0, 100, 0, 9])

    @pytest.mark.parametrize("bounds", [[150, 150, 0, 5], [0, 5, 120, 120]])
    def test_ccd_zero_area_off_frame(self, block_stack, bounds):
        """Zero-area bounds are a ValidationError even when they also miss the frame."""
        with pytest.raises(ValidationError, match="zero area"):
            extract_metric(block_stack(), "ccd", bounds)

    def test_empty_region(self, block_stack, elevation_skymap):
        with pytest.raises(EmptyRegionError):
            extract_metric(block_stack(), "elevation", [50, 60], skymap=elevation_skymap())

    def test_bad_shape(self):
        with pytest.raises(UnrecognizedShapeError):
            extract_metric(np.zeros((2, 10, 10, 3)), "ccd", [0, 5, 0, 5])

    def test_conflicting_statistic(self, block_stack):
        with pytest.raises(ValidationError, match="Conflicting"):
            extract_metric(block_stack(), "ccd", [0, 9, 0, 9], metric="sum", percentile=50)

    def test_errors_share_base_class(self, block_stack):
        with pytest.raises(CoreError):
            extract_metric(block_stack(), "azimuth", [10, 10])


class TestPreviewAndProgress:
    """Tests for the optional preview and progress bar."""

    def test_show_preview(self, block_stack, elevation_skymap, monkeypatch):
        shown = {}

        def fake_show(image, title=""):
            shown["image"] = image
            shown["title"] = title

        monkeypatch.setattr("asimetric.preview.show_preview", fake_show)
        values = extract_metric(
            block_stack(), "elevation", [45, 95], metric="mean",
            skymap=elevation_skymap(), show_preview=True,
        )
        np.testing.assert_array_equal(values, [100] * 5)
        assert shown["image"].shape == (100, 100, 3)
        assert shown["image"].dtype == np.uint8
        assert "elevation" in shown["title"]

    def test_progress(self, block_stack):
        values = extract_metric(block_stack(), "ccd", [0, 9, 0, 9], metric="sum", show_progress=True)
        assert values[0] == 10000


class TestExtractMetrics:
    """Tests for batch extraction."""

    def _configs(self):
        return [
            ExtractConfig(mode="ccd", bounds=[0, 9, 0, 9], metric="sum", label="block"),
            ExtractConfig(mode="elevation", bounds=[45, 95], metric="mean", label="zenith"),
            ExtractConfig(mode="ccd", bounds=[20, 99, 20, 99], metric="median", label="sky"),
        ]

    def test_sequential(self, block_stack, elevation_skymap):
        results = extract_metrics(block_stack(), self._configs(), skymap=elevation_skymap(), workers=1)
        assert [r.label for r in results] == ["block", "zenith", "sky"]
        np.testing.assert_array_equal(results[0].values, [10000] * 5)
        np.testing.assert_array_equal(results[1].values, [100] * 5)
        np.testing.assert_array_equal(results[2].values, [10] * 5)

    def test_threaded_matches_sequential(self, block_stack, elevation_skymap):
        images = block_stack()
        skymap = elevation_skymap()
        sequential = extract_metrics(images, self._configs(), skymap=skymap, workers=1)
        threaded = extract_metrics(images, self._configs(), skymap=skymap, workers=3)
        for a, b in zip(sequential, threaded):
            assert a.label == b.label
            np.testing.assert_array_equal(a.values, b.values)

    def test_invalid_config_fails_before_work(self, block_stack):
        configs = self._configs() + [ExtractConfig(mode="geodetic", bounds=[-100, -90, 50, 60])]
        with pytest.raises(ConfigurationError):
            extract_metrics(block_stack(), configs, workers=2)

    def test_failure_propagates(self, block_stack, elevation_skymap):
        """A region failing at extraction time raises; no partial list is returned."""
        configs = self._configs() + [ExtractConfig(mode="elevation", bounds=[50, 60])]
        with pytest.raises(EmptyRegionError):
            extract_metrics(block_stack(), configs, skymap=elevation_skymap(), workers=2)

    def test_failure_cancels_queued_regions(self, block_stack, monkeypatch):
        """Regions still queued when one fails are never started."""
        started = []

        def fake_extract(images, config, skymap, chunk_frames):
            started.append(config.label)
            if config.label == "bad":
                raise EmptyRegionError("Region contains no valid pixels")
            time.sleep(0.05)

        monkeypatch.setattr("asimetric.extract._extract_config", fake_extract)
        configs = [ExtractConfig(mode="ccd", bounds=[0, 9, 0, 9], label="bad")] + [
            ExtractConfig(mode="ccd", bounds=[0, 9, 0, 9], label=f"r{i}") for i in range(20)
        ]
        with pytest.raises(EmptyRegionError):
            extract_metrics(block_stack(), configs, workers=2)
        assert "bad" in started
        assert len(started) < len(configs)
