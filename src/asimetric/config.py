"""
Configuration types for asimetric region metric extraction.

Enums for the recognized region modes and statistics, the normalized
boundary/statistic specs produced by the validator, and the dataclass
describing one complete extraction request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .errors import ConfigurationError, ValidationError


class RegionMode(Enum):
    """Coordinate system in which a region is specified."""

    AZIMUTH = "azimuth"
    ELEVATION = "elevation"
    CCD = "ccd"
    GEODETIC = "geodetic"
    GEOMAGNETIC = "geomagnetic"  # Recognized, never implemented

    @property
    def n_bounds(self) -> int:
        """Number of bound values the mode expects."""
        if self in (RegionMode.AZIMUTH, RegionMode.ELEVATION):
            return 2
        return 4

    @property
    def needs_skymap(self) -> bool:
        return self in (RegionMode.AZIMUTH, RegionMode.ELEVATION, RegionMode.GEODETIC)

    @classmethod
    def parse(cls, value: str | RegionMode) -> RegionMode:
        """
        Parse a mode name (case-insensitive) or pass an enum through.

        Raises
        ------
        ValidationError
            If the value is not one of the recognized modes.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for mode in cls:
                if mode.value == key:
                    return mode
        valid = ", ".join(m.value for m in cls)
        raise ValidationError(f"Unrecognized region mode {value!r}; expected one of: {valid}")


class MetricKind(Enum):
    """Statistic computed over the pixels of a region."""

    MEDIAN = "median"
    MEAN = "mean"
    SUM = "sum"
    PERCENTILE = "percentile"

    @classmethod
    def parse(cls, value: str | MetricKind) -> MetricKind:
        """Parse a metric name (case-insensitive) or pass an enum through."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for kind in cls:
                if kind.value == key:
                    return kind
        valid = ", ".join(k.value for k in cls)
        raise ValidationError(f"Unrecognized metric {value!r}; expected one of: {valid}")


@dataclass(frozen=True)
class BoundarySpec:
    """
    Validated region boundary.

    Bounds are stored normalized: every (low, high) pair is ascending.
    Azimuth/elevation carry (low, high); ccd carries (x0, x1, y0, y1) and
    geodetic carries (lon0, lon1, lat0, lat1).
    """

    mode: RegionMode
    bounds: tuple[float, ...]

    def describe(self) -> str:
        """Short human-readable description, used in logs and reports."""
        values = ", ".join(f"{b:g}" for b in self.bounds)
        return f"{self.mode.value}[{values}]"


@dataclass(frozen=True)
class StatisticSpec:
    """Validated statistic selection."""

    kind: MetricKind = MetricKind.MEDIAN
    percentile: float | None = None
    """Percentile in (0, 100), set only when kind is PERCENTILE."""

    def describe(self) -> str:
        if self.kind is MetricKind.PERCENTILE:
            return f"percentile({self.percentile:g})"
        return self.kind.value


@dataclass
class ExtractConfig:
    """
    Description of one extraction request.

    Used to queue several regions over the same image stack
    (see ``extract_metrics``) and by the command-line interface.
    """

    mode: str | RegionMode
    """Region mode: 'azimuth', 'elevation', 'ccd', 'geodetic' or 'geomagnetic'."""

    bounds: list[float] = field(default_factory=list)
    """2 values for azimuth/elevation, 4 values for ccd/geodetic."""

    metric: str | None = None
    """'median' (default), 'mean' or 'sum'."""

    percentile: float | None = None
    """Nearest-rank percentile in (0, 100); exclusive with mean/sum."""

    altitude_km: float | None = None
    """Mapping altitude, required for geodetic regions."""

    n_channels: int | None = None
    """Force the channel interpretation of the stack (1 or 3)."""

    label: str = ""
    """Free-form name for the region, echoed in reports."""

    def validate(self) -> None:
        """
        Validate everything that does not depend on the image stack.

        CCD extents are checked later, once the stack shape is known.
        """
        from .validate import resolve_statistic, validate_bounds

        mode = RegionMode.parse(self.mode)
        validate_bounds(mode, self.bounds)
        resolve_statistic(self.metric, self.percentile)
        if self.n_channels is not None and self.n_channels not in (1, 3):
            raise ValidationError(f"n_channels must be 1 or 3, got {self.n_channels}")
        if mode is RegionMode.GEODETIC and self.altitude_km is None:
            raise ConfigurationError("Geodetic regions require altitude_km")
