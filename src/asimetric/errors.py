"""
Exception taxonomy for asimetric.

Every failure of the extraction core derives from CoreError. Most kinds
also derive from ValueError so that callers catching ValueError (the
convention used throughout the processing code) keep working.
"""

from __future__ import annotations


class CoreError(Exception):
    """Base class for all metric extraction failures."""


class ValidationError(CoreError, ValueError):
    """Bad mode name, bounds arity/values, zero-area region or statistic selector."""


class ConfigurationError(CoreError, ValueError):
    """A required collaborator input (skymap, altitude) is missing."""


class RangeError(CoreError, ValueError):
    """Altitude, geodetic coverage or CCD extent outside what the data supports."""


class EmptyRegionError(CoreError, ValueError):
    """The resolved region contains no valid pixels."""


class UnrecognizedShapeError(CoreError, ValueError):
    """Image stack dimensionality does not match a known channel layout."""


class UnsupportedModeError(CoreError, NotImplementedError):
    """The requested region mode is recognized but not implemented."""
