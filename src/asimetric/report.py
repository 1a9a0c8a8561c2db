"""
JSON reports for extraction results.

Produces a machine-readable record of one or more region extractions:
library version, run timestamp, region description, statistic and the
per-frame values.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Sequence

import numpy as np

from .extract import MetricResult
from .utils import get_platform_info, get_timestamp_iso, get_version

logger = logging.getLogger(__name__)


def _to_native(obj: Any) -> Any:
    """Convert numpy types to native Python types for JSON serialization."""
    if isinstance(obj, np.floating):
        value = float(obj)
        return value if np.isfinite(value) else None
    elif isinstance(obj, float):
        return obj if np.isfinite(obj) else None
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.ndarray):
        return _to_native(obj.tolist())
    elif isinstance(obj, dict):
        return {str(k): _to_native(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_to_native(v) for v in obj]
    return obj


def metric_entry(result: MetricResult) -> dict[str, Any]:
    """Describe one extraction result as a JSON-compatible dict."""
    return _to_native(
        {
            "label": result.label,
            "mode": result.boundary.mode.value,
            "bounds": list(result.boundary.bounds),
            "statistic": result.statistic.kind.value,
            "percentile": result.statistic.percentile,
            "n_pixels": result.n_pixels,
            "n_channels": result.n_channels,
            "n_frames": result.n_frames,
            "values": result.values,
        }
    )


def metric_report(results: MetricResult | Sequence[MetricResult]) -> dict[str, Any]:
    """
    Build a report for one or several extraction results.

    Returns
    -------
    dict
        Keys: 'asimetric_version', 'timestamp', 'platform', 'regions'.
    """
    if isinstance(results, MetricResult):
        results = [results]
    return {
        "asimetric_version": get_version(),
        "timestamp": get_timestamp_iso(),
        "platform": get_platform_info(),
        "regions": [metric_entry(r) for r in results],
    }


def write_metric_report(
    results: MetricResult | Sequence[MetricResult],
    path: str | Path,
) -> Path:
    """
    Write an extraction report as JSON.

    Parameters
    ----------
    results : MetricResult or sequence of MetricResult
        Results to record.
    path : str or Path
        Output file.

    Returns
    -------
    Path
        Path to the written report.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(metric_report(results), f, indent=2)
    logger.info("Wrote report: %s", path)
    return path
