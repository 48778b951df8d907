"""
Binned-Equality Classifier
==========================

Coarsens continuous predictions into install-count bins so a prediction can
be scored as "close enough" to the true value.

Bins are half-open intervals ``[t[i], t[i+1])`` plus an open terminal bin
``[t[last], +inf)``. Values below ``t[0]`` fall into their own underflow bin
and only ever match each other.
"""

import math
from typing import Sequence

import numpy as np

from .exceptions import InvalidConfiguration

UNDERFLOW_BIN = -1


def validate_thresholds(thresholds: Sequence[float]) -> np.ndarray:
    """
    Check a threshold sequence and return it as a float array.

    Args:
        thresholds: Candidate bin edges

    Returns:
        1-D float array of the edges

    Raises:
        InvalidConfiguration: If there are fewer than 2 edges, any edge is not
            finite, or the edges are not strictly increasing
    """
    edges = np.asarray(thresholds, dtype=float)

    if edges.ndim != 1 or len(edges) < 2:
        raise InvalidConfiguration(
            f"Thresholds must be a 1-D sequence of at least 2 values, got {edges.shape}"
        )
    if not np.all(np.isfinite(edges)):
        raise InvalidConfiguration("Thresholds must be finite")
    if np.any(np.diff(edges) <= 0):
        raise InvalidConfiguration("Thresholds must be strictly increasing")

    return edges


def bin_index(value: float, thresholds: Sequence[float]) -> int:
    """
    Locate the bin a value falls in.

    Args:
        value: Scalar to place, must not be NaN
        thresholds: Strictly increasing bin edges

    Returns:
        ``-1`` below the first edge, ``i`` for ``[t[i], t[i+1])`` and
        ``len(thresholds) - 1`` for the terminal bin

    Raises:
        ValueError: If value is NaN, which belongs to no bin
    """
    if math.isnan(value):
        raise ValueError("NaN has no bin")
    return int(np.searchsorted(thresholds, value, side='right')) - 1


def same_bin(a: float, b: float, thresholds: Sequence[float]) -> bool:
    """
    Decide whether two values fall in the same bin.

    Args:
        a: First value (typically the prediction)
        b: Second value (typically the true target)
        thresholds: Strictly increasing bin edges, at least 2 of them

    Returns:
        True if both values share a bin. NaN never matches.
    """
    if math.isnan(a) or math.isnan(b):
        return False
    return bin_index(a, thresholds) == bin_index(b, thresholds)


def bin_labels(thresholds: Sequence[float], precision: int = 2) -> list:
    """Human-readable labels for every bin, underflow first."""
    edges = list(thresholds)
    labels = [f"(-inf, {edges[0]:.{precision}f})"]
    for low, high in zip(edges[:-1], edges[1:]):
        labels.append(f"[{low:.{precision}f}, {high:.{precision}f})")
    labels.append(f"[{edges[-1]:.{precision}f}, +inf)")
    return labels
