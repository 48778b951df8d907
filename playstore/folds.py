"""
Fold Partitioner
================

Stratified k-fold assignment. Observations are ordered by the stratification
key and dealt out in blocks of ``k``; each block goes to a shuffled set of
fold ids, so every fold draws from every region of the target distribution
and fold sizes differ by at most one.
"""

import logging
from typing import Dict, Iterable, Optional, Sequence

import numpy as np

from .exceptions import InvalidConfiguration

logger = logging.getLogger(__name__)


def make_folds(
    n: int,
    k: int,
    stratify_by: Sequence[float],
    seed: Optional[int] = None
) -> Dict[int, np.ndarray]:
    """
    Split ``n`` observations into ``k`` stratified folds.

    Args:
        n: Number of observations
        k: Number of folds
        stratify_by: One stratification value per observation
        seed: Seed for tie-breaking and fold shuffling

    Returns:
        Mapping of fold id (0..k-1) to sorted observation indices

    Raises:
        InvalidConfiguration: If k is outside [2, n], the key length differs
            from n, or the key has fewer than k distinct values
    """
    if k < 2 or k > n:
        raise InvalidConfiguration(f"k must be between 2 and n={n}, got {k}")

    key = np.asarray(stratify_by, dtype=float)
    if key.shape != (n,):
        raise InvalidConfiguration(
            f"Expected {n} stratification values, got {key.shape}"
        )

    n_distinct = len(np.unique(key))
    if n_distinct < k:
        raise InvalidConfiguration(
            f"Need at least k={k} distinct stratification values, found {n_distinct}"
        )

    rng = np.random.default_rng(seed)

    # Shuffle first so the stable sort breaks ties randomly
    shuffled = rng.permutation(n)
    order = shuffled[np.argsort(key[shuffled], kind='stable')]

    assignment = np.empty(n, dtype=int)
    for start in range(0, n, k):
        block = order[start:start + k]
        assignment[block] = rng.permutation(k)[:len(block)]

    folds = {
        fold_id: np.sort(np.flatnonzero(assignment == fold_id))
        for fold_id in range(k)
    }

    logger.debug(f"Built {k} stratified folds over {n} observations: {fold_sizes(folds)}")
    return folds


def fold_sizes(folds: Dict[int, np.ndarray]) -> Dict[int, int]:
    """Number of observations in each fold."""
    return {fold_id: int(len(indices)) for fold_id, indices in sorted(folds.items())}


def check_partition(folds: Dict[int, Iterable[int]], n: int) -> Dict[int, np.ndarray]:
    """
    Verify that folds partition ``range(n)`` with ids ``0..k-1``.

    Args:
        folds: Fold id -> observation indices (array, list or set)
        n: Number of observations

    Returns:
        The same folds as sorted integer arrays

    Raises:
        InvalidConfiguration: On missing fold ids, empty folds, overlaps or
            omissions
    """
    if len(folds) < 2:
        raise InvalidConfiguration(f"Need at least 2 folds, got {len(folds)}")
    if sorted(folds) != list(range(len(folds))):
        raise InvalidConfiguration(
            f"Fold ids must be 0..{len(folds) - 1}, got {sorted(folds)}"
        )

    normalized = {
        fold_id: np.fromiter(sorted(int(i) for i in folds[fold_id]), dtype=int)
        for fold_id in range(len(folds))
    }

    empty = [fold_id for fold_id, indices in normalized.items() if len(indices) == 0]
    if empty:
        raise InvalidConfiguration(f"Folds must not be empty, got empty folds {empty}")

    all_indices = np.concatenate(list(normalized.values()))
    if len(all_indices) != n or not np.array_equal(np.sort(all_indices), np.arange(n)):
        raise InvalidConfiguration(
            f"Folds must cover each of the {n} observations exactly once"
        )

    return normalized
