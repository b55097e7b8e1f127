# Andy Zhao
"""
Uniform sampling without replacement.

A consensus engine draws a *minimal* subset of correspondence indices on
every iteration, so this has to be:
- exact: k distinct indices, all inside [lo, hi)
- unbiased: every k-subset equally likely
- cheap: O(k), independent of the range size

Floyd's selection does all three with exactly k random draws:

    for j in [n-k, n):
        t = uniform integer in [0, j]
        keep t unless it was already chosen, otherwise keep j

Since j itself can never have been chosen before step j, every step adds
exactly one new index (no retry loop).
"""

from __future__ import annotations

import threading
from typing import Optional, Set

import numpy as np

from .types import IndexArray

# One generator per thread, so worker threads sampling concurrently never
# share generator state.
_local = threading.local()


def _default_rng() -> np.random.Generator:
    rng = getattr(_local, "rng", None)
    if rng is None:
        rng = np.random.default_rng()
        _local.rng = rng
    return rng


def _floyd_select(n: int, k: int, rng: np.random.Generator) -> IndexArray:
    """
    Pick k distinct offsets in [0, n) and return them in random order.
    """
    chosen: Set[int] = set()
    for j in range(n - k, n):
        t = int(rng.integers(0, j + 1))
        chosen.add(j if t in chosen else t)

    # Floyd's subset is uniform but its order is not, shuffle for uniform order
    out = np.fromiter(chosen, dtype=np.int64, count=k)
    rng.shuffle(out)
    return out


def uniform_sample_range(
        lower_bound: int,
        upper_bound: int,
        num_samples: int,
        *,
        rng: Optional[np.random.Generator] = None,
) -> IndexArray:
    """
    Draw num_samples distinct integers uniformly from [lower_bound, upper_bound).

    Returns:
      (num_samples,) int64 array, in random order.

    Raises:
      ValueError if the range is empty/inverted or cannot supply num_samples values.
    """
    lower_bound = int(lower_bound)
    upper_bound = int(upper_bound)
    num_samples = int(num_samples)

    if upper_bound < lower_bound:
        raise ValueError(f"Invalid range [{lower_bound}, {upper_bound})")
    if num_samples < 0:
        raise ValueError(f"num_samples must be >= 0, got {num_samples}")

    n = upper_bound - lower_bound
    if num_samples > n:
        raise ValueError(
            f"Cannot draw {num_samples} distinct samples from [{lower_bound}, {upper_bound})"
        )

    if num_samples == 0:
        return np.empty((0,), dtype=np.int64)

    if rng is None:
        rng = _default_rng()

    return _floyd_select(n, num_samples, rng) + lower_bound


def uniform_sample(
        num_samples: int,
        upper_bound: int,
        *,
        rng: Optional[np.random.Generator] = None,
) -> IndexArray:
    """
    Draw num_samples distinct integers uniformly from [0, upper_bound).
    """
    return uniform_sample_range(0, upper_bound, num_samples, rng=rng)


def uniform_sample_set(
        num_samples: int,
        upper_bound: int,
        *,
        lower_bound: int = 0,
        rng: Optional[np.random.Generator] = None,
) -> Set[int]:
    """
    Same draw as uniform_sample_range, returned as a Python set.
    """
    idx = uniform_sample_range(lower_bound, upper_bound, num_samples, rng=rng)
    return {int(i) for i in idx}
