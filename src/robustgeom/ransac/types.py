# Andy Zhao

"""
Shared typed primitives for the robust estimation kernels.

Defines:
- Typed NumPy aliases for geometry
    - Point sets are (D,N) float arrays, one column per point
    - Fundamental matrices are 3x3, similarities are packed 4x4
- Capability protocols a consensus engine relies on:
    - Solver: minimal sample -> candidate models
    - ErrorMetric: model + correspondences -> residuals
"""

from __future__ import annotations

from typing import List, Protocol, TypeVar, TypeAlias

import numpy as np
import numpy.typing as npt

# ---------- Numpy typing aliases ----------
# float64 everywhere for linear algebra, int64 for sample indices

FloatArray: TypeAlias = npt.NDArray[np.float64]
IndexArray: TypeAlias = npt.NDArray[np.int64]

# Point sets stored column-wise, D = 2 (image) or 3 (Euclidean).
Points: TypeAlias = FloatArray      # shape: (D, N)

# Fundamental matrix (rank <= 2, defined up to scale).
Mat3x3: TypeAlias = FloatArray      # shape: (3, 3)

# Packed similarity [S*R | t; 0 0 0 1].
Mat4x4: TypeAlias = FloatArray      # shape: (4, 4)

Vec3: TypeAlias = FloatArray        # shape: (3,)

# ---------- Generic model typing ----------
M = TypeVar("M")


class Solver(Protocol[M]):
    """
    Minimal solver interface.

    min_samples:
      - smallest number of correspondences that yields a finite set of models
    max_models:
      - upper bound on the number of candidates one call can return
    """
    min_samples: int
    max_models: int

    def solve(self, x1: Points, x2: Points) -> List[M]:
        """
        Fit candidate models from the given correspondences.
        Return an empty list if the sample is degenerate or the solve fails.
        """
        ...


class ErrorMetric(Protocol[M]):
    """
    Residual of a model against column correspondences.

    Both methods take (D,N) arrays and return (N,) residuals, so a single
    correspondence is scored with a (D,1) slice.
    """

    def error(self, model: M, x1: Points, x2: Points) -> FloatArray:
        ...

    def squared_error(self, model: M, x1: Points, x2: Points) -> FloatArray:
        ...


# ---------- Helper Functions ----------
def as_points(x: npt.ArrayLike, dim: int | None = None, name: str = "points") -> Points:
    """
    Convert input to a (D,N) float64 array and check its row dimension.
    """
    pts = np.asarray(x, dtype=np.float64)
    if pts.ndim != 2:
        raise ValueError(f"Expected {name} shape (D, N) but got {pts.shape}")
    if dim is not None and pts.shape[0] != dim:
        raise ValueError(f"Expected {name} shape ({dim}, N) but got {pts.shape}")
    return pts


def check_correspondences(x1: Points, x2: Points, dim: int, min_count: int = 0) -> None:
    """
    Validate a pair of corresponding point sets.

    Both must be (dim, N) with the same N and N >= min_count.
    """
    if x1.shape != x2.shape:
        raise ValueError(f"x1 and x2 must have same shape, got {x1.shape} vs {x2.shape}")
    if x1.ndim != 2 or x1.shape[0] != dim:
        raise ValueError(f"Expected points shape ({dim}, N), got {x1.shape}")
    if x1.shape[1] < min_count:
        raise ValueError(f"Need at least {min_count} correspondences, got {x1.shape[1]}")


def as_homogeneous(x: Points) -> Points:
    """
    Convert (D,N) points -> (D+1,N) homogeneous points by appending a row of ones.
    """
    ones = np.ones((1, x.shape[1]), dtype=np.float64)
    return np.vstack([x.astype(np.float64), ones])


def is_valid_matrix(T: FloatArray, shape: tuple[int, int]) -> bool:
    """
    Verify a model matrix has the expected shape and only finite entries.
    Used for rejecting failed fits.
    """
    return isinstance(T, np.ndarray) and T.shape == shape and bool(np.isfinite(T).all())
