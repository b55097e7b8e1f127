# Andy Zhao
"""
Minimal solvers for the fundamental matrix.

Seven point solver (N = 7, the true minimal case):
  - A f = 0 has a 2D null space spanned by f1, f2 -> F = F1 + a*F2
  - impose det(F) = 0, a cubic in a
  - one candidate per real root (1 or 3)

Eight point solver (N >= 8):
  - 1D null space -> F directly
  - N > 8: project onto rank 2 (SVD, zero the smallest singular value)
  - N == 8: the null vector is returned as is, rank is not enforced

Neither solver normalizes the input coordinates.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import numpy.typing as npt

from ..ransac.types import Mat3x3, Points, as_points, check_correspondences, is_valid_matrix
from .epipolar import (
    det_polynomial, encode_epipolar_equation, nullspace, nullspace_dimension,
    solve_cubic_polynomial, svd_padded,
)

_DEBUG = os.environ.get("ROBUSTGEOM_DEBUG", "0") == "1"


# ---------- Seven point ----------
@dataclass(frozen=True)
class SevenPointResult:
    """
    Output of the seven point solver.

    models:        one 3x3 candidate per real root of det(F1 + a*F2) = 0
    nullspace_dim: numerical dimension of null(A)
    degenerate:    True when null(A) is larger than 2D. Then F1, F2 are two
                   arbitrary vectors of a bigger solution family (self matching,
                   pure rotation, all points on a plane) and the candidates
                   can be wrong.
    """
    models: List[Mat3x3] = field(default_factory=list)
    nullspace_dim: int = 2
    degenerate: bool = False


def seven_point(x1: Points, x2: Points, *, rank_rtol: float = 1e-9) -> SevenPointResult:
    """
    Fundamental matrices from 7 (or more) correspondences.

    x1, x2: (2,N) image points, N >= 7

    Returns a SevenPointResult. An empty model list means no real root was
    found or the decomposition failed.
    """
    x1 = as_points(x1, dim=2, name="x1")
    x2 = as_points(x2, dim=2, name="x2")
    check_correspondences(x1, x2, dim=2, min_count=7)

    A = encode_epipolar_equation(x1, x2)
    try:
        s, Vt = svd_padded(A)
    except np.linalg.LinAlgError:
        return SevenPointResult(models=[], nullspace_dim=0, degenerate=False)

    dim = nullspace_dimension(s, rtol=rank_rtol)
    degenerate = dim > 2
    if degenerate and _DEBUG:
        print(f"[7pt] degenerate sample: null space dimension {dim} > 2")

    # Row-major reshape matches the column order of encode_epipolar_equation
    F1 = Vt[-1].reshape(3, 3)
    F2 = Vt[-2].reshape(3, 3)

    roots = solve_cubic_polynomial(det_polynomial(F1, F2))

    models = []
    for a in roots:
        F = F1 + a * F2
        if is_valid_matrix(F, (3, 3)):
            models.append(F)

    return SevenPointResult(models=models, nullspace_dim=dim, degenerate=degenerate)


# ---------- Eight point ----------
def enforce_rank2(F: Mat3x3) -> Mat3x3:
    """
    Closest rank 2 matrix in Frobenius norm: zero the smallest singular value.
    """
    U, d, Vt = np.linalg.svd(F)
    d[2] = 0.0
    return U @ np.diag(d) @ Vt


def eight_point(
        x1: Points,
        x2: Points,
        weights: Optional[npt.ArrayLike] = None,
) -> List[Mat3x3]:
    """
    Linear fundamental matrix from N >= 8 correspondences.

    x1, x2: (2,N) image points
    weights: optional (N,) weights on the epipolar equations

    Returns a list holding one 3x3 matrix, or [] if the SVD fails.
    """
    x1 = as_points(x1, dim=2, name="x1")
    x2 = as_points(x2, dim=2, name="x2")
    check_correspondences(x1, x2, dim=2, min_count=8)

    A = encode_epipolar_equation(x1, x2, weights)
    try:
        F = nullspace(A).reshape(3, 3)
        # Over-determined: the least squares F is generally full rank
        if x1.shape[1] > 8:
            F = enforce_rank2(F)
    except np.linalg.LinAlgError:
        return []

    if not is_valid_matrix(F, (3, 3)):
        return []
    return [F]


# ---------- Solver classes (kernel adaptor capability) ----------
@dataclass(frozen=True)
class SevenPointSolver:
    """
    Seven point solver for KernelAdaptor.

    reject_degenerate:
      - False: candidates of a degenerate sample are returned anyway
      - True: a degenerate sample yields no model
    """
    reject_degenerate: bool = False
    rank_rtol: float = 1e-9

    min_samples: int = field(default=7, init=False)
    max_models: int = field(default=3, init=False)

    def solve(self, x1: Points, x2: Points) -> List[Mat3x3]:
        result = seven_point(x1, x2, rank_rtol=self.rank_rtol)
        if result.degenerate and self.reject_degenerate:
            return []
        return result.models


@dataclass(frozen=True)
class EightPointSolver:
    """
    Eight point solver for KernelAdaptor.
    """
    min_samples: int = field(default=8, init=False)
    max_models: int = field(default=1, init=False)

    def solve(self, x1: Points, x2: Points) -> List[Mat3x3]:
        return eight_point(x1, x2)
