# Andy Zhao
"""
3D similarity transform (7 dof): scale S, rotation R, translation t.

    x2 ≈ S * R @ x1 + t

Packed 4x4 form (what the kernel adaptor passes around):

    RTS = [[S*R, t],
           [0 0 0, 1]]

Closed form estimate: Umeyama, "Least-squares estimation of transformation
parameters between two point patterns", PAMI 1991.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
import numpy.typing as npt

from ..ransac.kernel import KernelAdaptor
from ..ransac.types import (
    FloatArray, Mat3x3, Mat4x4, Points, Vec3,
    as_points, check_correspondences, is_valid_matrix,
)

_DEBUG = os.environ.get("ROBUSTGEOM_DEBUG", "0") == "1"

_EPS = float(np.finfo(np.float64).eps)


# ---------- Compose / decompose ----------
def compose_rts(S: float, R: Mat3x3, t: npt.ArrayLike) -> Mat4x4:
    """
    Pack (S, R, t) into a 4x4 similarity matrix.
    """
    R = np.asarray(R, dtype=np.float64)
    t = np.asarray(t, dtype=np.float64).reshape(-1)
    if R.shape != (3, 3):
        raise ValueError(f"Expected R shape (3,3), got {R.shape}")
    if t.shape != (3,):
        raise ValueError(f"Expected t shape (3,), got {t.shape}")

    RTS = np.eye(4, dtype=np.float64)
    RTS[:3, :3] = float(S) * R
    RTS[:3, 3] = t
    return RTS


def decompose_rts(RTS: Mat4x4) -> Optional[Tuple[float, Mat3x3, Vec3]]:
    """
    Split a 4x4 similarity into (S, R, t).

    1) take the top-left 3x3 block, det(block) = S^3 for a similarity
    2) reject a negative determinant (reflection)
    3) S = cbrt(det)
    4) reject S < machine epsilon (e.g. all points identical)
    5) R = block / S

    Returns:
      (S, R, t), or None if RTS is not a proper similarity.
    """
    RTS = np.asarray(RTS, dtype=np.float64)
    if RTS.shape != (4, 4):
        raise ValueError(f"Expected RTS shape (4,4), got {RTS.shape}")

    block = RTS[:3, :3]
    det = float(np.linalg.det(block))
    if not np.isfinite(det) or det < 0.0:
        if _DEBUG:
            print(f"[RTS] rejected: det={det:.3e}")
        return None

    S = float(np.cbrt(det))
    if S < _EPS:
        if _DEBUG:
            print(f"[RTS] rejected: scale={S:.3e} below epsilon")
        return None

    R = block / S
    t = RTS[:3, 3].copy()
    return S, R, t


def transform_points(RTS: Mat4x4, x: Points) -> Points:
    """
    Apply a packed similarity to (3,N) points.
    """
    x = as_points(x, dim=3, name="x")
    return RTS[:3, :3] @ x + RTS[:3, 3:4]


# ---------- Closed form estimation ----------
def umeyama(x1: Points, x2: Points, with_scaling: bool = True) -> Mat4x4:
    """
    Least squares similarity mapping x1 onto x2.

    x1, x2: (3,N) points, N >= 3

    Steps:
    - center both sets
    - SVD of the cross covariance Y X^T / N = U D V^T
    - R = U diag(1, 1, ±1) V^T, sign chosen so det(R) = +1
    - S = trace(D diag(1, 1, ±1)) / var(x1)
    - t = mu2 - S R mu1

    Raises np.linalg.LinAlgError if the SVD does not converge.
    """
    x1 = as_points(x1, dim=3, name="x1")
    x2 = as_points(x2, dim=3, name="x2")
    check_correspondences(x1, x2, dim=3, min_count=1)

    n = x1.shape[1]
    mu1 = x1.mean(axis=1)
    mu2 = x2.mean(axis=1)
    X = x1 - mu1[:, None]
    Y = x2 - mu2[:, None]

    cov = (Y @ X.T) / n
    U, d, Vt = np.linalg.svd(cov)

    signs = np.ones(3, dtype=np.float64)
    if np.linalg.det(U) * np.linalg.det(Vt) < 0.0:
        signs[2] = -1.0

    R = U @ np.diag(signs) @ Vt

    scale = 1.0
    if with_scaling:
        var1 = float(np.sum(X * X)) / n
        # All source points identical: no scale can be recovered
        scale = float(np.dot(d, signs)) / var1 if var1 > 0.0 else 0.0

    t = mu2 - scale * (R @ mu1)
    return compose_rts(scale, R, t)


def find_rts(x1: Points, x2: Points) -> Optional[Tuple[float, Mat3x3, Vec3]]:
    """
    Similarity (S, R, t) from N >= 3 correspondences.

    Returns None with fewer than 3 points, if the SVD fails, or if the
    estimate is not a proper similarity (see decompose_rts).
    """
    x1 = as_points(x1, dim=3, name="x1")
    x2 = as_points(x2, dim=3, name="x2")
    check_correspondences(x1, x2, dim=3)
    if x1.shape[1] < 3:
        return None

    try:
        RTS = umeyama(x1, x2, with_scaling=True)
    except np.linalg.LinAlgError:
        return None
    return decompose_rts(RTS)


# ---------- Kernel adaptor capabilities ----------
@dataclass(frozen=True)
class RTSSolver:
    """
    Similarity solver for KernelAdaptor: one Umeyama model per sample.
    """
    min_samples: int = field(default=3, init=False)
    max_models: int = field(default=1, init=False)

    def solve(self, x1: Points, x2: Points) -> List[Mat4x4]:
        try:
            RTS = umeyama(x1, x2, with_scaling=True)
        except np.linalg.LinAlgError:
            return []
        if not is_valid_matrix(RTS, (4, 4)):
            return []
        return [RTS]


@dataclass(frozen=True)
class RTSResidualError:
    """
    Euclidean residual || x2 - (S R x1 + t) || per correspondence.
    """

    def error(self, model: Mat4x4, x1: Points, x2: Points) -> FloatArray:
        return np.linalg.norm(x2 - transform_points(model, x1), axis=0)

    def squared_error(self, model: Mat4x4, x1: Points, x2: Points) -> FloatArray:
        diff = x2 - transform_points(model, x1)
        return np.sum(diff * diff, axis=0)


def similarity_kernel(x1: npt.ArrayLike, x2: npt.ArrayLike) -> KernelAdaptor[Mat4x4]:
    """
    Kernel over (3,N) Euclidean correspondences: RTSSolver + RTSResidualError.
    """
    x1 = as_points(x1, dim=3, name="x1")
    x2 = as_points(x2, dim=3, name="x2")
    check_correspondences(x1, x2, dim=3)
    return KernelAdaptor(x1, x2, RTSSolver(), RTSResidualError())
