# Andy Zhao
"""
Linear-algebra building blocks for the fundamental matrix solvers.

Epipolar constraint for a correspondence x1 <-> x2 (homogeneous, w = 1):

    x2^T F x1 = 0

is linear in the 9 entries of F. Written with F in row-major order
f = [F00, F01, F02, F10, F11, F12, F20, F21, F22]:

    [x2*x1, x2*y1, x2, y2*x1, y2*y1, y2, x1, y1, 1] . f = 0

Stacking one such row per correspondence gives A f = 0, and candidate
fundamental matrices live in the null space of A (found with SVD).
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np
import numpy.typing as npt

from ..ransac.types import FloatArray, Mat3x3, Points, check_correspondences


# ---------- Design matrix ----------
def encode_epipolar_equation(
        x1: Points,
        x2: Points,
        weights: Optional[npt.ArrayLike] = None,
) -> FloatArray:
    """
    Build the (N,9) coefficient matrix of the epipolar constraint.

    x1, x2: (2,N) image points
    weights: optional (N,) per-correspondence weights, each row is scaled by its weight
    """
    check_correspondences(x1, x2, dim=2)

    u1, v1 = x1[0], x1[1]
    u2, v2 = x2[0], x2[1]
    ones = np.ones_like(u1)

    A = np.column_stack([
        u2 * u1, u2 * v1, u2,
        v2 * u1, v2 * v1, v2,
        u1, v1, ones,
    ]).astype(np.float64)

    if weights is not None:
        w = np.asarray(weights, dtype=np.float64).reshape(-1)
        if w.shape[0] != A.shape[0]:
            raise ValueError(f"weights must have length N={A.shape[0]}, got {w.shape[0]}")
        A *= w[:, None]

    return A


# ---------- Null space ----------
def svd_padded(A: FloatArray) -> Tuple[FloatArray, FloatArray]:
    """
    SVD of A after zero-padding it to a square matrix when it has fewer rows
    than columns, so Vt always holds a full right-singular basis.

    Returns:
      s: singular values, descending
      Vt: (C,C) right singular vectors as rows
    """
    rows, cols = A.shape
    if rows < cols:
        A = np.vstack([A, np.zeros((cols - rows, cols), dtype=np.float64)])
    _, s, Vt = np.linalg.svd(A, full_matrices=False)
    return s, Vt


def nullspace(A: FloatArray) -> FloatArray:
    """
    Unit vector minimizing ||A f|| (right singular vector of the smallest singular value).
    """
    _, Vt = svd_padded(A)
    return Vt[-1]


def nullspace2(A: FloatArray) -> Tuple[FloatArray, FloatArray]:
    """
    Two unit vectors spanning the (approximate) 2D null space of A.
    """
    _, Vt = svd_padded(A)
    return Vt[-1], Vt[-2]


def nullspace_dimension(singular_values: FloatArray, rtol: float = 1e-9) -> int:
    """
    Count singular values that are numerically zero relative to the largest one.
    """
    s = np.asarray(singular_values, dtype=np.float64)
    if s.size == 0 or s[0] <= 0.0:
        return int(s.size)
    return int(np.count_nonzero(s <= rtol * s[0]))


# ---------- Singularity constraint ----------
def _adjugate(M: Mat3x3) -> Mat3x3:
    """
    Adjugate of a 3x3 matrix (M @ adj(M) = det(M) I), defined for singular M too.
    """
    r0, r1, r2 = M[0], M[1], M[2]
    return np.column_stack([np.cross(r1, r2), np.cross(r2, r0), np.cross(r0, r1)])


def det_polynomial(F1: Mat3x3, F2: Mat3x3) -> FloatArray:
    """
    Coefficients of det(F1 + a*F2) in ascending powers of a: [c0, c1, c2, c3].

        c0 = det(F1)
        c1 = trace(adj(F1) @ F2)
        c2 = trace(adj(F2) @ F1)
        c3 = det(F2)
    """
    return np.array([
        np.linalg.det(F1),
        np.trace(_adjugate(F1) @ F2),
        np.trace(_adjugate(F2) @ F1),
        np.linalg.det(F2),
    ], dtype=np.float64)


# ---------- Polynomial roots ----------
def _solve_quadratic(c0: float, c1: float, c2: float, tol: float) -> List[float]:
    # c0 + c1 x + c2 x^2 = 0
    if abs(c2) <= tol:
        if abs(c1) <= tol:
            return []
        return [-c0 / c1]

    disc = c1 * c1 - 4.0 * c2 * c0
    if disc < 0.0:
        return []
    if disc == 0.0:
        return [-c1 / (2.0 * c2)]

    # Avoid cancellation: compute the larger-magnitude root first
    q = -0.5 * (c1 + math.copysign(math.sqrt(disc), c1))
    roots = [q / c2]
    if q != 0.0:
        roots.append(c0 / q)
    return sorted(roots)


def solve_cubic_polynomial(coeffs: Sequence[float], eps: float = 1e-12) -> List[float]:
    """
    Real roots of c0 + c1 x + c2 x^2 + c3 x^3 = 0 (coefficients in ascending order).

    Closed form:
      - normalize to x^3 + a x^2 + b x + c
      - Q = (a^2 - 3b) / 9, R = (2a^3 - 9ab + 27c) / 54
      - R^2 == Q^3: repeated root, the double root is reported once
      - R^2 < Q^3: three real roots (trigonometric form)
      - otherwise: one real root (Cardano)

    When c3 is negligible w.r.t. the other coefficients the quadratic (or
    linear) equation is solved instead. Returns [] if there is no real root.
    """
    if len(coeffs) != 4:
        raise ValueError(f"Expected 4 coefficients, got {len(coeffs)}")
    c0, c1, c2, c3 = (float(c) for c in coeffs)

    scale = max(abs(c0), abs(c1), abs(c2), abs(c3))
    if scale == 0.0 or not math.isfinite(scale):
        return []
    tol = eps * scale

    if abs(c3) <= tol:
        return _solve_quadratic(c0, c1, c2, tol)

    a = c2 / c3
    b = c1 / c3
    c = c0 / c3

    q = (a * a - 3.0 * b) / 9.0
    r = (2.0 * a ** 3 - 9.0 * a * b + 27.0 * c) / 54.0
    q3 = q ** 3
    shift = a / 3.0

    r2 = r * r
    if abs(r2 - q3) <= 1e-14 * max(r2, abs(q3)):
        # Repeated root: a double and a simple one, or a triple root when Q = R = 0
        sq = math.copysign(math.sqrt(max(q, 0.0)), r)
        roots = {-2.0 * sq - shift, sq - shift}
        return sorted(roots)

    if r2 < q3:
        theta = math.acos(max(-1.0, min(1.0, r / math.sqrt(q3))))
        m = -2.0 * math.sqrt(q)
        roots = [
            m * math.cos(theta / 3.0) - shift,
            m * math.cos((theta + 2.0 * math.pi) / 3.0) - shift,
            m * math.cos((theta - 2.0 * math.pi) / 3.0) - shift,
        ]
        return sorted(roots)

    big = -math.copysign(1.0, r) * float(np.cbrt(abs(r) + math.sqrt(r2 - q3)))
    small = q / big if big != 0.0 else 0.0
    return [big + small - shift]
