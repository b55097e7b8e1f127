# Andy Zhao
"""
Error metrics for a fundamental matrix F on correspondences x1 <-> x2.

With homogeneous points x1h, x2h:
    r      = x2h^T F x1h        (algebraic residual)
    l2     = F x1h              (epipolar line of x1 in image 2)
    l1     = F^T x2h            (epipolar line of x2 in image 1)

All metrics take (2,N) points and return (N,) arrays. A correspondence whose
epipolar line is undefined (zero line) gets an infinite error.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..ransac.types import FloatArray, Mat3x3, Points, as_homogeneous


def _lines(F: Mat3x3, x1: Points, x2: Points) -> tuple[FloatArray, FloatArray, FloatArray]:
    x1h = as_homogeneous(x1)
    x2h = as_homogeneous(x2)
    l2 = F @ x1h
    l1 = F.T @ x2h
    r = np.sum(x2h * l2, axis=0)
    return r, l1, l2


def _safe_ratio(num: FloatArray, den: FloatArray) -> FloatArray:
    out = np.full(num.shape, np.inf, dtype=np.float64)
    ok = den > 0.0
    out[ok] = num[ok] / den[ok]
    return out


def epipolar_residuals(F: Mat3x3, x1: Points, x2: Points) -> FloatArray:
    """
    Algebraic residuals x2h^T F x1h, one per correspondence (signed).
    """
    r, _, _ = _lines(F, x1, x2)
    return r


@dataclass(frozen=True)
class SampsonError:
    """
    First order approximation of the geometric (reprojection) error.

        d^2 = r^2 / (l2_x^2 + l2_y^2 + l1_x^2 + l1_y^2)
    """

    def squared_error(self, model: Mat3x3, x1: Points, x2: Points) -> FloatArray:
        r, l1, l2 = _lines(model, x1, x2)
        den = l2[0] ** 2 + l2[1] ** 2 + l1[0] ** 2 + l1[1] ** 2
        return _safe_ratio(r * r, den)

    def error(self, model: Mat3x3, x1: Points, x2: Points) -> FloatArray:
        return np.sqrt(self.squared_error(model, x1, x2))


@dataclass(frozen=True)
class SymmetricEpipolarDistanceError:
    """
    Sum of squared point-to-epipolar-line distances in both images.

        d^2 = r^2 * (1 / |l2_xy|^2 + 1 / |l1_xy|^2)
    """

    def squared_error(self, model: Mat3x3, x1: Points, x2: Points) -> FloatArray:
        r, l1, l2 = _lines(model, x1, x2)
        r2 = r * r
        return _safe_ratio(r2, l2[0] ** 2 + l2[1] ** 2) + _safe_ratio(r2, l1[0] ** 2 + l1[1] ** 2)

    def error(self, model: Mat3x3, x1: Points, x2: Points) -> FloatArray:
        return np.sqrt(self.squared_error(model, x1, x2))


@dataclass(frozen=True)
class EpipolarDistanceError:
    """
    Distance of x2 to the epipolar line F x1 (transfer error in image 2 only).
    """

    def squared_error(self, model: Mat3x3, x1: Points, x2: Points) -> FloatArray:
        r, _, l2 = _lines(model, x1, x2)
        return _safe_ratio(r * r, l2[0] ** 2 + l2[1] ** 2)

    def error(self, model: Mat3x3, x1: Points, x2: Points) -> FloatArray:
        return np.sqrt(self.squared_error(model, x1, x2))
