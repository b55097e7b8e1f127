# Andy Zhao
"""
Nonlinear refinement of a similarity over all (inlier) correspondences.

Minimizes the summed squared residuals

    sum_i || x2_i - (S * R @ x1_i + t) ||^2

with scipy.optimize.least_squares. Rotation is parametrized as an
axis-angle increment w applied on top of the initial rotation:

    R(w) = Rodrigues(w) @ R0,   w0 = 0

Two variants:
- refine_rts:      7 parameters [S, w (3), t (3)]
- refine_rotation: 3 parameters [w], S and t held fixed
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np
from scipy.optimize import least_squares

from ..ransac.types import FloatArray, Mat3x3, Points, Vec3, as_points, check_correspondences

_DEBUG = os.environ.get("ROBUSTGEOM_DEBUG", "0") == "1"


@dataclass(frozen=True)
class RefineParams:
    """
    Settings forwarded to scipy.optimize.least_squares.

    method:
      - "lm": Levenberg-Marquardt, needs at least as many residuals as parameters
      - "trf" / "dogbox": trust region, also support robust losses
    loss:
      - "linear" is plain least squares; other values need method != "lm"
    max_nfev:
      - cap on residual evaluations (None lets scipy choose)
    ftol, xtol, gtol:
      - stopping tolerances
    """
    method: str = "lm"
    loss: str = "linear"
    max_nfev: int | None = None
    ftol: float = 1e-10
    xtol: float = 1e-10
    gtol: float = 1e-10


def _rotation_increment(w: FloatArray) -> Mat3x3:
    R, _ = cv2.Rodrigues(np.asarray(w, dtype=np.float64).reshape(3, 1))
    return R


# ---------- Residual callbacks ----------
def rts_residuals(
        params: FloatArray,
        x1: Points,
        x2: Points,
        R0: Mat3x3,
) -> FloatArray:
    """
    Residual vector (3N,) for params = [S, wx, wy, wz, tx, ty, tz].
    """
    S = params[0]
    R = _rotation_increment(params[1:4]) @ R0
    t = params[4:7]
    return (x2 - (S * (R @ x1) + t[:, None])).ravel()


def rotation_residuals(
        params: FloatArray,
        x1: Points,
        x2: Points,
        S: float,
        R0: Mat3x3,
        t: Vec3,
) -> FloatArray:
    """
    Residual vector (3N,) for params = [wx, wy, wz] with S, t fixed.
    """
    R = _rotation_increment(params) @ R0
    return (x2 - (S * (R @ x1) + t[:, None])).ravel()


# ---------- Refinement ----------
def _least_squares(fun, x0: FloatArray, args: tuple, params: RefineParams):
    kwargs = dict(
        method=params.method,
        loss=params.loss,
        ftol=params.ftol,
        xtol=params.xtol,
        gtol=params.gtol,
        args=args,
    )
    if params.max_nfev is not None:
        kwargs["max_nfev"] = params.max_nfev
    return least_squares(fun, x0, **kwargs)


def refine_rts(
        x1: Points,
        x2: Points,
        S: float,
        R: Mat3x3,
        t: Vec3,
        *,
        params: RefineParams = RefineParams(),
) -> Tuple[float, Mat3x3, Vec3]:
    """
    Refine (S, R, t) over all correspondences.

    x1, x2: (3,N) points, N >= 3

    Returns the refined (S, R, t). If the optimizer reports failure, or the
    refined scale is not positive, the initial estimate is returned.
    """
    x1 = as_points(x1, dim=3, name="x1")
    x2 = as_points(x2, dim=3, name="x2")
    check_correspondences(x1, x2, dim=3, min_count=3)

    R0 = np.asarray(R, dtype=np.float64)
    t0 = np.asarray(t, dtype=np.float64).reshape(3)
    x0 = np.concatenate([[float(S)], np.zeros(3), t0])

    res = _least_squares(rts_residuals, x0, (x1, x2, R0), params)

    if not res.success or not np.all(np.isfinite(res.x)) or res.x[0] <= 0.0:
        if _DEBUG:
            print(f"[refine] RTS refinement failed: {res.message}")
        return float(S), R0.copy(), t0.copy()

    S_ref = float(res.x[0])
    R_ref = _rotation_increment(res.x[1:4]) @ R0
    t_ref = res.x[4:7].copy()

    if _DEBUG:
        cost0 = 0.5 * float(np.sum(rts_residuals(x0, x1, x2, R0) ** 2))
        print(f"[refine] RTS cost {cost0:.6g} -> {res.cost:.6g} in {res.nfev} evaluations")

    return S_ref, R_ref, t_ref


def refine_rotation(
        x1: Points,
        x2: Points,
        S: float,
        R: Mat3x3,
        t: Vec3,
        *,
        params: RefineParams = RefineParams(),
) -> Mat3x3:
    """
    Refine only the rotation of (S, R, t) over all correspondences.

    Returns the refined R, or the initial R if the optimizer reports failure.
    """
    x1 = as_points(x1, dim=3, name="x1")
    x2 = as_points(x2, dim=3, name="x2")
    check_correspondences(x1, x2, dim=3, min_count=1)

    R0 = np.asarray(R, dtype=np.float64)
    t0 = np.asarray(t, dtype=np.float64).reshape(3)

    res = _least_squares(rotation_residuals, np.zeros(3), (x1, x2, float(S), R0, t0), params)

    if not res.success or not np.all(np.isfinite(res.x)):
        if _DEBUG:
            print(f"[refine] rotation refinement failed: {res.message}")
        return R0.copy()

    if _DEBUG:
        print(f"[refine] rotation cost -> {res.cost:.6g} in {res.nfev} evaluations")

    return _rotation_increment(res.x) @ R0
