# Andy Zhao
"""
KernelAdaptor factory for fundamental matrix estimation.
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

import numpy.typing as npt

from ..ransac.kernel import KernelAdaptor
from ..ransac.types import ErrorMetric, Mat3x3, Solver, as_points, check_correspondences
from .errors import SampsonError
from .solvers import SevenPointSolver


def point_to_line_logalpha0(image_size: Tuple[float, float]) -> float:
    """
    log10 of the probability that a uniformly drawn point of the image lies
    within distance 1 of a given epipolar line: 2*D/A, D = diagonal, A = area.
    """
    w, h = float(image_size[0]), float(image_size[1])
    if w <= 0.0 or h <= 0.0:
        raise ValueError(f"image_size must be positive, got {image_size}")
    return math.log10(2.0 * math.hypot(w, h) / (w * h))


def fundamental_kernel(
        x1: npt.ArrayLike,
        x2: npt.ArrayLike,
        *,
        solver: Optional[Solver[Mat3x3]] = None,
        error_metric: Optional[ErrorMetric[Mat3x3]] = None,
        image_size: Optional[Tuple[float, float]] = None,
) -> KernelAdaptor[Mat3x3]:
    """
    Kernel over (2,N) image correspondences.

    Defaults: SevenPointSolver + SampsonError.

    image_size:
      - (width, height) of the second image
      - given: alpha0 is the point-to-line probability (see point_to_line_logalpha0)
        and mult_error is 0.5
      - None: log10(pi) and mult_error 1.0 are kept
    """
    x1 = as_points(x1, dim=2, name="x1")
    x2 = as_points(x2, dim=2, name="x2")
    check_correspondences(x1, x2, dim=2)

    logalpha0 = math.log10(math.pi)
    mult_error = 1.0
    if image_size is not None:
        # Errors are squared distances to a line, halved in log space
        logalpha0 = point_to_line_logalpha0(image_size)
        mult_error = 0.5

    return KernelAdaptor(
        x1,
        x2,
        solver if solver is not None else SevenPointSolver(),
        error_metric if error_metric is not None else SampsonError(),
        logalpha0=logalpha0,
        mult_error=mult_error,
    )
