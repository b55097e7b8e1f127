"""
Fundamental matrix package
"""
from .epipolar import (
    encode_epipolar_equation, nullspace, nullspace2, nullspace_dimension,
    det_polynomial, solve_cubic_polynomial,
)
from .solvers import (
    SevenPointResult, seven_point, eight_point, enforce_rank2,
    SevenPointSolver, EightPointSolver,
)
from .errors import (
    epipolar_residuals, SampsonError, SymmetricEpipolarDistanceError, EpipolarDistanceError,
)
from .kernel import fundamental_kernel, point_to_line_logalpha0

__all__ = [
    "encode_epipolar_equation", "nullspace", "nullspace2", "nullspace_dimension",
    "det_polynomial", "solve_cubic_polynomial",
    "SevenPointResult", "seven_point", "eight_point", "enforce_rank2",
    "SevenPointSolver", "EightPointSolver",
    "epipolar_residuals", "SampsonError", "SymmetricEpipolarDistanceError", "EpipolarDistanceError",
    "fundamental_kernel", "point_to_line_logalpha0",
]
