"""
Similarity (scale, rotation, translation) package
"""
from .rts import (
    compose_rts, decompose_rts, transform_points, umeyama, find_rts,
    RTSSolver, RTSResidualError, similarity_kernel,
)
from .refine import RefineParams, refine_rts, refine_rotation, rts_residuals, rotation_residuals

__all__ = [
    "compose_rts", "decompose_rts", "transform_points", "umeyama", "find_rts",
    "RTSSolver", "RTSResidualError", "similarity_kernel",
    "RefineParams", "refine_rts", "refine_rotation", "rts_residuals", "rotation_residuals",
]
