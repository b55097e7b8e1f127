# Andy Zhao
"""
Robust estimation interface package

This module provides:
- Typed geometry primitives and the Solver / ErrorMetric protocols
- Uniform sampling without replacement for minimal subsets
- A generic kernel adaptor driven by an external consensus engine
"""

from .types import (
    FloatArray, IndexArray, Points, Mat3x3, Mat4x4, Vec3,
    Solver, ErrorMetric, as_points, check_correspondences, as_homogeneous, is_valid_matrix,
)

from .sampling import uniform_sample, uniform_sample_range, uniform_sample_set

from .kernel import KernelAdaptor

__all__ = [
    "FloatArray", "IndexArray", "Points", "Mat3x3", "Mat4x4", "Vec3",
    "Solver", "ErrorMetric", "as_points", "check_correspondences", "as_homogeneous", "is_valid_matrix",
    "uniform_sample", "uniform_sample_range", "uniform_sample_set",
    "KernelAdaptor",
]
