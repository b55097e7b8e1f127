# Andy Zhao
"""
Kernel adaptor: the interface an a-contrario consensus engine drives.

The engine itself lives outside this package. Its loop looks like:

    samples = uniform_sample(kernel.min_samples, kernel.num_samples)
    for model in kernel.fit(samples):
        residuals = kernel.errors(model)
        ... score, keep the most meaningful model ...

KernelAdaptor composes {point data, Solver, ErrorMetric} so any solver /
metric pair can be plugged into that loop the same way.

No normalization is applied to the correspondences: normalizers are
identities and unnormalize() returns the model untouched.
"""

from __future__ import annotations

import math
from typing import Generic, List, Sequence, TypeVar

import numpy as np
import numpy.typing as npt

from .types import ErrorMetric, FloatArray, Mat3x3, Points, Solver, as_points

M = TypeVar("M")


class KernelAdaptor(Generic[M]):
    """
    Generic kernel over a Solver[M] and an ErrorMetric[M].

    Parameters:
    - x1, x2: (D,N) corresponding points, same shape
    - solver: provides min_samples, max_models, solve()
    - error_metric: provides squared_error()
    - logalpha0: log10 of the probability that a random point has error 1
      (makes the a-contrario error scale invariant)
    - mult_error: multiplier applied by the engine to the logged error

    The point sets are copied and made read-only, so one instance can be
    queried from several threads at once.
    """

    def __init__(
            self,
            x1: npt.ArrayLike,
            x2: npt.ArrayLike,
            solver: Solver[M],
            error_metric: ErrorMetric[M],
            *,
            logalpha0: float = math.log10(math.pi),
            mult_error: float = 1.0,
    ) -> None:
        x1 = as_points(x1, name="x1")
        x2 = as_points(x2, name="x2")
        if x1.shape != x2.shape:
            raise ValueError(f"x1 and x2 must have same shape, got {x1.shape} vs {x2.shape}")

        self._x1 = np.array(x1, dtype=np.float64, copy=True)
        self._x2 = np.array(x2, dtype=np.float64, copy=True)
        self._x1.setflags(write=False)
        self._x2.setflags(write=False)

        self._solver = solver
        self._error_metric = error_metric
        self._logalpha0 = float(logalpha0)
        self._mult_error = float(mult_error)

    # ---------- Solver delegation ----------
    @property
    def min_samples(self) -> int:
        return int(self._solver.min_samples)

    @property
    def max_models(self) -> int:
        return int(self._solver.max_models)

    @property
    def num_samples(self) -> int:
        """Total number of correspondences."""
        return int(self._x1.shape[1])

    @property
    def x1(self) -> Points:
        return self._x1

    @property
    def x2(self) -> Points:
        return self._x2

    def fit(self, samples: Sequence[int] | npt.NDArray[np.integer]) -> List[M]:
        """
        Fit candidate models from the correspondences at the given indices.
        An empty list means "no model from this sample".
        """
        idx = np.asarray(samples, dtype=np.int64)
        return self._solver.solve(self._x1[:, idx], self._x2[:, idx])

    # ---------- Scoring ----------
    def error(self, sample: int, model: M) -> float:
        """
        Squared residual of one correspondence.
        """
        i = int(sample)
        e = self._error_metric.squared_error(model, self._x1[:, i:i + 1], self._x2[:, i:i + 1])
        return float(e[0])

    def errors(self, model: M) -> FloatArray:
        """
        Squared residuals of all correspondences, shape (N,).
        """
        return np.asarray(
            self._error_metric.squared_error(model, self._x1, self._x2), dtype=np.float64
        )

    # ---------- Normalization hooks (identity) ----------
    def unnormalize(self, model: M) -> M:
        return model

    def normalizer1(self) -> Mat3x3:
        return np.eye(3, dtype=np.float64)

    def normalizer2(self) -> Mat3x3:
        return np.eye(3, dtype=np.float64)

    def unnormalize_error(self, val: float) -> float:
        return math.sqrt(val)

    # ---------- A-contrario constants ----------
    @property
    def logalpha0(self) -> float:
        return self._logalpha0

    @property
    def mult_error(self) -> float:
        return self._mult_error
