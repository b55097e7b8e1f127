from __future__ import annotations

import cv2
import numpy as np
import pytest


def rotation_from_vector(w) -> np.ndarray:
    R, _ = cv2.Rodrigues(np.asarray(w, dtype=np.float64).reshape(3, 1))
    return R


def skew(v) -> np.ndarray:
    x, y, z = (float(c) for c in v)
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]], dtype=np.float64)


def make_two_view(n: int, rng: np.random.Generator, noise: float = 0.0):
    """
    Project n random 3D points into two calibrated views (K = I).

    Returns x1, x2 as (2,N) and the ground truth F = [t]x R.
    """
    R = rotation_from_vector([0.05, -0.1, 0.08])
    t = np.array([0.6, -0.2, 0.1])

    X = np.vstack([
        rng.uniform(-1.0, 1.0, n),
        rng.uniform(-1.0, 1.0, n),
        rng.uniform(4.0, 8.0, n),
    ])
    x1 = X[:2] / X[2]
    Xc = R @ X + t[:, None]
    x2 = Xc[:2] / Xc[2]

    if noise > 0.0:
        x1 = x1 + rng.normal(0.0, noise, x1.shape)
        x2 = x2 + rng.normal(0.0, noise, x2.shape)

    return x1, x2, skew(t) @ R


def make_similarity(n: int, rng: np.random.Generator, noise: float = 0.0):
    """
    Random (3,N) points x1 and x2 = S R x1 + t (+ gaussian noise).
    """
    S = 2.5
    R = rotation_from_vector([0.3, -0.7, 1.1])
    t = np.array([1.0, -4.0, 0.5])

    x1 = rng.uniform(-10.0, 10.0, (3, n))
    x2 = S * (R @ x1) + t[:, None]
    if noise > 0.0:
        x2 = x2 + rng.normal(0.0, noise, x2.shape)
    return x1, x2, S, R, t


def same_up_to_scale(A: np.ndarray, B: np.ndarray, atol: float) -> bool:
    a = A / np.linalg.norm(A)
    b = B / np.linalg.norm(B)
    return bool(np.allclose(a, b, atol=atol) or np.allclose(a, -b, atol=atol))


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)
