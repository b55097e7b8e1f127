from __future__ import annotations

import numpy as np
import pytest

from conftest import make_similarity, rotation_from_vector
from robustgeom.similarity import (
    RefineParams, RTSResidualError, RTSSolver, compose_rts, decompose_rts, find_rts,
    refine_rotation, refine_rts, rts_residuals, transform_points, umeyama,
)


# ---------- Compose / decompose ----------
def test_compose_decompose_round_trip(rng):
    for _ in range(20):
        S = float(rng.uniform(0.1, 10.0))
        R = rotation_from_vector(rng.uniform(-np.pi / 2, np.pi / 2, 3))
        t = rng.normal(size=3) * 5.0

        out = decompose_rts(compose_rts(S, R, t))
        assert out is not None
        S2, R2, t2 = out
        assert np.isclose(S2, S)
        assert np.allclose(R2, R, atol=1e-12)
        assert np.allclose(t2, t)


def test_compose_layout():
    R = rotation_from_vector([0.0, 0.0, np.pi / 2])
    RTS = compose_rts(2.0, R, [1.0, 2.0, 3.0])
    assert np.allclose(RTS[:3, :3], 2.0 * R)
    assert np.allclose(RTS[:3, 3], [1.0, 2.0, 3.0])
    assert np.allclose(RTS[3], [0.0, 0.0, 0.0, 1.0])


def test_decompose_rejects_reflection():
    reflection = np.diag([1.0, 1.0, -1.0])
    assert decompose_rts(compose_rts(1.0, reflection, np.zeros(3))) is None


def test_decompose_rejects_tiny_scale():
    assert decompose_rts(compose_rts(1e-20, np.eye(3), np.ones(3))) is None
    assert decompose_rts(compose_rts(0.0, np.eye(3), np.ones(3))) is None


def test_decompose_shape_error():
    with pytest.raises(ValueError):
        decompose_rts(np.eye(3))


def test_transform_points(rng):
    x1, x2, S, R, t = make_similarity(10, rng)
    assert np.allclose(transform_points(compose_rts(S, R, t), x1), x2)


# ---------- Closed form ----------
def test_find_rts_exact(rng):
    x1, x2, S, R, t = make_similarity(3, rng)
    out = find_rts(x1, x2)
    assert out is not None
    S2, R2, t2 = out
    assert np.isclose(S2, S)
    assert np.allclose(R2, R, atol=1e-9)
    assert np.allclose(t2, t, atol=1e-8)


def test_find_rts_noisy_residuals_bounded(rng):
    sigma = 0.01
    x1, x2, _, _, _ = make_similarity(100, rng, noise=sigma)
    out = find_rts(x1, x2)
    assert out is not None

    S, R, t = out
    err = np.linalg.norm(x2 - (S * (R @ x1) + t[:, None]), axis=0)
    assert np.all(err < 6.0 * sigma)


def test_find_rts_rotation_is_proper(rng):
    x1, x2, _, _, _ = make_similarity(20, rng, noise=0.1)
    _, R, _ = find_rts(x1, x2)
    assert np.allclose(R.T @ R, np.eye(3), atol=1e-10)
    assert np.isclose(np.linalg.det(R), 1.0)


def test_find_rts_degenerate_inputs(rng):
    x1, x2, _, _, _ = make_similarity(10, rng)
    assert find_rts(x1[:, :2], x2[:, :2]) is None

    # All source points identical: no scale
    same = np.ones((3, 5))
    assert find_rts(same, x2[:, :5]) is None

    with pytest.raises(ValueError):
        find_rts(x1, x2[:, :5])


def test_find_rts_mismatched_short_inputs_raise(rng):
    x1, x2, _, _, _ = make_similarity(10, rng)
    with pytest.raises(ValueError):
        find_rts(x1[:, :2], x2[:, :1])
    with pytest.raises(ValueError):
        find_rts(x1[:2, :2], x2[:2, :2])


def test_find_rts_mirrored_points_give_proper_rotation(rng):
    mirror = np.diag([1.0, 1.0, -1.0])
    x1 = rng.normal(size=(3, 20))
    x2 = mirror @ x1

    out = find_rts(x1, x2)
    assert out is not None
    S, R, _ = out
    assert S > 0.0
    assert np.allclose(R.T @ R, np.eye(3), atol=1e-10)
    assert np.isclose(np.linalg.det(R), 1.0)


def test_find_rts_mirrored_planar_points_fit_exactly(rng):
    # On the plane z = 0, flipping y is a half turn about the x axis
    x1 = np.vstack([rng.uniform(-5.0, 5.0, size=(2, 12)), np.zeros((1, 12))])
    x2 = np.diag([1.0, -1.0, 1.0]) @ x1 + np.array([[1.0], [2.0], [3.0]])

    S, R, t = find_rts(x1, x2)
    assert np.isclose(np.linalg.det(R), 1.0)
    assert np.isclose(S, 1.0)
    assert np.allclose(R, np.diag([1.0, -1.0, -1.0]), atol=1e-9)
    assert np.allclose(S * (R @ x1) + t[:, None], x2, atol=1e-9)


def test_umeyama_without_scaling(rng):
    x1 = rng.normal(size=(3, 10))
    R = rotation_from_vector([0.2, 0.1, -0.4])
    x2 = R @ x1 + 1.0
    RTS = umeyama(x1, x2, with_scaling=False)
    assert np.allclose(RTS[:3, :3], R, atol=1e-10)
    assert np.allclose(RTS[:3, 3], 1.0)


def test_rts_solver_and_error(rng):
    solver = RTSSolver()
    assert solver.min_samples == 3
    assert solver.max_models == 1

    x1, x2, S, R, t = make_similarity(3, rng)
    models = solver.solve(x1, x2)
    assert len(models) == 1
    assert np.allclose(models[0], compose_rts(S, R, t), atol=1e-8)

    metric = RTSResidualError()
    model = compose_rts(S, R, t)
    shifted = x2 + np.array([[3.0], [4.0], [0.0]])
    assert np.allclose(metric.error(model, x1, shifted), 5.0)
    assert np.allclose(metric.squared_error(model, x1, shifted), 25.0)


# ---------- Refinement ----------
def _cost(x1, x2, S, R, t):
    return float(np.sum((x2 - (S * (R @ x1) + t[:, None])) ** 2))


def test_refine_rts_reaches_least_squares_optimum(rng):
    x1, x2, _, _, _ = make_similarity(50, rng, noise=0.05)
    S_opt, R_opt, t_opt = find_rts(x1, x2)

    S0 = S_opt * 1.05
    R0 = rotation_from_vector([0.02, -0.03, 0.01]) @ R_opt
    t0 = t_opt + 0.2

    S, R, t = refine_rts(x1, x2, S0, R0, t0)

    assert _cost(x1, x2, S, R, t) < _cost(x1, x2, S0, R0, t0)
    assert _cost(x1, x2, S, R, t) <= _cost(x1, x2, S_opt, R_opt, t_opt) * (1.0 + 1e-6)
    assert np.isclose(S, S_opt, rtol=1e-5)
    assert np.allclose(R, R_opt, atol=1e-5)
    assert np.allclose(R.T @ R, np.eye(3), atol=1e-10)


def test_refine_rts_with_trust_region(rng):
    x1, x2, S_true, R_true, t_true = make_similarity(20, rng)
    R0 = rotation_from_vector([0.05, 0.0, -0.05]) @ R_true

    S, R, t = refine_rts(
        x1, x2, S_true * 0.9, R0, t_true,
        params=RefineParams(method="trf", loss="soft_l1"),
    )
    assert np.isclose(S, S_true, rtol=1e-4)
    assert np.allclose(R, R_true, atol=1e-4)


def test_refine_rotation_only(rng):
    x1, x2, S, R_true, t = make_similarity(15, rng)
    R0 = rotation_from_vector([-0.04, 0.03, 0.02]) @ R_true

    R = refine_rotation(x1, x2, S, R0, t)
    assert np.allclose(R, R_true, atol=1e-6)
    assert np.isclose(np.linalg.det(R), 1.0)


def test_rts_residuals_vanish_at_truth(rng):
    x1, x2, S, R, t = make_similarity(6, rng)
    params = np.concatenate([[S], np.zeros(3), t])
    r = rts_residuals(params, x1, x2, R)
    assert r.shape == (18,)
    assert np.allclose(r, 0.0, atol=1e-10)


def test_refine_requires_three_points(rng):
    x1, x2, S, R, t = make_similarity(2, rng)
    with pytest.raises(ValueError):
        refine_rts(x1, x2, S, R, t)


def test_refine_rts_returns_initial_estimate_when_not_converged(rng):
    x1, x2, S_true, R_true, t_true = make_similarity(20, rng, noise=0.05)
    S0 = S_true * 1.1
    R0 = rotation_from_vector([0.1, -0.05, 0.08]) @ R_true
    t0 = t_true + 0.5

    S, R, t = refine_rts(x1, x2, S0, R0, t0, params=RefineParams(max_nfev=2))
    assert S == S0
    assert np.array_equal(R, R0)
    assert np.array_equal(t, t0)
    assert R is not R0


def test_refine_rotation_returns_initial_rotation_when_not_converged(rng):
    x1, x2, S, R_true, t = make_similarity(20, rng, noise=0.05)
    R0 = rotation_from_vector([0.1, -0.05, 0.08]) @ R_true

    R = refine_rotation(x1, x2, S, R0, t, params=RefineParams(max_nfev=2))
    assert np.array_equal(R, R0)
