import numpy as np

from robustgeom.ransac import uniform_sample
from robustgeom.similarity import compose_rts, decompose_rts, refine_rts, similarity_kernel


def main() -> None:
    rng = np.random.default_rng(0)

    # True similarity
    S_true = 1.7
    theta = np.deg2rad(25.0)
    R_true = np.array(
        [[np.cos(theta), -np.sin(theta), 0.0],
         [np.sin(theta),  np.cos(theta), 0.0],
         [0.0,            0.0,           1.0]],
        dtype=np.float64,
    )
    t_true = np.array([0.5, -1.0, 2.0])

    # Generate inlier points
    n_in = 200
    x1 = rng.uniform(-5.0, 5.0, size=(3, n_in))
    x2 = S_true * (R_true @ x1) + t_true[:, None]
    x2 += rng.normal(0.0, 0.02, size=x2.shape)

    # Add outliers (wrong matches)
    n_out = 80
    x1_all = np.hstack([x1, rng.uniform(-5.0, 5.0, size=(3, n_out))])
    x2_all = np.hstack([x2, rng.uniform(-5.0, 5.0, size=(3, n_out))])

    kernel = similarity_kernel(x1_all, x2_all)

    # Stand-in for the consensus engine: fixed threshold on squared error
    tau2 = 0.1 ** 2
    best_model, best_inliers = None, None
    for _ in range(500):
        sample = uniform_sample(kernel.min_samples, kernel.num_samples, rng=rng)
        for model in kernel.fit(sample):
            inliers = kernel.errors(model) < tau2
            if best_inliers is None or inliers.sum() > best_inliers.sum():
                best_model, best_inliers = model, inliers

    print("RTS_true:\n", compose_rts(S_true, R_true, t_true))
    out = decompose_rts(best_model) if best_model is not None else None
    if out is None:
        print("No similarity found.")
        return

    S, R, t = refine_rts(x1_all[:, best_inliers], x2_all[:, best_inliers], *out)
    print("RTS_est:\n", compose_rts(S, R, t))
    print("num_inliers:", int(best_inliers.sum()), "/", kernel.num_samples)


if __name__ == "__main__":
    main()
