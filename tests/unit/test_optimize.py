from __future__ import annotations

import numpy as np
import pytest

from vectorclf.optimize import (
    LBFGS,
    SGD,
    AdaGrad,
    GradientDescent,
    HingeMulticlass,
    L2Regularized,
    LogMulticlass,
    ParameterAveraging,
    SquaredMulticlass,
    build_optimizer,
    get_objective,
)


def test_log_objective_matches_softmax_cross_entropy() -> None:
    loss, gradient = LogMulticlass().value_and_gradient(np.zeros(3), 1)

    assert loss == pytest.approx(np.log(3.0))
    np.testing.assert_allclose(gradient, [1 / 3, -2 / 3, 1 / 3])
    assert gradient.sum() == pytest.approx(0.0)


def test_log_objective_is_stable_for_large_scores() -> None:
    loss, gradient = LogMulticlass().value_and_gradient(np.array([1000.0, 0.0]), 0)
    assert loss == pytest.approx(0.0)
    assert np.all(np.isfinite(gradient))


def test_hinge_objective_is_zero_beyond_the_margin() -> None:
    objective = HingeMulticlass()

    loss, gradient = objective.value_and_gradient(np.array([3.0, 1.0, 0.5]), 0)
    assert loss == 0.0
    assert not gradient.any()

    loss, gradient = objective.value_and_gradient(np.array([1.0, 1.5, 0.0]), 0)
    assert loss == pytest.approx(1.5)
    np.testing.assert_array_equal(gradient, [-1.0, 1.0, 0.0])


def test_squared_objective_against_one_hot_target() -> None:
    loss, gradient = SquaredMulticlass().value_and_gradient(np.array([0.5, 0.5]), 1)
    assert loss == pytest.approx(0.25)
    np.testing.assert_allclose(gradient, [0.5, -0.5])


def test_objectives_are_looked_up_by_name() -> None:
    assert isinstance(get_objective("log"), LogMulticlass)
    assert isinstance(get_objective(" Hinge "), HingeMulticlass)
    with pytest.raises(ValueError):
        get_objective("poisson")


def test_sgd_moves_against_the_gradient() -> None:
    weights = np.ones((2, 2))
    SGD(learning_rate=0.5).step(weights, np.full((2, 2), 2.0), 1.0)
    np.testing.assert_allclose(weights, 0.0)


def test_adagrad_scales_by_accumulated_gradient() -> None:
    weights = np.zeros((1, 2))
    optimizer = AdaGrad(rate=1.0, delta=0.1)

    optimizer.step(weights, np.array([[1.0, -2.0]]), 0.0)

    np.testing.assert_allclose(weights, [[-1.0 / 1.1, 2.0 / 2.1]])
    optimizer.reset()
    assert optimizer._history is None


def test_l2_regularization_adds_weight_penalty() -> None:
    weights = np.full((1, 1), 2.0)
    L2Regularized(SGD(learning_rate=1.0), l2=0.5).step(weights, np.zeros((1, 1)), 0.0)
    np.testing.assert_allclose(weights, [[1.0]])


def test_parameter_averaging_finalizes_to_mean_weights() -> None:
    weights = np.zeros((1, 1))
    optimizer = ParameterAveraging(SGD(learning_rate=1.0))

    optimizer.step(weights, np.array([[-1.0]]), 0.0)
    optimizer.step(weights, np.array([[-1.0]]), 0.0)
    assert weights[0, 0] == pytest.approx(2.0)

    optimizer.finalize(weights)
    assert weights[0, 0] == pytest.approx(1.5)


def test_gradient_descent_converges_on_flat_objective() -> None:
    weights = np.zeros((1, 1))
    optimizer = GradientDescent(learning_rate=0.1, tolerance=1e-3)

    optimizer.step(weights, np.ones((1, 1)), 10.0)
    assert optimizer.is_converged is False
    optimizer.step(weights, np.ones((1, 1)), 10.0)

    assert optimizer.is_converged is True
    assert weights[0, 0] == pytest.approx(-0.1)
    optimizer.reset()
    assert optimizer.is_converged is False


def test_build_optimizer_wraps_regularization_and_averaging() -> None:
    optimizer = build_optimizer("adagrad", learning_rate=0.5, l2=0.1, averaging=True)

    assert isinstance(optimizer, ParameterAveraging)
    assert isinstance(optimizer.inner, L2Regularized)
    assert isinstance(optimizer.inner.inner, AdaGrad)
    assert isinstance(build_optimizer("sgd"), SGD)
    with pytest.raises(ValueError):
        build_optimizer("newton")


def test_build_optimizer_lbfgs_rejects_averaging() -> None:
    optimizer = build_optimizer("lbfgs", l2=0.5, tolerance=1e-8)

    assert isinstance(optimizer, LBFGS)
    assert optimizer.l2 == 0.5
    with pytest.raises(ValueError):
        build_optimizer("lbfgs", averaging=True)


def test_lbfgs_minimizes_quadratic_and_reports_each_iteration() -> None:
    target = np.array([[1.0, -2.0], [0.5, 3.0]])
    weights = np.zeros_like(target)
    seen: list[tuple[int, float]] = []

    def value_and_gradient(current: np.ndarray) -> tuple[float, np.ndarray]:
        diff = current - target
        return 0.5 * float(np.sum(diff * diff)), diff

    optimizer = LBFGS(l2=0.0, tolerance=1e-12)
    values = optimizer.minimize(
        weights, value_and_gradient, 50, lambda iteration, value: seen.append((iteration, value))
    )

    np.testing.assert_allclose(weights, target, atol=1e-4)
    assert optimizer.is_converged is True
    assert [iteration for iteration, _ in seen] == list(range(1, len(values) + 1))
    assert all(later <= earlier for earlier, later in zip(values, values[1:]))
    optimizer.reset()
    assert optimizer.is_converged is False


def test_lbfgs_l2_penalty_shrinks_solution() -> None:
    target = np.array([[2.0]])
    weights = np.zeros((1, 1))

    def value_and_gradient(current: np.ndarray) -> tuple[float, np.ndarray]:
        diff = current - target
        return 0.5 * float(np.sum(diff * diff)), diff

    LBFGS(l2=1.0, tolerance=1e-12).minimize(weights, value_and_gradient, 50)

    assert weights[0, 0] == pytest.approx(1.0, abs=1e-4)
    assert LBFGS().minimize(weights, value_and_gradient, 0) == []
