import torch

from tntls import (
    ConvergenceInsufficientError,
    EarlyStopping,
    IterativeRefiner,
    NonFiniteValueError,
    PreconditionError,
    TNTOptions,
)
from tntls.metrics import mean_squared_error


def test_refiner_ok_outcome(make_system):
    A, X, B = make_system(30, 5, 2, seed=31)
    outcome = IterativeRefiner(A, B).run()

    assert outcome.ok
    assert outcome.error is None
    assert outcome.precondition is not None
    assert outcome.precondition.epsilon >= 0.0
    assert outcome.max_iterations == 15
    assert outcome.worst_mse < 1e-10
    assert torch.max(torch.abs(outcome.x_best - X)).item() < 1e-5
    assert all(not c.active for c in outcome.columns)


def test_refiner_reports_precondition_failure(torch_dtype):
    A = torch.tensor([[1.0, 1.0], [2.0, 2.0], [3.0, 3.0]], dtype=torch_dtype)
    B = torch.tensor([[1.0], [2.0], [3.0]], dtype=torch_dtype)
    outcome = IterativeRefiner(A, B, options=TNTOptions(max_precondition_tries=0)).run()

    assert outcome.status == "precondition_failed"
    assert isinstance(outcome.error, PreconditionError)
    assert outcome.error.tries == 0
    assert torch.equal(outcome.x_best, torch.zeros((2, 1), dtype=torch_dtype))
    assert outcome.columns[0].mse == [14.0 / 3.0]


def test_refiner_reports_insufficient_convergence():
    A = torch.tensor([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]], dtype=torch.float64)
    B = torch.tensor([[6.0], [12.0]], dtype=torch.float64)
    outcome = IterativeRefiner(A, B, options=TNTOptions(max_iterations=0)).run()

    assert outcome.status == "insufficient_convergence"
    assert isinstance(outcome.error, ConvergenceInsufficientError)
    assert outcome.error.mse_min == 90.0
    assert outcome.columns[0].stop_reason == "max_iterations"
    assert outcome.columns[0].iterations == 0


def test_iteration_cap_and_history(make_system):
    A, _, B = make_system(40, 6, 3, seed=3, noise=0.3)
    opts = TNTOptions(
        max_iterations=2,
        early_stopping=EarlyStopping(min_mse=0.0, patience=100),
        max_allowed_mse=10.0,
    )
    outcome = IterativeRefiner(A, B, options=opts).run()
    direct = mean_squared_error(A, outcome.x_best, B)

    for j, col in enumerate(outcome.columns):
        assert col.stop_reason in {"max_iterations", "non_finite"}
        assert col.iterations <= 2
        if col.stop_reason == "max_iterations":
            assert col.iterations == 2
        assert len(col.mse) <= col.iterations + 1
        assert col.mse_min == min(col.mse)
        assert col.mse_min < col.mse[0]
        assert abs(col.mse_min - float(direct[j])) <= 1e-9 * max(1.0, col.mse_min)


def test_columns_already_at_min_mse_are_not_iterated(make_system):
    A, _, B = make_system(20, 4, 1, seed=12)
    B = torch.cat([B, torch.full((20, 1), 1e-12, dtype=B.dtype)], dim=1)
    outcome = IterativeRefiner(A, B, options=TNTOptions(early_stopping={"min_mse": 1e-6})).run()

    tiny = outcome.columns[1]
    assert tiny.stop_reason == "converged"
    assert tiny.iterations == 0
    assert torch.equal(outcome.x_best[:, 1], torch.zeros(4, dtype=B.dtype))


def test_non_finite_step_stops_only_that_column(torch_dtype):
    A = torch.tensor([[1.0, 0.0], [0.0, 1.0], [0.0, 0.0]], dtype=torch_dtype)
    # second column is orthogonal to range(A): G = 0 and alpha = 0/0
    B = torch.tensor([[1.0, 0.0], [2.0, 0.0], [0.0, 1.0]], dtype=torch_dtype)
    outcome = IterativeRefiner(A, B).run()

    good, bad = outcome.columns
    assert good.stop_reason == "converged"
    assert torch.equal(outcome.x_best[:, 0], torch.tensor([1.0, 2.0], dtype=torch_dtype))
    assert bad.stop_reason == "non_finite"
    assert bad.iterations == 1
    assert bad.mse == [1.0 / 3.0]
    assert torch.equal(outcome.x_best[:, 1], torch.zeros(2, dtype=torch_dtype))
    assert outcome.status == "insufficient_convergence"


def test_diverged_outcome(torch_dtype):
    A = torch.tensor([[1.0, 0.0], [0.0, 1.0], [0.0, 0.0]], dtype=torch_dtype)
    B = torch.tensor([[0.0], [0.0], [1.0]], dtype=torch_dtype)
    outcome = IterativeRefiner(A, B).run()

    assert outcome.status == "diverged"
    assert isinstance(outcome.error, NonFiniteValueError)
    assert outcome.columns[0].stop_reason == "non_finite"
