from __future__ import annotations

import warnings
from typing import Any, Mapping, Optional, Union

import torch

from tntls.checks import check_finite, init_safety_checks
from tntls.exceptions import FallbackError, NonFiniteValueError, ShapeError, TNTError
from tntls.linalg import pseudo_inverse_solve
from tntls.metrics import mean_squared_error, squared_sum
from tntls.options import EarlyStopping, TNTOptions
from tntls.refine import IterativeRefiner
from tntls.results import ColumnState, TNTResults
from tntls.typing import as_system


def _resolve_options(options: Optional[TNTOptions], **overrides: Any) -> TNTOptions:
    base = options if options is not None else TNTOptions()
    return base.replace(**overrides)


def _pseudo_inverse_columns(A: torch.Tensor, B: torch.Tensor) -> list[ColumnState]:
    return [ColumnState.start(float(v)) for v in (squared_sum(B) / A.shape[0]).tolist()]


class FallbackController:
    """
    Decide between the TNT refinement and a pseudo-inverse solve.

    Rules, in order:
      1. B == 0                                   -> X = 0
      2. rows/columns <= critical_ratio, fallback -> pinv(A) B directly
      3. run TNT; on a failed or under-performing outcome either fall back
         to pinv(A) B (fallback enabled) or raise the outcome's error.

    The pseudo-inverse MSE is appended to every column's history, and each
    column keeps whichever of the two solutions has the lower MSE.
    """

    def __init__(self, A: torch.Tensor, B: torch.Tensor, *, options: TNTOptions) -> None:
        self.A = A
        self.B = B
        self.options = options

    def solve(self) -> tuple[torch.Tensor, list[ColumnState], str, int, float]:
        """Return (x_best, columns, method, max_iterations, epsilon)."""
        A, B = self.A, self.B
        m, n = A.shape
        max_iterations = self.options.resolve_max_iterations(n)

        if not bool(B.any()):
            X = torch.zeros((n, B.shape[1]), dtype=A.dtype, device=A.device)
            columns = _pseudo_inverse_columns(A, B)
            for col in columns:
                col.stop("converged")
            return X, columns, "TNT", max_iterations, 0.0

        fallback = self.options.pseudo_inverse_fallback
        if fallback and m / n <= self.options.critical_ratio:
            X = torch.zeros((n, B.shape[1]), dtype=A.dtype, device=A.device)
            columns = _pseudo_inverse_columns(A, B)
            X = self._fallback(X, columns, original=None)
            return X, columns, "pseudoInverse", max_iterations, 0.0

        outcome = IterativeRefiner(A, B, options=self.options).run()
        epsilon = outcome.precondition.epsilon if outcome.precondition is not None else 0.0
        if outcome.ok:
            return outcome.x_best, outcome.columns, "TNT", outcome.max_iterations, epsilon

        if not fallback:
            assert outcome.error is not None
            raise outcome.error

        warnings.warn(
            f"TNT {outcome.status.replace('_', ' ')} ({outcome.error}); falling back to the pseudo-inverse.",
            RuntimeWarning,
            stacklevel=3,
        )
        X = self._fallback(outcome.x_best, outcome.columns, original=outcome.error)
        return X, outcome.columns, "pseudoInverse", outcome.max_iterations, epsilon

    def _fallback(
        self,
        X: torch.Tensor,
        columns: list[ColumnState],
        *,
        original: Optional[TNTError],
    ) -> torch.Tensor:
        A, B = self.A, self.B
        try:
            X_pi = pseudo_inverse_solve(A, B)
        except TNTError as e:
            raise FallbackError(original, e) from e

        mse_pi = mean_squared_error(A, X_pi, B)
        if not bool(torch.isfinite(mse_pi).all()):
            raise FallbackError(original, NonFiniteValueError("pseudo-inverse produced non-finite values"))

        X = X.clone()
        for j, (col, e) in enumerate(zip(columns, mse_pi.tolist())):
            col.record(e)
            col.active = False
            if e <= col.mse_min:
                col.mse_min = e
                col.method = "pseudoInverse"
                X[:, j] = X_pi[:, j]
        return X


def TNT(
    A,
    B,
    *,
    max_iterations: Optional[int] = None,
    early_stopping: Union[EarlyStopping, Mapping[str, Any], None] = None,
    pseudo_inverse_fallback: Optional[bool] = None,
    max_allowed_mse: Optional[float] = None,
    critical_ratio: Optional[float] = None,
    use_precondition_trick: Optional[bool] = None,
    max_precondition_tries: Optional[int] = None,
    precondition_ratio: Optional[float] = None,
    options: Optional[TNTOptions] = None,
    dtype: Optional[torch.dtype] = None,
    device: Optional[Union[str, torch.device]] = None,
) -> TNTResults:
    """Least squares A X = B with the TNT preconditioned conjugate gradient.

    Inputs
    - A: (m,n) tensor, ndarray, nested sequence or pandas.DataFrame
    - B: (m,), (m,1) or (m,p); pandas.Series / DataFrame accepted

    Options (keyword arguments override `options`; None keeps the default)
    - max_iterations          : defaults to 3 * n
    - early_stopping          : EarlyStopping(min_mse=1e-20, patience=1) or a mapping
    - pseudo_inverse_fallback : True
    - max_allowed_mse         : 1e-2
    - critical_ratio          : 0.1
    - use_precondition_trick  : True
    - max_precondition_tries  : 10
    - precondition_ratio      : 1e-4

    Inputs are cast to float64 unless they are already floating point or
    `dtype` is given. A and B are never modified.
    """
    A, B, param_names = as_system(A, B, dtype=dtype, device=device)

    m, n = A.shape
    if m == 0 or n == 0:
        raise ShapeError(f"A must have at least one row and one column. Got {tuple(A.shape)}")
    init_safety_checks(A, torch.empty((n, B.shape[1]), dtype=A.dtype, device=A.device), B)
    check_finite("A", A)
    check_finite("B", B)

    opts = _resolve_options(
        options,
        max_iterations=max_iterations,
        early_stopping=early_stopping,
        pseudo_inverse_fallback=pseudo_inverse_fallback,
        max_allowed_mse=max_allowed_mse,
        critical_ratio=critical_ratio,
        use_precondition_trick=use_precondition_trick,
        max_precondition_tries=max_precondition_tries,
        precondition_ratio=precondition_ratio,
    )

    x_best, columns, method, max_iter, epsilon = FallbackController(A, B, options=opts).solve()

    return TNTResults(
        x_best=x_best,
        columns=tuple(columns),
        method=method,  # type: ignore[arg-type]
        max_iterations=max_iter,
        nobs=m,
        options=opts,
        param_names=param_names,
        epsilon=epsilon,
    )


def solve(A, B, **kwargs: Any) -> torch.Tensor:
    """Shortcut for TNT(A, B, **kwargs).x_best."""
    return TNT(A, B, **kwargs).x_best
