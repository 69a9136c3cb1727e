from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal, Optional

import torch

from tntls.exceptions import (
    ConvergenceInsufficientError,
    NonFiniteValueError,
    PreconditionError,
    SingularMatrixError,
    TNTError,
)
from tntls.linalg import (
    CholeskyPrecondition,
    cholesky_precondition,
    get_precondition_strategy,
    invert_llt,
    normal_matrix,
)
from tntls.metrics import squared_sum
from tntls.options import TNTOptions
from tntls.results import ColumnState

RefineStatus = Literal["ok", "precondition_failed", "diverged", "insufficient_convergence"]


@dataclass
class RefineOutcome:
    """Result of IterativeRefiner.run.

    Failures are reported through `status` and `error`, never raised, so the
    caller decides between propagating and falling back.
    """

    status: RefineStatus
    x_best: torch.Tensor        # (n,p)
    columns: list[ColumnState]  # (p,)
    max_iterations: int
    error: Optional[TNTError] = None
    precondition: Optional[CholeskyPrecondition] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def worst_mse(self) -> float:
        return max((c.mse_min for c in self.columns), default=0.0)


class IterativeRefiner:
    """
    Preconditioned conjugate gradient on the normal equations, one
    independent iteration per column of B.

    All columns share the preconditioner (A^T A + eps I)^{-1}, computed once.
    Buffers are (n,p) / (m,p) and allocated once; columns are selected with
    an index tensor of the still-active columns, and a deactivated column is
    never written again, so its x_best stays frozen.

    A : (m,n)
    B : (m,p)
    """

    def __init__(self, A: torch.Tensor, B: torch.Tensor, *, options: Optional[TNTOptions] = None) -> None:
        self.A = A
        self.B = B
        self.options = options if options is not None else TNTOptions()
        self.max_iterations = self.options.resolve_max_iterations(A.shape[1])
        self.strategy = get_precondition_strategy(
            self.options.use_precondition_trick,
            threshold=self.options.precondition_ratio,
        )

    def precondition(self, At: torch.Tensor) -> tuple[torch.Tensor, CholeskyPrecondition]:
        """Return ((A^T A + eps I)^{-1}, factorization record)."""
        AtA = normal_matrix(At)  # owned here; mutated by the diagonal loading
        pre = cholesky_precondition(
            AtA,
            strategy=self.strategy,
            max_tries=self.options.max_precondition_tries,
        )
        return invert_llt(pre.L), pre

    def run(self) -> RefineOutcome:
        A, B = self.A, self.B
        m, n = A.shape
        p = B.shape[1]
        es = self.options.early_stopping

        At = A.transpose(0, 1).contiguous()
        x_best = torch.zeros((n, p), dtype=A.dtype, device=A.device)
        columns = [ColumnState.start(float(v)) for v in (squared_sum(B) / m).tolist()]

        try:
            AtA_inv, pre = self.precondition(At)
        except (PreconditionError, SingularMatrixError) as e:
            return RefineOutcome("precondition_failed", x_best, columns, self.max_iterations, error=e)

        for col in columns:
            if col.mse_min <= es.min_mse:
                col.stop("converged")

        X = torch.zeros((n, p), dtype=A.dtype, device=A.device)
        R = B.clone()          # B - A X_0
        G = At @ R             # A^T R
        Z = AtA_inv @ G        # preconditioned gradient
        P = Z.clone()          # search direction

        stale = [0] * p
        improved = [False] * p

        for _ in range(self.max_iterations):
            active = [j for j, c in enumerate(columns) if c.active]
            if not active:
                break
            J = torch.tensor(active, dtype=torch.long, device=A.device)

            W = A @ P[:, J]                             # (m,|J|)
            zg = (Z[:, J] * G[:, J]).sum(dim=0)         # (|J|,)
            alpha = zg / (W * W).sum(dim=0)

            finite = torch.isfinite(alpha)
            for pos in (~finite).nonzero().flatten().tolist():
                col = columns[active[pos]]
                col.iterations += 1
                col.stop("non_finite")
            if not bool(finite.any()):
                continue
            J, alpha, zg = J[finite], alpha[finite], zg[finite]

            X[:, J] += P[:, J] * alpha
            R[:, J] = B[:, J] - A @ X[:, J]
            mse = (R[:, J] * R[:, J]).mean(dim=0)
            x_finite = torch.isfinite(X[:, J]).all(dim=0)

            keep: list[int] = []
            for pos, (j, e) in enumerate(zip(J.tolist(), mse.tolist())):
                col = columns[j]
                col.iterations += 1
                if not (math.isfinite(e) and bool(x_finite[pos])):
                    col.stop("non_finite")
                    continue
                col.record(e)
                if e < col.mse_min:
                    col.mse_min = e
                    x_best[:, j] = X[:, j]
                    stale[j] = 0
                    improved[j] = True
                    if e <= es.min_mse:
                        col.stop("converged")
                        continue
                else:
                    stale[j] += 1
                    if stale[j] >= es.patience:
                        col.stop("no_improvement")
                        continue
                keep.append(pos)

            if not keep:
                continue
            K = torch.tensor(keep, dtype=torch.long, device=A.device)
            JK = J[K]
            beta_denom = zg[K]  # Z.G before the update

            G[:, JK] = At @ R[:, JK]
            Z[:, JK] = AtA_inv @ G[:, JK]
            beta = (Z[:, JK] * G[:, JK]).sum(dim=0) / beta_denom

            ok = torch.isfinite(beta)
            for pos in (~ok).nonzero().flatten().tolist():
                columns[int(JK[pos])].stop("non_finite")
            JK, beta = JK[ok], beta[ok]
            P[:, JK] = P[:, JK] * beta + Z[:, JK]

        for col in columns:
            if col.active:
                col.stop("max_iterations")

        outcome = RefineOutcome("ok", x_best, columns, self.max_iterations, precondition=pre)

        if not any(improved) and any(c.stop_reason == "non_finite" for c in columns):
            outcome.status = "diverged"
            outcome.error = NonFiniteValueError(
                "Every column produced a non-finite step before improving on X = 0"
            )
            return outcome

        worst = outcome.worst_mse
        if worst > self.options.max_allowed_mse:
            outcome.status = "insufficient_convergence"
            outcome.error = ConvergenceInsufficientError(
                f"Minimum MSE {worst:.6e} is above max_allowed_mse={self.options.max_allowed_mse:.6e}",
                mse_min=worst,
                max_allowed_mse=self.options.max_allowed_mse,
            )
        return outcome
