# src/tntls/results.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional, Sequence

import numpy as np
import torch

from tntls.exceptions import ShapeError
from tntls.options import TNTOptions
from tntls.typing import as_torch

Method = Literal["TNT", "pseudoInverse"]
StopReason = Literal["converged", "no_improvement", "non_finite", "max_iterations"]


def _fmt(x: float, digits: int = 3) -> str:
    """Format a float in scientific notation."""
    return f"{x:.{digits}e}"


@dataclass
class ColumnState:
    """
    Convergence bookkeeping for one output column of B.

    mse       : history, starting with mean(B[:, j]**2) (the MSE of X = 0)
    mse_min   : MSE of the column's best coefficients
    mse_last  : most recent MSE
    iterations: attempted steps, improving or not
    """

    mse: list[float]
    mse_min: float
    mse_last: float
    iterations: int = 0
    active: bool = True
    stop_reason: Optional[StopReason] = None
    method: Method = "TNT"

    @classmethod
    def start(cls, mse0: float) -> "ColumnState":
        return cls(mse=[mse0], mse_min=mse0, mse_last=mse0)

    def record(self, mse: float) -> None:
        self.mse.append(mse)
        self.mse_last = mse

    def stop(self, reason: StopReason) -> None:
        self.active = False
        self.stop_reason = reason


@dataclass(frozen=True)
class TNTResults:
    """
    Output of a TNT solve.

    x_best is the (n,p) coefficient matrix minimizing the MSE of every column
    of B. `columns` keeps one ColumnState per column of B; `method` is
    "pseudoInverse" when the fallback produced (part of) the result.
    """

    x_best: torch.Tensor              # (n,p)
    columns: tuple[ColumnState, ...]  # (p,)
    method: Method
    max_iterations: int
    nobs: int
    options: TNTOptions = field(default_factory=TNTOptions)
    param_names: Optional[list[str]] = None
    epsilon: float = 0.0              # diagonal loading used by the preconditioner

    @property
    def n(self) -> int:
        return int(self.x_best.shape[0])

    @property
    def p(self) -> int:
        return int(self.x_best.shape[1])

    @property
    def mse_min(self) -> torch.Tensor:
        return torch.tensor([c.mse_min for c in self.columns], dtype=torch.float64)

    @property
    def mse_last(self) -> torch.Tensor:
        return torch.tensor([c.mse_last for c in self.columns], dtype=torch.float64)

    @property
    def iterations(self) -> torch.Tensor:
        return torch.tensor([c.iterations for c in self.columns], dtype=torch.long)

    @property
    def mse_history(self) -> list[list[float]]:
        return [list(c.mse) for c in self.columns]

    @property
    def converged(self) -> torch.Tensor:
        """True where the column reached min_mse or max_allowed_mse."""
        tol = self.options.max_allowed_mse
        return torch.tensor(
            [c.stop_reason == "converged" or c.mse_min <= tol for c in self.columns],
            dtype=torch.bool,
        )

    def to_numpy(self) -> np.ndarray:
        return self.x_best.detach().cpu().numpy()

    def predict(self, A_new: Any) -> torch.Tensor:
        """
        Predict B for new data.

        Supported shapes
        - A_new: (k, n) -> (k, p)
        - A_new: (n,)   -> (p,)   single observation
        """
        An = as_torch(A_new, dtype=self.x_best.dtype, device=self.x_best.device)
        if An.ndim == 1:
            if An.shape[0] != self.n:
                raise ShapeError(f"A_new has n={An.shape[0]} but model has n={self.n}")
            return An @ self.x_best
        if An.ndim == 2:
            if An.shape[1] != self.n:
                raise ShapeError(f"A_new has n={An.shape[1]} but model has n={self.n}")
            return An @ self.x_best
        raise ShapeError(f"A_new must be (n,) or (k,n). Got {tuple(An.shape)}")

    def get_resid(self, A: Any, B: Any) -> torch.Tensor:
        """Residuals B - A x_best, computed on-the-fly. B may be (k,) when p == 1."""
        Bn = as_torch(B, dtype=self.x_best.dtype, device=self.x_best.device)
        fitted = self.predict(A)
        if fitted.ndim == 2 and Bn.ndim == 1:
            Bn = Bn.unsqueeze(-1)
        if tuple(Bn.shape) != tuple(fitted.shape):
            raise ShapeError(f"B must have shape {tuple(fitted.shape)}. Got {tuple(Bn.shape)}")
        return Bn - fitted

    def plot(self, ax: Any = None, *, logy: bool = True) -> Any:
        from tntls.plotting import plot_mse_history

        return plot_mse_history(self, ax=ax, logy=logy)

    def summary(self, param_names: Optional[Sequence[str]] = None, digits: int = 4) -> str:
        """
        Text report: solver metadata, per-column convergence and coefficients.
        """
        width = 88
        line = "=" * width
        dash = "-" * width

        if param_names is None:
            param_names = self.param_names or [f"x[{i}]" for i in range(self.n)]
        now = datetime.now().strftime("%a, %d %b %Y  %H:%M:%S")

        out: list[str] = []
        out.append("TNT Least Squares Results".center(width))
        out.append(line)

        half = width // 2

        def pair(l: str, r: str) -> str:
            return f"{l[:half]:<{half}}{r[:width - half]:<{width - half}}"

        rows = [
            (f"{'Method:':<22}{self.method}", f"{'Max iterations:':<22}{self.max_iterations}"),
            (f"{'No. Observations:':<22}{self.nobs}", f"{'No. Coefficients:':<22}{self.n}"),
            (f"{'Outputs:':<22}{self.p}", f"{'Diagonal loading:':<22}{_fmt(self.epsilon, 2)}"),
            (f"{'Date:':<22}{now[:16]}", f"{'Time:':<22}{now[-8:]}"),
        ]
        for l, r in rows:
            out.append(pair(l, r))

        out.append(line)
        out.append("Per-output convergence".center(width))
        out.append(dash)
        num_w = 14
        out.append(
            f"{'':<8}{'mse_min':>{num_w}}{'mse_last':>{num_w}}{'iters':>{num_w}}"
            f"{'stop':>{num_w + 4}}{'method':>{num_w}}"
        )
        out.append(dash)
        for j, c in enumerate(self.columns):
            out.append(
                f"{f'B[{j}]':<8}"
                f"{_fmt(c.mse_min, digits):>{num_w}}"
                f"{_fmt(c.mse_last, digits):>{num_w}}"
                f"{c.iterations:>{num_w}}"
                f"{str(c.stop_reason):>{num_w + 4}}"
                f"{c.method:>{num_w}}"
            )

        out.append(line)
        out.append("Coefficients".center(width))
        out.append(dash)
        name_w = 14
        shown = min(self.p, 5)
        out.append(f"{'':<{name_w}}" + "".join(f"{f'B[{j}]':>{num_w}}" for j in range(shown)))
        out.append(dash)
        xb = self.x_best.detach().cpu()
        for i, name in enumerate(param_names):
            nm = str(name)[:name_w].ljust(name_w)
            out.append(nm + "".join(f"{_fmt(float(xb[i, j]), digits):>{num_w}}" for j in range(shown)))
        out.append(line)
        if self.p > shown:
            out.append(f"Notes: only the first {shown} of {self.p} outputs are shown.")

        return "\n".join(out)
