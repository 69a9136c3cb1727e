from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol, Sequence, Union

import torch

from tntls.checks import check_symmetric
from tntls.exceptions import PreconditionError, ShapeError


@dataclass(frozen=True)
class CholeskyCriteria:
    """Scalars derived from the diagonal of a Cholesky factor."""

    eps: float    # mean * 10**power
    ratio: float  # (min + delta) / mean


def cholesky_criteria(values: Union[torch.Tensor, Sequence[float]], power: float) -> CholeskyCriteria:
    """
    Compute eps and ratio over the finite entries of a non-negative array.

    Non-finite entries are skipped and negative ones are clamped to zero.
    A small delta (1000 float64 machine epsilons, whatever the dtype) is added
    to the minimum so that an exactly-zero pivot still yields a finite ratio.
    """
    v = values if isinstance(values, torch.Tensor) else torch.as_tensor(values, dtype=torch.float64)
    v = v.reshape(-1)
    if not v.is_floating_point():
        v = v.to(torch.float64)
    if v.numel() == 0:
        raise ValueError("Array cannot be empty")

    finite = v[torch.isfinite(v)].clamp_min(0.0)
    if finite.numel() == 0:
        return CholeskyCriteria(eps=math.nan, ratio=math.nan)

    delta = torch.finfo(torch.float64).eps * 1000
    avg = float(finite.mean().item())
    vmin = float(finite.min().item()) + float(delta)
    return CholeskyCriteria(eps=avg * 10.0**power, ratio=vmin / avg if avg > 0 else math.nan)


class PreconditionStrategy(Protocol):
    """Acceptance rule for a successful Cholesky factor.

    Implementations decide whether L is good enough or whether more diagonal
    loading is needed.
    """

    name: str

    def accepts(self, L: torch.Tensor) -> bool:
        ...


@dataclass(frozen=True)
class PositiveDefiniteStrategy:
    """Stop at the first positive-definite factorization."""

    name: str = "positive_definite"

    def accepts(self, L: torch.Tensor) -> bool:
        return True


@dataclass(frozen=True)
class StableRatioStrategy:
    """Also require min(diag L) / mean(diag L) >= threshold.

    Near-zero pivots make (L L^T)^{-1} blow up, so a factor that is
    positive-definite but badly scaled is rejected.
    """

    threshold: float = 1e-4
    name: str = "stable_ratio"

    def accepts(self, L: torch.Tensor) -> bool:
        crit = cholesky_criteria(torch.diagonal(L), power=0)
        return bool(crit.ratio >= self.threshold)


def get_precondition_strategy(use_trick: bool, *, threshold: float = 1e-4) -> PreconditionStrategy:
    if use_trick:
        return StableRatioStrategy(threshold=threshold)
    return PositiveDefiniteStrategy()


@dataclass(frozen=True)
class CholeskyPrecondition:
    L: torch.Tensor   # (k,k) lower triangular, L L^T = M + epsilon * I
    epsilon: float    # total amount added to the diagonal
    tries: int        # number of diagonal loadings performed
    strategy: str


def cholesky_precondition(
    M: torch.Tensor,
    *,
    strategy: PreconditionStrategy | None = None,
    max_tries: int = 10,
    check_symmetry: bool = False,
) -> CholeskyPrecondition:
    """
    Load the diagonal of the symmetric matrix M until its Cholesky factor is
    accepted by `strategy`.

    M is mutated in place: on return it holds M + epsilon * I. Callers that
    still need the original matrix must pass a copy.

    The first epsilon is eps(dtype) * max|M| * k and is multiplied by 10 before
    every loading. Raises PreconditionError when epsilon becomes non-finite or
    the retry budget is exhausted.
    """
    if M.ndim != 2 or M.shape[0] != M.shape[1]:
        raise ShapeError(f"M must be (k,k). Got {tuple(M.shape)}")
    if check_symmetry:
        scale = float(M.abs().max().item()) if M.numel() else 0.0
        check_symmetric(M, atol=1e-12 * max(1.0, scale))

    strategy = strategy if strategy is not None else StableRatioStrategy()
    max_tries = max(0, int(max_tries))
    k = M.shape[0]

    epsilon = float(torch.finfo(M.dtype).eps) * float(M.abs().max().item()) * k
    if not math.isfinite(epsilon):
        raise PreconditionError("Initial epsilon is not finite", reason="non_finite", epsilon=epsilon, tries=0)

    total = 0.0
    reason = "not_positive_definite"
    diag = M.diagonal()
    for tries in range(max_tries + 1):
        L, info = torch.linalg.cholesky_ex(M)
        if int(info.item()) == 0 and bool(torch.isfinite(L).all()):
            if strategy.accepts(L):
                return CholeskyPrecondition(L=L, epsilon=total, tries=tries, strategy=strategy.name)
            reason = "ill_scaled"
        else:
            reason = "not_positive_definite"

        if tries == max_tries:
            break

        epsilon *= 10.0
        if not math.isfinite(epsilon):
            raise PreconditionError(
                "Epsilon became non-finite while loading the diagonal",
                reason="non_finite",
                epsilon=epsilon,
                tries=tries + 1,
            )
        diag.add_(epsilon)
        total += epsilon

    raise PreconditionError(
        f"Cholesky factor still {reason.replace('_', ' ')} after {max_tries} diagonal loadings "
        f"(epsilon={total:.3e})",
        reason=reason,
        epsilon=total,
        tries=max_tries,
    )
