from __future__ import annotations

import torch

from tntls.exceptions import (
    AsymmetricError,
    DimensionMismatchError,
    NonFiniteValueError,
    ShapeError,
)


def init_safety_checks(A: torch.Tensor, X: torch.Tensor, B: torch.Tensor) -> None:
    """
    Validate the shapes of A X = B before any computation.

    A : (m,n)
    X : (n,p)
    B : (m,p)

    Raises DimensionMismatchError naming the first offending pair.
    """
    for name, t in (("A", A), ("X", X), ("B", B)):
        if t.ndim != 2:
            raise ShapeError(f"{name} must be 2D. Got {tuple(t.shape)}")

    if A.shape[0] != B.shape[0]:
        raise DimensionMismatchError(("A", "B"), tuple(A.shape), tuple(B.shape))
    if A.shape[1] != X.shape[0]:
        raise DimensionMismatchError(("A", "X"), tuple(A.shape), tuple(X.shape))
    if B.shape[1] != X.shape[1]:
        raise DimensionMismatchError(("B", "X"), tuple(B.shape), tuple(X.shape))


def check_symmetric(M: torch.Tensor, *, atol: float = 0.0) -> None:
    if M.ndim != 2 or M.shape[0] != M.shape[1]:
        raise ShapeError(f"Matrix must be square (k,k). Got {tuple(M.shape)}")
    gap = float(torch.max(torch.abs(M - M.transpose(0, 1))).item()) if M.numel() else 0.0
    if not gap <= atol:
        raise AsymmetricError(f"Matrix is not symmetric: max|M - M^T| = {gap:.3e} > atol={atol:.3e}")


def check_finite(name: str, t: torch.Tensor) -> None:
    if not bool(torch.isfinite(t).all()):
        raise NonFiniteValueError(f"{name} contains inf/nan")
