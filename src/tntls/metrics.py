from __future__ import annotations

from typing import Literal

import torch

SumBy = Literal["column", "row"]


def squared_sum(M: torch.Tensor, *, by: SumBy = "column") -> torch.Tensor:
    """
    Sum of squares of M along columns (default) or rows.

    For [[1,2],[3,4]]:
      by="column" -> [1+9, 4+16] = [10, 20]
      by="row"    -> [1+4, 9+16] = [5, 25]
    """
    if by == "column":
        return (M * M).sum(dim=0)
    if by == "row":
        return (M * M).sum(dim=1)
    raise ValueError("by must be one of {'column','row'}")


def mean_squared_error(A: torch.Tensor, X: torch.Tensor, B: torch.Tensor) -> torch.Tensor:
    """
    Per-column mean squared error of A X - B.

    A : (m,n), X : (n,p), B : (m,p)
    Returns (p,)
    """
    E = A @ X - B
    return squared_sum(E) / float(E.shape[0])
