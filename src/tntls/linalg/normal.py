from __future__ import annotations

import torch

from tntls.exceptions import ShapeError


def symmetric_mul(M: torch.Tensor) -> torch.Tensor:
    """
    Compute M M^T using symmetry.

    Only the diagonal (squared row norms) and the strict lower triangle
    (dot products of row i with rows j < i) are computed; the lower triangle
    is mirrored into the upper one. Rows are contiguous, so passing A^T
    yields A^T A.

    M : (k,t)
    Returns (k,k)
    """
    if M.ndim != 2:
        raise ShapeError(f"M must be (k,t). Got {tuple(M.shape)}")

    k = M.shape[0]
    Mc = M.contiguous()
    out = torch.empty((k, k), dtype=M.dtype, device=M.device)
    for i in range(k):
        row = Mc[i]
        out[i, i] = torch.dot(row, row)
        if i:
            lower = Mc[:i] @ row  # (i,)
            out[i, :i] = lower
            out[:i, i] = lower
    return out


def normal_matrix(At: torch.Tensor) -> torch.Tensor:
    """A^T A from the transposed data matrix At: (n,m) -> (n,n)."""
    return symmetric_mul(At)
