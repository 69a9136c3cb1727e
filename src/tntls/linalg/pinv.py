from __future__ import annotations

import torch

from tntls.exceptions import SingularMatrixError


def pseudo_inverse_solve(A: torch.Tensor, B: torch.Tensor) -> torch.Tensor:
    """
    Minimum-norm least squares X = pinv(A) B via SVD.

    A : (m,n), B : (m,p) -> X : (n,p)
    """
    try:
        X = torch.linalg.pinv(A) @ B
    except RuntimeError as e:  # torch.linalg.LinAlgError subclasses RuntimeError
        raise SingularMatrixError(f"SVD did not converge: {e}") from e
    return X
