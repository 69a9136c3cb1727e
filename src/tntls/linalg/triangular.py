from __future__ import annotations

import torch

from tntls.exceptions import ShapeError, SingularMatrixError
from tntls.linalg.normal import symmetric_mul


def _check_triangular_system(T: torch.Tensor, rhs: torch.Tensor) -> None:
    if T.ndim != 2 or T.shape[0] != T.shape[1]:
        raise ShapeError(f"Triangular matrix must be (k,k). Got {tuple(T.shape)}")
    if rhs.ndim != 2 or rhs.shape[0] != T.shape[0]:
        raise ShapeError(f"rhs must be (k,p) with k={T.shape[0]}. Got {tuple(rhs.shape)}")
    if bool((torch.diagonal(T) == 0).any()):
        raise SingularMatrixError("Triangular matrix has a zero on its diagonal")


def lower_triangular_substitution(L: torch.Tensor, rhs: torch.Tensor) -> torch.Tensor:
    """
    Forward substitution for L V = rhs, starting from the top-left.

    L : (k,k) lower triangular
    rhs : (k,p), multiple right-hand sides are solved together
    """
    _check_triangular_system(L, rhs)
    k = L.shape[0]
    V = torch.empty_like(rhs)
    for i in range(k):
        terms = rhs[i] - L[i, :i] @ V[:i] if i else rhs[i]
        V[i] = terms / L[i, i]
    return V


def upper_triangular_substitution(U: torch.Tensor, rhs: torch.Tensor) -> torch.Tensor:
    """
    Back substitution for U V = rhs, starting from the bottom-right.
    Standalone helper; the solver itself only needs the forward pass.

    U : (k,k) upper triangular
    rhs : (k,p)
    """
    _check_triangular_system(U, rhs)
    k = U.shape[0]
    V = torch.empty_like(rhs)
    for i in range(k - 1, -1, -1):
        terms = rhs[i] - U[i, i + 1:] @ V[i + 1:] if i < k - 1 else rhs[i]
        V[i] = terms / U[i, i]
    return V


def lower_triangular_inverse(L: torch.Tensor) -> torch.Tensor:
    """L^{-1} by solving L V = I column by column."""
    eye = torch.eye(L.shape[0], dtype=L.dtype, device=L.device)
    return lower_triangular_substitution(L, eye)


def invert_llt(L: torch.Tensor) -> torch.Tensor:
    """
    (L L^T)^{-1} = (L^{-1})^T L^{-1}.

    One triangular inversion and one symmetric product; the second
    triangular system is never solved.
    """
    return symmetric_mul(lower_triangular_inverse(L).transpose(0, 1))


def solve_llt(L: torch.Tensor, rhs: torch.Tensor) -> torch.Tensor:
    """Solve L L^T X = rhs with a forward then a back substitution (standalone helper)."""
    z = lower_triangular_substitution(L, rhs)
    return upper_triangular_substitution(L.transpose(0, 1), z)
