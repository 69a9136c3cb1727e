"""
tntls.linalg

Dense linear algebra building blocks for the TNT solver.

Conventions
-----------
- Observation axis: m
- Coefficient axis: n
- Output (right-hand side) axis: p

Shapes
------
- A: (m, n)
- B: (m, p)
- X: (n, p)
"""
from .normal import normal_matrix, symmetric_mul
from .chol import (
    CholeskyCriteria,
    CholeskyPrecondition,
    PositiveDefiniteStrategy,
    PreconditionStrategy,
    StableRatioStrategy,
    cholesky_criteria,
    cholesky_precondition,
    get_precondition_strategy,
)
from .triangular import (
    invert_llt,
    lower_triangular_inverse,
    lower_triangular_substitution,
    solve_llt,
    upper_triangular_substitution,
)
from .pinv import pseudo_inverse_solve

__all__ = [
    "normal_matrix",
    "symmetric_mul",
    "CholeskyCriteria",
    "CholeskyPrecondition",
    "PreconditionStrategy",
    "PositiveDefiniteStrategy",
    "StableRatioStrategy",
    "cholesky_criteria",
    "cholesky_precondition",
    "get_precondition_strategy",
    "invert_llt",
    "lower_triangular_inverse",
    "lower_triangular_substitution",
    "upper_triangular_substitution",
    "solve_llt",
    "pseudo_inverse_solve",
]
