from __future__ import annotations

from typing import Optional


class TNTError(Exception):
    """Base exception for tntls."""


class ShapeError(TNTError, ValueError):
    """Invalid shape or number of dimensions."""


class DimensionMismatchError(ShapeError):
    """Two operands of A X = B have incompatible dimensions."""

    def __init__(self, pair: tuple[str, str], shape_a: tuple[int, ...], shape_b: tuple[int, ...]) -> None:
        self.pair = pair
        self.shape_a = tuple(shape_a)
        self.shape_b = tuple(shape_b)
        a, b = pair
        super().__init__(
            f"Dimension mismatch between {a} and {b}: dim({a})={self.shape_a}, dim({b})={self.shape_b}"
        )


class AsymmetricError(TNTError, ValueError):
    """A matrix expected to be symmetric is not."""


class SingularMatrixError(TNTError, RuntimeError):
    """Matrix is singular or numerically non-invertible."""


class PreconditionError(TNTError, RuntimeError):
    """Diagonal loading did not produce an acceptable Cholesky factor."""

    def __init__(self, message: str, *, reason: str, epsilon: float, tries: int) -> None:
        self.reason = reason
        self.epsilon = float(epsilon)
        self.tries = int(tries)
        super().__init__(message)


class NonFiniteValueError(TNTError, FloatingPointError):
    """NaN or Inf found in an input or produced during iteration."""


class ConvergenceInsufficientError(TNTError, RuntimeError):
    """The best MSE reached is above the allowed maximum."""

    def __init__(self, message: str, *, mse_min: float, max_allowed_mse: float) -> None:
        self.mse_min = float(mse_min)
        self.max_allowed_mse = float(max_allowed_mse)
        super().__init__(message)


class FallbackError(TNTError, RuntimeError):
    """Both the iterative solve and the pseudo-inverse fallback failed."""

    def __init__(self, original: Optional[BaseException], fallback: BaseException) -> None:
        self.original = original
        self.fallback = fallback
        super().__init__(f"Pseudo-inverse fallback failed ({fallback}) after: {original}")


class InvalidOptionError(TNTError, ValueError):
    """Invalid solver option."""
