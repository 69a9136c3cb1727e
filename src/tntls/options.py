from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from tntls.exceptions import InvalidOptionError

_MIN_MSE_ALIASES = ("min_mse", "minMSE", "min_error", "minError")


@dataclass(frozen=True)
class EarlyStopping:
    """Per-column stop conditions; either one is sufficient to stop.

    min_mse  : stop a column once its MSE is at or below this value.
    patience : number of consecutive non-improving steps tolerated before a
               column is frozen (1 means the first regression stops it).
    """

    min_mse: float = 1e-20
    patience: int = 1

    def __post_init__(self) -> None:
        if not (isinstance(self.min_mse, (int, float)) and self.min_mse >= 0):
            raise InvalidOptionError(f"min_mse must be a non-negative number. Got {self.min_mse!r}")
        if int(self.patience) < 1:
            raise InvalidOptionError(f"patience must be >= 1. Got {self.patience!r}")
        object.__setattr__(self, "min_mse", float(self.min_mse))
        object.__setattr__(self, "patience", int(self.patience))

    @staticmethod
    def coerce(value: Union["EarlyStopping", Mapping[str, Any], None]) -> "EarlyStopping":
        """Accept an EarlyStopping, a mapping, or None (defaults)."""
        if value is None:
            return EarlyStopping()
        if isinstance(value, EarlyStopping):
            return value
        if not isinstance(value, Mapping):
            raise InvalidOptionError(f"early_stopping must be EarlyStopping or a mapping. Got {type(value).__name__}")

        kwargs: dict[str, Any] = {}
        for key, v in value.items():
            if key in _MIN_MSE_ALIASES:
                kwargs["min_mse"] = v
            elif key == "patience":
                kwargs["patience"] = v
            else:
                raise InvalidOptionError(f"Unknown early_stopping key {key!r}")
        return EarlyStopping(**kwargs)


@dataclass(frozen=True)
class TNTOptions:
    """Solver options.

    max_iterations         : iteration cap; None means 3 * n.
    early_stopping         : see EarlyStopping.
    pseudo_inverse_fallback: fall back to pinv(A) B when TNT fails, under-performs,
                             or rows/columns <= critical_ratio.
    max_allowed_mse        : best MSE above this triggers the fallback.
    critical_ratio         : rows/columns at or below which pinv is used directly.
    use_precondition_trick : require a well-scaled Cholesky factor, not only a
                             positive-definite one.
    max_precondition_tries : diagonal loadings allowed before giving up.
    precondition_ratio     : min/mean threshold on diag(L) for the trick.
    """

    max_iterations: Optional[int] = None
    early_stopping: EarlyStopping = field(default_factory=EarlyStopping)
    pseudo_inverse_fallback: bool = True
    max_allowed_mse: float = 1e-2
    critical_ratio: float = 0.1
    use_precondition_trick: bool = True
    max_precondition_tries: int = 10
    precondition_ratio: float = 1e-4

    def __post_init__(self) -> None:
        object.__setattr__(self, "early_stopping", EarlyStopping.coerce(self.early_stopping))

        if self.max_iterations is not None:
            if int(self.max_iterations) < 0:
                raise InvalidOptionError(f"max_iterations must be >= 0. Got {self.max_iterations!r}")
            object.__setattr__(self, "max_iterations", int(self.max_iterations))

        for name in ("max_allowed_mse", "critical_ratio", "precondition_ratio"):
            v = getattr(self, name)
            if not (isinstance(v, (int, float)) and not math.isnan(v) and v >= 0):
                raise InvalidOptionError(f"{name} must be a non-negative number. Got {v!r}")
            object.__setattr__(self, name, float(v))

        if int(self.max_precondition_tries) < 0:
            raise InvalidOptionError(f"max_precondition_tries must be >= 0. Got {self.max_precondition_tries!r}")
        object.__setattr__(self, "max_precondition_tries", int(self.max_precondition_tries))

    def resolve_max_iterations(self, n: int) -> int:
        return 3 * int(n) if self.max_iterations is None else self.max_iterations

    def replace(self, **changes: Any) -> "TNTOptions":
        """Copy with the given (non-None) fields replaced."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Lightweight dict for metadata."""
        return dataclasses.asdict(self)
