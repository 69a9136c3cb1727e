from tntls.api import __version__
from tntls.exceptions import (
    AsymmetricError,
    ConvergenceInsufficientError,
    DimensionMismatchError,
    FallbackError,
    InvalidOptionError,
    NonFiniteValueError,
    PreconditionError,
    ShapeError,
    SingularMatrixError,
    TNTError,
)
from tntls.models.tnt import TNT, FallbackController, solve
from tntls.options import EarlyStopping, TNTOptions
from tntls.refine import IterativeRefiner, RefineOutcome
from tntls.results import ColumnState, TNTResults

__all__ = [
    "TNT",
    "solve",
    "TNTOptions",
    "EarlyStopping",
    "TNTResults",
    "ColumnState",
    "IterativeRefiner",
    "RefineOutcome",
    "FallbackController",
    "TNTError",
    "ShapeError",
    "DimensionMismatchError",
    "AsymmetricError",
    "SingularMatrixError",
    "PreconditionError",
    "NonFiniteValueError",
    "ConvergenceInsufficientError",
    "FallbackError",
    "InvalidOptionError",
    "__version__",
]
