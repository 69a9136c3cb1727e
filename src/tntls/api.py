# src/tntls/api.py
from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from tntls.models.tnt import TNT, solve
from tntls.options import EarlyStopping, TNTOptions

__all__ = ["TNT", "solve", "TNTOptions", "EarlyStopping", "__version__"]

try:
    __version__ = version("tntls")
except PackageNotFoundError:  # editable/local
    __version__ = "0.0.0"
