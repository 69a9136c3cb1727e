# src/tntls/typing.py
from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple, Union, TYPE_CHECKING

import numpy as np
import torch

from tntls.exceptions import ShapeError

if TYPE_CHECKING:  # pragma: no cover
    import pandas as pd


ArrayLike = Union[torch.Tensor, np.ndarray, Sequence[Any]]

DEFAULT_DTYPE = torch.float64


def _is_pandas_df(x: Any) -> bool:
    try:
        import pandas as pd  # type: ignore
        return isinstance(x, pd.DataFrame)
    except ImportError:
        return False


def _is_pandas_series(x: Any) -> bool:
    try:
        import pandas as pd  # type: ignore
        return isinstance(x, pd.Series)
    except ImportError:
        return False


def as_torch(
    x: Any,
    *,
    dtype: Optional[torch.dtype] = None,
    device: Optional[Union[str, torch.device]] = None,
) -> torch.Tensor:
    """
    Convert common array-likes to torch.Tensor.

    Supports:
    - torch.Tensor
    - numpy.ndarray
    - Python lists/tuples (nested)
    - pandas.DataFrame / pandas.Series (if pandas installed)

    Non-floating inputs (ints, bools, plain Python numbers) are promoted to
    float64 unless an explicit dtype is given.
    """
    if _is_pandas_df(x) or _is_pandas_series(x):
        x = x.to_numpy(copy=True)  # type: ignore[attr-defined]

    t = x if isinstance(x, torch.Tensor) else torch.as_tensor(np.asarray(x))
    if dtype is None and not torch.is_floating_point(t):
        dtype = DEFAULT_DTYPE
    if dtype is not None:
        t = t.to(dtype=dtype)
    if device is not None:
        t = t.to(device=device)
    return t


def as_system(
    A: Any,
    B: Any,
    *,
    dtype: Optional[torch.dtype] = None,
    device: Optional[Union[str, torch.device]] = None,
) -> Tuple[torch.Tensor, torch.Tensor, Optional[list[str]]]:
    """
    Standardize inputs of A X = B to:
      A: (m,n)
      B: (m,p)

    Accept:
      A: (m,n) tensor / ndarray / nested sequence / pandas.DataFrame
      B: (m,) or (m,p), pandas.Series or DataFrame

    A flat B is promoted to a single column. If A is a DataFrame, its column
    names are returned as param_names (otherwise None). B is cast to A's
    dtype and device.
    """
    param_names: Optional[list[str]] = None
    if _is_pandas_df(A):
        param_names = [str(c) for c in A.columns]  # type: ignore[attr-defined]

    At = as_torch(A, dtype=dtype, device=device)
    Bt = as_torch(B, dtype=At.dtype, device=At.device)

    if At.ndim != 2:
        raise ShapeError(f"A must be (m,n). Got {tuple(At.shape)}")
    if Bt.ndim == 1:
        Bt = Bt.unsqueeze(-1)
    if Bt.ndim != 2:
        raise ShapeError(f"B must be (m,) or (m,p). Got {tuple(Bt.shape)}")

    return At, Bt, param_names
