# src/tntls/plotting.py
from __future__ import annotations

from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from tntls.results import TNTResults


def plot_mse_history(results: "TNTResults", ax: Any = None, *, logy: bool = True) -> Any:
    """
    Plot the MSE history of every output column.

    Step 0 is the MSE of X = 0. When the pseudo-inverse fallback ran, its MSE
    is the last point of each curve and is drawn with a square marker.
    Returns the matplotlib Axes.
    """
    import matplotlib.pyplot as plt

    if ax is None:
        _, ax = plt.subplots(figsize=(6.0, 4.0))

    fell_back = results.method == "pseudoInverse"
    for j, col in enumerate(results.columns):
        hist = [max(v, 1e-300) for v in col.mse] if logy else list(col.mse)
        steps = list(range(len(hist)))
        (line,) = ax.plot(steps, hist, marker="o", markersize=3, label=f"B[{j}]")
        if fell_back and len(hist) > 1:
            ax.plot(steps[-1], hist[-1], marker="s", color=line.get_color())

    if logy:
        ax.set_yscale("log")
    ax.set_xlabel("iteration")
    ax.set_ylabel("MSE")
    ax.set_title(f"TNT convergence ({results.method})")
    if results.p <= 10:
        ax.legend(loc="best")
    return ax
