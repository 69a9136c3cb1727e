"""
Several right-hand sides solved together.

Each column of B keeps its own iteration and stops on its own. One column is
pure noise, so it stays above max_allowed_mse and triggers the
pseudo-inverse fallback (a RuntimeWarning is emitted).
"""

import warnings

import torch

from tntls import TNT


def main() -> None:
    torch.set_default_dtype(torch.float64)
    g = torch.Generator().manual_seed(1)

    m, n = 200, 12
    A = torch.randn((m, n), generator=g)
    X = torch.randn((n, 3), generator=g)
    B = A @ X
    B[:, 2] = torch.randn(m, generator=g)  # no linear structure

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        res = TNT(A, B)

    for w in caught:
        print("warning:", w.message)

    print(res.summary())
    for j, col in enumerate(res.columns):
        print(f"B[{j}]: stop={col.stop_reason:<15} method={col.method:<14} mse_min={col.mse_min:.3e}")

    try:
        res.plot()
        import matplotlib.pyplot as plt

        plt.show()
    except ImportError:
        pass


if __name__ == "__main__":
    main()
