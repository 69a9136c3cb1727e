"""
Basic example: one right-hand side, noisy data.

This script:
- Builds a tall random system A x = b with a little noise
- Solves it with TNT
- Prints the summary and compares with torch.linalg.lstsq
"""

import torch

from tntls import TNT


def main() -> None:
    torch.set_default_dtype(torch.float64)
    g = torch.Generator().manual_seed(0)

    m, n = 500, 40
    A = torch.randn((m, n), generator=g)
    x_true = torch.linspace(-1.0, 1.0, n)
    b = A @ x_true + 0.01 * torch.randn(m, generator=g)

    res = TNT(A, b, early_stopping={"min_mse": 1e-12, "patience": 2})
    print(res.summary())

    x_ref = torch.linalg.lstsq(A, b.unsqueeze(-1)).solution
    print("max |x_tnt - x_lstsq|:", torch.max(torch.abs(res.x_best - x_ref)).item())
    print("iterations:", res.iterations.tolist())


if __name__ == "__main__":
    main()
