import torch
import pytest


@pytest.fixture(scope="session")
def torch_dtype():
    # Use float64 in tests for numerical stability.
    return torch.float64


def make_data(
    m: int,
    n: int,
    p: int = 1,
    *,
    seed: int = 123,
    noise: float = 0.0,
    scale_a: float = 1.0,
    scale_x: float = 1.0,
    dtype=torch.float64,
):
    """
    Deterministic generator for A X = B.
    Returns:
      A : (m,n) uniform in [-scale_a, scale_a]
      X : (n,p) uniform in [-scale_x, scale_x]
      B : (m,p) = A X + noise * N(0,1)
    """
    g = torch.Generator().manual_seed(seed)
    A = scale_a * (2.0 * torch.rand((m, n), generator=g, dtype=dtype) - 1.0)
    X = scale_x * (2.0 * torch.rand((n, p), generator=g, dtype=dtype) - 1.0)
    B = A @ X
    if noise > 0.0:
        B = B + noise * torch.randn((m, p), generator=g, dtype=dtype)
    return A, X, B


@pytest.fixture
def make_system():
    return make_data
