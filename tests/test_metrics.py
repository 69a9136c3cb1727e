import torch

from tntls.metrics import mean_squared_error, squared_sum


def test_mean_squared_error_single_rhs(torch_dtype):
    A = torch.tensor([[1.0, 2.0], [3.0, 4.0]], dtype=torch_dtype)
    x = torch.tensor([[1.0], [2.0]], dtype=torch_dtype)
    b = torch.tensor([[5.0], [11.0]], dtype=torch_dtype)
    mse = mean_squared_error(A, x, b)
    assert mse.shape == (1,)
    assert abs(float(mse[0])) < 1e-12


def test_mean_squared_error_multi_rhs(torch_dtype):
    A = torch.tensor([[1.0, 2.0], [3.0, 4.0]], dtype=torch_dtype)
    X = torch.tensor([[1.0, 4.0], [2.0, 4.0]], dtype=torch_dtype)
    B = torch.tensor([[5.0, 14.0], [11.0, 32.0]], dtype=torch_dtype)
    mse = mean_squared_error(A, X, B)
    assert abs(float(mse[0])) < 1e-12
    assert abs(float(mse[1]) - 10.0) < 1e-12


def test_squared_sum_by_column_and_row(torch_dtype):
    M = torch.tensor([[1.0, 2.0], [3.0, 4.0]], dtype=torch_dtype)
    assert squared_sum(M).tolist() == [10.0, 20.0]
    assert squared_sum(M, by="row").tolist() == [5.0, 25.0]
