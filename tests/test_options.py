import pytest

from tntls import EarlyStopping, InvalidOptionError, TNTOptions


def test_defaults():
    opts = TNTOptions()
    assert opts.max_iterations is None
    assert opts.early_stopping == EarlyStopping(min_mse=1e-20, patience=1)
    assert opts.pseudo_inverse_fallback is True
    assert opts.max_allowed_mse == 1e-2
    assert opts.critical_ratio == 0.1
    assert opts.use_precondition_trick is True
    assert opts.max_precondition_tries == 10
    assert opts.resolve_max_iterations(7) == 21
    assert TNTOptions(max_iterations=0).resolve_max_iterations(7) == 0


@pytest.mark.parametrize("key", ["min_mse", "minMSE", "min_error", "minError"])
def test_early_stopping_aliases(key):
    es = EarlyStopping.coerce({key: 1e-8})
    assert es.min_mse == 1e-8
    assert es.patience == 1


def test_early_stopping_coerce_passthrough():
    es = EarlyStopping(min_mse=1e-3, patience=4)
    assert EarlyStopping.coerce(es) is es
    assert EarlyStopping.coerce(None) == EarlyStopping()
    assert TNTOptions(early_stopping={"patience": 3}).early_stopping.patience == 3


@pytest.mark.parametrize(
    "value",
    [{"tolerance": 1e-3}, {"min_mse": -1.0}, {"patience": 0}, [("min_mse", 1.0)]],
)
def test_early_stopping_rejects(value):
    with pytest.raises(InvalidOptionError):
        EarlyStopping.coerce(value)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_iterations": -1},
        {"max_allowed_mse": -1e-3},
        {"max_allowed_mse": float("nan")},
        {"critical_ratio": -0.1},
        {"precondition_ratio": -1.0},
        {"max_precondition_tries": -2},
    ],
)
def test_options_reject(kwargs):
    with pytest.raises(InvalidOptionError):
        TNTOptions(**kwargs)


def test_replace_ignores_none():
    opts = TNTOptions(max_allowed_mse=0.5)
    new = opts.replace(max_iterations=4, max_allowed_mse=None, early_stopping={"minError": 1e-6})
    assert new.max_iterations == 4
    assert new.max_allowed_mse == 0.5
    assert new.early_stopping.min_mse == 1e-6
    assert opts.max_iterations is None

    d = new.to_dict()
    assert d["early_stopping"] == {"min_mse": 1e-6, "patience": 1}
    assert d["critical_ratio"] == 0.1
