import pytest

from strata import Parameters


def test_defaults():
    param = Parameters()
    assert param.epsilon == 1e-8
    assert param.max_iter == 2147483647
    assert repr(param) == "Parameters(epsilon=1e-08, max_iter=2147483647)"


def test_dict_conversion_ignores_unknown_keys():
    param = Parameters.from_dict({'epsilon': 1e-10, 'max_iter': 50, 'verbose': 1})
    assert param.epsilon == 1e-10
    assert param.max_iter == 50
    assert not hasattr(param, 'verbose')
    assert param.to_dict() == {'epsilon': 1e-10, 'max_iter': 50}


@pytest.mark.parametrize("key, value", [
    ('epsilon', 0.0),
    ('epsilon', -1e-8),
    ('max_iter', 0),
])
def test_validate_rejects_out_of_range(key, value):
    with pytest.raises(ValueError):
        Parameters.from_dict({key: value}).validate()


def test_validate_returns_parameters():
    param = Parameters()
    assert param.validate() is param
