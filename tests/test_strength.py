import numpy as np
import pytest

from strata import strength


def test_predefined_levels():
    assert strength.REQUIRED == 1001001000.0
    assert strength.STRONG == 1000000.0
    assert strength.MEDIUM == 1000.0
    assert strength.WEAK == 1.0


def test_create_combines_tiers():
    assert strength.create(1, 2, 3) == 1002003.0
    assert strength.create(0.0, 2.0, 0.0, w=0.5) == 1000.0


def test_create_clamps_each_tier():
    assert strength.create(2000, 0, 0) == 1000000000.0
    assert strength.create(-1, 0, 1) == 1.0
    assert strength.create(5000, 5000, 5000) == strength.REQUIRED


def test_tiers_dominate_weaker_tiers():
    assert strength.create(0, 999, 999) < strength.STRONG
    assert strength.create(0, 0, 999) < strength.MEDIUM


def test_clip():
    assert strength.clip(-5.0) == 0.0
    assert strength.clip(strength.REQUIRED * 2) == strength.REQUIRED
    assert strength.clip(42.0) == 42.0


def test_is_required():
    assert strength.is_required(strength.REQUIRED)
    assert strength.is_required(1e12)
    assert not strength.is_required(strength.STRONG)


def test_resolve_names_and_numbers():
    assert strength.resolve('Strong') == strength.STRONG
    assert strength.resolve(' weak ') == strength.WEAK
    assert strength.resolve('REQUIRED') == strength.REQUIRED
    assert strength.resolve(7) == 7.0
    assert strength.resolve(np.float64(3.5)) == 3.5
    assert strength.resolve(-3) == 0.0


def test_resolve_rejects_bad_input():
    with pytest.raises(ValueError, match="Unknown strength name"):
        strength.resolve('bogus')
    with pytest.raises(TypeError):
        strength.resolve(True)
    with pytest.raises(TypeError):
        strength.resolve(None)


def test_describe():
    assert strength.describe(strength.STRONG) == 'strong'
    assert strength.describe(strength.REQUIRED) == 'required'
    assert strength.describe(5.0) == '5.0'
