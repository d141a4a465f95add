"""Shared fixtures for the strata test suite."""
import pytest

from strata import Solver, Variable


@pytest.fixture
def solver():
    return Solver()


@pytest.fixture
def xy():
    return Variable("x"), Variable("y")
