import numpy as np
import pytest
from scipy import sparse

from strata import (
    LinearSystem, RelationalOperator, Solver, UnsatisfiableConstraint, Variable, WEAK,
)


A = np.array([[1.0, 1.0], [1.0, 0.0]])


def test_from_arrays_creates_rows():
    system = LinearSystem.from_arrays(A, [100.0, 0.0], [100.0, 30.0])
    assert system.m == 3
    assert system.n == 2
    assert [v.name for v in system.variables] == ["x0", "x1"]
    assert [c.name for c in system.constraints] == ["r0", "r1_lo", "r1_hi"]
    assert [c.op for c in system.constraints] == [
        RelationalOperator.EQ, RelationalOperator.GE, RelationalOperator.LE]
    assert repr(system) == "<strata.LinearSystem m=3 n=2>"


def test_unbounded_rows_are_skipped():
    system = LinearSystem.from_arrays(A, [-np.inf, -np.inf], [np.inf, 5.0])
    assert [c.name for c in system.constraints] == ["r1_hi"]


def test_solve_system():
    system = LinearSystem.from_arrays(A, np.array([100.0, 0.0]), np.array([100.0, 30.0]))
    x0, x1 = system.variables
    solver = Solver()
    system.add_to(solver)
    solver.add_constraint((x0 == 10) | WEAK)
    solver.update_variables()
    np.testing.assert_allclose(system.values(), [10.0, 90.0])

    # The upper bound on x0 holds against a stronger preference
    solver.add_constraint((x0 == 80) | 'strong')
    solver.update_variables()
    np.testing.assert_allclose(system.values(), [30.0, 70.0])


def test_sparse_input_and_given_variables():
    x, y = Variable("x"), Variable("y")
    system = LinearSystem.from_arrays(sparse.csc_matrix(A), [1.0, 2.0], [1.0, 2.0],
                                      variables=[x, y], strength='strong')
    assert system.variables[0] is x
    assert all(c.strength == 1000000.0 for c in system.constraints)
    assert system.constraints[0].expression.coefficient(y) == 1.0


def test_to_arrays():
    system = LinearSystem.from_arrays(A, [100.0, 0.0], [100.0, 30.0])
    matrix, lower, upper = system.to_arrays()
    assert sparse.issparse(matrix)
    np.testing.assert_array_equal(matrix.toarray(), [[1.0, 1.0], [1.0, 0.0], [1.0, 0.0]])
    np.testing.assert_array_equal(lower, [100.0, 0.0, -np.inf])
    np.testing.assert_array_equal(upper, [100.0, np.inf, 30.0])


def test_from_arrays_validation():
    with pytest.raises(TypeError):
        LinearSystem.from_arrays([[1.0]], [0.0], [1.0])
    with pytest.raises(ValueError):
        LinearSystem.from_arrays(np.ones(3), [0.0], [1.0])
    with pytest.raises(ValueError):
        LinearSystem.from_arrays(A, [0.0], [1.0])
    with pytest.raises(ValueError):
        LinearSystem.from_arrays(A, [2.0, 0.0], [1.0, 0.0])
    with pytest.raises(ValueError):
        LinearSystem.from_arrays(A, [0.0, 0.0], [1.0, 1.0], variables=[Variable()])


@pytest.mark.parametrize("AL, AU", [
    ([np.inf, 0.0], [np.inf, 1.0]),
    ([-np.inf, 0.0], [-np.inf, 1.0]),
    ([np.nan, 0.0], [1.0, 1.0]),
    ([0.0, 0.0], [1.0, np.nan]),
    ([np.nan, 0.0], [np.nan, 1.0]),
])
def test_from_arrays_rejects_degenerate_bounds(AL, AU):
    with pytest.raises(ValueError):
        LinearSystem.from_arrays(A, AL, AU)


def test_constraint_over_foreign_variable():
    x, y = Variable("x"), Variable("y")
    with pytest.raises(ValueError):
        LinearSystem([x], [x + y <= 1])


def test_add_to_is_all_or_nothing():
    x0, x1 = Variable("x0"), Variable("x1")
    solver = Solver()
    solver.add_constraint(x0 == 50)
    system = LinearSystem.from_arrays(A, [100.0, -np.inf], [100.0, 30.0], variables=[x0, x1])

    with pytest.raises(UnsatisfiableConstraint):
        system.add_to(solver)

    assert len(solver) == 1
    assert not any(solver.has_constraint(c) for c in system.constraints)
    solver.update_variables()
    assert x0.value == pytest.approx(50.0)


def test_remove_from():
    system = LinearSystem.from_arrays(A, [100.0, 0.0], [100.0, 30.0])
    solver = Solver()
    system.add_to(solver)
    assert len(solver) == 3
    system.remove_from(solver)
    assert len(solver) == 0
    system.remove_from(solver)
