import io

import pytest

from strata import (
    DuplicateConstraint, InternalSolverError, Parameters, Solver, UnknownConstraint,
    UnsatisfiableConstraint, Variable, MEDIUM, STRONG, WEAK,
)


def test_simple_equality_with_edit(solver, xy):
    x, y = xy
    solver.add_constraint(x + y == 10)
    solver.add_edit_variable(x, STRONG)
    solver.suggest_value(x, 3)
    solver.update_variables()
    assert x.value == pytest.approx(3.0)
    assert y.value == pytest.approx(7.0)


def test_box_layout(solver):
    left, width = Variable("left"), Variable("width")
    solver.add_constraint(left == 0)
    solver.add_constraint(width == 100)
    solver.add_constraint((width == 50) | 'weak')
    solver.update_variables()
    assert left.value == pytest.approx(0.0)
    assert width.value == pytest.approx(100.0)


def test_stronger_constraint_wins(solver, xy):
    x, _ = xy
    strong = (x == 10) | STRONG
    weak = (x == 20) | WEAK
    solver.add_constraint(strong)
    solver.add_constraint(weak)
    solver.update_variables()
    assert x.value == pytest.approx(10.0)
    assert not strong.violated()
    assert weak.violated()


def test_required_bound_beats_suggestion(solver, xy):
    x, _ = xy
    solver.add_constraint(x <= 10)
    solver.add_edit_variable(x, STRONG)
    solver.suggest_value(x, 50)
    solver.update_variables()
    assert x.value == pytest.approx(10.0)


def test_untouched_variable_reads_zero(solver, xy):
    x, y = xy
    solver.add_constraint((x >= 0) | 'weak')
    solver.update_variables()
    assert x.value == 0.0
    assert y.value == 0.0


def test_update_variables_is_idempotent(solver, xy):
    x, y = xy
    solver.add_constraint(x + 2 * y == 12)
    solver.add_constraint((y == 4) | 'medium')
    solver.update_variables()
    first = (x.value, y.value)
    solver.update_variables()
    assert (x.value, y.value) == first
    assert first == (pytest.approx(4.0), pytest.approx(4.0))


@pytest.mark.parametrize("first, second", [
    ("eq", "eq"),
    ("ge", "le"),
])
def test_conflicting_required_constraint_is_rolled_back(solver, xy, first, second):
    x, _ = xy
    kept = {"eq": x == 10, "ge": x >= 10}[first]
    rejected = {"eq": x == 20, "le": x <= 5}[second]
    solver.add_constraint(kept)
    solver.update_variables()
    before = solver.dumps()

    with pytest.raises(UnsatisfiableConstraint) as info:
        solver.add_constraint(rejected)

    assert info.value.constraint is rejected
    assert not solver.has_constraint(rejected)
    assert solver.has_constraint(kept)
    assert solver.dumps() == before
    solver.update_variables()
    assert x.value == pytest.approx(10.0)


def test_rejected_constraint_leaves_solver_usable(solver, xy):
    x, y = xy
    solver.add_constraint(x + y == 10)
    solver.add_constraint(x >= 2)
    with pytest.raises(UnsatisfiableConstraint):
        solver.add_constraint(y >= 9)
    solver.add_edit_variable(y, STRONG)
    solver.suggest_value(y, 5)
    solver.update_variables()
    assert x.value == pytest.approx(5.0)
    assert y.value == pytest.approx(5.0)


def _layout():
    left, width, right = Variable("left"), Variable("width"), Variable("right")
    constraints = [
        right == left + width,
        left >= 0,
        width >= 10,
        right <= 500,
        (width == 100) | WEAK,
        (left == 50) | MEDIUM,
    ]
    return (left, width, right), constraints


def _solve(constraints, variables):
    solver = Solver()
    for constraint in constraints:
        solver.add_constraint(constraint)
    solver.update_variables()
    return solver, [v.value for v in variables]


def test_layout_solution():
    variables, constraints = _layout()
    _, values = _solve(constraints, variables)
    assert values == [pytest.approx(50.0), pytest.approx(100.0), pytest.approx(150.0)]


@pytest.mark.parametrize("make_extra", [
    lambda left, width, right: (right == 400) | STRONG,
    lambda left, width, right: width >= 300,
    lambda left, width, right: (left <= 20) | 'strong',
    lambda left, width, right: left + width <= 120,
])
def test_add_then_remove_restores_solution(make_extra):
    variables, constraints = _layout()
    solver, baseline = _solve(constraints, variables)

    extra = make_extra(*variables)
    solver.add_constraint(extra)
    solver.update_variables()
    changed = [v.value for v in variables]
    assert changed != pytest.approx(baseline)

    solver.remove_constraint(extra)
    solver.update_variables()
    assert [v.value for v in variables] == pytest.approx(baseline)


def test_strong_constraint_outweighs_medium_and_weak():
    (left, width, right), constraints = _layout()
    solver, _ = _solve(constraints, (left, width, right))
    solver.add_constraint((right == 400) | STRONG)
    solver.update_variables()
    assert left.value == pytest.approx(50.0)
    assert width.value == pytest.approx(350.0)
    assert right.value == pytest.approx(400.0)


def test_removal_order_does_not_matter(solver, xy):
    x, y = xy
    c1 = x + y == 10
    c2 = (x == 3) | STRONG
    c3 = (y == 1) | WEAK
    for constraint in (c1, c2, c3):
        solver.add_constraint(constraint)
    solver.remove_constraint(c1)
    solver.update_variables()
    assert x.value == pytest.approx(3.0)
    assert y.value == pytest.approx(1.0)
    solver.remove_constraint(c3)
    solver.remove_constraint(c2)
    assert len(solver) == 0


def test_equivalent_constraints_are_tracked_separately(solver, xy):
    x, _ = xy
    c1 = x == 10
    c2 = x == 10
    solver.add_constraint(c1)
    solver.add_constraint(c2)
    assert solver.has_constraint(c1) and solver.has_constraint(c2)

    solver.remove_constraint(c1)
    solver.update_variables()
    assert not solver.has_constraint(c1)
    assert solver.has_constraint(c2)
    assert x.value == pytest.approx(10.0)

    solver.remove_constraint(c2)
    solver.update_variables()
    assert x.value == 0.0


def test_duplicate_constraint(solver, xy):
    x, _ = xy
    c = x >= 1
    solver.add_constraint(c)
    before = solver.dumps()
    with pytest.raises(DuplicateConstraint) as info:
        solver.add_constraint(c)
    assert info.value.constraint is c
    assert solver.dumps() == before


def test_unknown_constraint(solver, xy):
    x, _ = xy
    with pytest.raises(UnknownConstraint):
        solver.remove_constraint(x >= 1)
    c = x >= 1
    solver.add_constraint(c)
    solver.remove_constraint(c)
    with pytest.raises(UnknownConstraint):
        solver.remove_constraint(c)


def test_add_constraint_type_check(solver):
    with pytest.raises(TypeError):
        solver.add_constraint("x >= 1")


def test_has_constraint_and_container_protocol(solver, xy):
    x, _ = xy
    c = x >= 1
    assert c not in solver
    solver.add_constraint(c)
    assert c in solver
    assert solver.constraints == (c,)
    assert len(solver) == 1


def test_reset(solver, xy):
    x, y = xy
    c = x + y == 10
    solver.add_constraint(c)
    solver.add_edit_variable(x, STRONG)
    solver.reset()
    assert len(solver) == 0
    assert not solver.has_constraint(c)
    assert not solver.has_edit_variable(x)
    solver.add_constraint(c)
    assert solver.has_constraint(c)


def test_dumps_lists_every_section(solver, xy):
    x, y = xy
    solver.add_constraint((x + y == 10) | 'strong')
    solver.add_edit_variable(y, WEAK)
    text = solver.dumps()
    for title in ("Objective", "Tableau", "Infeasible", "Variables",
                  "Edit Variables", "Constraints"):
        assert title in text
    assert "x = v" in text
    assert "y (weak) = 0" in text

    buffer = io.StringIO()
    solver.dump(buffer)
    assert buffer.getvalue().startswith("Objective")


def test_repr(solver, xy):
    x, _ = xy
    solver.add_constraint(x >= 1)
    assert repr(solver) == "Solver(constraints=1, variables=1, edits=0)"


def test_failed_operation_restores_state(monkeypatch, solver, xy):
    x, y = xy
    solver.add_constraint(x + y == 10)
    before = solver.dumps()

    def fail(objective):
        raise MemoryError

    monkeypatch.setattr(solver, "_optimize", fail)
    c = (x == 3) | STRONG
    with pytest.raises(MemoryError):
        solver.add_constraint(c)
    with pytest.raises(MemoryError):
        solver.add_edit_variable(y, WEAK)
    monkeypatch.undo()

    assert not solver.has_constraint(c)
    assert not solver.has_edit_variable(y)
    assert solver.dumps() == before
    solver.add_constraint(c)
    solver.update_variables()
    assert x.value == pytest.approx(3.0)
    assert y.value == pytest.approx(7.0)


def test_failed_suggestion_keeps_previous_value(monkeypatch, solver, xy):
    x, y = xy
    solver.add_constraint(x + y == 10)
    solver.add_edit_variable(x, STRONG)
    solver.suggest_value(x, 4)
    before = solver.dumps()

    def fail():
        raise MemoryError

    monkeypatch.setattr(solver, "_dual_optimize", fail)
    with pytest.raises(MemoryError):
        solver.suggest_value(x, 8)
    monkeypatch.undo()

    assert solver.dumps() == before
    solver.update_variables()
    assert x.value == pytest.approx(4.0)
    assert y.value == pytest.approx(6.0)


def test_invalid_parameters_are_rejected():
    with pytest.raises(ValueError):
        Solver(Parameters.from_dict({'epsilon': 0.0}))


def test_pivot_limit(xy):
    x, y = xy
    solver = Solver(Parameters.from_dict({'max_iter': 1}))
    solver.add_constraint(x >= 0)
    solver.add_constraint(y >= 0)
    solver.add_constraint(x <= 3)
    # Reaching x + y == 10 takes two pivots: x to its bound, then y
    with pytest.raises(InternalSolverError):
        solver.add_constraint((x + y == 10) | STRONG)
