"""
Incremental constraint solver for strata

Implements the Cassowary algorithm: constraints are kept in a simplex
tableau in which required constraints hold exactly and the errors of
non-required constraints are minimized, weighted by strength. Adding or
removing a constraint and suggesting a value for an edit variable update the
tableau in place with a few pivots instead of solving from scratch.
"""
import logging
from contextlib import contextmanager
from typing import Dict, List, NamedTuple, Optional, Tuple, Union

from . import strength as _strength
from .errors import (
    BadRequiredStrength,
    DuplicateConstraint,
    DuplicateEditVariable,
    InternalSolverError,
    UnknownConstraint,
    UnknownEditVariable,
    UnsatisfiableConstraint,
)
from .modeling import Constraint, RelationalOperator, Variable
from .parameters import Parameters
from .tableau import INVALID_SYMBOL, Row, Symbol, SymbolKind, Tag, near_zero


logger = logging.getLogger(__name__)


class EditInfo:
    """Bookkeeping for one open edit session"""

    __slots__ = ('tag', 'constraint', 'constant')

    def __init__(self, tag: Tag, constraint: Constraint, constant: float = 0.0):
        self.tag = tag
        self.constraint = constraint
        self.constant = constant

    def copy(self) -> 'EditInfo':
        return EditInfo(self.tag, self.constraint, self.constant)


class _Checkpoint(NamedTuple):
    rows: Dict[Symbol, Row]
    objective: Row
    constraints: Dict[Constraint, Tag]
    variables: Dict[Variable, Symbol]
    edits: Dict[Variable, EditInfo]
    infeasible_rows: List[Symbol]
    id_tick: int


class Solver:
    """
    Cassowary constraint solver.

    Parameters
    ----------
    parameters : Parameters, optional
        Solver parameters. If None, default parameters are used.

    Examples
    --------
    >>> from strata import Solver, Variable, STRONG
    >>>
    >>> x = Variable('x')
    >>> y = Variable('y')
    >>>
    >>> solver = Solver()
    >>> solver.add_constraint(x + y == 10)
    >>> solver.add_edit_variable(x, STRONG)
    >>> solver.suggest_value(x, 3)
    >>> solver.update_variables()
    >>> print(f"x = {x.value}, y = {y.value}")  # x = 3.0, y = 7.0

    Notes
    -----
    The solver keeps references to the variables and constraints it is
    given; it never copies them. It is not thread-safe.

    Every mutating call is atomic: if it raises, including MemoryError, the
    solver is left exactly as it was before the call.
    """

    def __init__(self, parameters: Optional[Parameters] = None):
        self.parameters = parameters if parameters is not None else Parameters()
        self.parameters.validate()
        self._eps = float(self.parameters.epsilon)
        self._max_iter = int(self.parameters.max_iter)
        self._reset_state()

    def _reset_state(self):
        self._constraints: Dict[Constraint, Tag] = {}
        self._rows: Dict[Symbol, Row] = {}
        self._vars: Dict[Variable, Symbol] = {}
        self._edits: Dict[Variable, EditInfo] = {}
        self._infeasible_rows: List[Symbol] = []
        self._objective = Row(0.0, self._eps)
        self._artificial: Optional[Row] = None
        self._id_tick = 1

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def add_constraint(self, constraint: Constraint):
        """
        Add a constraint to the solver.

        Parameters
        ----------
        constraint : Constraint
            Constraint to add

        Raises
        ------
        DuplicateConstraint
            If this constraint object has already been added
        UnsatisfiableConstraint
            If the constraint is required and conflicts with the required
            constraints already present. The solver is left unchanged.
        """
        if not isinstance(constraint, Constraint):
            raise TypeError("Must provide a Constraint object (use <=, >=, or ==)")
        if constraint in self._constraints:
            raise DuplicateConstraint(constraint)

        with self._transaction():
            self._add_constraint(constraint)
        logger.debug("Added %r", constraint)

    def remove_constraint(self, constraint: Constraint):
        """
        Remove a constraint from the solver.

        Raises
        ------
        UnknownConstraint
            If the constraint has not been added
        """
        tag = self._constraints.get(constraint)
        if tag is None:
            raise UnknownConstraint(constraint)

        with self._transaction():
            self._remove_constraint(constraint, tag)
            for variable, info in list(self._edits.items()):
                if info.constraint is constraint:
                    del self._edits[variable]
        logger.debug("Removed %r", constraint)

    def has_constraint(self, constraint: Constraint) -> bool:
        """Check whether this constraint object is currently in the solver"""
        return constraint in self._constraints

    def add_edit_variable(self, variable: Variable, strength: Union[float, str]):
        """
        Open an edit session so that values can be suggested for a variable.

        Parameters
        ----------
        variable : Variable
            Variable to make editable
        strength : float or str
            Strength with which suggested values are pursued; must be
            weaker than required

        Raises
        ------
        DuplicateEditVariable
            If the variable already has an open edit session
        BadRequiredStrength
            If ``strength`` is required
        """
        if not isinstance(variable, Variable):
            raise TypeError("Edit variable must be a Variable")
        if variable in self._edits:
            raise DuplicateEditVariable(variable)
        strength = _strength.resolve(strength)
        if _strength.is_required(strength):
            raise BadRequiredStrength("Edit variables cannot have a required strength")

        constraint = Constraint(variable, 0.0, RelationalOperator.EQ, strength,
                                name=f"edit:{variable.name}")
        with self._transaction():
            self._add_constraint(constraint)
            self._edits[variable] = EditInfo(self._constraints[constraint], constraint)
        logger.debug("Opened edit session for %r at strength %s",
                     variable, _strength.describe(strength))

    def remove_edit_variable(self, variable: Variable):
        """
        Close the edit session of a variable.

        Raises
        ------
        UnknownEditVariable
            If the variable has no open edit session
        """
        info = self._edits.get(variable)
        if info is None:
            raise UnknownEditVariable(variable)
        # Also closes the session
        self.remove_constraint(info.constraint)
        logger.debug("Closed edit session for %r", variable)

    def has_edit_variable(self, variable: Variable) -> bool:
        return variable in self._edits

    def suggest_value(self, variable: Variable, value: float):
        """
        Suggest a value for an edit variable.

        The tableau is re-optimized with the dual simplex method; required
        constraints keep priority over the suggestion.

        Raises
        ------
        UnknownEditVariable
            If the variable has no open edit session
        """
        info = self._edits.get(variable)
        if info is None:
            raise UnknownEditVariable(variable)

        with self._transaction():
            delta = float(value) - info.constant
            info.constant = float(value)
            self._apply_edit_delta(info.tag, delta)
            self._dual_optimize()
        logger.debug("Suggested %r = %g", variable, value)

    def update_variables(self):
        """Write the current solution into the value of every tracked variable"""
        for variable, symbol in self._vars.items():
            row = self._rows.get(symbol)
            value = row.constant if row is not None else 0.0
            variable.value = value + 0.0  # no negative zero

    def reset(self):
        """Remove every constraint and edit variable"""
        self._reset_state()
        logger.debug("Solver reset")

    @property
    def constraints(self) -> Tuple[Constraint, ...]:
        """Constraints currently in the solver, edit constraints included"""
        return tuple(self._constraints)

    @property
    def edit_variables(self) -> Tuple[Variable, ...]:
        return tuple(self._edits)

    def __len__(self):
        return len(self._constraints)

    def __contains__(self, constraint):
        return self.has_constraint(constraint)

    def dumps(self) -> str:
        """Text dump of the internal solver state"""
        from .debug import format_solver
        return format_solver(self)

    def dump(self, file=None):
        """Print the internal solver state to ``file`` (default: stdout)"""
        print(self.dumps(), file=file)

    def __repr__(self):
        return (f"Solver(constraints={len(self._constraints)}, "
                f"variables={len(self._vars)}, edits={len(self._edits)})")

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self):
        """Restore the state as of entry if the block raises anything"""
        checkpoint = self._checkpoint()
        try:
            yield
        except Exception:
            self._restore(checkpoint)
            logger.debug("Rolled back solver state after failed operation")
            raise

    def _checkpoint(self) -> _Checkpoint:
        return _Checkpoint(
            rows={symbol: row.copy() for symbol, row in self._rows.items()},
            objective=self._objective.copy(),
            constraints=dict(self._constraints),
            variables=dict(self._vars),
            edits={variable: info.copy() for variable, info in self._edits.items()},
            infeasible_rows=list(self._infeasible_rows),
            id_tick=self._id_tick,
        )

    def _restore(self, checkpoint: _Checkpoint):
        self._rows = checkpoint.rows
        self._objective = checkpoint.objective
        self._constraints = checkpoint.constraints
        self._vars = checkpoint.variables
        self._edits = checkpoint.edits
        self._infeasible_rows = checkpoint.infeasible_rows
        self._id_tick = checkpoint.id_tick
        self._artificial = None

    # ------------------------------------------------------------------
    # Insertion and removal
    # ------------------------------------------------------------------

    def _add_constraint(self, constraint: Constraint):
        # Runs inside a transaction, which undoes a rejected row
        try:
            row, tag = self._create_row(constraint)
            subject = self._choose_subject(row, tag)

            # A row of dummies only is either redundant or contradictory
            if not subject.is_valid and row.all_dummies():
                if not near_zero(row.constant, self._eps):
                    raise UnsatisfiableConstraint(constraint)
                subject = tag.marker

            if subject.is_valid:
                row.solve_for(subject)
                self._substitute(subject, row)
                self._rows[subject] = row
            elif not self._add_with_artificial_variable(row):
                raise UnsatisfiableConstraint(constraint)
        except UnsatisfiableConstraint:
            logger.warning("Rejected unsatisfiable required constraint %r", constraint)
            raise

        self._constraints[constraint] = tag
        self._optimize(self._objective)

    def _remove_constraint(self, constraint: Constraint, tag: Tag):
        del self._constraints[constraint]

        # The error weights must leave the objective before any pivot
        self._remove_constraint_effects(constraint, tag)

        row = self._rows.pop(tag.marker, None)
        if row is None:
            leaving = self._marker_leaving_symbol(tag.marker)
            if leaving is None:
                raise InternalSolverError("Failed to find leaving row")
            row = self._rows.pop(leaving)
            row.solve_for_pair(leaving, tag.marker)
            self._substitute(tag.marker, row)

        self._optimize(self._objective)

    def _create_row(self, constraint: Constraint) -> Tuple[Row, Tag]:
        """
        Build the tableau row of a constraint.

        Basic symbols are substituted by their rows, and the slack, error or
        dummy symbols implied by the operator and strength are added. Error
        symbols of non-required constraints enter the objective weighted by
        the strength. The returned row has a non-negative constant.
        """
        expr = constraint.expression
        row = Row(expr.constant, self._eps)
        for variable, coefficient in expr.items():
            if near_zero(coefficient, self._eps):
                continue
            symbol = self._var_symbol(variable)
            basic = self._rows.get(symbol)
            if basic is not None:
                row.insert_row(basic, coefficient)
            else:
                row.insert_symbol(symbol, coefficient)

        strength = constraint.strength
        required = _strength.is_required(strength)
        if constraint.op in (RelationalOperator.LE, RelationalOperator.GE):
            coefficient = 1.0 if constraint.op == RelationalOperator.LE else -1.0
            slack = self._new_symbol(SymbolKind.SLACK)
            row.insert_symbol(slack, coefficient)
            if required:
                tag = Tag(slack)
            else:
                error = self._new_symbol(SymbolKind.ERROR)
                row.insert_symbol(error, -coefficient)
                self._objective.insert_symbol(error, strength)
                tag = Tag(slack, error)
        elif required:
            dummy = self._new_symbol(SymbolKind.DUMMY)
            row.insert_symbol(dummy)
            tag = Tag(dummy)
        else:
            # expr = errplus - errminus
            errplus = self._new_symbol(SymbolKind.ERROR)
            errminus = self._new_symbol(SymbolKind.ERROR)
            row.insert_symbol(errplus, -1.0)
            row.insert_symbol(errminus, 1.0)
            self._objective.insert_symbol(errplus, strength)
            self._objective.insert_symbol(errminus, strength)
            tag = Tag(errplus, errminus)

        if row.constant < 0.0:
            row.reverse_sign()
        return row, tag

    def _choose_subject(self, row: Row, tag: Tag) -> Symbol:
        """
        Pick the symbol to solve a new row for.

        Preference: any external symbol, then a marker or other slack/error
        symbol with a negative coefficient. Returns INVALID_SYMBOL when the
        row needs an artificial variable.
        """
        external = row.first_symbol((SymbolKind.EXTERNAL,))
        if external is not None:
            return external
        for symbol in tag:
            if symbol.is_pivotable and row.coefficient_for(symbol) < 0.0:
                return symbol
        return INVALID_SYMBOL

    def _add_with_artificial_variable(self, row: Row) -> bool:
        """
        Add a row through an artificial variable.

        Returns True if the artificial objective could be driven to zero,
        i.e. the row is consistent with the required constraints.
        """
        art = self._new_symbol(SymbolKind.SLACK)
        self._rows[art] = row.copy()
        self._artificial = row.copy()
        try:
            self._optimize(self._artificial)
            success = near_zero(self._artificial.constant, self._eps)
        finally:
            self._artificial = None

        basic = self._rows.pop(art, None)
        if basic is not None:
            if not basic.cells:
                return success
            entering = basic.first_symbol((SymbolKind.SLACK, SymbolKind.ERROR))
            if entering is None:
                return False
            basic.solve_for_pair(art, entering)
            self._substitute(entering, basic)
            self._rows[entering] = basic

        for other in self._rows.values():
            other.remove(art)
        self._objective.remove(art)
        return success

    def _remove_constraint_effects(self, constraint: Constraint, tag: Tag):
        for symbol in tag:
            if symbol.kind == SymbolKind.ERROR:
                self._remove_marker_effects(symbol, constraint.strength)

    def _remove_marker_effects(self, marker: Symbol, strength: float):
        row = self._rows.get(marker)
        if row is not None:
            self._objective.insert_row(row, -strength)
        else:
            self._objective.insert_symbol(marker, -strength)

    def _marker_leaving_symbol(self, marker: Symbol) -> Optional[Symbol]:
        """
        Basic symbol whose row should leave when ``marker`` is pivoted in.

        Restricted rows with a negative coefficient win by smallest ratio,
        then restricted rows with a positive coefficient, then any external
        row containing the marker.
        """
        first = second = third = None
        r1 = r2 = float('inf')
        for symbol, row in self._rows.items():
            coefficient = row.coefficient_for(marker)
            if coefficient == 0.0:
                continue
            if symbol.kind == SymbolKind.EXTERNAL:
                if third is None or symbol > third:
                    third = symbol
            elif coefficient < 0.0:
                ratio = -row.constant / coefficient
                if ratio < r1 or (ratio == r1 and first is not None and symbol < first):
                    r1, first = ratio, symbol
            else:
                ratio = row.constant / coefficient
                if ratio < r2 or (ratio == r2 and second is not None and symbol < second):
                    r2, second = ratio, symbol
        if first is not None:
            return first
        if second is not None:
            return second
        return third

    # ------------------------------------------------------------------
    # Edit variables
    # ------------------------------------------------------------------

    def _apply_edit_delta(self, tag: Tag, delta: float):
        row = self._rows.get(tag.marker)
        if row is not None:
            if row.add(-delta) < 0.0:
                self._infeasible_rows.append(tag.marker)
            return

        row = self._rows.get(tag.other)
        if row is not None:
            if row.add(delta) < 0.0:
                self._infeasible_rows.append(tag.other)
            return

        for symbol, row in self._rows.items():
            coefficient = row.coefficient_for(tag.marker)
            if (coefficient != 0.0 and row.add(delta * coefficient) < 0.0
                    and symbol.kind != SymbolKind.EXTERNAL):
                self._infeasible_rows.append(symbol)

    # ------------------------------------------------------------------
    # Simplex
    # ------------------------------------------------------------------

    def _optimize(self, objective: Row):
        """Primal simplex: pivot until no objective coefficient is negative"""
        iterations = 0
        while True:
            entering = self._entering_symbol(objective)
            if not entering.is_valid:
                return
            leaving = self._leaving_symbol(entering)
            if leaving is None:
                raise InternalSolverError("The objective is unbounded")
            if iterations >= self._max_iter:
                raise InternalSolverError(
                    f"Optimization did not converge within {self._max_iter} pivots")
            self._pivot(leaving, entering)
            iterations += 1

    def _dual_optimize(self):
        """Dual simplex: pivot out infeasible rows while keeping optimality"""
        iterations = 0
        while self._infeasible_rows:
            leaving = self._infeasible_rows.pop()
            row = self._rows.get(leaving)
            if row is None or near_zero(row.constant, self._eps) or row.constant >= 0.0:
                continue
            entering = self._dual_entering_symbol(row)
            if not entering.is_valid:
                raise InternalSolverError("Dual optimize failed")
            if iterations >= self._max_iter:
                raise InternalSolverError(
                    f"Dual optimization did not converge within {self._max_iter} pivots")
            self._pivot(leaving, entering)
            iterations += 1

    def _pivot(self, leaving: Symbol, entering: Symbol):
        row = self._rows.pop(leaving)
        row.solve_for_pair(leaving, entering)
        self._substitute(entering, row)
        self._rows[entering] = row

    def _entering_symbol(self, objective: Row) -> Symbol:
        candidates = [symbol for symbol, coefficient in objective.cells.items()
                      if symbol.kind != SymbolKind.DUMMY and coefficient < 0.0]
        return min(candidates) if candidates else INVALID_SYMBOL

    def _leaving_symbol(self, entering: Symbol) -> Optional[Symbol]:
        found = None
        ratio = float('inf')
        for symbol, row in self._rows.items():
            if symbol.kind == SymbolKind.EXTERNAL:
                continue
            coefficient = row.coefficient_for(entering)
            if coefficient < 0.0:
                candidate = -row.constant / coefficient
                if candidate < ratio or (candidate == ratio and found is not None and symbol < found):
                    ratio, found = candidate, symbol
        return found

    def _dual_entering_symbol(self, row: Row) -> Symbol:
        entering = INVALID_SYMBOL
        ratio = float('inf')
        for symbol in sorted(row.cells):
            coefficient = row.cells[symbol]
            if coefficient > 0.0 and symbol.kind != SymbolKind.DUMMY:
                candidate = self._objective.coefficient_for(symbol) / coefficient
                if candidate < ratio:
                    ratio, entering = candidate, symbol
        return entering

    def _substitute(self, symbol: Symbol, row: Row):
        """Replace ``symbol`` by ``row`` in every row and in the objectives"""
        for basic, other in self._rows.items():
            other.substitute(symbol, row)
            if basic.kind != SymbolKind.EXTERNAL and other.constant < 0.0:
                self._infeasible_rows.append(basic)
        self._objective.substitute(symbol, row)
        if self._artificial is not None:
            self._artificial.substitute(symbol, row)

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def _new_symbol(self, kind: SymbolKind) -> Symbol:
        symbol = Symbol(self._id_tick, kind)
        self._id_tick += 1
        return symbol

    def _var_symbol(self, variable: Variable) -> Symbol:
        symbol = self._vars.get(variable)
        if symbol is None:
            symbol = self._new_symbol(SymbolKind.EXTERNAL)
            self._vars[variable] = symbol
        return symbol
