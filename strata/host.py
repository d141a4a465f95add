"""
Handle-style interface for embedding strata in a host environment

Every object is created through an AllocationContext, a caller-supplied pair
of allocate / free callbacks plus opaque user data, and every solver
operation reports a Status code instead of raising. A host binding (for
instance a C extension or a cffi callback table) consumes exactly this
surface.

There is no implicit context: every ``*_new`` call names the context it
allocates from, and the matching ``*_del`` call must name the same one, so a
host that skips a ``*_del`` sees it in that context's ``live_count``.
"""
import logging
import sys
from enum import IntEnum
from typing import Any, Callable, Dict, Optional, Tuple

from . import strength as _strength
from .errors import (
    BadRequiredStrength,
    DuplicateConstraint,
    DuplicateEditVariable,
    UnknownConstraint,
    UnknownEditVariable,
    UnsatisfiableConstraint,
)
from .modeling import Constraint, Expression, RelationalOperator, Term, Variable
from .parameters import Parameters
from .solver import Solver


logger = logging.getLogger(__name__)


class Status(IntEnum):
    """Result of a host-interface call"""
    OK = 0
    UNSATISFIABLE = -1
    NOT_FOUND = -2
    DUPLICATE = -3
    BAD_STRENGTH = -4
    OUT_OF_MEMORY = -5915


def _default_alloc(user_data, size):
    return object()


def _default_free(user_data, token, size):
    pass


class AllocationContext:
    """
    Allocator callbacks used for every object created through this module.

    Parameters
    ----------
    alloc_fn : callable, optional
        ``alloc_fn(user_data, size)`` returns an opaque token, or None when
        the allocation fails
    free_fn : callable, optional
        ``free_fn(user_data, token, size)`` releases a token returned by
        ``alloc_fn``
    user_data : object, optional
        Passed unchanged to both callbacks

    Examples
    --------
    >>> budget = {'left': 4096}
    >>> def alloc(data, size):
    ...     if size > data['left']:
    ...         return None
    ...     data['left'] -= size
    ...     return size
    >>> def free(data, token, size):
    ...     data['left'] += size
    >>> ctx = AllocationContext(alloc, free, budget)
    >>> solver = solver_new(ctx)
    """

    def __init__(self, alloc_fn: Optional[Callable[[Any, int], Any]] = None,
                 free_fn: Optional[Callable[[Any, Any, int], None]] = None,
                 user_data: Any = None):
        self.alloc_fn = alloc_fn or _default_alloc
        self.free_fn = free_fn or _default_free
        self.user_data = user_data
        self._live: Dict[int, Tuple[Any, Any, int]] = {}

    @property
    def live_count(self) -> int:
        """Number of objects allocated through this context and not yet freed"""
        return len(self._live)

    def acquire(self, obj):
        """Account for ``obj``; return it, or None if the allocator refuses"""
        size = sys.getsizeof(obj)
        try:
            token = self.alloc_fn(self.user_data, size)
        except MemoryError:
            token = None
        if token is None:
            logger.debug("Allocation of %d bytes for %s refused", size, type(obj).__name__)
            return None
        self._live[id(obj)] = (obj, token, size)
        return obj

    def release(self, obj):
        entry = self._live.pop(id(obj), None)
        if entry is None:
            raise ValueError(f"{type(obj).__name__} was not allocated through this context")
        _, token, size = entry
        self.free_fn(self.user_data, token, size)

    def __repr__(self):
        return f"<strata.AllocationContext live={self.live_count}>"


def _check_context(ctx):
    if not isinstance(ctx, AllocationContext):
        raise TypeError(f"Expected an AllocationContext, got {type(ctx).__name__}")


def _new(ctx: AllocationContext, factory):
    _check_context(ctx)
    try:
        obj = factory()
    except MemoryError:
        return None
    return ctx.acquire(obj)


def _del(ctx: AllocationContext, obj):
    _check_context(ctx)
    ctx.release(obj)


# ----------------------------------------------------------------------
# Variables
# ----------------------------------------------------------------------

def variable_new(ctx: AllocationContext) -> Optional[Variable]:
    """New unnamed variable with value 0, or None when out of memory"""
    return _new(ctx, Variable)


def variable_del(variable: Variable, ctx: AllocationContext):
    _del(ctx, variable)


def variable_name(variable: Variable) -> str:
    return variable.name


def variable_set_name(variable: Variable, name: Optional[str]):
    variable.name = name


def variable_value(variable: Variable) -> float:
    return variable.value


# ----------------------------------------------------------------------
# Expressions
# ----------------------------------------------------------------------

class ExpressionSlot:
    """
    Mutable holder for an immutable Expression.

    The host mutation calls replace ``expression`` with a new Expression;
    constraints built from earlier contents are unaffected.
    """

    __slots__ = ('expression',)

    def __init__(self):
        self.expression = Expression()

    def __repr__(self):
        return f"ExpressionSlot({self.expression})"


def expression_new(ctx: AllocationContext) -> Optional[ExpressionSlot]:
    """New empty expression (no terms, zero constant), or None when out of memory"""
    return _new(ctx, ExpressionSlot)


def expression_del(slot: ExpressionSlot, ctx: AllocationContext):
    _del(ctx, slot)


def expression_add_term(slot: ExpressionSlot, variable: Variable, coefficient: float) -> Status:
    try:
        slot.expression = slot.expression + Term(variable, coefficient)
    except MemoryError:
        return Status.OUT_OF_MEMORY
    return Status.OK


def expression_add_constant(slot: ExpressionSlot, constant: float) -> Status:
    try:
        slot.expression = slot.expression + float(constant)
    except MemoryError:
        return Status.OUT_OF_MEMORY
    return Status.OK


def expression_reset(slot: ExpressionSlot):
    slot.expression = Expression()


# ----------------------------------------------------------------------
# Constraints
# ----------------------------------------------------------------------

def constraint_new(lhs: ExpressionSlot, rhs: ExpressionSlot, relation: int, strength: float,
                   ctx: AllocationContext) -> Optional[Constraint]:
    """
    New constraint ``lhs - rhs <relation> 0``, or None when out of memory.

    Parameters
    ----------
    lhs, rhs : ExpressionSlot
        Sides of the constraint; their current expressions are captured
    relation : int
        Relational operator code: 0 (<=), 1 (>=) or 2 (==)
    strength : float
        Strength of the constraint, clipped to [0, required]
    ctx : AllocationContext
        Context the constraint is allocated from
    """
    op = RelationalOperator.from_code(relation)
    return _new(ctx, lambda: Constraint(lhs.expression, rhs.expression, op,
                                        _strength.clip(strength)))


def constraint_del(constraint: Constraint, ctx: AllocationContext):
    _del(ctx, constraint)


def constraint_violated(constraint: Constraint) -> bool:
    return constraint.violated()


# ----------------------------------------------------------------------
# Solver
# ----------------------------------------------------------------------

def solver_new(ctx: AllocationContext,
               parameters: Optional[Parameters] = None) -> Optional[Solver]:
    """New empty solver, or None when out of memory"""
    return _new(ctx, lambda: Solver(parameters))


def solver_del(solver: Solver, ctx: AllocationContext):
    _del(ctx, solver)


def solver_add_constraint(solver: Solver, constraint: Constraint) -> Status:
    """OK, UNSATISFIABLE, DUPLICATE or OUT_OF_MEMORY"""
    try:
        solver.add_constraint(constraint)
    except UnsatisfiableConstraint:
        return Status.UNSATISFIABLE
    except DuplicateConstraint:
        return Status.DUPLICATE
    except MemoryError:
        return Status.OUT_OF_MEMORY
    return Status.OK


def solver_has_constraint(solver: Solver, constraint: Constraint) -> bool:
    return solver.has_constraint(constraint)


def solver_remove_constraint(solver: Solver, constraint: Constraint) -> Status:
    """OK, NOT_FOUND or OUT_OF_MEMORY"""
    try:
        solver.remove_constraint(constraint)
    except UnknownConstraint:
        return Status.NOT_FOUND
    except MemoryError:
        return Status.OUT_OF_MEMORY
    return Status.OK


def solver_add_edit_variable(solver: Solver, variable: Variable, strength: float) -> Status:
    """OK, DUPLICATE, BAD_STRENGTH or OUT_OF_MEMORY"""
    try:
        solver.add_edit_variable(variable, strength)
    except DuplicateEditVariable:
        return Status.DUPLICATE
    except BadRequiredStrength:
        return Status.BAD_STRENGTH
    except MemoryError:
        return Status.OUT_OF_MEMORY
    return Status.OK


def solver_remove_edit_variable(solver: Solver, variable: Variable) -> Status:
    """OK, NOT_FOUND or OUT_OF_MEMORY"""
    try:
        solver.remove_edit_variable(variable)
    except UnknownEditVariable:
        return Status.NOT_FOUND
    except MemoryError:
        return Status.OUT_OF_MEMORY
    return Status.OK


def solver_suggest_value(solver: Solver, variable: Variable, value: float) -> Status:
    """OK, NOT_FOUND or OUT_OF_MEMORY"""
    try:
        solver.suggest_value(variable, value)
    except UnknownEditVariable:
        return Status.NOT_FOUND
    except MemoryError:
        return Status.OUT_OF_MEMORY
    return Status.OK


def solver_update_variables(solver: Solver):
    solver.update_variables()
