"""
strata Python Package

Incremental linear constraint solver implementing the Cassowary algorithm.
"""

from .solver import Solver
from .parameters import Parameters
from .model import LinearSystem
from .modeling import (
    Variable, Term, Expression, Constraint, RelationalOperator, between
)
from .strength import REQUIRED, STRONG, MEDIUM, WEAK
from .errors import (
    SolverError, UnsatisfiableConstraint, DuplicateConstraint, UnknownConstraint,
    DuplicateEditVariable, UnknownEditVariable, BadRequiredStrength,
    InternalSolverError
)
from . import strength

__version__ = "0.1.0"

__all__ = [
    'Solver',
    'Parameters',
    'LinearSystem',
    '__version__',
    # Modeling interface
    'Variable',
    'Term',
    'Expression',
    'Constraint',
    'RelationalOperator',
    'between',
    # Strengths
    'strength',
    'REQUIRED',
    'STRONG',
    'MEDIUM',
    'WEAK',
    # Errors
    'SolverError',
    'UnsatisfiableConstraint',
    'DuplicateConstraint',
    'UnknownConstraint',
    'DuplicateEditVariable',
    'UnknownEditVariable',
    'BadRequiredStrength',
    'InternalSolverError',
]
