"""
Modeling interface for strata

Variables, terms and expressions combine with the usual arithmetic operators
into new immutable expressions, and compare with ``<=``, ``>=`` and ``==``
into constraints that can be handed to a Solver.

Example
-------
>>> from strata import Solver, Variable
>>>
>>> left = Variable('left')
>>> width = Variable('width')
>>>
>>> solver = Solver()
>>> solver.add_constraint(left == 0)
>>> solver.add_constraint(width >= 100)
>>> solver.add_constraint((left + width == 400) | 'weak')
>>> solver.update_variables()
>>> print(f"left = {left.value}, width = {width.value}")
"""

import itertools
import numpy as np
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from . import strength as _strength


VIOLATION_TOLERANCE = 1e-8

_SCALAR_TYPES = (int, float, np.number)


class RelationalOperator(Enum):
    """Relational operator of a constraint in normalized form ``expr <op> 0``"""
    LE = '<='  # Less than or equal
    GE = '>='  # Greater than or equal
    EQ = '=='  # Equal

    @property
    def code(self) -> int:
        """Stable integer code used by the host interface"""
        return _OPERATOR_CODES[self]

    @classmethod
    def from_code(cls, code: int) -> 'RelationalOperator':
        for op, op_code in _OPERATOR_CODES.items():
            if op_code == code:
                return op
        raise ValueError(f"Unknown relational operator code: {code}")


_OPERATOR_CODES = {
    RelationalOperator.LE: 0,
    RelationalOperator.GE: 1,
    RelationalOperator.EQ: 2,
}


class _LinearArithmetic:
    """
    Operators shared by Variable, Term and Expression.

    Every operation goes through ``_as_expression()`` and returns a new
    Expression or Constraint; operands are never modified.
    """

    # Make numpy scalars defer to our reflected operators
    __array_ufunc__ = None

    def _as_expression(self) -> 'Expression':
        raise NotImplementedError

    def __add__(self, other):
        other = _coerce(other)
        if other is None:
            return NotImplemented
        return self._as_expression()._combine(other, 1.0)

    def __radd__(self, other):
        return self.__add__(other)

    def __sub__(self, other):
        other = _coerce(other)
        if other is None:
            return NotImplemented
        return self._as_expression()._combine(other, -1.0)

    def __rsub__(self, other):
        other = _coerce(other)
        if other is None:
            return NotImplemented
        return other._combine(self._as_expression(), -1.0)

    def __mul__(self, other):
        if isinstance(other, _SCALAR_TYPES):
            return self._as_expression()._scale(float(other))
        other = _coerce(other)
        if other is None:
            return NotImplemented
        expr = self._as_expression()
        if other.is_constant():
            return expr._scale(other.constant)
        if expr.is_constant():
            return other._scale(expr.constant)
        raise TypeError("Can only multiply expression by scalar (no quadratic terms)")

    def __rmul__(self, other):
        return self.__mul__(other)

    def __truediv__(self, other):
        if isinstance(other, _LinearArithmetic):
            other = other._as_expression()
            if not other.is_constant():
                raise TypeError("Can only divide expression by scalar")
            other = other.constant
        if not isinstance(other, _SCALAR_TYPES):
            raise TypeError("Can only divide expression by scalar")
        return self._as_expression()._scale(1.0 / float(other))

    def __neg__(self):
        return self._as_expression()._scale(-1.0)

    def __pos__(self):
        return self._as_expression()

    # Comparison operators for constraints
    def __le__(self, other):
        return Constraint(self, other, RelationalOperator.LE)

    def __ge__(self, other):
        return Constraint(self, other, RelationalOperator.GE)

    def __eq__(self, other):
        return Constraint(self, other, RelationalOperator.EQ)

    def __ne__(self, other):
        raise TypeError("'!=' does not build a linear constraint")

    def __lt__(self, other):
        raise TypeError("Strict inequalities are not supported, use '<='")

    def __gt__(self, other):
        raise TypeError("Strict inequalities are not supported, use '>='")


class Variable(_LinearArithmetic):
    """
    An unknown of the constraint system.

    The solver writes the resolved value into ``value`` when
    ``Solver.update_variables()`` is called. Variables are hashed and
    compared by identity inside the solver.

    Parameters
    ----------
    name : str, optional
        Name of the variable for display (default: 'v<id>')

    Examples
    --------
    >>> x = Variable('x')
    >>> expr = 3*x + 5  # Create linear expression
    >>> x.value
    0.0
    """

    _ids = itertools.count(1)

    def __init__(self, name: Optional[str] = None):
        self._id = next(Variable._ids)
        self._name = name
        self._value = 0.0

    @property
    def id(self) -> int:
        """Unique token of this variable"""
        return self._id

    @property
    def name(self) -> str:
        return self._name if self._name is not None else f"v{self._id}"

    @name.setter
    def name(self, name: Optional[str]):
        self._name = name

    @property
    def value(self) -> float:
        """Value of this variable as of the last update_variables()"""
        return self._value

    @value.setter
    def value(self, val: float):
        """Set the value of this variable (used internally by the solver)"""
        self._value = float(val)

    def __hash__(self):
        return hash(self._id)

    def __repr__(self):
        return f"Variable({self.name})"

    def _as_expression(self) -> 'Expression':
        return Expression._from_parts({self: 1.0}, 0.0)


class Term(_LinearArithmetic):
    """
    A variable scaled by a coefficient. Immutable.

    Parameters
    ----------
    variable : Variable
        The variable of the term
    coefficient : float, optional
        Multiplier of the variable (default: 1.0)
    """

    __slots__ = ('_variable', '_coefficient')

    def __init__(self, variable: Variable, coefficient: float = 1.0):
        if not isinstance(variable, Variable):
            raise TypeError("Term variable must be a Variable")
        if not isinstance(coefficient, _SCALAR_TYPES):
            raise TypeError("Term coefficient must be a scalar")
        self._variable = variable
        self._coefficient = float(coefficient)

    @property
    def variable(self) -> Variable:
        return self._variable

    @property
    def coefficient(self) -> float:
        return self._coefficient

    def value(self) -> float:
        """Evaluate the term against the variable's current value"""
        return self._coefficient * self._variable.value

    def __repr__(self):
        return f"Term({self._variable.name}, {self._coefficient:g})"

    def _as_expression(self) -> 'Expression':
        return Expression._from_parts({self._variable: self._coefficient}, 0.0)


class Expression(_LinearArithmetic):
    """
    A linear expression: sum of (coefficient * variable) + constant.

    Expressions are immutable. Coefficients of repeated variables are summed
    and terms that cancel out are dropped.

    Parameters
    ----------
    terms : iterable of Term, or mapping of Variable to float, optional
        Terms of the expression
    constant : float, optional
        Constant term

    Examples
    --------
    >>> x = Variable('x')
    >>> y = Variable('y')
    >>> expr = 3*x + 2*y - 5
    >>> print(expr)
    3*x + 2*y - 5
    """

    __slots__ = ('_coefficients', '_constant')

    def __init__(self, terms: Union[Iterable[Term], Mapping[Variable, float], None] = None,
                 constant: float = 0.0):
        if not isinstance(constant, _SCALAR_TYPES):
            raise TypeError("Expression constant must be a scalar")
        coefficients: Dict[Variable, float] = {}
        if terms is not None:
            if isinstance(terms, Mapping):
                pairs = terms.items()
            else:
                pairs = []
                for term in terms:
                    if not isinstance(term, Term):
                        raise TypeError("Expression terms must be Term objects")
                    pairs.append((term.variable, term.coefficient))
            for var, coef in pairs:
                if not isinstance(var, Variable):
                    raise TypeError("Expression keys must be Variable objects")
                coefficients[var] = coefficients.get(var, 0.0) + float(coef)
        self._coefficients = _simplify(coefficients)
        self._constant = float(constant)

    @classmethod
    def _from_parts(cls, coefficients: Dict[Variable, float], constant: float) -> 'Expression':
        expr = cls.__new__(cls)
        expr._coefficients = coefficients
        expr._constant = constant
        return expr

    @staticmethod
    def from_constant(value: float) -> 'Expression':
        """Create expression from a constant"""
        return Expression._from_parts({}, float(value))

    @property
    def constant(self) -> float:
        return self._constant

    @property
    def terms(self) -> Tuple[Term, ...]:
        return tuple(Term(var, coef) for var, coef in self._coefficients.items())

    def coefficient(self, variable: Variable) -> float:
        """Get coefficient for a variable"""
        return self._coefficients.get(variable, 0.0)

    def variables(self) -> Tuple[Variable, ...]:
        return tuple(self._coefficients)

    def items(self):
        """(variable, coefficient) pairs of the expression"""
        return self._coefficients.items()

    def is_constant(self) -> bool:
        return not self._coefficients

    def value(self) -> float:
        """Evaluate the expression against the variables' current values"""
        return self._constant + sum(coef * var.value for var, coef in self._coefficients.items())

    def equivalent(self, other: 'Expression', tolerance: float = 1e-12) -> bool:
        """Structural equality: same variables, coefficients and constant"""
        other = _coerce(other)
        if other is None:
            return False
        if abs(self._constant - other._constant) > tolerance:
            return False
        if self._coefficients.keys() != other._coefficients.keys():
            return False
        return all(abs(coef - other._coefficients[var]) <= tolerance
                   for var, coef in self._coefficients.items())

    def __len__(self):
        return len(self._coefficients)

    def __repr__(self):
        terms = []
        for var, coef in sorted(self._coefficients.items(), key=lambda item: item[0].id):
            if coef == 1.0:
                terms.append(var.name)
            elif coef == -1.0:
                terms.append(f"-{var.name}")
            else:
                terms.append(f"{coef:g}*{var.name}")

        if self._constant != 0.0 or not terms:
            terms.append(f"{self._constant:g}")

        result = terms[0]
        for term in terms[1:]:
            if term.startswith('-'):
                result += f" - {term[1:]}"
            else:
                result += f" + {term}"
        return result

    def _as_expression(self) -> 'Expression':
        return self

    def _combine(self, other: 'Expression', sign: float) -> 'Expression':
        coefficients = dict(self._coefficients)
        for var, coef in other._coefficients.items():
            coefficients[var] = coefficients.get(var, 0.0) + sign * coef
        return Expression._from_parts(_simplify(coefficients),
                                      self._constant + sign * other._constant)

    def _scale(self, scalar: float) -> 'Expression':
        return Expression._from_parts(
            _simplify({var: coef * scalar for var, coef in self._coefficients.items()}),
            self._constant * scalar
        )


def _simplify(coefficients: Dict[Variable, float]) -> Dict[Variable, float]:
    """Remove zero coefficients"""
    return {var: coef for var, coef in coefficients.items() if abs(coef) > 1e-15}


def _coerce(value) -> Optional[Expression]:
    if isinstance(value, _LinearArithmetic):
        return value._as_expression()
    if isinstance(value, _SCALAR_TYPES):
        return Expression.from_constant(float(value))
    return None


def as_expression(value: Union[Expression, Term, Variable, float]) -> Expression:
    """
    Convert a Variable, Term, scalar or Expression into an Expression.

    Raises
    ------
    TypeError
        If the value cannot take part in a linear expression
    """
    expr = _coerce(value)
    if expr is None:
        raise TypeError(f"Cannot build a linear expression from {type(value).__name__}")
    return expr


class Constraint:
    """
    A linear constraint ``expression <op> 0`` with a strength.

    Constraints are immutable and compared by identity: two separately built
    constraints with the same content are different objects to a Solver.
    Use ``equivalent()`` for structural comparison.

    Parameters
    ----------
    lhs : Expression, Term, Variable or float
        Left-hand side
    rhs : Expression, Term, Variable or float
        Right-hand side
    op : RelationalOperator or str
        Relational operator ('<=', '>=' or '==')
    strength : float or str, optional
        Strength of the constraint (default: required)
    name : str, optional
        Name of the constraint for display

    Examples
    --------
    >>> x = Variable('x')
    >>> y = Variable('y')
    >>> c1 = x + y == 10                     # required equality
    >>> c2 = (x >= 3) | 'strong'             # strong inequality
    >>> c3 = Constraint(2*x, y, '<=', WEAK)  # 2*x - y <= 0, weak
    """

    __slots__ = ('_expression', '_op', '_strength', 'name')

    def __init__(self, lhs: Union[Expression, Term, Variable, float],
                 rhs: Union[Expression, Term, Variable, float],
                 op: Union[RelationalOperator, str],
                 strength: Union[float, str] = _strength.REQUIRED,
                 name: Optional[str] = None):
        lhs = _coerce(lhs)
        if lhs is None:
            raise TypeError("LHS must be Variable, Term, scalar, or Expression")
        rhs = _coerce(rhs)
        if rhs is None:
            raise TypeError("RHS must be Variable, Term, scalar, or Expression")
        if not isinstance(op, RelationalOperator):
            op = RelationalOperator(op)

        # Normalize to: expr <op> 0
        self._expression = lhs - rhs
        self._op = op
        self._strength = _strength.resolve(strength)
        self.name = name

    @classmethod
    def _normalized(cls, expression: Expression, op: RelationalOperator,
                    strength: float, name: Optional[str]) -> 'Constraint':
        constraint = cls.__new__(cls)
        constraint._expression = expression
        constraint._op = op
        constraint._strength = strength
        constraint.name = name
        return constraint

    @property
    def expression(self) -> Expression:
        """Normalized expression, compared against zero"""
        return self._expression

    @property
    def op(self) -> RelationalOperator:
        return self._op

    @property
    def strength(self) -> float:
        return self._strength

    @property
    def required(self) -> bool:
        return _strength.is_required(self._strength)

    def violated(self, tolerance: float = VIOLATION_TOLERANCE) -> bool:
        """
        Check the constraint against the variables' current values.

        Parameters
        ----------
        tolerance : float, optional
            Allowed deviation before the constraint counts as violated

        Returns
        -------
        bool
            True if the relation does not hold beyond ``tolerance``
        """
        value = self._expression.value()
        if self._op == RelationalOperator.EQ:
            return abs(value) > tolerance
        if self._op == RelationalOperator.LE:
            return value > tolerance
        return value < -tolerance

    def equivalent(self, other: 'Constraint') -> bool:
        """Same normalized expression and operator; strength is ignored"""
        if not isinstance(other, Constraint):
            return False
        return self._op == other._op and self._expression.equivalent(other._expression)

    def with_strength(self, strength: Union[float, str]) -> 'Constraint':
        """Copy of this constraint with another strength"""
        return Constraint._normalized(self._expression, self._op,
                                      _strength.resolve(strength), self.name)

    def __or__(self, strength):
        if not isinstance(strength, (str,) + _SCALAR_TYPES):
            return NotImplemented
        return self.with_strength(strength)

    def __ror__(self, strength):
        return self.__or__(strength)

    def __repr__(self):
        label = f"{self.name}: " if self.name else ""
        return (f"Constraint({label}{self._expression} {self._op.value} 0 "
                f"| {_strength.describe(self._strength)})")


def between(lower: Union[Expression, Variable, float],
            expr: Union[Expression, Term, Variable],
            upper: Union[Expression, Variable, float],
            strength: Union[float, str] = _strength.REQUIRED) -> Tuple[Constraint, Constraint]:
    """
    Create the pair of constraints lower <= expr <= upper.

    Python's comparison chaining doesn't work for constraints, so use this
    helper and add both constraints to the solver.

    Parameters
    ----------
    lower : float, Variable or Expression
        Lower bound
    expr : Expression, Term or Variable
        Expression to bound
    upper : float, Variable or Expression
        Upper bound
    strength : float or str, optional
        Strength of both constraints (default: required)

    Returns
    -------
    tuple of Constraint
        (expr >= lower, expr <= upper)

    Examples
    --------
    >>> x = Variable('x')
    >>> low, high = between(5, 2*x, 10)  # 5 <= 2*x <= 10
    """
    if isinstance(lower, _SCALAR_TYPES) and isinstance(upper, _SCALAR_TYPES):
        if float(lower) > float(upper):
            raise ValueError(f"Lower bound ({lower}) must be <= upper bound ({upper})")

    return (Constraint(expr, lower, RelationalOperator.GE, strength),
            Constraint(expr, upper, RelationalOperator.LE, strength))
