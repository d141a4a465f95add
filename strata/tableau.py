"""
Tableau building blocks for the strata solver

Symbols are opaque integer identifiers with a kind tag. A Row is a linear
equation ``basic = constant + sum(coefficient * symbol)`` over non-basic
symbols; the solver keys its rows by the basic symbol.
"""
from enum import IntEnum
from typing import Dict, NamedTuple, Optional


EPSILON = 1e-8


def near_zero(value: float, eps: float = EPSILON) -> bool:
    return abs(value) < eps


class SymbolKind(IntEnum):
    """Classification of tableau symbols"""
    INVALID = 0
    EXTERNAL = 1  # stands for a user Variable
    SLACK = 2     # inequality slack, or artificial variable
    ERROR = 3     # error of a non-required constraint
    DUMMY = 4     # marker of a required equality, never pivoted


_KIND_PREFIX = {
    SymbolKind.INVALID: 'i',
    SymbolKind.EXTERNAL: 'v',
    SymbolKind.SLACK: 's',
    SymbolKind.ERROR: 'e',
    SymbolKind.DUMMY: 'd',
}


class Symbol(NamedTuple):
    """A tableau unknown, identified by ``id`` and tagged with its kind"""
    id: int
    kind: SymbolKind

    def __repr__(self):
        return f"{_KIND_PREFIX[self.kind]}{self.id}"

    @property
    def is_valid(self) -> bool:
        return self.kind != SymbolKind.INVALID

    @property
    def is_pivotable(self) -> bool:
        return self.kind in (SymbolKind.SLACK, SymbolKind.ERROR)


INVALID_SYMBOL = Symbol(0, SymbolKind.INVALID)


class Tag(NamedTuple):
    """Symbols introduced for one constraint, used to remove it later"""
    marker: Symbol
    other: Symbol = INVALID_SYMBOL


class Row:
    """
    One equation of the tableau.

    Parameters
    ----------
    constant : float, optional
        Constant term of the row (default: 0)
    eps : float, optional
        Coefficients whose magnitude falls below this are dropped

    Notes
    -----
    Cells never hold a coefficient that is near zero; every mutating method
    prunes them.
    """

    __slots__ = ('cells', 'constant', 'eps')

    def __init__(self, constant: float = 0.0, eps: float = EPSILON):
        self.cells: Dict[Symbol, float] = {}
        self.constant = float(constant)
        self.eps = eps

    def copy(self) -> 'Row':
        row = Row(self.constant, self.eps)
        row.cells = dict(self.cells)
        return row

    def __repr__(self):
        parts = [f"{self.constant:g}"]
        for symbol in sorted(self.cells):
            parts.append(f"{self.cells[symbol]:g} * {symbol!r}")
        return " + ".join(parts)

    def add(self, value: float) -> float:
        """Add a value to the constant and return the new constant"""
        self.constant += value
        return self.constant

    def insert_symbol(self, symbol: Symbol, coefficient: float = 1.0):
        """Add ``coefficient * symbol`` to the row"""
        updated = self.cells.get(symbol, 0.0) + coefficient
        if near_zero(updated, self.eps):
            self.cells.pop(symbol, None)
        else:
            self.cells[symbol] = updated

    def insert_row(self, other: 'Row', coefficient: float = 1.0):
        """Add ``coefficient * other`` to the row, constant included"""
        self.constant += other.constant * coefficient
        for symbol, value in other.cells.items():
            self.insert_symbol(symbol, value * coefficient)

    def remove(self, symbol: Symbol):
        self.cells.pop(symbol, None)

    def reverse_sign(self):
        self.constant = -self.constant
        self.cells = {symbol: -value for symbol, value in self.cells.items()}

    def solve_for(self, symbol: Symbol):
        """
        Solve the row for ``symbol``.

        The row is read as ``0 = constant + sum(cells)``; afterwards it holds
        the right-hand side of ``symbol = ...`` and ``symbol`` is no longer a
        cell. The symbol must be present in the row.
        """
        coefficient = -1.0 / self.cells.pop(symbol)
        self.constant *= coefficient
        self.cells = {sym: value * coefficient for sym, value in self.cells.items()}

    def solve_for_pair(self, lhs: Symbol, rhs: Symbol):
        """
        Solve the row ``lhs = constant + sum(cells)`` for ``rhs``.

        ``lhs`` becomes a cell of the row and ``rhs`` leaves it.
        """
        self.insert_symbol(lhs, -1.0)
        self.solve_for(rhs)

    def coefficient_for(self, symbol: Symbol) -> float:
        return self.cells.get(symbol, 0.0)

    def substitute(self, symbol: Symbol, row: 'Row'):
        """Replace every occurrence of ``symbol`` by the expression ``row``"""
        coefficient = self.cells.pop(symbol, None)
        if coefficient is not None:
            self.insert_row(row, coefficient)

    def all_dummies(self) -> bool:
        return all(symbol.kind == SymbolKind.DUMMY for symbol in self.cells)

    def first_symbol(self, kinds) -> Optional[Symbol]:
        """Lowest-id symbol of the row whose kind is in ``kinds``, or None"""
        candidates = [symbol for symbol in self.cells if symbol.kind in kinds]
        return min(candidates) if candidates else None
