"""
Text dump of a Solver's internal state, for debugging
"""
from typing import List

from . import strength as _strength


def _section(lines: List[str], title: str):
    lines.append(title)
    lines.append("-" * len(title))


def format_solver(solver) -> str:
    """
    Format the objective, tableau rows, infeasible rows, variables, edit
    variables and constraints of a solver.

    Parameters
    ----------
    solver : Solver
        Solver to inspect

    Returns
    -------
    str
        Multi-line dump
    """
    lines: List[str] = []

    _section(lines, "Objective")
    lines.append(repr(solver._objective))
    lines.append("")

    _section(lines, "Tableau")
    for symbol in sorted(solver._rows):
        lines.append(f"{symbol!r} | {solver._rows[symbol]!r}")
    lines.append("")

    _section(lines, "Infeasible")
    for symbol in solver._infeasible_rows:
        lines.append(repr(symbol))
    lines.append("")

    _section(lines, "Variables")
    for variable, symbol in solver._vars.items():
        lines.append(f"{variable.name} = {symbol!r}")
    lines.append("")

    _section(lines, "Edit Variables")
    for variable, info in solver._edits.items():
        lines.append(f"{variable.name} ({_strength.describe(info.constraint.strength)}) "
                     f"= {info.constant:g}")
    lines.append("")

    _section(lines, "Constraints")
    for constraint in solver._constraints:
        lines.append(repr(constraint))
    lines.append("")

    return "\n".join(lines)
