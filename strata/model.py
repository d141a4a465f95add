"""
Matrix-form batches of constraints for strata
"""
import logging
import numpy as np
from scipy import sparse
from typing import List, Optional, Sequence, Tuple, Union

from . import strength as _strength
from .modeling import Constraint, Expression, RelationalOperator, Variable


logger = logging.getLogger(__name__)


def _ensure_contiguous_float64(arr):
    """Ensure array is contiguous float64"""
    if not isinstance(arr, np.ndarray):
        arr = np.array(arr, dtype=np.float64)
    if arr.dtype != np.float64:
        arr = arr.astype(np.float64)
    return np.ascontiguousarray(arr)


class LinearSystem:
    """
    A batch of linear constraints over a fixed list of variables.

    The batch can be built from, and exported to, the matrix form

        AL <= A*x <= AU

    and added to or removed from a Solver as a unit.

    Parameters
    ----------
    variables : sequence of Variable
        Variables, in column order
    constraints : sequence of Constraint
        Constraints over those variables

    Examples
    --------
    >>> import numpy as np
    >>> from strata import LinearSystem, Solver
    >>>
    >>> # x0 + x1 == 100, 0 <= x0 <= 30
    >>> A = np.array([[1.0, 1.0], [1.0, 0.0]])
    >>> AL = np.array([100.0, 0.0])
    >>> AU = np.array([100.0, 30.0])
    >>> system = LinearSystem.from_arrays(A, AL, AU)
    >>>
    >>> solver = Solver()
    >>> system.add_to(solver)
    >>> solver.update_variables()
    >>> print(system.values())
    """

    def __init__(self, variables: Sequence[Variable], constraints: Sequence[Constraint]):
        self.variables: List[Variable] = list(variables)
        self.constraints: List[Constraint] = list(constraints)
        self._columns = {var: index for index, var in enumerate(self.variables)}
        for constraint in self.constraints:
            for var in constraint.expression.variables():
                if var not in self._columns:
                    raise ValueError(f"{constraint!r} uses {var!r}, which is not in the system")

    @property
    def m(self) -> int:
        """Number of constraints"""
        return len(self.constraints)

    @property
    def n(self) -> int:
        """Number of variables"""
        return len(self.variables)

    @staticmethod
    def from_arrays(
        A: Union[np.ndarray, sparse.spmatrix],
        AL: np.ndarray,
        AU: np.ndarray,
        variables: Optional[Sequence[Variable]] = None,
        strength: Union[float, str] = _strength.REQUIRED,
    ) -> 'LinearSystem':
        """
        Create constraints from a constraint matrix and bound arrays.

        Rows with equal bounds become one equality; otherwise each finite
        bound becomes an inequality.

        Parameters
        ----------
        A : np.ndarray or scipy.sparse matrix
            Constraint matrix (m x n)
        AL : np.ndarray
            Lower bounds for constraints (length m), -inf for none
        AU : np.ndarray
            Upper bounds for constraints (length m), inf for none. Bounds may
            not be NaN, and a row with equal bounds needs a finite one.
        variables : sequence of Variable, optional
            Variables for the n columns. If None, x0..x{n-1} are created.
        strength : float or str, optional
            Strength of every constraint (default: required)

        Returns
        -------
        LinearSystem
            The system of constraints
        """
        if sparse.issparse(A):
            A = sparse.csr_matrix(A)
        elif isinstance(A, np.ndarray):
            if A.ndim != 2:
                raise ValueError("A must be a 2-dimensional matrix")
            A = sparse.csr_matrix(A)
        else:
            raise TypeError("A must be a numpy array or scipy sparse matrix")
        m, n = A.shape

        AL = _ensure_contiguous_float64(AL)
        AU = _ensure_contiguous_float64(AU)
        if len(AL) != m or len(AU) != m:
            raise ValueError(f"AL and AU must have length {m} (number of constraints)")
        if np.any(np.isnan(AL)) or np.any(np.isnan(AU)):
            raise ValueError("AL and AU must not contain NaN")
        if np.any((AL == AU) & ~np.isfinite(AL)):
            raise ValueError("A row with AL == AU needs a finite bound")
        if np.any(AL > AU):
            raise ValueError("Every lower bound in AL must be <= the upper bound in AU")

        if variables is None:
            variables = [Variable(f"x{j}") for j in range(n)]
        elif len(variables) != n:
            raise ValueError(f"variables must have length {n} (number of columns)")

        strength = _strength.resolve(strength)
        constraints = []
        for i in range(m):
            start, end = A.indptr[i], A.indptr[i + 1]
            expr = Expression({variables[j]: float(coef)
                               for j, coef in zip(A.indices[start:end], A.data[start:end])})
            lower, upper = AL[i], AU[i]
            if lower == upper:
                constraints.append(Constraint(expr, lower, RelationalOperator.EQ, strength,
                                              name=f"r{i}"))
                continue
            if np.isfinite(lower):
                constraints.append(Constraint(expr, lower, RelationalOperator.GE, strength,
                                              name=f"r{i}_lo"))
            if np.isfinite(upper):
                constraints.append(Constraint(expr, upper, RelationalOperator.LE, strength,
                                              name=f"r{i}_hi"))

        return LinearSystem(variables, constraints)

    def to_arrays(self) -> Tuple[sparse.csr_matrix, np.ndarray, np.ndarray]:
        """
        Export the constraints to the form AL <= A*x <= AU.

        Strengths are not part of the matrix form and are dropped.

        Returns
        -------
        A : scipy.sparse.csr_matrix
            Constraint matrix (m x n)
        AL : np.ndarray
            Lower bounds for constraints (length m)
        AU : np.ndarray
            Upper bounds for constraints (length m)
        """
        rows = []
        cols = []
        data = []
        AL = np.empty(self.m)
        AU = np.empty(self.m)

        for i, constraint in enumerate(self.constraints):
            expr = constraint.expression
            for var, coef in expr.items():
                rows.append(i)
                cols.append(self._columns[var])
                data.append(coef)

            # expr <op> 0 means A*x <op> -constant
            rhs = -expr.constant
            if constraint.op == RelationalOperator.LE:
                AL[i], AU[i] = -np.inf, rhs
            elif constraint.op == RelationalOperator.GE:
                AL[i], AU[i] = rhs, np.inf
            else:
                AL[i], AU[i] = rhs, rhs

        A = sparse.coo_matrix((data, (rows, cols)), shape=(self.m, self.n)).tocsr()
        return A, AL, AU

    def add_to(self, solver):
        """
        Add every constraint to a solver, all or nothing.

        If a constraint is rejected, the ones already added by this call are
        removed again before the error is re-raised.
        """
        added = []
        try:
            for constraint in self.constraints:
                solver.add_constraint(constraint)
                added.append(constraint)
        except Exception:
            logger.debug("Rolling back %d constraints of a rejected system", len(added))
            for constraint in reversed(added):
                solver.remove_constraint(constraint)
            raise

    def remove_from(self, solver):
        """Remove every constraint of the system that the solver holds"""
        for constraint in self.constraints:
            if solver.has_constraint(constraint):
                solver.remove_constraint(constraint)

    def values(self) -> np.ndarray:
        """Current variable values, in column order"""
        return np.array([var.value for var in self.variables], dtype=np.float64)

    def __repr__(self):
        return f"<strata.LinearSystem m={self.m} n={self.n}>"
