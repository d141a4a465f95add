"""
Exceptions raised by the strata solver
"""


class SolverError(Exception):
    """Base class for all solver errors"""


class UnsatisfiableConstraint(SolverError):
    """A required constraint conflicts with the required constraints already present"""

    def __init__(self, constraint):
        super().__init__(f"Unsatisfiable constraint: {constraint!r}")
        self.constraint = constraint


class DuplicateConstraint(SolverError):
    """The constraint object has already been added to the solver"""

    def __init__(self, constraint):
        super().__init__(f"Duplicate constraint: {constraint!r}")
        self.constraint = constraint


class UnknownConstraint(SolverError):
    """The constraint object has not been added to the solver"""

    def __init__(self, constraint):
        super().__init__(f"Unknown constraint: {constraint!r}")
        self.constraint = constraint


class DuplicateEditVariable(SolverError):
    """The variable already has an open edit session"""

    def __init__(self, variable):
        super().__init__(f"Duplicate edit variable: {variable!r}")
        self.variable = variable


class UnknownEditVariable(SolverError):
    """The variable has no open edit session"""

    def __init__(self, variable):
        super().__init__(f"Unknown edit variable: {variable!r}")
        self.variable = variable


class BadRequiredStrength(SolverError):
    """Edit variables cannot be opened at required strength"""

    def __init__(self, message="A required strength cannot be used in this context"):
        super().__init__(message)


class InternalSolverError(SolverError):
    """The tableau reached a state that should be impossible"""
