"""
Parameters class for the strata solver
"""

class Parameters:
    """
    Configuration parameters for the strata solver.

    Attributes
    ----------
    epsilon : float
        Threshold below which a coefficient or row constant is treated as
        zero (default: 1e-8)
    max_iter : int
        Maximum number of pivots in a single optimization pass before the
        solver gives up with an InternalSolverError (default: 2^31 - 1)

    Examples
    --------
    >>> param = Parameters()
    >>> param.epsilon = 1e-10
    >>> param.max_iter = 10000
    >>> solver = Solver(param)
    """

    def __init__(self):
        self.epsilon = 1e-8
        self.max_iter = 2147483647  # INT32_MAX

    def __repr__(self):
        return (f"Parameters(epsilon={self.epsilon}, "
                f"max_iter={self.max_iter})")

    def validate(self):
        """Raise ValueError if a parameter is out of range"""
        if not self.epsilon > 0.0:
            raise ValueError(f"epsilon must be positive, got {self.epsilon}")
        if int(self.max_iter) < 1:
            raise ValueError(f"max_iter must be at least 1, got {self.max_iter}")
        return self

    @classmethod
    def from_dict(cls, d):
        """Create Parameters from dictionary"""
        param = cls()
        for key, value in d.items():
            if hasattr(param, key):
                setattr(param, key, value)
        return param

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'epsilon': self.epsilon,
            'max_iter': self.max_iter,
        }
