"""
Constraint strengths for the strata solver

A strength is a single float built from three tiers (strong, medium, weak).
Each tier is clamped to [0, 1000] and scaled so that no amount of a weaker
tier can outweigh one unit of a stronger tier.
"""
import numpy as np
from typing import Union


_TIER_MAX = 1000.0


def create(a: float, b: float, c: float, w: float = 1.0) -> float:
    """
    Create a strength from its three tiers and a weight.

    Parameters
    ----------
    a : float
        Strong tier
    b : float
        Medium tier
    c : float
        Weak tier
    w : float, optional
        Weight applied to every tier before clamping (default: 1.0)

    Returns
    -------
    float
        Combined strength

    Examples
    --------
    >>> create(1.0, 0.0, 0.0)
    1000000.0
    >>> create(0.0, 2.0, 0.0, w=0.5)
    1000.0
    """
    tiers = np.clip(np.array([a, b, c], dtype=np.float64) * w, 0.0, _TIER_MAX)
    return float(tiers[0] * 1000000.0 + tiers[1] * 1000.0 + tiers[2])


REQUIRED = create(1000.0, 1000.0, 1000.0)
STRONG = create(1.0, 0.0, 0.0)
MEDIUM = create(0.0, 1.0, 0.0)
WEAK = create(0.0, 0.0, 1.0)

_NAMED = {
    'required': REQUIRED,
    'strong': STRONG,
    'medium': MEDIUM,
    'weak': WEAK,
}


def clip(value: float) -> float:
    """Clamp a strength into [0, REQUIRED]"""
    return float(np.clip(value, 0.0, REQUIRED))


def is_required(value: float) -> bool:
    return clip(value) >= REQUIRED


def resolve(value: Union[str, float, int]) -> float:
    """
    Turn a strength name or number into a clipped numeric strength.

    Parameters
    ----------
    value : str or float
        One of 'required', 'strong', 'medium', 'weak' (case-insensitive),
        or a numeric strength

    Returns
    -------
    float
        Strength clipped to [0, REQUIRED]
    """
    if isinstance(value, str):
        try:
            return _NAMED[value.strip().lower()]
        except KeyError:
            raise ValueError(
                f"Unknown strength name '{value}' "
                f"(expected one of: {', '.join(_NAMED)})"
            ) from None
    if isinstance(value, (bool, np.bool_)):
        raise TypeError("Strength must be a number or a strength name")
    if not isinstance(value, (int, float, np.number)):
        raise TypeError("Strength must be a number or a strength name")
    return clip(float(value))


def describe(value: float) -> str:
    """Name of a strength if it is one of the predefined levels, else its number"""
    for name, level in _NAMED.items():
        if value == level:
            return name
    return repr(float(value))
