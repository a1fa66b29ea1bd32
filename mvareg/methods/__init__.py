"""
Methods Module
==============

Regression methods that can be booked by name with an option string.

Key Components:
    GradientBDT: Gradient-boosted trees (xgboost), method type 'BDT'
    DecisionTree: Single regression tree (scikit-learn), method type 'DT'
    Options: Colon-separated option string parser
    book_method: Build a method from its type, name and options
"""

from mvareg.methods.options import Options
from mvareg.methods.base import BookedMethod
from mvareg.methods.bdt import GradientBDT
from mvareg.methods.decision_tree import DecisionTree

METHOD_TYPES = {
    'BDT': GradientBDT,
    'DT': DecisionTree,
}


def book_method(method_type: str, name: str, option_string: str = '') -> BookedMethod:
    """
    Build a booked method.

    Args:
        method_type: 'BDT' or 'DT' (case-insensitive)
        name: Method name, used for weight files and prediction columns
        option_string: Colon-separated options

    Raises:
        ValueError: Unknown method type or invalid options
    """
    cls = METHOD_TYPES.get(method_type.upper())
    if cls is None:
        raise ValueError(
            f"Unknown method type '{method_type}'. Available: {sorted(METHOD_TYPES)}"
        )
    return cls(name, option_string)


__all__ = [
    "Options",
    "BookedMethod",
    "GradientBDT",
    "DecisionTree",
    "METHOD_TYPES",
    "book_method",
]
