"""
Utility modules for clusternet.
"""

from .constants import BOLTZMANN_CONSTANT_EV, PI, format_quantity, parse_quantity, pint, ureg

__all__ = [
    "BOLTZMANN_CONSTANT_EV",
    "PI",
    "format_quantity",
    "parse_quantity",
    "ureg",
    "pint",
]
