"""
Input and output of network configurations.
"""

from .parser import InputParser

__all__ = ["InputParser"]
