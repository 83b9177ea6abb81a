"""
Analysis module for reaction networks.

This module provides tabular, graph and symbolic views of a network,
including the reaction catalog, the Jacobian connectivity and the
symbolic rate equations.
"""

from .connectivity import (
    create_connectivity_graph,
    create_reaction_graph,
    reactants_dataframe,
    reactions_dataframe,
)
from .equations import NetworkEquations

__all__ = [
    # Tables
    'reactants_dataframe',
    'reactions_dataframe',
    # Graphs
    'create_connectivity_graph',
    'create_reaction_graph',
    # Symbolic equations
    'NetworkEquations',
]
