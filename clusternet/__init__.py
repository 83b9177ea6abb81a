"""
clusternet - Cluster Reaction Network Engine

Reaction networks of point-defect clusters with super-cluster grouping,
providing fluxes and analytic partial derivatives for cluster dynamics solvers.
"""

from .core.clusters import Cluster, Reactant, ReactantKind, SuperCluster
from .core.errors import ClusterNetError, ConfigurationError
from .core.network import NetworkConfiguration, ReactionNetwork
from .core.properties import ReactantProperties
from .core.reactions import Reaction, ReactionType
from .core.species import Species, SpeciesCollection, SpeciesType
from .io.parser import InputParser

__version__ = "0.1.0"
__author__ = "clusternet Team"

__all__ = [
    "Species",
    "SpeciesType",
    "SpeciesCollection",
    "ReactantProperties",
    "Cluster",
    "SuperCluster",
    "Reactant",
    "ReactantKind",
    "Reaction",
    "ReactionType",
    "NetworkConfiguration",
    "ReactionNetwork",
    "InputParser",
    "ClusterNetError",
    "ConfigurationError",
]
