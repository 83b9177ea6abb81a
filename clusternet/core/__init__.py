"""
Core reaction network functionality.
"""

from .clusters import Cluster, Reactant, ReactantKind, SuperCluster, SuperClusterState
from .coefficients import DissociationCoefficients, ProductionCoefficients, ReactingLists
from .errors import ClusterNetError, ConfigurationError
from .network import MATERIAL_PRESETS, NetworkConfiguration, ReactionNetwork
from .properties import ReactantProperties
from .reactions import Reaction, ReactionCatalog, ReactionType
from .species import Species, SpeciesCollection, SpeciesType

__all__ = [
    'Species', 'SpeciesCollection', 'SpeciesType',
    'ReactantProperties',
    'Cluster', 'SuperCluster', 'SuperClusterState', 'Reactant', 'ReactantKind',
    'ProductionCoefficients', 'DissociationCoefficients', 'ReactingLists',
    'Reaction', 'ReactionCatalog', 'ReactionType',
    'NetworkConfiguration', 'ReactionNetwork', 'MATERIAL_PRESETS',
    'ClusterNetError', 'ConfigurationError',
]
