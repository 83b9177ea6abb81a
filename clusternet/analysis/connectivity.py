"""
Tabular and graph views of a reaction network.
"""

from typing import Optional

import networkx as nx
import numpy as np
import pandas as pd

from ..core.clusters import ReactantKind
from ..core.network import ReactionNetwork
from ..core.reactions import ReactionType


def reactants_dataframe(network: ReactionNetwork) -> pd.DataFrame:
    """One row per reactant with its physical parameters and current state."""
    rows = []
    for reactant in network:
        rows.append({
            "id": reactant.id,
            "label": reactant.label,
            "kind": reactant.kind.value,
            "type": reactant.type_name,
            "n_tot": reactant.n_tot,
            "radius": reactant.radius,
            "formation_energy": reactant.formation_energy,
            "diffusion_coefficient": reactant.diffusion_coefficient,
            "concentration": reactant.concentration,
            "moment_ids": list(reactant.moment_ids) if reactant.kind is ReactantKind.SUPER else [],
        })
    return pd.DataFrame(rows).set_index("id")


def reactions_dataframe(network: ReactionNetwork, reaction_type: Optional[ReactionType] = None) -> pd.DataFrame:
    """One row per reaction of the catalog with its current rate constant."""
    rows = []
    for reaction in network.catalog.get_reactions(reaction_type):
        rows.append({
            "index": reaction.index,
            "type": reaction.type.value,
            "reactants": " + ".join(network[i].label for i in reaction.reactants),
            "products": " + ".join(network[i].label for i in reaction.products) or "-",
            "k_constant": reaction.k_constant,
        })
    return pd.DataFrame(rows, columns=["index", "type", "reactants", "products", "k_constant"]).set_index("index")


def create_connectivity_graph(network: ReactionNetwork) -> nx.DiGraph:
    """
    Create a directed graph of the Jacobian non-zero pattern.

    Parameters
    ----------
    network : ReactionNetwork

    Returns
    -------
    graph : nx.DiGraph
        One node per DOF; an edge column -> row for every non-zero entry.
    """
    graph = nx.DiGraph()
    for reactant in network:
        graph.add_node(reactant.id, label=reactant.label, kind=reactant.kind.value, moment=None)
        if reactant.kind is ReactantKind.SUPER:
            for symbol, moment_id in zip(reactant.grouped_species, reactant.moment_ids):
                graph.add_node(moment_id, label=f"{reactant.label}:{symbol}", kind="moment", moment=symbol)
    for row, columns in network.get_diagonal_fill().items():
        for column in columns:
            graph.add_edge(column, row)
    return graph


def create_reaction_graph(network: ReactionNetwork) -> nx.DiGraph:
    """
    Create a directed graph of the reactions with their current fluxes.

    Production edges go from each reactant to the product and dissociation
    edges from the parent to each product. The ``flux`` attribute uses the
    mean concentrations of the reactants.

    Parameters
    ----------
    network : ReactionNetwork

    Returns
    -------
    graph : nx.DiGraph
    """
    graph = nx.DiGraph()
    graph.add_nodes_from(r.label for r in network)
    graph.add_node("annihilation")
    for reaction in network.catalog:
        concentrations = np.array([network[i].concentration for i in reaction.reactants])
        flux = reaction.k_constant * float(np.prod(concentrations))
        sources = [network[i].label for i in reaction.reactants]
        targets = [network[i].label for i in reaction.products] or ["annihilation"]
        for source in sources:
            for target in targets:
                if source == target:
                    continue
                if graph.has_edge(source, target):
                    graph[source][target]["flux"] += flux
                    graph[source][target]["reactions"].append(reaction.index)
                else:
                    graph.add_edge(source, target, flux=flux, reactions=[reaction.index])
    return graph
