"""
Reaction network: reactant registry, reaction enumeration and per grid point evaluation.
"""

import itertools
import logging
import math
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import sparse

from ..utils import BOLTZMANN_CONSTANT_EV, format_quantity
from ..utils.constants import (
    HELIUM_RADIUS,
    IRON_LATTICE_CONSTANT,
    LENGTH_UNIT,
    TEMPERATURE_UNIT,
    TUNGSTEN_LATTICE_CONSTANT,
    URANIUM_DIOXIDE_LATTICE_CONSTANT,
    XENON_RADIUS,
)
from .clusters import Cluster, Reactant, ReactantKind, SuperCluster
from .errors import ConfigurationError
from .properties import ReactantProperties, compute_default_radius, parse_config_quantity
from .reactions import ReactionCatalog, ReactionType
from .species import Composition, CompositionLike, SpeciesCollection, SpeciesType

logger = logging.getLogger(__name__)


class MaterialPreset(NamedTuple):
    lattice_parameter: float  # nm
    impurity_radius: float  # nm
    atoms_per_cell: float  # atomic volume = a^3 / atoms_per_cell


MATERIAL_PRESETS = {
    "W": MaterialPreset(TUNGSTEN_LATTICE_CONSTANT, HELIUM_RADIUS, 2.0),
    "UO2": MaterialPreset(URANIUM_DIOXIDE_LATTICE_CONSTANT, XENON_RADIUS, 4.0),
    "Fe": MaterialPreset(IRON_LATTICE_CONSTANT, HELIUM_RADIUS, 2.0),
}


@dataclass
class NetworkConfiguration:
    """Host material and species layout of a reaction network."""

    species: SpeciesCollection
    grouped_species: Tuple[str, ...] = ()
    annihilation: Tuple[Tuple[str, str], ...] = ()
    material: str = "W"
    lattice_parameter: float = 0.0  # nm, <= 0 -> material default
    impurity_radius: float = 0.0  # nm, <= 0 -> material default

    def __post_init__(self):
        """Validate the configuration and apply the material defaults."""
        if self.material not in MATERIAL_PRESETS:
            raise ConfigurationError(
                f"Unknown material '{self.material}'. Available materials: {list(MATERIAL_PRESETS)}"
            )
        preset = MATERIAL_PRESETS[self.material]
        if self.lattice_parameter <= 0.0:
            logger.debug(f"Using the {self.material} lattice parameter {preset.lattice_parameter} nm")
            self.lattice_parameter = preset.lattice_parameter
        if self.impurity_radius <= 0.0:
            logger.debug(f"Using the {self.material} impurity radius {preset.impurity_radius} nm")
            self.impurity_radius = preset.impurity_radius

        self.grouped_species = tuple(self.grouped_species)
        if len(set(self.grouped_species)) != len(self.grouped_species):
            raise ConfigurationError(f"Grouped species listed twice: {list(self.grouped_species)}")
        for symbol in self.grouped_species:
            if symbol not in self.species:
                raise ConfigurationError(f"Grouped species '{symbol}' is not a tracked species")

        self.annihilation = tuple(tuple(pair) for pair in self.annihilation)
        for pair in self.annihilation:
            if len(pair) != 2 or pair[0] == pair[1]:
                raise ConfigurationError(f"Annihilation pairs need two different species, got {list(pair)}")
            for symbol in pair:
                if symbol not in self.species:
                    raise ConfigurationError(f"Annihilating species '{symbol}' is not a tracked species")

    @property
    def atomic_volume(self) -> float:
        """Volume of one lattice atom in nm^3."""
        return self.lattice_parameter ** 3 / MATERIAL_PRESETS[self.material].atoms_per_cell

    @property
    def n_moments(self) -> int:
        return len(self.grouped_species) + 1

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "NetworkConfiguration":
        """Create a network configuration from the ``network`` section."""
        if "species" not in config:
            raise ConfigurationError("The network configuration requires 'species'")
        species = SpeciesCollection.from_config(config["species"])
        if "annihilation" in config:
            annihilation = config["annihilation"] or ()
        else:
            # Every vacancy-type species annihilates with every interstitial-type species
            annihilation = [
                (v, i)
                for v in species.get_symbols_of_type(SpeciesType.VACANCY)
                for i in species.get_symbols_of_type(SpeciesType.INTERSTITIAL)
            ]
        return cls(
            species=species,
            grouped_species=tuple(config.get("grouped_species", ())),
            annihilation=tuple(tuple(pair) for pair in annihilation),
            material=config.get("material", "W"),
            lattice_parameter=parse_config_quantity(config.get("lattice_parameter", 0.0), LENGTH_UNIT, "lattice_parameter"),
            impurity_radius=parse_config_quantity(config.get("impurity_radius", 0.0), LENGTH_UNIT, "impurity_radius"),
        )

    def to_config(self) -> Dict[str, Any]:
        return {
            "material": self.material,
            "lattice_parameter": f"{self.lattice_parameter} {LENGTH_UNIT}",
            "impurity_radius": f"{self.impurity_radius} {LENGTH_UNIT}",
            "species": self.species.to_config(),
            "grouped_species": list(self.grouped_species),
            "annihilation": [list(pair) for pair in self.annihilation],
        }


class ReactionNetwork:
    """
    Registry of every reactant of a cluster dynamics network and of the
    reactions between them.

    Parameters
    ----------
    configuration : NetworkConfiguration
        Species layout and host material.
    clusters : Sequence[Cluster]
        Elementary clusters. They receive the ids 0..n_clusters-1.
    super_clusters : Sequence[SuperCluster], optional
        Super-clusters. They receive the following ids; their first moments are
        placed after every reactant in the DOF vector.
    temperature : float, optional
        Initial temperature in K. Rates stay zero until a temperature is set.
    """

    def __init__(
        self,
        configuration: NetworkConfiguration,
        clusters: Sequence[Cluster],
        super_clusters: Sequence[SuperCluster] = (),
        temperature: Optional[float] = None,
    ):
        start_time = time.time()
        self.configuration = configuration
        self.species = configuration.species
        self.grouped_species = configuration.grouped_species
        self.n_moments = configuration.n_moments

        self._clusters = list(clusters)
        self._super_clusters = list(super_clusters)
        self._reactants: List[Reactant] = self._clusters + self._super_clusters
        if not self._reactants:
            raise ConfigurationError("A reaction network needs at least one reactant")
        self._validate_reactants()
        self._build_lookups()
        self._register_reactants()
        self._assign_radii()

        self.catalog = ReactionCatalog()
        self._annihilation_indices = [
            (self.species.index(a), self.species.index(b)) for a, b in configuration.annihilation
        ]
        self._create_reactions()
        self.catalog.freeze()
        self._finalize()
        logger.info(
            f"Built network with {self.size()} reactants, {self.get_dof()} DOF and {len(self.catalog)} reactions "
            f"in {time.time() - start_time:.3f} seconds"
        )

        self.temperature: Optional[float] = None
        if temperature is not None:
            self.set_temperature(temperature)

    # Construction

    def _validate_reactants(self) -> None:
        for reactant in self._reactants:
            if reactant.species is not self.species:
                raise ConfigurationError(
                    f"Reactant {reactant.label} does not use the species collection of the network"
                )
        for super_cluster in self._super_clusters:
            if tuple(super_cluster.grouped_species) != self.grouped_species:
                raise ConfigurationError(
                    f"Super-cluster {super_cluster.label} groups {list(super_cluster.grouped_species)}, "
                    f"the network groups {list(self.grouped_species)}"
                )
            if super_cluster.mean is None:
                super_cluster.set_members()

        for first, second in itertools.combinations(self._super_clusters, 2):
            if all(max(a[0], b[0]) <= min(a[1], b[1]) for a, b in zip(first.bounds, second.bounds)):
                raise ConfigurationError(
                    f"Super-clusters {first.label} and {second.label} overlap",
                    context={"super_clusters": [first.label, second.label]},
                )
        for cluster in self._clusters:
            for super_cluster in self._super_clusters:
                if super_cluster.is_in(cluster.composition):
                    raise ConfigurationError(
                        f"Cluster {cluster.label} lies inside the bounds of super-cluster {super_cluster.label}",
                        context={"cluster": cluster.label, "super_cluster": super_cluster.label},
                    )

    def _build_lookups(self) -> None:
        """Build lookup tables from compositions and type names to reactants."""
        self._point_owner: Dict[Composition, Reactant] = {}
        self._by_type: Dict[str, List[Reactant]] = {}
        for reactant in self._reactants:
            for point in reactant.members:
                if point in self._point_owner:
                    raise ConfigurationError(
                        f"Composition {self.species.composition_to_label(point)} is listed twice "
                        f"({self._point_owner[point].label} and {reactant.label})",
                        context={
                            "composition": list(point),
                            "reactants": [self._point_owner[point].label, reactant.label],
                        },
                    )
                self._point_owner[point] = reactant
            self._by_type.setdefault(reactant.type_name, []).append(reactant)

    def _register_reactants(self) -> None:
        """Assign ids and moment ids and allocate the concentration state."""
        size = len(self._reactants)
        self.moments = np.zeros((size, self.n_moments))
        self.dof_columns = np.full((size, self.n_moments), -1, dtype=int)
        next_moment_id = size
        for reactant_id, reactant in enumerate(self._reactants):
            reactant.attach(self, reactant_id)
            self.dof_columns[reactant_id, 0] = reactant_id
            if reactant.kind is ReactantKind.SUPER:
                reactant.moment_ids = tuple(range(next_moment_id, next_moment_id + self.n_moments - 1))
                self.dof_columns[reactant_id, 1:] = reactant.moment_ids
                next_moment_id += self.n_moments - 1
        self._dof = next_moment_id
        self._super_ids = np.array([s.id for s in self._super_clusters], dtype=int)
        self._moment_id_matrix = self.dof_columns[self._super_ids, 1:]

    def _assign_radii(self) -> None:
        impurities = [
            self.species.index(s) for s in self.species.get_species_order()
            if self.species[s].type == SpeciesType.IMPURITY
        ]
        defects = [
            self.species.index(s) for s in self.species.get_species_order()
            if self.species[s].type != SpeciesType.IMPURITY
        ]
        for reactant in self._reactants:
            if reactant.radius is not None:
                continue
            counts = np.asarray(reactant.composition if reactant.kind is ReactantKind.CLUSTER else reactant.mean)
            reactant.radius = compute_default_radius(
                counts[impurities],
                counts[defects],
                self.configuration.lattice_parameter,
                self.configuration.impurity_radius,
            )

    def _combine(self, first_point: Composition, second_point: Composition) -> Tuple[Composition, bool]:
        """Product composition of two positions and whether a pair annihilated."""
        counts = [a + b for a, b in zip(first_point, second_point)]
        annihilated = False
        for a, b in self._annihilation_indices:
            n = min(counts[a], counts[b])
            if n > 0:
                counts[a] -= n
                counts[b] -= n
                annihilated = True
        return tuple(counts), annihilated

    def _create_reactions(self) -> None:
        """Enumerate every production and the dissociations that reverse them."""
        start_time = time.time()
        for i, first in enumerate(self._reactants):
            for second in self._reactants[i:]:
                if not (first.is_mobile or second.is_mobile):
                    continue
                self._create_pair_reactions(first, second)
        logger.info(
            f"Created {len(self.catalog.get_reactions(ReactionType.PRODUCTION))} productions and "
            f"{len(self.catalog.get_reactions(ReactionType.DISSOCIATION))} dissociations "
            f"in {time.time() - start_time:.3f} seconds"
        )

    def _create_pair_reactions(self, first: Reactant, second: Reactant) -> None:
        if first is second:
            pairs = itertools.combinations_with_replacement(first.members, 2)
        else:
            pairs = itertools.product(first.members, second.members)
        reverse_allowed = first.is_monomer or second.is_monomer
        for first_point, second_point in pairs:
            product_point, annihilated = self._combine(first_point, second_point)
            product = None
            if any(product_point):
                product = self._point_owner.get(product_point)
                if product is None:
                    continue
            reaction = self.catalog.get_or_create_production(first.id, second.id)
            if product is not None:
                reaction.add_product(product.id)
                product.create_production(reaction, product_point, first_point, second_point)
            first.create_combination(reaction, first_point, second_point)
            second.create_combination(reaction, second_point, first_point)

            if product is None or annihilated or not reverse_allowed:
                continue
            dissociation = self.catalog.get_or_create_dissociation(product.id, first.id, second.id)
            product.create_emission(dissociation, product_point)
            first.create_dissociation(dissociation, first_point, product_point)
            second.create_dissociation(dissociation, second_point, product_point)

    def _finalize(self) -> None:
        for reactant in self._reactants:
            reactant.reset_connectivities()
        missing = [r.label for r in self._reactants if not math.isfinite(r.formation_energy)]
        if missing:
            logger.warning(
                f"{len(missing)} reactants have no formation energy, their dissociations have zero rate: "
                f"{', '.join(missing[:5])}{' ...' if len(missing) > 5 else ''}"
            )
        logger.debug(
            f"Compiled {sum(r.n_effective_reactions for r in self._reactants)} effective reactions"
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ReactionNetwork":
        """Create a network from a full configuration.

        The configuration has a ``network`` section, a ``clusters`` list and an
        optional ``super_clusters`` list.
        """
        if "network" not in config:
            raise ConfigurationError("The configuration requires a 'network' section")
        network_config = config["network"]
        configuration = NetworkConfiguration.from_config(network_config)
        clusters: List[Cluster] = []
        for spec in config.get("clusters") or []:
            clusters.extend(_generate_clusters_from_spec(configuration.species, spec))
        super_clusters = [
            SuperCluster.from_config(configuration.species, configuration.grouped_species, spec)
            for spec in config.get("super_clusters") or []
        ]
        temperature = parse_config_quantity(network_config.get("temperature"), TEMPERATURE_UNIT, "temperature")
        return cls(configuration, clusters, super_clusters, temperature)

    def to_config(self) -> Dict[str, Any]:
        network_config = self.configuration.to_config()
        if self.temperature is not None:
            network_config["temperature"] = f"{self.temperature} {TEMPERATURE_UNIT}"
        config: Dict[str, Any] = {
            "network": network_config,
            "clusters": [c.to_config() for c in self._clusters],
        }
        if self._super_clusters:
            config["super_clusters"] = [s.to_config() for s in self._super_clusters]
        return config

    def copy(self) -> "ReactionNetwork":
        """Independent network with the same topology, temperature and concentrations."""
        other = ReactionNetwork.from_config(self.to_config())
        other.moments[:] = self.moments
        return other

    # Lookups

    def size(self) -> int:
        """Number of reactants."""
        return len(self._reactants)

    def get_dof(self) -> int:
        """Number of unknowns per grid point: reactants plus super-cluster moments."""
        return self._dof

    @property
    def clusters(self) -> Tuple[Cluster, ...]:
        return tuple(self._clusters)

    @property
    def super_clusters(self) -> Tuple[SuperCluster, ...]:
        return tuple(self._super_clusters)

    def get_reactant(self, reactant_id: int) -> Reactant:
        return self._reactants[reactant_id]

    def get(self, symbol: str, size: int) -> Optional[Reactant]:
        """Reactant holding the single-species composition ``symbol`` x ``size``, None if absent."""
        if size <= 0 or symbol not in self.species:
            return None
        return self._point_owner.get(self.species.unit_composition(symbol, size))

    def get_by_composition(self, composition: CompositionLike,
                           kind: Optional[ReactantKind] = None) -> Optional[Reactant]:
        """Reactant holding a composition, None if absent or of another kind."""
        if isinstance(composition, Mapping) and any(s not in self.species for s in composition):
            return None
        reactant = self._point_owner.get(self.species.to_composition(composition))
        if reactant is None or (kind is not None and reactant.kind is not kind):
            return None
        return reactant

    def get_by_label(self, label: str) -> Optional[Reactant]:
        try:
            composition = self.species.label_to_composition(label)
        except KeyError:
            # Label names a species this network does not track
            return None
        return self.get_by_composition(composition)

    def get_all(self, tag: Union[str, ReactantKind, None] = None) -> Tuple[Reactant, ...]:
        """All reactants in id order, optionally filtered by type name or kind."""
        if tag is None:
            return tuple(self._reactants)
        if tag == "super":
            tag = ReactantKind.SUPER
        if isinstance(tag, ReactantKind):
            return tuple(r for r in self._reactants if r.kind is tag)
        return tuple(self._by_type.get(tag, ()))

    def get_type_names(self) -> List[str]:
        return list(self._by_type)

    def __len__(self) -> int:
        return len(self._reactants)

    def __iter__(self) -> Iterator[Reactant]:
        return iter(self._reactants)

    def __getitem__(self, reactant_id: int) -> Reactant:
        return self._reactants[reactant_id]

    # Temperature and state

    def set_temperature(self, temperature: float) -> None:
        """Recompute diffusion coefficients and every rate constant for a new temperature.

        The new values are computed first and written together, so a failure
        leaves the network at its previous temperature.
        """
        if not math.isfinite(temperature) or temperature <= 0.0:
            raise ValueError(f"Temperature must be positive, got {temperature}")
        start_time = time.time()
        diffusion = np.array([
            r.properties.get_diffusion_coefficient(temperature, BOLTZMANN_CONSTANT_EV) for r in self._reactants
        ])
        rates = self.catalog.compute_rates(self._reactants, diffusion, self.configuration.atomic_volume, temperature)
        self.catalog.set_rates(rates)
        for reactant, value in zip(self._reactants, diffusion):
            reactant.diffusion_coefficient = float(value)
        self.temperature = temperature
        logger.info(f"Temperature set to {temperature} K in {time.time() - start_time:.3f} seconds")

    def _check_buffer(self, buffer: np.ndarray) -> None:
        if buffer.ndim != 1 or buffer.shape[0] < self._dof:
            raise ValueError(f"Expected a buffer of {self._dof} entries, got shape {buffer.shape}")

    def update_concentrations_from_array(self, buffer: np.ndarray) -> None:
        """Copy a DOF vector into the reactant state."""
        buffer = np.asarray(buffer, dtype=float)
        self._check_buffer(buffer)
        self.moments[:, 0] = buffer[: self.size()]
        if len(self._super_ids):
            self.moments[self._super_ids, 1:] = buffer[self._moment_id_matrix]

    def fill_concentrations_array(self, buffer: Optional[np.ndarray] = None) -> np.ndarray:
        """Copy the reactant state into a DOF vector."""
        if buffer is None:
            buffer = np.zeros(self._dof)
        self._check_buffer(buffer)
        buffer[: self.size()] = self.moments[:, 0]
        if len(self._super_ids):
            buffer[self._moment_id_matrix] = self.moments[self._super_ids, 1:]
        return buffer

    # Connectivity

    def _rows_of(self, reactant: Reactant) -> List[int]:
        if reactant.kind is ReactantKind.SUPER:
            return [reactant.id, *reactant.moment_ids]
        return [reactant.id]

    def get_diagonal_fill(self, fill: Optional[np.ndarray] = None) -> Dict[int, List[int]]:
        """Non-zero pattern of the reaction Jacobian block.

        Parameters
        ----------
        fill : np.ndarray, optional
            Dense DOF x DOF array (or its flattened row-major form) receiving
            ones at every non-zero position.

        Returns
        -------
        Dict[int, List[int]]
            Row DOF index -> sorted column DOF indices.
        """
        pattern: Dict[int, List[int]] = {}
        for reactant in self._reactants:
            columns = reactant.get_connectivity()
            for row in self._rows_of(reactant):
                pattern[row] = list(columns)
        if fill is not None:
            for row, columns in pattern.items():
                if fill.ndim == 2:
                    fill[row, columns] = 1
                else:
                    fill[[row * self._dof + c for c in columns]] = 1
        return pattern

    def get_connectivity_matrix(self) -> sparse.csr_matrix:
        """Non-zero pattern of the reaction Jacobian block as a sparse matrix of ones."""
        pattern = self.get_diagonal_fill()
        rows = [row for row, columns in pattern.items() for _ in columns]
        cols = [c for columns in pattern.values() for c in columns]
        return sparse.csr_matrix((np.ones(len(rows)), (rows, cols)), shape=(self._dof, self._dof))

    # Grid point evaluation

    def compute_all_fluxes(self, buffer: Optional[np.ndarray] = None,
                           out: Optional[np.ndarray] = None) -> np.ndarray:
        """Rate of change of every DOF for the current (or given) concentrations."""
        if buffer is not None:
            self.update_concentrations_from_array(buffer)
        if out is None:
            out = np.zeros(self._dof)
        else:
            self._check_buffer(out)
            out[: self._dof] = 0.0
        for reactant in self._reactants:
            out[reactant.id] = reactant.get_total_flux()
            if reactant.kind is ReactantKind.SUPER:
                out[list(reactant.moment_ids)] = reactant.moment_flux
        return out

    def compute_all_partials(self, buffer: Optional[np.ndarray] = None) -> sparse.csr_matrix:
        """Reaction Jacobian block of one grid point."""
        if buffer is not None:
            self.update_concentrations_from_array(buffer)
        scratch = np.zeros(self._dof)
        rows: List[int] = []
        cols: List[int] = []
        values: List[float] = []
        for reactant in self._reactants:
            reactant.get_partial_derivatives(scratch)
            columns, row_values = reactant.harvest_partial_derivatives(scratch)
            rows.extend([reactant.id] * len(columns))
            cols.extend(columns)
            values.extend(row_values)
            if reactant.kind is ReactantKind.SUPER:
                for dim, moment_id in enumerate(reactant.moment_ids):
                    reactant.get_moment_partial_derivatives(scratch, dim)
                    columns, row_values = reactant.harvest_partial_derivatives(scratch)
                    rows.extend([moment_id] * len(columns))
                    cols.extend(columns)
                    values.extend(row_values)
        return sparse.csr_matrix((values, (rows, cols)), shape=(self._dof, self._dof))

    # Totals

    def get_total_concentration(self, tag: Union[str, ReactantKind, None] = None) -> float:
        """Sum of the concentration of every composition of the selected reactants."""
        return sum(r.get_total_concentration() for r in self.get_all(tag))

    def get_total_atom_concentration(self, symbol: str) -> float:
        """Concentration of ``symbol`` held in clusters of every size."""
        return sum(r.get_total_atom_concentration(symbol) for r in self._reactants)

    # Reporting

    def get_network_summary(self) -> Dict[str, Any]:
        """Get a summary of the network."""
        return {
            "material": self.configuration.material,
            "species": self.species.get_species_order(),
            "grouped_species": list(self.grouped_species),
            "n_reactants": self.size(),
            "n_clusters": len(self._clusters),
            "n_super_clusters": len(self._super_clusters),
            "dof": self.get_dof(),
            "n_productions": len(self.catalog.get_reactions(ReactionType.PRODUCTION)),
            "n_dissociations": len(self.catalog.get_reactions(ReactionType.DISSOCIATION)),
            "n_effective_reactions": sum(r.n_effective_reactions for r in self._reactants),
            "temperature": self.temperature,
            "reactant_types": {name: len(members) for name, members in self._by_type.items()},
        }

    def print_summary(self) -> None:
        """Print a summary of the network."""
        summary = self.get_network_summary()
        print("Reaction Network Summary")
        print("=" * 50)
        print(f"Material: {summary['material']} (a = {format_quantity(self.configuration.lattice_parameter, LENGTH_UNIT, 4)})")
        print(f"Species: {', '.join(summary['species'])}")
        print(f"Grouped species: {', '.join(summary['grouped_species']) or 'none'}")
        print(f"Reactants: {summary['n_reactants']}")
        print(f"  Clusters: {summary['n_clusters']}")
        print(f"  Super-clusters: {summary['n_super_clusters']}")
        for name, count in summary["reactant_types"].items():
            print(f"    {name}: {count}")
        print(f"Degrees of freedom: {summary['dof']}")
        print(f"Productions: {summary['n_productions']}")
        print(f"Dissociations: {summary['n_dissociations']}")
        print(f"Effective reactions: {summary['n_effective_reactions']}")
        if summary["temperature"] is None:
            print("Temperature: not set")
        else:
            print(f"Temperature: {format_quantity(summary['temperature'], TEMPERATURE_UNIT, 1)}")


def _generate_clusters_from_spec(species: SpeciesCollection, spec: Dict[str, Any]) -> List[Cluster]:
    """Generate clusters from a single specification with composition ranges."""
    if "composition" not in spec:
        raise ConfigurationError(f"Cluster specification {spec} requires 'composition'")
    ranges = []
    for symbol in spec["composition"]:
        if symbol not in species:
            raise ConfigurationError(f"Unknown species '{symbol}' in cluster specification")
    for symbol in species.get_species_order():
        range_spec = spec["composition"].get(symbol, 0)
        if isinstance(range_spec, (list, tuple)):
            if len(range_spec) == 1:
                low = high = range_spec[0]
            elif len(range_spec) == 2:
                low, high = range_spec
            else:
                raise ConfigurationError(f"Invalid range specification for {symbol}: {range_spec}")
        elif isinstance(range_spec, int):
            low = high = range_spec
        else:
            raise ConfigurationError(f"Invalid range specification for {symbol}: {range_spec}")
        if low > high:
            raise ConfigurationError(f"Inconsistent range {low} > {high} for {symbol}")
        ranges.append(range(low, high + 1))

    clusters = []
    index = 0
    for counts in itertools.product(*ranges):
        # Skip empty clusters
        if sum(counts) == 0:
            continue
        clusters.append(Cluster(species, counts, ReactantProperties.from_config(spec, index)))
        index += 1
    return clusters
