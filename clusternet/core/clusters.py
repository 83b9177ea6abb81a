"""
Reactant definitions: elementary clusters and super-clusters.
"""

import itertools
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, TypeAlias

import numpy as np

from .coefficients import COMBINATION, DISSOCIATION, EMISSION, FLUX_SIGNS, PRODUCTION, ReactingLists
from .errors import ConfigurationError
from .properties import ReactantProperties
from .species import Composition, CompositionLike, SpeciesCollection

logger = logging.getLogger(__name__)


class ReactantKind(Enum):
    """Kinds of reactants."""

    CLUSTER = "cluster"
    SUPER = "super"


class SuperClusterState(Enum):
    """Construction state of a super-cluster."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"


Bounds = Tuple[Tuple[int, int], ...]


class _ReactantBase:
    """Reaction bookkeeping shared by clusters and super-clusters."""

    kind: ClassVar[ReactantKind]

    def _init_reactant(self) -> None:
        self.id: Optional[int] = None
        self.diffusion_coefficient = 0.0
        self.radius: Optional[float] = self.properties.radius
        self._network = None
        self._reacting: Optional[ReactingLists] = None

    def attach(self, network, reactant_id: int) -> None:
        """Bind the reactant to the network state that holds its concentration."""
        if self._network is not None:
            raise ConfigurationError(f"Reactant {self.label} already belongs to a network")
        self._network = network
        self.id = reactant_id
        self._reacting = ReactingLists(n_moments=network.n_moments)

    @property
    def n_tot(self) -> int:
        return 1

    @property
    def formation_energy(self) -> float:
        return self.properties.formation_energy

    @property
    def migration_energy(self) -> float:
        return self.properties.migration_energy

    @property
    def diffusion_factor(self) -> float:
        return self.properties.diffusion_factor

    @property
    def is_mobile(self) -> bool:
        return self.properties.is_mobile

    def _check_attached(self) -> None:
        if self._reacting is None:
            raise ConfigurationError(f"Reactant {self.label} is not part of a network")

    def _check_ready(self) -> None:
        if self._reacting is None or self._reacting.compiled is None:
            raise ConfigurationError(f"Reactant {self.label} is used before its connectivity was set")

    def _partner(self, reaction_id: int):
        return self._network.get_reactant(reaction_id)

    # Reaction creation

    def create_production(self, reaction, product_point: Composition, first_point: Composition,
                          second_point: Composition) -> None:
        """Register that ``reaction`` (A + B) produces this reactant at ``product_point``."""
        self._check_attached()
        first = self._partner(reaction.reactants[0])
        second = self._partner(reaction.reactants[1])
        self._reacting.add_production(
            reaction.index,
            first.id,
            second.id,
            first.get_distances(first_point),
            second.get_distances(second_point),
            self.get_projection_factors(product_point),
        )

    def create_combination(self, reaction, self_point: Composition, partner_point: Composition) -> None:
        """Register that this reactant is consumed by ``reaction`` at ``self_point``."""
        self._check_attached()
        first_id, second_id = reaction.reactants
        partner = self._partner(second_id if first_id == self.id else first_id)
        self._reacting.add_combination(
            reaction.index,
            self.id,
            partner.id,
            self.get_distances(self_point),
            partner.get_distances(partner_point),
            self.get_projection_factors(self_point),
        )

    def create_dissociation(self, reaction, self_point: Composition, parent_point: Composition) -> None:
        """Register that this reactant is emitted by the dissociating parent of ``reaction``."""
        self._check_attached()
        parent = self._partner(reaction.reactants[0])
        first_id, second_id = reaction.products
        other_id = second_id if first_id == self.id else first_id
        self._reacting.add_dissociation(
            reaction.index,
            parent.id,
            other_id,
            parent.get_distances(parent_point),
            self.get_projection_factors(self_point),
        )

    def create_emission(self, reaction, self_point: Composition) -> None:
        """Register that this reactant dissociates through ``reaction`` at ``self_point``."""
        self._check_attached()
        self._reacting.add_emission(
            reaction.index,
            self.id,
            reaction.products,
            self.get_distances(self_point),
            self.get_projection_factors(self_point),
        )

    def reset_connectivities(self) -> None:
        """Compile the reaction lists and rebuild the connectivity."""
        self._check_attached()
        self._reacting.compile(self._network.dof_columns)

    def get_connectivity(self) -> List[int]:
        """DOF columns this reactant's rows depend on."""
        self._check_ready()
        return list(self._reacting.connectivity)

    @property
    def reacting_lists(self) -> Optional[ReactingLists]:
        return self._reacting

    @property
    def n_effective_reactions(self) -> int:
        return 0 if self._reacting is None else self._reacting.n_entries

    # Fluxes

    def _flux(self, name: str) -> np.ndarray:
        self._check_ready()
        return self._reacting.flux(name, self._network.moments, self._network.catalog.rates) / self.n_tot

    def _collect(self, name: str) -> float:
        vector = self._flux(name)
        self._accumulate_moment_flux(FLUX_SIGNS[name] * vector[1:])
        return float(vector[0])

    def _accumulate_moment_flux(self, values: np.ndarray) -> None:
        pass

    def _reset_moment_flux(self) -> None:
        pass

    def get_production_flux(self) -> float:
        return self._collect(PRODUCTION)

    def get_combination_flux(self) -> float:
        return self._collect(COMBINATION)

    def get_dissociation_flux(self) -> float:
        return self._collect(DISSOCIATION)

    def get_emission_flux(self) -> float:
        return self._collect(EMISSION)

    def get_total_flux(self) -> float:
        """Net rate of change: production - combination + dissociation - emission."""
        self._reset_moment_flux()
        return (
            self.get_production_flux()
            - self.get_combination_flux()
            + self.get_dissociation_flux()
            - self.get_emission_flux()
        )

    # Partial derivatives

    def _partials(self, name: str, scratch: np.ndarray, output: int = 0) -> None:
        self._check_ready()
        if scratch.shape[0] < self._network.get_dof():
            raise ValueError(f"Scratch buffer has {scratch.shape[0]} entries, expected {self._network.get_dof()}")
        self._reacting.partial_derivatives(
            name,
            scratch,
            output,
            1.0 / self.n_tot,
            self._network.moments,
            self._network.catalog.rates,
            self._network.dof_columns,
        )

    def get_production_partial_derivatives(self, scratch: np.ndarray) -> None:
        self._partials(PRODUCTION, scratch)

    def get_combination_partial_derivatives(self, scratch: np.ndarray) -> None:
        self._partials(COMBINATION, scratch)

    def get_dissociation_partial_derivatives(self, scratch: np.ndarray) -> None:
        self._partials(DISSOCIATION, scratch)

    def get_emission_partial_derivatives(self, scratch: np.ndarray) -> None:
        self._partials(EMISSION, scratch)

    def get_partial_derivatives(self, scratch: np.ndarray) -> None:
        """Add d(total flux)/d(DOF) into the caller-owned scratch buffer."""
        for name in FLUX_SIGNS:
            self._partials(name, scratch)

    def reset_partial_derivatives(self, scratch: np.ndarray) -> None:
        scratch[self.get_connectivity()] = 0.0

    def harvest_partial_derivatives(self, scratch: np.ndarray) -> Tuple[List[int], np.ndarray]:
        """Return the connectivity columns with their scratch values and zero them."""
        columns = self.get_connectivity()
        values = scratch[columns].copy()
        scratch[columns] = 0.0
        return columns, values

    def __repr__(self) -> str:
        return f"{self.label}"


@dataclass(eq=False, repr=False)
class Cluster(_ReactantBase):
    """Represents an elementary cluster with an exact composition."""

    kind: ClassVar[ReactantKind] = ReactantKind.CLUSTER

    species: SpeciesCollection
    composition: Composition
    properties: ReactantProperties = field(default_factory=ReactantProperties)

    def __post_init__(self):
        try:
            self.composition = self.species.to_composition(self.composition)
        except (KeyError, ValueError) as err:
            raise ConfigurationError(f"Invalid cluster composition {self.composition}: {err}") from err
        if any(count < 0 for count in self.composition):
            raise ConfigurationError(f"Negative species count in cluster composition {self.composition}")
        if not any(self.composition):
            raise ConfigurationError("Cluster composition must contain at least one species")
        self.label = self.species.composition_to_label(self.composition)
        self.type_name = self.species.type_name(self.composition)
        self.size = sum(self.composition)
        self._init_reactant()

    @classmethod
    def from_config(cls, species: SpeciesCollection, composition: CompositionLike,
                    config: Optional[Dict[str, Any]] = None, index: int = 0) -> "Cluster":
        return cls(species, composition, ReactantProperties.from_config(config or {}, index))

    def to_config(self) -> Dict[str, Any]:
        config: Dict[str, Any] = {"composition": {s: c for s, c in self.species.to_dict(self.composition).items() if c}}
        config.update(self.properties.to_config())
        return config

    @property
    def members(self) -> Tuple[Composition, ...]:
        return (self.composition,)

    @property
    def is_monomer(self) -> bool:
        return self.size == 1

    def get_count(self, symbol: str) -> int:
        return self.composition[self.species.index(symbol)]

    @property
    def concentration(self) -> float:
        self._check_attached()
        return float(self._network.moments[self.id, 0])

    @concentration.setter
    def concentration(self, value: float) -> None:
        self._check_attached()
        self._network.moments[self.id, 0] = value

    def get_concentration(self, *distances: float) -> float:
        """Clusters have no internal structure, the distances are ignored."""
        return self.concentration

    def get_total_concentration(self) -> float:
        return self.concentration

    def get_total_atom_concentration(self, symbol: str) -> float:
        return self.concentration * self.get_count(symbol)

    def is_in(self, *coords) -> bool:
        point = _coords_to_composition(self.species, coords)
        return point == self.composition

    def get_distances(self, point: Composition) -> np.ndarray:
        vector = np.zeros(self._network.n_moments)
        vector[0] = 1.0
        return vector

    def get_projection_factors(self, point: Composition) -> np.ndarray:
        return self.get_distances(point)


@dataclass(eq=False, repr=False)
class SuperCluster(_ReactantBase):
    """
    Represents a group of neighbouring compositions approximated by a mean
    concentration l0 and one first order moment l1 per grouped dimension.

    The concentration at a member composition is reconstructed as
    ``l0 + sum_d distance_d * l1_d``.
    """

    kind: ClassVar[ReactantKind] = ReactantKind.SUPER

    species: SpeciesCollection
    bounds: Bounds
    grouped_species: Sequence[str]
    properties: ReactantProperties = field(default_factory=ReactantProperties)

    def __post_init__(self):
        self.bounds = _normalize_bounds(self.species, self.bounds)
        self.grouped_species = tuple(self.grouped_species)
        for symbol in self.grouped_species:
            if symbol not in self.species:
                raise ConfigurationError(f"Grouped species '{symbol}' is not a tracked species")
        self._grouped_indices = np.array([self.species.index(s) for s in self.grouped_species], dtype=int)
        for symbol, (low, high) in zip(self.species.get_species_order(), self.bounds):
            if symbol not in self.grouped_species and high != low:
                raise ConfigurationError(
                    f"Super-cluster bounds span {low}..{high} in '{symbol}', which is not a grouped species"
                )
        self.label = "".join(
            f"{symbol}{low}" if low == high else f"{symbol}{low}-{high}"
            for symbol, (low, high) in zip(self.species.get_species_order(), self.bounds)
            if high > 0
        )
        self.type_name = "".join(
            symbol for symbol, (_, high) in zip(self.species.get_species_order(), self.bounds) if high > 0
        )
        self.state = SuperClusterState.UNINITIALIZED
        self.members: Tuple[Composition, ...] = ()
        self.mean: Optional[np.ndarray] = None
        self.dispersion: Optional[np.ndarray] = None
        self.moment_ids: Tuple[int, ...] = ()
        self.moment_flux = np.zeros(len(self.grouped_species))
        self._member_set = frozenset()
        self._init_reactant()

    @classmethod
    def from_config(cls, species: SpeciesCollection, grouped_species: Sequence[str],
                    config: Dict[str, Any]) -> "SuperCluster":
        """Create a super-cluster from its bounds, optional members and properties."""
        if "bounds" not in config:
            raise ConfigurationError("Super-cluster configuration requires 'bounds'")
        instance = cls(species, config["bounds"], grouped_species, ReactantProperties.from_config(config))
        members = config.get("members")
        instance.set_members(members)
        return instance

    def to_config(self) -> Dict[str, Any]:
        config: Dict[str, Any] = {
            "bounds": {s: list(b) for s, b in zip(self.species.get_species_order(), self.bounds) if b[1] > 0}
        }
        if self.members and len(self.members) != self.region_size:
            config["members"] = [list(m) for m in self.members]
        config.update(self.properties.to_config())
        return config

    @property
    def n_grouped(self) -> int:
        return len(self.grouped_species)

    @property
    def widths(self) -> np.ndarray:
        return np.array([high - low + 1 for low, high in self.bounds], dtype=int)

    @property
    def region_size(self) -> int:
        return int(np.prod(self.widths))

    @property
    def n_tot(self) -> int:
        return len(self.members)

    @property
    def is_ready(self) -> bool:
        return self.state == SuperClusterState.READY

    @property
    def is_monomer(self) -> bool:
        return False

    @property
    def size(self) -> float:
        """Mean number of species in the group."""
        return float(self.mean.sum()) if self.mean is not None else 0.0

    def get_bounds(self, symbol: str) -> Tuple[int, int]:
        return self.bounds[self.species.index(symbol)]

    @property
    def he_bounds(self) -> Tuple[int, int]:
        return self.get_bounds("He")

    @property
    def v_bounds(self) -> Tuple[int, int]:
        return self.get_bounds("V")

    def region(self) -> List[Composition]:
        """Every composition inside the bounds."""
        ranges = [range(low, high + 1) for low, high in self.bounds]
        return [tuple(point) for point in itertools.product(*ranges)]

    def is_in(self, *coords) -> bool:
        """Inclusive bounds test in every species."""
        point = _coords_to_composition(self.species, coords)
        return all(low <= x <= high for x, (low, high) in zip(point, self.bounds))

    def set_members(self, members: Optional[Sequence[CompositionLike]] = None) -> None:
        """Set the grouped compositions and compute mean, nTot and dispersion.

        Parameters
        ----------
        members : Sequence[CompositionLike], optional
            Member compositions. Defaults to every composition of the region.
        """
        if self._reacting is not None and self._reacting.n_entries > 0:
            raise ConfigurationError(f"Members of {self.label} cannot change after reactions were created")
        if members is None:
            points = self.region()
        else:
            points = []
            for member in members:
                try:
                    point = self.species.to_composition(member)
                except (KeyError, ValueError) as err:
                    raise ConfigurationError(f"Invalid member {member} of {self.label}: {err}") from err
                if not self.is_in(point):
                    raise ConfigurationError(f"Member {point} lies outside the bounds of {self.label}")
                points.append(point)
        if not points:
            raise ConfigurationError(f"Super-cluster {self.label} has no members")
        if len(set(points)) != len(points):
            raise ConfigurationError(f"Super-cluster {self.label} lists a member twice")
        if not all(any(point) for point in points):
            raise ConfigurationError(f"Super-cluster {self.label} contains the empty composition")

        self.members = tuple(sorted(points))
        self._member_set = frozenset(self.members)
        array = np.array(self.members, dtype=float)
        n_tot = len(self.members)
        self.mean = array.mean(axis=0)

        grouped = array[:, self._grouped_indices]
        grouped_mean = self.mean[self._grouped_indices]
        widths = self.widths[self._grouped_indices]
        dispersion = np.ones(self.n_grouped)
        for d in range(self.n_grouped):
            if widths[d] > 1:
                value = 2.0 * (np.sum(grouped[:, d] ** 2) - n_tot * grouped_mean[d] ** 2) / (n_tot * (widths[d] - 1))
                # All members share the same value in this dimension
                dispersion[d] = value if value > 0.0 else 1.0
        self.dispersion = dispersion

        distances = np.array([self.get_distances(point)[1:] for point in self.members]).reshape(n_tot, self.n_grouped)
        self._distance_sums = distances.sum(axis=0)
        self._atom_sums = array.sum(axis=0)
        self._atom_distance_sums = distances.T @ array
        self.state = SuperClusterState.UNINITIALIZED
        logger.debug(f"Super-cluster {self.label}: {n_tot} members, mean {self.mean}, dispersion {self.dispersion}")

    def _check_members(self) -> None:
        if self.mean is None:
            raise ConfigurationError(f"Super-cluster {self.label} has no members set")

    def _check_ready(self) -> None:
        if self.state != SuperClusterState.READY:
            raise ConfigurationError(f"Super-cluster {self.label} is used before it is ready")

    def reset_connectivities(self) -> None:
        self._check_members()
        super().reset_connectivities()
        self.state = SuperClusterState.READY

    def get_distance(self, value: float, dim: int) -> float:
        """Normalized distance of ``value`` from the group mean in grouped dimension ``dim``."""
        self._check_members()
        species_index = self._grouped_indices[dim]
        low, high = self.bounds[species_index]
        width = high - low + 1
        if width == 1:
            return 0.0
        return 2.0 * (value - self.mean[species_index]) / (width - 1)

    def get_distances(self, point: Composition) -> np.ndarray:
        vector = np.ones(self.n_grouped + 1)
        for d, species_index in enumerate(self._grouped_indices):
            vector[d + 1] = self.get_distance(point[species_index], d)
        return vector

    def get_projection_factors(self, point: Composition) -> np.ndarray:
        self._check_members()
        vector = np.ones(self.n_grouped + 1)
        for d, species_index in enumerate(self._grouped_indices):
            vector[d + 1] = (point[species_index] - self.mean[species_index]) / self.dispersion[d]
        return vector

    def get_grouped_dim(self, symbol: str) -> int:
        if symbol not in self.grouped_species:
            raise ValueError(f"Species '{symbol}' is not grouped. Grouped species: {list(self.grouped_species)}")
        return self.grouped_species.index(symbol)

    # State

    def _moments(self) -> np.ndarray:
        self._check_attached()
        return self._network.moments[self.id]

    @property
    def l0(self) -> float:
        self._check_attached()
        return float(self._network.moments[self.id, 0])

    @l0.setter
    def l0(self, value: float) -> None:
        self._check_attached()
        self._network.moments[self.id, 0] = value

    @property
    def l1(self) -> np.ndarray:
        self._check_attached()
        return self._network.moments[self.id, 1:].copy()

    def set_moment(self, dim: int, value: float) -> None:
        self._check_attached()
        self._network.moments[self.id, dim + 1] = value

    @property
    def concentration(self) -> float:
        return self.l0

    @concentration.setter
    def concentration(self, value: float) -> None:
        self.l0 = value

    def get_concentration(self, *distances: float) -> float:
        """Linear reconstruction l0 + sum_d distance_d * l1_d."""
        if len(distances) > self.n_grouped:
            raise ValueError(f"Expected at most {self.n_grouped} distances, got {len(distances)}")
        moments = self._moments()
        value = moments[0]
        for d, distance in enumerate(distances):
            value += distance * moments[d + 1]
        return float(value)

    def get_concentration_at(self, composition: CompositionLike) -> float:
        """Reconstructed concentration at a member composition, 0 elsewhere."""
        point = self.species.to_composition(composition)
        if point not in self._member_set:
            return 0.0
        return self.get_concentration(*self.get_distances(point)[1:])

    def get_total_concentration(self) -> float:
        """Sum of the reconstructed concentration over all members."""
        self._check_members()
        moments = self._moments()
        return float(self.n_tot * moments[0] + np.dot(self._distance_sums, moments[1:]))

    def get_total_atom_concentration(self, symbol: str) -> float:
        """Sum over members of the reconstructed concentration times the species count."""
        self._check_members()
        index = self.species.index(symbol)
        moments = self._moments()
        return float(moments[0] * self._atom_sums[index] + np.dot(moments[1:], self._atom_distance_sums[:, index]))

    # Moment fluxes

    def _accumulate_moment_flux(self, values: np.ndarray) -> None:
        self.moment_flux += values

    def _reset_moment_flux(self) -> None:
        self.moment_flux[:] = 0.0

    def get_moment_flux(self, dim: int) -> float:
        """Moment flux accumulated by the last flux evaluation."""
        return float(self.moment_flux[dim])

    def get_he_moment_flux(self) -> float:
        return self.get_moment_flux(self.get_grouped_dim("He"))

    def get_v_moment_flux(self) -> float:
        return self.get_moment_flux(self.get_grouped_dim("V"))

    def get_moment_partial_derivatives(self, scratch: np.ndarray, dim: int) -> None:
        """Add d(moment flux dim)/d(DOF) into the scratch buffer."""
        if not 0 <= dim < self.n_grouped:
            raise ValueError(f"Moment dimension {dim} out of range for {self.n_grouped} grouped species")
        for name in FLUX_SIGNS:
            self._partials(name, scratch, output=dim + 1)

    def get_he_moment_partial_derivatives(self, scratch: np.ndarray) -> None:
        self.get_moment_partial_derivatives(scratch, self.get_grouped_dim("He"))

    def get_v_moment_partial_derivatives(self, scratch: np.ndarray) -> None:
        self.get_moment_partial_derivatives(scratch, self.get_grouped_dim("V"))


# Tagged variant over the two reactant kinds
Reactant: TypeAlias = Cluster | SuperCluster


def _normalize_bounds(species: SpeciesCollection, bounds: Any) -> Bounds:
    """Convert a symbol -> (low, high) mapping or a sequence of pairs into bounds."""
    if isinstance(bounds, Mapping):
        pairs = [(0, 0)] * len(species)
        for symbol, pair in bounds.items():
            if symbol not in species:
                raise ConfigurationError(f"Unknown species '{symbol}' in super-cluster bounds")
            pairs[species.index(symbol)] = pair
    else:
        pairs = list(bounds)
        if len(pairs) != len(species):
            raise ConfigurationError(f"Bounds {bounds} have {len(pairs)} entries, expected {len(species)}")
    result = []
    for pair in pairs:
        if isinstance(pair, (int, np.integer)):
            low = high = int(pair)
        else:
            low, high = (int(v) for v in pair)
        if low < 0:
            raise ConfigurationError(f"Negative lower bound {low} in super-cluster bounds")
        if low > high:
            raise ConfigurationError(f"Inconsistent bounds {low} > {high}")
        result.append((low, high))
    return tuple(result)


def _coords_to_composition(species: SpeciesCollection, coords: tuple) -> Composition:
    if len(coords) == 1 and isinstance(coords[0], (Mapping, tuple, list)):
        return species.to_composition(coords[0])
    return species.to_composition(coords)
