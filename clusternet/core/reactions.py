"""
Reaction catalog and rate constants.

The catalog owns one rate per reaction in a single array indexed by the
reaction index. Effective reaction entries only store that index, so a
temperature change is a single swap of the rate array.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Sequence, Tuple

import numpy as np

from ..utils import BOLTZMANN_CONSTANT_EV, PI

logger = logging.getLogger(__name__)


class ReactionType(Enum):
    """Types of reactions."""

    PRODUCTION = "production"
    DISSOCIATION = "dissociation"


@dataclass(eq=False)
class Reaction:
    """A production A + B -> C or a dissociation C -> A + B.

    ``reactants`` and ``products`` hold reactant ids. A production whose
    species all annihilate has no products.
    """

    index: int
    type: ReactionType
    reactants: Tuple[int, ...]
    products: Tuple[int, ...] = ()
    catalog: "ReactionCatalog" = field(default=None, repr=False)

    @property
    def k_constant(self) -> float:
        """Current rate constant (nm^3/s for productions, 1/s for dissociations)."""
        return float(self.catalog.rates[self.index])

    def add_product(self, product_id: int) -> None:
        if self.type == ReactionType.DISSOCIATION:
            raise ValueError("Dissociation products are fixed at creation")
        if product_id not in self.products:
            self.products = self.products + (product_id,)


# Largest natural log of a rate constant kept finite in float64
MAX_LOG_RATE = 700.0


def production_rate(first, second, first_diffusion: float, second_diffusion: float) -> float:
    """Diffusion limited rate 4 pi (rA + rB)(DA + DB) in nm^3/s."""
    return 4.0 * PI * (first.radius + second.radius) * (first_diffusion + second_diffusion)


def dissociation_rate(parent, first, second, k_plus: float, atomic_volume: float, temperature: float) -> float:
    """Rate of parent -> first + second in 1/s.

    Uses the reverse production rate ``k_plus`` and the binding energy
    Eb = Ef(first) + Ef(second) - Ef(parent). Unknown energies give a zero rate.
    The rate is evaluated in log space and capped at exp(MAX_LOG_RATE), so a
    strongly negative binding energy at low temperature stays finite.
    """
    binding_energy = first.formation_energy + second.formation_energy - parent.formation_energy
    if not math.isfinite(binding_energy) or k_plus == 0.0:
        return 0.0
    log_rate = math.log(k_plus / atomic_volume) - binding_energy / (BOLTZMANN_CONSTANT_EV * temperature)
    if log_rate > MAX_LOG_RATE:
        logger.warning(
            f"Dissociation {parent.label} -> {first.label} + {second.label} capped at exp({MAX_LOG_RATE}) "
            f"(binding energy {binding_energy:.3f} eV at {temperature} K)"
        )
        log_rate = MAX_LOG_RATE
    return float(np.exp(log_rate))


class ReactionCatalog:
    """Indexed collection of every reaction of a network."""

    def __init__(self):
        self._reactions: List[Reaction] = []
        self._production_index: Dict[Tuple[int, int], int] = {}
        self._dissociation_index: Dict[Tuple[int, int, int], int] = {}
        self.rates = np.zeros(0)
        self._frozen = False

    def _append(self, reaction_type: ReactionType, reactants: Tuple[int, ...], products: Tuple[int, ...]) -> Reaction:
        if self._frozen:
            raise RuntimeError("Cannot add reactions to a finalized catalog")
        reaction = Reaction(len(self._reactions), reaction_type, reactants, products, self)
        self._reactions.append(reaction)
        return reaction

    def get_or_create_production(self, first_id: int, second_id: int) -> Reaction:
        key = (min(first_id, second_id), max(first_id, second_id))
        index = self._production_index.get(key)
        if index is not None:
            return self._reactions[index]
        reaction = self._append(ReactionType.PRODUCTION, (first_id, second_id), ())
        self._production_index[key] = reaction.index
        return reaction

    def get_or_create_dissociation(self, parent_id: int, first_id: int, second_id: int) -> Reaction:
        key = (parent_id, min(first_id, second_id), max(first_id, second_id))
        index = self._dissociation_index.get(key)
        if index is not None:
            return self._reactions[index]
        reaction = self._append(ReactionType.DISSOCIATION, (parent_id,), (first_id, second_id))
        self._dissociation_index[key] = reaction.index
        return reaction

    def get_production(self, first_id: int, second_id: int):
        """Production reaction of a reactant pair, None if it does not exist."""
        index = self._production_index.get((min(first_id, second_id), max(first_id, second_id)))
        return None if index is None else self._reactions[index]

    def get_dissociation(self, parent_id: int, first_id: int, second_id: int):
        """Dissociation reaction of a parent into a pair, None if it does not exist."""
        index = self._dissociation_index.get((parent_id, min(first_id, second_id), max(first_id, second_id)))
        return None if index is None else self._reactions[index]

    def freeze(self) -> None:
        """Fix the reaction list and allocate the rate array."""
        self._frozen = True
        self.rates = np.zeros(len(self._reactions))

    def compute_rates(self, reactants: Sequence, diffusion: np.ndarray, atomic_volume: float,
                      temperature: float) -> np.ndarray:
        """Compute a fresh rate array for every reaction.

        Nothing is written to the catalog or to the reactants.

        Parameters
        ----------
        reactants : Sequence
            Reactants indexed by id.
        diffusion : np.ndarray
            Diffusion coefficient of every reactant at ``temperature`` in nm^2/s.
        atomic_volume : float
            Atomic volume of the host lattice in nm^3.
        temperature : float
            Temperature in K.

        Returns
        -------
        np.ndarray
            Rate constants indexed by reaction index.
        """
        rates = np.zeros(len(self._reactions))
        for reaction in self._reactions:
            if reaction.type == ReactionType.PRODUCTION:
                a, b = reaction.reactants
                rates[reaction.index] = production_rate(reactants[a], reactants[b], diffusion[a], diffusion[b])
            else:
                parent = reactants[reaction.reactants[0]]
                a, b = reaction.products
                k_plus = production_rate(reactants[a], reactants[b], diffusion[a], diffusion[b])
                rates[reaction.index] = dissociation_rate(
                    parent, reactants[a], reactants[b], k_plus, atomic_volume, temperature
                )
        return rates

    def set_rates(self, rates: np.ndarray) -> None:
        if rates.shape != (len(self._reactions),):
            raise ValueError(f"Expected {len(self._reactions)} rates, got array of shape {rates.shape}")
        self.rates = rates

    def get_reactions(self, reaction_type: ReactionType = None) -> List[Reaction]:
        if reaction_type is None:
            return list(self._reactions)
        return [r for r in self._reactions if r.type == reaction_type]

    def __len__(self) -> int:
        return len(self._reactions)

    def __iter__(self) -> Iterator[Reaction]:
        return iter(self._reactions)

    def __getitem__(self, index: int) -> Reaction:
        return self._reactions[index]
