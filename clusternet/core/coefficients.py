"""
Effective reaction coefficients and their evaluation.

Every reactant keeps four lists of effective reactions:

* production:   A + B -> this      (two-body, adds to this reactant)
* combination:  this + B -> C      (two-body, removes from this reactant)
* dissociation: A -> this + C      (one-body, adds to this reactant)
* emission:     this -> B + C      (one-body, removes from this reactant)

Each entry carries a coefficient tensor indexed by moments. Index 0 is the mean
concentration (l0) and index 1 + d the first order moment in grouped dimension d.
Two-body tensors are indexed [first moment, second moment, output moment] and
one-body tensors [parent moment, output moment]. Every discrete position
taking part in a reaction adds the outer product of the partner distance
vectors and the projection factors of the receiving position, so the per step
evaluation only contracts the tensors against the current moments.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

import numpy as np

logger = logging.getLogger(__name__)

PRODUCTION = "production"
COMBINATION = "combination"
DISSOCIATION = "dissociation"
EMISSION = "emission"

# Sign of each list in the total flux
FLUX_SIGNS = {PRODUCTION: 1.0, COMBINATION: -1.0, DISSOCIATION: 1.0, EMISSION: -1.0}


@dataclass
class ProductionCoefficients:
    """Two-body entry: used for production (A + B -> this) and combination (this + B -> C).

    For combination entries ``first_id`` is the owning reactant and ``second_id``
    the combining partner.
    """

    reaction_index: int
    first_id: int
    second_id: int
    coefficients: np.ndarray

    @classmethod
    def empty(cls, reaction_index: int, first_id: int, second_id: int, n_moments: int) -> "ProductionCoefficients":
        return cls(reaction_index, first_id, second_id, np.zeros((n_moments, n_moments, n_moments)))

    def add(self, first_distances: np.ndarray, second_distances: np.ndarray, factors: np.ndarray) -> None:
        self.coefficients += np.einsum("i,j,o->ijo", first_distances, second_distances, factors)


@dataclass
class DissociationCoefficients:
    """One-body entry: used for dissociation (A -> this + C) and emission (this -> B + C)."""

    reaction_index: int
    parent_id: int
    coefficients: np.ndarray

    @classmethod
    def empty(cls, reaction_index: int, parent_id: int, n_moments: int) -> "DissociationCoefficients":
        return cls(reaction_index, parent_id, np.zeros((n_moments, n_moments)))

    def add(self, parent_distances: np.ndarray, factors: np.ndarray) -> None:
        self.coefficients += np.outer(parent_distances, factors)


@dataclass
class CompiledTwoBody:
    """Stacked arrays of two-body entries for vectorized evaluation."""

    reactions: np.ndarray
    first: np.ndarray
    second: np.ndarray
    coefficients: np.ndarray

    def __len__(self) -> int:
        return len(self.reactions)


@dataclass
class CompiledOneBody:
    """Stacked arrays of one-body entries for vectorized evaluation."""

    reactions: np.ndarray
    parent: np.ndarray
    coefficients: np.ndarray

    def __len__(self) -> int:
        return len(self.reactions)


def _compile_two_body(entries: List[ProductionCoefficients], n_moments: int) -> CompiledTwoBody:
    if not entries:
        return CompiledTwoBody(
            reactions=np.zeros(0, dtype=int),
            first=np.zeros(0, dtype=int),
            second=np.zeros(0, dtype=int),
            coefficients=np.zeros((0, n_moments, n_moments, n_moments)),
        )
    return CompiledTwoBody(
        reactions=np.array([e.reaction_index for e in entries], dtype=int),
        first=np.array([e.first_id for e in entries], dtype=int),
        second=np.array([e.second_id for e in entries], dtype=int),
        coefficients=np.stack([e.coefficients for e in entries]),
    )


def _compile_one_body(entries: List[DissociationCoefficients], n_moments: int) -> CompiledOneBody:
    if not entries:
        return CompiledOneBody(
            reactions=np.zeros(0, dtype=int),
            parent=np.zeros(0, dtype=int),
            coefficients=np.zeros((0, n_moments, n_moments)),
        )
    return CompiledOneBody(
        reactions=np.array([e.reaction_index for e in entries], dtype=int),
        parent=np.array([e.parent_id for e in entries], dtype=int),
        coefficients=np.stack([e.coefficients for e in entries]),
    )


def _scatter(scratch: np.ndarray, columns: np.ndarray, values: np.ndarray) -> None:
    """Add values into scratch at the given columns, ignoring missing (-1) columns."""
    mask = columns >= 0
    np.add.at(scratch, columns[mask], values[mask])


@dataclass
class ReactingLists:
    """Effective reaction lists of one reactant.

    Entries are keyed by the integer ids of the reacting partners:
    production by (first id, second id), combination by partner id,
    dissociation by (parent id, other product id) and emission by the
    product ids.
    """

    n_moments: int
    production: Dict[Tuple[int, int], ProductionCoefficients] = field(default_factory=dict)
    combination: Dict[int, ProductionCoefficients] = field(default_factory=dict)
    dissociation: Dict[Tuple[int, int], DissociationCoefficients] = field(default_factory=dict)
    emission: Dict[Tuple[int, int], DissociationCoefficients] = field(default_factory=dict)
    compiled: Optional[Dict[str, object]] = None
    connectivity: List[int] = field(default_factory=list)

    def add_production(self, reaction_index: int, first_id: int, second_id: int,
                       first_distances: np.ndarray, second_distances: np.ndarray, factors: np.ndarray) -> None:
        key = (first_id, second_id)
        entry = self.production.get(key)
        if entry is None:
            entry = ProductionCoefficients.empty(reaction_index, first_id, second_id, self.n_moments)
            self.production[key] = entry
        entry.add(first_distances, second_distances, factors)

    def add_combination(self, reaction_index: int, self_id: int, partner_id: int,
                        self_distances: np.ndarray, partner_distances: np.ndarray, factors: np.ndarray) -> None:
        entry = self.combination.get(partner_id)
        if entry is None:
            entry = ProductionCoefficients.empty(reaction_index, self_id, partner_id, self.n_moments)
            self.combination[partner_id] = entry
        entry.add(self_distances, partner_distances, factors)

    def add_dissociation(self, reaction_index: int, parent_id: int, other_id: int,
                         parent_distances: np.ndarray, factors: np.ndarray) -> None:
        key = (parent_id, other_id)
        entry = self.dissociation.get(key)
        if entry is None:
            entry = DissociationCoefficients.empty(reaction_index, parent_id, self.n_moments)
            self.dissociation[key] = entry
        entry.add(parent_distances, factors)

    def add_emission(self, reaction_index: int, self_id: int, products: Tuple[int, int],
                     self_distances: np.ndarray, factors: np.ndarray) -> None:
        key = tuple(sorted(products))
        entry = self.emission.get(key)
        if entry is None:
            entry = DissociationCoefficients.empty(reaction_index, self_id, self.n_moments)
            self.emission[key] = entry
        entry.add(self_distances, factors)

    @property
    def n_entries(self) -> int:
        return len(self.production) + len(self.combination) + len(self.dissociation) + len(self.emission)

    def compile(self, dof_columns: np.ndarray) -> None:
        """Stack the entries into arrays and rebuild the connectivity.

        Parameters
        ----------
        dof_columns : np.ndarray
            (n_reactants, n_moments) array giving the DOF index of every moment
            of every reactant, -1 where a reactant has no such moment.
        """
        self.compiled = {
            PRODUCTION: _compile_two_body(list(self.production.values()), self.n_moments),
            COMBINATION: _compile_two_body(list(self.combination.values()), self.n_moments),
            DISSOCIATION: _compile_one_body(list(self.dissociation.values()), self.n_moments),
            EMISSION: _compile_one_body(list(self.emission.values()), self.n_moments),
        }
        columns: Set[int] = set()
        for name in (PRODUCTION, COMBINATION):
            lists = self.compiled[name]
            for ids in (lists.first, lists.second):
                columns.update(int(c) for c in dof_columns[ids].ravel() if c >= 0)
        for name in (DISSOCIATION, EMISSION):
            lists = self.compiled[name]
            columns.update(int(c) for c in dof_columns[lists.parent].ravel() if c >= 0)
        self.connectivity = sorted(columns)
        logger.debug(f"Compiled {self.n_entries} effective reactions over {len(self.connectivity)} columns")

    def flux(self, name: str, moments: np.ndarray, rates: np.ndarray) -> np.ndarray:
        """Unsigned, unscaled flux of one list for every output moment."""
        lists = self.compiled[name]
        if len(lists) == 0:
            return np.zeros(self.n_moments)
        k = rates[lists.reactions]
        if name in (PRODUCTION, COMBINATION):
            return np.einsum("n,nijo,ni,nj->o", k, lists.coefficients, moments[lists.first], moments[lists.second])
        return np.einsum("n,nio,ni->o", k, lists.coefficients, moments[lists.parent])

    def partial_derivatives(self, name: str, scratch: np.ndarray, output: int, scale: float,
                            moments: np.ndarray, rates: np.ndarray, dof_columns: np.ndarray) -> None:
        """Accumulate the signed derivatives of one list's output moment into scratch."""
        lists = self.compiled[name]
        if len(lists) == 0:
            return
        k = rates[lists.reactions] * (scale * FLUX_SIGNS[name])
        if name in (PRODUCTION, COMBINATION):
            coefficients = lists.coefficients[..., output]
            # Product rule on the bilinear terms
            d_first = np.einsum("n,nij,nj->ni", k, coefficients, moments[lists.second])
            d_second = np.einsum("n,nij,ni->nj", k, coefficients, moments[lists.first])
            _scatter(scratch, dof_columns[lists.first], d_first)
            _scatter(scratch, dof_columns[lists.second], d_second)
        else:
            d_parent = k[:, None] * lists.coefficients[..., output]
            _scatter(scratch, dof_columns[lists.parent], d_parent)
