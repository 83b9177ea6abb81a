"""
Symbolic rate equations of a reaction network using SymPy.
"""

import logging
import time
from typing import Callable, List, Optional

import numpy as np
import sympy as sym

from ..core.clusters import ReactantKind
from ..core.coefficients import FLUX_SIGNS, PRODUCTION, COMBINATION
from ..core.network import ReactionNetwork

logger = logging.getLogger(__name__)


class NetworkEquations:
    """
    Generate the symbolic rate of change of every DOF of a network.

    The DOF values are the symbols ``y_0 .. y_{dof-1}`` and the rate constants
    ``k_0 .. k_{n-1}``, indexed like the reaction catalog. The expressions are
    built from the compiled effective reactions, so they describe exactly what
    the network evaluates numerically.

    Parameters
    ----------
    network : ReactionNetwork
        A finalized reaction network.
    """

    def __init__(self, network: ReactionNetwork):
        self.network = network
        self.n_dof = network.get_dof()
        self.n_reactions = len(network.catalog)
        self.rebuild()

    def rebuild(self):
        """Setup the equations."""
        self._create_symbols()
        self.rate_equations = self._build_rate_equations()
        self._jacobian: Optional[sym.Matrix] = None
        self._function_cache = {}

    def _create_symbols(self):
        """Create symbolic variables for the network."""
        self.concentrations = sym.symbols(f"y_0:{self.n_dof}")
        self.rate_constants = sym.symbols(f"k_0:{max(self.n_reactions, 1)}")

    def _moment_symbol(self, reactant_id: int, moment: int):
        column = self.network.dof_columns[reactant_id, moment]
        return self.concentrations[column] if column >= 0 else sym.Integer(0)

    def _list_terms(self, reactant, name: str, output: int) -> sym.Expr:
        lists = reactant.reacting_lists.compiled[name]
        terms = []
        for n in range(len(lists)):
            k = self.rate_constants[lists.reactions[n]]
            if name in (PRODUCTION, COMBINATION):
                coefficients = lists.coefficients[n, ..., output]
                for i, j in zip(*np.nonzero(coefficients)):
                    terms.append(
                        k * float(coefficients[i, j])
                        * self._moment_symbol(lists.first[n], i)
                        * self._moment_symbol(lists.second[n], j)
                    )
            else:
                coefficients = lists.coefficients[n, :, output]
                for i in np.nonzero(coefficients)[0]:
                    terms.append(k * float(coefficients[i]) * self._moment_symbol(lists.parent[n], i))
        return sym.Add(*terms)

    def _reactant_equation(self, reactant, output: int) -> sym.Expr:
        expression = sym.Add(*(FLUX_SIGNS[name] * self._list_terms(reactant, name, output) for name in FLUX_SIGNS))
        if reactant.n_tot != 1:
            expression = expression / reactant.n_tot
        return expression

    def _build_rate_equations(self) -> List[sym.Expr]:
        """Build the rate of change of every DOF.

        Returns
        -------
        List[sym.Expr]
            One expression per DOF, in DOF order.
        """
        logger.info("Building rate equations...")
        start_time = time.time()
        equations: List[sym.Expr] = [sym.Integer(0)] * self.n_dof
        for reactant in self.network:
            equations[reactant.id] = self._reactant_equation(reactant, 0)
            if reactant.kind is ReactantKind.SUPER:
                for dim, moment_id in enumerate(reactant.moment_ids):
                    equations[moment_id] = self._reactant_equation(reactant, dim + 1)
        logger.info(f"Rate equations built in {time.time() - start_time:.3f} seconds")
        return equations

    @property
    def jacobian(self) -> sym.Matrix:
        """Symbolic Jacobian of the rate equations with respect to the DOF values."""
        if self._jacobian is None:
            self._jacobian = sym.Matrix(self.rate_equations).jacobian(self.concentrations)
        return self._jacobian

    def get_rate_function(self) -> Callable[[np.ndarray, np.ndarray], np.ndarray]:
        """Callable f(concentrations, rates) returning the DOF rates of change."""
        if "rates" not in self._function_cache:
            function = sym.lambdify(
                (self.concentrations, self.rate_constants),
                self.rate_equations,
                modules="numpy",
                docstring_limit=0,
            )
            self._function_cache["rates"] = lambda y, k: np.asarray(function(y, _pad_rates(k)), dtype=float)
        return self._function_cache["rates"]

    def get_jacobian_function(self) -> Callable[[np.ndarray, np.ndarray], np.ndarray]:
        """Callable J(concentrations, rates) returning the dense Jacobian."""
        if "jacobian" not in self._function_cache:
            start_time = time.time()
            function = sym.lambdify(
                (self.concentrations, self.rate_constants),
                self.jacobian,
                modules="numpy",
                docstring_limit=0,
            )
            self._function_cache["jacobian"] = lambda y, k: np.asarray(function(y, _pad_rates(k)), dtype=float)
            logger.debug(f"Jacobian function created in {time.time() - start_time:.3f} seconds")
        return self._function_cache["jacobian"]

    def evaluate(self, buffer: Optional[np.ndarray] = None) -> np.ndarray:
        """Evaluate the rates with the network's current rate constants."""
        if buffer is None:
            buffer = self.network.fill_concentrations_array()
        return self.get_rate_function()(buffer, self.network.catalog.rates)

    def print_rate_equation(self, dof_index: int):
        """Print the rate equation of one DOF."""
        print(f"d[{self._dof_label(dof_index)}]/dt = {self.rate_equations[dof_index]}")

    def print_rate_equations(self, max_rows: int = 5):
        """Print the equations in a readable format."""
        print("Network Rate Equations:")
        print("=" * 50)
        for i in range(self.n_dof):
            self.print_rate_equation(i)
            # Limit output for large networks
            if i >= max_rows - 1 and i < self.n_dof - 1:
                print(f"... ({self.n_dof - max_rows} more equations)")
                break
        print()

    def _dof_label(self, dof_index: int) -> str:
        if dof_index < self.network.size():
            return self.network[dof_index].label
        for super_cluster in self.network.super_clusters:
            if dof_index in super_cluster.moment_ids:
                dim = super_cluster.moment_ids.index(dof_index)
                return f"{super_cluster.label}:l1_{super_cluster.grouped_species[dim]}"
        raise IndexError(f"DOF index {dof_index} out of range")


def _pad_rates(rates: np.ndarray) -> np.ndarray:
    # A network without reactions still has one rate symbol
    return rates if len(rates) else np.zeros(1)
