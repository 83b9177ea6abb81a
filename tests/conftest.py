import numpy as np
import pytest

from clusternet import ReactionNetwork, SpeciesCollection

HE_MIGRATION = 0.13  # eV
HE_DIFFUSION = 2.95e10  # nm^2/s
V_MIGRATION = 1.30
V_DIFFUSION = 1.8e12


def he_v_config(formation_energies: bool = False, temperature: float = 1000.0) -> dict:
    """Isolated He1 + V1 -> He1V1 with an immobile vacancy."""
    config = {
        "network": {"species": ["He", "V"], "temperature": temperature},
        "clusters": [
            {"composition": {"He": 1}, "migration_energy": HE_MIGRATION,
             "diffusion_factor": HE_DIFFUSION, "radius": 0.3},
            {"composition": {"V": 1}, "radius": 0.2},
            {"composition": {"He": 1, "V": 1}, "radius": 0.25},
        ],
    }
    if formation_energies:
        for spec, energy in zip(config["clusters"], (6.15, 3.6, 5.14)):
            spec["formation_energy"] = energy
    return config


def grouped_config(temperature: float = 1000.0) -> dict:
    """He-V network with one super-cluster grouping He 2-4 and V 1-2."""
    return {
        "network": {
            "species": ["He", "V"],
            "grouped_species": ["He", "V"],
            "temperature": temperature,
        },
        "clusters": [
            {"composition": {"He": 1}, "formation_energy": 6.15, "migration_energy": HE_MIGRATION,
             "diffusion_factor": HE_DIFFUSION},
            {"composition": {"He": 2}, "formation_energy": 11.44},
            {"composition": {"V": 1}, "formation_energy": 3.6, "migration_energy": V_MIGRATION,
             "diffusion_factor": V_DIFFUSION},
            {"composition": {"V": 2}, "formation_energy": 7.25},
            {"composition": {"He": 1, "V": [1, 2]}, "formation_energy": [5.14, 8.6]},
        ],
        "super_clusters": [
            {"bounds": {"He": [2, 4], "V": [1, 2]}, "formation_energy": 10.0},
        ],
    }


def sample_state(network: ReactionNetwork) -> np.ndarray:
    """A DOF vector with distinct positive concentrations and small moments."""
    buffer = np.zeros(network.get_dof())
    buffer[: network.size()] = 1e-3 * (1.0 + 0.1 * np.arange(network.size()))
    for super_cluster in network.super_clusters:
        for dim, moment_id in enumerate(super_cluster.moment_ids):
            buffer[moment_id] = (1e-4, -2e-4, 5e-5)[dim % 3]
    return buffer


def finite_difference_jacobian(network: ReactionNetwork, buffer: np.ndarray) -> np.ndarray:
    """Centred differences of the fluxes; exact up to rounding for quadratic fluxes."""
    n = network.get_dof()
    jacobian = np.zeros((n, n))
    for j in range(n):
        h = 1e-7
        plus = buffer.copy()
        minus = buffer.copy()
        plus[j] += h
        minus[j] -= h
        jacobian[:, j] = (network.compute_all_fluxes(plus) - network.compute_all_fluxes(minus)) / (2 * h)
    network.update_concentrations_from_array(buffer)
    return jacobian


@pytest.fixture
def species():
    return SpeciesCollection.from_config(["He", "V", "I"])


@pytest.fixture
def he_v_network():
    return ReactionNetwork.from_config(he_v_config())


@pytest.fixture
def grouped_network():
    return ReactionNetwork.from_config(grouped_config())
