import numpy as np
import pytest

from clusternet import ConfigurationError, ReactionNetwork, SuperCluster
from clusternet.core.clusters import SuperClusterState
from clusternet.core.coefficients import COMBINATION, DISSOCIATION, EMISSION, PRODUCTION


def _make_super(species, bounds=None) -> SuperCluster:
    bounds = bounds or {"He": (10, 13), "V": (2, 2)}
    return SuperCluster(species, bounds, ["He", "V"])


def test_distances_and_dispersion(species) -> None:
    super_cluster = _make_super(species)
    super_cluster.set_members()

    assert super_cluster.n_tot == 4
    assert super_cluster.mean[0] == pytest.approx(11.5)
    assert super_cluster.get_distance(10, 0) == pytest.approx(-1.0)
    assert super_cluster.get_distance(13, 0) == pytest.approx(1.0)
    assert super_cluster.get_distance(11, 0) == pytest.approx(-1.0 / 3.0)
    # Width 1 in V
    assert super_cluster.get_distance(2, 1) == 0.0
    assert super_cluster.get_distance(5, 1) == 0.0
    assert super_cluster.dispersion[0] == pytest.approx(10.0 / 12.0)
    assert super_cluster.dispersion[1] == 1.0


def test_is_in_inclusive_bounds(species) -> None:
    super_cluster = _make_super(species)
    assert super_cluster.is_in(10, 2, 0)
    assert super_cluster.is_in(13, 2, 0)
    assert super_cluster.is_in((12, 2, 0))
    assert super_cluster.is_in({"He": 11, "V": 2})
    assert not super_cluster.is_in(9, 2, 0)
    assert not super_cluster.is_in(14, 2, 0)
    assert not super_cluster.is_in(12, 3, 0)
    assert not super_cluster.is_in(12, 2, 1)


def test_state_machine(species) -> None:
    super_cluster = _make_super(species)
    assert super_cluster.state == SuperClusterState.UNINITIALIZED
    with pytest.raises(ConfigurationError):
        super_cluster.get_distance(10, 0)
    with pytest.raises(ConfigurationError):
        super_cluster.get_total_flux()
    super_cluster.set_members()
    with pytest.raises(ConfigurationError):
        super_cluster.get_partial_derivatives(np.zeros(8))


def test_invalid_bounds(species) -> None:
    with pytest.raises(ConfigurationError):
        SuperCluster(species, {"He": (5, 3)}, ["He", "V"])
    with pytest.raises(ConfigurationError):
        SuperCluster(species, {"He": (1, 2), "I": (1, 2)}, ["He", "V"])
    with pytest.raises(ConfigurationError):
        SuperCluster(species, {"Xe": (1, 2)}, ["He", "V"])
    with pytest.raises(ConfigurationError):
        SuperCluster(species, {"He": (-1, 2)}, ["He", "V"])


def test_invalid_members(species) -> None:
    super_cluster = _make_super(species)
    with pytest.raises(ConfigurationError):
        super_cluster.set_members([(9, 2, 0)])
    with pytest.raises(ConfigurationError):
        super_cluster.set_members([(10, 2, 0), (10, 2, 0)])
    with pytest.raises(ConfigurationError):
        super_cluster.set_members([])


def _single_super_network() -> ReactionNetwork:
    return ReactionNetwork.from_config({
        "network": {"species": ["He", "V"], "grouped_species": ["He", "V"]},
        "clusters": [{"composition": {"He": 1}, "migration_energy": 0.13, "diffusion_factor": 2.95e10}],
        "super_clusters": [{"bounds": {"He": [10, 13], "V": [2, 2]}}],
    })


def test_concentration_reconstruction() -> None:
    network = _single_super_network()
    super_cluster = network.super_clusters[0]
    buffer = np.zeros(network.get_dof())
    buffer[super_cluster.id] = 2.0
    buffer[super_cluster.moment_ids[0]] = 0.5
    buffer[super_cluster.moment_ids[1]] = 7.0
    network.update_concentrations_from_array(buffer)

    assert super_cluster.get_concentration(0.0, 0.0) == 2.0
    assert super_cluster.get_concentration() == 2.0
    assert super_cluster.l0 == 2.0
    assert super_cluster.get_concentration(1.0, 0.0) == pytest.approx(2.5)
    assert super_cluster.get_concentration_at({"He": 13, "V": 2}) == pytest.approx(2.5)
    assert super_cluster.get_concentration_at({"He": 10, "V": 2}) == pytest.approx(1.5)
    assert super_cluster.get_concentration_at({"He": 14, "V": 2}) == 0.0


def test_totals_match_member_sums() -> None:
    network = _single_super_network()
    super_cluster = network.super_clusters[0]
    buffer = np.zeros(network.get_dof())
    buffer[super_cluster.id] = 2.0
    buffer[super_cluster.moment_ids[0]] = 0.5
    network.update_concentrations_from_array(buffer)

    values = {m: super_cluster.get_concentration_at(m) for m in super_cluster.members}
    assert super_cluster.get_total_concentration() == pytest.approx(sum(values.values()))
    assert super_cluster.get_total_concentration() == pytest.approx(8.0)
    expected_he = sum(c * m[0] for m, c in values.items())
    assert super_cluster.get_total_atom_concentration("He") == pytest.approx(expected_he)
    assert super_cluster.get_total_atom_concentration("V") == pytest.approx(2.0 * 8.0)
    assert network.get_total_atom_concentration("He") == pytest.approx(expected_he)


def test_partial_members() -> None:
    network = ReactionNetwork.from_config({
        "network": {"species": ["He", "V"], "grouped_species": ["He", "V"]},
        "clusters": [{"composition": {"He": 1}}],
        "super_clusters": [{"bounds": {"He": [4, 6], "V": [1, 2]}, "members": [[4, 1], [5, 1], [5, 2]]}],
    })
    super_cluster = network.super_clusters[0]
    assert super_cluster.n_tot == 3
    assert network.get_by_composition({"He": 5, "V": 2}) is super_cluster
    assert network.get_by_composition({"He": 6, "V": 2}) is None
    assert super_cluster.to_config()["members"] == [[4, 1], [5, 1], [5, 2]]


def _he_v1_chain(super_he3v1: bool) -> ReactionNetwork:
    clusters = [
        {"composition": {"He": 1}, "formation_energy": 6.15, "migration_energy": 0.13, "diffusion_factor": 2.95e10},
        {"composition": {"He": 2, "V": 1}, "formation_energy": 8.20},
        {"composition": {"He": 4, "V": 1}, "formation_energy": 13.86},
    ]
    config = {
        "network": {"species": ["He", "V"], "grouped_species": ["He", "V"], "temperature": 1000.0},
        "clusters": clusters,
        "super_clusters": [],
    }
    if super_he3v1:
        config["super_clusters"].append({"bounds": {"He": [3, 3], "V": [1, 1]}, "formation_energy": 11.06})
    else:
        clusters.append({"composition": {"He": 3, "V": 1}, "formation_energy": 11.06})
    return ReactionNetwork.from_config(config)


def test_width_one_super_cluster_matches_cluster() -> None:
    labels = ["He1", "He2V1", "He3V1", "He4V1"]
    values = [2e-3, 5e-4, 3e-4, 1e-4]
    elementary = _he_v1_chain(super_he3v1=False)
    grouped = _he_v1_chain(super_he3v1=True)
    super_cluster = grouped.super_clusters[0]
    assert grouped.get_by_label("He3V1") is super_cluster
    assert super_cluster.n_tot == 1
    for network in (elementary, grouped):
        for label, value in zip(labels, values):
            network.get_by_label(label).concentration = value

    for label in labels:
        assert grouped.get_by_label(label).get_total_flux() == pytest.approx(
            elementary.get_by_label(label).get_total_flux(), rel=1e-12
        )
    super_cluster.get_total_flux()
    np.testing.assert_array_equal(super_cluster.moment_flux, np.zeros(2))

    jacobian_e = elementary.compute_all_partials().toarray()
    jacobian_g = grouped.compute_all_partials().toarray()
    for row in labels:
        for column in labels:
            r_e, c_e = elementary.get_by_label(row).id, elementary.get_by_label(column).id
            r_g, c_g = grouped.get_by_label(row).id, grouped.get_by_label(column).id
            assert jacobian_g[r_g, c_g] == pytest.approx(jacobian_e[r_e, c_e], rel=1e-12)


def test_coefficient_tensor_shapes(grouped_network) -> None:
    for reactant in grouped_network:
        compiled = reactant.reacting_lists.compiled
        for name in (PRODUCTION, COMBINATION):
            assert compiled[name].coefficients.shape[1:] == (3, 3, 3)
        for name in (DISSOCIATION, EMISSION):
            assert compiled[name].coefficients.shape[1:] == (3, 3)

    super_cluster = grouped_network.super_clusters[0]
    combination = super_cluster.reacting_lists.compiled[COMBINATION]
    assert len(combination) > 0
    # The super-cluster's own first moments feed its first-moment outputs
    assert np.any(combination.coefficients[:, 1:, :, 1:] != 0.0)


def test_detached_super_cluster_state(species) -> None:
    super_cluster = _make_super(species)
    super_cluster.set_members()
    with pytest.raises(ConfigurationError):
        super_cluster.get_concentration(0.5, 0.0)
    with pytest.raises(ConfigurationError):
        super_cluster.get_total_concentration()
    with pytest.raises(ConfigurationError):
        super_cluster.get_total_atom_concentration("He")
