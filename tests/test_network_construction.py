import pytest

from clusternet import ConfigurationError, ReactantKind, ReactionNetwork
from clusternet.core.network import NetworkConfiguration
from clusternet.core.reactions import ReactionType

from conftest import grouped_config, he_v_config


def test_ids_and_dof(grouped_network) -> None:
    network = grouped_network
    assert network.size() == 7
    assert [r.id for r in network] == list(range(7))
    super_cluster = network.super_clusters[0]
    assert super_cluster.kind is ReactantKind.SUPER
    assert super_cluster.moment_ids == (7, 8)
    assert network.get_dof() == 9


def test_lookups(grouped_network) -> None:
    network = grouped_network
    assert network.get("He", 1).label == "He1"
    assert network.get("V", 2).label == "V2"
    assert network.get("He", 7) is None
    assert network.get("V", 0) is None
    assert network.get_by_composition({"He": 1, "V": 2}).label == "He1V2"
    super_cluster = network.get_by_composition({"He": 3, "V": 2})
    assert super_cluster is network.super_clusters[0]
    assert network.get_by_composition({"He": 3, "V": 2}, kind=ReactantKind.CLUSTER) is None
    assert network.get_by_composition({"He": 9, "V": 9}) is None
    assert network.get_by_label("He1V1").composition == (1, 1)


def test_get_all(grouped_network) -> None:
    network = grouped_network
    assert [r.label for r in network.get_all("He")] == ["He1", "He2"]
    assert [r.label for r in network.get_all("HeV")] == ["He1V1", "He1V2", "He2-4V1-2"]
    assert network.get_all("super") == network.super_clusters
    assert len(network.get_all(ReactantKind.CLUSTER)) == 6
    assert network.get_all("Xe") == ()
    assert len(network.get_all()) == network.size()


def test_overlapping_super_clusters() -> None:
    config = grouped_config()
    config["super_clusters"].append({"bounds": {"He": [4, 6], "V": [2, 3]}})
    with pytest.raises(ConfigurationError):
        ReactionNetwork.from_config(config)


def test_cluster_inside_super_cluster() -> None:
    config = grouped_config()
    config["clusters"].append({"composition": {"He": 3, "V": 1}})
    with pytest.raises(ConfigurationError):
        ReactionNetwork.from_config(config)


def test_duplicate_composition() -> None:
    config = he_v_config()
    config["clusters"].append({"composition": {"He": 1}})
    with pytest.raises(ConfigurationError):
        ReactionNetwork.from_config(config)


def test_unknown_species() -> None:
    config = he_v_config()
    config["clusters"].append({"composition": {"Xe": 1}})
    with pytest.raises(ConfigurationError):
        ReactionNetwork.from_config(config)


def test_ungrouped_width() -> None:
    config = grouped_config()
    config["network"]["grouped_species"] = ["He"]
    with pytest.raises(ConfigurationError):
        ReactionNetwork.from_config(config)


def test_negative_count() -> None:
    config = he_v_config()
    config["clusters"].append({"composition": {"He": 2, "V": -1}})
    with pytest.raises(ConfigurationError):
        ReactionNetwork.from_config(config)


def test_inverted_range() -> None:
    config = he_v_config()
    config["clusters"].append({"composition": {"He": [4, 2]}})
    with pytest.raises(ConfigurationError):
        ReactionNetwork.from_config(config)


def test_configuration_errors_are_value_errors() -> None:
    with pytest.raises(ValueError):
        ReactionNetwork.from_config({"network": {"species": ["He"], "material": "Cu"}, "clusters": []})


def test_material_defaults(species) -> None:
    configuration = NetworkConfiguration(species, material="UO2", lattice_parameter=-1.0)
    assert configuration.lattice_parameter == pytest.approx(0.5465)
    assert configuration.impurity_radius == pytest.approx(0.3)
    assert configuration.atomic_volume == pytest.approx(0.5465 ** 3 / 4.0)
    configuration = NetworkConfiguration(species, lattice_parameter=0.32, impurity_radius=0.2)
    assert configuration.lattice_parameter == 0.32
    assert configuration.atomic_volume == pytest.approx(0.32 ** 3 / 2.0)


def test_default_annihilation() -> None:
    configuration = NetworkConfiguration.from_config({"species": ["He", "V", "I"]})
    assert configuration.annihilation == (("V", "I"),)
    configuration = NetworkConfiguration.from_config({"species": ["He", "V", "I"], "annihilation": []})
    assert configuration.annihilation == ()


def test_reaction_enumeration(he_v_network) -> None:
    network = he_v_network
    he, v, hev = network.get("He", 1), network.get("V", 1), network.get_by_label("He1V1")
    productions = network.catalog.get_reactions(ReactionType.PRODUCTION)
    dissociations = network.catalog.get_reactions(ReactionType.DISSOCIATION)
    # He1 + He1 -> He2 and He1 + He1V1 -> He2V1 have no product in the network
    assert len(productions) == 1
    assert productions[0].reactants == (he.id, v.id)
    assert productions[0].products == (hev.id,)
    assert len(dissociations) == 1
    assert dissociations[0].reactants == (hev.id,)
    assert set(dissociations[0].products) == {he.id, v.id}


def test_dissociation_only_reverses_monomer_productions() -> None:
    network = ReactionNetwork.from_config({
        "network": {"species": ["He"]},
        "clusters": [
            {"composition": {"He": [1, 4]}, "migration_energy": [0.13, 0.2, 0.25, 0.3],
             "diffusion_factor": [2.95e10, 3.2e10, 2.3e10, 1.7e10]},
        ],
    })
    catalog = network.catalog
    he1, he2, he4 = network.get("He", 1), network.get("He", 2), network.get("He", 4)
    assert catalog.get_production(he2.id, he2.id).products == (he4.id,)
    assert catalog.get_dissociation(he4.id, he2.id, he2.id) is None
    assert catalog.get_dissociation(he2.id, he1.id, he1.id) is not None


def test_annihilation_without_products() -> None:
    network = ReactionNetwork.from_config({
        "network": {"species": ["V", "I"], "temperature": 1000.0},
        "clusters": [
            {"composition": {"V": 1}, "migration_energy": 1.3, "diffusion_factor": 1.8e12, "radius": 0.2},
            {"composition": {"I": 1}, "migration_energy": 0.01, "diffusion_factor": 8.8e10, "radius": 0.2},
        ],
    })
    v, i = network.get("V", 1), network.get("I", 1)
    reaction = network.catalog.get_production(v.id, i.id)
    assert reaction.products == ()
    assert len(network.catalog.get_reactions(ReactionType.DISSOCIATION)) == 0

    network.update_concentrations_from_array([2e-3, 3e-3])
    expected = reaction.k_constant * 2e-3 * 3e-3
    assert v.get_total_flux() == pytest.approx(-expected)
    assert i.get_total_flux() == pytest.approx(-expected)


def test_summary(grouped_network, capsys) -> None:
    summary = grouped_network.get_network_summary()
    assert summary["n_reactants"] == 7
    assert summary["n_super_clusters"] == 1
    assert summary["dof"] == 9
    assert summary["n_productions"] + summary["n_dissociations"] == len(grouped_network.catalog)
    grouped_network.print_summary()
    assert "Reaction Network Summary" in capsys.readouterr().out


def test_copy_is_independent(grouped_network) -> None:
    from conftest import sample_state

    network = grouped_network
    network.update_concentrations_from_array(sample_state(network))
    other = network.copy()
    assert other.size() == network.size()
    assert other.temperature == pytest.approx(network.temperature)
    assert other.catalog.rates == pytest.approx(network.catalog.rates)
    assert other.fill_concentrations_array() == pytest.approx(network.fill_concentrations_array())
    other.set_temperature(500.0)
    assert network.temperature == pytest.approx(1000.0)


def test_untracked_species_lookups(he_v_network) -> None:
    network = he_v_network
    assert network.get("Xe", 1) is None
    assert network.get_by_composition({"Xe": 1}) is None
    assert network.get_by_composition({"He": 1, "Xe": 1}) is None
    assert network.get_by_label("Xe1") is None
    assert network.get_by_label("He1") is network.get("He", 1)


def test_negative_diffusion_factor() -> None:
    config = he_v_config()
    config["clusters"][0]["diffusion_factor"] = -1.0
    with pytest.raises(ConfigurationError):
        ReactionNetwork.from_config(config)


def test_non_positive_radius() -> None:
    config = he_v_config()
    config["clusters"][1]["radius"] = 0.0
    with pytest.raises(ConfigurationError):
        ReactionNetwork.from_config(config)


def test_parameter_list_shorter_than_range() -> None:
    config = he_v_config()
    config["clusters"].append({"composition": {"He": [2, 3]}, "formation_energy": [1.0]})
    with pytest.raises(ConfigurationError) as excinfo:
        ReactionNetwork.from_config(config)
    assert excinfo.value.context == {"key": "formation_energy", "index": 1}


def test_unparsable_units() -> None:
    config = he_v_config()
    config["clusters"][0]["migration_energy"] = "0.13 furlongs"
    with pytest.raises(ConfigurationError):
        ReactionNetwork.from_config(config)
    config = he_v_config()
    config["network"]["temperature"] = "1000 eV"
    with pytest.raises(ConfigurationError):
        ReactionNetwork.from_config(config)


def test_errors_carry_context() -> None:
    config = grouped_config()
    config["clusters"].append({"composition": {"He": 3, "V": 1}})
    with pytest.raises(ConfigurationError) as excinfo:
        ReactionNetwork.from_config(config)
    assert excinfo.value.context == {"cluster": "He3V1", "super_cluster": "He2-4V1-2"}
    assert "super_cluster" in excinfo.value.log_message()
