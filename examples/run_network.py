"""Build a small tungsten network and evaluate one grid point."""
import logging
from pathlib import Path

import numpy as np

from clusternet.analysis import reactions_dataframe
from clusternet.io import InputParser

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="[%(levelname)s]:%(name)s:%(message)s")

# Set DEBUG level only for clusternet modules
logging.getLogger("clusternet").setLevel(logging.INFO)

# Paths relative to script location (run from project root: python examples/run_network.py)
examples_dir = Path(__file__).resolve().parent
config_path = examples_dir / "tungsten_small.yaml"

# Load the network using InputParser
parser = InputParser()
network = parser.get_network_from_yaml(config_path)
network.print_summary()
print(reactions_dataframe(network).head(10))

# Uniform concentrations at one grid point (nm^-3)
buffer = np.zeros(network.get_dof())
buffer[: network.size()] = 1e-6

fluxes = network.compute_all_fluxes(buffer)
jacobian = network.compute_all_partials(buffer)

print("Fluxes (nm^-3 s^-1):")
for reactant in network:
    print(f"  {reactant.label}: {fluxes[reactant.id]:.4e}")
print(f"Jacobian block: {jacobian.shape[0]}x{jacobian.shape[1]}, {jacobian.nnz} non-zeros")

# Change the temperature and evaluate again
network.set_temperature(1200.0)
fluxes = network.compute_all_fluxes(buffer)
print(f"Total flux at 1200 K: {fluxes.sum():.4e}")
