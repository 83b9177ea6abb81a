"""
Input file parser for reaction networks.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from ..core.errors import ConfigurationError
from ..core.network import ReactionNetwork

logger = logging.getLogger(__name__)


class InputParser:
    """Parser for network input files."""

    def __init__(self):
        pass

    def _parse_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Parse YAML format input file."""
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ConfigurationError(f"{file_path} does not contain a YAML mapping")
        return data

    def get_network_from_yaml(self, file_path: Union[str, Path]) -> ReactionNetwork:
        """Parse a network YAML file and build the network."""
        file_path = Path(file_path)
        data = self._parse_yaml_file(file_path)
        logger.info(f"Building reaction network from {file_path}")
        try:
            return ReactionNetwork.from_config(data)
        except ConfigurationError as e:
            logger.error(f"Invalid network file {file_path}: {e.log_message()}")
            raise

    def write_network_to_yaml(self, network: ReactionNetwork, file_path: Union[str, Path]) -> None:
        """Write the configuration of a network to a YAML file."""
        file_path = Path(file_path)
        with open(file_path, "w") as f:
            yaml.safe_dump(network.to_config(), f, sort_keys=False)
