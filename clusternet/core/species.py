"""
Tracked species definitions and composition handling.
"""

import re
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .errors import ConfigurationError

# A composition is an integer vector over the species order
Composition = Tuple[int, ...]
CompositionLike = Union[Composition, List[int], Mapping[str, int]]

LABEL_COMPONENT_PATTERN = re.compile(r"([A-Z][a-z]*)(\d+)")


class SpeciesType(Enum):
    """Types of tracked species."""

    IMPURITY = "impurity"
    VACANCY = "vacancy"
    INTERSTITIAL = "interstitial"


DEFAULT_SPECIES_TYPES = {
    "He": SpeciesType.IMPURITY,
    "D": SpeciesType.IMPURITY,
    "T": SpeciesType.IMPURITY,
    "Xe": SpeciesType.IMPURITY,
    "V": SpeciesType.VACANCY,
    "I": SpeciesType.INTERSTITIAL,
}


@dataclass
class Species:
    """Represents a tracked species (an atom type or a point defect)."""

    symbol: str
    type: SpeciesType = SpeciesType.IMPURITY

    def __post_init__(self):
        if not re.fullmatch(r"[A-Z][a-z]*", self.symbol):
            raise ConfigurationError(
                f"Invalid species symbol '{self.symbol}', expected a capital letter optionally followed by lowercase letters"
            )

    @classmethod
    def from_config(cls, symbol: str, config: Optional[Dict[str, Any]] = None) -> "Species":
        """Create a species from its symbol and an optional configuration."""
        config = config or {}
        type_name = config.get("type")
        if type_name is None:
            species_type = DEFAULT_SPECIES_TYPES.get(symbol, SpeciesType.IMPURITY)
        else:
            try:
                species_type = SpeciesType(type_name)
            except ValueError as err:
                raise ConfigurationError(f"Invalid type '{type_name}' for species {symbol}") from err
        return cls(symbol=symbol, type=species_type)

    def to_config(self) -> Dict[str, Any]:
        return {"type": self.type.value}

    def __str__(self) -> str:
        return self.symbol


class SpeciesCollection:
    """Ordered collection of species with composition helpers."""

    def __init__(self, species: "OrderedDict[str, Species]"):
        if not species:
            raise ConfigurationError("At least one species must be tracked")
        self.species = species
        self._species_order = list(species.keys())
        self._index_by_symbol = {symbol: i for i, symbol in enumerate(self._species_order)}

    @classmethod
    def from_config(cls, config: Union[List[str], Dict[str, Any]]) -> "SpeciesCollection":
        """Create a species collection from a list of symbols or a symbol -> config mapping."""
        species = OrderedDict()
        if isinstance(config, dict):
            items = config.items()
        else:
            items = ((symbol, None) for symbol in config)
        for symbol, species_config in items:
            if symbol in species:
                raise ConfigurationError(f"Species '{symbol}' is listed twice")
            species[symbol] = Species.from_config(symbol, species_config)
        return cls(species)

    def to_config(self) -> Dict[str, Any]:
        return {symbol: sp.to_config() for symbol, sp in self.species.items()}

    def get_species_order(self) -> List[str]:
        """Get the order of species as defined in the collection."""
        return self._species_order.copy()

    def index(self, symbol: str) -> int:
        """Get the position of a species in compositions."""
        if symbol not in self._index_by_symbol:
            raise KeyError(f"Species '{symbol}' not found. Available species: {self._species_order}")
        return self._index_by_symbol[symbol]

    def get_by_symbol(self, symbol: str) -> Species:
        """Get species by symbol."""
        if symbol not in self.species:
            raise KeyError(f"Species with symbol '{symbol}' not found")
        return self.species[symbol]

    def get_symbols_of_type(self, species_type: SpeciesType) -> List[str]:
        return [symbol for symbol, sp in self.species.items() if sp.type == species_type]

    def empty_composition(self) -> Composition:
        return (0,) * len(self._species_order)

    def to_composition(self, composition: CompositionLike) -> Composition:
        """Convert a mapping or a sequence into a complete composition tuple."""
        if isinstance(composition, Mapping):
            counts = [0] * len(self._species_order)
            for symbol, count in composition.items():
                counts[self.index(symbol)] = int(count)
            return tuple(counts)
        counts = tuple(int(count) for count in composition)
        if len(counts) != len(self._species_order):
            raise ValueError(
                f"Composition {composition} has {len(counts)} entries, expected {len(self._species_order)}"
            )
        return counts

    def to_dict(self, composition: Composition) -> "OrderedDict[str, int]":
        """Get composition with all species, including zeros."""
        return OrderedDict(zip(self._species_order, composition))

    def unit_composition(self, symbol: str, size: int = 1) -> Composition:
        counts = [0] * len(self._species_order)
        counts[self.index(symbol)] = size
        return tuple(counts)

    def composition_to_label(self, composition: Composition) -> str:
        """Convert composition to label, e.g. He2V1."""
        return "".join(
            f"{symbol}{count}" for symbol, count in zip(self._species_order, composition) if count > 0
        )

    def label_to_composition(self, label: str) -> Composition:
        """Parse a label using the species order."""
        counts = [0] * len(self._species_order)
        for symbol, count_str in LABEL_COMPONENT_PATTERN.findall(label):
            counts[self.index(symbol)] += int(count_str)
        return tuple(counts)

    def type_name(self, composition: Composition) -> str:
        """Concatenation of the species present, e.g. He, V or HeV."""
        return "".join(symbol for symbol, count in zip(self._species_order, composition) if count > 0)

    def __len__(self) -> int:
        return len(self.species)

    def __iter__(self):
        return iter(self.species.values())

    def __getitem__(self, key: str) -> Species:
        return self.species[key]

    def __contains__(self, key: str) -> bool:
        return key in self.species
