import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from ..utils import PI, parse_quantity
from ..utils.constants import DIFFUSION_UNIT, ENERGY_UNIT, LENGTH_UNIT
from .errors import ConfigurationError


@dataclass
class ReactantProperties:
    """Container for the physical parameters of a reactant."""

    formation_energy: float = math.inf  # eV
    migration_energy: float = math.inf  # eV
    diffusion_factor: float = 0.0  # nm^2/s
    radius: Optional[float] = None  # nm, None -> computed from the composition

    def __post_init__(self):
        """Validate parameter consistency."""
        if self.diffusion_factor < 0.0:
            raise ConfigurationError(
                f"Diffusion factor must be non-negative, got {self.diffusion_factor}",
                context={"diffusion_factor": self.diffusion_factor},
            )
        if self.migration_energy < 0.0:
            raise ConfigurationError(
                f"Migration energy must be non-negative, got {self.migration_energy}",
                context={"migration_energy": self.migration_energy},
            )
        if self.radius is not None and self.radius <= 0.0:
            raise ConfigurationError(
                f"Reaction radius must be positive, got {self.radius}", context={"radius": self.radius}
            )

    @property
    def is_mobile(self) -> bool:
        return self.diffusion_factor > 0.0 and math.isfinite(self.migration_energy)

    def get_diffusion_coefficient(self, temperature: float, boltzmann_constant: float) -> float:
        """Arrhenius diffusion coefficient D0 * exp(-Em / (kB * T)) in nm^2/s."""
        if not self.is_mobile:
            return 0.0
        return self.diffusion_factor * math.exp(-self.migration_energy / (boltzmann_constant * temperature))

    @classmethod
    def from_config(cls, config: Dict[str, Any], index: int = 0) -> "ReactantProperties":
        """Create properties from configuration.

        ``formation_energy`` and the other entries may be a single value or a list
        with one value per expanded composition; ``index`` selects the entry.
        """

        def pick(key: str, default: Any) -> Any:
            value = config.get(key, default)
            if isinstance(value, (list, tuple)):
                if index >= len(value):
                    raise ConfigurationError(
                        f"'{key}' has {len(value)} values, no value for entry {index}",
                        context={"key": key, "index": index},
                    )
                value = value[index]
            return value

        def quantity(key: str, default: Any, unit: str) -> Optional[float]:
            return parse_config_quantity(pick(key, default), unit, key)

        return cls(
            formation_energy=quantity("formation_energy", math.inf, ENERGY_UNIT),
            migration_energy=quantity("migration_energy", math.inf, ENERGY_UNIT),
            diffusion_factor=quantity("diffusion_factor", 0.0, DIFFUSION_UNIT),
            radius=quantity("radius", None, LENGTH_UNIT),
        )

    def to_config(self) -> Dict[str, Any]:
        """Convert to configuration format."""
        config: Dict[str, Any] = {}
        if math.isfinite(self.formation_energy):
            config["formation_energy"] = f"{self.formation_energy} {ENERGY_UNIT}"
        if math.isfinite(self.migration_energy):
            config["migration_energy"] = f"{self.migration_energy} {ENERGY_UNIT}"
        if self.diffusion_factor > 0.0:
            config["diffusion_factor"] = f"{self.diffusion_factor} {DIFFUSION_UNIT}"
        if self.radius is not None:
            config["radius"] = f"{self.radius} {LENGTH_UNIT}"
        return config

def parse_config_quantity(value: Any, unit: str, key: str) -> Optional[float]:
    """Parse a configuration quantity in ``unit``; None stays None.

    Raises
    ------
    ConfigurationError
        If the value is not a number or cannot be converted to ``unit``.
    """
    if value is None:
        return None
    try:
        return parse_quantity(value, unit, unit)
    except ValueError as e:
        raise ConfigurationError(f"Invalid '{key}': {e}", context={"key": key, "value": value}) from e


def compute_default_radius(
    counts: Sequence[float],
    defect_counts: Sequence[float],
    lattice_parameter: float,
    impurity_radius: float,
) -> float:
    """Reaction radius from a (possibly mean) composition.

    Parameters
    ----------
    counts : Sequence[float]
        Impurity atom counts of the reactant.
    defect_counts : Sequence[float]
        Vacancy and interstitial counts of the reactant.
    lattice_parameter : float
        Lattice parameter in nm.
    impurity_radius : float
        Radius of a single impurity atom in nm.

    Returns
    -------
    float
        Radius in nm. Clusters holding point defects use the vacancy-type
        formula on the defect count, pure impurity clusters grow from the
        impurity radius.
    """
    unit_volume = 3.0 * lattice_parameter ** 3 / (8.0 * PI)
    defects = max(defect_counts, default=0.0)
    if defects > 0:
        return (
            lattice_parameter * math.sqrt(3.0) / 4.0
            + (unit_volume * defects) ** (1.0 / 3.0)
            - unit_volume ** (1.0 / 3.0)
        )
    atoms = sum(counts)
    if atoms <= 0:
        raise ValueError("Cannot compute the radius of an empty composition")
    return impurity_radius + (unit_volume * atoms) ** (1.0 / 3.0) - unit_volume ** (1.0 / 3.0)
