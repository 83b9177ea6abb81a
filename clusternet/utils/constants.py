"""
Physical constants and unit handling used by the reaction network.

Internal units: energies in eV, lengths in nm, diffusion coefficients in nm^2/s,
concentrations in nm^-3 and temperatures in K.
"""

import pint
from scipy.constants import physical_constants, pi

# Create a centralized unit registry
ureg = pint.UnitRegistry()

# Fundamental constants
BOLTZMANN_CONSTANT_EV = physical_constants["Boltzmann constant in eV/K"][0]  # eV/K
PI = pi

# Lattice constants (nm)
TUNGSTEN_LATTICE_CONSTANT = 0.31700
URANIUM_DIOXIDE_LATTICE_CONSTANT = 0.5465
IRON_LATTICE_CONSTANT = 0.28700

# Impurity radii (nm)
HELIUM_RADIUS = 0.3
XENON_RADIUS = 0.3

# Internal units for parse_quantity
ENERGY_UNIT = "eV"
LENGTH_UNIT = "nm"
DIFFUSION_UNIT = "nm^2/s"
TEMPERATURE_UNIT = "K"


# Unit parsing and conversion utilities
def parse_quantity(value, default_unit=None, target_unit=None) -> float:
    """
    Parse a quantity that can be a number or string with units.

    Parameters
    ----------
    value : Union[float, int, str]
        The value to parse. If string, should include units (e.g., "0.13 eV").
        If number, it is expressed in ``default_unit``.
    default_unit : str, optional
        Default unit to assume if value is a number. If None, no conversion.
    target_unit : str, optional
        Target unit to convert to. If None, converts to SI base units.

    Returns
    -------
    float
        The value in the target unit (or SI base units if target_unit is None).

    Examples
    --------
    >>> parse_quantity("1000 K", target_unit="K")
    1000.0
    >>> parse_quantity(0.317, "nm", "nm")
    0.317
    >>> parse_quantity("3.17 angstrom", target_unit="nm")
    0.317
    """
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse quantity: {value}")
    if isinstance(value, str):
        # A bare number written as a string, e.g. "inf" or "1e10"
        try:
            return parse_quantity(float(value), default_unit, target_unit)
        except ValueError:
            pass
        # Parse string with units
        try:
            quantity = ureg(value)
            if target_unit:
                return float(quantity.to(target_unit).magnitude)
            return float(quantity.to_base_units().magnitude)
        except pint.errors.PintError as e:
            raise ValueError(f"Cannot parse quantity: {value}") from e
    elif isinstance(value, (int, float)):
        # Number - apply default unit
        if default_unit:
            quantity = value * ureg(default_unit)
            if target_unit:
                return float(quantity.to(target_unit).magnitude)
            else:
                return float(quantity.to_base_units().magnitude)
        else:
            return float(value)
    else:
        raise ValueError(f"Cannot parse quantity: {value}")


def format_quantity(value, unit, precision=3) -> str:
    """
    Format a quantity with units for display.

    Parameters
    ----------
    value : float
        The value in ``unit``
    unit : str
        The unit to display
    precision : int, optional
        Number of decimal places

    Returns
    -------
    str
        Formatted string with value and unit
    """
    quantity = value * ureg(unit)
    return f"{quantity:~P.{precision}f}"
