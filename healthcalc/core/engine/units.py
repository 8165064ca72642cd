"""
Unit Conversion Module

Multiplicative conversion between the units a user may enter and the
canonical unit each quantity is evaluated in.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from healthcalc.core.engine.errors import ConfigurationError
from healthcalc.utils import get_logger

logger = get_logger(__name__)


class QuantityKind(str, Enum):
    """Physical quantity being measured."""
    CHOLESTEROL = "cholesterol"
    TRIGLYCERIDES = "triglycerides"
    GLUCOSE = "glucose"
    VITAMIN_D = "vitamin_d"
    WEIGHT = "weight"
    HEIGHT = "height"
    LENGTH = "length"
    PRESSURE = "pressure"
    VOLUME = "volume"


class Unit(str, Enum):
    """Units accepted on input."""
    MG_DL = "mg_dl"
    MMOL_L = "mmol_l"
    NG_ML = "ng_ml"
    NMOL_L = "nmol_l"
    KG = "kg"
    LB = "lb"
    CM = "cm"
    INCH = "in"
    MMHG = "mmHg"
    KPA = "kPa"
    LITER = "L"
    FL_OZ = "fl_oz"

    @property
    def symbol(self) -> str:
        return UNIT_SYMBOLS[self]


UNIT_SYMBOLS: Dict[Unit, str] = {
    Unit.MG_DL: "mg/dL",
    Unit.MMOL_L: "mmol/L",
    Unit.NG_ML: "ng/mL",
    Unit.NMOL_L: "nmol/L",
    Unit.KG: "kg",
    Unit.LB: "lb",
    Unit.CM: "cm",
    Unit.INCH: "in",
    Unit.MMHG: "mmHg",
    Unit.KPA: "kPa",
    Unit.LITER: "L",
    Unit.FL_OZ: "fl oz",
}

CANONICAL_UNITS: Dict[QuantityKind, Unit] = {
    QuantityKind.CHOLESTEROL: Unit.MG_DL,
    QuantityKind.TRIGLYCERIDES: Unit.MG_DL,
    QuantityKind.GLUCOSE: Unit.MG_DL,
    QuantityKind.VITAMIN_D: Unit.NG_ML,
    QuantityKind.WEIGHT: Unit.KG,
    QuantityKind.HEIGHT: Unit.CM,
    QuantityKind.LENGTH: Unit.CM,
    QuantityKind.PRESSURE: Unit.MMHG,
    QuantityKind.VOLUME: Unit.LITER,
}

# (quantity, from, to) -> factor; reciprocals are registered automatically
DEFAULT_FACTORS: Tuple[Tuple[QuantityKind, Unit, Unit, float], ...] = (
    (QuantityKind.CHOLESTEROL, Unit.MMOL_L, Unit.MG_DL, 38.67),
    (QuantityKind.TRIGLYCERIDES, Unit.MMOL_L, Unit.MG_DL, 88.57),
    (QuantityKind.GLUCOSE, Unit.MMOL_L, Unit.MG_DL, 18.0182),
    (QuantityKind.VITAMIN_D, Unit.NMOL_L, Unit.NG_ML, 1 / 2.5),
    (QuantityKind.WEIGHT, Unit.LB, Unit.KG, 0.453592),
    (QuantityKind.HEIGHT, Unit.INCH, Unit.CM, 2.54),
    (QuantityKind.LENGTH, Unit.INCH, Unit.CM, 2.54),
    (QuantityKind.PRESSURE, Unit.KPA, Unit.MMHG, 7.50062),
    (QuantityKind.VOLUME, Unit.LITER, Unit.FL_OZ, 33.814),
)


def canonical_unit(quantity: QuantityKind) -> Unit:
    """Internal unit a quantity is classified in."""
    return CANONICAL_UNITS[quantity]


class UnitConverter:
    """Factor table with automatic inverse registration."""

    def __init__(self, factors=DEFAULT_FACTORS):
        self._factors: Dict[Tuple[QuantityKind, Unit, Unit], float] = {}
        for quantity, from_unit, to_unit, factor in factors:
            self.register(quantity, from_unit, to_unit, factor)

    def register(self, quantity: QuantityKind, from_unit: Unit, to_unit: Unit, factor: float) -> None:
        if from_unit == to_unit or factor <= 0 or not math.isfinite(factor):
            raise ConfigurationError(
                f"Invalid conversion {from_unit.value}->{to_unit.value} for {quantity.value}: {factor}"
            )
        self._factors[(quantity, from_unit, to_unit)] = factor
        self._factors[(quantity, to_unit, from_unit)] = 1.0 / factor

    def pairs(self):
        """Registered (quantity, from, to) keys."""
        return list(self._factors.keys())

    def convert(self, value: float, from_unit: Unit, to_unit: Unit, quantity: QuantityKind) -> float:
        """
        Convert value between units of one quantity.

        Identity when from_unit == to_unit. No rounding is applied.

        Raises:
            ValueError: value is negative or not finite.
            ConfigurationError: no factor is registered for the combination.
        """
        if isinstance(value, bool) or not math.isfinite(value) or value < 0:
            raise ValueError(f"Cannot convert {value!r}: expected a finite non-negative number")
        if from_unit == to_unit:
            return value
        factor = self._factors.get((quantity, from_unit, to_unit))
        if factor is None:
            raise ConfigurationError(
                f"No conversion from {from_unit.value} to {to_unit.value} for {quantity.value}"
            )
        return value * factor


_default_converter = UnitConverter()


def get_converter() -> UnitConverter:
    """Shared converter with the default factor table."""
    return _default_converter


def convert(value: float, from_unit: Unit, to_unit: Unit, quantity: QuantityKind) -> float:
    """Convert using the default factor table."""
    return _default_converter.convert(value, from_unit, to_unit, quantity)


@dataclass(frozen=True)
class UnitBinding:
    """
    Ties an input field to a quantity and to the choice field selecting its unit.

    ``unit_map`` translates the choice value (e.g. ``"imperial"``) to a Unit.
    Without a ``unit_field`` the value is always entered in ``fixed_unit``.
    """
    quantity: QuantityKind
    unit_field: Optional[str] = None
    unit_map: Mapping[str, Unit] = field(default_factory=dict)
    fixed_unit: Optional[Unit] = None

    @property
    def canonical(self) -> Unit:
        return canonical_unit(self.quantity)

    def entered_unit(self, values: Mapping) -> Unit:
        """Unit the value was entered in, given the validated input."""
        if self.unit_field is not None:
            choice = values.get(self.unit_field)
            if choice in self.unit_map:
                return self.unit_map[choice]
            try:
                return Unit(choice)
            except ValueError:
                raise ConfigurationError(
                    f"Unit choice {choice!r} of '{self.unit_field}' maps to no unit"
                ) from None
        return self.fixed_unit or self.canonical

    def to_canonical(self, value: float, values: Mapping) -> float:
        return convert(value, self.entered_unit(values), self.canonical, self.quantity)

    def from_canonical(self, value: float, values: Mapping) -> float:
        return convert(value, self.canonical, self.entered_unit(values), self.quantity)
