"""Unit normalization applied before any quantity reaches the ledger.

Stock is always stored in kg, l or unit.
"""

from decimal import Decimal

from stockledger.exceptions import UnitMismatchError, ValidationError

MASS = "mass"
VOLUME = "volume"
COUNT = "count"

# alias -> (canonical unit, factor to canonical)
_UNITS: dict[str, tuple[str, Decimal]] = {
    "g": ("kg", Decimal("0.001")),
    "kg": ("kg", Decimal("1")),
    "ml": ("l", Decimal("0.001")),
    "l": ("l", Decimal("1")),
    "unit": ("unit", Decimal("1")),
}

_ALIASES = {
    "units": "unit",
    "unité": "unit",
    "unités": "unit",
    "unité(s)": "unit",
    "unites": "unit",
    "u": "unit",
    "pc": "unit",
    "pcs": "unit",
}

_DIMENSIONS = {"kg": MASS, "l": VOLUME, "unit": COUNT}


def _plain(value: Decimal) -> Decimal:
    # 1E+3 -> 1000, 0.500 -> 0.5
    if value == value.to_integral_value():
        return value.quantize(Decimal("1"))
    return value.normalize()


def _lookup(unit: str | None) -> tuple[str, Decimal]:
    key = (unit or "unit").strip().lower()
    key = _ALIASES.get(key, key)
    if key not in _UNITS:
        raise ValidationError(f"Unknown unit '{unit}'", field="unit")
    return _UNITS[key]


def canonical_unit(unit: str | None) -> str:
    return _lookup(unit)[0]


def normalize(quantity: Decimal, unit: str | None) -> tuple[Decimal, str]:
    """Express ``quantity`` in the canonical unit of its dimension (g -> kg, ml -> l)."""
    canonical, factor = _lookup(unit)
    return _plain(quantity * factor), canonical


def convert(quantity: Decimal, from_unit: str | None, to_unit: str | None) -> Decimal:
    """Convert between two units of the same dimension.

    Mass and volume are never interchangeable here: that needs a density,
    which stock items don't carry.
    """
    value, source = normalize(quantity, from_unit)
    target, factor = _lookup(to_unit)
    if _DIMENSIONS[source] != _DIMENSIONS[target]:
        raise UnitMismatchError(str(from_unit), str(to_unit))
    return _plain(value / factor)
