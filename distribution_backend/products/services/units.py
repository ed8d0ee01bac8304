# products/services/units.py

"""
BASE / PACKAGE UNIT CONVERSION

The ledger only ever sees base units. Documents convert at their boundary:
- to_base_units(): presentation quantity -> base units (before touching stock)
- split_base_units(): base units -> (boxes, loose units) for picking/kardex display
"""

from __future__ import annotations

from products.services.exceptions import InvalidQuantity

UNIT_BASE = "UND"
UNIT_PACKAGE = "PKG"

UNIT_CHOICES = [
    (UNIT_BASE, "Unit"),
    (UNIT_PACKAGE, "Package"),
]


def to_int_qty(value, *, field_name="quantity") -> int:
    """
    Quantity normalizer.
    HARD RULE: quantities are whole integer units in this system.
    """
    if value is None or value == "":
        raise InvalidQuantity(f"{field_name} is required")

    if isinstance(value, bool):
        raise InvalidQuantity(f"{field_name} must be a whole integer")

    if isinstance(value, int):
        return value

    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())

    raise InvalidQuantity(f"{field_name} must be a whole integer")


def conversion_factor(unit: str, package_content) -> int:
    if unit == UNIT_PACKAGE:
        return max(int(package_content or 1), 1)
    if unit == UNIT_BASE:
        return 1
    raise InvalidQuantity(f"Unknown unit: {unit!r}")


def to_base_units(quantity, unit: str, package_content) -> int:
    qty = to_int_qty(quantity)
    if qty <= 0:
        raise InvalidQuantity("quantity must be greater than zero")
    return qty * conversion_factor(unit, package_content)


def split_base_units(quantity, package_content) -> tuple[int, int]:
    qty = to_int_qty(quantity)
    factor = max(int(package_content or 1), 1)
    return qty // factor, qty % factor
