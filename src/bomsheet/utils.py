"""
Utility functions for input validation and value formatting.

This module handles the low-level checks and conversions, including:
- Part number / quantity type validation.
- Best-effort numeric coercion for cost and weight roll-ups.
- Short US date formatting for exported documents.
- Escaping text for Excel print headers and footers.
"""

import datetime
import math
from decimal import Decimal
from numbers import Real
from typing import Any

from bomsheet.errors import InvalidInputError

INVALID_PART_NUMBER = "Invalid part number provided. The part number must be a string."
INVALID_QUANTITY = "Invalid part quantity provided. Part quantity must be a number."
INVALID_OPTIONAL_QUANTITY = (
    "Invalid part quantity provided. Part quantity must be a number or None."
)


def is_number(value: Any) -> bool:
    """
    Checks whether a value is a usable quantity.

    Booleans are rejected even though Python treats them as integers,
    and so is NaN.
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return not value.is_nan()
    if isinstance(value, Real):
        return not math.isnan(value)
    return False


def as_quantity(value: Any) -> Any:
    """
    Normalizes a validated quantity before it is stored or combined.

    Decimals become floats so that later arithmetic never mixes Decimal with
    float. Other numbers are returned unchanged.
    """
    if isinstance(value, Decimal):
        return float(value)
    return value


def validate_part_number(part_number: Any) -> None:
    """Raises InvalidInputError unless ``part_number`` is a string."""
    if not isinstance(part_number, str):
        raise InvalidInputError(INVALID_PART_NUMBER)


def sanitize_inputs(part_number: Any, quantity: Any) -> None:
    """
    Validates the arguments shared by ``add`` and ``set``.

    Args:
        part_number: Must be a string.
        quantity: Must be a real number (not bool, not NaN).

    Raises:
        InvalidInputError: On the first invalid argument.
    """
    validate_part_number(part_number)
    if not is_number(quantity):
        raise InvalidInputError(INVALID_QUANTITY)


def to_number(value: Any) -> float:
    """
    Coerces a unit value to float for aggregation.

    Missing or non-numeric values count as zero.

    Args:
        value: Raw value from a details record (e.g., ``12.5``, ``None``, ``"n/a"``).

    Returns:
        The float value, or 0.0.
    """
    if not is_number(value):
        return 0.0
    return float(value)


def format_short_date(value: datetime.date) -> str:
    """
    Formats a date the way en-US "short" date style does.

    Example:
        date(2026, 3, 7) -> '3/7/26'
    """
    return f"{value.month}/{value.day}/{value:%y}"


def escape_header_text(text: str) -> str:
    """
    Escapes user text for an Excel header/footer section.

    A literal ampersand must be doubled, otherwise Excel reads it as the
    start of a formatting code.
    """
    return text.replace("&", "&&")
