"""
JSON BOM template loading.

A template is an array of entries, each naming a part number, a quantity
(number or expression) and an optional inclusion condition:

    [
        {"partNumber": "BUN-01", "quantity": "guests * 2"},
        {"partNumber": "CAKE-07", "quantity": 1, "included": "day === 'Friday'"}
    ]

This module reads and validates the file and resolves the entries against a
scope. Missing files and malformed JSON surface directly from the file and
``json`` layers.
"""

import json
import logging
import os
from typing import Any

from bomsheet.errors import TemplateError
from bomsheet.expressions import compile_expression
from bomsheet.types import BOMItem, TemplateEntry
from bomsheet.utils import is_number

logger = logging.getLogger(__name__)

_ENTRY_KEYS = {"partNumber", "quantity", "included"}


def _validate_entry(index: int, entry: Any) -> TemplateEntry:
    """Checks the shape of a single template entry."""
    if not isinstance(entry, dict):
        raise TemplateError(f"Template entry {index} must be an object.")

    unknown = set(entry) - _ENTRY_KEYS
    if unknown:
        raise TemplateError(
            f"Template entry {index} has unknown key(s): {', '.join(sorted(unknown))}."
        )

    if not isinstance(entry.get("partNumber"), str):
        raise TemplateError(f"Template entry {index} needs a string 'partNumber'.")

    quantity = entry.get("quantity")
    if not (isinstance(quantity, str) or is_number(quantity)):
        raise TemplateError(
            f"Template entry {index} needs a numeric or string 'quantity'."
        )

    if "included" in entry and not isinstance(entry["included"], str):
        raise TemplateError(f"Template entry {index} has a non-string 'included'.")

    return entry  # type: ignore[return-value]


def read_template(template_path: str | os.PathLike) -> list[TemplateEntry]:
    """
    Reads and validates a JSON BOM template.

    Args:
        template_path: Path to the JSON file.

    Returns:
        The template entries in file order.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        TemplateError: If the document is not an array of valid entries.
    """
    with open(template_path, "r", encoding="utf-8") as f:
        contents = json.load(f)

    if not isinstance(contents, list):
        raise TemplateError("A BOM template must be a JSON array of entries.")

    entries = [_validate_entry(i, entry) for i, entry in enumerate(contents)]
    logger.debug(f"Read {len(entries)} template entries from {template_path}")
    return entries


def resolve_entries(entries: list[TemplateEntry], scope: Any) -> list[BOMItem]:
    """
    Evaluates template entries against the scope data.

    Entries whose ``included`` expression is falsy are dropped; the rest get
    their ``quantity`` expression evaluated. Every expression is compiled
    before any is evaluated, so a syntax error anywhere fails the whole call.

    Args:
        entries: Validated template entries.
        scope: Mapping or object whose own data is visible to the expressions.

    Returns:
        The included part numbers and their evaluated quantities, in template
        order. Quantities are not type checked here.

    Raises:
        ExpressionError: If an expression cannot be parsed or evaluated.
    """
    compiled = [
        (
            entry["partNumber"],
            compile_expression(entry["quantity"]),
            compile_expression(entry["included"]) if "included" in entry else None,
        )
        for entry in entries
    ]

    items: list[BOMItem] = []
    for part_number, quantity, included in compiled:
        if included is not None and not included(scope):
            logger.debug(f"Skipping {part_number}: {included.source!r} is falsy")
            continue
        items.append({"part_number": part_number, "quantity": quantity(scope)})

    return items
