"""
Type definitions and shared data structures for the bomsheet library.

This module contains the TypedDicts and type aliases passed between the
BillOfMaterials entity, the template loader and the spreadsheet exporter.
"""

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypedDict

from bomsheet import constants as C
from bomsheet.errors import InitializationError


class ItemDetails(TypedDict, total=False):
    """
    Descriptive attributes for a single part number.

    A snapshot of whatever the lookup function returned, merged with the
    part number and quantity at the time of the fetch. Unknown keys returned
    by the lookup are kept as-is.

    Attributes:
        part_number: Part number (unique ID).
        quantity: Quantity tracked when the details were fetched.
        title: Part title.
        description: Part description.
        manufacturer: Manufacturer name.
        manufacturer_part_number: Manufacturer's own part number.
        unit: Unit of measure (ex: each, in, feet, lbs).
        unit_cost: Cost of one unit.
        unit_weight: Weight of one unit.
    """

    part_number: str
    quantity: float
    title: str
    description: str
    manufacturer: str
    manufacturer_part_number: str
    unit: str
    unit_cost: float
    unit_weight: float


class BOMItem(TypedDict):
    """A part number and its tracked quantity."""

    part_number: str
    quantity: float


class CustomProperty(TypedDict):
    """A user defined name/value pair printed at the top of an export."""

    name: str
    value: str


class BOMMetadata(TypedDict, total=False):
    """
    Optional metadata associated with a bill of materials.

    Only used to format exports, never for aggregation.

    Attributes:
        title: Document title. Defaults to "Bill of Materials".
        subtitle: Printed under the title in the page header.
        footer: Printed on the left of the page footer.
        company: Recorded as the workbook creator.
        created_by: Printed as "Prepared by" and recorded as last modifier.
        custom: Ordered custom properties.
    """

    title: str
    subtitle: str
    footer: str
    company: str
    created_by: str
    custom: list[CustomProperty]


class TemplateEntry(TypedDict, total=False):
    """
    A single rule of a JSON BOM template.

    Keys mirror the JSON file format.

    Attributes:
        partNumber: Part number to add.
        quantity: Number or expression string evaluated against the scope.
        included: Optional boolean expression; the entry is skipped when falsy.
    """

    partNumber: str
    quantity: float | str
    included: str


# User supplied coroutine function: part number -> details mapping.
LookupFunction = Callable[[str], Awaitable[Mapping[str, Any]]]


def create_metadata(metadata: Mapping[str, Any] | None = None) -> BOMMetadata:
    """
    Merges user supplied metadata over the defaults.

    Args:
        metadata: Partial metadata; ``None`` yields the defaults.

    Returns:
        A complete BOMMetadata dictionary with its own copy of ``custom``.

    Raises:
        InitializationError: If an unknown key is supplied.
    """
    result: BOMMetadata = {
        "title": C.DEFAULT_TITLE,
        "subtitle": "",
        "footer": "",
        "company": "",
        "created_by": "",
        "custom": [],
    }
    if not metadata:
        return result

    unknown = set(metadata) - set(C.METADATA_KEYS)
    if unknown:
        raise InitializationError(
            f"Invalid metadata key(s): {', '.join(sorted(unknown))}."
        )

    for key, value in metadata.items():
        if key == "custom":
            try:
                result["custom"] = [
                    {"name": str(prop["name"]), "value": str(prop["value"])}
                    for prop in (value or [])
                ]
            except (KeyError, TypeError) as e:
                raise InitializationError(
                    "Custom metadata must be a list of {name, value} objects."
                ) from e
        elif value is not None:
            result[key] = str(value)  # type: ignore[literal-required]

    return result
