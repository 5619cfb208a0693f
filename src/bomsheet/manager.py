"""
The BillOfMaterials entity.

This module acts as the "Controller" for the bomsheet library. It handles:
- Core dictionary mutation (adding, setting and removing parts).
- Fetching and caching item details through the user's lookup function.
- Cost and weight roll-ups.
- Building a BOM from a JSON template and exporting it to Excel.

Two insertion-ordered dicts hold the state: part number -> quantity and
part number -> cached details. Both share the same keys except while the
lookup for a newly added part number is in flight, and neither ever holds a
part number with a quantity <= 0.

Calls are not guarded against each other. Await each mutating call before
issuing the next one.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Iterable, Mapping
from typing import Any, TypeVar, overload

from bomsheet.errors import InitializationError, InvalidInputError
from bomsheet.exporters import export_workbook
from bomsheet.loader import read_template, resolve_entries
from bomsheet.types import BOMItem, ItemDetails, LookupFunction, create_metadata
from bomsheet.utils import (
    INVALID_OPTIONAL_QUANTITY,
    as_quantity,
    is_number,
    sanitize_inputs,
    to_number,
    validate_part_number,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _gather_all(awaitables: Iterable[Awaitable[T]]) -> list[T]:
    """
    Runs awaitables concurrently and waits for every one of them to settle.

    Raises:
        The first failure (in submission order), once all have settled.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        logger.error(f"{len(failures)} of {len(results)} operations failed")
        raise failures[0]
    return results  # type: ignore[return-value]


class BillOfMaterials:
    """
    A bill of materials (BOM): part numbers, quantities and their details.

    Args:
        lookup: User defined coroutine function returning the details
                (title, description, unit, unit_cost, unit_weight, ...) of a
                part number. Failures propagate to the caller, no retries.
        metadata: Optional export metadata (title, subtitle, footer, company,
                  created_by, custom).

    Raises:
        InitializationError: If ``lookup`` is not callable or the metadata
                             has unknown keys.

    Example:
        >>> bom = BillOfMaterials(fetch_part, {"title": "Shopping List"})
        >>> await bom.add("BUN-01", 12)
        >>> bom.get_total_cost()
        9.0
    """

    def __init__(self, lookup: LookupFunction, metadata: Mapping[str, Any] | None = None):
        if not callable(lookup):
            raise InitializationError(
                "Invalid constructor argument. Expecting user defined lookup function."
            )
        self._lookup = lookup
        self.metadata = create_metadata(metadata)
        self._quantities: dict[str, float] = {}
        self._details: dict[str, ItemDetails] = {}

    def __len__(self) -> int:
        """The number of unique part numbers in the bill of materials."""
        return len(self._quantities)

    def __contains__(self, part_number: object) -> bool:
        return part_number in self._quantities

    def __repr__(self) -> str:
        return f"<BillOfMaterials title={self.metadata['title']!r} items={len(self)}>"

    @property
    def items(self) -> list[BOMItem]:
        """
        Each part number and its quantity.

        Order follows insertion but carries no meaning.
        """
        return [
            {"part_number": pn, "quantity": qty} for pn, qty in self._quantities.items()
        ]

    # --- Internal state helpers ---

    async def _fetch(self, part_number: str, quantity: float) -> ItemDetails:
        """Queries the lookup and merges in the part number and quantity."""
        logger.debug(f"Looking up details for {part_number}")
        details = await self._lookup(part_number)
        return {**(details or {}), "part_number": part_number, "quantity": quantity}  # type: ignore[typeddict-item]

    async def _insert(self, part_number: str, quantity: float) -> None:
        """
        Starts tracking a new part number and fetches its details.

        If the lookup fails the quantity entry is rolled back (unless details
        appeared in the meantime) and the error is re-raised.
        """
        self._quantities[part_number] = quantity
        try:
            details = await self._fetch(part_number, quantity)
        except Exception as e:
            logger.error(f"Lookup failed for {part_number}: {e}")
            if part_number not in self._details:
                self._quantities.pop(part_number, None)
            raise

        # Removed while the lookup was in flight.
        if part_number in self._quantities:
            self._details[part_number] = details

    def _drop(self, part_number: str) -> None:
        self._quantities.pop(part_number, None)
        self._details.pop(part_number, None)

    def _update(self, part_number: str, quantity: float) -> None:
        """Stores a new quantity for a tracked part, dropping it if <= 0."""
        if quantity <= 0:
            self._drop(part_number)
        else:
            self._quantities[part_number] = quantity

    async def _refresh(self) -> None:
        """
        Re-queries the details of every tracked part number in parallel.

        The details dict is replaced in one step once every lookup succeeded.
        A single failure fails the refresh and leaves the cache untouched.
        """
        snapshot = list(self._quantities.items())
        results = await _gather_all(self._fetch(pn, qty) for pn, qty in snapshot)
        self._details = {details["part_number"]: details for details in results}

    # --- Mutation ---

    async def add(self, part_number: str, quantity: float = 1) -> None:
        """
        Adds the desired quantity of a part to the bill of materials.

        A part number seen for the first time is inserted and its details are
        fetched. A tracked part number just has its quantity increased (no
        lookup). Quantities follow the same rule as ``set``: a new part with
        quantity <= 0 is ignored, and a total that drops to <= 0 removes it.

        Args:
            part_number: Part number (unique ID).
            quantity: Quantity to add. Defaults to 1.

        Raises:
            InvalidInputError: If the arguments have the wrong types.
        """
        sanitize_inputs(part_number, quantity)
        quantity = as_quantity(quantity)

        current = self._quantities.get(part_number)
        if current is not None:
            self._update(part_number, current + quantity)
        elif quantity > 0:
            await self._insert(part_number, quantity)
        else:
            logger.debug(f"Ignoring {part_number}: non-positive quantity {quantity}")

    async def set(self, part_number: str, quantity: float) -> None:
        """
        Sets the quantity of a part to a specific value.

        Quantities <= 0 remove the part. A new part number is inserted and its
        details fetched; a tracked one only has its quantity overwritten.

        Raises:
            InvalidInputError: If the arguments have the wrong types.
        """
        sanitize_inputs(part_number, quantity)
        quantity = as_quantity(quantity)

        if quantity <= 0:
            self._drop(part_number)
        elif part_number in self._quantities:
            self._quantities[part_number] = quantity
        else:
            await self._insert(part_number, quantity)

    def remove(self, part_number: str, quantity: float | None = None) -> None:
        """
        Removes a part, or a certain quantity of it, from the bill of materials.

        Without a quantity the entry is deleted. Otherwise the quantity is
        reduced, and the entry is deleted if nothing positive remains.
        Unknown part numbers are ignored.

        Raises:
            InvalidInputError: If the arguments have the wrong types.
        """
        validate_part_number(part_number)
        if quantity is not None and not is_number(quantity):
            raise InvalidInputError(INVALID_OPTIONAL_QUANTITY)
        quantity = as_quantity(quantity)

        current = self._quantities.get(part_number)
        if current is None:
            return

        if quantity is None:
            self._drop(part_number)
        else:
            self._update(part_number, current - quantity)

    def clear(self) -> None:
        """Removes every part from the bill of materials."""
        self._quantities.clear()
        self._details.clear()

    # --- Queries ---

    @overload
    def get_details(self) -> list[ItemDetails]: ...

    @overload
    def get_details(self, part_number: str) -> ItemDetails | None: ...

    def get_details(self, part_number: str | None = None):
        """
        Returns the cached details of every item, or of a single part number.

        Args:
            part_number: Optional. Restricts the result to one part number.

        Returns:
            A list of detail records, or one record, or None if the part
            number is not tracked (or its lookup has not finished yet).
        """
        if part_number is not None:
            details = self._details.get(part_number)
            return dict(details) if details is not None else None  # type: ignore[return-value]
        return [dict(details) for details in self._details.values()]  # type: ignore[misc]

    def _roll_up(self, key: str) -> float:
        total = 0.0
        for part_number, quantity in self._quantities.items():
            unit_value = self._details.get(part_number, {}).get(key)
            total += float(quantity) * to_number(unit_value)
        return total

    def get_total_cost(self) -> float:
        """
        Performs a cost roll-up: sum of quantity x ``unit_cost``.

        Missing or non-numeric unit costs count as zero.
        """
        return self._roll_up("unit_cost")

    def get_total_weight(self) -> float:
        """Sum of quantity x ``unit_weight``; missing values count as zero."""
        return self._roll_up("unit_weight")

    # --- Templates & Export ---

    async def build_from_template(
        self, template_path: str | os.PathLike, scope: Any
    ) -> list[BOMItem]:
        """
        Builds the bill of materials from a JSON BOM template.

        Clears the current contents, evaluates each template entry against
        ``scope`` and adds the included parts. Lookups run in parallel.

        Args:
            template_path: Path to a JSON BOM template.
            scope: Data visible to the template expressions. Only its own
                   keys/attributes can be read.

        Returns:
            The resulting items.

        Raises:
            FileNotFoundError, json.JSONDecodeError: If the file can't be read.
            TemplateError: If the template structure is invalid.
            ExpressionError: If an expression can't be evaluated.
            InvalidInputError: If a quantity expression yields a non-number.
        """
        self.clear()

        resolved = resolve_entries(read_template(template_path), scope)
        for item in resolved:
            sanitize_inputs(item["part_number"], item["quantity"])

        await _gather_all(self.add(item["part_number"], item["quantity"]) for item in resolved)
        logger.info(f"Built {len(self)} items from template {template_path}")
        return self.items

    async def export(
        self,
        file_path: str | os.PathLike,
        template_path: str | os.PathLike | None = None,
    ) -> None:
        """
        Exports the bill of materials to a Microsoft Excel spreadsheet.

        Details are refreshed first so the exported quantities and
        descriptions are current.

        Args:
            file_path: Desired file path with .xlsx extension.
            template_path: Optional template override.

        Raises:
            ExportError: If reading the template, populating it or writing
                         the file fails.
        """
        await self._refresh()
        # openpyxl is blocking; keep the event loop free while it works.
        await asyncio.to_thread(
            export_workbook, file_path, self.get_details(), self.metadata, template_path
        )
