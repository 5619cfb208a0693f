"""
Spreadsheet export.

Fills the bundled Microsoft Excel template with BOM metadata and one table
row per item. The work runs as three stages, each wrapped so a failure names
the stage that broke:

1. read:     load the template workbook.
2. populate: header/footer, custom properties, author/date, item table.
3. write:    save the workbook to the requested path.

It uses ``openpyxl`` for all workbook manipulation.
"""

import datetime
import logging
import os
from copy import copy
from typing import Any

from openpyxl import load_workbook
from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.cell.text import InlineFont
from openpyxl.styles import Alignment, Border, Side
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from bomsheet import constants as C
from bomsheet.errors import ExportError
from bomsheet.types import BOMMetadata, CustomProperty, ItemDetails
from bomsheet.utils import escape_header_text, format_short_date

logger = logging.getLogger(__name__)

RIGHT_ALIGNMENT = Alignment(horizontal="right", vertical="center", wrap_text=False)
HEADER_BORDER = Border(top=Side(style="thin"), bottom=Side(style="medium"))


def label_value(label: str, value: str) -> CellRichText:
    """Builds a 'Label: value' rich text cell with a bold label."""
    blocks = [TextBlock(InlineFont(b=True, sz=C.LABEL_FONT_SIZE), f"{label}: ")]
    if value:
        blocks.append(TextBlock(InlineFont(sz=C.LABEL_FONT_SIZE), value))
    return CellRichText(*blocks)


def build_rows(items: list[ItemDetails]) -> list[list[Any]]:
    """
    Converts item details into table rows following ``C.COLUMNS``.

    The Total Weight and Total Cost columns are left empty here; they hold
    formulas written once the rows are in their final position.
    """
    rows = []
    for index, item in enumerate(items, start=1):
        rows.append(
            [
                index,
                item.get("quantity"),
                item.get("part_number"),
                item.get("title"),
                item.get("description"),
                "",
                item.get("manufacturer") or "",
                item.get("manufacturer_part_number") or "",
                item.get("unit"),
                item.get("unit_weight"),
                None,
                item.get("unit_cost"),
                None,
            ]
        )
    return rows


def _copy_row_style(ws: Worksheet, source_row: int, target_row: int) -> None:
    """Duplicates cell styles and row height from one row onto another."""
    for col in range(1, len(C.COLUMNS) + 1):
        source = ws.cell(row=source_row, column=col)
        if source.has_style:
            ws.cell(row=target_row, column=col)._style = copy(source._style)

    height = ws.row_dimensions[source_row].height
    if height is not None:
        ws.row_dimensions[target_row].height = height


def _write_header_footer(ws: Worksheet, metadata: BOMMetadata) -> None:
    title = escape_header_text(metadata.get("title", "").upper())
    subtitle = escape_header_text(metadata.get("subtitle", "").upper())
    footer = escape_header_text(metadata.get("footer", ""))

    header = ws.oddHeader.right
    header.text = f"{title}\n{C.HEADER_SUBTITLE_CODE}{subtitle}"
    header.font = C.HEADER_TITLE_FONT
    header.size = C.HEADER_TITLE_SIZE

    ws.oddFooter.left.text = footer or None
    ws.oddFooter.left.size = C.FOOTER_SIZE
    ws.oddFooter.right.text = C.FOOTER_PAGE_TEXT
    ws.oddFooter.right.size = C.FOOTER_SIZE


def _write_custom_properties(ws: Worksheet, custom: list[CustomProperty]) -> int:
    """
    Writes custom properties down column A starting at row 1.

    Rows 1-2 already exist in the template. Each later property inserts a new
    row (inheriting the style of the row above), pushing the table down.

    Returns:
        How many rows were inserted.
    """
    inserted = 0
    for row, prop in enumerate(custom, start=1):
        if row > C.CUSTOM_ROWS_WITHOUT_SHIFT:
            ws.insert_rows(row)
            _copy_row_style(ws, row - 1, row)
            inserted += 1
        ws.cell(row=row, column=1).value = label_value(prop["name"], prop["value"])
    return inserted


def _write_author(ws: Worksheet, created_by: str, created_on: datetime.datetime) -> None:
    ws[C.AUTHOR_CELL] = label_value("Prepared by", created_by)
    ws[C.DATE_CELL] = label_value("Date", format_short_date(created_on))
    ws[C.AUTHOR_CELL].alignment = RIGHT_ALIGNMENT
    ws[C.DATE_CELL].alignment = RIGHT_ALIGNMENT


def _write_table(ws: Worksheet, header_row: int, rows: list[list[Any]]) -> None:
    """
    Fills the item table.

    The template holds one styled placeholder row under the header. Each data
    row is inserted below it with the placeholder's styling copied over, then
    the placeholder itself is deleted. With no rows the blank placeholder
    stays, since a table needs at least one data row.
    """
    placeholder = header_row + 1
    count = len(rows)

    if count:
        ws.insert_rows(placeholder + 1, count)
        for offset, values in enumerate(rows, start=1):
            target = placeholder + offset
            _copy_row_style(ws, placeholder, target)
            for col, value in enumerate(values, start=1):
                ws.cell(row=target, column=col).value = value
        ws.delete_rows(placeholder)

    first = placeholder
    last = placeholder + max(count, 1) - 1
    totals = last + 1

    for row in range(first, first + count):
        ws[f"K{row}"] = f"=B{row}*J{row}"
        ws[f"M{row}"] = f"=B{row}*L{row}"

    ws[f"L{totals}"] = "Total"
    ws[f"M{totals}"] = f"=SUBTOTAL({C.SUBTOTAL_SUM},M{first}:M{last})"

    table = ws.tables[C.TABLE_NAME]
    table.ref = f"A{header_row}:{C.LAST_COLUMN}{totals}"
    if table.autoFilter is not None:
        table.autoFilter.ref = f"A{header_row}:{C.LAST_COLUMN}{last}"

    for col in range(1, len(C.COLUMNS) + 1):
        ws.cell(row=header_row, column=col).border = HEADER_BORDER


def populate_workbook(
    workbook: Workbook,
    items: list[ItemDetails],
    metadata: BOMMetadata,
    created_on: datetime.datetime,
) -> None:
    """
    Writes metadata and items into a loaded template workbook.

    Args:
        workbook: The template workbook (mutated in place).
        items: Item details in table order, with current quantities.
        metadata: Complete BOM metadata.
        created_on: Timestamp recorded in the properties and the Date cell.
    """
    company = metadata.get("company", "")
    created_by = metadata.get("created_by", "")

    workbook.properties.creator = company
    workbook.properties.created = created_on
    workbook.properties.modified = created_on
    workbook.properties.lastModifiedBy = created_by
    workbook.calculation.fullCalcOnLoad = True

    ws = workbook[C.SHEET_NAME]

    _write_header_footer(ws, metadata)
    shift = _write_custom_properties(ws, metadata.get("custom", []))
    _write_author(ws, created_by, created_on)
    _write_table(ws, C.TEMPLATE_HEADER_ROW + shift, build_rows(items))


def export_workbook(
    file_path: str | os.PathLike,
    items: list[ItemDetails],
    metadata: BOMMetadata,
    template_path: str | os.PathLike | None = None,
    created_on: datetime.datetime | None = None,
) -> None:
    """
    Exports items to a Microsoft Excel file built from the template.

    Args:
        file_path: Destination path, with .xlsx extension.
        items: Item details in table order.
        metadata: Complete BOM metadata.
        template_path: Template override. Defaults to the bundled template.
        created_on: Creation timestamp. Defaults to now.

    Raises:
        ExportError: If a stage fails. ``stage`` names it and the original
                     exception is chained as ``__cause__``.
    """
    template_path = template_path or C.TEMPLATE_PATH
    created_on = created_on or datetime.datetime.now()

    try:
        workbook = load_workbook(template_path)
    except Exception as e:
        logger.error(f"Unable to read template {template_path}: {e}")
        raise ExportError(
            "Unable to read template Microsoft Excel file.", stage="read"
        ) from e

    try:
        populate_workbook(workbook, items, metadata, created_on)
    except Exception as e:
        logger.error(f"Unable to populate workbook: {e}")
        raise ExportError(
            "Unable to create Microsoft Excel file. An internal error occurred.",
            stage="populate",
        ) from e

    try:
        workbook.save(file_path)
    except Exception as e:
        logger.error(f"Unable to write {file_path}: {e}")
        raise ExportError(
            "Unable to write Microsoft Excel file to disk.", stage="write"
        ) from e

    logger.debug(f"Exported {len(items)} items to {file_path}")
