"""
Static configuration for the bomsheet library.

This module serves as the central repository for:
1.  **Metadata Defaults:** Values merged under user supplied BOM metadata.
2.  **Template Layout:** Where the bundled spreadsheet template keeps its
    worksheet, table, header row and placeholder rows.
3.  **Column Definitions:** The fixed column order of the exported table.
4.  **Header/Footer Codes:** Excel print header formatting codes.
5.  **Expression Helpers:** Literals and functions visible to template expressions.
"""

import math
import os

# --- Metadata ---

DEFAULT_TITLE = "Bill of Materials"

# Keys accepted by the BillOfMaterials constructor metadata argument.
METADATA_KEYS = ("title", "subtitle", "footer", "company", "created_by", "custom")

# --- Spreadsheet Template ---

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")
TEMPLATE_PATH = os.path.join(TEMPLATE_DIR, "template.xlsx")

SHEET_NAME = "BOM"
TABLE_NAME = "BOM"

# Row of the table header inside the untouched template (1-based).
# The placeholder data row sits directly below it, followed by the totals row.
TEMPLATE_HEADER_ROW = 4

# Custom properties fill rows 1-2 for free; every property past the second
# pushes the table down one row.
CUSTOM_ROWS_WITHOUT_SHIFT = 2

AUTHOR_CELL = "M1"
DATE_CELL = "M2"
LABEL_FONT_SIZE = 10

# --- Columns ---

# Exported table columns, left to right (A..M).
COLUMNS = (
    "Item",
    "Qty",
    "Part Number",
    "Title",
    "Description",
    "Mat./Finish",
    "Mfg.",
    "Mfg. Part Number",
    "Unit",
    "Unit Weight",
    "Total Weight",
    "Unit Cost",
    "Total Cost",
)

LAST_COLUMN = "M"

# Excel SUBTOTAL function code for SUM that ignores filtered rows.
SUBTOTAL_SUM = 109

# --- Header / Footer ---

HEADER_TITLE_FONT = "-,Bold"
HEADER_TITLE_SIZE = 18
HEADER_SUBTITLE_CODE = '&"-,Regular"&12 '
FOOTER_SIZE = 8
FOOTER_PAGE_TEXT = "Page &P of &N"

# --- Expressions ---

# JavaScript style literals accepted in template expressions.
EXPRESSION_LITERALS = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
}

EXPRESSION_FUNCTIONS = {
    "int": int,
    "float": float,
    "str": str,
    "round": round,
    "min": min,
    "max": max,
    "abs": abs,
    "ceil": math.ceil,
    "floor": math.floor,
}
