"""
bomsheet (Package Entry Point).

Exposes the BillOfMaterials entity together with the data structures,
template helpers and exporter it is built from.
"""

from .errors import (
    BOMError,
    ExportError,
    ExpressionError,
    InitializationError,
    InvalidInputError,
    TemplateError,
)
from .exporters import export_workbook
from .expressions import CompiledExpression, compile_expression, evaluate
from .loader import read_template, resolve_entries
from .manager import BillOfMaterials
from .types import (
    BOMItem,
    BOMMetadata,
    CustomProperty,
    ItemDetails,
    LookupFunction,
    TemplateEntry,
    create_metadata,
)

__all__ = [
    # manager
    "BillOfMaterials",
    # types
    "BOMItem",
    "BOMMetadata",
    "CustomProperty",
    "ItemDetails",
    "LookupFunction",
    "TemplateEntry",
    "create_metadata",
    # errors
    "BOMError",
    "ExportError",
    "ExpressionError",
    "InitializationError",
    "InvalidInputError",
    "TemplateError",
    # expressions
    "CompiledExpression",
    "compile_expression",
    "evaluate",
    # loader
    "read_template",
    "resolve_entries",
    # exporters
    "export_workbook",
]
