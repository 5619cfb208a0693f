"""Exception hierarchy for the bomsheet library."""


class BOMError(Exception):
    """Base class for every error raised by bomsheet."""


class InitializationError(BOMError, TypeError):
    """The BillOfMaterials constructor received invalid arguments."""


class InvalidInputError(BOMError, TypeError):
    """A part number or quantity argument has the wrong type."""


class TemplateError(BOMError, ValueError):
    """A JSON BOM template is structurally invalid."""


class ExpressionError(BOMError, ValueError):
    """A template expression could not be parsed or evaluated."""

    def __init__(self, message: str, expression: str):
        super().__init__(f"{message}: {expression!r}")
        self.expression = expression


class ExportError(BOMError):
    """
    A stage of the spreadsheet export pipeline failed.

    Attributes:
        stage: Which stage failed ("read", "populate" or "write").
    """

    def __init__(self, message: str, stage: str):
        super().__init__(message)
        self.stage = stage
