"""
Template expression evaluation.

Expressions found in JSON BOM templates (quantity formulas and inclusion
conditions) are compiled once and evaluated against caller supplied scope
data. Evaluation is delegated to ``simpleeval``; this module narrows it to a
``compile(expression) -> evaluate(scope)`` capability and enforces the
scoping contract:

    Only the scope's OWN data is visible. For a mapping that is its keys, for
    any other object the entries of its instance ``__dict__``. Class
    attributes, methods, properties and underscore-prefixed names are never
    reachable, which keeps template authors away from the object model.

Expressions use Python syntax. The JavaScript style operators ``&&``, ``||``,
``!``, ``===`` and ``!==`` and the literals ``true``, ``false``, ``null`` and
``undefined`` are accepted so that existing templates keep working.
"""

import ast
import logging
import re
from collections.abc import Mapping
from typing import Any

from simpleeval import FeatureNotAvailable, InvalidExpression, SimpleEval

from bomsheet import constants as C
from bomsheet.errors import ExpressionError

logger = logging.getLogger(__name__)

# Group 1: quoted string literal (left untouched). Group 2: JS operator.
_JS_TOKEN_PATTERN = re.compile(
    r"""("(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')|(===|!==|&&|\|\||!(?!=))"""
)
_JS_OPERATORS = {
    "===": "==",
    "!==": "!=",
    "&&": " and ",
    "||": " or ",
    "!": " not ",
}


def translate_operators(expression: str) -> str:
    """
    Rewrites JavaScript style operators into their Python equivalents.

    String literals are skipped so that ``"R&&D"`` survives unchanged.

    Example:
        "day === 'Tuesday' && !late" is evaluated as "day == 'Tuesday' and not late"
    """

    def _replace(match: re.Match) -> str:
        if match.group(1) is not None:
            return match.group(1)
        return _JS_OPERATORS[match.group(2)]

    return _JS_TOKEN_PATTERN.sub(_replace, expression).strip()


def own_properties(scope: Any) -> dict[str, Any]:
    """
    Returns the data of ``scope`` that expressions may see.

    Args:
        scope: A mapping or an object with an instance ``__dict__``. ``None``
               is treated as an empty scope.

    Returns:
        A plain dict snapshot of the visible names.

    Raises:
        TypeError: If ``scope`` has neither keys nor instance attributes.
    """
    if scope is None:
        return {}
    if isinstance(scope, Mapping):
        return {k: v for k, v in scope.items() if isinstance(k, str)}
    if hasattr(scope, "__dict__"):
        return dict(vars(scope))
    raise TypeError(
        f"Template scope must be a mapping or an object, not {type(scope).__name__}."
    )


class ScopedEvaluator(SimpleEval):
    """
    A ``SimpleEval`` that resolves names and attributes through
    :func:`own_properties` only.

    Unknown names and attributes evaluate to ``None`` so that a missing flag
    simply reads as falsy.
    """

    def __init__(self, scope: Any = None):
        super().__init__(functions=dict(C.EXPRESSION_FUNCTIONS))
        self.scope = own_properties(scope)
        self.nodes[ast.Name] = self._eval_scoped_name
        self.nodes[ast.Attribute] = self._eval_scoped_attribute

    def _eval_scoped_name(self, node: ast.Name) -> Any:
        if node.id.startswith("_"):
            raise FeatureNotAvailable(f"Access to {node.id!r} is not allowed.")
        if node.id in self.scope:
            return self.scope[node.id]
        if node.id in C.EXPRESSION_LITERALS:
            return C.EXPRESSION_LITERALS[node.id]
        if node.id in self.functions:
            return self.functions[node.id]
        return None

    def _eval_scoped_attribute(self, node: ast.Attribute) -> Any:
        if node.attr.startswith("_"):
            raise FeatureNotAvailable(f"Access to {node.attr!r} is not allowed.")
        owner = self._eval(node.value)
        # Strings, numbers and lists have no own properties to read.
        if not isinstance(owner, Mapping) and not hasattr(owner, "__dict__"):
            return None
        return own_properties(owner).get(node.attr)


class CompiledExpression:
    """
    A parsed template expression, ready to be evaluated against many scopes.

    Args:
        source: The expression text as written in the template.

    Raises:
        ExpressionError: If the expression is empty or not valid syntax.
    """

    def __init__(self, source: str):
        self.source = source
        self._translated = translate_operators(source)
        try:
            self._tree = ScopedEvaluator().parse(self._translated)
        except (SyntaxError, InvalidExpression) as e:
            raise ExpressionError("Unable to parse expression", source) from e

    def __call__(self, scope: Any = None) -> Any:
        try:
            evaluator = ScopedEvaluator(scope)
            return evaluator.eval(self._translated, previously_parsed=self._tree)
        except (InvalidExpression, ArithmeticError, TypeError, ValueError) as e:
            raise ExpressionError("Unable to evaluate expression", self.source) from e

    def __repr__(self) -> str:
        return f"CompiledExpression({self.source!r})"


def compile_expression(source: Any) -> CompiledExpression:
    """
    Compiles a template expression.

    Numeric literals are coerced to their string form first, so a template
    may write ``"quantity": 4`` as well as ``"quantity": "guests * 2"``.
    """
    if isinstance(source, bool) or not isinstance(source, (str, int, float)):
        raise ExpressionError("Expression must be a string or a number", str(source))
    return CompiledExpression(str(source))


def evaluate(source: Any, scope: Any = None) -> Any:
    """Compiles and evaluates an expression in one step."""
    result = compile_expression(source)(scope)
    logger.debug(f"Evaluated {source!r} -> {result!r}")
    return result
