"""
Boolean expression node matcher.

Evaluates an operator-authored Jinja2 expression in a sandbox for every
cached alert. Variables in scope:

- labels: the alert's label map
- FullName: the node name
- ShortName: the node name up to the first '.'

Examples:
    labels["instance"] == FullName
    labels["hostname"] == ShortName or labels["node"] == FullName
    labels.get("cluster") == "prod" and labels["instance"].startswith(ShortName)

Referencing a missing label with labels["x"] yields an undefined value that
compares unequal to everything. The expression must evaluate to a boolean.
"""

from collections.abc import Callable

from jinja2 import TemplateError
from jinja2.sandbox import ImmutableSandboxedEnvironment

from sciuro.exceptions import ConfigurationError, MatchEvaluationError

_sandbox = ImmutableSandboxedEnvironment()


class ExpressionMatcher:
    """Node matcher built from a boolean expression."""

    def __init__(self, source: str) -> None:
        """
        Compile the expression.

        Raises:
            ConfigurationError: If the expression does not compile
        """
        self.source = source
        try:
            self._expression = _sandbox.compile_expression(source, undefined_to_none=False)
        except TemplateError as e:
            raise ConfigurationError(f"invalid node expression: {e}") from e

    def matches(self, labels: dict[str, str], full_name: str, short_name: str) -> bool:
        try:
            result = self._expression(labels=labels, FullName=full_name, ShortName=short_name)
        except Exception as e:
            raise MatchEvaluationError(full_name, f"expression evaluation failed: {e}") from e
        if not isinstance(result, bool):
            raise MatchEvaluationError(
                full_name,
                f"expression returned {type(result).__name__}, expected bool",
            )
        return result

    def bind(self, full_name: str, short_name: str) -> Callable[[dict[str, str]], bool]:
        return lambda labels: self.matches(labels, full_name, short_name)
