"""
Node matchers: decide which cached alerts apply to a node.

Key types:
- NodeMatcherProtocol: capability used by AlertCache
- TemplateMatcher: Jinja2 template rendering label matchers (OR'd)
- ExpressionMatcher: sandboxed Jinja2 boolean expression
- create_matcher: build exactly one matcher from configuration
"""

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from sciuro.exceptions import ConfigurationError
from sciuro.match.expression import ExpressionMatcher
from sciuro.match.labels import LabelMatcher, MatchType, match_labels, parse_matchers
from sciuro.match.template import TemplateMatcher


@runtime_checkable
class NodeMatcherProtocol(Protocol):
    """
    Protocol for per-node alert matchers.

    Implementations must raise MatchEvaluationError rather than return False
    when they cannot be evaluated.
    """

    def matches(self, labels: dict[str, str], full_name: str, short_name: str) -> bool:
        """Return True if an alert with these labels applies to the node."""
        ...

    def bind(self, full_name: str, short_name: str) -> Callable[[dict[str, str]], bool]:
        """Return a label-set predicate specialised for one node."""
        ...


def create_matcher(
    node_filters: str | None = None,
    node_expression: str | None = None,
) -> NodeMatcherProtocol:
    """
    Build the configured node matcher.

    Args:
        node_filters: Filter template (see TemplateMatcher)
        node_expression: Boolean expression (see ExpressionMatcher)

    Returns:
        The compiled matcher

    Raises:
        ConfigurationError: If neither or both are given, or compilation fails
    """
    if bool(node_filters) == bool(node_expression):
        raise ConfigurationError(
            "exactly one of node filters template or node expression must be set"
        )
    if node_filters:
        return TemplateMatcher(node_filters)
    return ExpressionMatcher(node_expression)


__all__ = [
    "NodeMatcherProtocol",
    "TemplateMatcher",
    "ExpressionMatcher",
    "LabelMatcher",
    "MatchType",
    "create_matcher",
    "match_labels",
    "parse_matchers",
]
