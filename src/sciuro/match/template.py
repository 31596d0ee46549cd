"""
Template-driven node filters.

The operator supplies a Jinja2 template that renders, for a given node, into
a list of Alertmanager-style label matchers. Two variables are available:

- FullName: the node name
- ShortName: the node name up to the first '.'

Example:
    {instance=~"{{ ShortName }}(:[0-9]+)?", node="{{ FullName }}"}

The rendered matchers are OR'd: an alert is attributed to the node when any
one of them matches.
"""

from jinja2 import Environment, StrictUndefined, TemplateError

from sciuro.exceptions import ConfigurationError, MatchEvaluationError
from sciuro.match.labels import LabelMatcher, match_labels, parse_matchers

# Used to validate templates at startup
SAMPLE_NODE_NAME = "node-1.example.com"

_jinja_env = Environment(undefined=StrictUndefined, autoescape=False)


class TemplateMatcher:
    """Node matcher built from a filter template."""

    def __init__(self, source: str) -> None:
        """
        Compile the filter template.

        Args:
            source: Jinja2 template rendering a matcher list

        Raises:
            ConfigurationError: If the template does not compile, or does not
                render into valid matchers for a sample node name
        """
        self.source = source
        try:
            self._template = _jinja_env.from_string(source)
        except TemplateError as e:
            raise ConfigurationError(f"invalid node filter template: {e}") from e

        try:
            self.render(SAMPLE_NODE_NAME, SAMPLE_NODE_NAME.split(".", 1)[0])
        except MatchEvaluationError as e:
            raise ConfigurationError(f"invalid node filter template: {e.reason}") from e

    def render(self, full_name: str, short_name: str) -> list[LabelMatcher]:
        """
        Render the template for one node and parse the matchers.

        Raises:
            MatchEvaluationError: On render failure or malformed matchers
        """
        try:
            rendered = self._template.render(FullName=full_name, ShortName=short_name)
        except Exception as e:
            raise MatchEvaluationError(full_name, f"template render failed: {e}") from e
        try:
            return parse_matchers(rendered)
        except ValueError as e:
            raise MatchEvaluationError(full_name, str(e)) from e

    def matches(self, labels: dict[str, str], full_name: str, short_name: str) -> bool:
        return match_labels(self.render(full_name, short_name), labels)

    def bind(self, full_name: str, short_name: str):
        """
        Pre-render the matchers for one node.

        Returns a predicate over label sets so the template is rendered once
        per query rather than once per alert.
        """
        matchers = self.render(full_name, short_name)
        return lambda labels: match_labels(matchers, labels)
