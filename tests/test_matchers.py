"""
Tests for node matchers.

Tests cover:
- TemplateMatcher renders FullName/ShortName and ORs the rendered matchers
- TemplateMatcher rejects templates that do not compile or render at startup
- ExpressionMatcher evaluates boolean expressions over labels
- Evaluation failures raise MatchEvaluationError instead of returning False
- create_matcher requires exactly one matcher
"""

import pytest

from sciuro.exceptions import ConfigurationError, MatchEvaluationError
from sciuro.match import (
    ExpressionMatcher,
    NodeMatcherProtocol,
    TemplateMatcher,
    create_matcher,
)

NODE = "node-1.example.com"
SHORT = "node-1"


class TestTemplateMatcher:
    """Tests for filter-template matching."""

    def test_short_name_with_optional_port(self):
        matcher = TemplateMatcher('{instance=~"{{ ShortName }}(:[0-9]+)?"}')

        assert matcher.matches({"instance": "node-1:9100"}, NODE, SHORT)
        assert matcher.matches({"instance": "node-1"}, NODE, SHORT)
        assert not matcher.matches({"instance": "node-10:9100"}, NODE, SHORT)

    def test_rendered_matchers_are_ored(self):
        matcher = TemplateMatcher('{instance="{{ FullName }}", hostname="{{ ShortName }}"}')

        assert matcher.matches({"hostname": "node-1"}, NODE, SHORT)
        assert matcher.matches({"instance": NODE}, NODE, SHORT)
        assert not matcher.matches({"instance": "other"}, NODE, SHORT)

    def test_render_returns_matchers_for_node(self):
        matcher = TemplateMatcher('node="{{ FullName }}"')

        rendered = matcher.render(NODE, SHORT)

        assert len(rendered) == 1
        assert rendered[0].value == NODE

    def test_bind_returns_predicate(self):
        matcher = TemplateMatcher('instance="{{ FullName }}"')

        predicate = matcher.bind(NODE, SHORT)

        assert predicate({"instance": NODE})
        assert not predicate({"instance": "node-2.example.com"})

    def test_syntax_error_is_configuration_error(self):
        with pytest.raises(ConfigurationError, match="invalid node filter template"):
            TemplateMatcher('instance="{{ ShortName"')

    def test_unknown_variable_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            TemplateMatcher('instance="{{ NodeName }}"')

    def test_rendering_invalid_matchers_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            TemplateMatcher("{{ FullName }}")

    def test_node_specific_render_failure_raises_match_error(self):
        matcher = TemplateMatcher('instance=~"{{ FullName }}"')

        with pytest.raises(MatchEvaluationError) as exc_info:
            matcher.matches({"instance": "x"}, "bad(node", "bad(node")

        assert exc_info.value.node_name == "bad(node"

    def test_runtime_error_during_render_raises_match_error(self):
        matcher = TemplateMatcher('instance="{{ 12 // (ShortName|length - 2) }}"')

        with pytest.raises(MatchEvaluationError) as exc_info:
            matcher.matches({"instance": "x"}, "db.example.com", "db")

        assert exc_info.value.node_name == "db.example.com"


class TestExpressionMatcher:
    """Tests for boolean expression matching."""

    def test_label_equals_full_name(self):
        matcher = ExpressionMatcher('labels["instance"] == FullName')

        assert matcher.matches({"instance": NODE}, NODE, SHORT)
        assert not matcher.matches({"instance": "other"}, NODE, SHORT)

    def test_missing_label_compares_unequal(self):
        matcher = ExpressionMatcher('labels["instance"] == FullName')

        assert not matcher.matches({}, NODE, SHORT)

    def test_combined_expression(self):
        matcher = ExpressionMatcher(
            'labels.get("cluster") == "prod" and labels["instance"].startswith(ShortName)'
        )

        assert matcher.matches({"cluster": "prod", "instance": "node-1:9100"}, NODE, SHORT)
        assert not matcher.matches({"cluster": "dev", "instance": "node-1:9100"}, NODE, SHORT)

    def test_bind_returns_predicate(self):
        predicate = ExpressionMatcher('labels["hostname"] == ShortName').bind(NODE, SHORT)

        assert predicate({"hostname": SHORT})
        assert not predicate({"hostname": NODE})

    def test_syntax_error_is_configuration_error(self):
        with pytest.raises(ConfigurationError, match="invalid node expression"):
            ExpressionMatcher('labels["instance" ==')

    def test_non_boolean_result_raises_match_error(self):
        matcher = ExpressionMatcher('labels["instance"]')

        with pytest.raises(MatchEvaluationError, match="expected bool"):
            matcher.matches({"instance": NODE}, NODE, SHORT)

    def test_evaluation_error_raises_match_error(self):
        matcher = ExpressionMatcher('labels["instance"].startswith(ShortName)')

        with pytest.raises(MatchEvaluationError):
            matcher.matches({}, NODE, SHORT)

    def test_arithmetic_error_raises_match_error(self):
        matcher = ExpressionMatcher("(labels|length / 0) == 1")

        with pytest.raises(MatchEvaluationError, match="expression evaluation failed"):
            matcher.matches({"instance": NODE}, NODE, SHORT)


class TestCreateMatcher:
    """Tests for create_matcher()."""

    def test_filters_build_template_matcher(self):
        matcher = create_matcher(node_filters='instance="{{ FullName }}"')

        assert isinstance(matcher, TemplateMatcher)
        assert isinstance(matcher, NodeMatcherProtocol)

    def test_expression_builds_expression_matcher(self):
        matcher = create_matcher(node_expression='labels["instance"] == FullName')

        assert isinstance(matcher, ExpressionMatcher)
        assert isinstance(matcher, NodeMatcherProtocol)

    def test_neither_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            create_matcher()

    def test_both_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            create_matcher(
                node_filters='instance="{{ FullName }}"',
                node_expression='labels["instance"] == FullName',
            )
