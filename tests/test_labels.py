"""
Tests for the label matcher grammar and OR'd matching.

Tests cover:
- parse_matchers with and without braces, quoting and escapes
- parse errors -> ValueError
- match_labels empty-value rules for each operator
- match_labels OR semantics across a matcher list
"""

import pytest

from sciuro.match.labels import LabelMatcher, MatchType, match_labels, parse_matchers


# =============================================================================
# parse_matchers tests
# =============================================================================


def test_parse_braced_matchers():
    matchers = parse_matchers('{instance="node1", job=~"node.*"}')

    assert [(m.name, m.type, m.value) for m in matchers] == [
        ("instance", MatchType.EQUAL, "node1"),
        ("job", MatchType.REGEXP, "node.*"),
    ]


def test_parse_without_braces_and_unquoted_value():
    matchers = parse_matchers("instance=node1,hostname!~ignored-.*")

    assert matchers[0] == LabelMatcher.create("instance", MatchType.EQUAL, "node1")
    assert matchers[1].type == MatchType.NOT_REGEXP
    assert matchers[1].value == "ignored-.*"


def test_parse_all_operators():
    matchers = parse_matchers('a="1",b!="2",c=~"3",d!~"4"')

    assert [m.type for m in matchers] == [
        MatchType.EQUAL,
        MatchType.NOT_EQUAL,
        MatchType.REGEXP,
        MatchType.NOT_REGEXP,
    ]


def test_parse_comma_inside_quotes_is_part_of_value():
    matchers = parse_matchers('{instance="a,b", job="x"}')

    assert len(matchers) == 2
    assert matchers[0].value == "a,b"


def test_parse_escapes():
    matchers = parse_matchers(r'{msg="say \"hi\"", host=~"node\.example\.com"}')

    assert matchers[0].value == 'say "hi"'
    # Regex escapes pass through untouched
    assert matchers[1].value == r"node\.example\.com"
    assert matchers[1].matches("node.example.com")
    assert not matchers[1].matches("nodeXexample.com")


def test_parse_empty_braces_returns_no_matchers():
    assert parse_matchers("{}") == []
    assert parse_matchers("  ") == []


def test_parse_ignores_trailing_comma():
    assert len(parse_matchers('{a="1",}')) == 1


@pytest.mark.parametrize(
    "text",
    [
        '{a="1"',
        'a="1"}',
        "a",
        'a=="1"x',
        'a="1',
        'a=~"("',
        "1a=x",
    ],
)
def test_parse_errors_raise_value_error(text):
    with pytest.raises(ValueError):
        parse_matchers(text)


def test_matcher_str():
    assert str(LabelMatcher.create("job", MatchType.REGEXP, "node.*")) == 'job=~"node.*"'


# =============================================================================
# match_labels tests
# =============================================================================


def _m(text: str) -> list[LabelMatcher]:
    return parse_matchers(text)


def test_equal_matches_exact_value_only():
    assert match_labels(_m('instance="node1"'), {"instance": "node1"})
    assert not match_labels(_m('instance="node1"'), {"instance": "node10"})
    assert not match_labels(_m('instance="node1"'), {})


def test_regex_is_fully_anchored():
    matchers = _m('instance=~"node1.*"')

    assert match_labels(matchers, {"instance": "node1.example.com:9100"})
    assert not match_labels(matchers, {"instance": "xnode1"})


def test_equal_empty_value_matches_absent_label():
    matchers = _m('instance=""')

    assert match_labels(matchers, {})
    assert match_labels(matchers, {"instance": ""})
    assert not match_labels(matchers, {"instance": "node1"})


def test_not_equal_empty_value_matches_present_label():
    matchers = _m('instance!=""')

    assert match_labels(matchers, {"instance": "node1"})
    assert not match_labels(matchers, {})


def test_negative_matchers_treat_missing_label_as_empty():
    assert match_labels(_m('instance!="node1"'), {})
    assert match_labels(_m('instance!~"node.*"'), {})
    assert not match_labels(_m('instance!~"node.*"'), {"instance": "node2"})


def test_regex_on_missing_label_does_not_match():
    assert not match_labels(_m('instance=~".*"'), {})


def test_matchers_are_ored():
    matchers = _m('{instance="node1", hostname="node1"}')

    assert match_labels(matchers, {"hostname": "node1"})
    assert match_labels(matchers, {"instance": "node1"})
    assert not match_labels(matchers, {"instance": "node2", "hostname": "node2"})


def test_empty_matcher_list_matches_nothing():
    assert not match_labels([], {"instance": "node1"})
