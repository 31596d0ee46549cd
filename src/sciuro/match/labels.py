"""
Alertmanager-style label matcher grammar.

Parses filter strings such as:

    {instance="node1", job=~"node.*"}
    instance=node1,hostname!~"ignored-.*"

into LabelMatcher objects. Supported operators are =, !=, =~ and !~.
Regular expressions are fully anchored, as in Alertmanager.

Matching a list of matchers against a label set follows the node filter
convention:
- matchers in a list are OR'd: one matching matcher is enough
- an empty value with = or =~ matches when the label is absent
- an empty value with != or !~ matches when the label is present
- a missing label is compared as the empty string for != and !~
"""

import re
from dataclasses import dataclass, field
from enum import Enum

_LABEL_NAME = r"[a-zA-Z_:][a-zA-Z0-9_:]*"
_MATCHER_RE = re.compile(rf"^\s*({_LABEL_NAME})\s*(=~|!~|!=|=)\s*(.*?)\s*$", re.DOTALL)


class MatchType(str, Enum):
    """Label matcher operators."""

    EQUAL = "="
    NOT_EQUAL = "!="
    REGEXP = "=~"
    NOT_REGEXP = "!~"


@dataclass(frozen=True)
class LabelMatcher:
    """
    A single label matcher, e.g. instance=~"node1.*".

    Attributes:
        name: Label name to test
        type: Matcher operator
        value: Literal value or regular expression source
    """

    name: str
    type: MatchType
    value: str
    _pattern: re.Pattern | None = field(default=None, compare=False, repr=False)

    @classmethod
    def create(cls, name: str, type: MatchType, value: str) -> "LabelMatcher":
        """
        Build a matcher, compiling regular expressions up front.

        Raises:
            ValueError: If a regex matcher value does not compile
        """
        pattern = None
        if type in (MatchType.REGEXP, MatchType.NOT_REGEXP):
            try:
                pattern = re.compile(f"^(?:{value})$")
            except re.error as e:
                raise ValueError(f"invalid regular expression {value!r}: {e}") from e
        return cls(name=name, type=type, value=value, _pattern=pattern)

    def matches(self, value: str) -> bool:
        """Test a single label value against this matcher."""
        if self.type == MatchType.EQUAL:
            return value == self.value
        if self.type == MatchType.NOT_EQUAL:
            return value != self.value
        if self.type == MatchType.REGEXP:
            return self._pattern.match(value) is not None
        return self._pattern.match(value) is None

    def __str__(self) -> str:
        return f'{self.name}{self.type.value}"{self.value}"'


def parse_matchers(text: str) -> list[LabelMatcher]:
    """
    Parse a comma separated list of matchers, optionally wrapped in braces.

    Args:
        text: Filter string, e.g. '{instance="node1",job!="x"}'

    Returns:
        Parsed matchers in the order written

    Raises:
        ValueError: On a malformed matcher, unbalanced quotes or bad regex
    """
    body = text.strip()
    if body.startswith("{"):
        if not body.endswith("}"):
            raise ValueError(f"missing closing brace in {text!r}")
        body = body[1:-1]
    elif body.endswith("}"):
        raise ValueError(f"missing opening brace in {text!r}")

    matchers = []
    for part in _split_matchers(body):
        if not part.strip():
            continue
        m = _MATCHER_RE.match(part)
        if m is None:
            raise ValueError(f"bad matcher format: {part.strip()!r}")
        name, op, raw_value = m.groups()
        matchers.append(LabelMatcher.create(name, MatchType(op), _unquote(raw_value)))
    return matchers


def match_labels(matchers: list[LabelMatcher], labels: dict[str, str]) -> bool:
    """Return True if any matcher accepts the label set."""
    for m in matchers:
        exists = m.name in labels
        value = labels.get(m.name, "")
        if m.type in (MatchType.NOT_EQUAL, MatchType.NOT_REGEXP):
            if m.value == "" and exists:
                return True
            if m.matches(value):
                return True
        else:
            if m.value == "" and not exists:
                return True
            if exists and m.matches(value):
                return True
    return False


def _split_matchers(body: str) -> list[str]:
    """Split on commas that are not inside double quotes."""
    parts: list[str] = []
    current: list[str] = []
    in_quotes = False
    escaped = False
    for ch in body:
        if escaped:
            current.append(ch)
            escaped = False
            continue
        if ch == "\\" and in_quotes:
            current.append(ch)
            escaped = True
            continue
        if ch == '"':
            in_quotes = not in_quotes
        if ch == "," and not in_quotes:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    if in_quotes:
        raise ValueError(f"unterminated quoted value in {body!r}")
    parts.append("".join(current))
    return parts


_ESCAPES = {"n": "\n", "t": "\t", '"': '"', "\\": "\\"}


def _unquote(raw: str) -> str:
    """Strip surrounding double quotes and resolve backslash escapes."""
    if len(raw) < 2 or not (raw.startswith('"') and raw.endswith('"')):
        if '"' in raw:
            raise ValueError(f"unbalanced quotes in value {raw!r}")
        return raw

    out: list[str] = []
    chars = iter(raw[1:-1])
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        # Unknown escapes are kept verbatim so regex escapes like \. survive
        out.append(_ESCAPES.get(nxt, "\\" + nxt))
    return "".join(out)
