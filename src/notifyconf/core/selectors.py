"""
Label selector parsing and matching.

Selectors use the Kubernetes label selector grammar: a comma separated
conjunction of requirements such as ``env=prod``, ``tier!=cache``,
``region in (eu,us)``, ``!canary`` or ``replicas>2``. The empty string
selects every label set.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Literal

from .errors import InvalidSelectorSyntax

Operator = Literal["exists", "!", "=", "!=", "in", "notin", ">", "<"]

_SET_OPERATORS = frozenset({"in", "notin"})

_NAME_MAX_LENGTH = 63
_PREFIX_MAX_LENGTH = 253
_NAME_RE = re.compile(r"^([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]$")
_DNS_SUBDOMAIN_RE = re.compile(
    r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"
)

# Longest symbols first so "!=" and "==" win over "!" and "=".
_SYMBOLS = ("!=", "==", "!", "=", "(", ")", ",", "<", ">")
_SPECIAL_CHARS = frozenset("!=(),<>")


@dataclass(frozen=True)
class Requirement:
    """Single ``key <operator> values`` clause of a selector."""

    key: str
    operator: Operator
    values: tuple[str, ...] = ()

    def matches(self, labels: Mapping[str, str]) -> bool:
        has_key = self.key in labels
        if self.operator == "exists":
            return has_key
        if self.operator == "!":
            return not has_key
        if self.operator in ("=", "in"):
            return has_key and labels[self.key] in self.values
        if self.operator in ("!=", "notin"):
            return not has_key or labels[self.key] not in self.values
        # Numeric comparisons never match labels whose value is not an integer.
        if not has_key:
            return False
        try:
            actual = int(labels[self.key])
        except ValueError:
            return False
        expected = int(self.values[0])
        return actual > expected if self.operator == ">" else actual < expected

    def __str__(self) -> str:
        if self.operator == "exists":
            return self.key
        if self.operator == "!":
            return f"!{self.key}"
        if self.operator in _SET_OPERATORS:
            return f"{self.key} {self.operator} ({','.join(self.values)})"
        return f"{self.key}{self.operator}{self.values[0]}"


class LabelSelector:
    """Conjunction of requirements; no requirements selects everything."""

    __slots__ = ("_requirements",)

    def __init__(self, requirements: Iterable[Requirement] = ()) -> None:
        self._requirements = tuple(requirements)

    @property
    def requirements(self) -> tuple[Requirement, ...]:
        return self._requirements

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LabelSelector):
            return NotImplemented
        return self._requirements == other._requirements

    def __hash__(self) -> int:
        return hash(self._requirements)

    def __repr__(self) -> str:
        return f"LabelSelector({str(self)!r})"

    @classmethod
    def empty(cls) -> LabelSelector:
        return cls()

    def is_empty(self) -> bool:
        return not self.requirements

    def matches(self, labels: Mapping[str, str] | None) -> bool:
        labels = labels or {}
        return all(requirement.matches(labels) for requirement in self.requirements)

    def __str__(self) -> str:
        return ",".join(str(requirement) for requirement in self.requirements)


def parse_selector(text: str | None) -> LabelSelector:
    """
    Parse a selector expression into a :class:`LabelSelector`.

    Requirements are sorted by key and set values are de-duplicated and
    sorted, so ``str()`` of the result is the canonical form of ``text``.
    Raises :class:`InvalidSelectorSyntax` when ``text`` is malformed.
    """

    if text is None:
        return LabelSelector.empty()
    parser = _Parser(text)
    requirements = parser.parse()
    return LabelSelector(sorted(requirements, key=lambda item: item.key))


def _tokenize(text: str) -> Iterator[tuple[str, str]]:
    position = 0
    length = len(text)
    while position < length:
        char = text[position]
        if char.isspace():
            position += 1
            continue
        symbol = next((item for item in _SYMBOLS if text.startswith(item, position)), None)
        if symbol is not None:
            yield "symbol", symbol
            position += len(symbol)
            continue
        start = position
        while (
            position < length
            and not text[position].isspace()
            and text[position] not in _SPECIAL_CHARS
        ):
            position += 1
        yield "ident", text[start:position]
    yield "end", ""


class _Parser:
    """Recursive-descent parser over the token stream of one selector."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._tokens = list(_tokenize(text))
        self._index = 0

    def parse(self) -> list[Requirement]:
        requirements: list[Requirement] = []
        kind, value = self._peek()
        if kind == "end":
            return requirements
        while True:
            requirements.append(self._parse_requirement())
            kind, value = self._next()
            if kind == "end":
                return requirements
            if value != ",":
                raise self._error(f"found '{value}', expected: ',' or end of string")
            kind, value = self._peek()
            if kind != "ident" and value != "!":
                raise self._error(f"found '{value}', expected: identifier after ','")

    def _parse_requirement(self) -> Requirement:
        kind, value = self._next()
        negated = False
        if kind == "symbol" and value == "!":
            negated = True
            kind, value = self._next()
        if kind != "ident":
            raise self._error(f"found '{value}', expected: identifier")
        key = value
        self._validate_key(key)

        kind, value = self._peek()
        if kind == "end" or value == ",":
            return Requirement(key, "!" if negated else "exists")
        if negated:
            raise self._error(f"found '{value}', expected: ',' or end of string after '!{key}'")

        operator = self._parse_operator()
        if operator in _SET_OPERATORS:
            values = self._parse_value_set()
            if not values:
                raise self._error(f"for '{operator}' operator, values set can't be empty")
            return Requirement(key, operator, values)

        requirement_value = self._parse_exact_value()
        if operator in (">", "<"):
            try:
                int(requirement_value)
            except ValueError:
                raise self._error(
                    f"for '{operator}' operator, the value must be an integer"
                ) from None
        else:
            self._validate_value(requirement_value)
        return Requirement(key, operator, (requirement_value,))

    def _parse_operator(self) -> Operator:
        kind, value = self._next()
        if kind == "ident" and value in _SET_OPERATORS:
            return value  # type: ignore[return-value]
        if kind == "symbol":
            if value in ("=", "=="):
                return "="
            if value in ("!=", ">", "<"):
                return value  # type: ignore[return-value]
        raise self._error(f"found '{value}', expected: '=', '!=', '==', 'in', 'notin', '>' or '<'")

    def _parse_exact_value(self) -> str:
        kind, value = self._peek()
        if kind == "end" or value == ",":
            return ""
        kind, value = self._next()
        if kind != "ident":
            raise self._error(f"found '{value}', expected: identifier")
        return value

    def _parse_value_set(self) -> tuple[str, ...]:
        kind, value = self._next()
        if value != "(":
            raise self._error(f"found '{value}', expected: '('")
        values: set[str] = set()
        kind, value = self._peek()
        if value == ")":
            self._next()
            return ()
        while True:
            kind, value = self._next()
            if kind != "ident":
                raise self._error(f"found '{value}', expected: identifier in values list")
            self._validate_value(value)
            values.add(value)
            kind, value = self._next()
            if value == ")":
                return tuple(sorted(values))
            if value != ",":
                raise self._error(f"found '{value}', expected: ',' or ')'")

    def _validate_key(self, key: str) -> None:
        prefix, slash, name = key.rpartition("/")
        if slash:
            if (
                not prefix
                or len(prefix) > _PREFIX_MAX_LENGTH
                or not _DNS_SUBDOMAIN_RE.match(prefix)
            ):
                raise self._error(f"invalid label key prefix {prefix!r}")
        if len(name) > _NAME_MAX_LENGTH or not _NAME_RE.match(name):
            raise self._error(f"invalid label key {key!r}")

    def _validate_value(self, value: str) -> None:
        if value and (len(value) > _NAME_MAX_LENGTH or not _NAME_RE.match(value)):
            raise self._error(f"invalid label value {value!r}")

    def _peek(self) -> tuple[str, str]:
        return self._tokens[self._index]

    def _next(self) -> tuple[str, str]:
        token = self._tokens[self._index]
        if token[0] != "end":
            self._index += 1
        return token

    def _error(self, reason: str) -> InvalidSelectorSyntax:
        return InvalidSelectorSyntax(self._text, reason)


__all__ = ["LabelSelector", "Operator", "Requirement", "parse_selector"]
