# reviewsync Scope Predicate
# Pure classification of records into the mirrored working set

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from reviewsync.sync.record import LinkValue, NumberValue, Record, TextValue

if TYPE_CHECKING:
    from reviewsync.config.schema import ScopeRuleConfig


@dataclass(frozen=True)
class ScopeRule:
    """
    A single condition on one field.

    Exactly one of equals, one_of or blank is set.
    """

    field: str
    equals: str | int | float | None = None
    one_of: tuple[str | int | float, ...] | None = None
    blank: bool | None = None

    def matches(self, record: Record) -> bool:
        """Check the rule against a record. Missing fields never raise."""
        if self.blank is not None:
            return record.is_blank(self.field) == self.blank

        value = record.get(self.field)
        if value is None or value.is_blank:
            return False

        expected: Iterable[Any]
        if self.equals is not None:
            expected = (self.equals,)
        else:
            expected = self.one_of or ()

        return any(_value_equals(value, candidate) for candidate in expected)

    def to_formula(self) -> str:
        """Render the rule as a remote filter formula."""
        ref = "{" + self.field + "}"
        if self.blank is not None:
            blank_expr = f'OR({ref} = "", NOT({ref}))'
            return blank_expr if self.blank else f"NOT({blank_expr})"

        if self.equals is not None:
            return f"{ref} = {_literal(self.equals)}"

        options = [f"{ref} = {_literal(option)}" for option in (self.one_of or ())]
        if not options:
            return "FALSE()"
        if len(options) == 1:
            return options[0]
        return "OR(" + ", ".join(options) + ")"


def _value_equals(value: Any, expected: Any) -> bool:
    if isinstance(value, TextValue):
        return isinstance(expected, str) and value.value == expected
    if isinstance(value, NumberValue):
        if isinstance(expected, bool):
            return False
        if isinstance(expected, (int, float)):
            return value.value == expected
        return False
    if isinstance(value, LinkValue):
        return isinstance(expected, str) and expected in value.ids
    return False


def _literal(value: str | int | float) -> str:
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return repr(value)


class ScopePredicate:
    """
    Decides whether a record belongs to the working set.

    All rules must hold. The predicate is pure and total: it never raises for
    missing or oddly-typed fields, it just answers False.
    """

    def __init__(self, rules: Sequence[ScopeRule]):
        """
        Initialize predicate.

        Args:
            rules: Conditions that must all hold for a record to be in scope.
        """
        self.rules = tuple(rules)

    def __call__(self, record: Record) -> bool:
        return self.in_scope(record)

    def in_scope(self, record: Record) -> bool:
        """Check if a record currently belongs to the working set."""
        return all(rule.matches(record) for rule in self.rules)

    def to_formula(self) -> str:
        """Render all rules as a single remote filter formula."""
        if not self.rules:
            return "TRUE()"
        parts = [rule.to_formula() for rule in self.rules]
        if len(parts) == 1:
            return parts[0]
        return "AND(" + ", ".join(parts) + ")"

    @classmethod
    def from_config(cls, rules: Iterable[ScopeRuleConfig]) -> ScopePredicate:
        """Build a predicate from validated configuration rules."""
        return cls(
            [
                ScopeRule(
                    field=rule.field,
                    equals=rule.equals,
                    one_of=tuple(rule.one_of) if rule.one_of is not None else None,
                    blank=rule.blank,
                )
                for rule in rules
            ]
        )

    def __repr__(self) -> str:
        return f"ScopePredicate({self.to_formula()!r})"
