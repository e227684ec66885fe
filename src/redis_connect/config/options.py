"""Option schema: declared connector options, their kinds and defaults.

A schema is a plain ordered collection of :class:`OptionSpec` literals.
It knows how to resolve a raw value (falling back to the default) and how
to coerce a raw string to the option's declared kind.  Cross-option
consistency lives in :mod:`redis_connect.config.validator`.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum, StrEnum
from typing import Any

from redis_connect.errors import (
    ConfigConstraintError,
    ConfigParseError,
    DuplicateOptionError,
)

Validator = Callable[[str, Any], None]

_INT_RANGE = (-(2**31), 2**31 - 1)
_LONG_RANGE = (-(2**63), 2**63 - 1)
_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


class OptionKind(StrEnum):
    """Declared value kinds."""

    STRING = "STRING"
    BOOLEAN = "BOOLEAN"
    INT = "INT"
    LONG = "LONG"


class Importance(StrEnum):
    """Operator-facing weight shown in the option table."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass(frozen=True, slots=True)
class OptionSpec:
    """One recognized configuration option."""

    name: str
    kind: OptionKind
    default: str
    doc: str
    validator: Validator | None = None
    importance: Importance = Importance.MEDIUM


def _invalid(name: str, value: str, reason: str) -> str:
    return f"Invalid value {value} for configuration {name}: {reason}"


def parse_value(name: str, kind: OptionKind, value: str) -> Any:
    """Coerce *value* to *kind*, raising ConfigParseError when it can't be."""
    if kind == OptionKind.STRING:
        return value.strip()
    trimmed = value.strip()
    if kind == OptionKind.BOOLEAN:
        lowered = trimmed.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise ConfigParseError(
            name, _invalid(name, value, "Expected value to be either true or false")
        )
    low, high = _INT_RANGE if kind == OptionKind.INT else _LONG_RANGE
    if not _INTEGER_PATTERN.match(trimmed):
        raise ConfigParseError(
            name, _invalid(name, value, f"Not a number of type {kind.value}")
        )
    number = int(trimmed)
    if not low <= number <= high:
        raise ConfigParseError(
            name, _invalid(name, value, f"Out of range for type {kind.value}")
        )
    return number


# -- Reusable per-option validators -------------------------------------------


def valid_enum(enum_type: type[Enum]) -> Validator:
    """Accept only the member names of *enum_type* (case-sensitive)."""
    names = [member.name for member in enum_type]

    def _validate(name: str, value: Any) -> None:
        if value not in names:
            raise ConfigConstraintError(
                name, _invalid(name, value, f"Must be one of {', '.join(names)}")
            )

    return _validate


def at_least(minimum: int) -> Validator:
    """Reject numbers below *minimum*."""

    def _validate(name: str, value: Any) -> None:
        if value < minimum:
            raise ConfigConstraintError(
                name, _invalid(name, value, f"Value must be at least {minimum}")
            )

    return _validate


def non_empty() -> Validator:
    """Reject blank strings."""

    def _validate(name: str, value: Any) -> None:
        if not str(value).strip():
            raise ConfigConstraintError(
                name, _invalid(name, value, "String must be non-empty")
            )

    return _validate


class OptionSchema:
    """Ordered registry of :class:`OptionSpec` keyed by option name.

    ``strict`` schemas report unknown keys in a raw map as errors; the
    default is to ignore them, since hosts pass their own keys alongside
    the connector's.
    """

    def __init__(self, specs: Iterable[OptionSpec] = (), *, strict: bool = False):
        self._specs: dict[str, OptionSpec] = {}
        self.strict = strict
        for spec in specs:
            self.define(spec)

    def define(self, spec: OptionSpec) -> OptionSchema:
        """Register *spec*; a repeated name fails immediately."""
        if spec.name in self._specs:
            msg = f"Configuration {spec.name!r} is defined twice"
            raise DuplicateOptionError(msg)
        self._specs[spec.name] = spec
        return self

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[OptionSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    def names(self) -> list[str]:
        return list(self._specs)

    def get(self, name: str) -> OptionSpec:
        try:
            return self._specs[name]
        except KeyError:
            msg = f"Unknown configuration {name!r}"
            raise KeyError(msg) from None

    def resolve(self, raw: Mapping[str, str], name: str) -> str:
        """Return the raw string for *name*, or its default when absent."""
        spec = self.get(name)
        value = raw.get(name)
        return spec.default if value is None else value

    def parse(self, name: str, value: str) -> Any:
        return parse_value(name, self.get(name).kind, value)

    def parse_resolved(self, raw: Mapping[str, str], name: str) -> Any:
        return self.parse(name, self.resolve(raw, name))

    def unknown_keys(self, raw: Mapping[str, str]) -> list[str]:
        return [key for key in raw if key not in self._specs]

    def option_table(self) -> list[dict[str, str]]:
        """Describe every option in declaration order."""
        return [
            {
                "name": spec.name,
                "type": spec.kind.value,
                "default": spec.default,
                "importance": spec.importance.value,
                "documentation": spec.doc,
            }
            for spec in self._specs.values()
        ]
