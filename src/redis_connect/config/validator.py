"""Two-stage validation of a raw property map against an option schema.

Stage one checks every declared option on its own: the raw string must
parse as the option's kind and satisfy the option's validator.  Errors
accumulate across options so an operator sees every problem at once.

Stage two runs cross-field rules, but only when stage one left every
option clean.  Rules read parsed values and would be unsafe over
malformed input, so a single unrelated per-field error is enough to skip
them all.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from redis_connect.config.options import OptionSchema, OptionSpec
from redis_connect.errors import ConfigConstraintError, OptionError

Rule = Callable[[Mapping[str, str], Mapping[str, Any]], Iterable[ConfigConstraintError]]


@dataclass
class ConfigValue:
    """Resolved value and error messages for one option."""

    name: str
    value: Any = None
    errors: list[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)


class ValidationResult(Mapping[str, ConfigValue]):
    """Per-option outcome of :meth:`ConfigValidator.validate_all`."""

    def __init__(self, values: dict[str, ConfigValue]) -> None:
        self._values = values

    def __getitem__(self, name: str) -> ConfigValue:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    @property
    def ok(self) -> bool:
        return not any(v.errors for v in self._values.values())

    def errors(self) -> dict[str, list[str]]:
        """Error messages keyed by option, omitting clean options."""
        return {n: list(v.errors) for n, v in self._values.items() if v.errors}

    def resolved(self) -> dict[str, Any]:
        return {n: v.value for n, v in self._values.items()}


class ConfigValidator:
    def __init__(self, schema: OptionSchema, rules: Iterable[Rule] = ()) -> None:
        self.schema = schema
        self.rules = tuple(rules)

    def validate_all(self, raw: Mapping[str, str]) -> ValidationResult:
        values = {spec.name: self._validate_option(spec, raw) for spec in self.schema}
        if self.schema.strict:
            for key in self.schema.unknown_keys(raw):
                values[key] = ConfigValue(
                    key, raw[key], [f"Unknown configuration '{key}'"]
                )

        result = ValidationResult(values)
        if not result.ok:
            return result

        parsed = result.resolved()
        for rule in self.rules:
            for error in rule(raw, parsed):
                values[error.option].add_error(error.message)
        return result

    def _validate_option(
        self, spec: OptionSpec, raw: Mapping[str, str]
    ) -> ConfigValue:
        raw_value = self.schema.resolve(raw, spec.name)
        value = ConfigValue(spec.name, raw_value)
        try:
            value.value = self.schema.parse(spec.name, raw_value)
            if spec.validator is not None:
                spec.validator(spec.name, value.value)
        except OptionError as exc:
            value.add_error(exc.message)
        return value
