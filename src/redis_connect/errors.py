"""Error kinds raised by the configuration and partitioning engine."""

from __future__ import annotations


class ConfigError(ValueError):
    """Base class for every configuration problem."""


class OptionError(ConfigError):
    """A problem attributable to one named option."""

    def __init__(self, option: str, message: str) -> None:
        super().__init__(message)
        self.option = option
        self.message = message


class ConfigParseError(OptionError):
    """A supplied value cannot be coerced to its declared type."""


class ConfigConstraintError(OptionError):
    """A well-typed value, or combination of values, is not allowed."""


class DuplicateOptionError(ConfigError):
    """An option name was registered twice in the same schema."""


class ConfigValidationError(ConfigError):
    """Aggregate of every per-option error found by a validation pass."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        self.errors = errors
        lines = [
            f"  {name}: {message}"
            for name, messages in errors.items()
            for message in messages
        ]
        count = sum(len(m) for m in errors.values())
        super().__init__(
            f"Invalid connector configuration ({count} error(s)):\n" + "\n".join(lines)
        )


class PartitionContractError(ValueError):
    """The caller asked for an impossible partition (bad task count, no work)."""


class ConnectorStartError(RuntimeError):
    """The connector could not start with the supplied configuration."""


class ConnectorStateError(RuntimeError):
    """A connector entry point was called out of order."""
