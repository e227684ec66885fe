"""Control-plane protocol every connector exposes to the host runtime.

The host calls ``start`` once, ``task_configs`` whenever it (re)scales,
and ``stop`` on shutdown, always sequentially for a given instance.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from redis_connect.config.models import ConnectorKind
from redis_connect.config.options import OptionSchema
from redis_connect.config.validator import ValidationResult


@runtime_checkable
class Connector(Protocol):
    """Protocol that every Redis connector must satisfy."""

    @property
    def kind(self) -> ConnectorKind:
        """Which side of the pipeline this connector serves."""
        ...

    def schema(self) -> OptionSchema:
        """Return a fresh copy of the recognized options."""
        ...

    def validate(self, raw: Mapping[str, str]) -> ValidationResult:
        """Report every problem with *raw* without starting."""
        ...

    def start(self, raw: Mapping[str, str]) -> None:
        """Validate *raw* and build the typed config; fail on any error."""
        ...

    def task_configs(self, max_tasks: int) -> list[dict[str, str]]:
        """Return one raw config per worker task."""
        ...

    def stop(self) -> None:
        """Drop the typed config."""
        ...
