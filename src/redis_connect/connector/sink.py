"""Redis sink connector: writes records into Redis data structures."""

from __future__ import annotations

from collections.abc import Mapping

import structlog

from redis_connect.config.definitions import (
    build_sink_config,
    sink_schema,
    sink_validator,
)
from redis_connect.config.models import ConnectorKind, RedisSinkConfig
from redis_connect.config.options import OptionSchema
from redis_connect.config.validator import ValidationResult
from redis_connect.connector.partition import fan_out
from redis_connect.errors import ConfigError, ConnectorStartError, ConnectorStateError

logger = structlog.get_logger()


class RedisSinkConnector:
    """Control-plane half of the sink connector.

    Sink tasks share their input through the host's own partition
    assignment, so every task gets the same config plus its index.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self._strict = strict
        self._props: dict[str, str] | None = None
        self._config: RedisSinkConfig | None = None

    @property
    def kind(self) -> ConnectorKind:
        return ConnectorKind.SINK

    @property
    def config(self) -> RedisSinkConfig:
        if self._config is None:
            msg = "Sink connector has not been started"
            raise ConnectorStateError(msg)
        return self._config

    def schema(self) -> OptionSchema:
        return sink_schema(strict=self._strict)

    def validate(self, raw: Mapping[str, str]) -> ValidationResult:
        return sink_validator(strict=self._strict).validate_all(raw)

    def start(self, raw: Mapping[str, str]) -> None:
        try:
            config = build_sink_config(raw, strict=self._strict)
        except ConfigError as exc:
            logger.error("connector.validation_failed", kind=self.kind, error=str(exc))
            msg = f"Cannot start Redis sink connector: {exc}"
            raise ConnectorStartError(msg) from exc
        self._props = dict(raw)
        self._config = config
        logger.info(
            "connector.started",
            kind=self.kind,
            command=config.command,
            multiexec=config.multiexec,
            wait_replicas=config.wait_replicas,
        )

    def task_configs(self, max_tasks: int) -> list[dict[str, str]]:
        if self._props is None:
            msg = "Sink connector has not been started"
            raise ConnectorStateError(msg)
        tasks = fan_out(self._props, max_tasks)
        logger.info(
            "connector.task_configs",
            kind=self.kind,
            max_tasks=max_tasks,
            tasks=len(tasks),
        )
        return tasks

    def stop(self) -> None:
        self._props = None
        self._config = None
        logger.info("connector.stopped", kind=self.kind)
