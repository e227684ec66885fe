"""Redis source connector: reads keys or a stream and feeds worker tasks."""

from __future__ import annotations

from collections.abc import Mapping

import structlog

from redis_connect.config.definitions import (
    build_source_config,
    source_schema,
    source_validator,
)
from redis_connect.config.models import ConnectorKind, ReaderType, RedisSourceConfig
from redis_connect.config.options import OptionSchema
from redis_connect.config.validator import ValidationResult
from redis_connect.connector.partition import fan_out, partition_by_work_units
from redis_connect.errors import ConfigError, ConnectorStartError, ConnectorStateError

logger = structlog.get_logger()


class RedisSourceConnector:
    """Control-plane half of the source connector.

    With the KEYS reader each key pattern is a unit of work, so patterns are
    spread over at most ``max_tasks`` tasks.  The STREAM reader fans out to
    exactly ``max_tasks`` tasks that share the stream through a consumer
    group, each identified by its ``task.id``.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self._strict = strict
        self._props: dict[str, str] | None = None
        self._config: RedisSourceConfig | None = None

    @property
    def kind(self) -> ConnectorKind:
        return ConnectorKind.SOURCE

    @property
    def config(self) -> RedisSourceConfig:
        if self._config is None:
            msg = "Source connector has not been started"
            raise ConnectorStateError(msg)
        return self._config

    def schema(self) -> OptionSchema:
        return source_schema(strict=self._strict)

    def validate(self, raw: Mapping[str, str]) -> ValidationResult:
        return source_validator(strict=self._strict).validate_all(raw)

    def start(self, raw: Mapping[str, str]) -> None:
        try:
            config = build_source_config(raw, strict=self._strict)
        except ConfigError as exc:
            logger.error("connector.validation_failed", kind=self.kind, error=str(exc))
            msg = f"Cannot start Redis source connector: {exc}"
            raise ConnectorStartError(msg) from exc
        self._props = dict(raw)
        self._config = config
        logger.info(
            "connector.started",
            kind=self.kind,
            reader=config.reader,
            key_patterns=len(config.key_patterns),
        )

    def task_configs(self, max_tasks: int) -> list[dict[str, str]]:
        config = self.config
        assert self._props is not None
        if config.reader == ReaderType.KEYS:
            tasks = partition_by_work_units(
                self._props, config.key_patterns, max_tasks
            )
        else:
            tasks = fan_out(self._props, max_tasks)
        logger.info(
            "connector.task_configs",
            kind=self.kind,
            reader=config.reader,
            max_tasks=max_tasks,
            tasks=len(tasks),
        )
        return tasks

    def stop(self) -> None:
        self._props = None
        self._config = None
        logger.info("connector.stopped", kind=self.kind)
