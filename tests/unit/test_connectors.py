"""Unit tests for connector entry points and the connector factory."""

import pytest
from structlog.testing import capture_logs

from redis_connect.config.definitions import build_sink_config, sink_validator
from redis_connect.config.models import ConnectorKind, ReaderType, RedisCommand
from redis_connect.connector.base import Connector
from redis_connect.connector.factory import create_connector
from redis_connect.connector.sink import RedisSinkConnector
from redis_connect.connector.source import RedisSourceConnector
from redis_connect.errors import (
    ConfigValidationError,
    ConnectorStartError,
    ConnectorStateError,
    PartitionContractError,
)

KEYS_SOURCE = {
    "name": "redis-source",
    "redis.reader": "KEYS",
    "redis.keys.patterns": "k1,k2,k3,k4,k5",
}
STREAM_SOURCE = {"redis.reader": "STREAM", "redis.stream.name": "orders"}
SINK = {"name": "redis-sink", "redis.command": "HSET", "redis.wait.replicas": "1"}


class TestRedisSourceConnector:
    def test_keys_reader_partitions_patterns(self):
        connector = RedisSourceConnector()
        connector.start(KEYS_SOURCE)
        tasks = connector.task_configs(2)
        assert [t["redis.keys.patterns"] for t in tasks] == ["k1,k2,k3", "k4,k5"]
        assert all(t["name"] == "redis-source" for t in tasks)
        assert all("task.id" not in t for t in tasks)

    def test_keys_reader_with_duplicate_patterns(self):
        connector = RedisSourceConnector()
        connector.start({**KEYS_SOURCE, "redis.keys.patterns": "a,b,a"})
        tasks = connector.task_configs(5)
        assert [t["redis.keys.patterns"] for t in tasks] == ["a", "b"]

    def test_stream_reader_fans_out(self):
        connector = RedisSourceConnector()
        connector.start(STREAM_SOURCE)
        assert connector.config.reader == ReaderType.STREAM
        tasks = connector.task_configs(3)
        assert [t["task.id"] for t in tasks] == ["0", "1", "2"]
        assert all(t["redis.stream.name"] == "orders" for t in tasks)

    def test_invalid_config_fails_start(self):
        connector = RedisSourceConnector()
        with pytest.raises(ConnectorStartError) as info:
            connector.start({"redis.reader": "SCAN"})
        assert isinstance(info.value.__cause__, ConfigValidationError)
        with pytest.raises(ConnectorStateError):
            connector.task_configs(1)

    def test_task_configs_before_start(self):
        with pytest.raises(ConnectorStateError, match="not been started"):
            RedisSourceConnector().task_configs(1)

    def test_invalid_max_tasks(self):
        connector = RedisSourceConnector()
        connector.start(KEYS_SOURCE)
        with pytest.raises(PartitionContractError):
            connector.task_configs(0)

    def test_stop_releases_config(self):
        connector = RedisSourceConnector()
        connector.start(STREAM_SOURCE)
        connector.stop()
        with pytest.raises(ConnectorStateError):
            connector.config

    def test_validate_does_not_start(self):
        connector = RedisSourceConnector()
        result = connector.validate({})
        assert "redis.stream.name" in result.errors()
        with pytest.raises(ConnectorStateError):
            connector.config

    def test_strict_rejects_unknown_keys(self):
        connector = RedisSourceConnector(strict=True)
        with pytest.raises(ConnectorStartError, match="Unknown configuration 'name'"):
            connector.start(KEYS_SOURCE)


class TestRedisSinkConnector:
    def test_fan_out(self):
        connector = RedisSinkConnector()
        connector.start(SINK)
        assert connector.config.command == RedisCommand.HSET
        tasks = connector.task_configs(3)
        assert [t["task.id"] for t in tasks] == ["0", "1", "2"]
        for task in tasks:
            assert {k: v for k, v in task.items() if k != "task.id"} == SINK

    def test_start_collects_every_error(self):
        connector = RedisSinkConnector()
        with pytest.raises(ConnectorStartError) as info:
            connector.start({"redis.wait.replicas": "x", "redis.command": "NOPE"})
        cause = info.value.__cause__
        assert isinstance(cause, ConfigValidationError)
        assert set(cause.errors) == {"redis.wait.replicas", "redis.command"}

    def test_task_configs_before_start(self):
        with pytest.raises(ConnectorStateError):
            RedisSinkConnector().task_configs(1)

    def test_schema_lists_sink_options(self):
        names = RedisSinkConnector().schema().names()
        assert "redis.multiexec" in names
        assert "redis.reader" not in names

    def test_strict_task_configs_validate(self):
        connector = RedisSinkConnector(strict=True)
        connector.start({"redis.command": "HSET"})
        for task in connector.task_configs(2):
            assert sink_validator(strict=True).validate_all(task).ok
            assert build_sink_config(task, strict=True).task_id == int(task["task.id"])

    def test_instances_are_independent(self):
        first = RedisSinkConnector()
        second = RedisSinkConnector()
        first.start(SINK)
        second.start({"redis.command": "SADD"})
        assert first.config.command == RedisCommand.HSET
        assert second.config.command == RedisCommand.SADD
        first.stop()
        assert second.config.command == RedisCommand.SADD

    def test_logs_lifecycle(self):
        connector = RedisSinkConnector()
        with capture_logs() as logs:
            connector.start(SINK)
            connector.task_configs(2)
            connector.stop()
        events = [entry["event"] for entry in logs]
        assert events == [
            "connector.started",
            "connector.task_configs",
            "connector.stopped",
        ]
        assert logs[1]["tasks"] == 2

    def test_logs_validation_failure(self):
        with capture_logs() as logs, pytest.raises(ConnectorStartError):
            RedisSinkConnector().start({"redis.multiexec": "maybe"})
        assert logs[0]["event"] == "connector.validation_failed"
        assert logs[0]["log_level"] == "error"


class TestCreateConnector:
    def test_creates_source(self):
        assert isinstance(create_connector(ConnectorKind.SOURCE), RedisSourceConnector)

    def test_creates_sink_from_string(self):
        assert isinstance(create_connector("sink"), RedisSinkConnector)

    def test_passes_strict(self):
        connector = create_connector(ConnectorKind.SINK, strict=True)
        assert connector.schema().strict is True

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError, match="Unknown connector kind"):
            create_connector("transform")

    def test_fresh_instance_each_call(self):
        assert create_connector("sink") is not create_connector("sink")


class TestProtocolConformance:
    def test_source_satisfies_connector(self):
        assert isinstance(RedisSourceConnector(), Connector)

    def test_sink_satisfies_connector(self):
        assert isinstance(RedisSinkConnector(), Connector)
