"""Unit tests for typed connector configs and their builders."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from redis_connect.config.definitions import build_sink_config, build_source_config
from redis_connect.config.models import (
    MULTIEXEC_COMMANDS,
    ConnectionConfig,
    DeliveryType,
    PushDirection,
    ReaderType,
    RedisCommand,
    RedisSinkConfig,
    RedisSourceConfig,
    ReplicationWait,
    WriterOptions,
)
from redis_connect.errors import ConfigValidationError


class TestRedisCommand:
    def test_multiexec_capable_set(self):
        assert MULTIEXEC_COMMANDS == (
            RedisCommand.XADD,
            RedisCommand.LPUSH,
            RedisCommand.RPUSH,
            RedisCommand.SADD,
            RedisCommand.ZADD,
        )

    def test_every_command_has_an_answer(self):
        for command in RedisCommand:
            assert command.supports_multiexec in (True, False)

    def test_json_commands_are_not_multiexec(self):
        assert RedisCommand.JSONMERGE.supports_multiexec is False
        assert RedisCommand.HSET.supports_multiexec is False


class TestBuildSinkConfig:
    def test_defaults(self):
        cfg = build_sink_config({})
        assert cfg.charset == "utf-8"
        assert cfg.command == RedisCommand.XADD
        assert cfg.keyspace == "${topic}"
        assert cfg.separator == ":"
        assert cfg.push_direction == PushDirection.LEFT
        assert cfg.multiexec is False
        assert cfg.wait_replicas == 0
        assert cfg.wait_timeout_ms == 1000
        assert cfg.json_path == "$"
        assert cfg.fixed_json_path == "$"
        assert cfg.key_expire_timeout_ms == 0
        assert cfg.connection.uri == "redis://localhost:6379"

    def test_typed_values(self):
        cfg = build_sink_config(
            {
                "redis.command": "LPUSH",
                "redis.multiexec": "TRUE",
                "redis.key": "  kafka_${topic} ",
                "redis.push.direction": "RIGHT",
                "redis.set.expire.timeout": "30000",
                "redis.charset": "ISO-8859-1",
            }
        )
        assert cfg.command == RedisCommand.LPUSH
        assert cfg.multiexec is True
        assert cfg.keyspace == "kafka_${topic}"
        assert cfg.push_direction == PushDirection.RIGHT
        assert cfg.key_expire_timeout == timedelta(seconds=30)
        assert cfg.charset == "iso8859-1"
        assert cfg.codec.name == "iso8859-1"

    def test_no_replication_wait_without_replicas(self):
        cfg = build_sink_config(
            {"redis.wait.replicas": "0", "redis.wait.timeout": "500"}
        )
        assert cfg.replication_wait is None

    def test_replication_wait_with_replicas(self):
        cfg = build_sink_config(
            {"redis.wait.replicas": "2", "redis.wait.timeout": "500"}
        )
        assert cfg.replication_wait == ReplicationWait(
            replicas=2, timeout=timedelta(milliseconds=500)
        )

    def test_writer_options(self):
        cfg = build_sink_config(
            {
                "redis.pool": "8",
                "redis.multiexec": "true",
                "redis.wait.replicas": "1",
                "redis.wait.timeout": "250",
            }
        )
        assert cfg.writer_options() == WriterOptions(
            pool_size=8,
            multiexec=True,
            replication_wait=ReplicationWait(1, timedelta(milliseconds=250)),
        )

    def test_no_key_expiry_by_default(self):
        assert build_sink_config({}).key_expire_timeout is None

    def test_invalid_config_reports_every_error(self):
        with pytest.raises(ConfigValidationError) as info:
            build_sink_config(
                {"redis.wait.replicas": "x", "redis.wait.timeout": "y"}
            )
        assert set(info.value.errors) == {"redis.wait.replicas", "redis.wait.timeout"}
        assert "2 error(s)" in str(info.value)

    def test_cross_field_violation_fails(self):
        with pytest.raises(ConfigValidationError, match="multi/exec"):
            build_sink_config({"redis.command": "SET", "redis.multiexec": "true"})

    def test_is_frozen(self):
        cfg = build_sink_config({})
        with pytest.raises(ValidationError):
            cfg.wait_replicas = 3  # type: ignore[misc]

    def test_each_build_is_independent(self):
        first = build_sink_config({"redis.command": "HSET"})
        second = build_sink_config({"redis.command": "SADD"})
        assert first.command == RedisCommand.HSET
        assert second.command == RedisCommand.SADD


class TestRedisSinkConfigModel:
    def test_unknown_charset_fails_loudly(self):
        with pytest.raises(ValidationError, match="unknown encoding"):
            RedisSinkConfig(charset="not-a-charset")

    def test_non_text_codec_fails_loudly(self):
        with pytest.raises(ValidationError, match="not a text encoding"):
            RedisSinkConfig(charset="base64")

    def test_task_id(self):
        assert RedisSinkConfig().task_id == 0
        assert build_sink_config({"task.id": "2"}).task_id == 2

    def test_negative_replicas_rejected(self):
        with pytest.raises(ValidationError):
            RedisSinkConfig(wait_replicas=-1)

    def test_construct_by_option_name(self):
        cfg = RedisSinkConfig.model_validate({"redis.wait.replicas": 3})
        assert cfg.wait_replicas == 3


class TestConnectionConfig:
    def test_blank_credentials_become_none(self):
        cfg = build_sink_config({"redis.username": "", "redis.password": " "})
        assert cfg.connection.username is None
        assert cfg.connection.password is None

    def test_password_is_secret(self):
        cfg = build_sink_config({"redis.password": "s3cret"})
        assert cfg.connection.password is not None
        assert cfg.connection.password.get_secret_value() == "s3cret"
        assert "s3cret" not in repr(cfg)
        assert "s3cret" not in cfg.model_dump_json()

    def test_timeout(self):
        cfg = ConnectionConfig(timeout_seconds=5)
        assert cfg.timeout == timedelta(seconds=5)

    def test_pool_size_must_be_positive(self):
        with pytest.raises(ConfigValidationError, match="at least 1"):
            build_sink_config({"redis.pool": "0"})


class TestBuildSourceConfig:
    def test_keys_reader(self):
        cfg = build_source_config(
            {"redis.reader": "KEYS", "redis.keys.patterns": "a*, b* ,a*,,c*"}
        )
        assert cfg.reader == ReaderType.KEYS
        assert cfg.key_patterns == ("a*", "b*", "c*")

    def test_stream_reader(self):
        cfg = build_source_config({"redis.stream.name": "orders"})
        assert cfg.reader == ReaderType.STREAM
        assert cfg.stream_name == "orders"
        assert cfg.stream_delivery == DeliveryType.AT_LEAST_ONCE
        assert cfg.topic == "${stream}"
        assert cfg.consumer_name == "consumer-${task}"
        assert cfg.task_id == 0

    def test_task_id(self):
        cfg = build_source_config({"redis.stream.name": "s", "task.id": "3"})
        assert cfg.task_id == 3

    def test_idle_timeout(self):
        cfg = build_source_config(
            {"redis.reader": "KEYS", "redis.keys.idle.timeout": "1500"}
        )
        assert cfg.idle_timeout == timedelta(milliseconds=1500)
        assert RedisSourceConfig().idle_timeout is None

    def test_missing_stream_name_fails(self):
        with pytest.raises(ConfigValidationError, match="redis.stream.name"):
            build_source_config({})

    def test_blank_consumer_group_fails(self):
        raw = {"redis.stream.name": "orders", "redis.stream.consumer.group": "  "}
        with pytest.raises(ConfigValidationError, match="non-empty"):
            build_source_config(raw)
