"""Pydantic models for validated connector configuration."""

from __future__ import annotations

import codecs
from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

TOKEN_TOPIC = "${topic}"
TOKEN_STREAM = "${stream}"
TOKEN_TASK = "${task}"


class ConnectorKind(StrEnum):
    """Which side of the pipeline a connector sits on."""

    SOURCE = "source"
    SINK = "sink"


class RedisCommand(StrEnum):
    """Write operation a sink applies to each record."""

    HSET = "HSET"
    JSONSET = "JSONSET"
    JSONMERGE = "JSONMERGE"
    TSADD = "TSADD"
    SET = "SET"
    XADD = "XADD"
    LPUSH = "LPUSH"
    RPUSH = "RPUSH"
    SADD = "SADD"
    ZADD = "ZADD"
    DEL = "DEL"

    @property
    def supports_multiexec(self) -> bool:
        """Whether batches of this command may run inside MULTI/EXEC."""
        match self:
            case (
                RedisCommand.XADD
                | RedisCommand.LPUSH
                | RedisCommand.RPUSH
                | RedisCommand.SADD
                | RedisCommand.ZADD
            ):
                return True
            case (
                RedisCommand.HSET
                | RedisCommand.JSONSET
                | RedisCommand.JSONMERGE
                | RedisCommand.TSADD
                | RedisCommand.SET
                | RedisCommand.DEL
            ):
                return False


MULTIEXEC_COMMANDS: tuple[RedisCommand, ...] = tuple(
    c for c in RedisCommand if c.supports_multiexec
)


class PushDirection(StrEnum):
    """List push direction: LEFT (LPUSH) or RIGHT (RPUSH)."""

    LEFT = "LEFT"
    RIGHT = "RIGHT"


class ReaderType(StrEnum):
    """How a source connector reads from Redis."""

    KEYS = "KEYS"
    STREAM = "STREAM"


class DeliveryType(StrEnum):
    AT_MOST_ONCE = "AT_MOST_ONCE"
    AT_LEAST_ONCE = "AT_LEAST_ONCE"


def lookup_charset(name: str) -> codecs.CodecInfo:
    """Resolve *name* to a text codec, raising LookupError otherwise.

    Binary and str-to-str transforms such as base64 or rot13 are not text
    encodings and are rejected.
    """
    try:
        info = codecs.lookup(name.strip())
        "".encode(info.name)
    except ValueError as exc:
        raise LookupError(f"invalid encoding name {name!r}: {exc}") from exc
    return info


def _lookup_codec(name: str) -> codecs.CodecInfo:
    try:
        return lookup_charset(name)
    except LookupError as exc:
        raise ValueError(str(exc)) from exc


@dataclass(frozen=True, slots=True)
class ReplicationWait:
    """Block each write until *replicas* acknowledge it, up to *timeout*."""

    replicas: int
    timeout: timedelta


@dataclass(frozen=True, slots=True)
class WriterOptions:
    """Settings the data-plane writer needs from a sink config."""

    pool_size: int
    multiexec: bool
    replication_wait: ReplicationWait | None


class ConnectionConfig(BaseModel):
    """Redis connection settings shared by source and sink connectors."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    uri: str = Field(default="redis://localhost:6379", alias="redis.uri")
    cluster: bool = Field(default=False, alias="redis.cluster")
    timeout_seconds: int = Field(default=60, ge=0, alias="redis.timeout")
    pool_size: int = Field(default=4, ge=1, alias="redis.pool")
    username: str | None = Field(default=None, alias="redis.username")
    password: SecretStr | None = Field(default=None, alias="redis.password")
    tls: bool = Field(default=False, alias="redis.tls")
    insecure: bool = Field(default=False, alias="redis.insecure")

    @field_validator("username", "password", mode="before")
    @classmethod
    def blank_as_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def timeout(self) -> timedelta:
        return timedelta(seconds=self.timeout_seconds)


class RedisSinkConfig(BaseModel):
    """Typed, immutable configuration for a sink connector instance."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    connection: ConnectionConfig = ConnectionConfig()
    charset: str = Field(default="utf-8", alias="redis.charset")
    command: RedisCommand = Field(default=RedisCommand.XADD, alias="redis.command")
    keyspace: str = Field(default=TOKEN_TOPIC, alias="redis.key")
    separator: str = Field(default=":", alias="redis.separator")
    push_direction: PushDirection = Field(
        default=PushDirection.LEFT, alias="redis.push.direction"
    )
    multiexec: bool = Field(default=False, alias="redis.multiexec")
    wait_replicas: int = Field(default=0, ge=0, alias="redis.wait.replicas")
    wait_timeout_ms: int = Field(default=1000, ge=0, alias="redis.wait.timeout")
    json_path: str = Field(default="$", alias="redis.json.path")
    fixed_json_path: str = Field(default="$", alias="redis.json.path.fixed")
    key_expire_timeout_ms: int = Field(
        default=0, ge=0, alias="redis.set.expire.timeout"
    )
    task_id: int = Field(default=0, ge=0, alias="task.id")

    @field_validator("charset")
    @classmethod
    def resolve_charset(cls, v: str) -> str:
        """Normalise to the codec's canonical name; unknown names are rejected."""
        return _lookup_codec(v).name

    @field_validator("keyspace", "separator", mode="before")
    @classmethod
    def strip_whitespace(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @property
    def codec(self) -> codecs.CodecInfo:
        return codecs.lookup(self.charset)

    @property
    def replication_wait(self) -> ReplicationWait | None:
        """WAIT directive; absent unless at least one replica is requested."""
        if self.wait_replicas > 0:
            return ReplicationWait(
                replicas=self.wait_replicas,
                timeout=timedelta(milliseconds=self.wait_timeout_ms),
            )
        return None

    @property
    def key_expire_timeout(self) -> timedelta | None:
        if self.key_expire_timeout_ms > 0:
            return timedelta(milliseconds=self.key_expire_timeout_ms)
        return None

    def writer_options(self) -> WriterOptions:
        return WriterOptions(
            pool_size=self.connection.pool_size,
            multiexec=self.multiexec,
            replication_wait=self.replication_wait,
        )


class RedisSourceConfig(BaseModel):
    """Typed, immutable configuration for a source connector instance."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    connection: ConnectionConfig = ConnectionConfig()
    reader: ReaderType = Field(default=ReaderType.STREAM, alias="redis.reader")
    # Ordered, de-duplicated key patterns; each one is a unit of work.
    key_patterns: tuple[str, ...] = Field(
        default=("*",), alias="redis.keys.patterns"
    )
    idle_timeout_ms: int = Field(default=0, ge=0, alias="redis.keys.idle.timeout")
    stream_name: str = Field(default="", alias="redis.stream.name")
    stream_offset: str = Field(default="0-0", alias="redis.stream.offset")
    stream_delivery: DeliveryType = Field(
        default=DeliveryType.AT_LEAST_ONCE, alias="redis.stream.delivery"
    )
    consumer_group: str = Field(
        default="kafka-consumer-group", alias="redis.stream.consumer.group"
    )
    consumer_name: str = Field(
        default=f"consumer-{TOKEN_TASK}", alias="redis.stream.consumer.name"
    )
    batch_size: int = Field(default=50, ge=1, alias="redis.batch.size")
    topic: str = Field(default=TOKEN_STREAM, alias="topic")
    task_id: int = Field(default=0, ge=0, alias="task.id")

    @field_validator("key_patterns", mode="before")
    @classmethod
    def split_patterns(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, list | tuple):
            stripped = (p.strip() for p in v)
            return tuple(dict.fromkeys(p for p in stripped if p))
        return v

    @property
    def idle_timeout(self) -> timedelta | None:
        if self.idle_timeout_ms > 0:
            return timedelta(milliseconds=self.idle_timeout_ms)
        return None
