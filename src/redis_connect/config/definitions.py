"""Option tables, cross-field rules and typed-config builders.

Every schema is built fresh on each call so that connector instances in
the same process never share a registry.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any
from urllib.parse import urlsplit

from pydantic import ValidationError

from redis_connect.config.models import (
    MULTIEXEC_COMMANDS,
    TOKEN_STREAM,
    TOKEN_TASK,
    TOKEN_TOPIC,
    ConnectionConfig,
    DeliveryType,
    PushDirection,
    ReaderType,
    RedisCommand,
    RedisSinkConfig,
    RedisSourceConfig,
    lookup_charset,
)
from redis_connect.config.options import (
    Importance,
    OptionKind,
    OptionSchema,
    OptionSpec,
    Validator,
    at_least,
    non_empty,
    valid_enum,
)
from redis_connect.config.validator import ConfigValidator, ValidationResult
from redis_connect.errors import (
    ConfigConstraintError,
    ConfigParseError,
    ConfigValidationError,
)

# -- Connection ----------------------------------------------------------------

URI_CONFIG = "redis.uri"
CLUSTER_CONFIG = "redis.cluster"
TIMEOUT_CONFIG = "redis.timeout"
POOL_MAX_CONFIG = "redis.pool"
USERNAME_CONFIG = "redis.username"
PASSWORD_CONFIG = "redis.password"
TLS_CONFIG = "redis.tls"
INSECURE_CONFIG = "redis.insecure"

# -- Sink ------------------------------------------------------------------------

CHARSET_CONFIG = "redis.charset"
COMMAND_CONFIG = "redis.command"
KEY_CONFIG = "redis.key"
SEPARATOR_CONFIG = "redis.separator"
PUSH_DIRECTION_CONFIG = "redis.push.direction"
MULTIEXEC_CONFIG = "redis.multiexec"
WAIT_REPLICAS_CONFIG = "redis.wait.replicas"
WAIT_TIMEOUT_CONFIG = "redis.wait.timeout"
JSON_PATH_CONFIG = "redis.json.path"
FIXED_JSON_PATH_CONFIG = "redis.json.path.fixed"
KEY_SET_EXPIRE_CONFIG = "redis.set.expire.timeout"

# -- Source ----------------------------------------------------------------------

READER_CONFIG = "redis.reader"
KEY_PATTERNS_CONFIG = "redis.keys.patterns"
IDLE_TIMEOUT_CONFIG = "redis.keys.idle.timeout"
STREAM_NAME_CONFIG = "redis.stream.name"
STREAM_OFFSET_CONFIG = "redis.stream.offset"
STREAM_DELIVERY_CONFIG = "redis.stream.delivery"
STREAM_CONSUMER_GROUP_CONFIG = "redis.stream.consumer.group"
STREAM_CONSUMER_NAME_CONFIG = "redis.stream.consumer.name"
BATCH_SIZE_CONFIG = "redis.batch.size"
TOPIC_CONFIG = "topic"
TASK_ID_CONFIG = "task.id"

_URI_SCHEMES = ("redis", "rediss", "redis-socket", "redis-sentinel")


def _valid_uri() -> Validator:
    def _validate(name: str, value: Any) -> None:
        scheme = urlsplit(value).scheme
        if scheme not in _URI_SCHEMES:
            msg = (
                f"Invalid value {value} for configuration {name}: "
                f"URI scheme must be one of {', '.join(_URI_SCHEMES)}"
            )
            raise ConfigConstraintError(name, msg)

    return _validate


def _task_id_option() -> OptionSpec:
    return OptionSpec(
        TASK_ID_CONFIG,
        OptionKind.INT,
        "0",
        "Zero-based index of this task. Set by the connector, not by operators.",
        at_least(0),
        Importance.LOW,
    )


def connection_options() -> list[OptionSpec]:
    """Options shared by every connector, embedded in both typed configs."""
    return [
        OptionSpec(
            URI_CONFIG,
            OptionKind.STRING,
            "redis://localhost:6379",
            "URI of the Redis database to connect to, "
            "e.g. redis://redis-12000.redis.com:12000",
            _valid_uri(),
            Importance.HIGH,
        ),
        OptionSpec(
            CLUSTER_CONFIG,
            OptionKind.BOOLEAN,
            "false",
            "Connect to a Redis Cluster database.",
        ),
        OptionSpec(
            TIMEOUT_CONFIG,
            OptionKind.LONG,
            "60",
            "Redis command timeout in seconds.",
            at_least(0),
        ),
        OptionSpec(
            POOL_MAX_CONFIG,
            OptionKind.INT,
            "4",
            "Max number of Redis connections in the pool.",
            at_least(1),
        ),
        OptionSpec(
            USERNAME_CONFIG,
            OptionKind.STRING,
            "",
            "Username to use to connect to Redis.",
        ),
        OptionSpec(
            PASSWORD_CONFIG,
            OptionKind.STRING,
            "",
            "Password to use to connect to Redis.",
        ),
        OptionSpec(
            TLS_CONFIG,
            OptionKind.BOOLEAN,
            "false",
            "Establish a secure TLS connection.",
        ),
        OptionSpec(
            INSECURE_CONFIG,
            OptionKind.BOOLEAN,
            "false",
            "Allow insecure connections (e.g. invalid certificates) when using TLS.",
        ),
    ]


def sink_options() -> list[OptionSpec]:
    commands = ",".join(c.name for c in RedisCommand)
    return [
        OptionSpec(
            CHARSET_CONFIG,
            OptionKind.STRING,
            "UTF-8",
            "Character set to encode Redis key and value strings.",
            importance=Importance.HIGH,
        ),
        OptionSpec(
            COMMAND_CONFIG,
            OptionKind.STRING,
            RedisCommand.XADD.name,
            f"Destination data structure: {commands}",
            valid_enum(RedisCommand),
            Importance.HIGH,
        ),
        OptionSpec(
            KEY_CONFIG,
            OptionKind.STRING,
            TOKEN_TOPIC,
            f"A format string for destination key space, which may contain "
            f"'{TOKEN_TOPIC}' as a placeholder for the originating topic name. "
            f"For example, 'kafka_{TOKEN_TOPIC}' for the topic 'orders' maps to "
            f"the Redis key space 'kafka_orders'. Leave empty for passthrough "
            f"(only applicable to non-collection data structures).",
        ),
        OptionSpec(
            SEPARATOR_CONFIG,
            OptionKind.STRING,
            ":",
            "Separator for non-collection destination keys.",
        ),
        OptionSpec(
            PUSH_DIRECTION_CONFIG,
            OptionKind.STRING,
            PushDirection.LEFT.name,
            "List push direction: LEFT (LPUSH) or RIGHT (RPUSH)",
            valid_enum(PushDirection),
        ),
        OptionSpec(
            MULTIEXEC_CONFIG,
            OptionKind.BOOLEAN,
            "false",
            "Whether to execute Redis commands in multi/exec transactions.",
        ),
        OptionSpec(
            WAIT_REPLICAS_CONFIG,
            OptionKind.INT,
            "0",
            "Number of replicas to wait for. Use 0 to disable waiting for replicas.",
            at_least(0),
        ),
        OptionSpec(
            WAIT_TIMEOUT_CONFIG,
            OptionKind.LONG,
            "1000",
            "Timeout in millis for WAIT command.",
            at_least(0),
        ),
        OptionSpec(
            JSON_PATH_CONFIG,
            OptionKind.STRING,
            "$",
            "The JSON attribute in the record header from which the JSON path "
            "is set dynamically. Only allowed with the JSONMERGE command.",
        ),
        OptionSpec(
            FIXED_JSON_PATH_CONFIG,
            OptionKind.STRING,
            "$",
            "Fixed JSON path used when the dynamic path is not present. "
            "Only allowed with the JSONMERGE command.",
        ),
        OptionSpec(
            KEY_SET_EXPIRE_CONFIG,
            OptionKind.LONG,
            "0",
            "Key expiration timeout in millis for SET command. Use 0 to disable.",
            at_least(0),
        ),
        _task_id_option(),
    ]


def source_options() -> list[OptionSpec]:
    return [
        OptionSpec(
            READER_CONFIG,
            OptionKind.STRING,
            ReaderType.STREAM.name,
            "Source from which to read Redis records. KEYS: generate records "
            "from key events matching the key patterns; STREAM: read records "
            "from a Redis stream.",
            valid_enum(ReaderType),
            Importance.HIGH,
        ),
        OptionSpec(
            KEY_PATTERNS_CONFIG,
            OptionKind.STRING,
            "*",
            "Comma-separated key patterns to watch with the KEYS reader. "
            "Each pattern is a unit of work that can be assigned to one task.",
        ),
        OptionSpec(
            IDLE_TIMEOUT_CONFIG,
            OptionKind.LONG,
            "0",
            "Idle timeout in millis for the KEYS reader. Use 0 to disable.",
            at_least(0),
        ),
        OptionSpec(
            STREAM_NAME_CONFIG,
            OptionKind.STRING,
            "",
            "Name of the Redis stream to read from (STREAM reader).",
        ),
        OptionSpec(
            STREAM_OFFSET_CONFIG,
            OptionKind.STRING,
            "0-0",
            "Stream offset to start reading from.",
        ),
        OptionSpec(
            STREAM_DELIVERY_CONFIG,
            OptionKind.STRING,
            DeliveryType.AT_LEAST_ONCE.name,
            "Stream message delivery guarantee: AT_MOST_ONCE or AT_LEAST_ONCE.",
            valid_enum(DeliveryType),
        ),
        OptionSpec(
            STREAM_CONSUMER_GROUP_CONFIG,
            OptionKind.STRING,
            "kafka-consumer-group",
            "Stream consumer group.",
            non_empty(),
        ),
        OptionSpec(
            STREAM_CONSUMER_NAME_CONFIG,
            OptionKind.STRING,
            f"consumer-{TOKEN_TASK}",
            f"A format string for the stream consumer, which may contain "
            f"'{TOKEN_TASK}' as a placeholder for the task id.",
        ),
        OptionSpec(
            BATCH_SIZE_CONFIG,
            OptionKind.INT,
            "50",
            "Maximum number of records to include in a single read.",
            at_least(1),
        ),
        OptionSpec(
            TOPIC_CONFIG,
            OptionKind.STRING,
            TOKEN_STREAM,
            f"Name of the destination topic, which may contain '{TOKEN_STREAM}' "
            f"as a placeholder for the originating stream name.",
            importance=Importance.HIGH,
        ),
        _task_id_option(),
    ]


def sink_schema(*, strict: bool = False) -> OptionSchema:
    schema = OptionSchema(connection_options(), strict=strict)
    for spec in sink_options():
        schema.define(spec)
    return schema


def source_schema(*, strict: bool = False) -> OptionSchema:
    schema = OptionSchema(connection_options(), strict=strict)
    for spec in source_options():
        schema.define(spec)
    return schema


# -- Cross-field rules -----------------------------------------------------------


def check_json_paths(
    raw: Mapping[str, str], values: Mapping[str, Any]
) -> Iterator[ConfigConstraintError]:
    """JSON path options are only meaningful for JSONMERGE."""
    if values[COMMAND_CONFIG] == RedisCommand.JSONMERGE.name:
        return
    if JSON_PATH_CONFIG in raw:
        yield ConfigConstraintError(
            JSON_PATH_CONFIG,
            "The JSON path configuration is not allowed unless the command "
            "is JSONMERGE.",
        )
    if FIXED_JSON_PATH_CONFIG in raw:
        yield ConfigConstraintError(
            FIXED_JSON_PATH_CONFIG,
            "The fixed JSON path configuration is not allowed unless the "
            "command is JSONMERGE.",
        )


def check_multiexec(
    raw: Mapping[str, str], values: Mapping[str, Any]
) -> Iterator[ConfigConstraintError]:
    command = RedisCommand(values[COMMAND_CONFIG])
    if values[MULTIEXEC_CONFIG] and not command.supports_multiexec:
        supported = ", ".join(c.name for c in MULTIEXEC_COMMANDS)
        yield ConfigConstraintError(
            MULTIEXEC_CONFIG,
            f"multi/exec is only supported with these data structures: {supported}",
        )


def check_charset(
    raw: Mapping[str, str], values: Mapping[str, Any]
) -> Iterator[ConfigConstraintError]:
    try:
        lookup_charset(values[CHARSET_CONFIG])
    except LookupError as exc:
        yield ConfigConstraintError(CHARSET_CONFIG, str(exc))


def check_stream_name(
    raw: Mapping[str, str], values: Mapping[str, Any]
) -> Iterator[ConfigConstraintError]:
    if values[READER_CONFIG] == ReaderType.STREAM.name and not values[
        STREAM_NAME_CONFIG
    ]:
        yield ConfigConstraintError(
            STREAM_NAME_CONFIG, "A stream name is required with the STREAM reader."
        )


def check_key_patterns(
    raw: Mapping[str, str], values: Mapping[str, Any]
) -> Iterator[ConfigConstraintError]:
    if values[READER_CONFIG] != ReaderType.KEYS.name:
        return
    if not [p for p in values[KEY_PATTERNS_CONFIG].split(",") if p.strip()]:
        yield ConfigConstraintError(
            KEY_PATTERNS_CONFIG,
            "At least one key pattern is required with the KEYS reader.",
        )


def sink_validator(*, strict: bool = False) -> ConfigValidator:
    return ConfigValidator(
        sink_schema(strict=strict),
        [check_json_paths, check_multiexec, check_charset],
    )


def source_validator(*, strict: bool = False) -> ConfigValidator:
    return ConfigValidator(
        source_schema(strict=strict),
        [check_stream_name, check_key_patterns],
    )


# -- Typed config builders -------------------------------------------------------


def _typed_values(result: ValidationResult) -> dict[str, Any]:
    if not result.ok:
        raise ConfigValidationError(result.errors())
    values = result.resolved()
    connection = {
        spec.name: values.pop(spec.name) for spec in connection_options()
    }
    try:
        values["connection"] = ConnectionConfig.model_validate(connection)
    except ValidationError as exc:
        raise _as_parse_error(exc) from exc
    return values


def _as_parse_error(exc: ValidationError) -> ConfigParseError:
    first = exc.errors()[0]
    option = ".".join(str(part) for part in first["loc"]) or "<config>"
    return ConfigParseError(option, f"Invalid value for {option}: {first['msg']}")


def build_sink_config(
    raw: Mapping[str, str], *, strict: bool = False
) -> RedisSinkConfig:
    """Validate *raw* and build a typed sink config, failing on any error."""
    values = _typed_values(sink_validator(strict=strict).validate_all(raw))
    try:
        return RedisSinkConfig.model_validate(values)
    except ValidationError as exc:
        raise _as_parse_error(exc) from exc


def build_source_config(
    raw: Mapping[str, str], *, strict: bool = False
) -> RedisSourceConfig:
    """Validate *raw* and build a typed source config, failing on any error."""
    values = _typed_values(source_validator(strict=strict).validate_all(raw))
    try:
        return RedisSourceConfig.model_validate(values)
    except ValidationError as exc:
        raise _as_parse_error(exc) from exc
