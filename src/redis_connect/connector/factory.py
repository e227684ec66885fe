"""Connector factory: maps ConnectorKind to concrete connector classes."""

from __future__ import annotations

from redis_connect.config.models import ConnectorKind
from redis_connect.connector.base import Connector
from redis_connect.connector.sink import RedisSinkConnector
from redis_connect.connector.source import RedisSourceConnector

_CONNECTOR_REGISTRY: dict[ConnectorKind, type] = {
    ConnectorKind.SOURCE: RedisSourceConnector,
    ConnectorKind.SINK: RedisSinkConnector,
}


def create_connector(kind: ConnectorKind | str, *, strict: bool = False) -> Connector:
    """Create a fresh, unstarted connector for *kind*."""
    cls = _CONNECTOR_REGISTRY.get(kind)  # type: ignore[call-overload]
    if cls is None:
        msg = f"Unknown connector kind: {kind}"
        raise ValueError(msg)
    return cls(strict=strict)  # type: ignore[no-any-return]
