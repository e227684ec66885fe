"""Load raw connector properties from YAML or ``.properties`` files.

Values may reference environment variables as ``${VAR}`` or
``${VAR:-default}``.  The connector's own placeholders (``${topic}``,
``${stream}``, ``${task}``) are substituted at run time by the data plane
and are left untouched here.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import structlog
import yaml

from redis_connect.config.models import TOKEN_STREAM, TOKEN_TASK, TOKEN_TOPIC

logger = structlog.get_logger()

# Matches ${VAR} or ${VAR:-default}
_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-((?:[^}\\]|\\.)*))?}")

RESERVED_TOKENS = frozenset({TOKEN_TOPIC, TOKEN_STREAM, TOKEN_TASK})

YAML_SUFFIXES = (".yaml", ".yml")
PROPERTIES_SUFFIXES = (".properties",)


def _resolve_env_str(value: str) -> str:
    """Replace all ${VAR} / ${VAR:-default} references in a string."""

    def _replace(match: re.Match[str]) -> str:
        if match.group(0) in RESERVED_TOKENS:
            return match.group(0)
        var_name = match.group(1)
        default = match.group(2)
        env_val = os.environ.get(var_name)
        if env_val is not None:
            return env_val
        if default is not None:
            return default.replace("\\}", "}")
        msg = f"Environment variable '{var_name}' is not set and no default provided"
        raise ValueError(msg)

    return _ENV_PATTERN.sub(_replace, value)


def resolve_env_vars(props: dict[str, str]) -> dict[str, str]:
    """Resolve ${VAR} and ${VAR:-default} in every property value."""
    return {key: _resolve_env_str(value) for key, value in props.items()}


def _to_property(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list | tuple):
        return ",".join(_to_property(item) for item in value)
    return str(value)


def flatten(data: dict[str, Any], prefix: str = "") -> dict[str, str]:
    """Flatten nested mappings into dotted keys with string values.

    ``{"redis": {"wait": {"replicas": 2}}}`` becomes
    ``{"redis.wait.replicas": "2"}``.  ``None`` values are dropped so the
    option's default applies.
    """
    flat: dict[str, str] = {}
    for key, value in data.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(flatten(value, name))
        elif value is not None:
            flat[name] = _to_property(value)
    return flat


def parse_properties(text: str) -> dict[str, str]:
    """Parse Java-style ``key=value`` / ``key: value`` properties text."""
    props: dict[str, str] = {}
    pending = ""
    for line in text.splitlines():
        stripped = line.strip()
        if not pending and (not stripped or stripped[0] in "#!"):
            continue
        if stripped.endswith("\\") and not stripped.endswith("\\\\"):
            pending += stripped[:-1]
            continue
        entry = pending + stripped
        pending = ""
        match = re.match(r"^([^=:\s]+)\s*[=:\s]\s*(.*)$", entry)
        if match is None:
            props[entry] = ""
        else:
            props[match.group(1)] = match.group(2)
    if pending:
        props.setdefault(pending, "")
    return props


def _load_yaml(p: Path) -> dict[str, str]:
    try:
        with p.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        msg = f"Failed to parse YAML in {p}"
        if hasattr(exc, "problem_mark") and exc.problem_mark is not None:
            mark = exc.problem_mark
            msg += f" at line {mark.line + 1}, column {mark.column + 1}"
        msg += f": {exc}"
        raise ValueError(msg) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping at top level in {p}, got {type(data).__name__}"
        raise TypeError(msg)
    return flatten(data)


def load_properties(path: str | Path) -> dict[str, str]:
    """Load a flat raw property map from a YAML or ``.properties`` file."""
    p = Path(path)
    if not p.exists():
        msg = f"Config file not found: {p}"
        raise FileNotFoundError(msg)
    suffix = p.suffix.lower()
    if suffix in YAML_SUFFIXES:
        props = _load_yaml(p)
    elif suffix in PROPERTIES_SUFFIXES:
        props = parse_properties(p.read_text())
    else:
        msg = (
            f"Unsupported config format '{p.suffix}' for {p}; "
            f"expected one of {', '.join(YAML_SUFFIXES + PROPERTIES_SUFFIXES)}"
        )
        raise ValueError(msg)
    resolved = resolve_env_vars(props)
    logger.info("loader.loaded", path=str(p), properties=len(resolved))
    return resolved
