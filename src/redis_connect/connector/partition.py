"""Split connector work into per-task configuration maps."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TypeVar

from redis_connect.config.definitions import KEY_PATTERNS_CONFIG, TASK_ID_CONFIG
from redis_connect.errors import PartitionContractError

T = TypeVar("T")

WORK_UNIT_SEPARATOR = ","


def _check_max_tasks(max_tasks: int) -> None:
    if max_tasks < 1:
        msg = f"max_tasks must be at least 1, got {max_tasks}"
        raise PartitionContractError(msg)


def group_partitions(items: Sequence[T], num_groups: int) -> list[list[T]]:
    """Split *items* into *num_groups* contiguous, order-preserving groups.

    Group sizes differ by at most one; the larger groups come first.
    An empty sequence may be split into zero groups.
    """
    if num_groups == 0 and not items:
        return []
    if num_groups < 1:
        msg = f"Number of groups must be positive, got {num_groups}"
        raise PartitionContractError(msg)
    per_group, leftover = divmod(len(items), num_groups)
    groups: list[list[T]] = []
    start = 0
    for index in range(num_groups):
        size = per_group + 1 if index < leftover else per_group
        groups.append(list(items[start : start + size]))
        start += size
    return groups


def partition_by_work_units(
    raw: Mapping[str, str],
    units: Sequence[str],
    max_tasks: int,
    *,
    option: str = KEY_PATTERNS_CONFIG,
) -> list[dict[str, str]]:
    """One task config per group of work units, at most *max_tasks* of them.

    Each config is a copy of *raw* with *option* replaced by the group's
    units joined with commas.
    """
    _check_max_tasks(max_tasks)
    if not units:
        msg = f"No work units in '{option}' to distribute across tasks"
        raise PartitionContractError(msg)
    groups = group_partitions(units, min(len(units), max_tasks))
    return [
        {**raw, option: WORK_UNIT_SEPARATOR.join(group)} for group in groups
    ]


def fan_out(
    raw: Mapping[str, str],
    max_tasks: int,
    *,
    option: str = TASK_ID_CONFIG,
) -> list[dict[str, str]]:
    """Exactly *max_tasks* copies of *raw*, each tagged with its task index."""
    _check_max_tasks(max_tasks)
    return [{**raw, option: str(index)} for index in range(max_tasks)]
