"""Static task trees declaring how the scheduler drives a connector.

A connector returns its tree from ``install``.  Each node names a task the
orchestrator runs, whether it repeats on the polling period, and the tasks
spawned once per item it produces (e.g. balances for every fetched account).
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TaskType(str, Enum):
    FETCH_ACCOUNTS = "FETCH_ACCOUNTS"
    FETCH_BALANCES = "FETCH_BALANCES"
    FETCH_EXTERNAL_ACCOUNTS = "FETCH_EXTERNAL_ACCOUNTS"
    FETCH_PAYMENTS = "FETCH_PAYMENTS"
    FETCH_OTHERS = "FETCH_OTHERS"
    CREATE_WEBHOOKS = "CREATE_WEBHOOKS"


@dataclass(frozen=True)
class ConnectorTaskTree:
    task_type: TaskType
    name: str
    periodically: bool = False
    next_tasks: tuple["ConnectorTaskTree", ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskType": self.task_type.value,
            "name": self.name,
            "periodically": self.periodically,
            "nextTasks": [child.to_dict() for child in self.next_tasks],
        }


ConnectorTasksTree = tuple[ConnectorTaskTree, ...]


def task(
    task_type: TaskType,
    name: str,
    *next_tasks: ConnectorTaskTree,
    periodically: bool = True,
) -> ConnectorTaskTree:
    """Shorthand used by connector workflow declarations."""
    return ConnectorTaskTree(
        task_type=task_type,
        name=name,
        periodically=periodically,
        next_tasks=tuple(next_tasks),
    )


def walk(
    tree: ConnectorTasksTree, depth: int = 0
) -> Iterator[tuple[int, ConnectorTaskTree]]:
    """Depth-first traversal yielding ``(depth, node)``."""
    for node in tree:
        yield depth, node
        yield from walk(node.next_tasks, depth + 1)


def tree_to_list(tree: ConnectorTasksTree) -> list[dict[str, Any]]:
    return [node.to_dict() for node in tree]
