"""View history: most-recently-read entities, one entry per id, oldest first."""

import logging
from dataclasses import dataclass, field

from src.domain.task import Task


logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _Node:
    """Doubly linked list node holding one history entry."""

    task: Task
    prev: "_Node | None" = field(default=None, repr=False)
    next: "_Node | None" = field(default=None, repr=False)


class HistoryManager:
    """Insertion-ordered, id-unique history with O(1) add and remove.

    Re-adding a known id moves it to the most-recent (tail) position and stores the
    instance passed on this call. There is no size cap; entries leave only through
    ``remove``.
    """

    def __init__(self) -> None:
        """Initialize empty history."""
        self._head: _Node | None = None
        self._tail: _Node | None = None
        self._nodes: dict[int, _Node] = {}

    def add(self, task: Task | None) -> None:
        """Record ``task`` as the most recent view."""
        if task is None:
            return
        duplicate = self._nodes.pop(task.id, None)
        if duplicate is not None:
            self._unlink(duplicate)
        self._nodes[task.id] = self._link_last(task)

    def remove(self, task_id: int) -> None:
        """Forget ``task_id``; unknown ids are ignored."""
        node = self._nodes.pop(task_id, None)
        if node is not None:
            self._unlink(node)
            logger.debug("history_entry_removed", extra={"task_id": task_id})

    def get_history(self) -> list[Task]:
        """Return tracked entities, oldest view first."""
        result: list[Task] = []
        current = self._head
        while current is not None:
            result.append(current.task)
            current = current.next
        return result

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._nodes

    def _link_last(self, task: Task) -> _Node:
        node = _Node(task=task, prev=self._tail)
        if self._tail is None:
            self._head = node
        else:
            self._tail.next = node
        self._tail = node
        return node

    def _unlink(self, node: _Node) -> None:
        if node.prev is not None:
            node.prev.next = node.next
        else:
            self._head = node.next
        if node.next is not None:
            node.next.prev = node.prev
        else:
            self._tail = node.prev
        node.prev = None
        node.next = None
