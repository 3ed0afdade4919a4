"""In-memory task store: id assignment, scheduling conflicts, epic aggregates and the priority view."""

import bisect
import logging
import threading
from collections.abc import Iterable
from datetime import datetime, timedelta

from src.core.errors import InvalidArgumentError, NotFoundError, TimeConflictError
from src.core.logging import log_with_context
from src.domain.task import Epic, Subtask, Task, TaskStatus, TaskType
from src.services.history_service import HistoryManager


logger = logging.getLogger(__name__)


def compute_epic_status(subtasks: Iterable[Subtask]) -> TaskStatus:
    """Derive an epic status from its subtasks.

    NEW when there are no subtasks, the shared status when every subtask agrees,
    IN_PROGRESS for any mix.
    """
    statuses = {subtask.status for subtask in subtasks}
    if not statuses:
        return TaskStatus.NEW
    if len(statuses) == 1:
        return statuses.pop()
    return TaskStatus.IN_PROGRESS


class TaskManager:
    """Owns every task, epic and subtask and enforces the store invariants.

    Every public operation runs under one re-entrant lock and either completes or
    raises before touching any state.
    """

    def __init__(self, history: HistoryManager | None = None) -> None:
        """Initialize an empty store.

        Args:
            history: History tracker fed by successful reads (a fresh one when omitted)
        """
        self._tasks: dict[int, Task] = {}
        self._epics: dict[int, Epic] = {}
        self._subtasks: dict[int, Subtask] = {}
        self._prioritized: list[tuple[datetime, int]] = []
        self._max_id = 0
        self._history = history if history is not None else HistoryManager()
        self._lock = threading.RLock()

    @property
    def max_id(self) -> int:
        """Highest id handed out so far."""
        return self._max_id

    # Reads

    def get_tasks(self) -> list[Task]:
        with self._lock:
            return [self._tasks[task_id] for task_id in sorted(self._tasks)]

    def get_epics(self) -> list[Epic]:
        with self._lock:
            return [self._epics[epic_id] for epic_id in sorted(self._epics)]

    def get_subtasks(self) -> list[Subtask]:
        with self._lock:
            return [self._subtasks[subtask_id] for subtask_id in sorted(self._subtasks)]

    def get_task(self, task_id: int) -> Task:
        """Return a task and record the view in history.

        Raises:
            NotFoundError: If no task has this id
        """
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise NotFoundError(f"Task {task_id} not found")
            self._history.add(task)
            return task

    def get_epic(self, epic_id: int) -> Epic:
        """Return an epic and record the view in history.

        Raises:
            NotFoundError: If no epic has this id
        """
        with self._lock:
            epic = self._require_epic(epic_id)
            self._history.add(epic)
            return epic

    def get_subtask(self, subtask_id: int) -> Subtask:
        """Return a subtask and record the view in history.

        Raises:
            NotFoundError: If no subtask has this id
        """
        with self._lock:
            subtask = self._subtasks.get(subtask_id)
            if subtask is None:
                raise NotFoundError(f"Subtask {subtask_id} not found")
            self._history.add(subtask)
            return subtask

    def get_epic_subtasks(self, epic_id: int) -> list[Subtask]:
        """Return the subtasks of an epic in the epic's list order.

        Raises:
            NotFoundError: If no epic has this id
        """
        with self._lock:
            epic = self._require_epic(epic_id)
            return [self._subtasks[sid] for sid in epic.subtask_ids if sid in self._subtasks]

    def get_prioritized_tasks(self) -> list[Task]:
        """Return scheduled tasks and subtasks ordered by start time, then id."""
        with self._lock:
            return [self._scheduled_entity(entity_id) for _, entity_id in self._prioritized]

    def get_history(self) -> list[Task]:
        with self._lock:
            return self._history.get_history()

    # Creation

    def add_task(self, task: Task) -> int:
        """Register a standalone task and return its id.

        Raises:
            InvalidArgumentError: If the id is not usable
            TimeConflictError: If the task overlaps a scheduled entity
        """
        with self._lock:
            self._ensure_kind(task, TaskType.TASK)
            task_id = self._next_id(task.id)
            self._place_task(task, task_id)
            self._commit("add_task", task_id)
            return task_id

    def add_epic(self, epic: Epic) -> int:
        """Register an epic and return its id.

        Subtask ids and aggregate fields supplied by the caller are discarded; a new
        epic starts empty.

        Raises:
            InvalidArgumentError: If the id is not usable
        """
        with self._lock:
            self._ensure_kind(epic, TaskType.EPIC)
            epic_id = self._next_id(epic.id)
            self._place_epic(epic, epic_id)
            self._commit("add_epic", epic_id)
            return epic_id

    def add_subtask(self, subtask: Subtask) -> int:
        """Register a subtask under its epic and return its id.

        Raises:
            NotFoundError: If the referenced epic does not exist
            InvalidArgumentError: If the id is not usable
            TimeConflictError: If the subtask overlaps a scheduled entity
        """
        with self._lock:
            self._ensure_kind(subtask, TaskType.SUBTASK)
            subtask_id = self._next_id(subtask.id)
            self._place_subtask(subtask, subtask_id)
            self._commit("add_subtask", subtask_id)
            return subtask_id

    # Updates

    def update_task(self, task: Task) -> None:
        """Replace a stored task.

        Raises:
            NotFoundError: If the task does not exist
            TimeConflictError: If the new interval overlaps another scheduled entity
        """
        with self._lock:
            self._ensure_kind(task, TaskType.TASK)
            saved = self._tasks.get(task.id)
            if saved is None:
                raise NotFoundError(f"Task {task.id} not found")
            self._ensure_no_conflict(task)
            self._remove_prioritized(saved)
            task.mark_managed()
            self._tasks[task.id] = task
            self._add_prioritized(task)
            self._commit("update_task", task.id)

    def update_epic(self, epic: Epic) -> None:
        """Rename or re-describe an epic; its subtasks and aggregates stay store-derived.

        Raises:
            NotFoundError: If the epic does not exist
        """
        with self._lock:
            self._ensure_kind(epic, TaskType.EPIC)
            saved = self._require_epic(epic.id)
            renamed = saved.model_copy(update={"name": epic.name, "description": epic.description})
            self._epics[epic.id] = self._recompute_epic(renamed)
            self._commit("update_epic", epic.id)

    def update_subtask(self, subtask: Subtask) -> None:
        """Replace a stored subtask, moving it between epics when ``epic_id`` changed.

        Raises:
            NotFoundError: If the subtask or its (new) epic does not exist
            InvalidArgumentError: If the subtask references itself as its epic
            TimeConflictError: If the new interval overlaps another scheduled entity
        """
        with self._lock:
            self._ensure_kind(subtask, TaskType.SUBTASK)
            saved = self._subtasks.get(subtask.id)
            if saved is None:
                raise NotFoundError(f"Subtask {subtask.id} not found")
            new_epic = self._require_epic(subtask.epic_id)
            self._ensure_not_own_epic(subtask, subtask.id)
            self._ensure_no_conflict(subtask)

            self._remove_prioritized(saved)
            subtask.mark_managed()
            self._subtasks[subtask.id] = subtask
            self._add_prioritized(subtask)

            if saved.epic_id != subtask.epic_id:
                old_epic = self._epics.get(saved.epic_id)
                if old_epic is not None:
                    self._epics[old_epic.id] = self._recompute_epic(old_epic.without_subtask_id(subtask.id))
                new_epic = new_epic.with_subtask_id(subtask.id)
            self._epics[new_epic.id] = self._recompute_epic(new_epic)
            self._commit("update_subtask", subtask.id)

    # Deletion

    def delete_task(self, task_id: int) -> None:
        """Delete a task.

        Raises:
            NotFoundError: If the task does not exist
        """
        with self._lock:
            task = self._tasks.pop(task_id, None)
            if task is None:
                raise NotFoundError(f"Task {task_id} not found")
            self._remove_prioritized(task)
            self._history.remove(task_id)
            self._commit("delete_task", task_id)

    def delete_epic(self, epic_id: int) -> None:
        """Delete an epic together with all of its subtasks.

        Raises:
            NotFoundError: If the epic does not exist
        """
        with self._lock:
            epic = self._epics.pop(epic_id, None)
            if epic is None:
                raise NotFoundError(f"Epic {epic_id} not found")
            for subtask_id in epic.subtask_ids:
                subtask = self._subtasks.pop(subtask_id, None)
                if subtask is not None:
                    self._remove_prioritized(subtask)
                self._history.remove(subtask_id)
            self._history.remove(epic_id)
            self._commit("delete_epic", epic_id)

    def delete_subtask(self, subtask_id: int) -> None:
        """Delete a subtask and recompute its epic.

        Raises:
            NotFoundError: If the subtask does not exist
        """
        with self._lock:
            subtask = self._subtasks.pop(subtask_id, None)
            if subtask is None:
                raise NotFoundError(f"Subtask {subtask_id} not found")
            self._remove_prioritized(subtask)
            self._history.remove(subtask_id)
            epic = self._epics.get(subtask.epic_id)
            if epic is not None:
                self._epics[epic.id] = self._recompute_epic(epic.without_subtask_id(subtask_id))
            self._commit("delete_subtask", subtask_id)

    def delete_all_tasks(self) -> None:
        with self._lock:
            for task_id, task in self._tasks.items():
                self._remove_prioritized(task)
                self._history.remove(task_id)
            self._tasks.clear()
            self._commit("delete_all_tasks")

    def delete_all_subtasks(self) -> None:
        """Delete every subtask; every epic is left empty and recomputed."""
        with self._lock:
            self._drop_all_subtasks()
            for epic_id, epic in list(self._epics.items()):
                self._epics[epic_id] = self._recompute_epic(epic.model_copy(update={"subtask_ids": []}))
            self._commit("delete_all_subtasks")

    def delete_all_epics(self) -> None:
        """Delete every epic and, with them, every subtask."""
        with self._lock:
            for epic_id in self._epics:
                self._history.remove(epic_id)
            self._epics.clear()
            self._drop_all_subtasks()
            self._commit("delete_all_epics")

    # Hooks

    def _after_mutation(self) -> None:
        """Called under the lock after every successful mutating operation."""

    def _restore(self, entities: Iterable[Task]) -> None:
        """Re-register previously stored entities, keeping their ids.

        Tasks and epics are placed first so that every subtask finds its epic. The id
        sequence ends at the highest id seen. Nothing is recorded in history. Each epic
        gets its subtasks back in ascending id order.

        Raises:
            InvalidArgumentError: If an id is missing or duplicated
            NotFoundError: If a subtask references an unknown epic
            TimeConflictError: If two restored intervals overlap
        """
        with self._lock:
            ordered = sorted(entities, key=lambda entity: entity.id)
            subtasks = [entity for entity in ordered if entity.kind is TaskType.SUBTASK]
            for entity in [entity for entity in ordered if entity.kind is not TaskType.SUBTASK] + subtasks:
                if entity.id <= 0 or self._contains_id(entity.id):
                    raise InvalidArgumentError(f"Invalid or duplicate id: {entity.id}")
                match entity.kind:
                    case TaskType.TASK:
                        self._place_task(entity, entity.id)
                    case TaskType.EPIC:
                        self._place_epic(entity, entity.id)  # type: ignore[arg-type]
                    case TaskType.SUBTASK:
                        self._place_subtask(entity, entity.id)  # type: ignore[arg-type]
            log_with_context(logger, "info", "task_store_restored", entity_count=len(ordered), max_id=self._max_id)

    # Internals

    def _commit(self, operation: str, entity_id: int | None = None) -> None:
        log_with_context(logger, "debug", "task_store_mutation", operation=operation, task_id=entity_id)
        self._after_mutation()

    def _next_id(self, requested_id: int) -> int:
        if requested_id == 0:
            return self._max_id + 1
        if requested_id <= self._max_id:
            msg = f"Predefined id must be greater than current sequence (max_id={self._max_id}): {requested_id}"
            raise InvalidArgumentError(msg)
        if self._contains_id(requested_id):
            raise InvalidArgumentError(f"Id already exists: {requested_id}")
        return requested_id

    def _contains_id(self, entity_id: int) -> bool:
        return entity_id in self._tasks or entity_id in self._epics or entity_id in self._subtasks

    def _claim(self, entity: Task, entity_id: int) -> None:
        if entity.id != entity_id:
            entity.id = entity_id
        entity.mark_managed()
        self._max_id = max(self._max_id, entity_id)

    def _place_task(self, task: Task, task_id: int) -> None:
        self._ensure_no_conflict(task)
        self._claim(task, task_id)
        self._tasks[task_id] = task
        self._add_prioritized(task)

    def _place_epic(self, epic: Epic, epic_id: int) -> None:
        if epic.subtask_ids and not epic.is_managed:
            epic.subtask_ids = []
        self._claim(epic, epic_id)
        self._epics[epic_id] = self._recompute_epic(epic.model_copy(update={"subtask_ids": []}))

    def _place_subtask(self, subtask: Subtask, subtask_id: int) -> None:
        epic = self._require_epic(subtask.epic_id)
        self._ensure_not_own_epic(subtask, subtask_id)
        self._ensure_no_conflict(subtask)
        self._claim(subtask, subtask_id)
        self._subtasks[subtask_id] = subtask
        self._add_prioritized(subtask)
        self._epics[epic.id] = self._recompute_epic(epic.with_subtask_id(subtask_id))

    def _drop_all_subtasks(self) -> None:
        for subtask_id, subtask in self._subtasks.items():
            self._remove_prioritized(subtask)
            self._history.remove(subtask_id)
        self._subtasks.clear()

    def _require_epic(self, epic_id: int) -> Epic:
        epic = self._epics.get(epic_id)
        if epic is None:
            raise NotFoundError(f"Epic {epic_id} not found")
        return epic

    @staticmethod
    def _ensure_kind(entity: Task, expected: TaskType) -> None:
        if entity.kind is not expected:
            raise InvalidArgumentError(f"Expected {expected}, got {entity.kind}")

    @staticmethod
    def _ensure_not_own_epic(subtask: Subtask, subtask_id: int) -> None:
        if subtask_id == subtask.epic_id:
            raise InvalidArgumentError(f"Subtask id must not equal its epic id: {subtask_id}")

    def _ensure_no_conflict(self, candidate: Task) -> None:
        # Linear scan; the candidate's own stored version is skipped on update.
        if candidate.start_time is None or not candidate.duration:
            return
        for _, scheduled_id in self._prioritized:
            if scheduled_id == candidate.id:
                continue
            scheduled = self._scheduled_entity(scheduled_id)
            if scheduled.overlaps(candidate):
                log_with_context(
                    logger,
                    "info",
                    "task_time_conflict",
                    task_id=candidate.id,
                    conflicting_task_id=scheduled_id,
                )
                raise TimeConflictError(f"Task time crosses existing task {scheduled_id}")

    def _scheduled_entity(self, entity_id: int) -> Task:
        task = self._tasks.get(entity_id)
        if task is not None:
            return task
        return self._subtasks[entity_id]

    def _add_prioritized(self, entity: Task) -> None:
        if entity.start_time is not None:
            bisect.insort(self._prioritized, (entity.start_time, entity.id))

    def _remove_prioritized(self, entity: Task) -> None:
        if entity.start_time is None:
            return
        key = (entity.start_time, entity.id)
        index = bisect.bisect_left(self._prioritized, key)
        if index < len(self._prioritized) and self._prioritized[index] == key:
            del self._prioritized[index]

    def _recompute_epic(self, epic: Epic) -> Epic:
        subtasks = [self._subtasks[sid] for sid in epic.subtask_ids if sid in self._subtasks]
        start_times = [subtask.start_time for subtask in subtasks if subtask.start_time is not None]
        end_times = [subtask.end_time for subtask in subtasks if subtask.end_time is not None]
        return epic.with_aggregates(
            status=compute_epic_status(subtasks),
            duration=sum((subtask.duration for subtask in subtasks), timedelta(0)),
            start_time=min(start_times, default=None),
            end_time=max(end_times, default=None),
        )
