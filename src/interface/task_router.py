"""HTTP endpoints for tasks, epics, subtasks, history and the prioritized view."""

import logging
from collections.abc import Iterable
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from src.core.config import constants
from src.domain.task import Epic, Subtask, Task
from src.services.task_service import TaskManager


logger = logging.getLogger(__name__)

router = APIRouter(tags=["tasks"])


def get_task_manager(request: Request) -> TaskManager:
    """Return the store built for this application in ``create_app``."""
    return request.app.state.task_manager


TaskManagerDep = Annotated[TaskManager, Depends(get_task_manager)]


def _ok(payload: Task | Iterable[Task]) -> JSONResponse:
    if isinstance(payload, Task):
        content: Any = payload.model_dump(mode="json", by_alias=True)
    else:
        content = [task.model_dump(mode="json", by_alias=True) for task in payload]
    return JSONResponse(content=content, status_code=constants.HTTP_OK)


def _success() -> JSONResponse:
    return JSONResponse(content={"status": "success"}, status_code=constants.HTTP_CREATED)


# Tasks


@router.get("/tasks")
def list_tasks(manager: TaskManagerDep) -> JSONResponse:
    return _ok(manager.get_tasks())


@router.get("/tasks/{task_id}")
def get_task(task_id: int, manager: TaskManagerDep) -> JSONResponse:
    return _ok(manager.get_task(task_id))


@router.post("/tasks", status_code=201)
def post_task(task: Task, manager: TaskManagerDep) -> JSONResponse:
    """Create the task when it has no id (or 0), otherwise update it."""
    if task.id == 0:
        task_id = manager.add_task(task)
        logger.info("task_created", extra={"task_id": task_id})
    else:
        manager.update_task(task)
        logger.info("task_updated", extra={"task_id": task.id})
    return _success()


@router.delete("/tasks/{task_id}", status_code=201)
def delete_task(task_id: int, manager: TaskManagerDep) -> JSONResponse:
    manager.delete_task(task_id)
    logger.info("task_deleted", extra={"task_id": task_id})
    return _success()


# Epics


@router.get("/epics")
def list_epics(manager: TaskManagerDep) -> JSONResponse:
    return _ok(manager.get_epics())


@router.get("/epics/{epic_id}")
def get_epic(epic_id: int, manager: TaskManagerDep) -> JSONResponse:
    return _ok(manager.get_epic(epic_id))


@router.get("/epics/{epic_id}/subtasks")
def get_epic_subtasks(epic_id: int, manager: TaskManagerDep) -> JSONResponse:
    return _ok(manager.get_epic_subtasks(epic_id))


@router.post("/epics", status_code=201)
def post_epic(epic: Epic, manager: TaskManagerDep) -> JSONResponse:
    """Create the epic when it has no id (or 0), otherwise rename/re-describe it."""
    if epic.id == 0:
        epic_id = manager.add_epic(epic)
        logger.info("epic_created", extra={"epic_id": epic_id})
    else:
        manager.update_epic(epic)
        logger.info("epic_updated", extra={"epic_id": epic.id})
    return _success()


@router.delete("/epics/{epic_id}", status_code=201)
def delete_epic(epic_id: int, manager: TaskManagerDep) -> JSONResponse:
    manager.delete_epic(epic_id)
    logger.info("epic_deleted", extra={"epic_id": epic_id})
    return _success()


# Subtasks


@router.get("/subtasks")
def list_subtasks(manager: TaskManagerDep) -> JSONResponse:
    return _ok(manager.get_subtasks())


@router.get("/subtasks/{subtask_id}")
def get_subtask(subtask_id: int, manager: TaskManagerDep) -> JSONResponse:
    return _ok(manager.get_subtask(subtask_id))


@router.post("/subtasks", status_code=201)
def post_subtask(subtask: Subtask, manager: TaskManagerDep) -> JSONResponse:
    """Create the subtask when it has no id (or 0), otherwise update it."""
    if subtask.id == 0:
        subtask_id = manager.add_subtask(subtask)
        logger.info("subtask_created", extra={"subtask_id": subtask_id, "epic_id": subtask.epic_id})
    else:
        manager.update_subtask(subtask)
        logger.info("subtask_updated", extra={"subtask_id": subtask.id, "epic_id": subtask.epic_id})
    return _success()


@router.delete("/subtasks/{subtask_id}", status_code=201)
def delete_subtask(subtask_id: int, manager: TaskManagerDep) -> JSONResponse:
    manager.delete_subtask(subtask_id)
    logger.info("subtask_deleted", extra={"subtask_id": subtask_id})
    return _success()


# Views


@router.get("/history")
def get_history(manager: TaskManagerDep) -> JSONResponse:
    return _ok(manager.get_history())


@router.get("/prioritized")
def get_prioritized(manager: TaskManagerDep) -> JSONResponse:
    return _ok(manager.get_prioritized_tasks())
