"""CSV row codec for the file-backed task store.

Layout: ``id,type,name,status,description,startTime,duration,epic``. Empty cells mean
"absent"; ``startTime`` is ISO-8601 local time and ``duration`` is whole minutes.
"""

import csv
import io
from collections.abc import Iterable
from enum import StrEnum
from typing import Any

from pydantic import TypeAdapter, ValidationError

from src.core.config import constants
from src.core.errors import InvalidArgumentError
from src.domain.task import AnyTask, Subtask, Task, TaskType


class Column(StrEnum):
    """CSV columns in file order."""

    ID = "id"
    TYPE = "type"
    NAME = "name"
    STATUS = "status"
    DESCRIPTION = "description"
    START_TIME = "startTime"
    DURATION = "duration"
    EPIC = "epic"


COLUMNS: tuple[Column, ...] = tuple(Column)
HEADER: list[str] = [column.value for column in COLUMNS]

_task_adapter: TypeAdapter[Task] = TypeAdapter(AnyTask)


def build_header() -> str:
    """Return the header line (without newline)."""
    return ",".join(HEADER)


def task_to_row(task: Task) -> list[str]:
    """Encode one entity as a list of cell values in column order."""
    null = constants.CSV_NULL_SYMBOL
    cells = {
        Column.ID: str(task.id),
        Column.TYPE: task.kind.value,
        Column.NAME: task.name,
        Column.STATUS: task.status.value,
        Column.DESCRIPTION: task.description,
        Column.START_TIME: task.start_time.isoformat() if task.start_time is not None else null,
        Column.DURATION: str(int(task.duration.total_seconds() // 60)),
        Column.EPIC: str(task.epic_id) if isinstance(task, Subtask) else null,
    }
    return [cells[column] for column in COLUMNS]


def row_to_task(row: list[str]) -> Task:
    """Decode one row into a free (unmanaged) entity.

    Epic rows only carry identity; their subtask list and aggregates are rebuilt by
    the store when subtasks are re-registered.

    Raises:
        InvalidArgumentError: If the row is malformed
    """
    if len(row) != len(COLUMNS):
        raise InvalidArgumentError(f"Expected {len(COLUMNS)} columns, got {len(row)}: {row!r}")
    cells = dict(zip(COLUMNS, row, strict=True))
    null = constants.CSV_NULL_SYMBOL

    data: dict[str, Any] = {
        "type": cells[Column.TYPE],
        "id": cells[Column.ID],
        "name": cells[Column.NAME],
        "description": cells[Column.DESCRIPTION],
    }
    if cells[Column.TYPE] != TaskType.EPIC:
        data["status"] = cells[Column.STATUS]
        data["start_time"] = cells[Column.START_TIME] if cells[Column.START_TIME] != null else None
        duration_raw = cells[Column.DURATION]
        try:
            data["duration"] = int(duration_raw) if duration_raw != null else 0
        except ValueError as e:
            raise InvalidArgumentError(f"Malformed duration in row {row!r}") from e
    if cells[Column.TYPE] == TaskType.SUBTASK:
        data["epic_id"] = cells[Column.EPIC]

    try:
        return _task_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidArgumentError(f"Malformed task row {row!r}: {e}") from e


def dumps(tasks: Iterable[Task]) -> str:
    """Serialize entities to CSV text, header first."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(HEADER)
    for task in tasks:
        writer.writerow(task_to_row(task))
    return buffer.getvalue()


def loads(text: str) -> list[Task]:
    """Parse CSV text produced by ``dumps``.

    Empty text yields no entities; otherwise the first line must be the header.

    Raises:
        InvalidArgumentError: On header mismatch or any malformed row
    """
    rows = [row for row in csv.reader(io.StringIO(text)) if row]
    if not rows:
        return []
    header, *body = rows
    if header != HEADER:
        raise InvalidArgumentError(f"Unexpected header: {','.join(header)!r} (expected {build_header()!r})")
    return [row_to_task(row) for row in body]
