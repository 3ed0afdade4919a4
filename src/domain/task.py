"""Task domain models and enums (Task, Epic and Subtask)."""

from datetime import datetime, timedelta
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    computed_field,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from src.core.errors import InvalidStateError


class TaskStatus(StrEnum):
    """Task progress status."""

    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class TaskType(StrEnum):
    """Concrete entity kind, used as the union discriminator."""

    TASK = "TASK"
    EPIC = "EPIC"
    SUBTASK = "SUBTASK"


class Task(BaseModel):
    """Standalone task.

    A task is "free" until the store registers it. After that it is managed and
    every public field is read-only outside the store.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, validate_assignment=True)

    type: Literal["TASK"] = Field(default="TASK", description="Entity kind discriminator")
    id: int = Field(default=0, ge=0, description="Store-assigned id (0 until registered)")
    name: str = Field(..., description="Task title")
    description: str = Field(default="", description="Detailed task description")
    status: TaskStatus = Field(default=TaskStatus.NEW, description="Current progress status")
    start_time: datetime | None = Field(default=None, description="Scheduled start (local time)")
    duration: timedelta = Field(default=timedelta(0), description="Planned duration (minutes on the wire)")

    _managed: bool = PrivateAttr(default=False)

    @field_validator("start_time", mode="before")
    @classmethod
    def _blank_start_time(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("start_time")
    @classmethod
    def _require_local_time(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is not None:
            raise ValueError("startTime must be a local date-time without an offset")
        return v

    @field_validator("duration", mode="before")
    @classmethod
    def _duration_from_minutes(cls, v: Any) -> Any:
        if v is None:
            return timedelta(0)
        if isinstance(v, float):
            if not v.is_integer():
                raise ValueError("duration must be a whole number of minutes")
            v = int(v)
        if isinstance(v, int) and not isinstance(v, bool):
            return timedelta(minutes=v)
        return v

    @field_validator("duration")
    @classmethod
    def _whole_non_negative_minutes(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError("duration must not be negative")
        if v % timedelta(minutes=1):
            raise ValueError("duration must be a whole number of minutes")
        return v

    @field_serializer("duration")
    def _duration_to_minutes(self, value: timedelta) -> int:
        return int(value.total_seconds() // 60)

    @computed_field(alias="endTime")  # type: ignore[prop-decorator]
    @property
    def end_time(self) -> datetime | None:
        """Scheduled end, or None when no start time is set."""
        return self._compute_end_time()

    def _compute_end_time(self) -> datetime | None:
        if self.start_time is None:
            return None
        return self.start_time + self.duration

    @property
    def kind(self) -> TaskType:
        """Entity kind as an enum."""
        return TaskType(self.type)

    @property
    def is_managed(self) -> bool:
        """Whether the store owns this instance."""
        return self._managed

    @property
    def is_scheduled(self) -> bool:
        """Whether the task appears in the prioritized view."""
        return self.start_time is not None

    def mark_managed(self) -> None:
        """Lock public fields; only the store calls this."""
        self._managed = True

    def overlaps(self, other: "Task") -> bool:
        """Return True if both intervals are non-empty and intersect as [start, end)."""
        if self.start_time is None or not self.duration or other.start_time is None or not other.duration:
            return False
        self_end = self.start_time + self.duration
        other_end = other.start_time + other.duration
        return self.start_time < other_end and other.start_time < self_end

    def __setattr__(self, name: str, value: Any) -> None:
        if not name.startswith("_") and self.is_managed:
            msg = f"{self.kind} {self.id} is managed; fields are immutable outside the task store"
            raise InvalidStateError(msg)
        super().__setattr__(name, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Task):
            return NotImplemented
        return type(self) is type(other) and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class Epic(Task):
    """Container task whose status and schedule are derived from its subtasks."""

    type: Literal["EPIC"] = Field(default="EPIC", description="Entity kind discriminator")  # type: ignore[assignment]
    subtask_ids: list[int] = Field(default_factory=list, description="Ids of owned subtasks, in insertion order")

    _end_time: datetime | None = PrivateAttr(default=None)

    @field_validator("subtask_ids")
    @classmethod
    def _dedupe_subtask_ids(cls, v: list[int]) -> list[int]:
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def _reject_self_reference(self) -> "Epic":
        if self.id and self.id in self.subtask_ids:
            raise ValueError("Epic cannot list itself as its own subtask")
        return self

    def _compute_end_time(self) -> datetime | None:
        return self._end_time

    def with_subtask_id(self, subtask_id: int) -> "Epic":
        """Return a copy with ``subtask_id`` appended (ignored for self or duplicates)."""
        if subtask_id == self.id or subtask_id in self.subtask_ids:
            return self
        return self.model_copy(update={"subtask_ids": [*self.subtask_ids, subtask_id]})

    def without_subtask_id(self, subtask_id: int) -> "Epic":
        """Return a copy with ``subtask_id`` removed."""
        return self.model_copy(update={"subtask_ids": [sid for sid in self.subtask_ids if sid != subtask_id]})

    def with_aggregates(
        self,
        *,
        status: TaskStatus,
        duration: timedelta,
        start_time: datetime | None,
        end_time: datetime | None,
    ) -> "Epic":
        """Return a fresh managed epic carrying the given derived fields."""
        epic = self.model_copy(
            update={
                "status": status,
                "duration": duration,
                "start_time": start_time,
                "subtask_ids": list(self.subtask_ids),
            }
        )
        epic._end_time = end_time
        epic.mark_managed()
        return epic


class Subtask(Task):
    """Task owned by exactly one epic."""

    type: Literal["SUBTASK"] = Field(default="SUBTASK", description="Entity kind discriminator")  # type: ignore[assignment]
    epic_id: int = Field(..., gt=0, description="Id of the owning epic")

    @model_validator(mode="after")
    def _reject_self_epic(self) -> "Subtask":
        if self.id and self.id == self.epic_id:
            raise ValueError("Subtask id must not equal epicId")
        return self


AnyTask = Annotated[Task | Epic | Subtask, Field(discriminator="type")]
