"""Task store that mirrors its whole state into a CSV file after every change."""

import logging
import os
import tempfile
from pathlib import Path

from src.core.config import constants
from src.core.errors import PersistenceError, TaskTrackerError
from src.core.logging import span
from src.domain.task import Task
from src.services import csv_serializer
from src.services.history_service import HistoryManager
from src.services.task_service import TaskManager


logger = logging.getLogger(__name__)


def _atomic_write(target_path: Path, content: str) -> None:
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding=constants.CSV_ENCODING, dir=target_path.parent, delete=False
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_path, target_path)
    finally:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink(missing_ok=True)


class FileBackedTaskManager(TaskManager):
    """``TaskManager`` persisted to a CSV file.

    The file is created when missing and loaded otherwise. Any load failure aborts
    construction: the store never runs on partially loaded state. Saves happen under
    the store lock after each successful mutation; a failed save raises
    ``PersistenceError`` but the in-memory change is kept.
    """

    def __init__(self, path: str | Path, history: HistoryManager | None = None) -> None:
        """Open (or create) the backing file and load its contents.

        Raises:
            PersistenceError: If the file cannot be created, read or parsed
        """
        super().__init__(history)
        self.path = Path(path)
        if self.path.exists():
            self._load()
        else:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.touch()
            except OSError as e:
                raise PersistenceError(f"Error during initialization of file: {self.path.name}") from e
            logger.info("task_file_created", extra={"path": str(self.path)})

    def save(self) -> None:
        """Rewrite the backing file from current state (tasks, epics, subtasks by id).

        Raises:
            PersistenceError: If writing fails
        """
        with self._lock, span("task_store.save", path=str(self.path)):
            entities: list[Task] = [*self.get_tasks(), *self.get_epics(), *self.get_subtasks()]
            content = csv_serializer.dumps(entities)
            try:
                _atomic_write(self.path, content)
            except OSError as e:
                logger.error("task_file_write_failed", extra={"path": str(self.path), "error": str(e)})
                raise PersistenceError(f"Error during writing to file: {self.path.name}") from e

    def _after_mutation(self) -> None:
        self.save()

    def _load(self) -> None:
        with span("task_store.load", path=str(self.path)):
            try:
                text = self.path.read_text(encoding=constants.CSV_ENCODING)
            except OSError as e:
                raise PersistenceError(f"Error during reading from file: {self.path.name}") from e
            try:
                self._restore(csv_serializer.loads(text))
            except TaskTrackerError as e:
                logger.error("task_file_load_failed", extra={"path": str(self.path), "error": str(e)})
                raise PersistenceError(f"Corrupted task file {self.path.name}: {e}") from e
            logger.info("task_file_loaded", extra={"path": str(self.path), "max_id": self.max_id})
