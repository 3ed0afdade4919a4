from src.services import (
    csv_serializer,
    file_backed_service,
    history_service,
    task_service,
)


__all__ = [
    "csv_serializer",
    "file_backed_service",
    "history_service",
    "task_service",
]
