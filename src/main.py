"""schedule - task, epic and subtask tracker served over HTTP+JSON."""

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.core.config import Settings, constants, get_settings
from src.core.errors import TaskTrackerError, classify_error_with_response
from src.core.logging import configure_logfire, instrument_fastapi
from src.interface.task_router import router as task_router
from src.services.file_backed_service import FileBackedTaskManager
from src.services.task_service import TaskManager


logger = logging.getLogger(__name__)


def build_task_manager(settings: Settings) -> TaskManager:
    """Create the store selected by settings (file-backed unless ``storage_path`` is empty).

    Raises:
        PersistenceError: If the storage file exists but cannot be loaded
    """
    if settings.is_file_backed:
        manager: TaskManager = FileBackedTaskManager(settings.storage_path)
        logger.info("task_store_ready", extra={"backend": "file", "path": settings.storage_path})
    else:
        manager = TaskManager()
        logger.info("task_store_ready", extra={"backend": "memory"})
    return manager


def _error_json(exc: Exception) -> JSONResponse:
    status_code, error = classify_error_with_response(exc)
    return JSONResponse(content=error.model_dump(mode="json"), status_code=status_code)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application with its own task store.

    The store is created once here and handed to handlers through ``app.state``.
    """
    settings = settings or get_settings()
    configure_logfire(settings)

    app = FastAPI(
        title=constants.SERVICE_NAME,
        description="Task, epic and subtask tracker with scheduling conflict detection",
        version=constants.SERVICE_VERSION,
    )
    app.state.settings = settings
    app.state.task_manager = build_task_manager(settings)

    # Instrument FastAPI with Logfire
    instrument_fastapi(app)

    @app.exception_handler(TaskTrackerError)
    async def handle_task_tracker_error(request: Request, exc: TaskTrackerError) -> JSONResponse:
        logger.warning(
            "request_rejected",
            extra={"path": request.url.path, "error_type": type(exc).__name__, "error": str(exc)},
        )
        return _error_json(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # A non-numeric id in the path means the route does not exist.
        if any(error.get("loc", ("",))[0] == "path" for error in exc.errors()):
            return JSONResponse(content={"detail": "Not Found"}, status_code=constants.HTTP_NOT_FOUND)
        logger.info("request_invalid_json", extra={"path": request.url.path})
        return _error_json(exc)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return _error_json(exc)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("request_failed", extra={"path": request.url.path})
        return _error_json(exc)

    app.include_router(task_router)

    @app.get("/health")
    async def health_check() -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse(content={"status": "healthy"}, status_code=200)

    return app


def run() -> None:
    """Start the HTTP server with settings from the environment."""
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
