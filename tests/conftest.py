"""Pytest configuration and shared fixtures."""

from collections.abc import Generator

import logfire
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.core.config import Settings
from src.main import create_app
from src.services.task_service import TaskManager


@pytest.fixture(scope="session", autouse=True)
def _offline_logfire() -> None:
    """Keep Logfire local for the whole session."""
    logfire.configure(send_to_logfire=False, console=False)


@pytest.fixture
def task_manager() -> TaskManager:
    """Provides a fresh in-memory TaskManager for each test."""
    return TaskManager()


@pytest.fixture
def memory_settings() -> Settings:
    """Settings that keep the store in memory."""
    return Settings(storage_path="", logfire_token=None, environment="test")


@pytest.fixture
def app(memory_settings: Settings) -> FastAPI:
    """Application with its own empty in-memory store."""
    return create_app(memory_settings)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client

