"""Pytest configuration and fixtures for unit tests."""

from pathlib import Path

import pytest

from src.services.history_service import HistoryManager


@pytest.fixture
def history() -> HistoryManager:
    """Provides an empty HistoryManager for each test."""
    return HistoryManager()


@pytest.fixture
def csv_path(tmp_path: Path) -> Path:
    """Path to a not-yet-existing CSV file inside a temporary directory."""
    return tmp_path / "tasks.csv"
