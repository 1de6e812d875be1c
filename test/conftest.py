import pytest
from pathlib import Path

from fastapi.testclient import TestClient

from config import get_settings
from main import create_app
from storage import TaskStore


# This fixture will be automatically used by tests in the same directory or subdirectories.
@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """
    Points TASKS_FILE at a per-test temporary file so no test touches a tasks.json
    in the working directory, and drops cached settings on both sides of the test.
    """
    monkeypatch.setenv("TASKS_FILE", str(tmp_path / "env_tasks.json"))
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def tasks_path(tmp_path: Path) -> Path:
    return tmp_path / "tasks.json"


@pytest.fixture
def store(tasks_path: Path) -> TaskStore:
    return TaskStore(tasks_path)


@pytest.fixture
def memory_store() -> TaskStore:
    return TaskStore(None)


@pytest.fixture
def client(memory_store: TaskStore) -> TestClient:
    with TestClient(create_app(memory_store)) as test_client:
        yield test_client
