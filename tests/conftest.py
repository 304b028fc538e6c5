"""Shared pytest fixtures and configuration."""

import os
import pytest
from datetime import datetime, timezone
from freezegun import freeze_time

# Set test environment variables before tashks reads them
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOG_FORMAT", "text")

from tashks.services.hooks import HookPipeline, SubprocessHookExecutor
from tashks.services.task_coordinator import TaskMutationCoordinator
from tashks.services.task_store import FileTaskStore, InMemoryTaskStore
from tashks.utils.config import TashksConfig


@pytest.fixture
def now():
    """Fixed sweep instant."""
    return datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def hooks_dir(tmp_path):
    path = tmp_path / "hooks"
    path.mkdir()
    return path


@pytest.fixture
def memory_store():
    """Empty in-memory task store."""
    return InMemoryTaskStore()


@pytest.fixture
def file_store(data_dir):
    return FileTaskStore(data_dir)


@pytest.fixture
def config(data_dir, hooks_dir):
    return TashksConfig(data_dir=data_dir, hooks_dir=hooks_dir, hook_timeout_seconds=10)


@pytest.fixture
def hook_pipeline(config):
    return HookPipeline(SubprocessHookExecutor(config.hooks_dir, timeout_seconds=10), data_dir=config.data_dir)


@pytest.fixture
def coordinator(memory_store, hook_pipeline, now):
    """Coordinator over an in-memory store with a fixed clock."""
    return TaskMutationCoordinator(memory_store, hook_pipeline, clock=lambda: now)


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2026-03-01 09:00:00") as frozen_time:
        yield frozen_time
