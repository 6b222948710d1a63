"""Test configuration and fixtures for the Tool Lending engine.

Every test gets:
1. Isolated database - a fresh SQLite file under tmp_path
2. Configuration isolation - the global config is reset around each test
3. A controllable clock - engine time starts at 2030-01-01 00:00
"""

import os
from collections.abc import Generator
from decimal import Decimal
from pathlib import Path

import logfire
import pytest

from tool_lending.config import EngineConfig, reset_config
from tool_lending.database import DatabaseManager, ToolCreateSchema
from tool_lending.lending import LendingEngine
from tool_lending.models import Tool

from helpers import FakeClock, RecordingSink

# === Session-wide setup ===


@pytest.fixture(scope="session", autouse=True)
def local_logfire() -> None:
    """Keep spans in-process; nothing is exported from tests."""
    logfire.configure(send_to_logfire=False, console=False)


@pytest.fixture(autouse=True)
def isolated_config() -> Generator[None, None, None]:
    reset_config()
    yield
    reset_config()


# === Database Fixtures ===


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test_tool_lending.db"


@pytest.fixture
def test_database_url(test_db_path: Path) -> str:
    return f"sqlite:///{test_db_path}"


@pytest.fixture
def db_manager(test_database_url: str) -> Generator[DatabaseManager, None, None]:
    manager = DatabaseManager(test_database_url)
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def db_session(db_manager: DatabaseManager):
    """A raw session for repository-level tests; committed on success."""
    with db_manager.session_scope() as session:
        yield session


# === Configuration Fixtures ===


@pytest.fixture
def test_config(test_db_path: Path) -> EngineConfig:
    return EngineConfig(database_path=test_db_path, lock_timeout_seconds=10)


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Remove TOOL_LENDING_* variables for the duration of a test."""
    original_env = os.environ.copy()
    for key in list(os.environ):
        if key.startswith("TOOL_LENDING_"):
            del os.environ[key]
    yield
    os.environ.clear()
    os.environ.update(original_env)


# === Engine Fixtures ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def engine(db_manager, test_config, sink, clock) -> LendingEngine:
    return LendingEngine(db_manager, config=test_config, notifier=sink, clock=clock)


@pytest.fixture
def make_tool(engine):
    """Factory registering a tool; keyword arguments override the defaults."""

    def _make_tool(**overrides) -> Tool:
        data = {
            "name": "Cordless Drill",
            "category": "power_tools",
            "daily_rate": Decimal("50.00"),
        }
        data.update(overrides)
        return engine.register_tool(ToolCreateSchema(**data))

    return _make_tool


@pytest.fixture
def tool(make_tool) -> Tool:
    return make_tool()
