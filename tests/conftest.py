"""
Agent Relay Test Suite - Shared Fixtures and Configuration

This module provides pytest fixtures shared across all test modules.
"""

import shutil
import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# Add source and tests directories to path
SRC_DIR = Path(__file__).parent.parent / "src"
TESTS_DIR = Path(__file__).parent
sys.path.insert(0, str(SRC_DIR))
sys.path.insert(0, str(TESTS_DIR.parent))

from agentrelay.config import Config
from agentrelay.relay.client import RelayClient
from agentrelay.relay.store import MemoryPendingQueue, MemoryResponseStore
from tests.fixtures.generators import WorkItemGenerator
from tests.mocks import FakeClock, RecordingDispatcher


# =============================================================================
# Directory Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    tmp = tempfile.mkdtemp(prefix="agentrelay_test_")
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def relay_dir(temp_dir: Path) -> Path:
    """Root directory for the file-backed relay store."""
    root = temp_dir / "relay"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def agent_data_dir(temp_dir: Path) -> Path:
    """Data directory for agents that keep JSON state."""
    data = temp_dir / "agents"
    data.mkdir(parents=True)
    return data


@pytest.fixture
def files_root(temp_dir: Path) -> Path:
    """Base directory the files agent is confined to."""
    root = temp_dir / "home"
    root.mkdir(parents=True)
    return root


# =============================================================================
# Generator Fixtures
# =============================================================================


@pytest.fixture
def work_item_generator() -> WorkItemGenerator:
    """Create a work item generator with fixed seed for reproducibility."""
    return WorkItemGenerator(seed=42)


@pytest.fixture
def sample_item(work_item_generator: WorkItemGenerator):
    """A single files_list work item."""
    return work_item_generator.generate_item(tool_name="files_list", arguments={"path": "/tmp"})


# =============================================================================
# Relay Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_queue() -> MemoryPendingQueue:
    return MemoryPendingQueue()


@pytest.fixture
def memory_store() -> MemoryResponseStore:
    return MemoryResponseStore(ttl=300)


@pytest.fixture
def relay_client(memory_queue, memory_store) -> RelayClient:
    """Client with a fast poll interval so tests stay quick."""
    return RelayClient(memory_queue, memory_store, poll_interval=0.01, default_deadline=1.0)


@pytest.fixture
def recording_dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    """Config pointing every directory at the temp dir."""
    files_root = temp_dir / "home"
    files_root.mkdir(parents=True, exist_ok=True)
    return Config(
        secret="test-secret",
        cloud_backend_url="http://relay.test",
        store_backend="memory",
        data_dir=temp_dir / "data",
        client_poll_interval=0.01,
        worker_poll_interval=0.01,
        wait_deadline=2.0,
        files_base_dir=files_root,
        llm_api_key="test-llm-key",
        llm_base_url="http://llm.test/v1",
        llm_model="test-model",
    )


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Remove relay-related environment variables for the test."""
    for name in (
        "RELAY_SECRET", "LOCAL_AGENT_SECRET", "CLOUD_BACKEND_URL", "RELAY_STORE",
        "REDIS_URL", "RELAY_DATA_DIR", "TELEGRAM_BOT_TOKEN", "TELEGRAM_ALLOWED_USERS",
        "LLM_API_KEY", "GROQ_API_KEY", "FILES_BASE_DIR", "LOG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    yield monkeypatch


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "stress: marks tests as stress tests")
