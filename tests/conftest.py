"""
Pytest configuration and fixtures for Daily Life Recorder tests.
"""

from pathlib import Path
from typing import Generator, List
import tempfile
import pytest
from fastapi.testclient import TestClient

from daily_life.settings import AppSettings, StorageSettings, LoggingSettings
from daily_life.journal.store import JournalStore
from daily_life.journal.schemas import Entry, Mood
from daily_life.server.app import create_app


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings(temp_dir: Path) -> AppSettings:
    """Create test settings storing data in the temporary directory."""
    return AppSettings(
        name="TestDailyLife",
        version="0.1.0-test",
        debug=True,
        storage=StorageSettings(data_dir=temp_dir / "data", io_timeout=2.0),
        logging=LoggingSettings(level="DEBUG", file=None)
    )


@pytest.fixture
def store(test_settings: AppSettings) -> JournalStore:
    """Empty store in the temporary data directory."""
    return JournalStore(test_settings.storage)


@pytest.fixture
def app(test_settings: AppSettings, store: JournalStore):
    return create_app(test_settings, store)


@pytest.fixture
def api_client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def sample_entries() -> List[Entry]:
    """Three stored entries, most recent first."""
    return [
        Entry(id="3", date="2025-06-03T09:00:00.000Z", content="Went hiking", mood=Mood.AMAZING),
        Entry(id="2", date="2025-06-02T09:00:00.000Z", content="Rainy day", mood=Mood.SAD),
        Entry(id="1", date="2025-06-01T09:00:00.000Z", content="First day", mood=Mood.HAPPY),
    ]


@pytest.fixture
def sample_yaml_config(temp_dir: Path) -> Path:
    """Create a sample YAML config file for testing."""
    yaml_file = temp_dir / "settings.yaml"
    yaml_content = f"""
app:
  name: "YamlDailyLife"
  debug: true

storage:
  data_dir: "{(temp_dir / 'yaml-data').as_posix()}"
  io_timeout: 9

server:
  port: 4100

logging:
  level: "WARNING"
"""
    yaml_file.write_text(yaml_content.strip())
    return yaml_file
