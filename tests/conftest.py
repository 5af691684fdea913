"""Shared fixtures for the API tests."""

import sys
from pathlib import Path

import joblib
import pytest
from fastapi.testclient import TestClient

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.api.main import app
from src.api.metrics import metrics_service
from src.api.routes import recommend
from src.config import Settings


@pytest.fixture
def vectors_file(tmp_path) -> Path:
    """Item vectors for two mirrored items, as exported by the trainer."""
    path = tmp_path / "item_vectors.joblib"
    joblib.dump({1234: [1.0, 2.0, 3.0], 4567: [3.0, 2.0, 1.0]}, path)
    return path


@pytest.fixture
def api_settings(tmp_path, monkeypatch) -> Settings:
    """Settings pointing at a file that does not exist yet."""
    settings = Settings(
        item_vectors_path=str(tmp_path / "missing.joblib"),
        confidence=40.0,
        regularization=0.01,
        default_top_n=10,
    )
    monkeypatch.setattr(recommend, "get_settings", lambda: settings)
    return settings


@pytest.fixture
def client(api_settings, monkeypatch):
    """Test client with an empty model cache and fresh metrics."""
    monkeypatch.setattr(recommend, "_model_cache", None)
    metrics_service.reset()
    yield TestClient(app)
    metrics_service.reset()


@pytest.fixture
def loaded_client(client, vectors_file):
    """Test client with the two-item model loaded."""
    response = client.post(
        "/recommend/reload-model", params={"vectors_path": str(vectors_file)}
    )
    assert response.status_code == 200
    return client
