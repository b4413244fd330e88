import pytest
from fastapi.testclient import TestClient

from livetranslate.api.realtime import get_translation_backend
from livetranslate.config import Settings
from livetranslate.main import create_app

from fakes import RecordingBackend


@pytest.fixture
def settings():
    return Settings(TRANSLATION_PROVIDER="mock", MOCK_TRANSLATION_DELAY_MS=0)


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def app(settings, backend):
    app = create_app(settings)
    app.dependency_overrides[get_translation_backend] = lambda: backend
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)
