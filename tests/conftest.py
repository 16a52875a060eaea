import pytest
from fastapi.testclient import TestClient

from mediacal.config import Settings
from mediacal.main import create_app

# Keys a developer machine or CI job may export; tests must not pick them up
_ISOLATED = {
    "ASSEMBLY_API_KEY": None,
    "GOOGLE_API_KEY": None,
    "YOUTUBE_API_KEY": None,
    "SMTP_HOST": None,
    "SMTP_PORT": None,
    "SMTP_USER": None,
    "SMTP_PASS": None,
    "FROM_EMAIL": None,
    "VERCEL": None,
    "NOW_REGION": None,
    "VERCEL_BLOB_TOKEN": None,
    "BLOB_ENABLE": False,
    "SITE_ACCESS_SECRET": None,
    "FALLBACK_UPLOAD_DIR": None,
    "ENABLE_CROSS_ORIGIN_ISOLATION": False,
}


@pytest.fixture
def make_settings(tmp_path):
    def _make(**overrides) -> Settings:
        values = {
            **_ISOLATED,
            "environment": "test",
            "PUBLIC_DIR": str(tmp_path / "public"),
            "UPLOAD_CLEANUP_ENABLED": False,
            "TRANSCRIPTION_POLL_INTERVAL_SECONDS": 0.0,
            "TRANSCRIPTION_POLL_TIMEOUT_SECONDS": 1.0,
            **overrides,
        }
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def test_settings(make_settings):
    return make_settings()


@pytest.fixture
def make_client(make_settings):
    clients = []

    def _make(**overrides) -> TestClient:
        app = create_app(make_settings(**overrides))
        client = TestClient(app)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


@pytest.fixture
def client(make_client):
    return make_client()
