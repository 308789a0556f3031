import io

import pytest
from fastapi import UploadFile
from fastapi.testclient import TestClient
from starlette.datastructures import Headers

from app.api.dependencies import get_llm_service
from app.core.config import Settings
from app.main import create_app


class StubLLMService:
    """Records payloads instead of calling OpenRouter."""

    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def call_provider(self, payload):
        self.calls.append(payload)
        if self.error is not None:
            raise self.error
        return self.reply


def make_upload(data: bytes, filename: str = "page.png", content_type: str = "image/png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def stub_llm():
    return StubLLMService()


@pytest.fixture
def build_client(upload_dir, stub_llm):
    clients = []

    def _build(**overrides):
        values = {"openrouter_api_key": "test-key", "upload_dir": str(upload_dir)}
        values.update(overrides)
        app = create_app(Settings(**values))
        app.dependency_overrides[get_llm_service] = lambda: stub_llm
        client = TestClient(app)
        clients.append(client)
        return client

    yield _build
    for client in clients:
        client.close()


@pytest.fixture
def client(build_client):
    return build_client()
