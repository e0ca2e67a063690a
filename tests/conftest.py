# Test configuration
import asyncio
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).parent.parent

# Add repo root to path so tests can import modules
sys.path.insert(0, str(REPO_ROOT))

from kotoba_gateway.config import GatewayConfig  # noqa: E402
from kotoba_gateway.vertex.manager import ConnectionManager  # noqa: E402


class FakeModelClient:
    """In-memory stand-in for the Vertex AI client.

    Set `error` to make calls fail, or `gate` to hold calls until the
    event is set.
    """

    def __init__(self, text: str = "  Hello from Vertex AI Gemini!  "):
        self.text = text
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.prompts: list[str] = []
        self.params: list = []

    async def generate(self, prompt, params=None):
        self.prompts.append(prompt)
        self.params.append(params)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.text


class RecordingFactory:
    """Client factory that counts how many clients were built."""

    def __init__(self, client: FakeModelClient):
        self.client = client
        self.calls = 0
        self.error: Exception | None = None

    def __call__(self, config: GatewayConfig) -> FakeModelClient:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.client


@pytest.fixture
def credentials_file(tmp_path) -> Path:
    path = tmp_path / "service-account.json"
    path.write_text("{}")
    return path


@pytest.fixture
def gateway_config(credentials_file) -> GatewayConfig:
    return GatewayConfig(
        project_id="test-project",
        location="us-central1",
        model_name="gemini-pro",
        max_output_tokens=256,
        temperature=0.2,
        credentials_path=str(credentials_file),
    )


@pytest.fixture
def fake_client() -> FakeModelClient:
    return FakeModelClient()


@pytest.fixture
def client_factory(fake_client) -> RecordingFactory:
    return RecordingFactory(fake_client)


@pytest.fixture
def manager(gateway_config, client_factory) -> ConnectionManager:
    return ConnectionManager(gateway_config, client_factory=client_factory)
