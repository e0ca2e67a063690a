"""Unit tests for the Vertex AI HTTP client."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
import httpx
from google.auth.exceptions import RefreshError, TransportError

from kotoba_gateway.config import GenerationParams
from kotoba_gateway.vertex.client import (
    CLOUD_PLATFORM_SCOPE,
    VertexModelClient,
    build_endpoint_url,
    create_vertex_client,
    extract_text,
)
from kotoba_gateway.vertex.exceptions import (
    ModelCallError,
    ModelNotFoundError,
    ModelPermissionError,
    ModelRateLimitError,
    ModelTimeoutError,
    ModelUnavailableError,
)


def make_response(status_code=200, json_data=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data if json_data is not None else {}
    response.text = ""
    return response


def candidate(text):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}]}


@pytest.fixture
def credentials():
    return MagicMock(valid=True, token="test-token")


@pytest.fixture
def http_client():
    return AsyncMock()


@pytest.fixture
def vertex_client(gateway_config, http_client, credentials):
    return VertexModelClient(config=gateway_config, http_client=http_client, credentials=credentials)


class TestRequestShape:
    """Tests for the outgoing request."""

    def test_endpoint_url(self, gateway_config):
        assert build_endpoint_url(gateway_config) == (
            "https://us-central1-aiplatform.googleapis.com/v1/projects/test-project/"
            "locations/us-central1/publishers/google/models/gemini-pro:generateContent"
        )

    @pytest.mark.asyncio
    async def test_generate_posts_prompt(self, vertex_client, http_client):
        """Test the prompt, parameters and token are sent."""
        http_client.post.return_value = make_response(json_data=candidate("Halo"))
        params = GenerationParams(max_output_tokens=64, temperature=0.5)

        text = await vertex_client.generate("Say hello", params)

        assert text == "Halo"
        call = http_client.post.call_args
        assert call.args[0] == vertex_client.endpoint_url
        assert call.kwargs["headers"]["Authorization"] == "Bearer test-token"
        body = call.kwargs["json"]
        assert body["contents"][0]["parts"][0]["text"] == "Say hello"
        assert body["generationConfig"] == {"maxOutputTokens": 64, "temperature": 0.5}

    @pytest.mark.asyncio
    async def test_generate_uses_configured_params(self, vertex_client, http_client):
        http_client.post.return_value = make_response(json_data=candidate("Halo"))

        await vertex_client.generate("Say hello")

        body = http_client.post.call_args.kwargs["json"]
        assert body["generationConfig"] == {"maxOutputTokens": 256, "temperature": 0.2}

    def test_extract_text_joins_parts(self):
        data = {"candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "world"}]}}]}

        assert extract_text(data) == "Hello world"
        assert extract_text({"candidates": []}) is None


class TestTokens:
    """Tests for access token handling."""

    @pytest.mark.asyncio
    async def test_expired_credentials_are_refreshed(self, vertex_client, http_client, credentials):
        credentials.valid = False
        http_client.post.return_value = make_response(json_data=candidate("ok"))

        await vertex_client.generate("hi")

        credentials.refresh.assert_called_once()

    @pytest.mark.asyncio
    async def test_refresh_failure_is_permission_error(self, vertex_client, http_client, credentials):
        credentials.valid = False
        credentials.refresh.side_effect = RefreshError("invalid_grant")

        with pytest.raises(ModelPermissionError) as exc_info:
            await vertex_client.generate("hi")

        assert "invalid_grant" in exc_info.value.message
        http_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_unreachable_token_endpoint_is_unavailable(self, vertex_client, http_client, credentials):
        """Test a network failure during refresh is not reported as a denial."""
        credentials.valid = False
        credentials.refresh.side_effect = TransportError("connection reset")

        with pytest.raises(ModelUnavailableError) as exc_info:
            await vertex_client.generate("hi")

        assert not isinstance(exc_info.value, ModelPermissionError)
        assert "connection reset" in exc_info.value.message
        http_client.post.assert_not_called()


class TestErrorTagging:
    """Tests for mapping transport and HTTP failures to tagged errors."""

    @pytest.mark.asyncio
    async def test_timeout(self, vertex_client, http_client):
        http_client.post.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(ModelTimeoutError) as exc_info:
            await vertex_client.generate("hi")

        assert exc_info.value.code == "MODEL_TIMEOUT"
        assert "timed out" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_connection_error(self, vertex_client, http_client):
        http_client.post.side_effect = httpx.ConnectError("Connection refused")

        with pytest.raises(ModelUnavailableError):
            await vertex_client.generate("hi")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,google_status,error_class",
        [
            (429, "RESOURCE_EXHAUSTED", ModelRateLimitError),
            (400, "RESOURCE_EXHAUSTED", ModelRateLimitError),
            (403, "PERMISSION_DENIED", ModelPermissionError),
            (401, "UNAUTHENTICATED", ModelPermissionError),
            (404, "NOT_FOUND", ModelNotFoundError),
        ],
    )
    async def test_http_errors(self, vertex_client, http_client, status_code, google_status, error_class):
        http_client.post.return_value = make_response(
            status_code,
            {"error": {"code": status_code, "status": google_status, "message": "denied by upstream"}},
        )

        with pytest.raises(error_class) as exc_info:
            await vertex_client.generate("hi")

        assert exc_info.value.status_code == status_code
        assert google_status in exc_info.value.message

    @pytest.mark.asyncio
    async def test_server_error(self, vertex_client, http_client):
        http_client.post.return_value = make_response(500, {"error": {"status": "INTERNAL", "message": "oops"}})

        with pytest.raises(ModelCallError) as exc_info:
            await vertex_client.generate("hi")

        assert type(exc_info.value) is ModelCallError
        assert exc_info.value.code == "MODEL_CALL_FAILED"
        assert "with status 500" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_json(self, vertex_client, http_client):
        response = make_response(200)
        response.json.side_effect = ValueError("Expecting value")
        http_client.post.return_value = response

        with pytest.raises(ModelCallError):
            await vertex_client.generate("hi")

    @pytest.mark.asyncio
    async def test_no_candidates(self, vertex_client, http_client):
        http_client.post.return_value = make_response(
            json_data={"candidates": [{"finishReason": "SAFETY"}]}
        )

        with pytest.raises(ModelCallError) as exc_info:
            await vertex_client.generate("hi")

        assert "SAFETY" in exc_info.value.message


class TestCreateVertexClient:
    """Tests for the default client factory."""

    def test_loads_service_account(self, gateway_config, http_client):
        with patch(
            "kotoba_gateway.vertex.client.service_account.Credentials.from_service_account_file"
        ) as mock_load:
            client = create_vertex_client(gateway_config, http_client=http_client)

        mock_load.assert_called_once_with(gateway_config.credentials_path, scopes=[CLOUD_PLATFORM_SCOPE])
        assert client.config is gateway_config
