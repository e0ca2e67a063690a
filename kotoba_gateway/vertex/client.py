"""HTTP client for the Vertex AI Gemini generateContent endpoint."""

import asyncio
from typing import Any, Protocol

import httpx
import structlog
from google.auth.exceptions import GoogleAuthError, TransportError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from kotoba_gateway.config import GatewayConfig, GenerationParams
from .exceptions import (
    ModelCallError,
    ModelNotFoundError,
    ModelPermissionError,
    ModelRateLimitError,
    ModelTimeoutError,
    ModelUnavailableError,
)


CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

logger = structlog.get_logger("vertex.client")


class ModelClient(Protocol):
    """Opaque text-generation capability used by the gateway."""

    async def generate(self, prompt: str, params: GenerationParams | None = None) -> str:
        ...


def build_endpoint_url(config: GatewayConfig) -> str:
    """Build the generateContent URL for the configured publisher model."""
    return (
        f"https://{config.location}-aiplatform.googleapis.com/v1/"
        f"projects/{config.project_id}/locations/{config.location}/"
        f"publishers/google/models/{config.model_name}:generateContent"
    )


def build_request_body(prompt: str, params: GenerationParams) -> dict[str, Any]:
    return {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {
            "maxOutputTokens": params.max_output_tokens,
            "temperature": params.temperature,
        },
    }


def extract_text(data: dict[str, Any]) -> str | None:
    """Join the text parts of the first candidate, or None if there are none."""
    candidates = data.get("candidates") or []
    if not candidates:
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    texts = [part["text"] for part in parts if isinstance(part.get("text"), str)]
    if not texts:
        return None
    return "".join(texts)


def _error_status(response: httpx.Response) -> tuple[str, str]:
    """Return (google status, message) from an error response body."""
    try:
        error = response.json().get("error") or {}
    except ValueError:
        return "", response.text[:200]
    if not isinstance(error, dict):
        return "", str(error)[:200]
    return str(error.get("status", "")), str(error.get("message", ""))[:200]


def raise_for_model_error(model_name: str, response: httpx.Response) -> None:
    """Raise the tagged ModelCallError matching an error response.

    Raises:
        ModelRateLimitError: On 429 or RESOURCE_EXHAUSTED.
        ModelPermissionError: On 401/403 or PERMISSION_DENIED.
        ModelNotFoundError: On 404.
        ModelCallError: On any other status >= 400.
    """
    if response.status_code < 400:
        return

    google_status, message = _error_status(response)
    detail = f"{google_status}: {message}" if google_status else message
    kwargs = {"model_name": model_name, "detail": detail, "status_code": response.status_code}

    if response.status_code == 429 or google_status == "RESOURCE_EXHAUSTED":
        raise ModelRateLimitError(**kwargs)
    if response.status_code in (401, 403) or google_status == "PERMISSION_DENIED":
        raise ModelPermissionError(**kwargs)
    if response.status_code == 404:
        raise ModelNotFoundError(**kwargs)
    raise ModelCallError(**kwargs)


class VertexModelClient:
    """Calls a Vertex AI publisher model over a shared httpx client.

    Access tokens come from service account credentials and are refreshed
    in a worker thread when they expire.
    """

    def __init__(
        self,
        config: GatewayConfig,
        http_client: httpx.AsyncClient,
        credentials: service_account.Credentials,
    ):
        self.config = config
        self.endpoint_url = build_endpoint_url(config)
        self._http_client = http_client
        self._credentials = credentials
        self._token_lock = asyncio.Lock()

    async def _access_token(self) -> str:
        async with self._token_lock:
            if not self._credentials.valid:
                try:
                    await asyncio.to_thread(self._credentials.refresh, GoogleAuthRequest())
                except TransportError as e:
                    raise ModelUnavailableError(
                        model_name=self.config.model_name,
                        detail=f"Token endpoint unreachable: {e}",
                    ) from e
                except GoogleAuthError as e:
                    raise ModelPermissionError(
                        model_name=self.config.model_name,
                        detail=f"Failed to obtain access token: {e}",
                    ) from e
            return self._credentials.token

    async def generate(self, prompt: str, params: GenerationParams | None = None) -> str:
        """Generate text for a prompt.

        Args:
            prompt: Fully composed prompt text.
            params: Generation parameters; the configured ones if omitted.

        Returns:
            Raw text of the first candidate.

        Raises:
            ModelCallError: Or one of its subclasses, tagged by failure kind.
        """
        params = params or self.config.generation_params()
        token = await self._access_token()

        try:
            response = await self._http_client.post(
                self.endpoint_url,
                json=build_request_body(prompt, params),
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.TimeoutException as e:
            raise ModelTimeoutError(model_name=self.config.model_name, detail="request timed out") from e
        except httpx.RequestError as e:
            raise ModelUnavailableError(model_name=self.config.model_name, detail=f"Request failed: {e}") from e

        raise_for_model_error(self.config.model_name, response)

        try:
            data = response.json()
        except ValueError as e:
            raise ModelCallError(
                model_name=self.config.model_name,
                detail="response was not valid JSON",
                status_code=response.status_code,
            ) from e

        text = extract_text(data)
        if text is None:
            finish_reason = ""
            if data.get("candidates"):
                finish_reason = data["candidates"][0].get("finishReason", "")
            logger.warning("vertex_empty_response", model=self.config.model_name, finish_reason=finish_reason)
            raise ModelCallError(
                model_name=self.config.model_name,
                detail=f"response contained no text (finishReason={finish_reason or 'unknown'})",
                status_code=response.status_code,
            )
        return text


def create_vertex_client(config: GatewayConfig, http_client: httpx.AsyncClient) -> VertexModelClient:
    """Load the service account key file and build a Vertex client.

    This is the default client factory of the connection manager.
    """
    credentials = service_account.Credentials.from_service_account_file(
        config.credentials_path,
        scopes=[CLOUD_PLATFORM_SCOPE],
    )
    return VertexModelClient(config=config, http_client=http_client, credentials=credentials)
